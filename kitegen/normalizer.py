# File: kitegen/normalizer.py
"""
KiteGen - Schema Loading & Normalization
=========================================
Turns the YAML shorthand into a fully-typed :class:`~kitegen.models.Schema`.

Shorthand accepted per entity member::

    post:
      title: string        # primitive tag  -> plain field
      user: user           # entity name    -> belongsTo + foreign key userId
      authorId: user       # ends in Id     -> belongsTo, foreign key kept as authorId
      tags: [tag]          # one-element    -> manyToMany through join table post_tag

Rules:
    - Every entity gets an implicit ``id`` uuid field, always first.
    - ``string`` fields default to length bounds [1, 255].
    - ``email`` becomes a ``string`` field that remembers it was declared
      as email.
    - A belongsTo member adds one uuid foreign-key field (default ``''``)
      named after the member when it ends in ``Id`` / ``_id``, otherwise
      ``<target>Id``.
    - A manyToMany member registers the join table for the unordered
      entity pair once, however many times the pair is declared.

Anything else is a :class:`~kitegen.errors.ShapeError`; malformed YAML is a
:class:`~kitegen.errors.ParseError`. Both abort the run.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional

import yaml
from pydantic import ValidationError as PydanticValidationError

from kitegen.errors import ParseError, ShapeError
from kitegen.models import (
    PRIMITIVE_TAGS,
    EntityConfig,
    FieldConfig,
    FieldKind,
    JoinTableConfig,
    RelationConfig,
    RelationKind,
    Schema,
)
from kitegen.utils import foreign_key_name, instance_name, join_table_name

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.normalizer")

# ---------------------------------------------------------------------------
# Type-keyed defaults
# ---------------------------------------------------------------------------

DEFAULT_VALUES: Dict[str, str] = {
    FieldKind.STRING.value: "''",
    FieldKind.TEXT.value: "''",
    FieldKind.EMAIL.value: "''",
    FieldKind.COLOR.value: "''",
    FieldKind.NUMBER.value: "0",
    FieldKind.BOOLEAN.value: "false",
    FieldKind.DATE.value: "new Date().toISOString()",
    FieldKind.UUID.value: "crypto.randomUUID()",
}

STRING_MIN_LENGTH: int = 1
STRING_MAX_LENGTH: int = 255

FOREIGN_KEY_DEFAULT: str = "''"


# ---------------------------------------------------------------------------
# Loading
# ---------------------------------------------------------------------------


def parse_schema_text(text: str, source: str = "<string>") -> Dict[str, Any]:
    """
    Parse YAML (or JSON, which is valid YAML) schema text.

    Raises:
        ParseError: If the text is not valid YAML or its top level is not
            a mapping.
    """
    try:
        data: Any = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise ParseError(f"Invalid YAML: {exc}", source=source) from exc

    if data is None:
        raise ParseError("Schema document is empty.", source=source)
    if not isinstance(data, dict):
        raise ParseError(
            f"Expected a mapping of entities at top level, got {type(data).__name__}.",
            source=source,
        )
    return data


def load_schema_file(path: Path) -> Dict[str, Any]:
    """
    Read and parse a schema file.

    Raises:
        FileNotFoundError: If the file doesn't exist.
        ParseError: If the path is not a file, can't be read or parsed.
    """
    if not path.exists():
        raise FileNotFoundError(f"Schema file not found: {path}")

    if not path.is_file():
        raise ParseError("Schema path is not a file.", source=str(path))

    try:
        text: str = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as exc:
        raise ParseError(f"Cannot read schema: {exc}", source=str(path)) from exc

    data: Dict[str, Any] = parse_schema_text(text, source=str(path))
    logger.info("Loaded schema file: %s (%d entities).", path, len(data))
    return data


# ---------------------------------------------------------------------------
# Normalizer
# ---------------------------------------------------------------------------


class SchemaNormalizer:
    """
    Single-use builder from a raw entity mapping to a :class:`Schema`.

    Usage::

        schema = SchemaNormalizer(raw).normalize()
    """

    def __init__(self, raw: Mapping[str, Any], source_file: Optional[str] = None) -> None:
        self._raw: Mapping[str, Any] = raw
        self._source_file: Optional[str] = source_file
        self._entity_names: List[str] = []
        self._join_tables: Dict[str, JoinTableConfig] = {}

    def normalize(self) -> Schema:
        self._entity_names = self._collect_entity_names()
        entities: Dict[str, EntityConfig] = {}

        for name in self._entity_names:
            entities[name] = self._normalize_entity(name, self._raw[name])

        try:
            schema: Schema = Schema(
                entities=entities,
                join_tables=self._join_tables,
                source_file=self._source_file,
            )
        except PydanticValidationError as exc:
            raise ShapeError(f"Normalized schema is inconsistent: {exc}") from exc

        logger.info(
            "Normalized schema: %d entities, %d relations, %d join tables.",
            schema.entity_count,
            schema.total_relations,
            len(schema.join_tables),
        )
        return schema

    # -- Entities -----------------------------------------------------------

    def _collect_entity_names(self) -> List[str]:
        names: List[str] = []
        for name in self._raw:
            if not isinstance(name, str) or not name:
                raise ShapeError(f"Entity names must be non-empty strings, got {name!r}.")
            names.append(name)
        return names

    def _normalize_entity(self, name: str, body: Any) -> EntityConfig:
        if body is None:
            body = {}
        if not isinstance(body, Mapping):
            raise ShapeError(
                f"Entity body must be a mapping of members, got {type(body).__name__}.",
                entity=name,
            )

        fields: Dict[str, FieldConfig] = {
            "id": FieldConfig(
                name="id",
                kind=FieldKind.UUID,
                declared_type=FieldKind.UUID.value,
                default_value=DEFAULT_VALUES[FieldKind.UUID.value],
                primary_key=True,
            )
        }
        relations: Dict[str, RelationConfig] = {}

        for member, value in body.items():
            if not isinstance(member, str) or not member:
                raise ShapeError(f"Member names must be non-empty strings, got {member!r}.", entity=name)
            if member == "id":
                raise ShapeError("'id' is implicit and cannot be declared.", entity=name, member=member)

            if isinstance(value, list):
                relations[member] = self._many_to_many(name, member, value)
            elif isinstance(value, str) and value in PRIMITIVE_TAGS:
                self._add_field(fields, name, self._primitive_field(member, value))
            elif isinstance(value, str):
                relation: RelationConfig = self._belongs_to(name, member, value)
                relations[member] = relation
                self._add_field(
                    fields,
                    name,
                    FieldConfig(
                        name=relation.foreign_key,
                        kind=FieldKind.UUID,
                        declared_type=FieldKind.UUID.value,
                        default_value=FOREIGN_KEY_DEFAULT,
                        references=value,
                    ),
                )
            else:
                raise ShapeError(
                    f"Unsupported member value {value!r}: expected a type tag, "
                    f"an entity name or a one-element list.",
                    entity=name,
                    member=member,
                )

        logger.debug(
            "Entity '%s': %d fields, %d relations.", name, len(fields), len(relations)
        )
        return EntityConfig(name=name, fields=fields, relations=relations)

    @staticmethod
    def _add_field(fields: Dict[str, FieldConfig], entity: str, field: FieldConfig) -> None:
        if field.name in fields:
            raise ShapeError(
                f"Field '{field.name}' is declared twice; a foreign key collides "
                f"with another member. End the relation member name in 'Id' "
                f"to choose its foreign key.",
                entity=entity,
                member=field.name,
            )
        fields[field.name] = field

    # -- Members ------------------------------------------------------------

    @staticmethod
    def _primitive_field(member: str, tag: str) -> FieldConfig:
        kind: FieldKind = FieldKind.STRING if tag == FieldKind.EMAIL.value else FieldKind(tag)
        bounded: bool = tag == FieldKind.STRING.value
        return FieldConfig(
            name=member,
            kind=kind,
            declared_type=tag,
            min_length=STRING_MIN_LENGTH if bounded else None,
            max_length=STRING_MAX_LENGTH if bounded else None,
            default_value=DEFAULT_VALUES[tag],
        )

    def _belongs_to(self, entity: str, member: str, target: str) -> RelationConfig:
        self._require_entity(entity, member, target)
        return RelationConfig(
            name=member,
            kind=RelationKind.BELONGS_TO,
            source_entity=entity,
            target_entity=target,
            foreign_key=foreign_key_name(member, target),
        )

    def _many_to_many(self, entity: str, member: str, value: List[Any]) -> RelationConfig:
        if len(value) != 1 or not isinstance(value[0], str):
            raise ShapeError(
                f"Many-to-many shorthand must be a one-element list holding an "
                f"entity name, got {value!r}.",
                entity=entity,
                member=member,
            )
        target: str = value[0]
        self._require_entity(entity, member, target)
        table: JoinTableConfig = self._register_join_table(entity, target)
        return RelationConfig(
            name=member,
            kind=RelationKind.MANY_TO_MANY,
            source_entity=entity,
            target_entity=target,
            join_table=table.name,
        )

    def _require_entity(self, entity: str, member: str, target: str) -> None:
        if target not in self._entity_names:
            raise ShapeError(
                f"'{target}' is neither a type ({', '.join(sorted(PRIMITIVE_TAGS))}) "
                f"nor a declared entity.",
                entity=entity,
                member=member,
            )

    # -- Join tables --------------------------------------------------------

    def _register_join_table(self, entity: str, target: str) -> JoinTableConfig:
        name: str = join_table_name(entity, target)
        existing: Optional[JoinTableConfig] = self._join_tables.get(name)
        if existing is not None:
            return existing

        left, right = sorted((entity, target), key=instance_name)
        fields: Dict[str, FieldConfig] = {}
        for side in (left, right):
            key: str = f"{instance_name(side)}Id"
            fields.setdefault(
                key,
                FieldConfig(
                    name=key,
                    kind=FieldKind.UUID,
                    declared_type=FieldKind.UUID.value,
                    default_value=FOREIGN_KEY_DEFAULT,
                    references=side,
                ),
            )
        if len(fields) != 2:
            raise ShapeError(
                f"Many-to-many relation from '{entity}' to itself is not supported.",
                entity=entity,
            )

        table: JoinTableConfig = JoinTableConfig(
            name=name, left_entity=left, right_entity=right, fields=fields
        )
        self._join_tables[name] = table
        logger.debug("Registered join table '%s' (%s x %s).", name, left, right)
        return table


# ---------------------------------------------------------------------------
# Convenience API
# ---------------------------------------------------------------------------


def normalize(raw: Mapping[str, Any], source_file: Optional[str] = None) -> Schema:
    """Normalize a raw entity mapping into a :class:`Schema`."""
    return SchemaNormalizer(raw, source_file=source_file).normalize()


def normalize_text(text: str, source: str = "<string>") -> Schema:
    """Parse and normalize YAML schema text."""
    return normalize(parse_schema_text(text, source=source), source_file=source)


def load_schema(path: Path) -> Schema:
    """Read, parse and normalize a schema file."""
    return normalize(load_schema_file(path), source_file=str(path))


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "DEFAULT_VALUES",
    "STRING_MIN_LENGTH",
    "STRING_MAX_LENGTH",
    "parse_schema_text",
    "load_schema_file",
    "SchemaNormalizer",
    "normalize",
    "normalize_text",
    "load_schema",
]

logger.debug("kitegen.normalizer loaded (%d public symbols).", len(__all__))

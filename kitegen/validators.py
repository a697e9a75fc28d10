# File: kitegen/validators.py
"""
KiteGen - Schema & Configuration Validators
============================================
Pure-function validation over a normalized :class:`~kitegen.models.Schema`.

The normalizer and the pydantic models already reject malformed shapes.
This module adds the **semantic** checks that decide whether the generated
TypeScript would compile and behave: identifier validity, name collisions
once names are lower-cased, clashes between generated class members, and
configuration sanity.

Usage::

    from kitegen.validators import validate_full
    result = validate_full(schema, config)
    if not result.is_valid:
        print(result.format_report())
"""

from __future__ import annotations

import logging
import re
from collections import defaultdict
from pathlib import Path
from typing import Any, Callable, Dict, FrozenSet, List, Optional, Set

from kitegen.models import (
    EntityConfig,
    GenerationConfig,
    RelationConfig,
    RelationKind,
    Schema,
)
from kitegen.relations import (
    SOURCE,
    RelationContext,
    catalog_key,
    get_requirements,
    process_template,
)
from kitegen.templates import RELATION_GETTER_TEMPLATES
from kitegen.utils import JS_RESERVED_WORDS, is_identifier

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.validators")

# ---------------------------------------------------------------------------
# Validation result container
# ---------------------------------------------------------------------------


class ValidationError:
    """Lightweight error descriptor."""

    __slots__ = ("level", "code", "message", "context")

    def __init__(
        self,
        level: str,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self.level: str = level  # "error" | "warning" | "info"
        self.code: str = code
        self.message: str = message
        self.context: Dict[str, Any] = context or {}

    @property
    def is_error(self) -> bool:
        return self.level == "error"

    @property
    def is_warning(self) -> bool:
        return self.level == "warning"

    def __repr__(self) -> str:
        return f"[{self.level.upper()}] {self.code}: {self.message}"

    def __str__(self) -> str:
        return self.__repr__()

    def to_dict(self) -> Dict[str, Any]:
        return {
            "level": self.level,
            "code": self.code,
            "message": self.message,
            "context": self.context,
        }


class ValidationResult:
    """Accumulates :class:`ValidationError` items from the validators."""

    __slots__ = ("_items",)

    def __init__(self) -> None:
        self._items: List[ValidationError] = []

    # -- Mutation -----------------------------------------------------------

    def add_error(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("error", code, message, context))

    def add_warning(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("warning", code, message, context))

    def add_info(
        self,
        code: str,
        message: str,
        context: Optional[Dict[str, Any]] = None,
    ) -> None:
        self._items.append(ValidationError("info", code, message, context))

    def merge(self, other: "ValidationResult") -> None:
        self._items.extend(other._items)

    # -- Query --------------------------------------------------------------

    @property
    def errors(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_error]

    @property
    def warnings(self) -> List[ValidationError]:
        return [e for e in self._items if e.is_warning]

    @property
    def all_items(self) -> List[ValidationError]:
        return list(self._items)

    @property
    def has_errors(self) -> bool:
        return any(e.is_error for e in self._items)

    @property
    def has_warnings(self) -> bool:
        return any(e.is_warning for e in self._items)

    @property
    def error_count(self) -> int:
        return sum(1 for e in self._items if e.is_error)

    @property
    def warning_count(self) -> int:
        return sum(1 for e in self._items if e.is_warning)

    @property
    def is_valid(self) -> bool:
        return not self.has_errors

    def codes(self) -> Set[str]:
        return {e.code for e in self._items}

    def summary(self) -> str:
        return (
            f"Validation: {self.error_count} error(s), "
            f"{self.warning_count} warning(s), "
            f"{len(self._items)} total item(s)."
        )

    def __repr__(self) -> str:
        return f"<ValidationResult {self.summary()}>"

    def __bool__(self) -> bool:
        """Truthy when there are no errors."""
        return self.is_valid

    def __len__(self) -> int:
        return len(self._items)

    def format_report(self, include_info: bool = False) -> str:
        """Human-readable multi-line report."""
        lines: List[str] = [self.summary(), ""]
        for item in self._items:
            if not include_info and item.level == "info":
                continue
            prefix: str = {"error": "ERROR", "warning": "WARN", "info": "INFO"}.get(
                item.level, "-"
            )
            lines.append(f"  {prefix:<5} [{item.code}] {item.message}")
            for k, v in item.context.items():
                lines.append(f"        {k}: {v}")
        return "\n".join(lines)


# ---------------------------------------------------------------------------
# Generated class surface
# ---------------------------------------------------------------------------

# Members every generated entity class defines regardless of its relations
CLASS_MEMBERS: FrozenSet[str] = frozenset(
    {
        "constructor",
        "data",
        "store",
        "db",
        "delete",
        "detail",
        "listItem",
        "snapshot",
        "create",
    }
)

_GETTER_RE: re.Pattern[str] = re.compile(r"\bget\s+([A-Za-z_$][\w$]*)\s*\(")


def relation_members(relation: RelationConfig) -> List[str]:
    """
    Every class member one relation adds to its source entity's class:
    methods and cached-list fields from the requirement catalog, plus the
    accessor getters.
    """
    context: RelationContext = RelationContext.from_relation(relation)
    requirements = get_requirements(relation.kind)
    names: List[str] = [
        process_template(m.name, context) for m in requirements.methods_for(SOURCE)
    ]
    names.extend(process_template(f.name, context) for f in requirements.fields_for(SOURCE))
    template: Optional[str] = RELATION_GETTER_TEMPLATES.get(catalog_key(relation.kind))
    if template:
        names.extend(_GETTER_RE.findall(process_template(template, context)))
    return names


# ---------------------------------------------------------------------------
# Individual validation functions
# ---------------------------------------------------------------------------


def validate_entity_names(schema: Schema) -> ValidationResult:
    """
    Entity names must yield usable identifiers and distinct store keys.

    Two entities that differ only in case (``Post`` / ``post``) would share
    a table, a component directory and a ``constructors`` key.
    """
    result: ValidationResult = ValidationResult()
    by_instance: Dict[str, List[str]] = defaultdict(list)

    for entity in schema.entities.values():
        ctx: Dict[str, Any] = {"entity": entity.name}
        by_instance[entity.instance_name].append(entity.name)

        if not is_identifier(entity.class_name) or not is_identifier(entity.instance_name):
            code: str = (
                "ENTITY_NAME_RESERVED"
                if entity.instance_name in JS_RESERVED_WORDS
                else "INVALID_ENTITY_NAME"
            )
            result.add_error(
                code,
                f"Entity name '{entity.name}' does not give a valid TypeScript "
                f"identifier ('{entity.class_name}' / '{entity.instance_name}').",
                ctx,
            )
            continue

        if entity.plural_name == entity.instance_name:
            result.add_error(
                "AMBIGUOUS_PLURAL",
                f"Entity '{entity.name}' has the same singular and plural form "
                f"('{entity.plural_name}'); component props would clash.",
                ctx,
            )

        if "_" in entity.name:
            result.add_warning(
                "ENTITY_NAME_UNDERSCORE",
                f"Entity name '{entity.name}' contains '_'; its store key may be "
                f"confused with a join table.",
                ctx,
            )

    for key, names in by_instance.items():
        if len(names) > 1:
            result.add_error(
                "ENTITY_NAME_COLLISION",
                f"Entities {', '.join(repr(n) for n in names)} all map to store "
                f"key '{key}'.",
                {"entities": names},
            )

    return result


def validate_field_names(schema: Schema) -> ValidationResult:
    """Field names are used verbatim as object keys and Dexie index names."""
    result: ValidationResult = ValidationResult()

    for entity in schema.entities.values():
        for field in entity.non_id_fields():
            ctx: Dict[str, Any] = {"entity": entity.name, "field": field.name}
            if not is_identifier(field.name):
                result.add_error(
                    "INVALID_FIELD_NAME",
                    f"Field '{entity.name}.{field.name}' is not a valid identifier "
                    f"or is a reserved word.",
                    ctx,
                )
            elif "+" in field.name or "[" in field.name:
                result.add_error(
                    "FIELD_NAME_INDEX_SYNTAX",
                    f"Field '{entity.name}.{field.name}' contains Dexie index syntax.",
                    ctx,
                )

    return result


def validate_join_tables(schema: Schema) -> ValidationResult:
    """Join tables share the store namespace with entities."""
    result: ValidationResult = ValidationResult()
    store_keys: Dict[str, str] = {e.instance_name: e.name for e in schema.entities.values()}

    for table in schema.join_tables.values():
        if table.name in store_keys:
            result.add_error(
                "JOIN_TABLE_COLLISION",
                f"Join table '{table.name}' has the same store key as entity "
                f"'{store_keys[table.name]}'.",
                {"join_table": table.name, "entity": store_keys[table.name]},
            )

    for relation in schema.iter_relations():
        if (
            relation.kind == RelationKind.MANY_TO_MANY
            and relation.source_entity == relation.target_entity
        ):
            result.add_error(
                "SELF_MANY_TO_MANY",
                f"Relation '{relation.source_entity}.{relation.name}' is a "
                f"many-to-many relation from an entity to itself.",
                {"entity": relation.source_entity, "relation": relation.name},
            )

    return result


def validate_has_many(schema: Schema) -> ValidationResult:
    """A hasMany relation needs its foreign key on the target entity."""
    result: ValidationResult = ValidationResult()

    for relation in schema.iter_relations():
        if relation.kind != RelationKind.HAS_MANY:
            continue
        target: Optional[EntityConfig] = schema.get_entity(relation.target_entity)
        foreign_key: Optional[str] = RelationContext.from_relation(relation).foreign_key
        if target is not None and foreign_key not in target.fields:
            result.add_error(
                "HAS_MANY_MISSING_FOREIGN_KEY",
                f"Relation '{relation.source_entity}.{relation.name}' expects "
                f"field '{foreign_key}' on '{relation.target_entity}'.",
                {"relation": relation.name, "foreign_key": foreign_key},
            )

    return result


def validate_class_members(schema: Schema) -> ValidationResult:
    """
    The members generated for an entity class must be unique.

    Two relations to the same target both generate ``update<Target>`` (or
    ``add<Target>`` / ``remove<Target>``), and a relation named ``data``
    would shadow the record itself.
    """
    result: ValidationResult = ValidationResult()

    for entity in schema.entities.values():
        owners: Dict[str, List[str]] = defaultdict(list)
        for relation in entity.relations.values():
            ctx: Dict[str, Any] = {"entity": entity.name, "relation": relation.name}
            if not is_identifier(relation.name):
                result.add_error(
                    "INVALID_RELATION_NAME",
                    f"Relation '{entity.name}.{relation.name}' is not a valid "
                    f"identifier or is a reserved word.",
                    ctx,
                )
                continue
            for member in dict.fromkeys(relation_members(relation)):
                owners[member].append(relation.name)

        for member, relations in owners.items():
            if member in CLASS_MEMBERS:
                result.add_error(
                    "RELATION_MEMBER_CLASH",
                    f"Relation '{entity.name}.{relations[0]}' generates member "
                    f"'{member}', which every entity class already defines.",
                    {"entity": entity.name, "member": member},
                )
            elif len(relations) > 1:
                result.add_error(
                    "DUPLICATE_CLASS_MEMBER",
                    f"Relations {', '.join(relations)} of '{entity.name}' all "
                    f"generate member '{member}'.",
                    {"entity": entity.name, "member": member, "relations": relations},
                )

    return result


def validate_display_fields(schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()

    for entity in schema.entities.values():
        if entity.display_field == "id":
            result.add_warning(
                "DISPLAY_FIELD_FALLBACK",
                f"Entity '{entity.name}' has no 'name' or 'title' field; lists "
                f"and pickers will show its id.",
                {"entity": entity.name},
            )

    return result


def validate_schema_stats(schema: Schema) -> ValidationResult:
    result: ValidationResult = ValidationResult()
    result.add_info(
        "SCHEMA_STATS",
        f"Schema: {schema.entity_count} entities, {schema.total_fields} fields, "
        f"{schema.total_relations} relations, {len(schema.join_tables)} join tables.",
        {
            "entities": schema.entity_count,
            "fields": schema.total_fields,
            "relations": schema.total_relations,
            "join_tables": len(schema.join_tables),
        },
    )
    return result


def validate_generation_config(config: GenerationConfig) -> ValidationResult:
    """Checks on the output location and storage-handle name."""
    result: ValidationResult = ValidationResult()

    output: Path = Path(config.output_dir)
    if output.exists() and not output.is_dir():
        result.add_error(
            "OUTPUT_NOT_A_DIRECTORY",
            f"Output path '{config.output_dir}' exists and is not a directory.",
            {"output_dir": config.output_dir},
        )

    if config.db_name.startswith("."):
        result.add_warning(
            "DB_NAME_HIDDEN",
            f"Database name '{config.db_name}' starts with '.'.",
            {"db_name": config.db_name},
        )

    if config.clean_output and output.resolve() == Path.cwd().resolve():
        result.add_warning(
            "CLEAN_CURRENT_DIRECTORY",
            "Cleaning is enabled and the output directory is the current "
            "working directory; only generated directories are removed.",
            {"output_dir": config.output_dir},
        )

    return result


# ---------------------------------------------------------------------------
# Composite validation orchestrators
# ---------------------------------------------------------------------------

ValidatorFn = Callable[[Schema], ValidationResult]

SCHEMA_VALIDATORS: List[ValidatorFn] = [
    validate_entity_names,
    validate_field_names,
    validate_join_tables,
    validate_has_many,
    validate_class_members,
    validate_display_fields,
    validate_schema_stats,
]


def validate_schema(schema: Schema) -> ValidationResult:
    """Run all schema-level validators and merge their results."""
    result: ValidationResult = ValidationResult()

    for validator_fn in SCHEMA_VALIDATORS:
        logger.debug("Running validator: %s", validator_fn.__name__)
        result.merge(validator_fn(schema))

    logger.info("Schema validation complete: %s", result.summary())
    return result


def validate_full(schema: Schema, config: GenerationConfig) -> ValidationResult:
    """
    **Master validation entry point**, called by the generator and the CLI
    before any artifact is derived.
    """
    logger.info("Starting full validation: %d entities.", schema.entity_count)

    result: ValidationResult = ValidationResult()
    result.merge(validate_schema(schema))
    result.merge(validate_generation_config(config))

    if result.has_errors:
        logger.error(
            "Validation FAILED with %d error(s). %s",
            result.error_count,
            result.summary(),
        )
    else:
        logger.info("Validation PASSED. %s", result.summary())

    return result


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "ValidationError",
    "ValidationResult",
    "CLASS_MEMBERS",
    "relation_members",
    "validate_entity_names",
    "validate_field_names",
    "validate_join_tables",
    "validate_has_many",
    "validate_class_members",
    "validate_display_fields",
    "validate_schema_stats",
    "validate_generation_config",
    "validate_schema",
    "validate_full",
]

logger.debug("kitegen.validators loaded (%d public symbols).", len(__all__))

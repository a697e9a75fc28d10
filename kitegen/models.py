# File: kitegen/models.py
"""
KiteGen - Core Data Models
===========================
Pydantic V2 models for the normalized schema graph and the artifacts
derived from it. These models are the single source of truth for the
pipeline: Loading → Normalization → Validation → Derivation → Export.

A ``Schema`` is built once per run by :mod:`kitegen.normalizer` and is only
read afterwards. ``CodeArtifact`` instances are frozen value objects.
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Dict, FrozenSet, Iterator, List, Optional

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    computed_field,
    field_validator,
    model_validator,
)

from kitegen.utils import (
    capitalize_first,
    count_lines,
    instance_name,
    sha256_hex,
    strip_foreign_key_suffix,
    to_plural,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.models")

# ---------------------------------------------------------------------------
# Enums: fixed sets used across the entire project
# ---------------------------------------------------------------------------


class FieldKind(str, Enum):
    """Primitive type tags accepted in the schema shorthand."""

    STRING = "string"
    TEXT = "text"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"
    UUID = "uuid"
    EMAIL = "email"
    COLOR = "color"


class RelationKind(str, Enum):
    """Relation cardinalities between two entities."""

    BELONGS_TO = "belongsTo"
    HAS_MANY = "hasMany"
    MANY_TO_MANY = "manyToMany"


class ArtifactKind(str, Enum):
    """Category of a generated output file."""

    SCHEMA = "schema"
    ENTITY_CLASS = "entityClass"
    COMPONENT = "component"
    ROUTE = "route"
    DATABASE = "database"


class ComponentKind(str, Enum):
    """UI component kinds generated per entity, in output order."""

    DETAIL = "detail"
    LIST_ITEM = "listItem"
    SELECT = "select"
    LIST = "list"
    DELETE = "delete"


PRIMITIVE_TAGS: FrozenSet[str] = frozenset(kind.value for kind in FieldKind)

BASELINE_COMPONENTS: List[ComponentKind] = [
    ComponentKind.DETAIL,
    ComponentKind.LIST_ITEM,
    ComponentKind.SELECT,
]

# Display field candidates in priority order
DISPLAY_FIELD_PRIORITY: List[str] = ["name", "title", "id"]

# ---------------------------------------------------------------------------
# Mixin: shared model configuration
# ---------------------------------------------------------------------------

_SHARED_CONFIG: ConfigDict = ConfigDict(
    strict=False,
    populate_by_name=True,
    validate_assignment=True,
    use_enum_values=True,
    frozen=False,
    extra="forbid",
)

_FROZEN_CONFIG: ConfigDict = ConfigDict(**{**_SHARED_CONFIG, "frozen": True})


# ---------------------------------------------------------------------------
# Fields & relations
# ---------------------------------------------------------------------------


class FieldConfig(BaseModel):
    """
    A single stored field of an entity or join table.

    ``default_value`` is a TypeScript expression, e.g. ``''`` or
    ``crypto.randomUUID()``. ``declared_type`` keeps the tag as written in
    the schema so that ``email`` fields (kind ``string``) can be given
    email validation when the validation schema is emitted.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Field name.")
    kind: FieldKind = Field(..., description="Normalized primitive kind.")
    declared_type: Optional[str] = Field(
        default=None, description="Type tag as written in the schema."
    )
    min_length: Optional[int] = Field(default=None, ge=0, description="Minimum length.")
    max_length: Optional[int] = Field(default=None, ge=1, description="Maximum length.")
    default_value: str = Field(..., description="TypeScript default expression.")
    required: bool = Field(default=True, description="False emits an optional validator.")
    primary_key: bool = Field(default=False, description="Entity identity field?")
    references: Optional[str] = Field(
        default=None, description="Target entity when this is a foreign key."
    )

    @computed_field  # type: ignore[misc]
    @property
    def is_foreign_key(self) -> bool:
        return self.references is not None

    @computed_field  # type: ignore[misc]
    @property
    def is_email(self) -> bool:
        return self.declared_type == FieldKind.EMAIL.value

    @model_validator(mode="after")
    def _validate_bounds(self) -> "FieldConfig":
        if (
            self.min_length is not None
            and self.max_length is not None
            and self.min_length > self.max_length
        ):
            raise ValueError(
                f"Field '{self.name}': min_length {self.min_length} exceeds "
                f"max_length {self.max_length}"
            )
        return self

    def __repr__(self) -> str:
        return f"<Field {self.name}: {self.kind}>"


class RelationConfig(BaseModel):
    """A relation declared by ``source_entity`` towards ``target_entity``."""

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Member name in the schema.")
    kind: RelationKind = Field(..., description="Relation cardinality.")
    source_entity: str = Field(..., min_length=1, description="Declaring entity.")
    target_entity: str = Field(..., min_length=1, description="Referenced entity.")
    foreign_key: Optional[str] = Field(
        default=None, description="Foreign-key field name (belongsTo / hasMany)."
    )
    join_table: Optional[str] = Field(
        default=None, description="Join-table name (manyToMany)."
    )

    @computed_field  # type: ignore[misc]
    @property
    def display_name(self) -> str:
        """Accessor name for the related record (``authorId`` -> ``author``)."""
        return strip_foreign_key_suffix(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def title(self) -> str:
        return capitalize_first(self.name)

    @model_validator(mode="after")
    def _validate_kind_requirements(self) -> "RelationConfig":
        if self.kind == RelationKind.BELONGS_TO and not self.foreign_key:
            raise ValueError(f"belongsTo relation '{self.name}' requires a foreign_key")
        if self.kind == RelationKind.MANY_TO_MANY and not self.join_table:
            raise ValueError(f"manyToMany relation '{self.name}' requires a join_table")
        return self

    def __repr__(self) -> str:
        return f"<Relation {self.source_entity}.{self.name} {self.kind} {self.target_entity}>"


# ---------------------------------------------------------------------------
# Entities & join tables
# ---------------------------------------------------------------------------


class EntityConfig(BaseModel):
    """
    A schema-declared record type.

    ``fields`` is insertion ordered and always starts with the implicit
    ``id`` field. One ``EntityConfig`` drives the entity class, its UI
    components, one validation-schema record and one store definition.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Entity name as declared.")
    fields: Dict[str, FieldConfig] = Field(..., description="Ordered stored fields.")
    relations: Dict[str, RelationConfig] = Field(
        default_factory=dict, description="Relations declared by this entity."
    )

    # -- Computed helpers ---------------------------------------------------

    @computed_field  # type: ignore[misc]
    @property
    def class_name(self) -> str:
        return capitalize_first(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def instance_name(self) -> str:
        return instance_name(self.name)

    @computed_field  # type: ignore[misc]
    @property
    def plural_name(self) -> str:
        return to_plural(self.instance_name)

    @computed_field  # type: ignore[misc]
    @property
    def schema_type_name(self) -> str:
        return f"{self.class_name}Schema"

    @computed_field  # type: ignore[misc]
    @property
    def display_field(self) -> str:
        """First of ``name``, ``title``, ``id`` present on the entity."""
        for candidate in DISPLAY_FIELD_PRIORITY:
            if candidate in self.fields:
                return candidate
        return "id"

    @computed_field  # type: ignore[misc]
    @property
    def color_field(self) -> Optional[str]:
        for field in self.fields.values():
            if field.kind == FieldKind.COLOR:
                return field.name
        return None

    def non_id_fields(self) -> List[FieldConfig]:
        return [f for f in self.fields.values() if not f.primary_key]

    def relations_of_kind(self, kind: RelationKind) -> List[RelationConfig]:
        return [r for r in self.relations.values() if r.kind == kind]

    @model_validator(mode="after")
    def _validate_identity_first(self) -> "EntityConfig":
        names: List[str] = list(self.fields)
        if not names or names[0] != "id":
            raise ValueError(f"Entity '{self.name}': first field must be 'id'")
        id_field: FieldConfig = self.fields["id"]
        if id_field.kind != FieldKind.UUID or not id_field.primary_key:
            raise ValueError(f"Entity '{self.name}': 'id' must be a uuid primary key")
        return self

    @model_validator(mode="after")
    def _validate_foreign_keys_present(self) -> "EntityConfig":
        for relation in self.relations.values():
            if relation.kind != RelationKind.BELONGS_TO:
                continue
            fk: Optional[FieldConfig] = self.fields.get(relation.foreign_key or "")
            if fk is None or fk.kind != FieldKind.UUID:
                raise ValueError(
                    f"Entity '{self.name}': belongsTo '{relation.name}' has no "
                    f"uuid field '{relation.foreign_key}'"
                )
        return self

    def __repr__(self) -> str:
        return (
            f"<Entity {self.name} "
            f"({len(self.fields)} fields, {len(self.relations)} relations)>"
        )


class JoinTableConfig(BaseModel):
    """
    Storage for one many-to-many association.

    ``left_entity`` / ``right_entity`` follow the sorted order of the two
    instance names, as do the two key fields.
    """

    model_config = _SHARED_CONFIG

    name: str = Field(..., min_length=1, description="Derived join-table name.")
    left_entity: str = Field(..., min_length=1, description="First entity (sorted).")
    right_entity: str = Field(..., min_length=1, description="Second entity (sorted).")
    fields: Dict[str, FieldConfig] = Field(..., description="The two foreign-key fields.")

    @computed_field  # type: ignore[misc]
    @property
    def schema_type_name(self) -> str:
        return f"{capitalize_first(self.name)}Schema"

    @computed_field  # type: ignore[misc]
    @property
    def key_fields(self) -> List[str]:
        return list(self.fields)

    @model_validator(mode="after")
    def _validate_two_uuid_keys(self) -> "JoinTableConfig":
        if len(self.fields) != 2:
            raise ValueError(
                f"Join table '{self.name}' must have exactly two fields, "
                f"got {len(self.fields)}"
            )
        for field in self.fields.values():
            if field.kind != FieldKind.UUID:
                raise ValueError(
                    f"Join table '{self.name}': field '{field.name}' must be uuid"
                )
        return self

    def __repr__(self) -> str:
        return f"<JoinTable {self.name} ({self.left_entity} x {self.right_entity})>"


# ---------------------------------------------------------------------------
# Schema: top-level container
# ---------------------------------------------------------------------------


class Schema(BaseModel):
    """
    The root model: every entity plus the derived join tables.

    Invariant: every relation target names an entity of this schema and
    every manyToMany relation names a registered join table.
    """

    model_config = _SHARED_CONFIG

    entities: Dict[str, EntityConfig] = Field(..., description="Entities by name.")
    join_tables: Dict[str, JoinTableConfig] = Field(
        default_factory=dict, description="Join tables by derived name."
    )
    source_file: Optional[str] = Field(default=None, description="Schema file path.")

    @model_validator(mode="after")
    def _validate_references(self) -> "Schema":
        for entity in self.entities.values():
            for relation in entity.relations.values():
                if relation.target_entity not in self.entities:
                    raise ValueError(
                        f"Relation '{entity.name}.{relation.name}' targets unknown "
                        f"entity '{relation.target_entity}'"
                    )
                if (
                    relation.kind == RelationKind.MANY_TO_MANY
                    and relation.join_table not in self.join_tables
                ):
                    raise ValueError(
                        f"Relation '{entity.name}.{relation.name}' references "
                        f"unregistered join table '{relation.join_table}'"
                    )
        return self

    def get_entity(self, name: str) -> Optional[EntityConfig]:
        return self.entities.get(name)

    def get_join_table(self, name: str) -> Optional[JoinTableConfig]:
        return self.join_tables.get(name)

    def iter_relations(self) -> Iterator[RelationConfig]:
        """Every relation in the schema, in declaration order."""
        for entity in self.entities.values():
            yield from entity.relations.values()

    @computed_field  # type: ignore[misc]
    @property
    def entity_names(self) -> List[str]:
        return list(self.entities)

    @computed_field  # type: ignore[misc]
    @property
    def entity_count(self) -> int:
        return len(self.entities)

    @computed_field  # type: ignore[misc]
    @property
    def total_fields(self) -> int:
        return sum(len(e.fields) for e in self.entities.values())

    @computed_field  # type: ignore[misc]
    @property
    def total_relations(self) -> int:
        return sum(len(e.relations) for e in self.entities.values())

    def __repr__(self) -> str:
        return (
            f"<Schema {self.entity_count} entities, "
            f"{self.total_relations} relations, "
            f"{len(self.join_tables)} join tables>"
        )


# ---------------------------------------------------------------------------
# Generation configuration
# ---------------------------------------------------------------------------


class GenerationConfig(BaseModel):
    """
    Options consumed by the orchestrator.

    The derivation core reads ``db_name`` and ``generate_routes``; the
    remaining options only affect how artifacts are written.
    """

    model_config = _SHARED_CONFIG

    output_dir: str = Field(default=".", min_length=1, description="Output project root.")
    db_name: str = Field(
        default="app-db",
        min_length=1,
        max_length=128,
        pattern=r"^[A-Za-z0-9_.\-]+$",
        description="Name of the client-side database.",
    )
    generate_routes: bool = Field(default=True, description="Emit generic routes.")
    clean_output: bool = Field(
        default=False, description="Remove previously generated files first."
    )
    write_manifest: bool = Field(default=False, description="Write a JSON manifest.")


# ---------------------------------------------------------------------------
# Code artifact: output value object
# ---------------------------------------------------------------------------


class CodeArtifact(BaseModel):
    """One generated file: a relative path plus its full content."""

    model_config = _FROZEN_CONFIG

    target_path: str = Field(..., min_length=1, description="Path relative to output dir.")
    artifact_kind: ArtifactKind = Field(..., description="Artifact category.")
    dependencies: List[ArtifactKind] = Field(
        default_factory=list, description="Artifact kinds this one imports from."
    )
    content: str = Field(..., description="Full file content.")

    @field_validator("target_path")
    @classmethod
    def _relative_posix_path(cls, v: str) -> str:
        if v.startswith("/") or "\\" in v or ".." in v.split("/"):
            raise ValueError(f"Artifact path must be relative and normalized: {v!r}")
        return v

    @computed_field  # type: ignore[misc]
    @property
    def line_count(self) -> int:
        return count_lines(self.content)

    @computed_field  # type: ignore[misc]
    @property
    def size_bytes(self) -> int:
        return len(self.content.encode("utf-8"))

    def checksum(self) -> str:
        return sha256_hex(self.content)

    def __repr__(self) -> str:
        return f"<CodeArtifact {self.artifact_kind} {self.target_path}>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "FieldKind",
    "RelationKind",
    "ArtifactKind",
    "ComponentKind",
    "PRIMITIVE_TAGS",
    "BASELINE_COMPONENTS",
    "DISPLAY_FIELD_PRIORITY",
    "FieldConfig",
    "RelationConfig",
    "EntityConfig",
    "JoinTableConfig",
    "Schema",
    "GenerationConfig",
    "CodeArtifact",
]

logger.debug("kitegen.models loaded (%d public symbols).", len(__all__))

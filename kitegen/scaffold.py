# File: kitegen/scaffold.py
"""
KiteGen - Whole-Schema Artifacts
=================================
Artifacts derived from the schema as a whole rather than per entity:

    schema.ts   zod record shapes and inferred types (entities + join tables)
    tables.ts   Dexie table typing and the ``storesConfig`` index strings
    data.ts     the ``constructors`` map plus re-exports
    db.ts       the application storage handle
    routes      generic ``[table]`` list/detail pages and the nav layout
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional, Union

from kitegen.engine import TemplateEngine
from kitegen.models import (
    ArtifactKind,
    CodeArtifact,
    EntityConfig,
    FieldConfig,
    FieldKind,
    GenerationConfig,
    JoinTableConfig,
    Schema,
)
from kitegen.templates import ROUTE_TEMPLATES
from kitegen.utils import ts_string
from kitegen.visitors import GENERATED_DIR, RUNTIME_MODULE

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.scaffold")

SCHEMA_PATH: str = f"{GENERATED_DIR}/schema.ts"
TABLES_PATH: str = f"{GENERATED_DIR}/tables.ts"
DATA_PATH: str = f"{GENERATED_DIR}/data.ts"
DB_PATH: str = f"{GENERATED_DIR}/db.ts"

GENERATED_HEADER: str = "// GENERATED FILE - DO NOT EDIT"

# zod constructors by declared type tag
ZOD_TYPES: Dict[str, str] = {
    FieldKind.STRING.value: "z.string()",
    FieldKind.TEXT.value: "z.string()",
    FieldKind.COLOR.value: "z.string()",
    FieldKind.DATE.value: "z.string()",
    FieldKind.EMAIL.value: "z.email()",
    FieldKind.NUMBER.value: "z.number()",
    FieldKind.BOOLEAN.value: "z.boolean()",
    FieldKind.UUID.value: "z.uuid()",
}

_Table = Union[EntityConfig, JoinTableConfig]


def zod_expression(field: FieldConfig) -> str:
    """The zod validator expression for one field."""
    expr: str = ZOD_TYPES.get(field.declared_type, ZOD_TYPES[field.kind])
    if field.min_length is not None:
        expr += f".min({field.min_length})"
    if field.max_length is not None:
        expr += f".max({field.max_length})"
    if not field.required:
        expr += ".optional()"
    return expr


def store_definition(table: _Table) -> str:
    """
    Dexie index string: primary key first, then every other field.

    Join tables use their compound key, e.g. ``&[postId+tagId], postId, tagId``.
    """
    if isinstance(table, JoinTableConfig):
        keys: List[str] = table.key_fields
        return ", ".join([f"&[{'+'.join(keys)}]", *keys])
    return ", ".join(["&id", *(f.name for f in table.non_id_fields())])


class ScaffoldBuilder:
    """Builds the whole-schema artifacts for one schema and configuration."""

    def __init__(
        self,
        schema: Schema,
        config: Optional[GenerationConfig] = None,
        engine: Optional[TemplateEngine] = None,
    ) -> None:
        self._schema: Schema = schema
        self._config: GenerationConfig = config or GenerationConfig()
        self._engine: TemplateEngine = engine or TemplateEngine()

    def _tables(self) -> List[_Table]:
        return [*self._schema.entities.values(), *self._schema.join_tables.values()]

    # -- schema.ts ----------------------------------------------------------

    def schema_artifact(self) -> CodeArtifact:
        blocks: List[str] = ["import { z } from 'zod'"]
        for table in self._tables():
            const: str = (
                f"{table.instance_name}Schema"
                if isinstance(table, EntityConfig)
                else f"{table.name}Schema"
            )
            lines: List[str] = [f"export const {const} = z.object({{"]
            lines.extend(f"   {f.name}: {zod_expression(f)}," for f in table.fields.values())
            lines.append("})")
            lines.append("")
            lines.append(f"export type {table.schema_type_name} = z.infer<typeof {const}>")
            blocks.append("\n".join(lines))

        return CodeArtifact(
            target_path=SCHEMA_PATH,
            artifact_kind=ArtifactKind.SCHEMA,
            content="\n\n".join(blocks) + "\n",
        )

    # -- tables.ts ----------------------------------------------------------

    def tables_artifact(self) -> CodeArtifact:
        tables: List[_Table] = self._tables()
        type_names: str = ", ".join(t.schema_type_name for t in tables)

        interface: List[str] = ["export interface TableNames {"]
        stores: List[str] = ["export const storesConfig = {"]
        for table in tables:
            key: str = table.instance_name if isinstance(table, EntityConfig) else table.name
            if isinstance(table, EntityConfig):
                interface.append(f"   {key}: EntityTable<{table.schema_type_name}, 'id'>")
            else:
                interface.append(f"   {key}: EntityTable<{table.schema_type_name}>")
            stores.append(f"   {key}: {ts_string(store_definition(table))},")
        interface.append("}")
        stores.append("}")

        content: str = "\n".join(
            [
                "import type { EntityTable } from 'dexie'",
                f"import type {{ {type_names} }} from './schema.js'",
                "",
                *interface,
                "",
                *stores,
                "",
            ]
        )
        return CodeArtifact(
            target_path=TABLES_PATH,
            artifact_kind=ArtifactKind.DATABASE,
            dependencies=[ArtifactKind.SCHEMA],
            content=content,
        )

    # -- data.ts ------------------------------------------------------------

    def data_artifact(self) -> CodeArtifact:
        entities: List[EntityConfig] = list(self._schema.entities.values())
        lines: List[str] = [GENERATED_HEADER, ""]
        lines.extend(
            f"import {{ {e.class_name} }} from './classes/{e.class_name}.svelte.js'"
            for e in entities
        )
        lines.append("")
        lines.append("export const constructors = {")
        lines.extend(f"   {e.instance_name}: {e.class_name}," for e in entities)
        lines.append("}")
        lines.append("")
        lines.append("export * from './schema.js'")
        lines.append("export * from './tables.js'")
        lines.append("")
        return CodeArtifact(
            target_path=DATA_PATH,
            artifact_kind=ArtifactKind.SCHEMA,
            dependencies=[ArtifactKind.ENTITY_CLASS, ArtifactKind.SCHEMA, ArtifactKind.DATABASE],
            content="\n".join(lines),
        )

    # -- db.ts --------------------------------------------------------------

    def db_artifact(self) -> CodeArtifact:
        content: str = (
            f"import {{ DexieAdapter }} from '{RUNTIME_MODULE}'\n"
            "import { storesConfig } from './tables.js'\n"
            "\n"
            f"export const db = new DexieAdapter({ts_string(self._config.db_name)}, storesConfig)\n"
        )
        return CodeArtifact(
            target_path=DB_PATH,
            artifact_kind=ArtifactKind.DATABASE,
            dependencies=[ArtifactKind.DATABASE],
            content=content,
        )

    # -- routes -------------------------------------------------------------

    def route_artifacts(self) -> List[CodeArtifact]:
        """The six generic route files, or none when routes are disabled."""
        if not self._config.generate_routes:
            logger.debug("Route generation disabled.")
            return []
        return [
            CodeArtifact(
                target_path=path,
                artifact_kind=ArtifactKind.ROUTE,
                dependencies=[ArtifactKind.SCHEMA, ArtifactKind.DATABASE],
                content=self._engine.render(template, {}),
            )
            for path, template in ROUTE_TEMPLATES.items()
        ]

    def database_artifacts(self) -> List[CodeArtifact]:
        """schema.ts, tables.ts, data.ts and db.ts in output order."""
        artifacts: List[CodeArtifact] = [
            self.schema_artifact(),
            self.tables_artifact(),
            self.data_artifact(),
            self.db_artifact(),
        ]
        logger.debug(
            "Built scaffold for %d tables (%d join tables).",
            len(self._tables()),
            len(self._schema.join_tables),
        )
        return artifacts


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SCHEMA_PATH",
    "TABLES_PATH",
    "DATA_PATH",
    "DB_PATH",
    "ZOD_TYPES",
    "zod_expression",
    "store_definition",
    "ScaffoldBuilder",
]

logger.debug("kitegen.scaffold loaded (%d public symbols).", len(__all__))

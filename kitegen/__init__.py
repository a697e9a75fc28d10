# File: kitegen/__init__.py
"""
KiteGen - SvelteKit + Dexie Code Generator
===========================================

Turns a compact YAML entity schema into the data layer and CRUD UI of a
SvelteKit application backed by IndexedDB (through Dexie).

Architecture overview::

    schema.yaml
        |
        v
    normalizer.py  ->  Schema (models.py)  ->  validators.py
                            |
            +---------------+----------------+
            v               v                v
       scaffold.py     visitors.py      relations.py
    (schema, tables,  (entity classes,  (requirement catalog,
     data, db,         components)       token substitution)
     routes)
            |               |
            +-------+-------+
                    v
              exporters.py  ->  files under the output directory

Usage::

    # As a library
    from kitegen import KiteGenerator, GenerationConfig, load_schema
    schema = load_schema(Path("schema.yaml"))
    report = KiteGenerator().generate(schema, GenerationConfig(output_dir="./app"))

    # From the command line
    kitegen -s schema.yaml -o ./app -v
"""

from __future__ import annotations

__version__: str = "0.1.0"
__license__: str = "MIT"

from kitegen.errors import ArtifactWriteError, KiteGenError, ParseError, ShapeError
from kitegen.models import (
    ArtifactKind,
    CodeArtifact,
    ComponentKind,
    EntityConfig,
    FieldConfig,
    FieldKind,
    GenerationConfig,
    JoinTableConfig,
    RelationConfig,
    RelationKind,
    Schema,
)
from kitegen.engine import TemplateEngine, render
from kitegen.normalizer import SchemaNormalizer, load_schema, normalize, normalize_text
from kitegen.relations import RelationContext, get_requirements, process_template
from kitegen.validators import ValidationResult, validate_full
from kitegen.exporters import ArtifactExporter, ExportManifest, ExportResult
from kitegen.generator import (
    GenerationReport,
    KiteGenerator,
    build_artifacts,
    preview_payload,
)

# ---------------------------------------------------------------------------
# Public API surface
# ---------------------------------------------------------------------------

__all__: list[str] = [
    "__version__",
    "__license__",
    # Orchestrator
    "KiteGenerator",
    "GenerationReport",
    "build_artifacts",
    "preview_payload",
    # Errors
    "KiteGenError",
    "ParseError",
    "ShapeError",
    "ArtifactWriteError",
    # Models
    "ArtifactKind",
    "CodeArtifact",
    "ComponentKind",
    "EntityConfig",
    "FieldConfig",
    "FieldKind",
    "GenerationConfig",
    "JoinTableConfig",
    "RelationConfig",
    "RelationKind",
    "Schema",
    # Loading
    "SchemaNormalizer",
    "load_schema",
    "normalize",
    "normalize_text",
    # Templates & relations
    "TemplateEngine",
    "render",
    "RelationContext",
    "get_requirements",
    "process_template",
    # Validation
    "validate_full",
    "ValidationResult",
    # Export
    "ArtifactExporter",
    "ExportManifest",
    "ExportResult",
]

# File: kitegen/visitors.py
"""
KiteGen - Artifact Derivation Visitors
=======================================
Two visitors walk a normalized :class:`~kitegen.models.Schema`:

``EntityClassVisitor``
    One ``<Class>.svelte.ts`` per entity: reactive ``data`` state with
    per-field defaults, relation caches, relation methods from the
    requirement catalog, and component accessor getters.

``ComponentVisitor``
    ``Detail``, ``ListItem`` and ``Select`` components per entity, plus
    every component kind the catalog requires because of relations that
    point at the entity (``List`` and ``Delete`` for many-to-many targets).

Both visitors are pure: the same schema always yields byte-identical
artifacts.
"""

from __future__ import annotations

import logging
from typing import Dict, List, Optional

from kitegen.engine import ImportSpec, TemplateEngine, render_imports
from kitegen.models import (
    BASELINE_COMPONENTS,
    ArtifactKind,
    CodeArtifact,
    ComponentKind,
    EntityConfig,
    FieldConfig,
    FieldKind,
    RelationConfig,
    Schema,
)
from kitegen.relations import (
    SOURCE,
    RelationContext,
    RelationRequirements,
    catalog_key,
    collect_component_kinds,
    get_requirements,
    process_template,
)
from kitegen.templates import (
    COMPONENT_TEMPLATES,
    ENTITY_CLASS_TEMPLATE,
    RELATION_GETTER_TEMPLATES,
    RELATION_SELECTOR_TEMPLATES,
)
from kitegen.utils import capitalize_first, ts_string

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.visitors")

# ---------------------------------------------------------------------------
# Output paths
# ---------------------------------------------------------------------------

GENERATED_DIR: str = "src/lib/generated"
CLASSES_DIR: str = f"{GENERATED_DIR}/classes"
COMPONENTS_DIR: str = f"{GENERATED_DIR}/components"

RUNTIME_MODULE: str = "sveltekite"


def class_path(entity: EntityConfig) -> str:
    return f"{CLASSES_DIR}/{entity.class_name}.svelte.ts"


def component_name(entity: EntityConfig, kind: str) -> str:
    return f"{entity.class_name}{capitalize_first(kind)}"


def component_path(entity: EntityConfig, kind: str) -> str:
    return f"{COMPONENTS_DIR}/{entity.instance_name}/{component_name(entity, kind)}.svelte"


# ---------------------------------------------------------------------------
# Entity classes
# ---------------------------------------------------------------------------


class EntityClassVisitor:
    """
    Derives the entity class artifact for each entity.

    The class receives its storage handle through its constructor and
    ``create()``; the application handle from ``db.ts`` is only the
    default argument.
    """

    def __init__(self, schema: Schema, engine: Optional[TemplateEngine] = None) -> None:
        self._schema: Schema = schema
        self._engine: TemplateEngine = engine or TemplateEngine()

    def visit_schema(self) -> List[CodeArtifact]:
        return [self.visit(entity) for entity in self._schema.entities.values()]

    def visit(self, entity: EntityConfig) -> CodeArtifact:
        relations: List[_BoundRelation] = [
            _BoundRelation(r) for r in entity.relations.values()
        ]
        context: Dict[str, object] = {
            "entity": entity,
            "imports": self._build_imports(entity, relations),
            "default_data": self._build_default_data(entity),
            "relation_state_fields": self._build_state_fields(relations),
            "constructor_calls": self._build_constructor_calls(relations),
            "relation_methods": self._build_relation_methods(relations),
            "relation_getters": self._build_relation_getters(relations),
        }
        content: str = self._engine.render(ENTITY_CLASS_TEMPLATE, context)
        logger.debug("Derived entity class %s (%d relations).", entity.class_name, len(relations))
        return CodeArtifact(
            target_path=class_path(entity),
            artifact_kind=ArtifactKind.ENTITY_CLASS,
            dependencies=[ArtifactKind.SCHEMA, ArtifactKind.DATABASE, ArtifactKind.COMPONENT],
            content=content,
        )

    # -- Fragments ----------------------------------------------------------

    @staticmethod
    def _build_imports(entity: EntityConfig, relations: List[_BoundRelation]) -> str:
        specs: List[ImportSpec] = [
            ImportSpec(entity.schema_type_name, "../schema.js", "type"),
            ImportSpec("DatabaseService", RUNTIME_MODULE, "type"),
            ImportSpec("withProps", RUNTIME_MODULE),
            ImportSpec("withSave", RUNTIME_MODULE),
            ImportSpec("withData", RUNTIME_MODULE),
            ImportSpec("withInstance", RUNTIME_MODULE),
            ImportSpec("DataSave", RUNTIME_MODULE),
            ImportSpec("db as defaultStore", "../db.js"),
        ]
        for kind in (ComponentKind.DETAIL, ComponentKind.LIST_ITEM):
            own: str = component_name(entity, kind.value)
            specs.append(
                ImportSpec(own, f"../components/{entity.instance_name}/{own}.svelte", "default")
            )

        for bound in relations:
            for requirement in bound.requirements.imports_for(SOURCE):
                name: str = bound.expand(requirement.name)
                # A class never imports itself
                if requirement.style == "named" and name == entity.class_name:
                    continue
                specs.append(ImportSpec(name, bound.expand(requirement.source), requirement.style))
        return render_imports(specs)

    @staticmethod
    def _build_default_data(entity: EntityConfig) -> str:
        lines: List[str] = [
            f"      {field.name}: {_default_expression(entity, field)}"
            for field in entity.fields.values()
        ]
        return "{\n" + ",\n".join(lines) + "\n   }"

    @staticmethod
    def _build_state_fields(relations: List[_BoundRelation]) -> str:
        lines: List[str] = []
        for bound in relations:
            for requirement in bound.requirements.fields_for(SOURCE):
                lines.append(
                    f"   {bound.expand(requirement.name)} = "
                    f"$state<{bound.expand(requirement.type)}>"
                    f"({bound.expand(requirement.initializer)})"
                )
        return "".join(line + "\n" for line in lines)

    @staticmethod
    def _build_constructor_calls(relations: List[_BoundRelation]) -> str:
        calls: List[str] = []
        for bound in relations:
            # Relations with a cached list load it on construction
            if not bound.requirements.fields_for(SOURCE):
                continue
            for method in bound.requirements.methods_for(SOURCE):
                name: str = bound.expand(method.name)
                if name.startswith("refresh"):
                    calls.append(f"      this.{name}()")
        return "".join(call + "\n" for call in calls)

    @staticmethod
    def _build_relation_methods(relations: List[_BoundRelation]) -> str:
        methods: List[str] = [
            bound.expand(method.template)
            for bound in relations
            for method in bound.requirements.methods_for(SOURCE)
        ]
        return "".join(method + "\n\n" for method in methods)

    @staticmethod
    def _build_relation_getters(relations: List[_BoundRelation]) -> str:
        getters: List[str] = []
        for bound in relations:
            template: Optional[str] = RELATION_GETTER_TEMPLATES.get(catalog_key(bound.relation.kind))
            if template:
                getters.append(bound.expand(template))
        return "".join(getter + "\n\n" for getter in getters)


class _BoundRelation:
    """A relation together with its catalog entry and token context."""

    __slots__ = ("relation", "requirements", "context")

    def __init__(self, relation: RelationConfig) -> None:
        self.relation: RelationConfig = relation
        self.requirements: RelationRequirements = get_requirements(relation.kind)
        self.context: RelationContext = RelationContext.from_relation(relation)

    def expand(self, template: str) -> str:
        return process_template(template, self.context)


def _default_expression(entity: EntityConfig, field: FieldConfig) -> str:
    """Default literal in the data object; string and text fields get a placeholder."""
    if not field.primary_key and field.kind in (FieldKind.STRING, FieldKind.TEXT):
        return ts_string(f"new {entity.instance_name} {field.name}")
    return field.default_value


# ---------------------------------------------------------------------------
# Components
# ---------------------------------------------------------------------------

_PLAIN_LIST_STYLE: str = (
    'style="padding: 0.25em .5em; border-radius: 0.25em; background-color: #f0f0f0;"'
)


class ComponentVisitor:
    """
    Derives the UI component artifacts for each entity.

    The component kinds of every entity are collected once, up front,
    from all relations in the schema.
    """

    def __init__(self, schema: Schema, engine: Optional[TemplateEngine] = None) -> None:
        self._schema: Schema = schema
        self._engine: TemplateEngine = engine or TemplateEngine()
        self._component_kinds: Dict[str, List[ComponentKind]] = collect_component_kinds(schema)

    def component_kinds(self, entity: EntityConfig) -> List[ComponentKind]:
        return self._component_kinds.get(entity.name, list(BASELINE_COMPONENTS))

    def visit_schema(self) -> List[CodeArtifact]:
        artifacts: List[CodeArtifact] = []
        for entity in self._schema.entities.values():
            artifacts.extend(self.visit(entity))
        return artifacts

    def visit(self, entity: EntityConfig) -> List[CodeArtifact]:
        artifacts: List[CodeArtifact] = [
            self._render_component(entity, kind) for kind in self.component_kinds(entity)
        ]
        logger.debug(
            "Derived %d components for %s: %s",
            len(artifacts),
            entity.class_name,
            ", ".join(k.value for k in self.component_kinds(entity)),
        )
        return artifacts

    def _render_component(self, entity: EntityConfig, kind: ComponentKind) -> CodeArtifact:
        context: Dict[str, str] = {
            "CLASS_NAME": entity.class_name,
            "ENTITY_NAME": entity.instance_name,
            "ENTITY_PLURAL": entity.plural_name,
            "SCHEMA_TYPE": entity.schema_type_name,
            "DISPLAY_FIELD": entity.display_field,
            "ENTITY_DISPLAY_NAME": entity.class_name,
        }
        if kind == ComponentKind.DETAIL:
            context["FIELD_INPUTS"] = self._build_field_inputs(entity)
            context["RELATION_SELECTORS"] = self._build_relation_selectors(entity)
        elif kind == ComponentKind.LIST:
            context["STYLE_ATTRIBUTE"] = self._build_style_attribute(entity)

        content: str = self._engine.render(COMPONENT_TEMPLATES[kind.value], context)
        uses_class: bool = kind in (
            ComponentKind.DETAIL,
            ComponentKind.LIST_ITEM,
            ComponentKind.DELETE,
        )
        return CodeArtifact(
            target_path=component_path(entity, kind.value),
            artifact_kind=ArtifactKind.COMPONENT,
            dependencies=[ArtifactKind.ENTITY_CLASS if uses_class else ArtifactKind.SCHEMA],
            content=content,
        )

    # -- Fragments ----------------------------------------------------------

    @staticmethod
    def _build_field_inputs(entity: EntityConfig) -> str:
        var: str = entity.instance_name
        inputs: List[str] = []
        for field in entity.non_id_fields():
            binding: str = f"bind:value={{{var}.data.{field.name}}}"
            if field.kind == FieldKind.TEXT:
                inputs.append(
                    f'<label for="{field.name}">{capitalize_first(field.name)}</label><br />\n'
                    f'<textarea name="{field.name}" {binding} rows="10" cols="40"></textarea>'
                )
            elif field.kind == FieldKind.COLOR:
                inputs.append(f'<input type="color" {binding} />')
            else:
                inputs.append(f'<input type="text" {binding} />')
        return "\n".join(inputs)

    @staticmethod
    def _build_relation_selectors(entity: EntityConfig) -> str:
        selectors: List[str] = []
        for relation in entity.relations.values():
            template: Optional[str] = RELATION_SELECTOR_TEMPLATES.get(catalog_key(relation.kind))
            if template:
                selectors.append(
                    process_template(template, RelationContext.from_relation(relation))
                )
        return "\n".join(selectors)

    @staticmethod
    def _build_style_attribute(entity: EntityConfig) -> str:
        if entity.color_field is None:
            return _PLAIN_LIST_STYLE
        colour: str = "${" + f"{entity.instance_name}.{entity.color_field} || 'grey'" + "}"
        return (
            "style={`color: black; background-color: "
            + colour
            + "; padding: 0.25em .5em; border-radius: 0.25em;`}"
        )


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "GENERATED_DIR",
    "CLASSES_DIR",
    "COMPONENTS_DIR",
    "RUNTIME_MODULE",
    "class_path",
    "component_name",
    "component_path",
    "EntityClassVisitor",
    "ComponentVisitor",
]

logger.debug("kitegen.visitors loaded (%d public symbols).", len(__all__))

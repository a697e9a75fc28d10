# File: kitegen/relations.py
"""
KiteGen - Relation Requirement Catalog
=======================================
A static, side-effect-free table describing what every relation kind adds
to the generated code:

- ``components``: which UI component kinds must exist, and on which side
  of the relation (the entity that owns the component file);
- ``methods``   : instance-method templates synthesized on the source class;
- ``imports``   : import declarations those methods and getters need;
- ``fields``    : extra reactive state fields on the source class.

Templates are parameterized with the tokens in :data:`TEMPLATE_TOKENS` and
expanded with :func:`process_template`. Unknown relation kinds map to an
empty requirement set so that an unrecognised kind produces no extra code
instead of failing the run.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple, Union

from kitegen.models import (
    BASELINE_COMPONENTS,
    ComponentKind,
    RelationConfig,
    Schema,
)
from kitegen.utils import (
    capitalize_first,
    instance_name,
    join_table_name,
    strip_foreign_key_suffix,
    to_plural,
)

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.relations")

SOURCE: str = "source"
TARGET: str = "target"

# ---------------------------------------------------------------------------
# Requirement records
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ComponentRequirement:
    kind: ComponentKind
    side: str
    required: bool = True


@dataclass(frozen=True, slots=True)
class MethodRequirement:
    name: str
    template: str
    side: str = SOURCE


@dataclass(frozen=True, slots=True)
class ImportRequirement:
    """``style`` follows :class:`kitegen.engine.ImportSpec`."""

    name: str
    source: str
    style: str = "default"
    side: str = SOURCE


@dataclass(frozen=True, slots=True)
class FieldRequirement:
    """A reactive state field, rendered as ``name = $state<type>(initializer)``."""

    name: str
    type: str
    initializer: str
    side: str = SOURCE


@dataclass(frozen=True, slots=True)
class RelationRequirements:
    components: Tuple[ComponentRequirement, ...] = ()
    methods: Tuple[MethodRequirement, ...] = ()
    imports: Tuple[ImportRequirement, ...] = ()
    fields: Tuple[FieldRequirement, ...] = ()

    def methods_for(self, side: str) -> List[MethodRequirement]:
        return [m for m in self.methods if m.side == side]

    def imports_for(self, side: str) -> List[ImportRequirement]:
        return [i for i in self.imports if i.side == side]

    def fields_for(self, side: str) -> List[FieldRequirement]:
        return [f for f in self.fields if f.side == side]

    def components_for(self, side: str) -> List[ComponentRequirement]:
        return [c for c in self.components if c.side == side]

    @property
    def is_empty(self) -> bool:
        return not (self.components or self.methods or self.imports or self.fields)


EMPTY_REQUIREMENTS: RelationRequirements = RelationRequirements()

# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

_COMPONENT_DIR: str = "../components/__TARGET_LOWER__"

_CACHED_LIST_FIELD: FieldRequirement = FieldRequirement(
    name="___RELATION_NAME__",
    type="__TARGET__Schema[]",
    initializer="[]",
)

_COLLECTION_IMPORTS: Tuple[ImportRequirement, ...] = (
    ImportRequirement("__TARGET__Schema", "../schema.js", style="type"),
    ImportRequirement("__TARGET__List", f"{_COMPONENT_DIR}/__TARGET__List.svelte"),
    ImportRequirement("__TARGET__Select", f"{_COMPONENT_DIR}/__TARGET__Select.svelte"),
)

_COLLECTION_COMPONENTS: Tuple[ComponentRequirement, ...] = (
    ComponentRequirement(ComponentKind.LIST, TARGET),
    ComponentRequirement(ComponentKind.SELECT, TARGET),
    ComponentRequirement(ComponentKind.DELETE, TARGET),
)

RELATION_REQUIREMENTS: Dict[str, RelationRequirements] = {
    # Post belongs to User: PostDetail embeds UserSelect and UserListItem
    "manyToOne": RelationRequirements(
        components=(
            ComponentRequirement(ComponentKind.SELECT, TARGET),
            ComponentRequirement(ComponentKind.LIST_ITEM, TARGET),
        ),
        methods=(
            MethodRequirement(
                name="update__TARGET__",
                template="""\
   update__TARGET__ = (id: string) => {
      this.data.__FOREIGN_KEY__ = id
   }""",
            ),
        ),
        imports=(
            ImportRequirement("__TARGET__Select", f"{_COMPONENT_DIR}/__TARGET__Select.svelte"),
            ImportRequirement(
                "__TARGET__ListItem", f"{_COMPONENT_DIR}/__TARGET__ListItem.svelte"
            ),
            ImportRequirement("__TARGET__", "./__TARGET__.svelte.js", style="named"),
        ),
    ),
    # User has many Posts: the foreign key lives on the target records
    "oneToMany": RelationRequirements(
        components=_COLLECTION_COMPONENTS,
        methods=(
            MethodRequirement(
                name="refresh__RELATION_TITLE__",
                template="""\
   refresh__RELATION_TITLE__ = () => {
      return this.db.filter('__TARGET_LOWER__')({ __FOREIGN_KEY__: this.data.id })
         .then((res: __TARGET__Schema[]) => this.___RELATION_NAME__ = res)
   }""",
            ),
            MethodRequirement(
                name="add__TARGET__",
                template="""\
   add__TARGET__ = async (id: string) => {
      const record: __TARGET__Schema = await this.db.get('__TARGET_LOWER__')(id)
      if (record) await this.db.put('__TARGET_LOWER__')({ ...record, __FOREIGN_KEY__: this.data.id })
      return this.refresh__RELATION_TITLE__()
   }""",
            ),
            MethodRequirement(
                name="remove__TARGET__",
                template="""\
   remove__TARGET__ = async (id: string) => {
      const record: __TARGET__Schema = await this.db.get('__TARGET_LOWER__')(id)
      if (record) await this.db.put('__TARGET_LOWER__')({ ...record, __FOREIGN_KEY__: '' })
      return this.refresh__RELATION_TITLE__()
   }""",
            ),
        ),
        imports=_COLLECTION_IMPORTS,
        fields=(_CACHED_LIST_FIELD,),
    ),
    # Post has many Tags and Tag has many Posts, through the post_tag table
    "manyToMany": RelationRequirements(
        components=_COLLECTION_COMPONENTS,
        methods=(
            MethodRequirement(
                name="refresh__RELATION_TITLE__",
                template="""\
   refresh__RELATION_TITLE__ = () => {
      return this.db.join('__SOURCE_LOWER__')('__TARGET_LOWER__')({ __SOURCE_LOWER__Id: this.data.id })
         .then((res: __TARGET__Schema[]) => this.___RELATION_NAME__ = res)
   }""",
            ),
            MethodRequirement(
                name="add__TARGET__",
                template="""\
   add__TARGET__ = async (id: string) => {
      const __SOURCE_LOWER__Id = this.data.id
      const __TARGET_LOWER__Id = id
      await this.db.put('__JOIN_TABLE__')({ __SOURCE_LOWER__Id, __TARGET_LOWER__Id })
      return this.refresh__RELATION_TITLE__()
   }""",
            ),
            MethodRequirement(
                name="remove__TARGET__",
                template="""\
   remove__TARGET__ = async (__TARGET_LOWER__Id: string) => {
      const __SOURCE_LOWER__Id = this.data.id
      await this.db.del('__JOIN_TABLE__')(__JOIN_KEY__)
      return this.refresh__RELATION_TITLE__()
   }""",
            ),
        ),
        imports=_COLLECTION_IMPORTS,
        fields=(_CACHED_LIST_FIELD,),
    ),
}

# Relation kinds as stored on RelationConfig
KIND_ALIASES: Dict[str, str] = {
    "belongsTo": "manyToOne",
    "hasMany": "oneToMany",
}


def catalog_key(kind: str) -> str:
    """Catalog key for a relation kind or one of its aliases."""
    return KIND_ALIASES.get(kind, kind)


def get_requirements(kind: str) -> RelationRequirements:
    """
    Requirements for *kind* (``belongsTo`` / ``manyToOne``, ``hasMany`` /
    ``oneToMany``, ``manyToMany``). Unknown kinds get an empty set.
    """
    requirements: Optional[RelationRequirements] = RELATION_REQUIREMENTS.get(
        catalog_key(kind)
    )
    if requirements is None:
        logger.debug("No requirements registered for relation kind '%s'", kind)
        return EMPTY_REQUIREMENTS
    return requirements


# ---------------------------------------------------------------------------
# Template parameterization
# ---------------------------------------------------------------------------

TEMPLATE_TOKENS: Tuple[str, ...] = (
    "SOURCE",
    "SOURCE_LOWER",
    "TARGET",
    "TARGET_LOWER",
    "TARGET_PLURAL",
    "RELATION_NAME",
    "RELATION_TITLE",
    "RELATION_DISPLAY",
    "FOREIGN_KEY",
    "JOIN_TABLE",
    "JOIN_KEY",
)

# Longest first so that no token is matched as a prefix of another
_TOKEN_RE: re.Pattern[str] = re.compile(
    "__("
    + "|".join(sorted(TEMPLATE_TOKENS, key=len, reverse=True))
    + ")__"
)


@dataclass(frozen=True, slots=True)
class RelationContext:
    """
    Token values for one relation, seen from its source entity.

    Only ``source`` and ``target`` are required; everything else is derived
    by :meth:`from_relation` or filled with the fallbacks in
    :func:`process_template`.
    """

    source: str
    target: str
    relation_name: Optional[str] = None
    foreign_key: Optional[str] = None
    join_table: Optional[str] = None
    extra: Dict[str, str] = field(default_factory=dict)

    @classmethod
    def from_relation(cls, relation: RelationConfig) -> "RelationContext":
        foreign_key: Optional[str] = relation.foreign_key
        if foreign_key is None and catalog_key(relation.kind) == "oneToMany":
            # hasMany keys live on the target and point back at the source
            foreign_key = f"{instance_name(relation.source_entity)}Id"
        return cls(
            source=relation.source_entity,
            target=relation.target_entity,
            relation_name=relation.name,
            foreign_key=foreign_key,
            join_table=relation.join_table,
        )

    def as_tokens(self) -> Dict[str, str]:
        source_lower: str = instance_name(self.source)
        target_lower: str = instance_name(self.target)
        tokens: Dict[str, str] = {
            "SOURCE": capitalize_first(self.source),
            "SOURCE_LOWER": source_lower,
            "TARGET": capitalize_first(self.target),
            "TARGET_LOWER": target_lower,
            "TARGET_PLURAL": to_plural(target_lower),
            "FOREIGN_KEY": self.foreign_key or f"{target_lower}Id",
            "JOIN_TABLE": self.join_table or join_table_name(self.source, self.target),
        }
        if self.relation_name:
            tokens["RELATION_NAME"] = self.relation_name
            tokens["RELATION_TITLE"] = capitalize_first(self.relation_name)
            tokens["RELATION_DISPLAY"] = strip_foreign_key_suffix(self.relation_name)
        if self.join_table:
            # Compound key order follows the sorted join-table fields
            first, second = sorted((source_lower, target_lower))
            tokens["JOIN_KEY"] = f"[{first}Id, {second}Id]"
        tokens.update(self.extra)
        return tokens


def process_template(
    template: str,
    context: Union[RelationContext, Mapping],
) -> str:
    """
    Replace every catalog token in *template* in a single pass.

    *context* is a :class:`RelationContext` or a plain mapping of token
    name to value. Tokens without a value are left untouched.
    """
    tokens: Mapping = (
        context.as_tokens() if isinstance(context, RelationContext) else context
    )

    def _substitute(match: re.Match[str]) -> str:
        value = tokens.get(match.group(1))
        return match.group(0) if value is None else str(value)

    return _TOKEN_RE.sub(_substitute, template)


# ---------------------------------------------------------------------------
# Whole-schema component pass
# ---------------------------------------------------------------------------


def collect_component_kinds(schema: Schema) -> Dict[str, List[ComponentKind]]:
    """
    Component kinds every entity needs, in :class:`ComponentKind` order.

    Baseline kinds are always present. Every relation in the schema then
    adds the kinds its requirements declare on its source entity and on its
    target entity, so an entity that declares nothing still gets a ``list``
    and ``delete`` component when something points at it many-to-many.
    """
    needed: Dict[str, set] = {
        name: {ComponentKind(k) for k in BASELINE_COMPONENTS} for name in schema.entities
    }
    for relation in schema.iter_relations():
        requirements: RelationRequirements = get_requirements(relation.kind)
        for component in requirements.components:
            if not component.required:
                continue
            owner: str = (
                relation.target_entity if component.side == TARGET else relation.source_entity
            )
            if owner in needed:
                needed[owner].add(ComponentKind(component.kind))

    ordered: Dict[str, List[ComponentKind]] = {}
    for name, kinds in needed.items():
        ordered[name] = [kind for kind in ComponentKind if kind in kinds]
    logger.debug(
        "Component pass: %d entities, %d components",
        len(ordered),
        sum(len(k) for k in ordered.values()),
    )
    return ordered


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "SOURCE",
    "TARGET",
    "ComponentRequirement",
    "MethodRequirement",
    "ImportRequirement",
    "FieldRequirement",
    "RelationRequirements",
    "EMPTY_REQUIREMENTS",
    "RELATION_REQUIREMENTS",
    "KIND_ALIASES",
    "catalog_key",
    "get_requirements",
    "TEMPLATE_TOKENS",
    "RelationContext",
    "process_template",
    "collect_component_kinds",
]

logger.debug("kitegen.relations loaded (%d public symbols).", len(__all__))

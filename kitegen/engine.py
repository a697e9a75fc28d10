# File: kitegen/engine.py
"""
KiteGen - Template Substitution Engine
=======================================
A deliberately small ``__TOKEN__`` substitution engine. Double-underscore
delimiters never collide with Svelte's ``{...}`` or TypeScript's ``${...}``
syntax, so templates can be written as plain source files.

Resolution of a token such as ``__CLASS_NAME__`` against a context:

    1. the exact key ``"CLASS_NAME"``;
    2. the hand-specified alias from ``TOKEN_ALIASES`` (may be a dotted
       path such as ``"entity.class_name"``);
    3. the lower-camel-case key ``"className"``;
    4. the lower-snake-case key ``"class_name"``.

Dotted keys navigate nested mappings and object attributes. A token that
resolves to nothing (or to ``None``) is left verbatim in the output so
that a missing context value is visible in the generated file.

Lines carrying a ``// @ts-nocheck`` directive are removed before
substitution, wherever they appear.
"""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any, Dict, Iterable, List, Optional, Tuple

from kitegen.utils import to_camel_case

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.engine")

# ---------------------------------------------------------------------------
# Patterns & aliases
# ---------------------------------------------------------------------------

TOKEN_RE: re.Pattern[str] = re.compile(r"__([A-Z_]+)__")
_TS_NOCHECK_RE: re.Pattern[str] = re.compile(
    r"^[ \t]*//[ \t]*@ts-nocheck[^\n]*(?:\n|\Z)", re.MULTILINE
)
# Directive trailing other text on the same line
_TRAILING_TS_NOCHECK_RE: re.Pattern[str] = re.compile(r"[ \t]*//[ \t]*@ts-nocheck[^\n]*")

_MISSING: object = object()

# Tokens whose context key is not their plain camel-case form
TOKEN_ALIASES: Dict[str, str] = {
    "CLASS_NAME": "entity.class_name",
    "ENTITY_NAME": "entity.instance_name",
    "ENTITY_PLURAL": "entity.plural_name",
    "SCHEMA_TYPE": "entity.schema_type_name",
    "DISPLAY_FIELD": "entity.display_field",
    "ENTITY_DISPLAY_NAME": "entity.class_name",
}


# ---------------------------------------------------------------------------
# Engine
# ---------------------------------------------------------------------------


class TemplateEngine:
    """
    Stateless renderer; one instance can be shared by every visitor.

    ``aliases`` extends (and may override) :data:`TOKEN_ALIASES`.
    """

    __slots__ = ("_aliases",)

    def __init__(self, aliases: Optional[Dict[str, str]] = None) -> None:
        self._aliases: Dict[str, str] = {**TOKEN_ALIASES, **(aliases or {})}

    def render(self, template: str, context: Mapping) -> str:
        cleaned: str = strip_ts_nocheck(template)
        unresolved: List[str] = []

        def _substitute(match: re.Match[str]) -> str:
            value: Any = self.resolve(match.group(1), context)
            if value is _MISSING or value is None:
                unresolved.append(match.group(0))
                return match.group(0)
            return str(value)

        rendered: str = TOKEN_RE.sub(_substitute, cleaned)
        if unresolved:
            logger.debug(
                "Left %d unresolved token(s) verbatim: %s",
                len(unresolved),
                ", ".join(sorted(set(unresolved))),
            )
        return rendered

    def resolve(self, token: str, context: Mapping) -> Any:
        """Return the context value for *token*, or a private sentinel."""
        for key in self._candidate_keys(token):
            value: Any = _lookup_path(context, key)
            if value is not _MISSING:
                return value
        return _MISSING

    def _candidate_keys(self, token: str) -> Tuple[str, ...]:
        keys: List[str] = [token]
        alias: Optional[str] = self._aliases.get(token)
        if alias:
            keys.append(alias)
        keys.append(to_camel_case(token))
        keys.append(token.lower())
        return tuple(dict.fromkeys(k for k in keys if k))


def strip_ts_nocheck(template: str) -> str:
    """
    Remove every ``// @ts-nocheck`` directive.

    Lines holding only the directive are dropped entirely; a directive
    after other text (``<script lang="ts">// @ts-nocheck``) is cut from
    its line and the line break is kept.
    """
    stripped: str = _TS_NOCHECK_RE.sub("", template)
    return _TRAILING_TS_NOCHECK_RE.sub("", stripped)


def _lookup_path(context: Any, key: str) -> Any:
    current: Any = context
    for part in key.split("."):
        current = _lookup(current, part)
        if current is _MISSING:
            return _MISSING
    return current


def _lookup(obj: Any, key: str) -> Any:
    if isinstance(obj, Mapping):
        return obj[key] if key in obj else _MISSING
    if obj is None or isinstance(obj, (str, bytes, int, float, bool)):
        return _MISSING
    value: Any = getattr(obj, key, _MISSING)
    if callable(value):
        return _MISSING
    return value


_DEFAULT_ENGINE: TemplateEngine = TemplateEngine()


def render(template: str, context: Mapping) -> str:
    """Render *template* with the shared default engine."""
    return _DEFAULT_ENGINE.render(template, context)


# ---------------------------------------------------------------------------
# TypeScript import rendering
# ---------------------------------------------------------------------------


@dataclass(frozen=True, slots=True)
class ImportSpec:
    """
    One imported name.

    ``style`` is ``"named"`` (``import { X } from``), ``"type"``
    (``import type { X } from``) or ``"default"`` (``import X from``).
    """

    name: str
    source: str
    style: str = "named"


def render_imports(imports: Iterable[ImportSpec]) -> str:
    """
    Build a de-duplicated import block.

    Named and type imports from the same module are merged into one
    statement. Statements keep the order in which their module first
    appears, so the output is stable for a stable input.
    """
    grouped: Dict[Tuple[str, str], List[str]] = {}
    for spec in imports:
        key: Tuple[str, str] = (spec.style, spec.source)
        if spec.style == "default":
            key = (spec.style, f"{spec.name}\0{spec.source}")
        names: List[str] = grouped.setdefault(key, [])
        if spec.name not in names:
            names.append(spec.name)

    lines: List[str] = []
    for (style, source), names in grouped.items():
        if style == "default":
            name, module = source.split("\0", 1)
            lines.append(f"import {name} from '{module}'")
        elif style == "type":
            lines.append(f"import type {{ {', '.join(names)} }} from '{source}'")
        else:
            lines.append(f"import {{ {', '.join(names)} }} from '{source}'")
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "TOKEN_RE",
    "TOKEN_ALIASES",
    "TemplateEngine",
    "strip_ts_nocheck",
    "render",
    "ImportSpec",
    "render_imports",
]

logger.debug("kitegen.engine loaded (%d public symbols).", len(__all__))

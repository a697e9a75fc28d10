# File: kitegen/utils.py
"""
KiteGen - Utility Functions & Helpers
======================================
Naming rules, file I/O, and small formatting helpers shared by the
normalizer, the visitors and the exporter.

Naming strategy:
- Every derived name (class name, instance name, plural, relation title,
  relation display name) goes through exactly one function in this module
  so that all generated files reference each other consistently.
- All string-conversion functions are decorated with
  ``@lru_cache(maxsize=None)``; the same handful of names is converted
  many times per run.
- File I/O helpers use atomic rename for safety.
"""

from __future__ import annotations

import functools
import hashlib
import logging
import os
import re
import tempfile
import time
from pathlib import Path
from typing import Dict, FrozenSet, List, Optional, Tuple

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.utils")

# ---------------------------------------------------------------------------
# Pre-compiled regex patterns (compiled once at module load)
# ---------------------------------------------------------------------------

_NON_ALPHANUM_RE: re.Pattern[str] = re.compile(r"[^a-zA-Z0-9]")
_SPLIT_WORDS_RE: re.Pattern[str] = re.compile(
    r"[A-Z]?[a-z]+|[A-Z]+(?=[A-Z][a-z]|\d|\b)|[A-Z]|\d+"
)
_JS_IDENTIFIER_RE: re.Pattern[str] = re.compile(r"^[A-Za-z_$][A-Za-z0-9_$]*$")

# Reserved words that cannot name a generated class, variable or member
JS_RESERVED_WORDS: FrozenSet[str] = frozenset({
    "break", "case", "catch", "class", "const", "continue", "debugger",
    "default", "delete", "do", "else", "enum", "export", "extends",
    "false", "finally", "for", "function", "if", "implements", "import",
    "in", "instanceof", "interface", "let", "new", "null", "package",
    "private", "protected", "public", "return", "static", "super",
    "switch", "this", "throw", "true", "try", "typeof", "var", "void",
    "while", "with", "yield", "await",
})

# Nouns whose plural is the singular form
UNCOUNTABLE_NOUNS: FrozenSet[str] = frozenset({
    "news", "series", "species", "sheep", "deer", "fish",
    "equipment", "information", "metadata",
})

# Suffixes marking a member name as an explicit foreign key
FOREIGN_KEY_SUFFIXES: Tuple[str, ...] = ("Id", "_id")


# ---------------------------------------------------------------------------
# Cached naming functions
# ---------------------------------------------------------------------------


@functools.lru_cache(maxsize=None)
def capitalize_first(name: str) -> str:
    """
    Upper-case the first character and leave the rest untouched.

    Examples:
        >>> capitalize_first("post")
        'Post'
        >>> capitalize_first("post_tag")
        'Post_tag'
        >>> capitalize_first("blogPost")
        'BlogPost'
    """
    if not name:
        return ""
    return name[0].upper() + name[1:]


@functools.lru_cache(maxsize=None)
def instance_name(name: str) -> str:
    """
    Instance / table / directory name of an entity: fully lower-cased.

    Examples:
        >>> instance_name("Post")
        'post'
        >>> instance_name("BlogPost")
        'blogpost'
    """
    return name.lower()


@functools.lru_cache(maxsize=None)
def join_table_name(left: str, right: str) -> str:
    """
    Name of the join table between two entities.

    Commutative: ``join_table_name("Tag", "Post") == join_table_name("Post", "Tag")``.
    """
    return "_".join(sorted((instance_name(left), instance_name(right))))


@functools.lru_cache(maxsize=None)
def foreign_key_name(member: str, target: str) -> str:
    """
    Foreign-key field backing a belongsTo member.

    The member name is kept verbatim when it already ends in ``Id`` or
    ``_id``; otherwise the key is synthesized from the target entity.

    Examples:
        >>> foreign_key_name("authorId", "User")
        'authorId'
        >>> foreign_key_name("author", "User")
        'userId'
    """
    if member.endswith(FOREIGN_KEY_SUFFIXES):
        return member
    return f"{instance_name(target)}Id"


@functools.lru_cache(maxsize=None)
def strip_foreign_key_suffix(name: str) -> str:
    """
    Relation display name: *name* without a trailing ``Id`` / ``_id``.

    A name that is nothing but the suffix is returned unchanged.
    """
    for suffix in FOREIGN_KEY_SUFFIXES:
        if name.endswith(suffix) and len(name) > len(suffix):
            return name[: -len(suffix)]
    return name


@functools.lru_cache(maxsize=None)
def to_camel_case(name: str) -> str:
    """
    Convert any string to camelCase.

    Examples:
        >>> to_camel_case("CLASS_NAME")
        'className'
        >>> to_camel_case("display_field")
        'displayField'
    """
    if not name:
        return ""
    words: Tuple[str, ...] = _extract_words(name)
    if not words:
        return ""
    first: str = words[0].lower()
    rest: str = "".join(w.capitalize() for w in words[1:])
    return first + rest


@functools.lru_cache(maxsize=None)
def to_plural(name: str) -> str:
    """
    Naive English pluralisation sufficient for code generation.

    Handles common suffixes. Uncountable nouns are returned unchanged, so
    callers that need a distinct plural must check for that.
    """
    if not name:
        return ""

    lower: str = name.lower()

    # Irregular common words in entity schemas
    irregulars: Dict[str, str] = {
        "person": "people",
        "child": "children",
        "man": "men",
        "woman": "women",
        "mouse": "mice",
        "goose": "geese",
        "tooth": "teeth",
        "foot": "feet",
        "datum": "data",
        "index": "indices",
        "matrix": "matrices",
        "vertex": "vertices",
        "axis": "axes",
        "crisis": "crises",
        "analysis": "analyses",
        "status": "statuses",
        "address": "addresses",
    }

    if lower in irregulars:
        plural: str = irregulars[lower]
        # Preserve original casing of first char
        if name[0].isupper():
            return plural[0].upper() + plural[1:]
        return plural

    if lower in UNCOUNTABLE_NOUNS:
        return name

    # Rules ordered by specificity
    if lower.endswith(("s", "sh", "ch", "x", "z")):
        return name + "es"
    if lower.endswith("y") and len(name) > 1 and lower[-2] not in "aeiou":
        return name[:-1] + "ies"
    if lower.endswith("fe"):
        return name[:-2] + "ves"
    if lower.endswith("f"):
        return name[:-1] + "ves"
    if lower.endswith("o") and len(name) > 1 and lower[-2] not in "aeiou":
        return name + "es"

    return name + "s"


@functools.lru_cache(maxsize=None)
def _extract_words(name: str) -> Tuple[str, ...]:
    """
    Extract individual words from any casing style.

    Returns a tuple (hashable for LRU cache) of lowercase word strings.
    """
    cleaned: str = _NON_ALPHANUM_RE.sub(" ", name)
    words: List[str] = _SPLIT_WORDS_RE.findall(cleaned)
    return tuple(w.lower() for w in words if w)


def is_identifier(name: str) -> bool:
    """True when *name* is a usable JavaScript/TypeScript identifier."""
    return bool(_JS_IDENTIFIER_RE.match(name)) and name not in JS_RESERVED_WORDS


# ---------------------------------------------------------------------------
# Code formatting helpers
# ---------------------------------------------------------------------------


def ts_string(value: str) -> str:
    """Wrap *value* in single quotes for TypeScript, escaping internals."""
    escaped: str = value.replace("\\", "\\\\").replace("'", "\\'")
    return f"'{escaped}'"


# ---------------------------------------------------------------------------
# File I/O helpers
# ---------------------------------------------------------------------------


def ensure_directory(path: Path) -> None:
    """Create directory (and parents) if it doesn't exist."""
    path.mkdir(parents=True, exist_ok=True)
    logger.debug("Ensured directory exists: %s", path)


def write_file(path: Path, content: str, atomic: bool = True) -> int:
    """
    Write *content* to *path*.

    When *atomic* is True, writes to a temporary file in the same
    directory first then renames it over the target.

    Returns the number of bytes written.
    """
    ensure_directory(path.parent)

    encoded: bytes = content.encode("utf-8")
    byte_count: int = len(encoded)

    if atomic:
        fd: int
        tmp_path: str
        fd, tmp_path = tempfile.mkstemp(
            dir=str(path.parent),
            prefix=f".{path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(encoded)
            os.replace(tmp_path, str(path))
        except BaseException:
            if os.path.exists(tmp_path):
                os.unlink(tmp_path)
            raise
    else:
        path.write_bytes(encoded)

    logger.debug("Wrote %d bytes to %s", byte_count, path)
    return byte_count


# ---------------------------------------------------------------------------
# Checksum & metrics
# ---------------------------------------------------------------------------


def sha256_hex(content: str) -> str:
    """Return SHA-256 hex digest of a string."""
    return hashlib.sha256(content.encode("utf-8")).hexdigest()


def count_lines(content: str) -> int:
    """Count the number of lines in a string."""
    if not content:
        return 0
    return content.count("\n") + (1 if not content.endswith("\n") else 0)


# ---------------------------------------------------------------------------
# Timer context manager
# ---------------------------------------------------------------------------


class Timer:
    """
    Simple context-manager timer for profiling generation steps.

    Usage:
        with Timer("derive artifacts") as t:
            ...
        print(t.elapsed)
    """

    __slots__ = ("label", "start_time", "end_time", "elapsed")

    def __init__(self, label: str = "operation") -> None:
        self.label: str = label
        self.start_time: float = 0.0
        self.end_time: float = 0.0
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(
        self,
        exc_type: Optional[type],
        exc_val: Optional[BaseException],
        exc_tb: Optional[object],
    ) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time
        logger.debug("Timer [%s]: %.4f seconds", self.label, self.elapsed)

    def __repr__(self) -> str:
        return f"<Timer {self.label}: {self.elapsed:.4f}s>"


# ---------------------------------------------------------------------------
# Module-level exports
# ---------------------------------------------------------------------------

__all__: List[str] = [
    "JS_RESERVED_WORDS",
    "UNCOUNTABLE_NOUNS",
    "FOREIGN_KEY_SUFFIXES",
    "capitalize_first",
    "instance_name",
    "join_table_name",
    "foreign_key_name",
    "strip_foreign_key_suffix",
    "to_camel_case",
    "to_plural",
    "is_identifier",
    "ts_string",
    "ensure_directory",
    "write_file",
    "sha256_hex",
    "count_lines",
    "Timer",
]

logger.debug("kitegen.utils loaded (%d public symbols).", len(__all__))

# File: kitegen/errors.py
"""
KiteGen - Error Types
======================
Fatal conditions raised by the loading and normalization stages, plus the
per-artifact write failure recorded by the exporter.

Semantic problems in a well-shaped schema are not exceptions; they are
collected as ``ValidationError`` entries by :mod:`kitegen.validators`.
"""

from __future__ import annotations

import logging
from typing import List, Optional

# ---------------------------------------------------------------------------
# Logger
# ---------------------------------------------------------------------------
logger: logging.Logger = logging.getLogger("kitegen.errors")


class KiteGenError(Exception):
    """Base error for every failure raised by kitegen."""

    pass


class ParseError(KiteGenError):
    """Schema source is unreadable or is not a YAML mapping of entities."""

    def __init__(self, message: str, source: str = "<string>") -> None:
        super().__init__(f"{source}: {message}")
        self.source = source
        self.detail = message


class ShapeError(KiteGenError):
    """A schema member does not match any recognised shorthand."""

    def __init__(
        self,
        message: str,
        entity: Optional[str] = None,
        member: Optional[str] = None,
    ) -> None:
        location: str = ".".join(part for part in (entity, member) if part)
        super().__init__(f"{location}: {message}" if location else message)
        self.entity = entity
        self.member = member
        self.detail = message


class ArtifactWriteError(KiteGenError):
    """One artifact could not be written to disk."""

    def __init__(self, path: str, reason: str) -> None:
        super().__init__(f"Failed to write {path}: {reason}")
        self.path = path
        self.reason = reason


__all__: List[str] = [
    "KiteGenError",
    "ParseError",
    "ShapeError",
    "ArtifactWriteError",
]

logger.debug("kitegen.errors loaded (%d public symbols).", len(__all__))

"""
tests/conftest.py
Shared fixtures for the kitegen test suite.

No mocking libraries are used; real file I/O is performed inside
temporary directories managed by pytest's tmp_path fixture.
"""

from __future__ import annotations

import copy
import pathlib
import textwrap
from typing import Any, Callable, Dict, List

import pytest
import yaml

from kitegen.generator import build_artifacts
from kitegen.models import CodeArtifact, RelationConfig, RelationKind, Schema
from kitegen.normalizer import normalize


# ---------------------------------------------------------------------------
# Path helpers
# ---------------------------------------------------------------------------

ROOT_DIR: pathlib.Path = pathlib.Path(__file__).resolve().parent.parent
SCHEMA_EXAMPLE_PATH: pathlib.Path = ROOT_DIR / "schema_example.yaml"


# ---------------------------------------------------------------------------
# Raw schema data fixtures
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def raw_schema_dict() -> Dict[str, Any]:
    """Load the reference schema_example.yaml once per session."""
    assert SCHEMA_EXAMPLE_PATH.exists(), (
        f"Reference schema not found at {SCHEMA_EXAMPLE_PATH}. "
        "Make sure schema_example.yaml is in the project root."
    )
    with open(SCHEMA_EXAMPLE_PATH, "r", encoding="utf-8") as fh:
        data = yaml.safe_load(fh)
    assert isinstance(data, dict), "Top-level YAML must be a mapping."
    return data


@pytest.fixture()
def schema_dict(raw_schema_dict: Dict[str, Any]) -> Dict[str, Any]:
    """Deep copy so each test can mutate freely."""
    return copy.deepcopy(raw_schema_dict)


@pytest.fixture()
def schema_yaml_path(schema_dict: Dict[str, Any], tmp_path: pathlib.Path) -> pathlib.Path:
    path = tmp_path / "schema.yaml"
    with open(path, "w", encoding="utf-8") as fh:
        yaml.dump(schema_dict, fh, default_flow_style=False, sort_keys=False)
    return path


@pytest.fixture()
def write_schema(tmp_path: pathlib.Path) -> Callable[[str], pathlib.Path]:
    """Write dedented YAML text to a temporary file and return its path."""

    def _write(text: str, name: str = "schema.yaml") -> pathlib.Path:
        path = tmp_path / name
        path.write_text(textwrap.dedent(text), encoding="utf-8")
        return path

    return _write


# ---------------------------------------------------------------------------
# Normalized schema fixtures
# ---------------------------------------------------------------------------


@pytest.fixture()
def blog_schema(schema_dict: Dict[str, Any]) -> Schema:
    """user / post / tag: belongsTo post -> user, manyToMany post <-> tag."""
    return normalize(schema_dict, source_file="schema_example.yaml")


@pytest.fixture()
def has_many_schema() -> Schema:
    """user hasMany posts, declared programmatically on top of post -> user."""
    schema = normalize(
        {
            "user": {"name": "string"},
            "post": {"title": "string", "user": "user"},
        }
    )
    schema.entities["user"].relations["posts"] = RelationConfig(
        name="posts",
        kind=RelationKind.HAS_MANY,
        source_entity="user",
        target_entity="post",
    )
    return schema


@pytest.fixture()
def blog_artifacts(blog_schema: Schema) -> List[CodeArtifact]:
    return build_artifacts(blog_schema)


@pytest.fixture()
def artifact_map(blog_artifacts: List[CodeArtifact]) -> Dict[str, CodeArtifact]:
    return {a.target_path: a for a in blog_artifacts}

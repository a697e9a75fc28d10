"""
tests/test_validators.py
Unit tests for kitegen.validators.

Tests cover:
- Entity and field naming rules
- Join-table store-key collisions
- hasMany foreign-key presence
- Uniqueness of generated class members
- Display-field fallback warnings
- Output configuration checks
- Full validation pipeline (validate_full)
"""

from __future__ import annotations

import pathlib
from typing import Any, Dict

import pytest

from kitegen.models import GenerationConfig, RelationConfig, RelationKind, Schema
from kitegen.normalizer import normalize
from kitegen.validators import (
    CLASS_MEMBERS,
    ValidationError,
    ValidationResult,
    relation_members,
    validate_class_members,
    validate_display_fields,
    validate_entity_names,
    validate_field_names,
    validate_full,
    validate_generation_config,
    validate_has_many,
    validate_join_tables,
    validate_schema,
)


# ===========================================================================
# ValidationResult
# ===========================================================================


class TestValidationResult:
    """Accumulator behaviour."""

    def test_empty_result_is_valid(self) -> None:
        result = ValidationResult()
        assert result.is_valid
        assert bool(result) is True
        assert len(result) == 0

    def test_errors_and_warnings(self) -> None:
        result = ValidationResult()
        result.add_error("E1", "broken", {"entity": "post"})
        result.add_warning("W1", "odd")
        result.add_info("I1", "fyi")

        assert not result.is_valid
        assert result.error_count == 1
        assert result.warning_count == 1
        assert result.codes() == {"E1", "W1", "I1"}
        assert "1 error(s), 1 warning(s), 3 total item(s)" in result.summary()

    def test_merge(self) -> None:
        left, right = ValidationResult(), ValidationResult()
        left.add_warning("W1", "odd")
        right.add_error("E1", "broken")
        left.merge(right)
        assert [e.code for e in left.all_items] == ["W1", "E1"]

    def test_format_report(self) -> None:
        result = ValidationResult()
        result.add_error("E1", "broken", {"entity": "post"})
        result.add_info("I1", "fyi")
        report = result.format_report()
        assert "ERROR [E1] broken" in report
        assert "entity: post" in report
        assert "I1" not in report
        assert "INFO  [I1] fyi" in result.format_report(include_info=True)

    def test_error_descriptor(self) -> None:
        error = ValidationError("error", "E1", "broken", {"k": 1})
        assert error.is_error and not error.is_warning
        assert str(error) == "[ERROR] E1: broken"
        assert error.to_dict() == {
            "level": "error",
            "code": "E1",
            "message": "broken",
            "context": {"k": 1},
        }


# ===========================================================================
# Names
# ===========================================================================


class TestValidateEntityNames:
    def test_blog_schema_passes(self, blog_schema: Schema) -> None:
        result = validate_entity_names(blog_schema)
        assert result.is_valid
        assert not result.has_warnings

    @pytest.mark.parametrize("name", ["class", "delete"])
    def test_reserved_word(self, name: str) -> None:
        result = validate_entity_names(normalize({name: {"title": "string"}}))
        assert "ENTITY_NAME_RESERVED" in result.codes()

    def test_invalid_identifier(self) -> None:
        result = validate_entity_names(normalize({"blog-post": {"title": "string"}}))
        assert "INVALID_ENTITY_NAME" in result.codes()

    def test_ambiguous_plural(self) -> None:
        result = validate_entity_names(normalize({"news": {"title": "string"}}))
        assert "AMBIGUOUS_PLURAL" in result.codes()

    @pytest.mark.parametrize("name", ["campus", "bonus", "canvas"])
    def test_names_ending_in_s_have_a_distinct_plural(self, name: str) -> None:
        result = validate_entity_names(normalize({name: {"name": "string"}}))
        assert "AMBIGUOUS_PLURAL" not in result.codes()

    def test_case_collision(self) -> None:
        result = validate_entity_names(
            normalize({"Post": {"title": "string"}, "post": {"title": "string"}})
        )
        assert "ENTITY_NAME_COLLISION" in result.codes()

    def test_underscore_warns(self) -> None:
        result = validate_entity_names(normalize({"blog_post": {"title": "string"}}))
        assert result.is_valid
        assert "ENTITY_NAME_UNDERSCORE" in result.codes()


class TestValidateFieldNames:
    def test_blog_schema_passes(self, blog_schema: Schema) -> None:
        assert validate_field_names(blog_schema).is_valid

    @pytest.mark.parametrize("field", ["first-name", "new", "2nd"])
    def test_invalid_field(self, field: str) -> None:
        result = validate_field_names(normalize({"user": {field: "string"}}))
        assert "INVALID_FIELD_NAME" in result.codes()


# ===========================================================================
# Tables & relations
# ===========================================================================


class TestValidateJoinTables:
    def test_blog_schema_passes(self, blog_schema: Schema) -> None:
        assert validate_join_tables(blog_schema).is_valid

    def test_join_table_collides_with_entity(self) -> None:
        schema = normalize(
            {
                "post": {"tags": ["tag"]},
                "tag": {"name": "string"},
                "post_tag": {"note": "string"},
            }
        )
        result = validate_join_tables(schema)
        assert "JOIN_TABLE_COLLISION" in result.codes()


class TestValidateHasMany:
    def test_foreign_key_present(self, has_many_schema: Schema) -> None:
        assert validate_has_many(has_many_schema).is_valid

    def test_foreign_key_missing(self) -> None:
        schema = normalize({"user": {"name": "string"}, "post": {"title": "string"}})
        schema.entities["user"].relations["posts"] = RelationConfig(
            name="posts",
            kind=RelationKind.HAS_MANY,
            source_entity="user",
            target_entity="post",
        )
        result = validate_has_many(schema)
        assert "HAS_MANY_MISSING_FOREIGN_KEY" in result.codes()


class TestValidateClassMembers:
    def test_blog_schema_passes(self, blog_schema: Schema) -> None:
        assert validate_class_members(blog_schema).is_valid

    def test_relation_members(self, blog_schema: Schema) -> None:
        tags = blog_schema.entities["post"].relations["tags"]
        assert set(relation_members(tags)) == {
            "refreshTags", "addTag", "removeTag", "_tags", "tags", "selectTags",
        }
        user = blog_schema.entities["post"].relations["user"]
        assert set(relation_members(user)) == {"updateUser", "selectUser", "user"}

    def test_two_relations_to_same_target(self) -> None:
        schema = normalize(
            {
                "user": {"name": "string"},
                "post": {"title": "string", "authorId": "user", "editorId": "user"},
            }
        )
        result = validate_class_members(schema)
        assert "DUPLICATE_CLASS_MEMBER" in result.codes()

    def test_relation_shadows_builtin_member(self) -> None:
        schema = normalize(
            {"tag": {"name": "string"}, "post": {"title": "string", "detail": ["tag"]}}
        )
        result = validate_class_members(schema)
        assert "RELATION_MEMBER_CLASH" in result.codes()
        assert "detail" in CLASS_MEMBERS


class TestValidateDisplayFields:
    def test_fallback_to_id_warns(self) -> None:
        result = validate_display_fields(normalize({"note": {"body": "text"}}))
        assert result.is_valid
        assert "DISPLAY_FIELD_FALLBACK" in result.codes()

    def test_title_is_enough(self, blog_schema: Schema) -> None:
        assert not validate_display_fields(blog_schema).has_warnings


# ===========================================================================
# Configuration
# ===========================================================================


class TestValidateGenerationConfig:
    def test_directory_passes(self, tmp_path: pathlib.Path) -> None:
        result = validate_generation_config(GenerationConfig(output_dir=str(tmp_path)))
        assert result.is_valid and not result.has_warnings

    def test_missing_directory_passes(self, tmp_path: pathlib.Path) -> None:
        config = GenerationConfig(output_dir=str(tmp_path / "new-app"))
        assert validate_generation_config(config).is_valid

    def test_output_is_a_file(self, tmp_path: pathlib.Path) -> None:
        target = tmp_path / "file.txt"
        target.write_text("x", encoding="utf-8")
        result = validate_generation_config(GenerationConfig(output_dir=str(target)))
        assert "OUTPUT_NOT_A_DIRECTORY" in result.codes()

    def test_hidden_db_name_warns(self, tmp_path: pathlib.Path) -> None:
        config = GenerationConfig(output_dir=str(tmp_path), db_name=".db")
        result = validate_generation_config(config)
        assert result.is_valid
        assert "DB_NAME_HIDDEN" in result.codes()


# ===========================================================================
# Full pipeline
# ===========================================================================


class TestValidateFull:
    def test_blog_schema_passes(self, blog_schema: Schema, tmp_path: pathlib.Path) -> None:
        result = validate_full(blog_schema, GenerationConfig(output_dir=str(tmp_path)))
        assert result.is_valid
        assert not result.has_warnings
        assert "SCHEMA_STATS" in result.codes()

    def test_schema_errors_fail(self, tmp_path: pathlib.Path) -> None:
        schema = normalize({"news": {"title": "string"}})
        result = validate_full(schema, GenerationConfig(output_dir=str(tmp_path)))
        assert not result.is_valid
        assert result.error_count == 1

    def test_validate_schema_runs_every_validator(self, schema_dict: Dict[str, Any]) -> None:
        schema_dict["delete"] = {"title": "string"}
        schema_dict["note"] = {"body": "text"}
        result = validate_schema(normalize(schema_dict))
        assert {"ENTITY_NAME_RESERVED", "DISPLAY_FIELD_FALLBACK", "SCHEMA_STATS"} <= result.codes()

"""
tests/test_relations.py
Tests for kitegen.relations: the requirement catalog, relation token
expansion and the whole-schema component pass.
"""

from __future__ import annotations

import pytest

from kitegen.models import ComponentKind, RelationConfig, RelationKind, Schema
from kitegen.normalizer import normalize
from kitegen.relations import (
    EMPTY_REQUIREMENTS,
    SOURCE,
    TARGET,
    RelationContext,
    collect_component_kinds,
    get_requirements,
    process_template,
)


# ===========================================================================
# Catalog
# ===========================================================================


class TestCatalog:
    @pytest.mark.parametrize(
        "alias, key",
        [("belongsTo", "manyToOne"), ("hasMany", "oneToMany")],
    )
    def test_aliases_share_entries(self, alias: str, key: str) -> None:
        assert get_requirements(alias) is get_requirements(key)

    def test_unknown_kind_is_empty(self) -> None:
        requirements = get_requirements("oneToOne")
        assert requirements is EMPTY_REQUIREMENTS
        assert requirements.is_empty

    def test_many_to_one_sides(self) -> None:
        requirements = get_requirements("manyToOne")
        kinds = {(c.kind, c.side) for c in requirements.components}
        assert kinds == {
            (ComponentKind.SELECT, TARGET),
            (ComponentKind.LIST_ITEM, TARGET),
        }
        assert [m.name for m in requirements.methods_for(SOURCE)] == ["update__TARGET__"]
        assert requirements.fields_for(SOURCE) == []

    def test_many_to_many_needs_target_list_and_delete(self) -> None:
        requirements = get_requirements("manyToMany")
        target_kinds = {c.kind for c in requirements.components_for(TARGET)}
        assert {ComponentKind.LIST, ComponentKind.SELECT, ComponentKind.DELETE} <= target_kinds
        assert [m.name for m in requirements.methods_for(SOURCE)] == [
            "refresh__RELATION_TITLE__",
            "add__TARGET__",
            "remove__TARGET__",
        ]
        assert [f.name for f in requirements.fields_for(SOURCE)] == ["___RELATION_NAME__"]

    def test_methods_are_source_side_only(self) -> None:
        for kind in ("manyToOne", "oneToMany", "manyToMany"):
            assert get_requirements(kind).methods_for(TARGET) == []


# ===========================================================================
# Token expansion
# ===========================================================================


class TestProcessTemplate:
    def test_tokens_from_many_to_many_relation(self, blog_schema: Schema) -> None:
        relation = blog_schema.entities["post"].relations["tags"]
        context = RelationContext.from_relation(relation)
        out = process_template(
            "__SOURCE__ __SOURCE_LOWER__ __TARGET__ __TARGET_LOWER__ "
            "__TARGET_PLURAL__ __RELATION_TITLE__ __JOIN_TABLE__ __JOIN_KEY__",
            context,
        )
        assert out == "Post post Tag tag tags Tags post_tag [postId, tagId]"

    def test_longer_token_wins_over_prefix(self) -> None:
        context = RelationContext(source="Post", target="Tag")
        assert process_template("__SOURCE_LOWER__Id", context) == "postId"

    def test_leading_underscore_is_literal(self) -> None:
        context = RelationContext(source="post", target="tag", relation_name="tags")
        assert process_template("this.___RELATION_NAME__", context) == "this._tags"

    def test_join_key_is_sorted_for_either_side(self) -> None:
        forward = RelationContext(source="post", target="tag", join_table="post_tag")
        backward = RelationContext(source="tag", target="post", join_table="post_tag")
        assert process_template("__JOIN_KEY__", forward) == "[postId, tagId]"
        assert process_template("__JOIN_KEY__", backward) == "[postId, tagId]"

    def test_foreign_key_and_join_table_fallbacks(self) -> None:
        context = RelationContext(source="Post", target="User")
        assert process_template("__FOREIGN_KEY__ __JOIN_TABLE__", context) == "userId post_user"

    def test_unknown_and_valueless_tokens_are_untouched(self) -> None:
        context = RelationContext(source="post", target="tag")
        out = process_template("__RELATION_NAME__ __JOIN_KEY__ __ENTITY__", context)
        assert out == "__RELATION_NAME__ __JOIN_KEY__ __ENTITY__"

    def test_plain_mapping_context(self) -> None:
        assert process_template("__TARGET__List", {"TARGET": "Tag"}) == "TagList"

    def test_extra_tokens_override(self) -> None:
        context = RelationContext(source="post", target="tag", extra={"TARGET": "Label"})
        assert process_template("__TARGET__", context) == "Label"

    def test_has_many_key_points_back_at_source(self) -> None:
        relation = RelationConfig(
            name="posts",
            kind=RelationKind.HAS_MANY,
            source_entity="user",
            target_entity="post",
        )
        context = RelationContext.from_relation(relation)
        assert context.foreign_key == "userId"

    def test_has_many_explicit_key(self) -> None:
        relation = RelationConfig(
            name="posts",
            kind=RelationKind.HAS_MANY,
            source_entity="user",
            target_entity="post",
            foreign_key="authorId",
        )
        assert RelationContext.from_relation(relation).foreign_key == "authorId"


# ===========================================================================
# Component pass
# ===========================================================================


class TestCollectComponentKinds:
    def test_blog_schema(self, blog_schema: Schema) -> None:
        kinds = collect_component_kinds(blog_schema)
        baseline = [ComponentKind.DETAIL, ComponentKind.LIST_ITEM, ComponentKind.SELECT]
        assert kinds["user"] == baseline
        assert kinds["post"] == baseline
        assert kinds["tag"] == baseline + [ComponentKind.LIST, ComponentKind.DELETE]

    def test_target_that_declares_nothing(self) -> None:
        schema = normalize({"post": {"tags": ["tag"]}, "tag": {}})
        assert collect_component_kinds(schema)["tag"] == [
            ComponentKind.DETAIL,
            ComponentKind.LIST_ITEM,
            ComponentKind.SELECT,
            ComponentKind.LIST,
            ComponentKind.DELETE,
        ]

    def test_has_many_target_gets_list(self, has_many_schema: Schema) -> None:
        kinds = collect_component_kinds(has_many_schema)
        assert ComponentKind.LIST in kinds["post"]
        assert ComponentKind.LIST not in kinds["user"]

    def test_no_relations(self) -> None:
        schema = normalize({"note": {"title": "string"}})
        assert len(collect_component_kinds(schema)["note"]) == 3

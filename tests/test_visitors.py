"""
tests/test_visitors.py
Tests for kitegen.visitors: entity class and component artifacts.
"""

from __future__ import annotations

import re
from typing import Any, Dict

import pytest

from kitegen.models import ArtifactKind, CodeArtifact, Schema
from kitegen.normalizer import normalize
from kitegen.visitors import (
    ComponentVisitor,
    EntityClassVisitor,
    class_path,
    component_path,
)

_LEFTOVER_TOKEN = re.compile(r"__[A-Z][A-Z_]*__")


def _classes(schema: Schema) -> Dict[str, CodeArtifact]:
    return {a.target_path: a for a in EntityClassVisitor(schema).visit_schema()}


def _components(schema: Schema) -> Dict[str, CodeArtifact]:
    return {a.target_path: a for a in ComponentVisitor(schema).visit_schema()}


# ===========================================================================
# Entity classes
# ===========================================================================


class TestEntityClassVisitor:
    @pytest.fixture()
    def post_class(self, blog_schema: Schema) -> str:
        artifacts = _classes(blog_schema)
        return artifacts["src/lib/generated/classes/Post.svelte.ts"].content

    def test_one_class_per_entity(self, blog_schema: Schema) -> None:
        artifacts = EntityClassVisitor(blog_schema).visit_schema()
        assert [a.target_path for a in artifacts] == [
            "src/lib/generated/classes/User.svelte.ts",
            "src/lib/generated/classes/Post.svelte.ts",
            "src/lib/generated/classes/Tag.svelte.ts",
        ]
        assert all(a.artifact_kind == ArtifactKind.ENTITY_CLASS for a in artifacts)

    def test_relation_methods(self, post_class: str) -> None:
        assert "updateUser = (id: string) => {" in post_class
        assert "this.data.userId = id" in post_class
        assert "refreshTags = () => {" in post_class
        assert "addTag = async (id: string) => {" in post_class
        assert "removeTag = async (tagId: string) => {" in post_class
        assert "await this.db.del('post_tag')([postId, tagId])" in post_class
        assert "this.db.join('post')('tag')({ postId: this.data.id })" in post_class

    def test_relation_state_and_refresh_on_construction(self, post_class: str) -> None:
        assert "   _tags = $state<TagSchema[]>([])\n" in post_class
        assert "      this.refreshTags()\n" in post_class

    def test_relation_getters(self, post_class: str) -> None:
        assert "get selectUser()" in post_class
        assert "get user()" in post_class
        assert "this.db.get('user')(this.data.userId)" in post_class
        assert "get tags()" in post_class
        assert "withProps(TagList, { tags: this._tags, remove: this.removeTag })" in post_class
        assert "get selectTags()" in post_class

    def test_store_is_injected(self, post_class: str) -> None:
        assert (
            "constructor(data?: PostSchema, store: DatabaseService = defaultStore)"
            in post_class
        )
        assert "static create(store: DatabaseService = defaultStore)" in post_class
        assert "new Post(undefined, store)" in post_class
        assert "get db() {\n      return this.store\n   }" in post_class

    def test_delete_method(self, post_class: str) -> None:
        assert "delete = () => {\n      return this.db.del('post')(this.data.id)" in post_class

    def test_default_data(self, post_class: str) -> None:
        assert "      id: crypto.randomUUID(),\n" in post_class
        assert "      title: 'new post title',\n" in post_class
        assert "      content: 'new post content',\n" in post_class
        assert "      userId: ''\n" in post_class

    def test_imports(self, post_class: str) -> None:
        assert "import type { PostSchema, TagSchema } from '../schema.js'" in post_class
        assert "import type { DatabaseService } from 'sveltekite'" in post_class
        assert (
            "import { withProps, withSave, withData, withInstance, DataSave } from 'sveltekite'"
            in post_class
        )
        assert "import { db as defaultStore } from '../db.js'" in post_class
        assert "import PostDetail from '../components/post/PostDetail.svelte'" in post_class
        assert "import UserSelect from '../components/user/UserSelect.svelte'" in post_class
        assert "import { User } from './User.svelte.js'" in post_class
        assert "import TagList from '../components/tag/TagList.svelte'" in post_class

    def test_no_self_import(self) -> None:
        schema = normalize({"node": {"name": "string", "parentId": "node"}})
        content = _classes(schema)["src/lib/generated/classes/Node.svelte.ts"].content
        assert "import { Node }" not in content
        assert "updateNode = (id: string)" in content
        assert "this.data.parentId = id" in content
        assert "get parent()" in content

    def test_entity_without_relations(self, blog_schema: Schema) -> None:
        content = _classes(blog_schema)["src/lib/generated/classes/Tag.svelte.ts"].content
        assert "refresh" not in content
        assert "export class Tag {" in content
        assert "      color: ''\n" in content

    def test_has_many_methods(self, has_many_schema: Schema) -> None:
        content = _classes(has_many_schema)["src/lib/generated/classes/User.svelte.ts"].content
        assert "refreshPosts = () => {" in content
        assert "this.db.filter('post')({ userId: this.data.id })" in content
        assert "addPost = async (id: string) => {" in content
        assert "removePost = async (id: string) => {" in content
        assert "_posts = $state<PostSchema[]>([])" in content

    def test_rendered_classes_are_clean(self, blog_schema: Schema) -> None:
        for artifact in _classes(blog_schema).values():
            assert _LEFTOVER_TOKEN.search(artifact.content) is None, artifact.target_path
            assert "@ts-nocheck" not in artifact.content

    def test_deterministic(self, schema_dict: Dict[str, Any]) -> None:
        first = EntityClassVisitor(normalize(schema_dict)).visit_schema()
        second = EntityClassVisitor(normalize(schema_dict)).visit_schema()
        assert [a.content for a in first] == [a.content for a in second]


# ===========================================================================
# Components
# ===========================================================================


class TestComponentVisitor:
    def test_component_set(self, blog_schema: Schema) -> None:
        paths = list(_components(blog_schema))
        assert paths == [
            "src/lib/generated/components/user/UserDetail.svelte",
            "src/lib/generated/components/user/UserListItem.svelte",
            "src/lib/generated/components/user/UserSelect.svelte",
            "src/lib/generated/components/post/PostDetail.svelte",
            "src/lib/generated/components/post/PostListItem.svelte",
            "src/lib/generated/components/post/PostSelect.svelte",
            "src/lib/generated/components/tag/TagDetail.svelte",
            "src/lib/generated/components/tag/TagListItem.svelte",
            "src/lib/generated/components/tag/TagSelect.svelte",
            "src/lib/generated/components/tag/TagList.svelte",
            "src/lib/generated/components/tag/TagDelete.svelte",
        ]

    def test_path_helpers(self, blog_schema: Schema) -> None:
        tag = blog_schema.entities["tag"]
        assert component_path(tag, "listItem") == (
            "src/lib/generated/components/tag/TagListItem.svelte"
        )
        assert class_path(tag) == "src/lib/generated/classes/Tag.svelte.ts"

    def test_detail_inputs(self, blog_schema: Schema) -> None:
        components = _components(blog_schema)
        post = components["src/lib/generated/components/post/PostDetail.svelte"].content
        assert '<input type="text" bind:value={post.data.title} />' in post
        assert (
            '<textarea name="content" bind:value={post.data.content} rows="10" cols="40"></textarea>'
            in post
        )
        tag = components["src/lib/generated/components/tag/TagDetail.svelte"].content
        assert '<input type="color" bind:value={tag.data.color} />' in tag

    def test_text_field_gets_textarea_only(self) -> None:
        schema = normalize({"author": {"name": "string", "bio": "text"}})
        detail = _components(schema)["src/lib/generated/components/author/AuthorDetail.svelte"]
        assert '<label for="bio">Bio</label><br />' in detail.content
        assert '<textarea name="bio" bind:value={author.data.bio} rows="10" cols="40">' in detail.content
        assert "bind:value={author.data.bio} />" not in detail.content

    def test_detail_relation_selectors(self, blog_schema: Schema) -> None:
        post = _components(blog_schema)["src/lib/generated/components/post/PostDetail.svelte"].content
        assert "<post.selectUser callback={post.updateUser} />" in post
        assert "<post.tags /><br />" in post
        assert "Add Tag: <post.selectTags callback={post.addTag} />" in post

    def test_list_item_shows_display_field(self, blog_schema: Schema) -> None:
        components = _components(blog_schema)
        post = components["src/lib/generated/components/post/PostListItem.svelte"].content
        assert "<span>{post.data.title}</span>" in post
        user = components["src/lib/generated/components/user/UserListItem.svelte"].content
        assert "<span>{user.data.name}</span>" in user

    def test_select_component(self, blog_schema: Schema) -> None:
        select = _components(blog_schema)["src/lib/generated/components/user/UserSelect.svelte"].content
        assert "let { users, callback }: { users: UserSchema[]" in select
        assert "Select User" in select
        assert "{#each users as user}" in select

    def test_list_uses_color_field(self, blog_schema: Schema) -> None:
        tag_list = _components(blog_schema)["src/lib/generated/components/tag/TagList.svelte"].content
        assert "${tag.color || 'grey'}" in tag_list
        assert "remove(tag.id)" in tag_list

    def test_list_without_color_field(self) -> None:
        schema = normalize({"post": {"tags": ["tag"]}, "tag": {"name": "string"}})
        tag_list = _components(schema)["src/lib/generated/components/tag/TagList.svelte"].content
        assert "background-color: #f0f0f0;" in tag_list

    def test_delete_component(self, blog_schema: Schema) -> None:
        delete = _components(blog_schema)["src/lib/generated/components/tag/TagDelete.svelte"].content
        assert "Are you sure you want to delete this Tag?" in delete
        assert "tag.delete()" in delete

    def test_components_are_clean(self, blog_schema: Schema) -> None:
        for artifact in _components(blog_schema).values():
            assert artifact.artifact_kind == ArtifactKind.COMPONENT
            assert _LEFTOVER_TOKEN.search(artifact.content) is None, artifact.target_path
            assert "@ts-nocheck" not in artifact.content

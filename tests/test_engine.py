"""
tests/test_engine.py
Tests for kitegen.engine: token resolution, verbatim fallbacks and import
block rendering.
"""

from __future__ import annotations

from kitegen.engine import (
    ImportSpec,
    TemplateEngine,
    render,
    render_imports,
    strip_ts_nocheck,
)
from kitegen.models import Schema


# ===========================================================================
# Token resolution
# ===========================================================================


class TestRender:
    def test_exact_key(self) -> None:
        assert render("class __CLASS_NAME__ {}", {"CLASS_NAME": "Post"}) == "class Post {}"

    def test_camel_case_key(self) -> None:
        assert render("__CLASS_NAME__", {"className": "Post"}) == "Post"

    def test_snake_case_key(self) -> None:
        assert render("__DISPLAY_FIELD__", {"display_field": "title"}) == "title"

    def test_alias_reads_entity_attributes(self, blog_schema: Schema) -> None:
        entity = blog_schema.entities["post"]
        out = render(
            "__CLASS_NAME__ __ENTITY_NAME__ __ENTITY_PLURAL__ __SCHEMA_TYPE__",
            {"entity": entity},
        )
        assert out == "Post post posts PostSchema"

    def test_exact_key_wins_over_alias(self, blog_schema: Schema) -> None:
        entity = blog_schema.entities["post"]
        assert render("__CLASS_NAME__", {"CLASS_NAME": "X", "entity": entity}) == "X"

    def test_adjacent_text_is_kept(self) -> None:
        assert render("__CLASS_NAME__Detail", {"CLASS_NAME": "Tag"}) == "TagDetail"

    def test_unresolved_token_is_left_verbatim(self) -> None:
        out = render("Hello __NAME__ and __MISSING__", {"NAME": "x"})
        assert out == "Hello x and __MISSING__"

    def test_none_value_is_left_verbatim(self) -> None:
        assert render("__NAME__", {"NAME": None}) == "__NAME__"

    def test_values_are_not_rescanned(self) -> None:
        assert render("__A__", {"A": "__B__", "B": "x"}) == "__B__"

    def test_non_string_values_are_stringified(self) -> None:
        assert render("__COUNT__", {"COUNT": 3}) == "3"

    def test_methods_are_not_values(self) -> None:
        class Holder:
            def instance_name(self) -> str:
                return "nope"

        assert render("__ENTITY_NAME__", {"entity": Holder()}) == "__ENTITY_NAME__"

    def test_custom_alias(self) -> None:
        engine = TemplateEngine(aliases={"TITLE": "meta.title"})
        assert engine.render("__TITLE__", {"meta": {"title": "Blog"}}) == "Blog"


class TestTsNocheck:
    def test_directive_lines_are_removed(self) -> None:
        template = "<script>\n   // @ts-nocheck\n   let x = 1\n</script>\n"
        assert render(template, {}) == "<script>\n   let x = 1\n</script>\n"

    def test_directive_at_end_without_newline(self) -> None:
        assert strip_ts_nocheck("a\n// @ts-nocheck") == "a\n"

    def test_directive_after_script_tag(self) -> None:
        template = '<script lang="ts">// @ts-nocheck\n   let x = 1\n</script>'
        assert render(template, {}) == '<script lang="ts">\n   let x = 1\n</script>'

    def test_trailing_directive_after_code(self) -> None:
        assert strip_ts_nocheck("let x = 1 // @ts-nocheck\nx") == "let x = 1\nx"

    def test_other_comments_are_kept(self) -> None:
        assert strip_ts_nocheck("// @ts-ignore\nx") == "// @ts-ignore\nx"


# ===========================================================================
# Imports
# ===========================================================================


class TestRenderImports:
    def test_merges_by_module_and_style(self) -> None:
        block = render_imports(
            [
                ImportSpec("A", "m"),
                ImportSpec("B", "m"),
                ImportSpec("T", "m", "type"),
                ImportSpec("D", "./d.svelte", "default"),
                ImportSpec("A", "m"),
            ]
        )
        assert block.splitlines() == [
            "import { A, B } from 'm'",
            "import type { T } from 'm'",
            "import D from './d.svelte'",
        ]

    def test_default_imports_are_never_merged(self) -> None:
        block = render_imports(
            [
                ImportSpec("X", "./x.svelte", "default"),
                ImportSpec("Y", "./x.svelte", "default"),
            ]
        )
        assert block.splitlines() == [
            "import X from './x.svelte'",
            "import Y from './x.svelte'",
        ]

    def test_empty(self) -> None:
        assert render_imports([]) == ""

"""Tests for prediction output extraction and cleanup."""

from __future__ import annotations

import pytest

from splice.jobs.output import clean_code_output, extract_output_text


class TestExtractOutputText:
    def test_string_passes_through(self):
        assert extract_output_text("print(1)") == "print(1)"

    def test_token_list_is_joined_without_separator(self):
        assert extract_output_text(["def ", "f():", "\n", "    pass"]) == "def f():\n    pass"

    def test_mapping_text_field(self):
        assert extract_output_text({"text": "a", "content": "b"}) == "a"

    def test_mapping_content_field(self):
        assert extract_output_text({"content": "b"}) == "b"

    def test_empty_text_falls_back_to_content(self):
        assert extract_output_text({"text": "", "content": "b"}) == "b"

    def test_unknown_mapping_is_pretty_printed(self):
        assert extract_output_text({"tokens": 3}) == '{\n  "tokens": 3\n}'

    def test_none_is_empty(self):
        assert extract_output_text(None) == ""


class TestCleanCodeOutput:
    def test_fence_with_language_tag(self):
        assert clean_code_output("```python\nprint(1)\n```") == "print(1)"

    def test_fence_without_language_tag(self):
        assert clean_code_output("```\nx = 1\n```\n") == "x = 1\n"

    def test_leading_blank_lines_removed(self):
        assert clean_code_output("\n\n   \n  code\nmore") == "  code\nmore"

    def test_interior_blank_lines_kept(self):
        assert clean_code_output("a\n\nb") == "a\n\nb"

    @pytest.mark.parametrize("tag", ["js", "c++", "objective-c", "elixir"])
    def test_various_language_tags(self, tag: str):
        assert clean_code_output(f"```{tag}\nbody\n```") == "body"

    def test_plain_code_unchanged(self):
        text = "defmodule A do\n  def b, do: 1\nend"
        assert clean_code_output(text) == text

    def test_inline_opener_after_prose(self):
        assert clean_code_output("Here:```js\nfoo()\n```") == "Here:foo()"

    def test_opener_in_the_middle_of_the_text(self):
        assert clean_code_output("// a\n```ts\nlet x = 1;\n```") == "// a\nlet x = 1;"

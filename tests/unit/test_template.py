"""
Unit tests for prompt template rendering.

WHAT: Test the restricted placeholder evaluator
WHY: Templates must render common expressions and never execute arbitrary code
HOW: Render templates against dicts, objects and plain values
"""

from dataclasses import dataclass

import pytest

from llm_nodes.utils.template import evaluate_expression, render_template


@dataclass
class Article:
    title: str
    tags: list


@pytest.mark.unit
@pytest.mark.nodes
class TestRenderTemplate:
    """Test placeholder substitution."""

    def test_simple_property(self):
        assert render_template("Hello {{name}}!", {"name": "Ada"}) == "Hello Ada!"

    def test_whitespace_inside_braces(self):
        assert render_template("{{ name }}", {"name": "Ada"}) == "Ada"

    def test_input_name_is_whole_input(self):
        assert render_template("Topic: {{input}}", "rust") == "Topic: rust"

    def test_input_attribute_path(self):
        assert render_template("{{input.user.name}}", {"user": {"name": "Lin"}}) == "Lin"

    def test_object_attributes(self):
        article = Article(title="Tides", tags=["sea", "moon"])
        assert render_template("{{title}} [{{tags}}]", article) == "Tides [sea, moon]"

    def test_join(self):
        assert render_template("{{keywords.join(' | ')}}", {"keywords": ["a", "b", "c"]}) == "a | b | c"

    def test_join_default_separator_and_none(self):
        assert render_template("{{items.join()}}", {"items": ["a", None, "c"]}) == "a,,c"

    def test_string_methods_and_builtins(self):
        data = {"name": "  ada  ", "items": [1, 2, 3]}
        assert render_template("{{name.strip().upper()}}", data) == "ADA"
        assert render_template("{{len(items)}}", data) == "3"
        assert render_template("{{str(items[0])}}", data) == "1"

    def test_subscripts(self):
        data = {"rows": [{"id": 7}], "meta": {"key": "v"}}
        assert render_template("{{rows[0]['id']}}", data) == "7"
        assert render_template("{{meta['key']}}", data) == "v"

    def test_none_renders_empty(self):
        assert render_template("[{{value}}]", {"value": None}) == "[]"

    def test_missing_property_renders_empty(self):
        assert render_template("[{{missing}}]", {}) == "[]"

    def test_raw_key_fallback(self):
        # Not a valid expression, but a valid dict key
        assert render_template("{{first-name}}", {"first-name": "Grace"}) == "Grace"

    def test_unsupported_expression_falls_back_to_empty(self):
        assert render_template("{{__import__('os').getcwd()}}", {}) == ""
        assert render_template("{{1 + 1}}", {}) == ""

    def test_private_attributes_blocked(self):
        article = Article(title="t", tags=[])
        assert render_template("{{input.__class__}}", article) == ""
        assert render_template("{{__dict__}}", article) == ""

    def test_methods_not_rendered_as_properties(self):
        assert render_template("{{upper}}", "text") == ""

    def test_long_expression_degrades(self):
        deep_path = ".".join(["a"] * 3000)
        assert render_template("[{{" + deep_path + "}}]", {"a": 1}) == "[]"

    def test_long_raw_key_still_looked_up(self):
        key = "k" * 1000
        assert render_template("{{" + key + "}}", {key: "found"}) == "found"

    def test_deeply_nested_expression_degrades(self):
        nested = "(" * 240 + "a" + ")" * 240
        assert render_template("[{{" + nested + "}}]", {"a": 1}) == "[]"

    def test_value_formatting(self):
        assert render_template("{{tags}}", {"tags": ["a", "b"]}) == "a, b"
        assert render_template("{{tags}}", {"tags": ["a", None, 3]}) == "a, , 3"
        assert render_template("{{flag}}", {"flag": True}) == "True"
        assert render_template("{{count}}", {"count": 0}) == "0"

    def test_literal(self):
        assert evaluate_expression("'fixed'", {}) == "fixed"

"""Tests for dot-path resolution."""

from convo_eval.assertion.domain.json_path import MISSING, render, resolve_path


class TestResolvePath:
    def test_resolves_nested_keys_and_indices(self) -> None:
        tree = {"a": {"b": [{"c": 1}, {"c": 2}]}}
        assert resolve_path(tree, "a.b.1.c") == 2

    def test_missing_segment_is_missing(self) -> None:
        assert resolve_path({"a": {}}, "a.b") is MISSING

    def test_null_leaf_is_not_missing(self) -> None:
        assert resolve_path({"a": None}, "a") is None

    def test_non_numeric_list_segment_is_missing(self) -> None:
        assert resolve_path({"a": [1]}, "a.first") is MISSING

    def test_empty_path_is_missing(self) -> None:
        assert resolve_path({"a": 1}, "  ") is MISSING


class TestRender:
    def test_missing_renders_placeholder(self) -> None:
        assert render(MISSING) == "<missing>"

    def test_json_is_compact(self) -> None:
        assert render({"a": [1, "é"]}) == '{"a":[1,"é"]}'

"""Tests for pageprobe.utils.serialization — aliasing and canonical output."""

from __future__ import annotations

import math

import pytest

from pageprobe.utils.serialization import snake_to_camel, strip_undefined


class TestSnakeToCamel:
    """Tests for snake_to_camel()."""

    @pytest.mark.parametrize(
        ("input_str", "expected"),
        [
            ("my_field_name", "myFieldName"),
            ("single", "single"),
            ("script_source", "scriptSource"),
            ("body_response", "bodyResponse"),
            ("logs_threshold", "logsThreshold"),
            ("a_b_c", "aBC"),
        ],
    )
    def test_conversion(self, input_str: str, expected: str) -> None:
        assert snake_to_camel(input_str) == expected

    def test_empty_string(self) -> None:
        assert snake_to_camel("") == ""


class TestStripUndefined:
    """Tests for strip_undefined()."""

    def test_drops_none_values(self) -> None:
        assert strip_undefined({"a": 1, "b": None}) == {"a": 1}

    def test_drops_non_finite_floats(self) -> None:
        value = {"nan": math.nan, "inf": math.inf, "neg": -math.inf, "ok": 0.5}
        assert strip_undefined(value) == {"ok": 0.5}

    def test_nested(self) -> None:
        value = {"outer": {"inner": None, "keep": [1, {"x": None, "y": "z"}]}}
        assert strip_undefined(value) == {"outer": {"keep": [1, {"y": "z"}]}}

    def test_list_positions_preserved(self) -> None:
        assert strip_undefined([1, None, math.nan, 2]) == [1, None, None, 2]

    def test_tuples_become_lists(self) -> None:
        assert strip_undefined({"t": (1, 2)}) == {"t": [1, 2]}

    def test_keys_stringified(self) -> None:
        assert strip_undefined({1: "a"}) == {"1": "a"}

    def test_falsy_values_kept(self) -> None:
        value = {"zero": 0, "false": False, "empty": "", "list": [], "dict": {}}
        assert strip_undefined(value) == value

    def test_unknown_objects_stringified(self) -> None:
        class Thing:
            def __str__(self) -> str:
                return "thing"

        assert strip_undefined({"t": Thing()}) == {"t": "thing"}

    def test_input_not_mutated(self) -> None:
        value = {"a": None, "b": [None]}
        strip_undefined(value)
        assert value == {"a": None, "b": [None]}

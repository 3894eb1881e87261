"""Unit tests for per-element compliance scoring."""

from __future__ import annotations

import pytest

from aeccheck.analysis.scorer import normalize_key, round_half_up, score, to_text
from aeccheck.models import RawProperty


class TestRoundHalfUp:
    @pytest.mark.parametrize(
        "value,expected",
        [(0.0, 0), (2.5, 3), (37.5, 38), (66.666, 67), (33.333, 33), (99.5, 100)],
    )
    def test_halves_round_up(self, value, expected):
        assert round_half_up(value) == expected


class TestToText:
    def test_none_is_empty(self):
        assert to_text(None) == ""

    def test_whitespace_is_trimmed(self):
        assert to_text("  Acme ") == "Acme"

    def test_numbers_are_rendered(self):
        assert to_text(0) == "0"
        assert to_text(12.5) == "12.5"

    def test_lists_are_joined(self):
        assert to_text(["a", None, " b "]) == "a, b"


class TestScore:
    def test_all_required_filled(self):
        result = score({"Manufacturer": "Acme", "Model": "X1"}, ["Manufacturer", "Model"])

        assert (result.filled, result.total, result.pct) == (2, 2, 100)

    def test_blank_values_do_not_count(self):
        result = score(
            {"Manufacturer": "   ", "Model": None, "Type Mark": "W-01"},
            ["Manufacturer", "Model", "Type Mark"],
        )

        assert result.filled == 1
        assert result.pct == 33

    def test_zero_counts_as_filled(self):
        result = score({"Width": 0}, ["Width"])

        assert result.filled == 1

    def test_matching_is_case_insensitive_and_trimmed(self):
        result = score({" manufacturer ": "Acme"}, ["MANUFACTURER"])

        assert result.filled == 1

    def test_duplicate_required_keys_count_once(self):
        result = score({"Model": "X"}, ["Model", "model", " Model "])

        assert result.total == 1

    def test_empty_required_set_uses_fallback_total(self):
        result = score({"Manufacturer": "Acme"}, [])

        assert result.total == 10
        assert result.filled == 0
        assert result.pct == 0

    def test_custom_fallback_total(self):
        assert score({}, [], fallback_total=4).total == 4

    def test_accepts_raw_property_list(self):
        props = [RawProperty(name="Manufacturer", value="Acme"), RawProperty(name="Model", value="")]

        result = score(props, ["Manufacturer", "Model"])

        assert result.filled == 1
        assert result.pct == 50

    def test_three_of_four_rounds_to_75(self):
        result = score({"a": 1, "b": 1, "c": 1, "d": ""}, ["a", "b", "c", "d"])

        assert result.pct == 75

    def test_is_deterministic(self):
        props = {"Manufacturer": "Acme", "Model": ""}

        assert score(props, ["Manufacturer", "Model"]) == score(props, ["Manufacturer", "Model"])


def test_normalize_key():
    assert normalize_key("  Type Mark ") == "type mark"
    assert normalize_key(None) == ""

"""Tests for input normalization.

Invariants:
1. parse_bool accepts on/off, true/false, 1/0, yes/no and nothing else
2. to_int floors fractions and rejects booleans
3. is_defined treats 0 as present and blank strings as missing
"""

import pytest

from tvorai.core.normalize import is_defined, parse_bool, to_int


class TestParseBool:
    """Tests for the canonical boolean parser."""

    @pytest.mark.parametrize("value", ["on", "true", "1", "yes", "TRUE", " On ", True, 1])
    def test_truthy(self, value):
        assert parse_bool(value) is True

    @pytest.mark.parametrize("value", ["off", "false", "0", "no", "No", False, 0])
    def test_falsy(self, value):
        assert parse_bool(value) is False

    def test_none_and_blank_use_default(self):
        assert parse_bool(None) is False
        assert parse_bool("", default=True) is True

    @pytest.mark.parametrize("value", ["maybe", "2", 2, [], {}])
    def test_rejects_unknown(self, value):
        with pytest.raises(ValueError):
            parse_bool(value)


class TestToInt:
    """Tests for integer coercion."""

    def test_ints_and_numeric_strings(self):
        assert to_int(7) == 7
        assert to_int(" 42 ") == 42

    def test_floors_fractions(self):
        assert to_int(3.9) == 3
        assert to_int("10.5") == 10

    def test_rejects_bool(self):
        with pytest.raises(ValueError):
            to_int(True)

    @pytest.mark.parametrize("value", ["abc", None, "inf", float("nan")])
    def test_rejects_non_numeric(self, value):
        with pytest.raises(ValueError):
            to_int(value)


class TestIsDefined:
    def test_zero_is_defined(self):
        assert is_defined(0) is True
        assert is_defined("0") is True

    def test_none_and_blank_missing(self):
        assert is_defined(None) is False
        assert is_defined("   ") is False

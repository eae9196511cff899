"""Tests for numeric parsing/rendering and A1 address helpers."""

from __future__ import annotations

import math

import pytest

from sheetcalc.addressing import (
    col_letter_to_index,
    index_to_col_letter,
    is_cell_ref,
    make_addr,
    parse_addr,
)
from sheetcalc.formulas import format_number, parse_number


# ────────────────────────────────────────────────────────────────
# parse_number
# ────────────────────────────────────────────────────────────────


class TestParseNumber:
    @pytest.mark.parametrize(
        "text, expected",
        [
            ("42", 42.0),
            (" 42 ", 42.0),
            ("-3", -3.0),
            ("+7", 7.0),
            ("1,234.5", 1234.5),
            (".5", 0.5),
            ("5.", 5.0),
            ("1e3", 1000.0),
            ("0x1F", 31.0),
            ("0b101", 5.0),
            (",", 0.0),
        ],
    )
    def test_valid(self, text: str, expected: float) -> None:
        assert parse_number(text) == expected

    @pytest.mark.parametrize(
        "text",
        ["", "   ", "abc", "Infinity", "-Infinity", "inf", "nan", "1_000", "1e400", "1 000", ".", "12abc", "-0x10"],
    )
    def test_invalid(self, text: str) -> None:
        assert parse_number(text) is None


# ────────────────────────────────────────────────────────────────
# format_number
# ────────────────────────────────────────────────────────────────


class TestFormatNumber:
    @pytest.mark.parametrize(
        "value, expected",
        [
            (60.0, "60"),
            (2.5, "2.5"),
            (-3.0, "-3"),
            (-0.0, "0"),
            (0.1 + 0.2, "0.30000000000000004"),
            (123456789.0, "123456789"),
            (1e16, "10000000000000000"),
            (1e20, "100000000000000000000"),
            (1e21, "1e+21"),
            (1.5e22, "1.5e+22"),
            (0.000001, "0.000001"),
            (1.5e-5, "0.000015"),
            (-1.5e-5, "-0.000015"),
            (1e-7, "1e-7"),
            (2.5e-10, "2.5e-10"),
        ],
    )
    def test_rendering(self, value: float, expected: str) -> None:
        assert format_number(value) == expected

    def test_non_finite(self) -> None:
        assert format_number(math.inf) == "Infinity"
        assert format_number(-math.inf) == "-Infinity"
        assert format_number(math.nan) == "NaN"


# ────────────────────────────────────────────────────────────────
# Addressing
# ────────────────────────────────────────────────────────────────


class TestAddressing:
    def test_column_decoding(self) -> None:
        assert col_letter_to_index("A") == 0
        assert col_letter_to_index("Z") == 25
        assert col_letter_to_index("AA") == 26
        assert col_letter_to_index("az") == 51

    def test_column_encoding(self) -> None:
        assert index_to_col_letter(0) == "A"
        assert index_to_col_letter(25) == "Z"
        assert index_to_col_letter(26) == "AA"
        assert index_to_col_letter(701) == "ZZ"
        assert index_to_col_letter(702) == "AAA"

    def test_parse_addr(self) -> None:
        assert parse_addr("A1") == (0, 0)
        assert parse_addr("b2") == (1, 1)
        assert parse_addr("AA1") == (0, 26)

    def test_parse_addr_invalid(self) -> None:
        for bad in ("1A", "A", "12", "A1B", "A-1", ""):
            with pytest.raises(ValueError, match="Invalid cell address"):
                parse_addr(bad)

    def test_make_addr(self) -> None:
        assert make_addr(0, 0) == "A1"
        assert make_addr(9, 27) == "AB10"

    def test_is_cell_ref(self) -> None:
        assert is_cell_ref("C12")
        assert is_cell_ref("zz9")
        assert not is_cell_ref("C")
        assert not is_cell_ref("12")
        assert not is_cell_ref("C1 ")

"""Spreadsheet cell formula evaluation.

Public API::

    from sheetcalc.formulas import evaluate, parse_number, format_number
"""

from sheetcalc.formulas.errors import (
    DIV0,
    ENGINE_ERRORS,
    ERR,
    SENTINELS,
    FormulaError,
    FormulaParseError,
)
from sheetcalc.formulas.evaluator import CellLookup, evaluate, read_token
from sheetcalc.formulas.numbers import format_number, parse_number
from sheetcalc.formulas.parser import (
    CellRange,
    parse_aggregate,
    parse_range,
    split_binary,
)

__all__ = [
    "DIV0",
    "ENGINE_ERRORS",
    "ERR",
    "SENTINELS",
    "CellLookup",
    "CellRange",
    "FormulaError",
    "FormulaParseError",
    "evaluate",
    "format_number",
    "parse_aggregate",
    "parse_number",
    "parse_range",
    "read_token",
    "split_binary",
]

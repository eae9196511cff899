"""Evaluator that turns a cell's raw text into its display string.

Forms are tried in a fixed order and the first match wins:

1. literal text (anything that does not start with ``=``) passes through;
2. ``FN(range)`` aggregates over raw cell text, skipping non-numeric cells;
3. ``left op right`` with operands read as numbers, defaulting to 0;
4. a bare number;
5. anything else is ``#ERR``.

References are read one level deep: a referenced cell's *raw* text is
parsed as a number, its own formula is never evaluated.  Evaluation is a
pure read of the grid and never raises to the caller.
"""

from __future__ import annotations

import logging
import operator
from functools import reduce
from typing import Callable

from sheetcalc.addressing import is_cell_ref, parse_addr
from sheetcalc.formulas.errors import DIV0, ENGINE_ERRORS, ERR
from sheetcalc.formulas.numbers import format_number, parse_number
from sheetcalc.formulas.parser import (
    AggregateCall,
    BinaryOp,
    parse_aggregate,
    parse_range,
    split_binary,
)

logger = logging.getLogger(__name__)

# Grid lookup capability: (row, col) zero-based -> raw text, "" when empty.
CellLookup = Callable[[int, int], str]


def evaluate(formula: str, get_cell: CellLookup) -> str:
    """Evaluate a cell's text against a grid.

    Args:
        formula: Raw cell text, e.g. ``"=SUM(A1:A3)"`` or ``"hello"``.
        get_cell: Lookup returning the raw text at a zero-based (row, col).

    Returns:
        The literal text unchanged, a rendered number, or one of the
        sentinel strings ``#ERR`` / ``#DIV/0``.
    """
    text = formula.strip()
    if not text.startswith("="):
        return formula

    body = text[1:].strip()
    try:
        return _eval_body(body, get_cell)
    except ZeroDivisionError:
        return DIV0
    except ENGINE_ERRORS as exc:
        logger.debug("formula %r evaluated to %s: %s", formula, ERR, exc)
        return ERR


def _eval_body(body: str, get_cell: CellLookup) -> str:
    call = parse_aggregate(body)
    if call is not None:
        return _eval_aggregate(call, get_cell)

    binop = split_binary(body)
    if binop is not None:
        return _eval_binary(binop, get_cell)

    value = parse_number(body)
    if value is not None:
        return format_number(value)

    return ERR


def _read_cell(get_cell: CellLookup, row: int, col: int) -> float | None:
    """Parse the raw text at (row, col); None when empty or non-numeric."""
    return parse_number(get_cell(row, col) or "")


# ---------- Aggregates ----------


def _fn_sum(values: list[float]) -> float:
    # Plain left fold: sum() compensates float error on 3.12+, which would
    # render differently from the sheet.
    return reduce(operator.add, values, 0.0)


def _fn_avg(values: list[float]) -> float:
    return _fn_sum(values) / len(values)


_FUNC_TABLE: dict[str, Callable[[list[float]], float]] = {
    "SUM": _fn_sum,
    "AVG": _fn_avg,
    "MIN": min,
    "MAX": max,
}


def _eval_aggregate(call: AggregateCall, get_cell: CellLookup) -> str:
    fn = _FUNC_TABLE[call.func_name]
    cell_range = parse_range(call.arg)
    values: list[float] = []
    for row, col in cell_range.cells():
        value = _read_cell(get_cell, row, col)
        if value is not None:
            values.append(value)

    if not values:
        return "0"
    return format_number(fn(values))


# ---------- Binary arithmetic ----------


def read_token(token: str, get_cell: CellLookup) -> float:
    """Resolve one operand: a cell reference or a numeric literal.

    Anything that cannot be read as a number counts as 0.
    """
    if is_cell_ref(token):
        row, col = parse_addr(token)
        value = _read_cell(get_cell, row, col)
    else:
        value = parse_number(token)
    return 0.0 if value is None else value


def _divide(a: float, b: float) -> float:
    if b == 0:
        raise ZeroDivisionError("Division by zero in formula")
    return a / b


_BINARY_OPS: dict[str, Callable[[float, float], float]] = {
    "+": operator.add,
    "-": operator.sub,
    "*": operator.mul,
    "/": _divide,
}


def _eval_binary(binop: BinaryOp, get_cell: CellLookup) -> str:
    a = read_token(binop.left, get_cell)
    b = read_token(binop.right, get_cell)
    return format_number(_BINARY_OPS[binop.op](a, b))

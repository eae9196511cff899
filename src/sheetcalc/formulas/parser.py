"""Lark-based parsing for the cell formula body.

The accepted language is deliberately small::

    formula   := literal | "=" expr
    expr      := aggregate | binaryop | number
    aggregate := ("SUM" | "AVG" | "MIN" | "MAX") "(" range ")"
    range     := cellref ":" cellref
    binaryop  := operand ("+" | "-" | "*" | "/") operand
    operand   := cellref | number

Aggregate calls and ranges are parsed with LALR(1) grammars.  The binary
form is a single-operator split (no precedence, no parentheses, no
chaining): the first operator character after the first body character
separates the two operand texts.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterator

from lark import Lark, Transformer
from lark.exceptions import LarkError

from sheetcalc.addressing import parse_addr
from sheetcalc.formulas.errors import FormulaParseError

# FUNC must be followed directly by "(", and the argument runs up to the
# first ")".  The argument is validated separately by RANGE_GRAMMAR so that
# ``SUM(A1)`` is recognised as an aggregate with a malformed range rather
# than falling through to the other forms.
AGGREGATE_GRAMMAR = r"""
start: FUNC "(" ARG ")"

FUNC: /sum|avg|min|max/i
ARG: /[^)]+/
"""

RANGE_GRAMMAR = r"""
start: CELL_REF ":" CELL_REF

CELL_REF: /[A-Za-z]+[0-9]+/

%import common.WS
%ignore WS
"""

_aggregate_parser = Lark(AGGREGATE_GRAMMAR, parser="lalr", start="start")
_range_parser = Lark(RANGE_GRAMMAR, parser="lalr", start="start")

OPERATORS = "+-*/"

# Operand texts never span a line break.
_LINE_BREAKS = frozenset("\n\r\u2028\u2029")


@dataclass(frozen=True)
class CellRange:
    """Rectangle of zero-based grid coordinates, bounds inclusive."""

    top: int
    left: int
    bottom: int
    right: int

    @classmethod
    def from_corners(cls, a: tuple[int, int], b: tuple[int, int]) -> CellRange:
        """Normalise two (row, col) corners given in any order."""
        return cls(
            top=min(a[0], b[0]),
            left=min(a[1], b[1]),
            bottom=max(a[0], b[0]),
            right=max(a[1], b[1]),
        )

    def cells(self) -> Iterator[tuple[int, int]]:
        """Yield every (row, col) in the rectangle, row-major."""
        for r in range(self.top, self.bottom + 1):
            for c in range(self.left, self.right + 1):
                yield (r, c)


@dataclass(frozen=True)
class AggregateCall:
    func_name: str
    arg: str


@dataclass(frozen=True)
class BinaryOp:
    left: str
    op: str
    right: str


class _RangeBuilder(Transformer):
    def start(self, children: list) -> CellRange:
        first, second = (parse_addr(str(tok)) for tok in children)
        return CellRange.from_corners(first, second)


def parse_aggregate(body: str) -> AggregateCall | None:
    """Match ``FN(ARG)`` against the whole body.

    Returns:
        The call with an upper-cased function name, or ``None`` when the
        body is not an aggregate call at all.
    """
    try:
        tree = _aggregate_parser.parse(body)
    except LarkError:
        return None
    func_tok, arg_tok = tree.children
    return AggregateCall(func_name=str(func_tok).upper(), arg=str(arg_tok))


def parse_range(text: str) -> CellRange:
    """Parse ``A1:B10`` (in either corner order) into a normalised rectangle.

    Raises:
        FormulaParseError: If the text is not two cell references joined
            by ``:``.
    """
    try:
        tree = _range_parser.parse(text)
    except LarkError as exc:
        pos = getattr(exc, "column", None)
        raise FormulaParseError(f"Invalid range {text!r}", position=pos) from exc
    return _RangeBuilder().transform(tree)


def split_binary(body: str) -> BinaryOp | None:
    """Split the body at its first operator into two trimmed operand texts.

    The operator must have at least one character on each side, so a
    leading sign (``-5``) or a trailing operator (``5-``) does not split.
    Anything after the operator, further operators included, is the right
    operand text.  Neither operand may contain a line break; whitespace
    around the operator may.
    """
    for i in range(1, len(body) - 1):
        ch = body[i]
        if ch not in OPERATORS:
            continue
        left = body[:i].strip()
        if _LINE_BREAKS.intersection(left):
            # Every later split keeps this break in its left operand.
            return None
        right = body[i + 1:].strip()
        if _LINE_BREAKS.intersection(right):
            continue
        return BinaryOp(left=left, op=ch, right=right)
    return None

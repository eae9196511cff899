"""A1-style cell address helpers.

Columns are bijective base-26 (``A`` = 1 ... ``Z`` = 26, ``AA`` = 27) in
text form and zero-based in grid form; rows are 1-based in text and
zero-based in the grid.
"""

from __future__ import annotations

import re

_ADDR_RE = re.compile(r"([A-Za-z]+)([0-9]+)")


def col_letter_to_index(letters: str) -> int:
    """Convert column letter(s) to 0-based index.  A=0, B=1, ..., Z=25, AA=26."""
    idx = 0
    for ch in letters.upper():
        idx = idx * 26 + (ord(ch) - ord("A") + 1)
    return idx - 1


def index_to_col_letter(idx: int) -> str:
    """Convert 0-based column index to letter(s).  0=A, 25=Z, 26=AA."""
    result = ""
    n = idx + 1
    while n > 0:
        n, rem = divmod(n - 1, 26)
        result = chr(65 + rem) + result
    return result


def is_cell_ref(text: str) -> bool:
    """Return True if *text* is exactly a cell reference such as ``b12``."""
    return _ADDR_RE.fullmatch(text) is not None


def parse_addr(addr: str) -> tuple[int, int]:
    """Parse 'A1' -> (row_0based, col_0based).

    Lowercase letters are accepted.  Row ``0`` decodes to row index ``-1``,
    which no grid populates.

    Raises ValueError on bad address.
    """
    m = _ADDR_RE.fullmatch(addr.strip())
    if not m:
        raise ValueError(f"Invalid cell address: {addr!r}")
    col = col_letter_to_index(m.group(1))
    row = int(m.group(2)) - 1
    return row, col


def make_addr(row: int, col: int) -> str:
    """Build cell address from 0-based row/col."""
    return f"{index_to_col_letter(col)}{row + 1}"

"""In-memory sheet: sparse raw cell text plus the display grid.

A ``Sheet`` is the grid the evaluator reads from.  It owns the raw text
only; display values are recomputed from scratch on every read.
"""

from __future__ import annotations

from typing import Any

import polars as pl
from pydantic import BaseModel, Field

from sheetcalc.addressing import index_to_col_letter, make_addr
from sheetcalc.formulas import SENTINELS, evaluate

DEFAULT_ROWS = 30
DEFAULT_COLS = 12


def cell_key(row: int, col: int) -> str:
    """Storage key for a zero-based (row, col)."""
    return f"{row}:{col}"


def split_key(key: str) -> tuple[int, int]:
    """Inverse of :func:`cell_key`.

    Raises ValueError on a malformed key.
    """
    row, sep, col = key.partition(":")
    if not sep:
        raise ValueError(f"Invalid cell key: {key!r}")
    return int(row), int(col)


class Sheet(BaseModel):
    """A named, bounded grid of raw cell text.

    Parameters
    ----------
    name : str
        Sheet name, unique within a workbook.
    rows, cols : int
        Grid bounds.  Lookups outside them read as empty.
    cells : dict[str, str]
        Raw text keyed by ``"row:col"`` (zero-based).  Empty cells are
        absent.
    """

    name: str
    rows: int = Field(default=DEFAULT_ROWS, ge=1)
    cols: int = Field(default=DEFAULT_COLS, ge=1)
    cells: dict[str, str] = Field(default_factory=dict)

    # ------------------------------------------------------------------
    # Raw access
    # ------------------------------------------------------------------

    def in_bounds(self, row: int, col: int) -> bool:
        return 0 <= row < self.rows and 0 <= col < self.cols

    def get_cell(self, row: int, col: int) -> str:
        """Raw text at (row, col); ``""`` when empty or out of bounds."""
        if not self.in_bounds(row, col):
            return ""
        return self.cells.get(cell_key(row, col), "")

    def set_cell(self, row: int, col: int, text: str) -> None:
        """Store raw text at (row, col).  Empty text clears the cell.

        Raises:
            IndexError: If (row, col) lies outside the sheet.
        """
        if not self.in_bounds(row, col):
            raise IndexError(
                f"Cell {make_addr(row, col)} is outside sheet {self.name!r} "
                f"({self.rows} rows x {self.cols} cols)"
            )
        key = cell_key(row, col)
        if text:
            self.cells[key] = text
        else:
            self.cells.pop(key, None)

    # ------------------------------------------------------------------
    # Display
    # ------------------------------------------------------------------

    def display_value(self, row: int, col: int) -> str:
        """What the grid shows at (row, col)."""
        raw = self.get_cell(row, col)
        if not raw:
            return ""
        if raw.strip().startswith("="):
            return evaluate(raw, self.get_cell)
        return raw

    def headers(self) -> list[str]:
        """Column letters ``A``, ``B``, ... for every column."""
        return [index_to_col_letter(c) for c in range(self.cols)]

    def display_grid(self) -> list[list[str]]:
        """Display values for every cell, row-major."""
        return [
            [self.display_value(r, c) for c in range(self.cols)]
            for r in range(self.rows)
        ]

    def error_cells(self) -> list[str]:
        """Addresses of populated cells whose display value is an error."""
        found: list[tuple[int, int]] = []
        for key in self.cells:
            row, col = split_key(key)
            if self.display_value(row, col) in SENTINELS:
                found.append((row, col))
        return [make_addr(r, c) for r, c in sorted(found)]

    def to_frame(self) -> pl.DataFrame:
        """Display grid as a DataFrame with column letters as column names."""
        grid = self.display_grid()
        data: dict[str, Any] = {
            header: [row[c] for row in grid]
            for c, header in enumerate(self.headers())
        }
        return pl.DataFrame(data, schema={h: pl.Utf8 for h in data})

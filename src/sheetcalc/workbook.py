"""Workbook: a YAML file holding one or more sheets.

File format::

    version: 1
    sheets:
      - name: Budget
        rows: 30
        cols: 12
        cells:
          A1: "10"
          A4: "=SUM(A1:A3)"

Cell addresses in the file are A1-style; in memory they are stored under
zero-based ``"row:col"`` keys.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import yaml
from pydantic import ValidationError

from sheetcalc.addressing import make_addr, parse_addr
from sheetcalc.logging.events import (
    FORMULA_ERROR_CELLS,
    WORKBOOK_INVALID_CELL,
    WORKBOOK_PARSE_FAILED,
    EventLevel,
    EventType,
    emit,
    emit_error,
    emit_info,
    make_sheet_event,
)
from sheetcalc.project import DEFAULT_CONFIG
from sheetcalc.sheet import Sheet, split_key

logger = logging.getLogger(__name__)

WORKBOOK_VERSION = 1


class WorkbookError(Exception):
    """Raised when a workbook file cannot be read or is malformed.

    Attributes:
        error_code: Event error code recorded when the failure is logged.
    """

    def __init__(self, message: str, error_code: str = WORKBOOK_PARSE_FAILED) -> None:
        self.error_code = error_code
        super().__init__(message)


class Workbook:
    """An ordered collection of sheets, optionally backed by a file.

    Usage::

        wb = load_workbook(Path("workbook.yaml"))
        grid = wb.evaluate_sheet("Budget")
        wb.export_csv("Budget", Path("budget.csv"))
    """

    def __init__(self, sheets: list[Sheet], path: Path | None = None) -> None:
        names = [s.name for s in sheets]
        dupes = sorted({n for n in names if names.count(n) > 1})
        if dupes:
            raise WorkbookError(f"Duplicate sheet names: {dupes}")
        self._sheets: dict[str, Sheet] = {s.name: s for s in sheets}
        self.path = path

    @property
    def sheet_names(self) -> list[str]:
        return list(self._sheets)

    def get_sheet(self, name: str | None = None) -> Sheet:
        """Return the named sheet, or the first one when *name* is None.

        Raises:
            KeyError: If the sheet does not exist.
        """
        if name is None:
            if not self._sheets:
                raise KeyError("Workbook has no sheets")
            return next(iter(self._sheets.values()))
        if name not in self._sheets:
            raise KeyError(f"Sheet {name!r} not found. Available: {self.sheet_names}")
        return self._sheets[name]

    def set_cell(self, sheet_name: str | None, addr: str, text: str) -> None:
        """Store raw text at an A1 address.

        Raises:
            KeyError: If the sheet does not exist.
            ValueError: If *addr* is not a cell address.
            IndexError: If *addr* lies outside the sheet.
        """
        sheet = self.get_sheet(sheet_name)
        row, col = parse_addr(addr)
        sheet.set_cell(row, col, text)
        emit(make_sheet_event(
            EventType.cell_updated,
            EventLevel.info,
            f"Updated {make_addr(row, col)}",
            sheet=sheet.name,
            extra={"addr": make_addr(row, col), "text": text},
        ))

    def evaluate_sheet(self, name: str | None = None) -> list[list[str]]:
        """Compute the display grid of a sheet and log a summary event."""
        sheet = self.get_sheet(name)
        grid = sheet.display_grid()
        errors = sheet.error_cells()
        if errors:
            emit(make_sheet_event(
                EventType.sheet_evaluated,
                EventLevel.warning,
                f"{len(errors)} cell(s) show a formula error",
                sheet=sheet.name,
                error_code=FORMULA_ERROR_CELLS,
                extra={"error_cells": errors},
            ))
        else:
            emit(make_sheet_event(
                EventType.sheet_evaluated,
                EventLevel.info,
                f"Evaluated {len(sheet.cells)} populated cell(s)",
                sheet=sheet.name,
            ))
        return grid

    def export_csv(self, name: str | None, out_path: Path) -> Path:
        """Write the display grid of a sheet to CSV, headed by column letters."""
        sheet = self.get_sheet(name)
        out_path = Path(out_path)
        out_path.parent.mkdir(parents=True, exist_ok=True)
        sheet.to_frame().write_csv(out_path)
        emit(make_sheet_event(
            EventType.sheet_exported,
            EventLevel.info,
            f"Exported {sheet.rows}x{sheet.cols} grid",
            sheet=sheet.name,
            path=str(out_path),
        ))
        return out_path

    def to_spec(self) -> dict[str, Any]:
        """Serialise to the YAML file structure (A1-style cell keys)."""
        sheets = []
        for sheet in self._sheets.values():
            cells: dict[str, str] = {}
            for key in sorted(sheet.cells, key=split_key):
                row, col = split_key(key)
                cells[make_addr(row, col)] = sheet.cells[key]
            sheets.append({
                "name": sheet.name,
                "rows": sheet.rows,
                "cols": sheet.cols,
                "cells": cells,
            })
        return {"version": WORKBOOK_VERSION, "sheets": sheets}

    def save(self, path: Path | None = None) -> Path:
        """Write the workbook as YAML to *path* (default: where it was loaded)."""
        target = Path(path) if path is not None else self.path
        if target is None:
            raise WorkbookError("No path given and workbook was not loaded from a file")
        target.write_text(
            yaml.safe_dump(self.to_spec(), sort_keys=False, allow_unicode=True),
            encoding="utf-8",
        )
        self.path = target
        emit_info(EventType.workbook_saved, f"Saved {len(self._sheets)} sheet(s)", {"path": str(target)})
        return target


def _sheet_from_spec(entry: Any, config: dict[str, Any]) -> Sheet:
    if not isinstance(entry, dict) or "name" not in entry:
        raise WorkbookError(f"Sheet entry must be a mapping with a 'name': {entry!r}")
    try:
        sheet = Sheet(
            name=str(entry["name"]),
            rows=entry.get("rows", config["default_rows"]),
            cols=entry.get("cols", config["default_cols"]),
        )
    except ValidationError as exc:
        raise WorkbookError(f"Invalid sheet {entry['name']!r}: {exc}") from exc

    cells = entry.get("cells") or {}
    if not isinstance(cells, dict):
        raise WorkbookError(f"Sheet {sheet.name!r}: 'cells' must be a mapping")
    for addr, value in cells.items():
        if value is None:
            continue
        try:
            row, col = parse_addr(str(addr))
            sheet.set_cell(row, col, str(value))
        except (ValueError, IndexError) as exc:
            raise WorkbookError(f"Sheet {sheet.name!r}: {exc}", WORKBOOK_INVALID_CELL) from exc
    return sheet


def load_workbook(path: Path, config: dict[str, Any] | None = None) -> Workbook:
    """Load a workbook YAML file.

    Args:
        path: Path to the workbook file.
        config: Project config; supplies default sheet bounds.

    Raises:
        WorkbookError: If the file is unreadable or malformed.
    """
    path = Path(path)
    cfg = {**DEFAULT_CONFIG, **(config or {})}
    try:
        try:
            spec = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise WorkbookError(f"Cannot read workbook {path}: {exc}") from exc
        if not isinstance(spec, dict):
            raise WorkbookError(f"Workbook {path} must be a mapping")
        version = spec.get("version", WORKBOOK_VERSION)
        if version != WORKBOOK_VERSION:
            raise WorkbookError(f"Unsupported workbook version {version!r} in {path}")
        entries = spec.get("sheets") or []
        if not isinstance(entries, list):
            raise WorkbookError(f"Workbook {path}: 'sheets' must be a list")
        sheets = [_sheet_from_spec(entry, cfg) for entry in entries]
        wb = Workbook(sheets, path=path)
    except WorkbookError as exc:
        emit_error(EventType.workbook_load_failed, str(exc), {"path": str(path)}, error_code=exc.error_code)
        raise

    logger.debug("loaded workbook %s with sheets %s", path, wb.sheet_names)
    for sheet in sheets:
        emit(make_sheet_event(
            EventType.sheet_loaded,
            EventLevel.info,
            f"Loaded {len(sheet.cells)} cell(s)",
            sheet=sheet.name,
            path=str(path),
        ))
    return wb

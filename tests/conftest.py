"""Shared fixtures."""

from __future__ import annotations

from typing import Callable

import pytest

import sheetcalc.logging.events as events_mod
from sheetcalc.addressing import parse_addr

Lookup = Callable[[int, int], str]


@pytest.fixture
def make_grid() -> Callable[[dict[str, str]], Lookup]:
    """Factory: build a grid lookup from A1-style addresses."""

    def _make(cells: dict[str, str]) -> Lookup:
        grid = {parse_addr(addr): text for addr, text in cells.items()}
        return lambda row, col: grid.get((row, col), "")

    return _make


@pytest.fixture(autouse=True)
def _reset_event_sink():
    """Keep the module-level sink from leaking between tests."""
    old_sink, old_dir = events_mod._sink, events_mod._project_dir
    events_mod._sink = None
    events_mod._project_dir = None
    yield
    events_mod._sink, events_mod._project_dir = old_sink, old_dir

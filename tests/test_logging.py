"""Tests for the sheetcalc structured event logging system."""

from __future__ import annotations

import json
from pathlib import Path

import pytest


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------


@pytest.fixture
def project_dir(tmp_path: Path) -> Path:
    """Create a minimal project directory."""
    (tmp_path / "logs").mkdir()
    return tmp_path


@pytest.fixture
def sink(project_dir: Path):
    from sheetcalc.logging.sink import EventSink

    return EventSink(project_dir)


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestSheetEvent:
    def test_event_defaults(self):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent

        evt = SheetEvent(
            level=EventLevel.info,
            event_type=EventType.sheet_loaded,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "sheet_loaded"
        assert evt.context == {}
        assert evt.error_code is None

    def test_event_serialization(self):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent

        evt = SheetEvent(
            level=EventLevel.warning,
            event_type=EventType.sheet_evaluated,
            message="errors",
        )
        d = evt.model_dump(mode="json")
        assert d["level"] == "warning"
        assert d["event_type"] == "sheet_evaluated"

    def test_all_event_types_exist(self):
        from sheetcalc.logging.events import EventType

        expected = {
            "sheet_loaded", "sheet_evaluated", "sheet_exported",
            "cell_updated", "workbook_saved", "workbook_load_failed",
        }
        assert {e.value for e in EventType} == expected

    def test_make_sheet_event(self):
        from sheetcalc.logging.events import EventLevel, EventType, make_sheet_event

        evt = make_sheet_event(
            EventType.sheet_exported,
            EventLevel.info,
            "done",
            sheet="Budget",
            path="out.csv",
            extra={"rows": 3},
        )
        assert evt.context == {"sheet": "Budget", "path": "out.csv", "rows": 3}


# ---------------------------------------------------------------------------
# B) Context truncation and attribution
# ---------------------------------------------------------------------------


class TestContextRules:
    def test_long_values_truncated(self):
        from sheetcalc.logging.events import truncate_context

        ctx = truncate_context({"text": "x" * 300, "nested": {"items": ["y" * 300]}, "n": 5})
        assert ctx["text"].endswith("...[truncated]")
        assert len(ctx["text"]) == 256 + len("...[truncated]")
        assert ctx["nested"]["items"][0].endswith("...[truncated]")
        assert ctx["n"] == 5

    def test_missing_attribution_downgrades(self):
        from sheetcalc.logging.events import (
            EventLevel,
            EventType,
            SheetEvent,
            _validate_attribution,
        )

        evt = SheetEvent(
            level=EventLevel.info,
            event_type=EventType.cell_updated,
            context={"sheet": "S"},
        )
        checked = _validate_attribution(evt)
        assert checked.level == EventLevel.warning
        assert checked.context["_missing_attribution"] == ["addr"]
        # Original untouched
        assert evt.level == EventLevel.info

    def test_complete_attribution_unchanged(self):
        from sheetcalc.logging.events import (
            EventLevel,
            EventType,
            SheetEvent,
            _validate_attribution,
        )

        evt = SheetEvent(
            level=EventLevel.info,
            event_type=EventType.workbook_saved,
            context={"path": "wb.yaml"},
        )
        assert _validate_attribution(evt) is evt


# ---------------------------------------------------------------------------
# C) Filesystem NDJSON sink
# ---------------------------------------------------------------------------


class TestEventSink:
    def test_write_creates_global_log(self, sink, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent

        sink.write(SheetEvent(
            level=EventLevel.info,
            event_type=EventType.workbook_saved,
            message="saved",
        ))

        log_path = project_dir / "logs" / "events.ndjson"
        lines = log_path.read_text().strip().splitlines()
        assert len(lines) == 1
        parsed = json.loads(lines[0])
        assert parsed["message"] == "saved"
        assert list(parsed) == sorted(parsed)

    def test_write_creates_sheet_log(self, sink, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent

        sink.write(SheetEvent(
            level=EventLevel.info,
            event_type=EventType.sheet_loaded,
            context={"sheet": "Budget_2024"},
        ))
        assert (project_dir / "logs" / "sheets" / "Budget_2024.ndjson").exists()

    def test_unsafe_sheet_name_not_scoped(self, sink, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent

        sink.write(SheetEvent(
            level=EventLevel.info,
            event_type=EventType.sheet_loaded,
            context={"sheet": "../escape"},
        ))
        assert list((project_dir / "logs" / "sheets").iterdir()) == []
        assert sink.read_sheet_log("../escape") == []

    def test_read_global_most_recent_first(self, sink):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent

        for i in range(5):
            sink.write(SheetEvent(
                level=EventLevel.info,
                event_type=EventType.sheet_evaluated,
                message=f"eval {i}",
            ))

        events = sink.read_global()
        assert [e["message"] for e in events] == [f"eval {i}" for i in range(4, -1, -1)]
        assert len(sink.read_global(limit=2)) == 2

    def test_read_global_filters(self, sink):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent

        sink.write(SheetEvent(
            level=EventLevel.info,
            event_type=EventType.sheet_loaded,
            context={"sheet": "A"},
        ))
        sink.write(SheetEvent(
            level=EventLevel.error,
            event_type=EventType.workbook_load_failed,
            context={"path": "x.yaml"},
        ))

        assert len(sink.read_global(level="error")) == 1
        assert len(sink.read_global(event_type="sheet_loaded")) == 1
        assert sink.read_global(sheet="A")[0]["context"]["sheet"] == "A"

    def test_tail_read_drops_partial_line(self, project_dir):
        from sheetcalc.logging.events import EventLevel, EventType, SheetEvent
        from sheetcalc.logging.sink import EventSink

        sink = EventSink(project_dir, tail_bytes=300)
        for i in range(10):
            sink.write(SheetEvent(
                level=EventLevel.info,
                event_type=EventType.sheet_evaluated,
                message=f"eval {i}",
            ))
        events = sink.read_global()
        assert 0 < len(events) < 10
        assert events[0]["message"] == "eval 9"

    def test_read_missing_log_returns_empty(self, sink):
        assert sink.read_global() == []
        assert sink.read_sheet_log("nonexistent") == []


# ---------------------------------------------------------------------------
# D) Module-level emit helpers (safety)
# ---------------------------------------------------------------------------


class TestEmitHelpers:
    def test_emit_without_project_dir_is_noop(self, tmp_path):
        from sheetcalc.logging.events import EventType, emit_info

        emit_info(EventType.workbook_saved, "nothing", {"path": "p"})
        assert not (tmp_path / "logs").exists()

    def test_emit_writes_after_set_project_dir(self, tmp_path):
        from sheetcalc.logging.events import EventType, emit_warning, set_project_dir

        set_project_dir(tmp_path)
        emit_warning(EventType.sheet_evaluated, "w", {"sheet": "S"}, error_code="formula_error_cells")
        line = (tmp_path / "logs" / "events.ndjson").read_text().strip()
        parsed = json.loads(line)
        assert parsed["level"] == "warning"
        assert parsed["error_code"] == "formula_error_cells"

    def test_emit_applies_attribution(self, tmp_path):
        from sheetcalc.logging.events import EventType, emit_info, set_project_dir

        set_project_dir(tmp_path)
        emit_info(EventType.sheet_loaded, "no sheet key")
        parsed = json.loads((tmp_path / "logs" / "events.ndjson").read_text())
        assert parsed["level"] == "warning"
        assert parsed["context"]["_missing_attribution"] == ["sheet"]

    def test_emit_never_raises(self, capsys):
        import sheetcalc.logging.events as mod

        class BrokenSink:
            def write(self, event):
                raise OSError("disk full")

        mod._sink = BrokenSink()
        mod._last_stderr_ts = None
        mod.emit_error(mod.EventType.workbook_load_failed, "boom", {"path": "p"})
        assert "logging failed" in capsys.readouterr().err

"""Tests for the cellcalc structured event logging system."""

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
    from cellcalc.logging.sink import EventSink

    return EventSink(project_dir)


@pytest.fixture
def engine_log(project_dir: Path):
    """Point the module-level sink at *project_dir*; restore it afterwards."""
    import cellcalc.logging.events as mod

    old_sink, old_dir = mod._sink, mod._project_dir
    mod.set_project_dir(project_dir)
    try:
        yield project_dir / "logs" / "events.ndjson"
    finally:
        mod._sink, mod._project_dir = old_sink, old_dir


def _read_lines(path: Path) -> list[dict]:
    return [json.loads(line) for line in path.read_text().strip().splitlines()]


# ---------------------------------------------------------------------------
# A) Event schema
# ---------------------------------------------------------------------------


class TestCalcEvent:
    def test_event_defaults(self):
        from cellcalc.logging.events import CalcEvent, EventLevel, EventType

        evt = CalcEvent(
            level=EventLevel.info,
            event_type=EventType.sheet_recalculated,
            message="hello",
        )
        assert evt.schema_version == 1
        assert evt.ts.endswith("Z")
        assert evt.level == "info"
        assert evt.event_type == "sheet_recalculated"
        assert evt.context == {}
        assert evt.error_code is None

    def test_event_with_error_code(self):
        from cellcalc.logging.events import CalcEvent, EventLevel, EventType

        evt = CalcEvent(
            level=EventLevel.error,
            event_type=EventType.formula_failed,
            message="failed",
            error_code="formula_parse_error",
            context={"formula": "=(1"},
        )
        assert evt.error_code == "formula_parse_error"
        assert evt.context["formula"] == "=(1"

    def test_event_serialization(self):
        from cellcalc.logging.events import CalcEvent, EventLevel, EventType

        evt = CalcEvent(
            level=EventLevel.warning,
            event_type=EventType.formula_unknown_function,
            message="Unknown function: FOO",
        )
        d = evt.model_dump(mode="json")
        assert d["level"] == "warning"
        assert d["event_type"] == "formula_unknown_function"

    def test_all_event_types_exist(self):
        from cellcalc.logging.events import EventType

        expected = {
            "formula_failed",
            "formula_unknown_function",
            "formula_depth_exceeded",
            "sheet_recalculated",
        }
        assert {e.value for e in EventType} == expected

    def test_error_codes_are_strings(self):
        from cellcalc.logging import events

        codes = [
            events.FORMULA_PARSE_ERROR,
            events.FORMULA_FUNCTION_ERROR,
            events.FORMULA_DEPTH_ERROR,
            events.FORMULA_INTERNAL_ERROR,
            events.FORMULA_UNKNOWN_FUNCTION,
        ]
        for code in codes:
            assert isinstance(code, str)
            assert len(code) > 0


class TestTruncateContext:
    def test_long_strings_are_cut(self):
        from cellcalc.logging.events import truncate_context

        out = truncate_context({"formula": "x" * 300, "n": 5})
        assert out["formula"] == "x" * 256 + "...[truncated]"
        assert out["n"] == 5

    def test_nested_values(self):
        from cellcalc.logging.events import truncate_context

        out = truncate_context({"outer": {"inner": "y" * 300}, "items": ["z" * 300, 1]})
        assert out["outer"]["inner"].endswith("...[truncated]")
        assert out["items"][0].endswith("...[truncated]")
        assert out["items"][1] == 1

    def test_input_not_modified(self):
        from cellcalc.logging.events import truncate_context

        ctx = {"formula": "x" * 300}
        truncate_context(ctx)
        assert len(ctx["formula"]) == 300


# ---------------------------------------------------------------------------
# B) Filesystem NDJSON sink
# ---------------------------------------------------------------------------


def _event(message: str, level: str = "info", event_type: str = "sheet_recalculated"):
    from cellcalc.logging.events import CalcEvent

    return CalcEvent(level=level, event_type=event_type, message=message)


class TestEventSink:
    def test_creates_logs_dir(self, tmp_path):
        from cellcalc.logging.sink import EventSink

        sink = EventSink(tmp_path / "proj")
        assert sink.logs_dir.is_dir()
        assert sink.path == tmp_path / "proj" / "logs" / "events.ndjson"

    def test_write_creates_global_log(self, sink, project_dir):
        sink.write(_event("test recalc"))

        log_path = project_dir / "logs" / "events.ndjson"
        assert log_path.exists()
        lines = _read_lines(log_path)
        assert len(lines) == 1
        assert lines[0]["message"] == "test recalc"
        assert lines[0]["level"] == "info"

    def test_json_sort_keys(self, sink, project_dir):
        sink.write(_event("m"))

        line = (project_dir / "logs" / "events.ndjson").read_text().strip()
        keys = list(json.loads(line).keys())
        assert keys == sorted(keys)

    def test_append_mode(self, sink, project_dir):
        for i in range(3):
            sink.write(_event(f"pass {i}"))

        assert len(_read_lines(project_dir / "logs" / "events.ndjson")) == 3

    def test_fsync_write(self, project_dir):
        from cellcalc.logging.sink import EventSink

        sink = EventSink(project_dir, fsync=True)
        sink.write(_event("synced"))
        assert sink.read_global()[0]["message"] == "synced"

    def test_read_global_returns_most_recent_first(self, sink):
        for i in range(5):
            sink.write(_event(f"pass {i}"))

        events = sink.read_global()
        assert len(events) == 5
        assert events[0]["message"] == "pass 4"
        assert events[4]["message"] == "pass 0"

    def test_read_global_filter_by_level(self, sink):
        sink.write(_event("info msg"))
        sink.write(_event("error msg", level="error", event_type="formula_failed"))

        errors = sink.read_global(level="error")
        assert len(errors) == 1
        assert errors[0]["message"] == "error msg"

    def test_read_global_filter_by_event_type(self, sink):
        sink.write(_event("recalc"))
        sink.write(_event("unknown", level="warning", event_type="formula_unknown_function"))

        results = sink.read_global(event_type="formula_unknown_function")
        assert [e["message"] for e in results] == ["unknown"]

    def test_read_global_limit(self, sink):
        for i in range(10):
            sink.write(_event(f"pass {i}"))

        assert len(sink.read_global(limit=3)) == 3

    def test_read_skips_malformed_lines(self, sink, project_dir):
        sink.write(_event("good"))
        with open(project_dir / "logs" / "events.ndjson", "a") as f:
            f.write("{not json\n")

        events = sink.read_global()
        assert [e["message"] for e in events] == ["good"]

    def test_tail_read_bounds_memory(self, project_dir):
        from cellcalc.logging.sink import EventSink

        sink = EventSink(project_dir, tail_bytes=400)
        for i in range(20):
            sink.write(_event(f"pass {i}"))

        events = sink.read_global()
        assert 0 < len(events) < 20
        assert events[0]["message"] == "pass 19"

    def test_tail_cut_mid_record_is_dropped(self, project_dir):
        from cellcalc.logging.sink import EventSink

        sink = EventSink(project_dir, tail_bytes=10_000)
        sink.write(_event("x" * 300))
        sink.write(_event("newest"))
        size = sink.path.stat().st_size

        short = EventSink(project_dir, tail_bytes=size - 100)
        assert [e["message"] for e in short.read_global()] == ["newest"]

    def test_read_missing_log_returns_empty(self, sink):
        assert sink.read_global() == []


# ---------------------------------------------------------------------------
# C) Module-level emit helpers (safety)
# ---------------------------------------------------------------------------


class TestEmitHelpers:
    def test_emit_without_project_dir_is_noop(self):
        """emit() should silently discard events when no project dir is set."""
        import cellcalc.logging.events as mod

        old_sink = mod._sink
        mod._sink = None
        try:
            from cellcalc.logging.events import EventType, emit_info

            emit_info(EventType.sheet_recalculated, "test")
        finally:
            mod._sink = old_sink

    def test_set_project_dir_enables_logging(self, engine_log):
        from cellcalc.logging.events import EventType, emit_info

        emit_info(EventType.sheet_recalculated, "hello from test")

        lines = _read_lines(engine_log)
        assert len(lines) == 1
        assert lines[0]["message"] == "hello from test"

    def test_emit_error_sets_error_code(self, engine_log):
        from cellcalc.logging.events import EventType, emit_error

        emit_error(EventType.formula_failed, "boom", error_code="formula_internal_error")

        parsed = _read_lines(engine_log)[0]
        assert parsed["error_code"] == "formula_internal_error"
        assert parsed["level"] == "error"

    def test_emit_warning(self, engine_log):
        from cellcalc.logging.events import EventType, emit_warning

        emit_warning(EventType.formula_unknown_function, "Unknown function: FOO")

        assert _read_lines(engine_log)[0]["level"] == "warning"

    def test_emit_truncates_context(self, engine_log):
        from cellcalc.logging.events import EventType, emit_info

        emit_info(EventType.sheet_recalculated, "long", {"formula": "=" + "A" * 400})

        formula = _read_lines(engine_log)[0]["context"]["formula"]
        assert formula.endswith("...[truncated]")

    def test_sink_failure_is_swallowed(self, capsys):
        import cellcalc.logging.events as mod

        class BrokenSink:
            def write(self, event):
                raise OSError("disk full")

        old_sink, old_ts = mod._sink, mod._last_stderr_ts
        mod._sink = BrokenSink()
        mod._last_stderr_ts = -1e9
        try:
            mod.emit_info(mod.EventType.sheet_recalculated, "lost")
        finally:
            mod._sink, mod._last_stderr_ts = old_sink, old_ts

        assert "[cellcalc] logging failed" in capsys.readouterr().err

    def test_logging_disabled_by_config(self, tmp_path):
        import cellcalc.logging.events as mod

        (tmp_path / "cellcalc.yaml").write_text("logging_enabled: false\n")
        old_sink = mod._sink
        try:
            mod.set_project_dir(tmp_path)
            assert mod._sink is None
            mod.emit_info(mod.EventType.sheet_recalculated, "dropped")
        finally:
            mod._sink = old_sink

        assert not (tmp_path / "logs" / "events.ndjson").exists()


# ---------------------------------------------------------------------------
# D) Engine events
# ---------------------------------------------------------------------------


class TestEngineEvents:
    def test_unknown_function_warning(self, engine_log):
        from cellcalc import evaluate

        evaluate("=NOSUCH(1)", {})

        evt = _read_lines(engine_log)[-1]
        assert evt["event_type"] == "formula_unknown_function"
        assert evt["level"] == "warning"
        assert evt["context"] == {"function": "NOSUCH"}
        assert evt["error_code"] == "formula_unknown_function"

    def test_parse_failure_error(self, engine_log):
        from cellcalc import evaluate

        evaluate("=(1+2)", {})

        evt = _read_lines(engine_log)[-1]
        assert evt["event_type"] == "formula_failed"
        assert evt["level"] == "error"
        assert evt["error_code"] == "formula_parse_error"
        assert evt["context"]["formula"] == "=(1+2)"

    def test_function_failure_error(self, engine_log):
        from cellcalc import evaluate

        evaluate("=NOT(1, 2)", {})

        evt = _read_lines(engine_log)[-1]
        assert evt["event_type"] == "formula_failed"
        assert evt["error_code"] == "formula_function_error"

    def test_depth_exceeded_warning(self, engine_log):
        from cellcalc import evaluate

        evaluate("=ABS(ABS(ABS(1)))", {}, max_depth=2)

        events = _read_lines(engine_log)
        assert len(events) == 1
        assert events[0]["event_type"] == "formula_depth_exceeded"
        assert events[0]["error_code"] == "formula_depth_error"
        assert events[0]["context"]["limit"] == 2

    def test_successful_evaluation_is_silent(self, engine_log):
        from cellcalc import evaluate

        evaluate("=SUM(1, 2)", {})
        assert not engine_log.exists()

    def test_recalculate_emits_summary(self, engine_log):
        from cellcalc.sheet import recalculate

        cells = {"0,0": {"value": 2}, "0,1": {"formula": "=A1*2"}}
        recalculate(cells)

        evt = _read_lines(engine_log)[-1]
        assert evt["event_type"] == "sheet_recalculated"
        assert evt["level"] == "info"
        assert evt["context"]["formula_cells"] == 1

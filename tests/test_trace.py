from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path

import pytest

from coupling_sim.core import CouplingEngine
from coupling_sim.events import CouplingEvent, EventType
from coupling_sim.io import ConfigLoader, TraceFile, format_event, trace_file_name


EXAMPLES = Path(__file__).resolve().parents[1] / "examples"


def _event(event_type: EventType, **fields: object) -> CouplingEvent:
    return CouplingEvent(event_id="evt-1", seq=0, correlation_id="River", time=58001.0, type=event_type, **fields)


def test_trace_file_name_uses_model_and_host() -> None:
    assert trace_file_name("River", "node7") == "Trace-River-node7.txt"


@pytest.mark.parametrize(
    ("event", "expected"),
    [
        (_event(EventType.STEP_BEGIN), "PerformTimeStep Begin 58001"),
        (_event(EventType.STEP_END), "PerformTimeStep End 58001"),
        (
            _event(EventType.GET_VALUES, quantity_id="Level", element_set_id="Reach", value_count=3),
            "GetValues: Level/Reach/58001 (3)",
        ),
        (
            _event(EventType.ERROR, payload={"reason": "upstream_unresolved", "message": "cycle"}),
            "EXCEPTION: upstream_unresolved cycle",
        ),
        (_event(EventType.FINISHED), "Finish"),
    ],
)
def test_format_event(event: CouplingEvent, expected: str) -> None:
    assert format_event(event) == expected


def test_trace_lines_are_timestamped(tmp_path: Path) -> None:
    trace = TraceFile("River", tmp_path, host_name="host", clock=lambda: datetime(2017, 9, 4, 12, 30))
    trace.append("hello")
    trace.close()
    assert trace.path.read_text(encoding="utf-8") == "2017-09-04T12:30:00 hello\n"


def test_trace_write_failure_is_logged_not_raised(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    trace = TraceFile("River", tmp_path, host_name="host")
    trace._stream.close()  # noqa: SLF001
    with caplog.at_level(logging.WARNING, logger="coupling_sim.io.trace"):
        trace.append("lost line")
    assert "failed to write to trace" in caplog.text


def test_trace_open_failure_is_logged_not_raised(tmp_path: Path, caplog: pytest.LogCaptureFixture) -> None:
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("", encoding="utf-8")
    with caplog.at_level(logging.WARNING, logger="coupling_sim.io.trace"):
        trace = TraceFile("River", blocker, host_name="host")
        trace.append("ignored")
    assert "failed to open trace file" in caplog.text


def test_engine_writes_trace_for_lifecycle(tmp_path: Path) -> None:
    engine = CouplingEngine(trace_dir=str(tmp_path), sleep=lambda _seconds: None)
    assert engine.initialize(
        {
            "ConfigFile": str(EXAMPLES / "SimpleComponent.xml"),
            "ElementSetFile": str(EXAMPLES / "ElementSets.xml"),
        }
    )
    trace_path = Path(engine.trace_path)
    assert trace_path.parent == tmp_path
    assert trace_path.name.startswith("Trace-SimpleRiver-")

    engine.perform_time_step()
    engine.get_values("WaterLevel", "Gauges")
    engine.finish()

    lines = trace_path.read_text(encoding="utf-8").splitlines()
    messages = [line.split(" ", 1)[1] for line in lines]
    assert messages[0].startswith("Initialize SimpleRiver")
    assert "PerformTimeStep Begin 58000" in messages
    assert "PerformTimeStep End 58001" in messages
    assert "GetValues: WaterLevel/Gauges/58001 (3)" in messages
    assert messages[-1] == "Finish"
    assert engine.trace_path is None


def test_failed_initialize_is_traced(tmp_path: Path) -> None:
    payload = {
        "model_id": "Broken",
        "time_horizon": {"start": 58000.0, "end": 58001.0, "time_step_seconds": 60},
        "extras": {"processingTime": "soon"},
    }
    engine = CouplingEngine(trace_dir=str(tmp_path))
    assert engine.initialize(description=ConfigLoader().load_data(payload)) is False

    traces = list(tmp_path.glob("Trace-Broken-*.txt"))
    assert len(traces) == 1
    assert "EXCEPTION: initialize_failed" in traces[0].read_text(encoding="utf-8")


def test_successful_reinitialize_reopens_trace_under_model_id(tmp_path: Path) -> None:
    engine = CouplingEngine(trace_dir=str(tmp_path), sleep=lambda _seconds: None)
    assert engine.initialize({}) is False
    failed_trace = Path(engine.trace_path)
    assert failed_trace.name.startswith("Trace-component-")

    assert engine.initialize(
        {
            "ConfigFile": str(EXAMPLES / "SimpleComponent.xml"),
            "ElementSetFile": str(EXAMPLES / "ElementSets.xml"),
        }
    )
    trace_path = Path(engine.trace_path)
    assert trace_path.name.startswith("Trace-SimpleRiver-")
    engine.finish()

    assert "EXCEPTION: initialize_failed" in failed_trace.read_text(encoding="utf-8")
    messages = [line.split(" ", 1)[1] for line in trace_path.read_text(encoding="utf-8").splitlines()]
    assert messages[0].startswith("Initialize SimpleRiver")
    assert messages[-1] == "Finish"

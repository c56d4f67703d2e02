"""Append-only, timestamped trace file fed from the engine event stream."""

from __future__ import annotations

from datetime import datetime
import logging
from pathlib import Path
import socket
from typing import Callable, TextIO

from coupling_sim.events import CouplingEvent, EventType


logger = logging.getLogger(__name__)


def trace_file_name(model_id: str, host_name: str | None = None) -> str:
    host = host_name if host_name is not None else socket.gethostname()
    return f"Trace-{model_id}-{host}.txt"


class TraceFile:
    """Human-readable lifecycle log; write failures never reach the engine."""

    def __init__(
        self,
        model_id: str,
        directory: str | Path = ".",
        *,
        host_name: str | None = None,
        include_timestamp: bool = True,
        echo: bool = False,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.path = Path(directory) / trace_file_name(model_id, host_name)
        self._include_timestamp = include_timestamp
        self._echo = echo
        self._clock = clock
        self._stream: TextIO | None = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            self._stream = self.path.open("w", encoding="utf-8")
        except OSError as exc:
            logger.warning("failed to open trace file %s: %s", self.path, exc)

    def append(self, message: str) -> None:
        line = message
        if self._include_timestamp:
            line = f"{self._clock().strftime('%Y-%m-%dT%H:%M:%S')} {message}"
        if self._echo:
            print(message)
        if self._stream is None:
            return
        try:
            self._stream.write(line + "\n")
            self._stream.flush()
        except (OSError, ValueError) as exc:
            logger.warning("failed to write to trace %s: %s", self.path, exc)

    def consume(self, event: CouplingEvent) -> None:
        self.append(format_event(event))
        if event.type == EventType.FINISHED:
            self.close()

    def close(self) -> None:
        if self._stream is None:
            return
        try:
            self._stream.close()
        except OSError as exc:
            logger.warning("failed to close trace %s: %s", self.path, exc)
        self._stream = None


def format_event(event: CouplingEvent) -> str:
    payload = event.payload
    if event.type == EventType.INITIALIZED:
        return (
            f"Initialize {event.correlation_id} TimeHorizon:{payload.get('start')}-{payload.get('end')} "
            f"TimeStep:{payload.get('time_step_seconds')} ProcessingTime:{payload.get('processing_time')}"
        )
    if event.type == EventType.STEP_BEGIN:
        return f"PerformTimeStep Begin {event.time:g}"
    if event.type == EventType.STEP_END:
        return f"PerformTimeStep End {event.time:g}"
    if event.type in (EventType.GET_VALUES, EventType.SET_VALUES, EventType.PULL):
        label = {
            EventType.GET_VALUES: "GetValues",
            EventType.SET_VALUES: "SetValues",
            EventType.PULL: "Pull",
        }[event.type]
        return f"{label}: {event.quantity_id}/{event.element_set_id}/{event.time:g} ({event.value_count})"
    if event.type == EventType.ERROR:
        return f"EXCEPTION: {payload.get('reason', '')} {payload.get('message', '')}".rstrip()
    if event.type == EventType.CANCELLED:
        return f"Cancelled {event.time:g}"
    return "Finish"

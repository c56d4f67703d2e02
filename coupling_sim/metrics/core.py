"""Default metrics implementation."""

from __future__ import annotations

from collections import defaultdict

from coupling_sim.events import CouplingEvent, EventType

from .base import IMetric


class ExchangeMetrics(IMetric):
    """Aggregate stepping and value-exchange counters from the event stream."""

    def __init__(self) -> None:
        self.reset()

    def reset(self) -> None:
        self._steps = 0
        self._get_calls: dict[str, int] = defaultdict(int)
        self._set_calls: dict[str, int] = defaultdict(int)
        self._values_out = 0
        self._values_in = 0
        self._missing_served = 0
        self._pulls = 0
        self._errors = 0
        self._event_count = 0
        self._first_time: float | None = None
        self._last_time: float | None = None

    def consume(self, event: CouplingEvent) -> None:
        self._event_count += 1
        if self._first_time is None:
            self._first_time = event.time
        self._last_time = event.time

        if event.type == EventType.STEP_END:
            self._steps += 1

        elif event.type == EventType.GET_VALUES:
            self._get_calls[_slot_label(event)] += 1
            self._values_out += event.value_count or 0
            missing = event.payload.get("missing_count")
            if isinstance(missing, int):
                self._missing_served += missing

        elif event.type == EventType.SET_VALUES:
            self._set_calls[_slot_label(event)] += 1
            self._values_in += event.value_count or 0

        elif event.type == EventType.PULL:
            self._pulls += 1

        elif event.type == EventType.ERROR:
            self._errors += 1

    def report(self) -> dict:
        return {
            "steps_performed": self._steps,
            "get_values_calls": dict(self._get_calls),
            "set_values_calls": dict(self._set_calls),
            "values_served": self._values_out,
            "values_received": self._values_in,
            "missing_values_served": self._missing_served,
            "pull_count": self._pulls,
            "error_count": self._errors,
            "event_count": self._event_count,
            "first_time": self._first_time,
            "last_time": self._last_time,
        }


def _slot_label(event: CouplingEvent) -> str:
    return f"{event.quantity_id}/{event.element_set_id}"

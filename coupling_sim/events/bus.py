"""Event bus with sequence assignment."""

from __future__ import annotations

import uuid
from typing import Callable

from .types import CouplingEvent, EventType


EventHandler = Callable[[CouplingEvent], None]


class EventBus:
    """Simple in-process pub/sub event bus."""

    def __init__(self, *, event_id_mode: str = "deterministic") -> None:
        self._handlers: list[EventHandler] = []
        self._seq = 0
        self._event_id_mode = event_id_mode.lower().strip()

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def unsubscribe(self, handler: EventHandler) -> None:
        if handler in self._handlers:
            self._handlers.remove(handler)

    def _next_event_id(self) -> str:
        if self._event_id_mode == "random":
            return str(uuid.uuid4())
        return f"evt-{self._seq:08d}"

    def publish(
        self,
        *,
        event_type: EventType,
        time: float,
        correlation_id: str,
        quantity_id: str | None = None,
        element_set_id: str | None = None,
        value_count: int | None = None,
        payload: dict | None = None,
    ) -> CouplingEvent:
        event = CouplingEvent(
            event_id=self._next_event_id(),
            seq=self._seq,
            correlation_id=correlation_id,
            time=time,
            type=event_type,
            quantity_id=quantity_id,
            element_set_id=element_set_id,
            value_count=value_count,
            payload=payload or {},
        )
        self._seq += 1
        for handler in list(self._handlers):
            handler(event)
        return event

"""Event exports."""

from .bus import EventBus, EventHandler
from .types import CouplingEvent, EventType

__all__ = ["CouplingEvent", "EventBus", "EventHandler", "EventType"]

"""Model package exports."""

from .runtime import EngineRuntimeState, ExchangeSlot, LifecyclePhase, SlotKey, SlotRole
from .spec import (
    ComponentDescription,
    Element,
    ElementKind,
    ElementSet,
    ExchangeItem,
    Quantity,
    TimeHorizonSpec,
    ValueKind,
    Vertex,
)
from .time import TimeOrdering, TimeSpan, TimeStamp, add_seconds, compare
from .units import DEFAULT_UNIT, Dimension, DimensionBase, Unit, convert, from_si, to_si

__all__ = [
    "ComponentDescription",
    "DEFAULT_UNIT",
    "Dimension",
    "DimensionBase",
    "Element",
    "ElementKind",
    "ElementSet",
    "EngineRuntimeState",
    "ExchangeItem",
    "ExchangeSlot",
    "LifecyclePhase",
    "Quantity",
    "SlotKey",
    "SlotRole",
    "TimeHorizonSpec",
    "TimeOrdering",
    "TimeSpan",
    "TimeStamp",
    "Unit",
    "ValueKind",
    "Vertex",
    "add_seconds",
    "compare",
    "convert",
    "from_si",
    "to_si",
]

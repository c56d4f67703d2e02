"""Runtime types owned by one coupling engine instance."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from .spec import ElementSet, ExchangeItem, Quantity
from .time import TimeStamp


class LifecyclePhase(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZED = "initialized"
    STEPPING = "stepping"
    FINISHED = "finished"
    FAILED = "failed"


class SlotRole(str, Enum):
    INPUT = "input"
    OUTPUT = "output"


SlotKey = tuple[str, str]


@dataclass(slots=True)
class ExchangeSlot:
    """Typed slot descriptor resolved once at initialize and looked up by key."""

    role: SlotRole
    quantity: Quantity
    element_set: ElementSet
    values: list[float]
    staged: Optional[list[float]] = None
    updated_at: Optional[TimeStamp] = None

    @classmethod
    def from_item(
        cls,
        role: SlotRole,
        item: ExchangeItem,
        element_set: ElementSet,
        missing_value: float,
    ) -> "ExchangeSlot":
        return cls(
            role=role,
            quantity=item.quantity,
            element_set=element_set,
            values=[missing_value] * element_set.element_count,
        )

    @property
    def key(self) -> SlotKey:
        return (self.quantity.id, self.element_set.id)

    @property
    def element_count(self) -> int:
        return self.element_set.element_count


@dataclass(slots=True)
class EngineRuntimeState:
    """Mutable engine state: the time cursor and the lifecycle phase."""

    phase: LifecyclePhase = LifecyclePhase.UNINITIALIZED
    current_time: Optional[TimeStamp] = None
    last_consumed_time: Optional[TimeStamp] = None
    steps_performed: int = 0
    in_step: bool = False
    cancel_requested: bool = False
    inputs: dict[SlotKey, ExchangeSlot] = field(default_factory=dict)
    outputs: dict[SlotKey, ExchangeSlot] = field(default_factory=dict)

"""Linkable engine interface."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable, Sequence

from coupling_sim.events import CouplingEvent
from coupling_sim.model import ComponentDescription, ExchangeSlot, TimeSpan, TimeStamp


class ILinkableEngine(ABC):
    """Pull-based coupling contract every component engine satisfies."""

    @abstractmethod
    def initialize(
        self,
        properties: dict[str, str] | None = None,
        *,
        description: ComponentDescription | None = None,
    ) -> bool:
        """Load configuration and build the exchange surface."""

    @abstractmethod
    def perform_time_step(self) -> bool:
        """Advance exactly one time step."""

    @abstractmethod
    def get_values(
        self,
        quantity_id: str,
        element_set_id: str,
        time: TimeStamp | float | None = None,
    ) -> list[float]:
        """Return output values, advancing first when the requested time is ahead."""

    @abstractmethod
    def set_values(self, quantity_id: str, element_set_id: str, values: Sequence[float]) -> None:
        """Stage input values for the next time step."""

    @abstractmethod
    def finish(self) -> None:
        """Release engine resources (idempotent)."""

    @abstractmethod
    def output_slot(self, quantity_id: str, element_set_id: str) -> ExchangeSlot:
        """Resolve an output slot by exact identifiers."""

    @abstractmethod
    def get_current_time(self) -> TimeStamp:
        """Return the engine's time cursor."""

    @abstractmethod
    def get_earliest_needed_time(self) -> TimeStamp:
        """Return the earliest instant not yet consumed."""

    @abstractmethod
    def get_time_horizon(self) -> TimeSpan:
        """Return the simulation horizon."""

    @abstractmethod
    def get_missing_value_definition(self) -> float:
        """Return the missing-value sentinel."""

    @abstractmethod
    def subscribe(self, handler: Callable[[CouplingEvent], None]) -> None:
        """Subscribe event handler."""

"""Model kernel abstractions."""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass

from coupling_sim.model import ComponentDescription, ExchangeSlot, SlotKey, TimeStamp


@dataclass(slots=True)
class KernelStep:
    """Everything a kernel may read or write while computing one time step."""

    time_from: TimeStamp
    time_to: TimeStamp
    inputs: dict[SlotKey, ExchangeSlot]
    outputs: dict[SlotKey, ExchangeSlot]
    missing_value: float


class IModelKernel(ABC):
    """Numerical model behind a coupling engine."""

    @abstractmethod
    def prepare(self, description: ComponentDescription) -> None:
        """Bind the kernel to the component's exchange surface."""

    @abstractmethod
    def update(self, step: KernelStep) -> None:
        """Advance the model from step.time_from to step.time_to, writing outputs in place."""

    def finish(self) -> None:
        return

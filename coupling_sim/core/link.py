"""Input-to-output links that pull values from an upstream engine."""

from __future__ import annotations

from dataclasses import dataclass

from coupling_sim.errors import IncompatibleLink
from coupling_sim.model import ExchangeSlot, SlotKey, TimeStamp, Unit, convert

from .interfaces import ILinkableEngine


@dataclass(slots=True)
class Link:
    provider: ILinkableEngine
    output_key: SlotKey
    input_key: SlotKey
    source_unit: Unit
    target_unit: Unit
    lag_seconds: float = 0.0

    def requested_time(self, time: TimeStamp) -> TimeStamp:
        return time.add_seconds(-self.lag_seconds)

    def pull(self, time: TimeStamp, missing_value: float) -> list[float]:
        quantity_id, element_set_id = self.output_key
        values = self.provider.get_values(quantity_id, element_set_id, time=self.requested_time(time))
        provider_missing = self.provider.get_missing_value_definition()
        return [
            missing_value if value == provider_missing else convert(value, self.source_unit, self.target_unit)
            for value in values
        ]


def build_link(
    input_slot: ExchangeSlot,
    provider: ILinkableEngine,
    output_slot: ExchangeSlot,
    *,
    strict_dimensions: bool = False,
    lag_seconds: float = 0.0,
) -> Link:
    if input_slot.element_count != output_slot.element_count:
        raise IncompatibleLink(
            f"input {input_slot.key} has {input_slot.element_count} elements but output "
            f"{output_slot.key} has {output_slot.element_count}"
        )
    if strict_dimensions and not input_slot.quantity.dimension.is_equivalent(output_slot.quantity.dimension):
        raise IncompatibleLink(
            f"dimension mismatch: input {input_slot.key} is {input_slot.quantity.dimension}, "
            f"output {output_slot.key} is {output_slot.quantity.dimension}"
        )
    if lag_seconds < 0:
        raise IncompatibleLink("link lag_seconds must be >= 0")
    return Link(
        provider=provider,
        output_key=output_slot.key,
        input_key=input_slot.key,
        source_unit=output_slot.quantity.unit,
        target_unit=input_slot.quantity.unit,
        lag_seconds=lag_seconds,
    )

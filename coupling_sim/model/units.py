"""Dimensional signatures and affine unit conversion to SI."""

from __future__ import annotations

from enum import Enum
import math

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DimensionBase(str, Enum):
    """Base dimensions; values are the literals accepted in configuration."""

    LENGTH = "Length"
    TIME = "Time"
    MASS = "Mass"
    ELECTRIC_CURRENT = "ElectricCurrent"
    TEMPERATURE = "Temperature"
    AMOUNT_OF_SUBSTANCE = "AmountOfSubstance"
    LUMINOUS_INTENSITY = "LuminousIntensity"
    CURRENCY = "Currency"


_SYMBOLS = {
    DimensionBase.LENGTH: "L",
    DimensionBase.TIME: "T",
    DimensionBase.MASS: "M",
    DimensionBase.ELECTRIC_CURRENT: "I",
    DimensionBase.TEMPERATURE: "Θ",
    DimensionBase.AMOUNT_OF_SUBSTANCE: "N",
    DimensionBase.LUMINOUS_INTENSITY: "J",
    DimensionBase.CURRENCY: "C",
}


class Dimension(BaseModel):
    """Integer exponents over the base dimensions; absent bases have power 0."""

    model_config = ConfigDict(extra="forbid")

    powers: dict[DimensionBase, int] = Field(default_factory=dict)

    @classmethod
    def of(cls, **powers: int) -> "Dimension":
        """Build from base names, e.g. ``Dimension.of(Length=1, Time=-1)``."""
        dimension = cls()
        for name, exponent in powers.items():
            dimension.set_power(DimensionBase(name), exponent)
        return dimension

    def set_power(self, base: DimensionBase, exponent: int) -> None:
        if exponent == 0:
            self.powers.pop(base, None)
            return
        self.powers[base] = int(exponent)

    def get_power(self, base: DimensionBase) -> int:
        return self.powers.get(base, 0)

    def is_equivalent(self, other: "Dimension") -> bool:
        return all(self.get_power(base) == other.get_power(base) for base in DimensionBase)

    def __str__(self) -> str:
        if not self.powers:
            return "dimensionless"
        return " ".join(
            f"{_SYMBOLS[base]}^{self.powers[base]}" for base in DimensionBase if base in self.powers
        )


def length_dimension() -> Dimension:
    return Dimension(powers={DimensionBase.LENGTH: 1})


class Unit(BaseModel):
    """Unit with ``si = raw * conversion_factor_to_si + offset_to_si``."""

    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    description: str = ""
    conversion_factor_to_si: float = 1.0
    offset_to_si: float = 0.0

    @field_validator("conversion_factor_to_si")
    @classmethod
    def _check_factor(cls, value: float) -> float:
        if not math.isfinite(value) or value == 0:
            raise ValueError("conversion_factor_to_si must be finite and non-zero")
        return value

    @field_validator("offset_to_si")
    @classmethod
    def _check_offset(cls, value: float) -> float:
        if not math.isfinite(value):
            raise ValueError("offset_to_si must be finite")
        return value

    def to_si(self, value: float) -> float:
        return value * self.conversion_factor_to_si + self.offset_to_si

    def from_si(self, value: float) -> float:
        return (value - self.offset_to_si) / self.conversion_factor_to_si


def default_unit() -> Unit:
    return Unit(id="DefaultUnit", description="Default Unit")


DEFAULT_UNIT = default_unit()


def to_si(unit: Unit, value: float) -> float:
    return unit.to_si(value)


def from_si(unit: Unit, value: float) -> float:
    return unit.from_si(value)


def convert(value: float, source: Unit, target: Unit) -> float:
    if source == target:
        return value
    return target.from_si(source.to_si(value))

"""Exchange-item metadata models and semantic validation."""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator, model_validator

from .time import TimeSpan, TimeStamp, coerce_timestamp
from .units import DEFAULT_UNIT, Dimension, Unit, length_dimension


class ElementKind(str, Enum):
    """Spatial element kinds; only labelled 2-D points are supported."""

    POINT = "Point"


class ValueKind(str, Enum):
    SCALAR = "Scalar"
    VECTOR = "Vector"


class Vertex(BaseModel):
    model_config = ConfigDict(extra="forbid")

    x: float
    y: float


class Element(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    vertices: list[Vertex] = Field(min_length=1)


class ElementSet(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    description: str = ""
    kind: ElementKind = ElementKind.POINT
    elements: list[Element] = Field(default_factory=list)

    @model_validator(mode="after")
    def validate_unique_elements(self) -> "ElementSet":
        element_ids = [element.id for element in self.elements]
        if len(element_ids) != len(set(element_ids)):
            raise ValueError(f"element set '{self.id}' contains duplicate element ids")
        return self

    @property
    def element_count(self) -> int:
        return len(self.elements)

    def element_id(self, index: int) -> str:
        return self.elements[index].id

    def element_index(self, element_id: str) -> int:
        for index, element in enumerate(self.elements):
            if element.id == element_id:
                return index
        raise KeyError(element_id)


class Quantity(BaseModel):
    model_config = ConfigDict(extra="forbid")

    id: str = Field(min_length=1)
    description: str = ""
    value_kind: ValueKind = ValueKind.SCALAR
    dimension: Dimension = Field(default_factory=length_dimension)
    unit: Unit = Field(default_factory=lambda: DEFAULT_UNIT.model_copy())


class ExchangeItem(BaseModel):
    """One input or output slot: a quantity over a referenced element set."""

    model_config = ConfigDict(extra="forbid")

    element_set_id: str = Field(min_length=1)
    quantity: Quantity

    @property
    def key(self) -> tuple[str, str]:
        return (self.quantity.id, self.element_set_id)


class TimeHorizonSpec(BaseModel):
    model_config = ConfigDict(extra="forbid")

    start: TimeStamp
    end: TimeStamp
    time_step_seconds: float = Field(gt=0)

    @field_validator("start", "end", mode="before")
    @classmethod
    def _coerce_time(cls, value: Any) -> TimeStamp:
        return coerce_timestamp(value)

    @field_serializer("start", "end")
    def _dump_time(self, value: TimeStamp) -> float:
        return value.modified_julian_day

    @model_validator(mode="after")
    def validate_order(self) -> "TimeHorizonSpec":
        if self.start.modified_julian_day > self.end.modified_julian_day:
            raise ValueError(f"time horizon start {self.start} is after end {self.end}")
        return self

    @property
    def span(self) -> TimeSpan:
        return TimeSpan(self.start, self.end)


class ComponentDescription(BaseModel):
    """Parsed configuration of one component, read-only once loaded."""

    model_config = ConfigDict(extra="forbid", protected_namespaces=())

    model_id: str = Field(min_length=1)
    model_description: str = ""
    time_horizon: TimeHorizonSpec
    element_sets: list[ElementSet] = Field(default_factory=list)
    outputs: list[ExchangeItem] = Field(default_factory=list)
    inputs: list[ExchangeItem] = Field(default_factory=list)
    extras: dict[str, str] = Field(default_factory=dict)

    @field_validator("extras", mode="before")
    @classmethod
    def _stringify_extras(cls, value: Any) -> Any:
        if not isinstance(value, dict):
            return value
        return {str(key): _extra_text(item) for key, item in value.items()}

    @model_validator(mode="after")
    def validate_semantics(self) -> "ComponentDescription":
        set_ids = [element_set.id for element_set in self.element_sets]
        if len(set_ids) != len(set(set_ids)):
            raise ValueError("duplicate element_sets.id")
        known = set(set_ids)
        for role, items in (("output", self.outputs), ("input", self.inputs)):
            seen: set[tuple[str, str]] = set()
            for item in items:
                if item.element_set_id not in known:
                    raise ValueError(
                        f"{role} exchange item '{item.quantity.id}' references unknown "
                        f"element set '{item.element_set_id}'"
                    )
                if item.key in seen:
                    raise ValueError(
                        f"duplicate {role} exchange item '{item.quantity.id}' on "
                        f"element set '{item.element_set_id}'"
                    )
                seen.add(item.key)
        return self

    @property
    def time_step_seconds(self) -> float:
        return self.time_horizon.time_step_seconds

    @property
    def time_span(self) -> TimeSpan:
        return self.time_horizon.span

    def element_set(self, element_set_id: str) -> ElementSet:
        for element_set in self.element_sets:
            if element_set.id == element_set_id:
                return element_set
        raise KeyError(element_set_id)


def _extra_text(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)

"""Coupling lifecycle event definitions."""

from __future__ import annotations

import json
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class EventType(str, Enum):
    INITIALIZED = "Initialized"
    STEP_BEGIN = "StepBegin"
    STEP_END = "StepEnd"
    GET_VALUES = "GetValues"
    SET_VALUES = "SetValues"
    PULL = "Pull"
    CANCELLED = "Cancelled"
    FINISHED = "Finished"
    ERROR = "Error"


class CouplingEvent(BaseModel):
    """Normalized event envelope for tracing and metrics."""

    model_config = ConfigDict(extra="forbid")

    event_id: str
    seq: int = Field(ge=0)
    correlation_id: str
    time: float
    type: EventType
    quantity_id: Optional[str] = None
    element_set_id: Optional[str] = None
    value_count: Optional[int] = Field(default=None, ge=0)
    payload: dict[str, Any] = Field(default_factory=dict)

    def to_json(self) -> str:
        return json.dumps(self.model_dump(mode="json"), ensure_ascii=False)

"""Error kinds raised across the coupling protocol."""

from __future__ import annotations


class CouplingError(Exception):
    """Base class for every failure reported by the coupling engine."""

    def __init__(self, reason: str) -> None:
        super().__init__(reason)
        self.reason = reason


class InvalidTimeFormat(CouplingError, ValueError):
    """A calendar string or time value could not be interpreted."""


class MalformedConfiguration(CouplingError):
    """Configuration or element-set document is structurally or semantically invalid."""


class InitializationError(CouplingError):
    """Initialize failed; the component is left inspectable but cannot advance."""

    def __init__(self, reason: str, cause: Exception | None = None) -> None:
        super().__init__(reason)
        self.cause = cause


class InvalidStateTransition(CouplingError):
    """Operation is not allowed in the engine's current lifecycle phase."""


class UnknownExchangeItem(CouplingError):
    """No exchange item matches the requested quantity/element set pair."""


class ValueCountMismatch(CouplingError):
    """Value buffer length differs from the target element count."""


class TemporalDeadlock(CouplingError):
    """A pull could not be answered without looping forever or re-entering a step."""


class IncompatibleLink(CouplingError):
    """Linked exchange items disagree on element count or dimension."""

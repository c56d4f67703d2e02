"""Continuous time axis shared by coupled components (modified Julian days)."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum

from coupling_sim.errors import InvalidTimeFormat


MJD_EPOCH = datetime(1858, 11, 17)
SECONDS_PER_DAY = 86400.0
TIME_EPSILON_DAYS = 1e-9

_DATE_FORMATS = (
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M:%S.%f",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d",
    "%m/%d/%Y %H:%M:%S",
    "%m/%d/%Y %I:%M:%S %p",
    "%m/%d/%Y",
)


class TimeOrdering(str, Enum):
    BEFORE = "before"
    EQUAL = "equal"
    AFTER = "after"


@dataclass(frozen=True, slots=True, order=True)
class TimeStamp:
    """One instant, as fractional days since 1858-11-17T00:00:00."""

    modified_julian_day: float

    @classmethod
    def from_datetime(cls, value: datetime) -> "TimeStamp":
        if value.tzinfo is not None:
            value = value.astimezone(timezone.utc).replace(tzinfo=None)
        delta = value - MJD_EPOCH
        # days and seconds are exact integers, only microseconds are fractional
        days = delta.days + (delta.seconds + delta.microseconds / 1e6) / SECONDS_PER_DAY
        return cls(days)

    @classmethod
    def from_calendar(
        cls,
        year: int,
        month: int,
        day: int,
        hour: int = 0,
        minute: int = 0,
        second: int = 0,
    ) -> "TimeStamp":
        try:
            value = datetime(year, month, day, hour, minute, second)
        except ValueError as exc:
            raise InvalidTimeFormat(f"invalid calendar date: {exc}") from exc
        return cls.from_datetime(value)

    @classmethod
    def parse(cls, text: str) -> "TimeStamp":
        raw = str(text).strip()
        if not raw:
            raise InvalidTimeFormat("empty date/time string")
        for fmt in _DATE_FORMATS:
            try:
                return cls.from_datetime(datetime.strptime(raw, fmt))
            except ValueError:
                continue
        try:
            return cls.from_datetime(datetime.fromisoformat(raw))
        except ValueError as exc:
            raise InvalidTimeFormat(f"unparsable date/time '{raw}'") from exc

    def to_datetime(self) -> datetime:
        whole_days = int(self.modified_julian_day // 1)
        seconds = round((self.modified_julian_day - whole_days) * SECONDS_PER_DAY, 6)
        return MJD_EPOCH + timedelta(days=whole_days, seconds=seconds)

    def add_seconds(self, seconds: float) -> "TimeStamp":
        return TimeStamp(self.modified_julian_day + seconds / SECONDS_PER_DAY)

    def add_days(self, days: float) -> "TimeStamp":
        return TimeStamp(self.modified_julian_day + days)

    def compare(self, other: "TimeStamp") -> TimeOrdering:
        diff = self.modified_julian_day - other.modified_julian_day
        if abs(diff) <= TIME_EPSILON_DAYS:
            return TimeOrdering.EQUAL
        return TimeOrdering.BEFORE if diff < 0 else TimeOrdering.AFTER

    def isoformat(self) -> str:
        return self.to_datetime().isoformat()

    def __float__(self) -> float:
        return float(self.modified_julian_day)

    def __str__(self) -> str:
        return f"{self.modified_julian_day:g}"


@dataclass(frozen=True, slots=True)
class TimeSpan:
    """Closed interval [start, end] on the modified Julian day axis."""

    start: TimeStamp
    end: TimeStamp

    def __post_init__(self) -> None:
        if self.start.modified_julian_day > self.end.modified_julian_day:
            raise ValueError(f"time span start {self.start} is after end {self.end}")

    def contains(self, instant: TimeStamp) -> bool:
        return (
            self.start.compare(instant) != TimeOrdering.AFTER
            and self.end.compare(instant) != TimeOrdering.BEFORE
        )

    @property
    def duration_seconds(self) -> float:
        return (self.end.modified_julian_day - self.start.modified_julian_day) * SECONDS_PER_DAY


def add_seconds(instant: TimeStamp, seconds: float) -> TimeStamp:
    return instant.add_seconds(seconds)


def compare(lhs: TimeStamp, rhs: TimeStamp) -> TimeOrdering:
    return lhs.compare(rhs)


def coerce_timestamp(value: object) -> TimeStamp:
    """Accept a TimeStamp, datetime, MJD number or date string."""
    if isinstance(value, TimeStamp):
        return value
    if isinstance(value, datetime):
        return TimeStamp.from_datetime(value)
    if isinstance(value, bool):
        raise InvalidTimeFormat(f"invalid time value {value!r}")
    if isinstance(value, (int, float)):
        return TimeStamp(float(value))
    if isinstance(value, dict) and "modified_julian_day" in value:
        return TimeStamp(float(value["modified_julian_day"]))
    if isinstance(value, str):
        return TimeStamp.parse(value)
    raise InvalidTimeFormat(f"invalid time value {value!r}")

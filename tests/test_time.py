from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from coupling_sim.errors import InvalidTimeFormat
from coupling_sim.model import TimeOrdering, TimeSpan, TimeStamp, add_seconds, compare
from coupling_sim.model.time import coerce_timestamp


def test_mjd_epoch_is_zero() -> None:
    assert TimeStamp.from_calendar(1858, 11, 17).modified_julian_day == 0.0


def test_known_calendar_date_maps_to_mjd() -> None:
    assert TimeStamp.from_calendar(2017, 9, 4).modified_julian_day == 58000.0
    assert TimeStamp.from_calendar(2000, 1, 1, 12).modified_julian_day == 51544.5


@pytest.mark.parametrize(
    "value",
    [
        datetime(1858, 11, 17),
        datetime(1900, 2, 28, 23, 59, 59),
        datetime(2000, 2, 29, 6, 30),
        datetime(2017, 9, 4, 18),
        datetime(2099, 12, 31, 0, 0, 1),
    ],
)
def test_calendar_round_trip(value: datetime) -> None:
    assert TimeStamp.from_datetime(value).to_datetime() == value


def test_aware_datetime_is_normalised_to_utc() -> None:
    aware = datetime(2017, 9, 4, 2, 0, tzinfo=timezone(timedelta(hours=2)))
    assert TimeStamp.from_datetime(aware).modified_julian_day == 58000.0


def test_invalid_calendar_date_rejected() -> None:
    with pytest.raises(InvalidTimeFormat):
        TimeStamp.from_calendar(2017, 2, 30)


@pytest.mark.parametrize(
    "text",
    [
        "2017-09-04T00:00:00",
        "2017-09-04 00:00:00",
        "2017-09-04",
        "09/04/2017 00:00:00",
        "09/04/2017",
    ],
)
def test_parse_accepts_supported_formats(text: str) -> None:
    assert TimeStamp.parse(text).modified_julian_day == 58000.0


@pytest.mark.parametrize("text", ["", "   ", "yesterday", "2017-13-01", "04.09.2017"])
def test_parse_rejects_garbage(text: str) -> None:
    with pytest.raises(InvalidTimeFormat):
        TimeStamp.parse(text)


def test_invalid_time_format_is_value_error() -> None:
    with pytest.raises(ValueError):
        TimeStamp.parse("not a date")


def test_add_seconds_one_day() -> None:
    start = TimeStamp(58000.0)
    assert add_seconds(start, 86400).modified_julian_day == 58001.0
    assert start.add_seconds(21600).modified_julian_day == 58000.25
    assert start.add_days(-1).modified_julian_day == 57999.0


def test_compare_uses_tolerance() -> None:
    base = TimeStamp(58000.0)
    assert compare(base, TimeStamp(58000.0 + 1e-12)) == TimeOrdering.EQUAL
    assert compare(base, TimeStamp(58000.5)) == TimeOrdering.BEFORE
    assert compare(TimeStamp(58001.0), base) == TimeOrdering.AFTER


def test_timestamps_are_ordered_and_hashable() -> None:
    stamps = [TimeStamp(3.0), TimeStamp(1.0), TimeStamp(2.0)]
    assert sorted(stamps) == [TimeStamp(1.0), TimeStamp(2.0), TimeStamp(3.0)]
    assert len({TimeStamp(1.0), TimeStamp(1.0)}) == 1


def test_time_span_bounds_are_inclusive() -> None:
    span = TimeSpan(TimeStamp(58000.0), TimeStamp(58002.0))
    assert span.contains(TimeStamp(58000.0))
    assert span.contains(TimeStamp(58002.0))
    assert not span.contains(TimeStamp(58002.5))
    assert span.duration_seconds == 2 * 86400


def test_time_span_rejects_inverted_bounds() -> None:
    with pytest.raises(ValueError):
        TimeSpan(TimeStamp(2.0), TimeStamp(1.0))


def test_coerce_timestamp_variants() -> None:
    expected = TimeStamp(58000.0)
    assert coerce_timestamp(expected) is expected
    assert coerce_timestamp(58000) == expected
    assert coerce_timestamp("2017-09-04") == expected
    assert coerce_timestamp(datetime(2017, 9, 4)) == expected
    assert coerce_timestamp({"modified_julian_day": 58000.0}) == expected
    with pytest.raises(InvalidTimeFormat):
        coerce_timestamp(True)
    with pytest.raises(InvalidTimeFormat):
        coerce_timestamp([58000])

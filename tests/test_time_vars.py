"""Unit tests for the time-range variable injector."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from contracts.query import TimeInterval
from pipeline.time_vars import TIME_VAR_KEYS, inject_time_range, inject_time_vars, time_variables


def _interval() -> TimeInterval:
    return TimeInterval(
        start=datetime(2024, 1, 1, 0, 0, 0, 250000, tzinfo=timezone.utc),
        end=datetime(2024, 1, 2, 12, 30, 0, tzinfo=timezone.utc),
    )


def test_time_variables_encoding() -> None:
    """ISO strings with millisecond precision, dates and epoch integers."""
    tv = time_variables(_interval())

    assert set(tv) == set(TIME_VAR_KEYS)
    assert tv["timeFrom"] == "2024-01-01T00:00:00.250Z"
    assert tv["timeTo"] == "2024-01-02T12:30:00.000Z"
    assert tv["timeRange"] == ["2024-01-01T00:00:00.250Z", "2024-01-02T12:30:00.000Z"]
    assert tv["dateFrom"] == "2024-01-01"
    assert tv["dateTo"] == "2024-01-02"
    assert tv["timeFromMs"] == 1704067200250
    assert tv["timeToMs"] == 1704198600000
    assert tv["timeFromSec"] == 1704067200
    assert tv["timeToSec"] == 1704198600


def test_non_utc_inputs_are_converted() -> None:
    """A +02:00 start renders in UTC with a Z suffix."""
    tz = timezone(timedelta(hours=2))
    interval = TimeInterval(start=datetime(2024, 1, 1, 1, 0, tzinfo=tz), end=datetime(2024, 1, 1, 3, 0, tzinfo=tz))

    tv = time_variables(interval)

    assert tv["timeFrom"] == "2023-12-31T23:00:00.000Z"
    assert tv["dateFrom"] == "2023-12-31"
    assert tv["dateTo"] == "2024-01-01"


def test_inverted_range_is_propagated_verbatim() -> None:
    interval = TimeInterval(start=_interval().end, end=_interval().start)
    tv = time_variables(interval)
    assert tv["timeFromMs"] > tv["timeToMs"]


def test_existing_vars_are_preserved_and_time_keys_overwritten() -> None:
    variables = {"limit": 10, "timeFrom": "stale"}
    out = inject_time_vars(variables, _interval())

    assert out is variables
    assert out["limit"] == 10
    assert out["timeFrom"] == "2024-01-01T00:00:00.250Z"


def test_inject_time_range_creates_vars() -> None:
    """Missing or non-mapping ``vars`` is replaced by a fresh mapping."""
    opts = inject_time_range({"repr": True}, _interval())
    assert opts["repr"] is True
    assert opts["vars"]["dateTo"] == "2024-01-02"

    opts = inject_time_range({"vars": "not-a-dict"}, _interval())
    assert isinstance(opts["vars"], dict)
    assert opts["vars"]["timeToSec"] == 1704198600

    assert inject_time_range(None, _interval())["vars"]["timeFromSec"] == 1704067200

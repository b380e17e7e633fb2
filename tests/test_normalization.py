"""Unit tests for timestamp normalization and display stringification."""

from __future__ import annotations

from datetime import UTC, datetime

import pytest

from contracts.normalization import (
    compact_json,
    display_str,
    normalize_timestamp,
    parse_number,
)


def test_numeric_above_threshold_is_epoch_milliseconds() -> None:
    """Bare numbers above 1e9 are read as epoch milliseconds."""
    assert normalize_timestamp(1700000000000) == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
    assert normalize_timestamp(1700000000123.9) == datetime(2023, 11, 14, 22, 13, 20, 123000, tzinfo=UTC)


@pytest.mark.parametrize("value", [0, 42, 1_000_000_000, -5, 999.5])
def test_small_numbers_are_not_timestamps(value: float) -> None:
    """Numbers with magnitude <= 1e9 never normalize."""
    assert normalize_timestamp(value) is None


def test_numeric_threshold_is_stricter_than_string_seconds_band() -> None:
    """1.5e9 as a string is seconds, as a number it is milliseconds (Jan 1970)."""
    as_string = normalize_timestamp("1500000000")
    as_number = normalize_timestamp(1500000000)

    assert as_string == datetime(2017, 7, 14, 2, 40, tzinfo=UTC)
    assert as_number == datetime(1970, 1, 18, 8, 40, tzinfo=UTC)


def test_non_numeric_non_string_inputs() -> None:
    """Booleans, None, containers and non-finite floats return None."""
    assert normalize_timestamp(True) is None
    assert normalize_timestamp(None) is None
    assert normalize_timestamp({"a": 1}) is None
    assert normalize_timestamp([1700000000000]) is None
    assert normalize_timestamp(float("inf")) is None
    assert normalize_timestamp(float("nan")) is None


def test_rfc3339_strings_are_normalized_to_utc() -> None:
    """Offsets are applied and sub-millisecond digits are truncated."""
    assert normalize_timestamp("2024-03-01T12:00:00Z") == datetime(2024, 3, 1, 12, tzinfo=UTC)
    assert normalize_timestamp("2024-03-01T14:30:00+02:30") == datetime(2024, 3, 1, 12, tzinfo=UTC)
    assert normalize_timestamp("2024-03-01T12:00:00.123456789Z") == datetime(
        2024, 3, 1, 12, 0, 0, 123000, tzinfo=UTC
    )


def test_fixed_format_strings() -> None:
    """The space separated layout is read as UTC."""
    assert normalize_timestamp("2024-03-01 08:15:30") == datetime(2024, 3, 1, 8, 15, 30, tzinfo=UTC)


def test_numeric_strings_by_band() -> None:
    """Millisecond and second bands; anything outside is None."""
    assert normalize_timestamp("1700000000000") == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
    assert normalize_timestamp("1700000000") == datetime(2023, 11, 14, 22, 13, 20, tzinfo=UTC)
    assert normalize_timestamp("2500000000") is None
    assert normalize_timestamp("123") is None
    assert normalize_timestamp("") is None
    assert normalize_timestamp("yesterday") is None


def test_parse_number_accepts_json_numbers_only() -> None:
    """Only strict JSON number text is accepted."""
    assert parse_number("42") == 42.0
    assert parse_number("-1.5e3") == -1500.0
    assert parse_number("0.5") == 0.5
    assert parse_number(" -1.5e3 ") is None
    assert parse_number("1.") is None
    assert parse_number(".5") is None
    assert parse_number("007") is None
    assert parse_number("42\n") is None
    assert parse_number("nan") is None
    assert parse_number("inf") is None
    assert parse_number("1_000") is None
    assert parse_number("0x10") is None
    assert parse_number("") is None


def test_display_str() -> None:
    """Display form used for string columns."""
    assert display_str("x") == "x"
    assert display_str(True) == "true"
    assert display_str(None) == "null"
    assert display_str(42) == "42"
    assert display_str(42.0) == "42"
    assert display_str(2.5) == "2.5"
    assert display_str({"b": 1, "a": [1, 2]}) == '{"a":[1,2],"b":1}'


def test_compact_json_has_no_whitespace() -> None:
    """Arrays and objects use the compact canonical encoding."""
    assert compact_json([1, 2, {"k": "v"}]) == '[1,2,{"k":"v"}]'

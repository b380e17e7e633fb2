"""Best-effort value normalization helpers.

- decides whether a scalar plausibly encodes a timestamp and returns a UTC
  datetime truncated to milliseconds
- parses numeric strings (JSON number syntax only)
- renders values for string columns (display form, compact JSON text)

Every helper returns ``None`` on failure; nothing here raises on bad input.
"""

from __future__ import annotations

import json
import math
import re
from datetime import UTC, datetime, timedelta
from typing import Any, Optional

EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

# Bare numbers above this are epoch milliseconds; anything smaller is not a timestamp.
NUMERIC_MS_THRESHOLD = 1e9

# Numeric strings are classified by magnitude band (exclusive bounds).
STRING_MS_BAND = (1e12, 2e12)
STRING_SEC_BAND = (1e9, 2e9)

_NUMBER_RE = re.compile(r"-?(?:0|[1-9]\d*)(?:\.\d+)?(?:[eE][+-]?\d+)?")
_INT_RE = re.compile(r"-?(?:0|[1-9]\d*)")

_RFC3339_RE = re.compile(
    r"^(\d{4})-(\d{2})-(\d{2})[Tt](\d{2}):(\d{2}):(\d{2})(?:\.(\d+))?([Zz]|[+-]\d{2}:\d{2})$"
)

_FIXED_FORMATS = (
    "%Y-%m-%dT%H:%M:%S.%fZ",
    "%Y-%m-%dT%H:%M:%SZ",
    "%Y-%m-%d %H:%M:%S",
)


def parse_number(text: str) -> Optional[float]:
    """Parse a numeric string; returns None unless it is a plain finite number."""
    if not isinstance(text, str) or not _NUMBER_RE.fullmatch(text):
        return None
    try:
        value = float(text)
    except ValueError:
        return None
    if not math.isfinite(value):
        return None
    return value


def parse_int(text: str) -> Optional[int]:
    """Parse an integer string exactly (no float round-trip); None otherwise."""
    if not isinstance(text, str) or not _INT_RE.fullmatch(text):
        return None
    return int(text)


def is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def is_integral(value: float) -> bool:
    if isinstance(value, int):
        return True
    return math.isfinite(value) and float(value).is_integer()


def _truncate_ms(dt: datetime) -> datetime:
    return dt.replace(microsecond=(dt.microsecond // 1000) * 1000)


def from_epoch_ms(value: float) -> Optional[datetime]:
    try:
        return EPOCH + timedelta(milliseconds=int(value))
    except (OverflowError, ValueError):
        return None


def from_epoch_seconds(value: float) -> Optional[datetime]:
    try:
        return EPOCH + timedelta(seconds=int(value))
    except (OverflowError, ValueError):
        return None


def _parse_rfc3339(txt: str) -> Optional[datetime]:
    m = _RFC3339_RE.match(txt)
    if not m:
        return None
    year, month, day, hour, minute, second, frac, zone = m.groups()
    micros = int((frac or "0")[:6].ljust(6, "0"))
    try:
        dt = datetime(
            int(year), int(month), int(day), int(hour), int(minute), int(second), micros, tzinfo=UTC
        )
    except ValueError:
        return None
    if zone not in ("Z", "z"):
        sign = 1 if zone[0] == "+" else -1
        offset = timedelta(hours=int(zone[1:3]), minutes=int(zone[4:6]))
        try:
            dt = dt - sign * offset
        except OverflowError:
            return None
    return dt


def _parse_fixed_formats(txt: str) -> Optional[datetime]:
    for fmt in _FIXED_FORMATS:
        try:
            dt = datetime.strptime(txt, fmt)
        except ValueError:
            continue
        return dt.replace(tzinfo=UTC)
    return None


def _normalize_string(txt: str) -> Optional[datetime]:
    if txt == "":
        return None

    dt = _parse_rfc3339(txt) or _parse_fixed_formats(txt)
    if dt is not None:
        return dt

    num = parse_number(txt)
    if num is None:
        return None
    if STRING_MS_BAND[0] < num < STRING_MS_BAND[1]:
        return from_epoch_ms(num)
    if STRING_SEC_BAND[0] < num < STRING_SEC_BAND[1]:
        return from_epoch_seconds(num)
    return None


def normalize_timestamp(value: Any) -> Optional[datetime]:
    """
    Return the UTC instant ``value`` plausibly encodes, or None.

    - numbers: epoch milliseconds when magnitude > 1e9, otherwise None
    - strings: RFC 3339, a few fixed layouts, then numeric strings in the
      millisecond (1e12..2e12) or second (1e9..2e9) band
    - anything else: None
    """
    if is_number(value):
        if isinstance(value, float) and not math.isfinite(value):
            return None
        if abs(value) <= NUMERIC_MS_THRESHOLD:
            return None
        return from_epoch_ms(value)

    if isinstance(value, str):
        dt = _normalize_string(value)
        return None if dt is None else _truncate_ms(dt)

    return None


def compact_json(value: Any) -> str:
    """Canonical compact text encoding for arrays/objects."""
    return json.dumps(value, separators=(",", ":"), sort_keys=True, ensure_ascii=False, default=str)


def display_str(value: Any) -> str:
    """Human display form of a JSON value (used for string columns)."""
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if value is None:
        return "null"
    if isinstance(value, float):
        if is_integral(value) and abs(value) < 1e21:
            return str(int(value))
        return repr(value)
    if isinstance(value, (dict, list, tuple)):
        return compact_json(value)
    return str(value)

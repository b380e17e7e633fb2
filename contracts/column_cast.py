"""Casting helpers from raw JSON cells to typed column cells.

The table boundary is intentionally lenient: a cell that cannot be cast to its
column type becomes ``None`` (a normalization miss) instead of aborting the
column or the table. Callers count misses through the optional ``misses`` list.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any, List, Optional

from contracts.normalization import (
    display_str,
    is_integral,
    is_number,
    normalize_timestamp,
    parse_int,
    parse_number,
)
from contracts.schema import ColumnType

INT64_MIN = -(2**63)
INT64_MAX = 2**63 - 1


def _cast_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        out = value
    elif isinstance(value, float):
        if not is_integral(value):
            return None
        out = int(value)
    elif isinstance(value, str):
        exact = parse_int(value)
        if exact is not None:
            out = exact
        else:
            num = parse_number(value)
            if num is None or not is_integral(num):
                return None
            out = int(num)
    else:
        return None
    if out < INT64_MIN or out > INT64_MAX:
        return None
    return out


def _cast_float(value: Any) -> Optional[float]:
    if isinstance(value, bool):
        return None
    if is_number(value):
        try:
            return float(value)
        except OverflowError:
            return None
    if isinstance(value, str):
        return parse_number(value)
    return None


def _cast_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    return None


def _cast_time(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    return normalize_timestamp(value)


def cast_cell(value: Any, column_type: ColumnType, misses: Optional[List[Any]] = None) -> Any:
    """
    Cast a single raw value to match a column type.

    ``None`` stays ``None``. Any other value that fails to cast becomes ``None``
    and is appended to ``misses`` when provided.
    """
    if value is None:
        return None

    if column_type is ColumnType.STRING:
        return display_str(value)

    if column_type is ColumnType.INT:
        out: Any = _cast_int(value)
    elif column_type is ColumnType.FLOAT:
        out = _cast_float(value)
    elif column_type is ColumnType.BOOL:
        out = _cast_bool(value)
    elif column_type is ColumnType.TIME:
        out = _cast_time(value)
    else:
        out = None

    if out is None and misses is not None:
        misses.append(value)
    return out


def cast_column(values: List[Any], column_type: ColumnType, misses: Optional[List[Any]] = None) -> List[Any]:
    """Cast every cell of a column; see ``cast_cell``."""
    return [cast_cell(v, column_type, misses) for v in values]

"""Column type inference for untyped JSON values."""

from __future__ import annotations

from typing import Any, Iterable

from contracts.normalization import is_integral, is_number, parse_number
from contracts.schema import ColumnType


def classify(values: Iterable[Any]) -> ColumnType:
    """
    Infer the common column type of ``values`` (nulls ignored).

    Precedence, first match wins:
      1. any value that is neither numeric (incl. numeric strings) nor boolean -> STRING
      2. booleans and no numerics -> BOOL
      3. any non-integral numeric -> FLOAT
      4. any integral numeric -> INT
      5. nothing but nulls / empty -> STRING

    Booleans mixed with numerics fall through to FLOAT/INT.
    """
    has_float = False
    has_int = False
    has_bool = False

    for value in values:
        if value is None:
            continue

        if isinstance(value, bool):
            has_bool = True
            continue

        if is_number(value):
            num = value
        elif isinstance(value, str):
            num = parse_number(value)
            if num is None:
                return ColumnType.STRING
        else:
            return ColumnType.STRING

        if is_integral(num):
            has_int = True
        else:
            has_float = True

    if has_bool and not has_int and not has_float:
        return ColumnType.BOOL
    if has_float:
        return ColumnType.FLOAT
    if has_int:
        return ColumnType.INT
    return ColumnType.STRING

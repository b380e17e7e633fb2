"""Flatten nested call results into dotted column names."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Dict

from contracts.normalization import compact_json, is_number


def flatten_object(obj: Mapping[str, Any], prefix: str = "") -> Dict[str, Any]:
    """
    Flatten nested mappings into ``{"a.b": value}``.

    Arrays are serialized to compact JSON (not descended into), numbers,
    booleans and null keep their type, anything else is stringified.
    When two paths compose to the same key the one seen last wins.
    """
    result: Dict[str, Any] = {}

    for key, value in obj.items():
        new_key = f"{prefix}.{key}" if prefix else str(key)

        if isinstance(value, Mapping):
            result.update(flatten_object(value, new_key))
        elif isinstance(value, (list, tuple)):
            result[new_key] = compact_json(value)
        elif value is None or isinstance(value, bool) or is_number(value):
            result[new_key] = value
        else:
            result[new_key] = str(value)

    return result


def inline_nested(obj: Mapping[str, Any]) -> Dict[str, Any]:
    """Non-flattening counterpart: nested objects/arrays become compact JSON in place."""
    return {
        str(key): compact_json(value) if isinstance(value, (Mapping, list, tuple)) else value
        for key, value in obj.items()
    }

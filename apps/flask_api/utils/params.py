"""Request payload parsing helpers for Flask API."""

from typing import Any, Dict, List

from flask import request

from contracts.query import TimeInterval


def _json_payload() -> Dict[str, Any]:
    """Return the JSON object body of the current request.

    Raises:
        ValueError: If the body is missing or not a JSON object
    """
    payload = request.get_json(silent=True)
    if not isinstance(payload, dict):
        raise ValueError("Request body must be a JSON object")
    return payload


def _require_range(payload: Dict[str, Any]) -> TimeInterval:
    """Extract the absolute time range ``{"from": ..., "to": ...}``.

    Raises:
        InvalidRequest (a ValueError): If the range is missing or unparseable
    """
    return TimeInterval.from_payload(payload.get("range"))


def _require_queries(payload: Dict[str, Any]) -> List[Any]:
    """Extract the list of query objects.

    Raises:
        ValueError: If 'queries' is missing or not a list
    """
    queries = payload.get("queries")
    if not isinstance(queries, list):
        raise ValueError("'queries' must be a list")
    return queries

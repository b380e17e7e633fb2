"""Response helpers for Flask API.

Provides standardized HTTP response formatting for consistent API responses.
"""

import traceback
from typing import Any, Dict, Optional

from flask import jsonify

# Configuration - set by flask_app from settings
_API_DEBUG_ERRORS: bool = False


def set_debug_mode(enabled: bool) -> None:
    """Set debug mode for error responses."""
    global _API_DEBUG_ERRORS
    _API_DEBUG_ERRORS = enabled


def _ok(data: Optional[Dict[str, Any]] = None, *, status: int = 200) -> Any:
    """Create a successful JSON response.

    Args:
        data: Optional dictionary to include in the response
        status: HTTP status code (default 200)

    Returns:
        Flask response tuple (json, status)
    """
    payload: Dict[str, Any] = {"ok": True}
    if data:
        payload.update(data)
    return jsonify(payload), status


def _err(
    code: str,
    message: str,
    *,
    status: int,
    extra: Optional[Dict[str, Any]] = None,
) -> Any:
    """Create an error JSON response.

    Args:
        code: Error code (e.g., 'bad_request', 'upstream_error')
        message: Human-readable error message
        status: HTTP status code
        extra: Optional additional data to include

    Returns:
        Flask response tuple (json, status)
    """
    payload: Dict[str, Any] = {"ok": False, "error": code, "message": message}
    if extra:
        payload.update(extra)
    return jsonify(payload), status


def _json(payload: Dict[str, Any], *, status: int = 200) -> Any:
    """Create a generic JSON response; 'ok' is inferred from status when missing."""
    if "ok" not in payload:
        payload = dict(payload)
        payload["ok"] = status < 400
    return jsonify(payload), status


def _api_internal_error_response(exc: Exception) -> Any:
    """Generic 500 response; includes detail and traceback in debug mode."""
    extra = None
    if _API_DEBUG_ERRORS:
        extra = {"detail": str(exc), "traceback": traceback.format_exc()}
    return _err("internal_error", "internal error", status=500, extra=extra)

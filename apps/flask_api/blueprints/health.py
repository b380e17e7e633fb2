"""Health and metadata endpoints Blueprint.

Provides health check, Cortex connectivity check and version endpoints.
"""

from typing import Any

from flask import Blueprint, jsonify

from apps.flask_api.deps import get_client
from apps.flask_api.utils import _json, _ok
from version import ENGINE_NAME, ENGINE_VERSION

# Create the blueprint
health_bp = Blueprint("health", __name__)


# API version - will be set from main app
_API_VERSION: str = "v1"


def init_blueprint(api_version: str) -> None:
    """Initialize blueprint with the API version setting.

    Args:
        api_version: API version string (e.g., 'v1')
    """
    global _API_VERSION
    _API_VERSION = api_version


@health_bp.route("/health", methods=["GET"])
def health() -> Any:
    """Basic health check endpoint.

    Returns:
        JSON response with ok: true
    """
    return jsonify({"ok": True})


@health_bp.route("/api/health/cortex", methods=["GET"])
def api_health_cortex() -> Any:
    """Cortex connectivity check (posts an empty storm query).

    Returns:
        JSON with ok and message; 503 when the Cortex is unreachable
    """
    result = get_client().check_health()
    if result.ok:
        return _ok({"message": result.message})
    return _json({"ok": False, "error": "cortex_unhealthy", "message": result.message}, status=503)


@health_bp.route("/api/version", methods=["GET"])
def api_version() -> Any:
    """Engine and API version metadata.

    Returns:
        Version information JSON
    """
    return _json(
        {
            "engine": ENGINE_NAME,
            "engine_version": ENGINE_VERSION,
            "api_version": _API_VERSION,
        }
    )

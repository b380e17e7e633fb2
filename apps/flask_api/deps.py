"""Shared dependencies for the API blueprints.

The Cortex client is built lazily from settings and can be replaced with
``set_client`` (tests, embedding).
"""

from __future__ import annotations

from threading import Lock
from typing import Any, Optional

from apps.backend.cortex_client import CortexClient
from infra.config import get_settings

_CLIENT_LOCK = Lock()
_CLIENT: Optional[Any] = None


def get_client() -> Any:
    """Return the process-wide Cortex client."""
    global _CLIENT
    with _CLIENT_LOCK:
        if _CLIENT is None:
            _CLIENT = CortexClient.from_config(get_settings().cortex)
        return _CLIENT


def set_client(client: Optional[Any]) -> None:
    """Install a client (``None`` resets to the settings-based default)."""
    global _CLIENT
    with _CLIENT_LOCK:
        _CLIENT = client

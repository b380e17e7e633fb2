"""Flask API utilities package.

- responses: Standardized HTTP response helpers
- params: Request payload parsing
"""

from apps.flask_api.utils.params import _json_payload, _require_queries, _require_range
from apps.flask_api.utils.responses import (
    _api_internal_error_response,
    _err,
    _json,
    _ok,
    set_debug_mode,
)

__all__ = [
    # responses
    "_ok",
    "_err",
    "_json",
    "_api_internal_error_response",
    "set_debug_mode",
    # params
    "_json_payload",
    "_require_range",
    "_require_queries",
]

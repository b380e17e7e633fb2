"""flask_app.py

HTTP API for StormGrid: turns Storm query results from a Synapse Cortex into
typed tables (frames) for dashboards.

Core concepts
-------------
- A request carries an absolute time range and a list of queries.
- Each query is decoded independently; results are keyed by refId.
- The Cortex is the only backend; nothing is cached or persisted.

Env
---
- CORTEX_URL (required for /api/query), CORTEX_API_KEY, CORTEX_TIMEOUT,
  CORTEX_TLS_SKIP_VERIFY

Run
---
FLASK_APP=apps.flask_api.flask_app flask run --host=0.0.0.0 --port=5000
"""

from __future__ import annotations

import time
from typing import Any

from flask import Flask, Response, request

from apps.flask_api.blueprints import health_bp, query_bp
from apps.flask_api.blueprints.health import init_blueprint
from apps.flask_api.utils import _api_internal_error_response, _err, set_debug_mode
from infra.config import get_settings
from infra.logging_config import StructuredLogger

logger = StructuredLogger("stormgrid.api")

app = Flask(__name__)

_settings = get_settings()
set_debug_mode(_settings.api.debug_errors)
init_blueprint(_settings.api.version)


@app.before_request
def _start_timer() -> None:
    request.environ["_stormgrid_t0"] = time.monotonic()


@app.after_request
def _log_request(resp: Response) -> Response:
    t0 = float(request.environ.get("_stormgrid_t0") or 0.0)
    ms = int(max(0.0, (time.monotonic() - t0) * 1000.0)) if t0 else None
    logger.info(
        "http_request",
        method=request.method,
        path=request.path,
        status=int(getattr(resp, "status_code", 0) or 0),
        ms=ms,
        ip=request.headers.get("X-Forwarded-For", request.remote_addr),
    )

    # Query results must never be served stale from intermediary caches.
    if (request.path or "").startswith("/api/"):
        resp.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
    return resp


@app.errorhandler(404)
def _err_404(_: Exception) -> Any:
    return _err("not_found", "not found", status=404)


@app.errorhandler(405)
def _err_405(_: Exception) -> Any:
    return _err("method_not_allowed", "method not allowed", status=405)


@app.errorhandler(500)
def _err_500(exc: Exception) -> Any:
    original = getattr(exc, "original_exception", None) or exc
    logger.error("http_internal_error", path=request.path, error=str(original))
    return _api_internal_error_response(original)


app.register_blueprint(health_bp)
app.register_blueprint(query_bp)


def main() -> None:
    settings = get_settings()
    app.run(host=settings.api.host, port=settings.api.port)


if __name__ == "__main__":
    main()

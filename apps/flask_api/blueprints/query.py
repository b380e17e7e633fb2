"""Query Blueprint.

Runs Storm queries against the configured Cortex and returns one frame per
refId.
"""

from typing import Any

from flask import Blueprint

from apps.backend.query_service import query_data
from apps.flask_api.deps import get_client
from apps.flask_api.utils import _err, _json_payload, _ok, _require_queries, _require_range
from infra.config import get_settings

# Create the blueprint
query_bp = Blueprint("query", __name__)


@query_bp.route("/api/query", methods=["POST"])
def api_query() -> Any:
    """Run a batch of queries.

    Body:
        range (required): {"from": ISO-8601, "to": ISO-8601}
        queries (required): list of {refId, stormQuery, useCall, opts}

    Returns:
        JSON with results keyed by refId; each result has either 'frames'
        or 'error' (remote message verbatim)
    """
    try:
        payload = _json_payload()
        interval = _require_range(payload)
        queries = _require_queries(payload)
    except ValueError as exc:
        return _err("bad_request", str(exc), status=400)

    responses = query_data(
        get_client(),
        queries,
        interval,
        max_warning_samples=get_settings().decode.max_warning_samples,
    )
    return _ok({"results": {ref_id: resp.to_dict() for ref_id, resp in responses.items()}})

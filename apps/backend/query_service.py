"""Query orchestration: request -> time variables -> Cortex -> Table.

Each query is handled independently. A failing query yields an error response
for its refId and never prevents the other queries from producing tables.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Dict, Iterable, Iterator, Optional, Protocol

from contracts.errors import StormGridError
from contracts.query import DEFAULT_REF_ID, RECOGNIZED_OPTS, QueryRequest, TimeInterval
from contracts.schema import Table
from infra.logging_config import StructuredLogger, query_context
from pipeline.call_decoder import decode_call_document
from pipeline.stream_decoder import decode_stream_body
from pipeline.time_vars import inject_time_range

logger = StructuredLogger(__name__)


class StormClient(Protocol):
    def storm(self, query: str, opts: Optional[Dict[str, Any]] = None) -> Iterator[bytes]: ...

    def storm_call(self, query: str, opts: Optional[Dict[str, Any]] = None) -> Any: ...


@dataclass
class QueryResponse:
    ref_id: str
    table: Optional[Table] = None
    error: Optional[str] = None
    error_code: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None

    def to_dict(self) -> Dict[str, Any]:
        if self.error is not None:
            out: Dict[str, Any] = {"error": self.error}
            if self.error_code:
                out["code"] = self.error_code
            return out
        return {"frames": [self.table.to_frame()] if self.table is not None else []}


def run_query(
    client: StormClient,
    request: QueryRequest,
    interval: TimeInterval,
    *,
    max_warning_samples: int = 50,
) -> Table:
    """
    Execute one query and decode its result.

    Raises InvalidRequest, RemoteQueryError or TransportError; no partial
    table is returned on failure.
    """
    opts = inject_time_range(request.opts, interval)

    with query_context(ref_id=request.ref_id):
        passthrough = sorted(str(k) for k in opts if k not in RECOGNIZED_OPTS)
        logger.info(
            "storm_query_started",
            use_call=request.use_call,
            flatten=request.flatten,
            passthrough_opts=passthrough,
        )
        if request.use_call:
            document = client.storm_call(request.storm_query, opts)
            return decode_call_document(
                document,
                flatten=request.flatten,
                ref_id=request.ref_id,
                max_warning_samples=max_warning_samples,
            )

        lines = client.storm(request.storm_query, opts)
        try:
            return decode_stream_body(lines, ref_id=request.ref_id, max_warning_samples=max_warning_samples)
        finally:
            close = getattr(lines, "close", None)
            if callable(close):
                close()


def query_data(
    client: StormClient,
    queries: Iterable[Any],
    interval: TimeInterval,
    *,
    max_warning_samples: int = 50,
) -> Dict[str, QueryResponse]:
    """Run several raw query payloads; returns refId -> QueryResponse."""
    responses: Dict[str, QueryResponse] = {}
    for index, payload in enumerate(queries):
        ref_id = _payload_ref_id(payload, index)
        if ref_id in responses:
            unique = _unique_ref_id(ref_id, responses)
            logger.warning("storm_query_duplicate_ref_id", ref_id=ref_id, renamed_to=unique)
            ref_id = unique
        try:
            request = QueryRequest.from_payload(payload)
            request.ref_id = ref_id
            table = run_query(client, request, interval, max_warning_samples=max_warning_samples)
        except StormGridError as exc:
            code = str(getattr(exc, "code", "") or "")
            logger.warning("storm_query_failed", ref_id=ref_id, error=str(exc), kind=type(exc).__name__)
            responses[ref_id] = QueryResponse(ref_id=ref_id, error=str(exc), error_code=code)
            continue
        responses[ref_id] = QueryResponse(ref_id=ref_id, table=table)
    return responses


def _payload_ref_id(payload: Any, index: int) -> str:
    if isinstance(payload, dict) and payload.get("refId"):
        return str(payload["refId"])
    return DEFAULT_REF_ID if index == 0 else f"{DEFAULT_REF_ID}{index}"


def _unique_ref_id(ref_id: str, taken: Dict[str, Any]) -> str:
    suffix = 2
    while f"{ref_id}#{suffix}" in taken:
        suffix += 1
    return f"{ref_id}#{suffix}"

"""Query request contract.

The options bag (``opts``) stays a schema-less mapping: the keys below are the
ones with documented effects, everything else is forwarded to the Cortex
untouched.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Dict

from contracts.errors import InvalidRequest

# Recognized option keys and what they do (all forwarded to the Cortex)
RECOGNIZED_OPTS: Dict[str, str] = {
    "limit": "maximum number of nodes the Cortex returns",
    "readonly": "run the query in read-only mode",
    "repr": "ask the Cortex for human readable representations",
    "flatten": "flatten nested objects of call results into dotted columns",
    "editformat": "edit message format (nodeedits, splices, count, none)",
    "mode": "storm parser mode (storm, lookup, autoadd, search)",
    "path": "include path information for each node",
    "links": "include node link information",
    "view": "iden of the view to run the query in",
    "vars": "storm variables; time range variables are injected here",
}

DEFAULT_REF_ID = "A"


def _as_utc(value: datetime) -> datetime:
    dt = value if value.tzinfo else value.replace(tzinfo=UTC)
    return dt.astimezone(UTC)


def _parse_time(value: Any, name: str) -> datetime:
    if isinstance(value, datetime):
        return _as_utc(value)
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        try:
            return datetime.fromtimestamp(value / 1000.0, tz=UTC)
        except (OverflowError, OSError, ValueError) as exc:
            raise InvalidRequest(f"invalid time range {name}: {value!r}") from exc
    if isinstance(value, str):
        txt = value.strip()
        if txt.endswith("Z"):
            txt = txt[:-1] + "+00:00"
        try:
            return _as_utc(datetime.fromisoformat(txt))
        except ValueError as exc:
            raise InvalidRequest(f"invalid time range {name}: {value!r}") from exc
    raise InvalidRequest(f"invalid time range {name}: {value!r}")


@dataclass(frozen=True)
class TimeInterval:
    """Absolute time range of a query; ``start > end`` is accepted verbatim."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        object.__setattr__(self, "start", _as_utc(self.start))
        object.__setattr__(self, "end", _as_utc(self.end))

    @classmethod
    def from_payload(cls, payload: Any) -> TimeInterval:
        """Build from ``{"from": ..., "to": ...}`` (ISO strings, epoch ms or datetimes)."""
        if not isinstance(payload, Mapping):
            raise InvalidRequest("time range must be an object with 'from' and 'to'")
        if "from" not in payload or "to" not in payload:
            raise InvalidRequest("time range requires both 'from' and 'to'")
        return cls(start=_parse_time(payload["from"], "from"), end=_parse_time(payload["to"], "to"))


@dataclass
class QueryRequest:
    storm_query: str
    use_call: bool = False
    opts: Dict[str, Any] = field(default_factory=dict)
    ref_id: str = DEFAULT_REF_ID

    def __post_init__(self) -> None:
        if not isinstance(self.storm_query, str) or self.storm_query.strip() == "":
            raise InvalidRequest("storm query is required")

    @classmethod
    def from_payload(cls, payload: Any) -> QueryRequest:
        """Validate one query object (``stormQuery``, ``useCall``, ``opts``, ``refId``)."""
        if not isinstance(payload, Mapping):
            raise InvalidRequest("query must be a JSON object")

        opts = payload.get("opts")
        if opts is None:
            opts = {}
        if not isinstance(opts, Mapping):
            raise InvalidRequest("opts must be a JSON object")

        ref_id = payload.get("refId")
        return cls(
            storm_query=payload.get("stormQuery") or "",
            use_call=bool(payload.get("useCall") or False),
            opts=dict(opts),
            ref_id=str(ref_id) if ref_id else DEFAULT_REF_ID,
        )

    @property
    def flatten(self) -> bool:
        return flatten_enabled(self.opts)


def flatten_enabled(opts: Mapping[str, Any] | None) -> bool:
    """Only a literal boolean ``true`` enables flattening."""
    if not opts:
        return False
    return opts.get("flatten") is True

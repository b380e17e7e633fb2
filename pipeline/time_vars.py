"""Storm time-range variables derived from the panel time range.

Queries reference them as ``$timeFrom``, ``$timeRange`` (for ``@=`` interval
filters such as ``.created@=($timeRange)``), ``$dateFrom``, ``$timeFromMs`` ...
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import Any, Dict, MutableMapping, Optional

from contracts.query import TimeInterval
from contracts.schema import format_timestamp

_EPOCH = datetime(1970, 1, 1, tzinfo=UTC)

TIME_VAR_KEYS = (
    "timeFrom",
    "timeTo",
    "timeRange",
    "dateFrom",
    "dateTo",
    "timeFromMs",
    "timeToMs",
    "timeFromSec",
    "timeToSec",
)


def _epoch_ms(dt: datetime) -> int:
    return (dt - _EPOCH) // timedelta(milliseconds=1)


def _epoch_sec(dt: datetime) -> int:
    return (dt - _EPOCH) // timedelta(seconds=1)


def _date_only(dt: datetime) -> str:
    return dt.astimezone(UTC).date().isoformat()


def time_variables(interval: TimeInterval) -> Dict[str, Any]:
    """The nine time variables for ``interval`` (no ordering check)."""
    start, end = interval.start, interval.end
    time_from = format_timestamp(start)
    time_to = format_timestamp(end)
    return {
        "timeFrom": time_from,
        "timeTo": time_to,
        "timeRange": [time_from, time_to],
        "dateFrom": _date_only(start),
        "dateTo": _date_only(end),
        "timeFromMs": _epoch_ms(start),
        "timeToMs": _epoch_ms(end),
        "timeFromSec": _epoch_sec(start),
        "timeToSec": _epoch_sec(end),
    }


def inject_time_vars(
    variables: Optional[MutableMapping[str, Any]], interval: TimeInterval
) -> MutableMapping[str, Any]:
    """Set/overwrite the time variables in ``variables``; other keys are untouched."""
    if variables is None:
        variables = {}
    variables.update(time_variables(interval))
    return variables


def inject_time_range(opts: Optional[Dict[str, Any]], interval: TimeInterval) -> Dict[str, Any]:
    """
    Ensure ``opts["vars"]`` exists and carries the time variables.

    A non-mapping ``vars`` value is replaced by a fresh mapping.
    """
    if opts is None:
        opts = {}
    current = opts.get("vars")
    variables = current if isinstance(current, dict) else {}
    opts["vars"] = inject_time_vars(variables, interval)
    return opts

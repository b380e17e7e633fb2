"""Decoder for the synchronous Storm call endpoint (``/api/v1/storm/call``).

The call endpoint returns one JSON document whose ``result`` can be any JSON
value. The shape of that value decides the table layout:

  []                          -> "result" string column, no rows
  [{...}, {...}]              -> object list: one column per key
  [[[form, value], {...}]]    -> node list: form/value/iden/tags
  [[...], [...]]              -> list of lists: compact JSON in "value"
  [1, "a", ...]               -> primitive list: "value" (time if every item is one)
  {...}                       -> key/value table
  scalar / null               -> "result" column with one row
"""

from __future__ import annotations

from collections.abc import Mapping
from enum import Enum
from typing import Any, Dict, List, Sequence

from contracts.errors import RemoteQueryError
from contracts.normalization import compact_json, display_str, normalize_timestamp
from contracts.schema import CALL_TABLE_NAME, Column, ColumnType, Table, string_column
from infra.logging_config import StructuredLogger
from pipeline.classify import classify
from pipeline.flatten import flatten_object, inline_nested
from pipeline.table_builder import (
    DecodeStats,
    build_column,
    build_node_table,
    parse_node,
    typed_column,
)

logger = StructuredLogger(__name__)


class ResultShape(str, Enum):
    EMPTY = "empty"
    OBJECT_LIST = "object_list"
    NODE_LIST = "node_list"
    LIST_OF_LISTS = "list_of_lists"
    PRIMITIVE_LIST = "primitive_list"
    OBJECT = "object"
    SCALAR = "scalar"


def unwrap_envelope(document: Any) -> Any:
    """
    Return the payload to decode from a call response document.

    ``{"status": "ok", "result": X}`` unwraps to X. ``{"status": "err", ...}``
    raises RemoteQueryError with the remote message. Anything else is decoded
    as-is.
    """
    if not isinstance(document, Mapping):
        return document
    status = document.get("status")
    if status == "ok" and "result" in document:
        return document["result"]
    if status == "err":
        code = str(document.get("code") or "")
        mesg = document.get("mesg")
        text = mesg if isinstance(mesg, str) else display_str(document.get("result", code))
        raise RemoteQueryError(text, code=code)
    return document


def is_node_list(items: Sequence[Any]) -> bool:
    """True when the first item looks like ``[[form, value], {...}]``."""
    if not items:
        return False
    first = items[0]
    if not isinstance(first, list) or len(first) < 2:
        return False
    ndef = first[0]
    return isinstance(ndef, list) and len(ndef) >= 2 and isinstance(ndef[0], str)


def detect_shape(result: Any) -> ResultShape:
    if isinstance(result, list):
        if not result:
            return ResultShape.EMPTY
        first = result[0]
        if isinstance(first, Mapping):
            return ResultShape.OBJECT_LIST
        if isinstance(first, list):
            return ResultShape.NODE_LIST if is_node_list(result) else ResultShape.LIST_OF_LISTS
        return ResultShape.PRIMITIVE_LIST
    if isinstance(result, Mapping):
        return ResultShape.OBJECT
    return ResultShape.SCALAR


# -----------------------------
# Shape builders
# -----------------------------


def _empty_table() -> List[Column]:
    return [Column(name="result", type=ColumnType.STRING, values=[])]


def _scalar_table(result: Any) -> List[Column]:
    cell = None if result is None else display_str(result)
    return [Column(name="result", type=ColumnType.STRING, values=[cell])]


def _object_list_columns(items: Sequence[Any], *, flatten: bool, stats: DecodeStats) -> List[Column]:
    rows: List[Dict[str, Any]] = []
    for item in items:
        if not isinstance(item, Mapping):
            stats.warn("non-object item in object list")
            continue
        rows.append(flatten_object(item) if flatten else inline_nested(item))

    keys = sorted({key for row in rows for key in row})
    stats.rows = len(rows)
    return [build_column(key, [row.get(key) for row in rows], stats) for key in keys]


def _node_list_columns(items: Sequence[Any], stats: DecodeStats) -> List[Column]:
    nodes = []
    for item in items:
        node = parse_node(item)
        if node is None:
            stats.warn("malformed node in node list")
            continue
        nodes.append(node)
    stats.nodes = len(nodes)
    return build_node_table(CALL_TABLE_NAME, nodes, include_properties=False, stats=stats).columns


def _list_of_lists_columns(items: Sequence[Any], stats: DecodeStats) -> List[Column]:
    stats.rows = len(items)
    return [string_column("value", [compact_json(item) for item in items])]


def _primitive_list_columns(items: Sequence[Any], stats: DecodeStats) -> List[Column]:
    stats.rows = len(items)
    times = []
    for item in items:
        ts = normalize_timestamp(item)
        if ts is None:
            break
        times.append(ts)
    else:
        return [Column(name="value", type=ColumnType.TIME, values=times)]

    return [string_column("value", [None if item is None else display_str(item) for item in items])]


def _object_columns(obj: Mapping[str, Any], stats: DecodeStats) -> List[Column]:
    keys = sorted(str(k) for k in obj)
    by_key = {str(k): v for k, v in obj.items()}
    values = [by_key[k] for k in keys]
    stats.rows = len(keys)
    return [
        string_column("key", keys),
        typed_column("value", values, classify(values), stats),
    ]


def decode_call_result(
    result: Any,
    *,
    flatten: bool = False,
    ref_id: str = "",
    max_warning_samples: int = 50,
) -> Table:
    """
    Build the ``storm_call`` table for an already unwrapped call result.

    ``flatten`` controls object lists: when True nested objects expand into
    dotted columns, otherwise they are kept as compact JSON text.
    """
    stats = DecodeStats(max_warning_samples=max_warning_samples)
    shape = detect_shape(result)

    if shape is ResultShape.EMPTY:
        columns = _empty_table()
    elif shape is ResultShape.OBJECT_LIST:
        columns = _object_list_columns(result, flatten=flatten, stats=stats)
    elif shape is ResultShape.NODE_LIST:
        columns = _node_list_columns(result, stats)
    elif shape is ResultShape.LIST_OF_LISTS:
        columns = _list_of_lists_columns(result, stats)
    elif shape is ResultShape.PRIMITIVE_LIST:
        columns = _primitive_list_columns(result, stats)
    elif shape is ResultShape.OBJECT:
        columns = _object_columns(result, stats)
    else:
        columns = _scalar_table(result)
        stats.rows = 1

    table = Table(name=CALL_TABLE_NAME, ref_id=ref_id, columns=columns)
    logger.info(
        "storm_call_decoded",
        ref_id=ref_id,
        shape=shape.value,
        columns=len(columns),
        **stats.as_dict(),
    )
    return table


def decode_call_document(
    document: Any,
    *,
    flatten: bool = False,
    ref_id: str = "",
    max_warning_samples: int = 50,
) -> Table:
    """Unwrap the ``{status, result}`` envelope (when present) and decode."""
    return decode_call_result(
        unwrap_envelope(document),
        flatten=flatten,
        ref_id=ref_id,
        max_warning_samples=max_warning_samples,
    )

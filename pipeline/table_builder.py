"""Shared column emission for both decoders.

Given the raw per-row values of a named column, pick its type with the value
classifier, optionally reinterpret a numeric column as a time column based on
its name, and cast every cell. Cells that do not cast become null.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Mapping, Sequence

from contracts.column_cast import cast_column
from contracts.errors import DECODE_WARNING, NORMALIZATION_MISS
from contracts.normalization import display_str, normalize_timestamp
from contracts.schema import (
    NODE_PREFIX_COLUMNS,
    REPR_SUFFIX,
    Column,
    ColumnType,
    Table,
    is_time_name,
)
from pipeline.classify import classify

LOG = logging.getLogger(__name__)

_NUMERIC = (ColumnType.INT, ColumnType.FLOAT)


@dataclass
class DecodeStats:
    messages: int = 0
    nodes: int = 0
    rows: int = 0
    skipped: int = 0
    normalization_misses: int = 0
    warnings: List[str] = field(default_factory=list)
    max_warning_samples: int = 50

    def warn(self, reason: str) -> None:
        self.skipped += 1
        if len(self.warnings) < self.max_warning_samples:
            self.warnings.append(reason)
        LOG.debug("%s: %s", DECODE_WARNING, reason)

    def as_dict(self) -> Dict[str, Any]:
        return {
            "messages": self.messages,
            "nodes": self.nodes,
            "rows": self.rows,
            "skipped": self.skipped,
            "normalization_misses": self.normalization_misses,
        }


def build_column(name: str, values: Sequence[Any], stats: DecodeStats | None = None) -> Column:
    """
    Emit a typed column for ``values``.

    Numeric columns whose name hints at time are re-read as timestamps: if any
    cell normalizes the whole column becomes a time column (others null),
    otherwise the numeric type is kept.
    """
    column_type = classify(values)

    if column_type in _NUMERIC and is_time_name(name):
        times = [normalize_timestamp(v) for v in values]
        if any(t is not None for t in times):
            _count_misses(stats, sum(1 for v, t in zip(values, times) if v is not None and t is None))
            return Column(name=name, type=ColumnType.TIME, values=times)

    return typed_column(name, values, column_type, stats)


def typed_column(
    name: str, values: Sequence[Any], column_type: ColumnType, stats: DecodeStats | None = None
) -> Column:
    """Emit a column of an already decided type."""
    misses: List[Any] = []
    cells = cast_column(list(values), column_type, misses)
    _count_misses(stats, len(misses))
    return Column(name=name, type=column_type, values=cells)


def build_time_column(name: str, values: Sequence[Any], stats: DecodeStats | None = None) -> Column:
    """Unconditional time column: cells that do not normalize become null."""
    return typed_column(name, values, ColumnType.TIME, stats)


def _count_misses(stats: DecodeStats | None, count: int) -> None:
    if stats is not None and count:
        stats.normalization_misses += count
        LOG.debug("%s: %d cell(s) set to null", NORMALIZATION_MISS, count)


# -----------------------------
# Node tables
# -----------------------------


@dataclass
class NodeRecord:
    form: str
    value: str
    iden: str = ""
    tags: str = ""
    properties: Dict[str, Any] = field(default_factory=dict)


def parse_node(payload: Any) -> NodeRecord | None:
    """
    Parse ``[[form, value], {iden, tags, props, reprs}]``.

    Returns None for malformed payloads. Repr values are stored under
    ``<prop>_repr``; tag names are sorted and joined with ", ".
    """
    if not isinstance(payload, list) or len(payload) < 2:
        return None
    ndef, info = payload[0], payload[1]
    if not isinstance(ndef, list) or len(ndef) < 2 or not isinstance(ndef[0], str):
        return None

    node = NodeRecord(form=ndef[0], value=display_str(ndef[1]))
    if not isinstance(info, Mapping):
        return node

    iden = info.get("iden")
    if isinstance(iden, str):
        node.iden = iden

    tags = info.get("tags")
    if isinstance(tags, Mapping):
        node.tags = ", ".join(sorted(str(t) for t in tags))

    props = info.get("props")
    if isinstance(props, Mapping):
        for key, val in props.items():
            node.properties[str(key)] = val

    reprs = info.get("reprs")
    if isinstance(reprs, Mapping):
        for key, val in reprs.items():
            node.properties[f"{key}{REPR_SUFFIX}"] = val

    return node


def _prefix_columns(nodes: Sequence[NodeRecord]) -> List[Column]:
    # NodeRecord attribute names match the prefix column names
    return [
        Column(name=name, type=ColumnType.STRING, values=[getattr(n, name) for n in nodes])
        for name in NODE_PREFIX_COLUMNS
    ]


def property_keys(nodes: Iterable[NodeRecord]) -> List[str]:
    keys: set[str] = set()
    for node in nodes:
        keys.update(node.properties)
    return sorted(keys)


def build_node_table(
    name: str,
    nodes: Sequence[NodeRecord],
    *,
    include_properties: bool = True,
    stats: DecodeStats | None = None,
) -> Table:
    """
    Node table: ``form, value, iden, tags`` then one column per property key
    seen on any node (sorted).

    Time-named properties become time columns and their ``_repr`` twins are
    dropped; other properties are typed through ``build_column``.
    """
    columns = _prefix_columns(nodes)

    if include_properties:
        for key in property_keys(nodes):
            values = [n.properties.get(key) for n in nodes]
            if key.endswith(REPR_SUFFIX):
                if is_time_name(key[: -len(REPR_SUFFIX)]):
                    continue
                columns.append(build_column(key, values, stats))
            elif is_time_name(key):
                columns.append(build_time_column(key, values, stats))
            else:
                columns.append(build_column(key, values, stats))

    if stats is not None:
        stats.rows = len(nodes)
    return Table(name=name, columns=columns)

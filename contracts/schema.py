"""Canonical table model produced by the result-transformation engine.

A Table is the only thing the rendering layer sees: a name, a refId and an
ordered list of typed, row-aligned columns. Column types map one-to-one onto
Arrow types so a Table can always be materialized as a ``pyarrow.Table``.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any, Dict, List, Sequence

import pyarrow as pa

from version import ENGINE_NAME, ENGINE_VERSION, FRAME_SCHEMA_VERSION

# -----------------------------
# Common reusable Arrow types
# -----------------------------

UTC_TS_MS = pa.timestamp("ms", tz="UTC")

# Table names handed to the renderer
STREAM_TABLE_NAME = "storm"
CALL_TABLE_NAME = "storm_call"

# Fixed prefix of every node table
NODE_PREFIX_COLUMNS = ("form", "value", "iden", "tags")

# Case-insensitive substrings that mark a column as carrying timestamps
TIME_INDICATORS = (
    "created",
    "seen",
    "time",
    "modified",
    "updated",
    "accessed",
    "published",
    "date",
    "timestamp",
)

REPR_SUFFIX = "_repr"


def is_time_name(name: str) -> bool:
    """Return True when a column name hints at timestamp content."""
    lowered = str(name).lower()
    return any(token in lowered for token in TIME_INDICATORS)


class ColumnType(str, Enum):
    STRING = "string"
    INT = "int"
    FLOAT = "float"
    BOOL = "bool"
    TIME = "time"

    @property
    def arrow_type(self) -> pa.DataType:
        return _ARROW_TYPES[self]


_ARROW_TYPES: Dict[ColumnType, pa.DataType] = {
    ColumnType.STRING: pa.string(),
    ColumnType.INT: pa.int64(),
    ColumnType.FLOAT: pa.float64(),
    ColumnType.BOOL: pa.bool_(),
    ColumnType.TIME: UTC_TS_MS,
}


def format_timestamp(value: datetime) -> str:
    """Render an absolute time as ``YYYY-MM-DDTHH:MM:SS.sssZ`` (UTC)."""
    dt = value if value.tzinfo else value.replace(tzinfo=UTC)
    dt = dt.astimezone(UTC)
    return (
        f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}T"
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d}.{dt.microsecond // 1000:03d}Z"
    )


@dataclass
class Column:
    name: str
    type: ColumnType
    values: List[Any] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.values)

    def to_arrow(self) -> pa.Array:
        return pa.array(self.values, type=self.type.arrow_type)

    def frame_values(self) -> List[Any]:
        if self.type is ColumnType.TIME:
            return [None if v is None else format_timestamp(v) for v in self.values]
        return list(self.values)


@dataclass
class Table:
    """
    Named, typed, row-aligned tabular result.

    Invariant: every column has the same length (the row count).
    """

    name: str
    ref_id: str = ""
    columns: List[Column] = field(default_factory=list)

    def __post_init__(self) -> None:
        lengths = {len(col) for col in self.columns}
        if len(lengths) > 1:
            raise ValueError(f"Table {self.name!r} has columns of unequal length: {sorted(lengths)}")

    @property
    def num_rows(self) -> int:
        return len(self.columns[0]) if self.columns else 0

    @property
    def column_names(self) -> List[str]:
        return [col.name for col in self.columns]

    def column(self, name: str) -> Column:
        for col in self.columns:
            if col.name == name:
                return col
        raise KeyError(name)

    def with_ref_id(self, ref_id: str) -> Table:
        self.ref_id = ref_id
        return self

    def schema(self) -> pa.Schema:
        metadata = {
            "name": self.name,
            "ref_id": self.ref_id,
            "engine_name": ENGINE_NAME,
            "engine_version": ENGINE_VERSION,
            "frame_schema_version": str(FRAME_SCHEMA_VERSION),
        }
        fields = [pa.field(col.name, col.type.arrow_type) for col in self.columns]
        return pa.schema(fields, metadata=metadata)

    def to_arrow(self) -> pa.Table:
        """Materialize as an Arrow table (schema metadata carries name/refId)."""
        arrays = [col.to_arrow() for col in self.columns]
        return pa.Table.from_arrays(arrays, schema=self.schema())

    def to_frame(self) -> Dict[str, Any]:
        """JSON-friendly frame for thin consumers (API, CLI)."""
        return {
            "name": self.name,
            "refId": self.ref_id,
            "fields": [
                {"name": col.name, "type": col.type.value, "values": col.frame_values()}
                for col in self.columns
            ],
        }


def string_column(name: str, values: Sequence[Any]) -> Column:
    return Column(name=name, type=ColumnType.STRING, values=list(values))

"""Contracts and canonical table model.

The contracts package defines:
- the Table / Column model and its Arrow mapping
- timestamp normalization and display stringification
- best-effort cell casting
- the query request contract (options bag, time interval)
- the error taxonomy

Main exports:
- Table, Column, ColumnType
- QueryRequest, TimeInterval
- StormGridError, InvalidRequest, RemoteQueryError, TransportError
- normalize_timestamp, cast_cell
"""

from contracts import column_cast
from contracts import errors
from contracts import normalization
from contracts import query
from contracts import schema

# Explicit re-exports to satisfy ruff F401
__all__ = [
    "Column",
    "ColumnType",
    "Table",
    "QueryRequest",
    "TimeInterval",
    "StormGridError",
    "InvalidRequest",
    "RemoteQueryError",
    "TransportError",
    "normalize_timestamp",
    "cast_cell",
]

# Re-export for convenience
Column = schema.Column
ColumnType = schema.ColumnType
Table = schema.Table

QueryRequest = query.QueryRequest
TimeInterval = query.TimeInterval

StormGridError = errors.StormGridError
InvalidRequest = errors.InvalidRequest
RemoteQueryError = errors.RemoteQueryError
TransportError = errors.TransportError

normalize_timestamp = normalization.normalize_timestamp
cast_cell = column_cast.cast_cell

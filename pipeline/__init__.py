"""Pipeline components.

This package contains the result-transformation engine: time-range variables,
value classification, flattening, shared column emission, the streaming and
call decoders, and table export (Parquet / JSON).
"""

"""Write decoded tables to disk.

Parquet output keeps the column types (Arrow schema, name/refId in schema
metadata); JSON output is the same frame the API returns.
"""

from __future__ import annotations

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Union

import pyarrow.parquet as pq

from contracts.schema import Table


class TableExportError(RuntimeError):
    """Raised when a table cannot be written."""


@dataclass(frozen=True)
class ExportConfig:
    compression: str = "zstd"
    use_dictionary: bool = True
    json_indent: int | None = 2


PathLike = Union[str, "os.PathLike[str]"]


def write_parquet(table: Table, path: PathLike, cfg: ExportConfig = ExportConfig()) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    try:
        pq.write_table(
            table.to_arrow(),
            str(out),
            compression=cfg.compression,
            use_dictionary=cfg.use_dictionary,
            write_statistics=True,
        )
    except (OSError, ValueError) as exc:
        raise TableExportError(f"Parquet write failed for {out}: {exc}") from exc
    return out


def write_json(table: Table, path: PathLike, cfg: ExportConfig = ExportConfig()) -> Path:
    out = Path(path)
    out.parent.mkdir(parents=True, exist_ok=True)
    try:
        out.write_text(json.dumps(table.to_frame(), indent=cfg.json_indent, ensure_ascii=False), encoding="utf-8")
    except OSError as exc:
        raise TableExportError(f"JSON write failed for {out}: {exc}") from exc
    return out


def write_table(table: Table, path: PathLike, cfg: ExportConfig = ExportConfig()) -> Path:
    """Pick the format from the file suffix (``.parquet`` or ``.json``)."""
    suffix = Path(path).suffix.lower()
    if suffix == ".parquet":
        return write_parquet(table, path, cfg)
    if suffix == ".json":
        return write_json(table, path, cfg)
    raise TableExportError(f"Unsupported output format {suffix!r} (use .parquet or .json)")

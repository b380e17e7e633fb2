"""
StormGrid CLI (flat-layout friendly).

Usage
-----
stormgrid query --query "inet:fqdn=example.com" --from 2024-01-01T00:00:00Z --to 2024-01-02T00:00:00Z
stormgrid query --call --query "return($lib.view.list())" --opts '{"flatten": true}' --out out/views.parquet
stormgrid decode --input saved_body.ndjson --out out/storm.json
stormgrid decode --call --input saved_call.json --flatten
stormgrid serve
"""

from __future__ import annotations

import argparse
import json
from datetime import UTC, datetime, timedelta
from pathlib import Path
from typing import Any, Dict, Iterator, List, Optional

from contracts.errors import StormGridError
from contracts.query import QueryRequest, TimeInterval
from contracts.schema import Table
from infra.config import get_settings
from infra.logging_config import setup_logging


def _parse_opts(raw: Optional[str]) -> Dict[str, Any]:
    if not raw:
        return {}
    try:
        opts = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise SystemExit(f"--opts is not valid JSON: {exc}") from exc
    if not isinstance(opts, dict):
        raise SystemExit("--opts must be a JSON object.")
    return opts


def _interval(args: argparse.Namespace) -> TimeInterval:
    """Explicit --from/--to, or the last 24 hours when both are omitted."""
    if args.time_from is None and args.time_to is None:
        end = datetime.now(UTC)
        return TimeInterval(start=end - timedelta(hours=24), end=end)
    return TimeInterval.from_payload({"from": args.time_from, "to": args.time_to})


def _print_summary(table: Table) -> None:
    print(f"table={table.name} refId={table.ref_id} rows={table.num_rows} columns={len(table.columns)}")
    for col in table.columns:
        print(f"  {col.name}: {col.type.value}")


def _emit(table: Table, out: Optional[str]) -> None:
    # Imported lazily: pyarrow.parquet is only needed when writing files
    from pipeline.table_export import TableExportError, write_table

    _print_summary(table)
    if not out:
        return
    try:
        path = write_table(table, out)
    except TableExportError as exc:
        raise SystemExit(str(exc)) from exc
    print(f"wrote {path}")


def _read_chunks(path: Path) -> Iterator[bytes]:
    with path.open("rb") as fh:
        for line in fh:
            yield line


def cmd_query(args: argparse.Namespace) -> None:
    # Imported lazily so `decode` works without any Cortex configuration
    from apps.backend.cortex_client import CortexClient
    from apps.backend.query_service import run_query

    settings = get_settings()
    url = args.url or settings.cortex.url
    if not url:
        raise SystemExit("Missing --url (or CORTEX_URL env var).")

    client = CortexClient(
        url,
        api_key=settings.cortex.api_key,
        timeout=settings.cortex.timeout,
        tls_skip_verify=settings.cortex.tls_skip_verify,
    )
    try:
        request = QueryRequest(
            storm_query=args.query or "",
            use_call=bool(args.call),
            opts=_parse_opts(args.opts),
            ref_id=args.ref_id,
        )
        table = run_query(
            client,
            request,
            _interval(args),
            max_warning_samples=settings.decode.max_warning_samples,
        )
    except StormGridError as exc:
        raise SystemExit(f"query failed: {exc}") from exc
    _emit(table, args.out)


def cmd_decode(args: argparse.Namespace) -> None:
    from pipeline.call_decoder import decode_call_document
    from pipeline.stream_decoder import decode_stream_body

    path = Path(args.input)
    if not path.is_file():
        raise SystemExit(f"Input file not found: {path}")

    max_samples = get_settings().decode.max_warning_samples
    try:
        if args.call:
            try:
                document = json.loads(path.read_text(encoding="utf-8"))
            except json.JSONDecodeError as exc:
                raise SystemExit(f"{path} is not a JSON document: {exc}") from exc
            table = decode_call_document(
                document, flatten=bool(args.flatten), ref_id=args.ref_id, max_warning_samples=max_samples
            )
        else:
            table = decode_stream_body(_read_chunks(path), ref_id=args.ref_id, max_warning_samples=max_samples)
    except StormGridError as exc:
        raise SystemExit(f"decode failed: {exc}") from exc
    _emit(table, args.out)


def cmd_serve(args: argparse.Namespace) -> None:
    from apps.flask_api.flask_app import app

    settings = get_settings()
    app.run(host=args.host or settings.api.host, port=args.port or settings.api.port)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(prog="stormgrid", description="StormGrid CLI")
    p.add_argument("--log-level", default=None, help="Log level (or STORMGRID_LOG_LEVEL env var).")
    p.add_argument("--log-json", action="store_true", help="Emit JSON log lines.")
    sub = p.add_subparsers(dest="cmd", required=True)

    def add_output(sp: argparse.ArgumentParser) -> None:
        sp.add_argument("--ref-id", default="A", help="refId stamped on the table. Default: A")
        sp.add_argument("--out", default=None, help="Write the table to a .parquet or .json file.")

    sp = sub.add_parser("query", help="Run one Storm query against the configured Cortex.")
    sp.add_argument("--url", default=None, help="Cortex base URL (or CORTEX_URL env var).")
    sp.add_argument("--query", required=True, help="Storm query text.")
    sp.add_argument("--call", action="store_true", help="Use the call endpoint instead of streaming.")
    sp.add_argument("--opts", default=None, help="Query opts as a JSON object.")
    sp.add_argument("--from", dest="time_from", default=None, help="Range start (ISO-8601 or epoch ms).")
    sp.add_argument("--to", dest="time_to", default=None, help="Range end (ISO-8601 or epoch ms).")
    add_output(sp)
    sp.set_defaults(func=cmd_query)

    sp = sub.add_parser("decode", help="Decode a saved streaming body or call document offline.")
    sp.add_argument("--input", required=True, help="Saved response body.")
    sp.add_argument("--call", action="store_true", help="Input is a call document, not a stream.")
    sp.add_argument("--flatten", action="store_true", help="Flatten nested objects in call results.")
    add_output(sp)
    sp.set_defaults(func=cmd_decode)

    sp = sub.add_parser("serve", help="Run the HTTP API.")
    sp.add_argument("--host", default=None, help="Bind host (or API_HOST env var).")
    sp.add_argument("--port", type=int, default=None, help="Bind port (or API_PORT env var).")
    sp.set_defaults(func=cmd_serve)

    return p


def main(argv: Optional[List[str]] = None) -> None:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(level=args.log_level, json_logs=True if args.log_json else None)
    args.func(args)


if __name__ == "__main__":
    main()

"""Tests for the offline ``decode`` CLI command."""

from __future__ import annotations

import json

import pytest

import cli


def test_decode_stream_file_to_json(tmp_path, capsys) -> None:  # type: ignore[no-untyped-def]
    body = tmp_path / "body.ndjson"
    body.write_text(
        '["node", [["inet:fqdn", "a.com"], {"props": {"zone": "a.com"}}]]\n["fini", {}]\n',
        encoding="utf-8",
    )
    out = tmp_path / "storm.json"

    cli.main(["decode", "--input", str(body), "--out", str(out)])

    frame = json.loads(out.read_text(encoding="utf-8"))
    assert frame["name"] == "storm"
    assert [f["name"] for f in frame["fields"]] == ["form", "value", "iden", "tags", "zone"]
    assert "rows=1" in capsys.readouterr().out


def test_decode_call_file_with_flatten(tmp_path, capsys) -> None:  # type: ignore[no-untyped-def]
    doc = tmp_path / "call.json"
    doc.write_text(json.dumps({"status": "ok", "result": [{"a": {"b": 1}}]}), encoding="utf-8")

    cli.main(["decode", "--call", "--flatten", "--input", str(doc)])

    printed = capsys.readouterr().out
    assert "table=storm_call" in printed
    assert "a.b: int" in printed


def test_decode_remote_error_exits(tmp_path) -> None:  # type: ignore[no-untyped-def]
    body = tmp_path / "err.ndjson"
    body.write_text('["err", ["BadSyntax", {"mesg": "unexpected token"}]]\n', encoding="utf-8")

    with pytest.raises(SystemExit) as excinfo:
        cli.main(["decode", "--input", str(body)])
    assert "unexpected token" in str(excinfo.value)

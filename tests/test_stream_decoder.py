"""Unit tests for the streaming Storm decoder."""

from __future__ import annotations

import json
from typing import Any, Iterator

import pytest

from contracts.errors import RemoteQueryError
from contracts.schema import ColumnType
from pipeline.stream_decoder import StormStreamDecoder, decode_stream, decode_stream_body, iter_messages
from pipeline.table_builder import DecodeStats

_NODE = ["node", [["inet:fqdn", "example.com"], {"iden": "abc", "props": {"asn": 123}}]]


def _lines(*messages: Any) -> list[bytes]:
    return [(json.dumps(m) + "\n").encode("utf-8") for m in messages]


def test_single_node_then_fini() -> None:
    table = decode_stream_body(_lines(_NODE, ["fini"]), ref_id="A")

    assert table.name == "storm"
    assert table.ref_id == "A"
    assert table.num_rows == 1
    assert table.column("form").values == ["inet:fqdn"]
    assert table.column("value").values == ["example.com"]
    assert table.column("iden").values == ["abc"]
    assert table.column("asn").type is ColumnType.INT
    assert table.column("asn").values == [123]


def test_err_message_raises_with_remote_text() -> None:
    with pytest.raises(RemoteQueryError) as excinfo:
        decode_stream_body(_lines(_NODE, ["err", ["BadSyntax", "unexpected token"]]))

    assert "unexpected token" in str(excinfo.value)
    assert excinfo.value.code == "BadSyntax"


def test_err_info_mesg_is_used_verbatim() -> None:
    with pytest.raises(RemoteQueryError) as excinfo:
        decode_stream([["err", ["NoSuchForm", {"mesg": "No form named foo:bar", "name": "foo:bar"}]]])
    assert str(excinfo.value) == "No form named foo:bar"


def test_messages_after_fini_are_never_consumed() -> None:
    consumed: list[Any] = []

    def _source() -> Iterator[Any]:
        for msg in (_NODE, ["fini", {"tock": 1}], _NODE, ["err", ["Boom", "late"]]):
            consumed.append(msg)
            yield msg

    table = decode_stream(_source())

    assert table.num_rows == 1
    assert len(consumed) == 2


def test_end_of_input_without_fini_is_normal_completion() -> None:
    table = decode_stream_body(_lines(_NODE, _NODE))
    assert table.num_rows == 2


def test_malformed_and_unknown_messages_are_skipped() -> None:
    decoder = StormStreamDecoder()
    for msg in (["init", {"tick": 1}], ["node"], ["node", "garbage"], "text", [], _NODE, ["print", {"mesg": "hi"}]):
        assert decoder.feed(msg) is True
    table = decoder.finish()

    assert table.num_rows == 1
    assert decoder.stats.nodes == 1
    assert decoder.stats.skipped == 3


def test_property_columns_are_union_across_nodes() -> None:
    second = ["node", [["inet:fqdn", "b.com"], {"props": {"zone": "b.com"}}]]
    table = decode_stream([_NODE, second, ["fini"]])

    assert table.column_names == ["form", "value", "iden", "tags", "asn", "zone"]
    assert table.column("asn").values == [123, None]
    assert table.column("zone").values == [None, "b.com"]


def test_iter_messages_handles_concatenated_and_split_chunks() -> None:
    body = '["node",1]["fini"]\n'.encode("utf-8")
    chunks = [body[:5], body[5:13], body[13:]]
    assert list(iter_messages(chunks)) == [["node", 1], ["fini"]]


def test_iter_messages_handles_split_utf8_sequences() -> None:
    raw = json.dumps(["print", {"mesg": "café"}], ensure_ascii=False).encode("utf-8")
    cut = raw.index("é".encode("utf-8")) + 1
    assert list(iter_messages([raw[:cut], raw[cut:]])) == [["print", {"mesg": "café"}]]


def test_iter_messages_skips_bad_line_and_continues() -> None:
    stats = DecodeStats()
    out = list(iter_messages([b"not json\n", b'["fini"]\n'], stats))

    assert out == [["fini"]]
    assert stats.skipped == 1

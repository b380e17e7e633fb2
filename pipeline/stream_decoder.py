"""Decoder for the streaming Storm endpoint (``/api/v1/storm``).

The body is a sequence of JSON messages, one per line (directly concatenated
messages are accepted too). Each message is a list whose first element is a
tag:

  ["node", [[form, value], {"iden": ..., "tags": {...}, "props": {...}, "reprs": {...}}]]
  ["err",  [code, info]]
  ["fini", {...}]

Nodes are accumulated until ``fini`` (or end of input) and turned into one
node table named ``storm``. An ``err`` message aborts with RemoteQueryError.
"""

from __future__ import annotations

import json
from collections.abc import Mapping
from enum import Enum
from typing import Any, Iterable, Iterator, List, Union

from contracts.errors import RemoteQueryError
from contracts.normalization import display_str
from contracts.schema import STREAM_TABLE_NAME, Table
from infra.logging_config import StructuredLogger
from pipeline.table_builder import DecodeStats, NodeRecord, build_node_table, parse_node

logger = StructuredLogger(__name__)

Chunk = Union[bytes, str]


class DecoderState(str, Enum):
    OPEN = "open"
    DONE = "done"


def iter_messages(chunks: Iterable[Chunk], stats: DecodeStats | None = None) -> Iterator[Any]:
    """
    Lazily parse JSON messages out of a chunked body.

    A message that cannot be parsed is skipped up to the next newline. Nothing
    past the point where the consumer stops iterating is read.
    """
    decoder = json.JSONDecoder()
    buf = ""
    pending = b""
    finished = False
    source = iter(chunks)

    while True:
        if not finished:
            try:
                chunk = next(source)
            except StopIteration:
                finished = True
                chunk = b""
            if isinstance(chunk, bytes):
                data = pending + chunk
                try:
                    text = data.decode("utf-8")
                    pending = b""
                except UnicodeDecodeError as exc:
                    # keep an incomplete trailing multi-byte sequence for the next chunk
                    if finished or exc.start < len(data) - 3:
                        text = data.decode("utf-8", errors="replace")
                        pending = b""
                    else:
                        text = data[: exc.start].decode("utf-8")
                        pending = data[exc.start:]
            else:
                text = chunk
            buf += text

        idx = 0
        while True:
            while idx < len(buf) and buf[idx].isspace():
                idx += 1
            if idx >= len(buf):
                break
            try:
                message, end = decoder.raw_decode(buf, idx)
            except json.JSONDecodeError as exc:
                newline = buf.find("\n", idx)
                if newline == -1 and not finished:
                    break
                stop = len(buf) if newline == -1 else newline + 1
                if stats is not None:
                    stats.warn(f"unparseable message: {exc.msg}")
                idx = stop
                continue
            idx = end
            yield message
        buf = buf[idx:]

        if finished:
            return


def _error_message(payload: Any) -> tuple[str, str]:
    """Extract (code, message) from an ``err`` payload, keeping the remote text verbatim."""
    if isinstance(payload, list) and payload:
        code = payload[0] if isinstance(payload[0], str) else ""
        if len(payload) < 2:
            return code, code
        info = payload[1]
        if isinstance(info, Mapping) and isinstance(info.get("mesg"), str):
            return code, info["mesg"]
        return code, display_str(info)
    if isinstance(payload, Mapping) and isinstance(payload.get("mesg"), str):
        return str(payload.get("code") or ""), payload["mesg"]
    return "", display_str(payload)


class StormStreamDecoder:
    """
    Incremental consumer of streaming Storm messages.

    Usage:
        decoder = StormStreamDecoder(ref_id="A")
        for msg in messages:
            if not decoder.feed(msg):
                break
        table = decoder.finish()
    """

    def __init__(self, *, ref_id: str = "", max_warning_samples: int = 50) -> None:
        self.ref_id = ref_id
        self.state = DecoderState.OPEN
        self.stats = DecodeStats(max_warning_samples=max_warning_samples)
        self._nodes: List[NodeRecord] = []

    def feed(self, message: Any) -> bool:
        """Consume one message; returns False once the stream is complete."""
        if self.state is DecoderState.DONE:
            return False
        self.stats.messages += 1

        if not isinstance(message, list) or not message:
            self.stats.warn("message is not a non-empty list")
            return True

        tag = message[0]
        if not isinstance(tag, str):
            self.stats.warn("message tag is not a string")
            return True

        if tag == "fini":
            self.state = DecoderState.DONE
            return False

        if len(message) < 2:
            return True

        if tag == "node":
            node = parse_node(message[1])
            if node is None:
                self.stats.warn("malformed node payload")
                return True
            self._nodes.append(node)
            self.stats.nodes += 1
        elif tag == "err":
            code, text = _error_message(message[1])
            logger.warning("storm_remote_error", ref_id=self.ref_id, code=code, mesg=text)
            self._nodes = []
            raise RemoteQueryError(text, code=code)

        return True

    def finish(self) -> Table:
        """Build the node table from everything accumulated so far."""
        self.state = DecoderState.DONE
        table = build_node_table(STREAM_TABLE_NAME, self._nodes, stats=self.stats)
        self._nodes = []
        logger.info("storm_stream_decoded", ref_id=self.ref_id, columns=len(table.columns), **self.stats.as_dict())
        return table.with_ref_id(self.ref_id)


def decode_stream(
    messages: Iterable[Any], *, ref_id: str = "", max_warning_samples: int = 50
) -> Table:
    """Decode already-parsed messages; stops reading at ``fini``."""
    decoder = StormStreamDecoder(ref_id=ref_id, max_warning_samples=max_warning_samples)
    for message in messages:
        if not decoder.feed(message):
            break
    return decoder.finish()


def decode_stream_body(
    chunks: Iterable[Chunk], *, ref_id: str = "", max_warning_samples: int = 50
) -> Table:
    """Decode a raw streaming body (bytes/str chunks, e.g. HTTP response lines)."""
    decoder = StormStreamDecoder(ref_id=ref_id, max_warning_samples=max_warning_samples)
    for message in iter_messages(chunks, decoder.stats):
        if not decoder.feed(message):
            break
    return decoder.finish()

"""Unit tests for the Cortex HTTP client (urlopen is monkeypatched)."""

from __future__ import annotations

import io
import json
from datetime import UTC, datetime
from typing import Any, List
from urllib.error import HTTPError, URLError

import pytest

import apps.backend.cortex_client as cortex_client
from apps.backend.cortex_client import CortexClient
from apps.backend.query_service import query_data
from contracts.errors import TransportError
from contracts.query import TimeInterval


class _FakeResponse(io.BytesIO):
    def __init__(self, body: bytes, status: int = 200) -> None:
        super().__init__(body)
        self.status = status


def _capture(monkeypatch: Any, response: Any) -> List[Any]:
    seen: List[Any] = []

    def _fake_urlopen(req: Any, timeout: float = 0, context: Any = None) -> Any:
        seen.append(req)
        if isinstance(response, Exception):
            raise response
        return response

    monkeypatch.setattr(cortex_client, "urlopen", _fake_urlopen)
    return seen


def test_storm_posts_query_with_api_key(monkeypatch: Any) -> None:
    seen = _capture(monkeypatch, _FakeResponse(b'["node",1]\n["fini"]\n'))
    client = CortexClient("https://cortex:4443/", api_key="secret")

    lines = list(client.storm("inet:fqdn", {"limit": 5}))

    assert lines == [b'["node",1]\n', b'["fini"]\n']
    req = seen[0]
    assert req.full_url == "https://cortex:4443/api/v1/storm"
    assert req.get_method() == "POST"
    assert req.get_header("X-api-key") == "secret"
    assert json.loads(req.data) == {"query": "inet:fqdn", "opts": {"limit": 5}}


def test_no_api_key_header_when_unset(monkeypatch: Any) -> None:
    seen = _capture(monkeypatch, _FakeResponse(b'{"status": "ok", "result": 1}'))
    doc = CortexClient("https://cortex").storm_call("return(1)")

    assert doc == {"status": "ok", "result": 1}
    assert seen[0].full_url == "https://cortex/api/v1/storm/call"
    assert seen[0].get_header("X-api-key") is None


def test_http_error_status_is_transport_error(monkeypatch: Any) -> None:
    err = HTTPError("https://cortex/api/v1/storm/call", 502, "Bad Gateway", {}, io.BytesIO(b""))
    _capture(monkeypatch, err)

    with pytest.raises(TransportError) as excinfo:
        CortexClient("https://cortex").storm_call("return(1)")
    assert str(excinfo.value) == "storm call failed with status: 502"
    assert excinfo.value.status == 502


def test_connection_failure_is_transport_error(monkeypatch: Any) -> None:
    _capture(monkeypatch, URLError("connection refused"))
    with pytest.raises(TransportError):
        list(CortexClient("https://cortex").storm("inet:fqdn"))


def test_missing_url_is_transport_error() -> None:
    with pytest.raises(TransportError):
        CortexClient("").storm_call("return(1)")


def test_check_health_never_raises(monkeypatch: Any) -> None:
    seen = _capture(monkeypatch, _FakeResponse(b""))
    ok = CortexClient("https://cortex").check_health()
    assert ok.ok is True
    assert json.loads(seen[0].data) == {"query": ""}

    _capture(monkeypatch, URLError("down"))
    down = CortexClient("https://cortex").check_health()
    assert down.ok is False
    assert "Failed to connect" in down.message

    assert CortexClient("").check_health().ok is False


class _DroppedResponse:
    """Streams one node line, then the connection times out."""

    status = 200

    def __init__(self) -> None:
        self.closed = False

    def __iter__(self) -> Any:
        yield b'["node", [["inet:fqdn", "a.com"], {}]]\n'
        raise TimeoutError("timed out")

    def read(self) -> bytes:
        raise ConnectionResetError("connection reset by peer")

    def close(self) -> None:
        self.closed = True


def test_stream_read_failure_is_transport_error(monkeypatch: Any) -> None:
    resp = _DroppedResponse()
    _capture(monkeypatch, resp)

    with pytest.raises(TransportError) as excinfo:
        list(CortexClient("https://cortex").storm("inet:fqdn"))
    assert "timed out" in str(excinfo.value)
    assert resp.closed is True


def test_call_read_failure_is_transport_error(monkeypatch: Any) -> None:
    resp = _DroppedResponse()
    _capture(monkeypatch, resp)

    with pytest.raises(TransportError) as excinfo:
        CortexClient("https://cortex").storm_call("return(1)")
    assert "connection reset" in str(excinfo.value)
    assert resp.closed is True


def test_dropped_stream_fails_only_its_own_ref_id(monkeypatch: Any) -> None:
    """A read failure on query A is reported for A; query B still runs."""

    def _fake_urlopen(req: Any, timeout: float = 0, context: Any = None) -> Any:
        if req.full_url.endswith("/storm/call"):
            return _FakeResponse(b'{"status": "ok", "result": [{"x": 1}]}')
        return _DroppedResponse()

    monkeypatch.setattr(cortex_client, "urlopen", _fake_urlopen)
    interval = TimeInterval(start=datetime(2024, 1, 1, tzinfo=UTC), end=datetime(2024, 1, 2, tzinfo=UTC))

    responses = query_data(
        CortexClient("https://cortex"),
        [
            {"refId": "A", "stormQuery": "inet:fqdn"},
            {"refId": "B", "stormQuery": "return($rows)", "useCall": True},
        ],
        interval,
    )

    assert responses["A"].ok is False
    assert "timed out" in (responses["A"].error or "")
    assert responses["B"].ok is True
    assert responses["B"].table is not None
    assert responses["B"].table.column("x").values == [1]

"""HTTP client for the Synapse Cortex Storm API.

Thin transport only: it posts ``{"query": ..., "opts": ...}`` and hands back
the raw body. Decoding is done by ``pipeline.stream_decoder`` and
``pipeline.call_decoder``.

The client holds configuration only (no per-request state) and can be shared
between threads.
"""

from __future__ import annotations

import http.client
import json
import ssl
from dataclasses import dataclass
from typing import Any, Dict, Iterator, Mapping, Optional
from urllib.error import HTTPError, URLError
from urllib.request import Request, urlopen

from contracts.errors import TransportError
from infra.config import CortexConfig
from infra.logging_config import StructuredLogger
from version import ENGINE_NAME, ENGINE_VERSION

logger = StructuredLogger(__name__)

STORM_PATH = "/api/v1/storm"
STORM_CALL_PATH = "/api/v1/storm/call"


@dataclass(frozen=True)
class HealthResult:
    ok: bool
    message: str


class CortexClient:
    def __init__(
        self,
        base_url: str,
        *,
        api_key: str = "",
        timeout: float = 30.0,
        tls_skip_verify: bool = False,
    ) -> None:
        self.base_url = (base_url or "").strip().rstrip("/")
        self.api_key = api_key
        self.timeout = timeout
        self._ssl_context: Optional[ssl.SSLContext] = None
        if tls_skip_verify:
            ctx = ssl.create_default_context()
            ctx.check_hostname = False
            ctx.verify_mode = ssl.CERT_NONE
            self._ssl_context = ctx

    @classmethod
    def from_config(cls, cfg: CortexConfig) -> CortexClient:
        return cls(cfg.url, api_key=cfg.api_key, timeout=cfg.timeout, tls_skip_verify=cfg.tls_skip_verify)

    # -------------------------
    # Internal helpers
    # -------------------------

    def _request(self, path: str, body: Mapping[str, Any]) -> Request:
        if not self.base_url:
            raise TransportError("cortex url is not configured")
        headers = {
            "Accept": "application/json",
            "Content-Type": "application/json",
            "User-Agent": f"{ENGINE_NAME}/{ENGINE_VERSION}",
        }
        if self.api_key:
            headers["X-API-KEY"] = self.api_key
        data = json.dumps(body, default=str).encode("utf-8")
        return Request(url=self.base_url + path, method="POST", headers=headers, data=data)

    def _open(self, req: Request, what: str) -> Any:
        try:
            resp = urlopen(req, timeout=self.timeout, context=self._ssl_context)
        except HTTPError as exc:
            status = int(getattr(exc, "code", 0) or 0)
            exc.close()
            raise TransportError(f"{what} failed with status: {status}", status=status) from exc
        except (URLError, OSError) as exc:
            raise TransportError(f"execute request: {exc}") from exc

        status = int(getattr(resp, "status", 200) or 200)
        if status != 200:
            resp.close()
            raise TransportError(f"{what} failed with status: {status}", status=status)
        return resp

    # -------------------------
    # Endpoints
    # -------------------------

    def storm(self, query: str, opts: Optional[Dict[str, Any]] = None) -> Iterator[bytes]:
        """
        Run a streaming query; yields raw body lines as they arrive.

        The response is closed when the generator is exhausted or closed.
        """
        req = self._request(STORM_PATH, {"query": query, "opts": opts or {}})
        resp = self._open(req, "storm query")
        logger.debug("cortex_storm_opened", url=req.full_url)
        try:
            for line in resp:
                yield line
        except (OSError, http.client.HTTPException) as exc:
            raise TransportError(f"read response: {exc}") from exc
        finally:
            resp.close()

    def storm_call(self, query: str, opts: Optional[Dict[str, Any]] = None) -> Any:
        """Run a call query and return the decoded JSON document."""
        req = self._request(STORM_CALL_PATH, {"query": query, "opts": opts or {}})
        resp = self._open(req, "storm call")
        try:
            raw = resp.read().decode("utf-8")
        except (OSError, http.client.HTTPException) as exc:
            raise TransportError(f"read response: {exc}") from exc
        except UnicodeDecodeError as exc:
            raise TransportError(f"decode response: {exc}") from exc
        finally:
            resp.close()
        try:
            return json.loads(raw) if raw.strip() else None
        except json.JSONDecodeError as exc:
            raise TransportError(f"decode response: {exc}") from exc

    def check_health(self) -> HealthResult:
        """Post an empty query to the storm endpoint; never raises."""
        try:
            req = self._request(STORM_PATH, {"query": ""})
        except TransportError as exc:
            return HealthResult(ok=False, message=f"Failed to create request: {exc}")

        try:
            resp = urlopen(req, timeout=self.timeout, context=self._ssl_context)
        except HTTPError as exc:
            status = int(getattr(exc, "code", 0) or 0)
            exc.close()
            return HealthResult(ok=False, message=f"Cortex returned status: {status}")
        except (URLError, OSError) as exc:
            return HealthResult(ok=False, message=f"Failed to connect to Cortex: {exc}")

        try:
            status = int(getattr(resp, "status", 200) or 200)
        finally:
            resp.close()
        if status != 200:
            return HealthResult(ok=False, message=f"Cortex returned status: {status}")
        return HealthResult(ok=True, message="Data source is working")

"""
Relay API Client

Architectural Intent:
- Event-source side of the HTTP ingestion API, plus status reads
- Used by the CLI (publish, stats) and the TUI dashboard
- Uses stdlib urllib for the HTTP layer (no external dependencies)

Design Decisions:
- Blocking urllib calls are wrapped with asyncio.to_thread so callers on an
  event loop never block it
- Transport failures surface as ConnectionError; HTTP error responses surface
  as RelayAPIError carrying the status code and server message
"""

from __future__ import annotations
from typing import Any, Optional
import asyncio
import base64
import json
import logging
import urllib.error
import urllib.request

logger = logging.getLogger(__name__)

DEFAULT_TIMEOUT = 5.0


class RelayAPIError(Exception):
    """The relay answered with an HTTP error status."""

    def __init__(self, status: int, message: str):
        super().__init__(f"HTTP {status}: {message}")
        self.status = status
        self.message = message


class RelayClient:
    def __init__(self, base_url: str, timeout: float = DEFAULT_TIMEOUT) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout

    async def publish(
        self, channel: str, payload: bytes | str
    ) -> dict[str, Any]:
        """Publish one event; returns the dispatch result."""
        if isinstance(payload, str):
            body = {"channel": channel, "payload": payload}
        else:
            body = {
                "channel": channel,
                "payload": base64.b64encode(payload).decode("ascii"),
                "encoding": "base64",
            }
        return await asyncio.to_thread(self._request, "POST", "/api/publish", body)

    async def stats(self) -> dict[str, Any]:
        return await asyncio.to_thread(self._request, "GET", "/api/stats")

    async def channels(self) -> dict[str, int]:
        return await asyncio.to_thread(self._request, "GET", "/api/channels")

    def _request(
        self, method: str, path: str, body: Optional[dict] = None
    ) -> Any:
        data = json.dumps(body).encode("utf-8") if body is not None else None
        req = urllib.request.Request(
            f"{self.base_url}{path}",
            data=data,
            headers={"Content-Type": "application/json"},
            method=method,
        )
        logger.debug("%s %s", method, req.full_url)
        try:
            with urllib.request.urlopen(req, timeout=self.timeout) as resp:
                return json.loads(resp.read().decode("utf-8"))
        except urllib.error.HTTPError as e:
            raw = e.read().decode("utf-8", errors="replace")
            try:
                message = json.loads(raw).get("error", raw)
            except (json.JSONDecodeError, AttributeError):
                message = raw
            raise RelayAPIError(e.code, message) from None
        except urllib.error.URLError as e:
            raise ConnectionError(
                f"Cannot reach relay at {self.base_url}: {e.reason}"
            ) from e
        except TimeoutError as e:
            raise ConnectionError(
                f"Relay at {self.base_url} did not answer within {self.timeout}s"
            ) from e

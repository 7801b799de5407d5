"""
Fanout Web API

Architectural Intent:
- Lightweight HTTP server built entirely on Python stdlib (http.server + asyncio).
- Event ingestion endpoint for event sources that cannot speak to the relay
  in-process.
- Read-only status endpoints for the TUI dashboard and for scripts.
- Serves a minimal HTML page at the root for browser-based monitoring.

API Surface:
    GET  /              -> HTML status page
    GET  /api/stats     -> JSON counters and registry sizes
    GET  /api/channels  -> JSON {channel: subscriber count}
    POST /api/publish   -> Dispatch an event
                           (JSON body: {"channel": "...", "payload": "...",
                                        "encoding": "utf-8" | "base64"})

Threading Model:
    The stdlib ThreadingHTTPServer is synchronous.  We run it in a background
    thread so the main asyncio event loop stays free for subscriber
    connections.  POST /api/publish hands the dispatch to the relay's event
    loop with asyncio.run_coroutine_threadsafe and waits for the result, so
    events keep the order in which they reached the loop.
"""

from __future__ import annotations

import asyncio
import base64
import binascii
import concurrent.futures
import json
import logging
import threading
from http import HTTPStatus
from http.server import ThreadingHTTPServer, BaseHTTPRequestHandler
from typing import Any, Optional

from fanout.application.use_cases.dispatch_event import RelayDispatcher
from fanout.domain.services.subscription_registry import SubscriptionRegistry
from fanout.domain.value_objects.channel import Channel
from fanout.infrastructure.stats import RelayStats

logger = logging.getLogger(__name__)

# Largest accepted publish body, in bytes
MAX_BODY_BYTES = 1024 * 1024

# ---------------------------------------------------------------------------
# HTML template for the status page
# ---------------------------------------------------------------------------

_STATUS_HTML = """\
<!DOCTYPE html>
<html lang="en">
<head>
  <meta charset="utf-8">
  <meta name="viewport" content="width=device-width, initial-scale=1">
  <title>Fanout Relay</title>
  <style>
    * { margin: 0; padding: 0; box-sizing: border-box; }
    body { font-family: system-ui, sans-serif; background: #0f1117; color: #e0e0e0; }
    header { background: #1a1d28; padding: 1rem 2rem; border-bottom: 1px solid #2a2d3a; }
    header h1 { font-size: 1.4rem; color: #7eb8f7; }
    .container { max-width: 1000px; margin: 2rem auto; padding: 0 1rem; }
    .summary { display: flex; gap: 1rem; margin-bottom: 2rem; }
    .card { flex: 1; background: #1a1d28; border-radius: 8px; padding: 1.2rem;
            border: 1px solid #2a2d3a; }
    .card h2 { font-size: 0.85rem; text-transform: uppercase; color: #888; margin-bottom: 0.5rem; }
    .card .value { font-size: 2rem; font-weight: 700; }
    table { width: 100%; border-collapse: collapse; background: #1a1d28; }
    th, td { padding: 0.75rem 1rem; text-align: left; border-bottom: 1px solid #2a2d3a; }
    th { background: #22252f; color: #999; font-size: 0.8rem; text-transform: uppercase; }
    #error { color: #f44336; padding: 1rem; display: none; }
  </style>
</head>
<body>
  <header><h1>Fanout Relay</h1></header>
  <div class="container">
    <div id="error"></div>
    <div class="summary">
      <div class="card"><h2>Subscribers</h2><div class="value" id="subscribers">-</div></div>
      <div class="card"><h2>Channels</h2><div class="value" id="channels">-</div></div>
      <div class="card"><h2>Events</h2><div class="value" id="events">-</div></div>
      <div class="card"><h2>Failures</h2><div class="value" id="failures">-</div></div>
    </div>
    <table>
      <thead><tr><th>Channel</th><th>Subscribers</th></tr></thead>
      <tbody id="rows"></tbody>
    </table>
  </div>
  <script>
    async function refresh() {
      try {
        const stats = await (await fetch('/api/stats')).json();
        const channels = await (await fetch('/api/channels')).json();
        document.getElementById('subscribers').textContent = stats.subscribers;
        document.getElementById('channels').textContent = stats.channels;
        document.getElementById('events').textContent = stats.events_published;
        document.getElementById('failures').textContent = stats.delivery_failures;
        // Channel names are subscriber-supplied: insert as text only
        const rows = Object.entries(channels).map(([name, count]) => {
          const tr = document.createElement('tr');
          for (const value of [name, count]) {
            const td = document.createElement('td');
            td.textContent = value;
            tr.appendChild(td);
          }
          return tr;
        });
        document.getElementById('rows').replaceChildren(...rows);
        document.getElementById('error').style.display = 'none';
      } catch (e) {
        const el = document.getElementById('error');
        el.textContent = 'Failed to fetch relay status: ' + e.message;
        el.style.display = 'block';
      }
    }
    refresh();
    setInterval(refresh, 2000);
  </script>
</body>
</html>
"""


class PublishRequestError(ValueError):
    """A publish request body that cannot be turned into an event."""


def parse_publish_body(raw: bytes) -> tuple[Channel, bytes]:
    """Validate a POST /api/publish body and return (channel, payload bytes)."""
    try:
        body = json.loads(raw) if raw else None
    except (json.JSONDecodeError, UnicodeDecodeError):
        raise PublishRequestError("invalid JSON body") from None
    if not isinstance(body, dict):
        raise PublishRequestError("body must be a JSON object")

    name = body.get("channel")
    if not isinstance(name, str):
        raise PublishRequestError("channel must be a string")
    try:
        channel = Channel(name)
    except ValueError as e:
        raise PublishRequestError(str(e)) from None

    payload = body.get("payload")
    if not isinstance(payload, str):
        raise PublishRequestError("payload must be a string")

    encoding = body.get("encoding", "utf-8")
    if encoding == "base64":
        try:
            return channel, base64.b64decode(payload, validate=True)
        except (binascii.Error, ValueError):
            raise PublishRequestError("payload is not valid base64") from None
    if encoding != "utf-8":
        raise PublishRequestError("encoding must be 'utf-8' or 'base64'")
    return channel, payload.encode("utf-8")


# ---------------------------------------------------------------------------
# Request handler
# ---------------------------------------------------------------------------

class FanoutRequestHandler(BaseHTTPRequestHandler):
    """HTTP request handler for the relay web API.

    Attributes on the *server* instance (set by FanoutWebApp):
        app:  FanoutWebApp -- registry, dispatcher, stats and event loop
    """

    # Silence per-request log lines from BaseHTTPRequestHandler
    def log_message(self, format: str, *args: Any) -> None:  # noqa: A002
        logger.debug("web: %s", format % args)

    # ---- routing -----------------------------------------------------------

    def do_GET(self) -> None:  # noqa: N802
        if self.path == "/":
            self._serve_status_page()
        elif self.path == "/api/stats":
            self._send_json(self.server.app.stats_payload())  # type: ignore[attr-defined]
        elif self.path == "/api/channels":
            self._send_json(self.server.app.registry.snapshot())  # type: ignore[attr-defined]
        else:
            self._send_json({"error": "not found"}, HTTPStatus.NOT_FOUND)

    def do_POST(self) -> None:  # noqa: N802
        if self.path == "/api/publish":
            self._handle_publish()
        else:
            self._send_json({"error": "not found"}, HTTPStatus.NOT_FOUND)

    # ---- endpoint implementations ------------------------------------------

    def _serve_status_page(self) -> None:
        body = _STATUS_HTML.encode("utf-8")
        self.send_response(HTTPStatus.OK)
        self.send_header("Content-Type", "text/html; charset=utf-8")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)

    def _handle_publish(self) -> None:
        app: FanoutWebApp = self.server.app  # type: ignore[attr-defined]
        try:
            content_length = int(self.headers.get("Content-Length", 0))
        except ValueError:
            content_length = -1
        if content_length < 0 or content_length > MAX_BODY_BYTES:
            self._send_json(
                {"error": "invalid Content-Length"}, HTTPStatus.BAD_REQUEST
            )
            return

        try:
            channel, payload = parse_publish_body(self.rfile.read(content_length))
        except PublishRequestError as e:
            self._send_json({"error": str(e)}, HTTPStatus.BAD_REQUEST)
            return

        loop = app.loop
        if loop is None or loop.is_closed() or not loop.is_running():
            self._send_json(
                {"error": "relay is not running"}, HTTPStatus.SERVICE_UNAVAILABLE
            )
            return

        future = asyncio.run_coroutine_threadsafe(
            app.dispatcher.on_event(channel, payload), loop
        )
        try:
            result = future.result(timeout=app.publish_timeout)
        except concurrent.futures.TimeoutError:
            future.cancel()
            logger.warning("Publish on %s timed out", channel)
            self._send_json(
                {"error": "dispatch timed out"}, HTTPStatus.SERVICE_UNAVAILABLE
            )
            return

        self._send_json(result.to_dict())

    # ---- helpers -----------------------------------------------------------

    def _send_json(self, data: Any, status: HTTPStatus = HTTPStatus.OK) -> None:
        """Serialize *data* as JSON and send it as the HTTP response."""
        body = json.dumps(data, default=str).encode("utf-8")
        self.send_response(status)
        self.send_header("Content-Type", "application/json")
        self.send_header("Content-Length", str(len(body)))
        self.end_headers()
        self.wfile.write(body)


# ---------------------------------------------------------------------------
# Web application wrapper
# ---------------------------------------------------------------------------

class FanoutWebApp:
    """Async-friendly web server for event ingestion and relay status.

    The web layer is a thin presentation adapter: publishing goes through the
    RelayDispatcher and status reads go through the SubscriptionRegistry and
    RelayStats.

    Usage::

        app = FanoutWebApp(registry, dispatcher, stats)
        await app.start("127.0.0.1", 8080)
        # ... later ...
        app.stop()
    """

    def __init__(
        self,
        registry: SubscriptionRegistry,
        dispatcher: RelayDispatcher,
        stats: RelayStats,
        publish_timeout: float = 5.0,
    ) -> None:
        self.registry = registry
        self.dispatcher = dispatcher
        self.stats = stats
        self.publish_timeout = publish_timeout
        self.loop: Optional[asyncio.AbstractEventLoop] = None
        self._server: Optional[ThreadingHTTPServer] = None
        self._thread: Optional[threading.Thread] = None

    def stats_payload(self) -> dict[str, Any]:
        payload = self.stats.snapshot().to_dict()
        payload["subscribers"] = self.registry.subscriber_count
        payload["channels"] = self.registry.channel_count
        payload["connections"] = getattr(
            self.dispatcher.transport, "connection_count", None
        )
        payload["failures_by_channel"] = self.stats.failures_by_channel()
        return payload

    @property
    def port(self) -> int:
        if self._server is None:
            return 0
        return self._server.server_address[1]

    async def start(self, host: str = "127.0.0.1", port: int = 8080) -> None:
        """Start the web server in a background thread.

        The current asyncio event loop is captured so that POST /api/publish
        can schedule dispatches onto it.
        """
        self.loop = asyncio.get_running_loop()
        self._server = ThreadingHTTPServer((host, port), FanoutRequestHandler)
        self._server.daemon_threads = True
        # Attach application state to the server so handlers can access it.
        self._server.app = self  # type: ignore[attr-defined]

        self._thread = threading.Thread(
            target=self._server.serve_forever,
            daemon=True,
            name="fanout-web",
        )
        self._thread.start()
        logger.info("Fanout web API started on http://%s:%d", host, self.port)

    def stop(self) -> None:
        """Shut down the web server gracefully."""
        if self._server is not None:
            self._server.shutdown()
            self._server.server_close()
            logger.info("Fanout web API stopped")
        if self._thread is not None:
            self._thread.join(timeout=5)
        self._server = None
        self._thread = None

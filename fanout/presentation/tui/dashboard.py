"""
Dashboard TUI

Architectural Intent:
- Textual-based relay dashboard polling the relay's HTTP status API
- Shows per-channel subscriber counts and relay counters
- Configurable refresh interval (+/- keys)
"""

from textual.app import App, ComposeResult
from textual.widgets import Header, Footer, DataTable, Log, Static
from textual.containers import Vertical
import logging
from datetime import datetime

from fanout.infrastructure.relay_client import RelayAPIError, RelayClient

logger = logging.getLogger(__name__)

MIN_INTERVAL = 0.5
MAX_INTERVAL = 60.0


def format_summary(stats: dict) -> str:
    return (
        f"Subscribers: {stats.get('subscribers', 0)}  "
        f"Channels: {stats.get('channels', 0)}  "
        f"Events: {stats.get('events_published', 0)}  "
        f"Deliveries: {stats.get('deliveries', 0)}  "
        f"Failures: {stats.get('delivery_failures', 0)}"
    )


class Dashboard(App):
    """A Textual app to watch a running fanout relay."""

    CSS = """
    Screen {
        layout: vertical;
    }
    #summary {
        height: 3;
        border: solid blue;
        padding: 0 1;
    }
    DataTable {
        height: 2fr;
        border: solid green;
    }
    Log {
        height: 1fr;
        border: solid yellow;
    }
    """

    BINDINGS = [
        ("q", "quit", "Quit"),
        ("r", "refresh", "Refresh"),
        ("+", "increase_interval", "Slower"),
        ("-", "decrease_interval", "Faster"),
    ]

    def __init__(self, client: RelayClient, refresh_interval: float = 2.0):
        super().__init__()
        self.client = client
        self._refresh_interval = refresh_interval
        self._timer = None

    def compose(self) -> ComposeResult:
        yield Header()
        yield Vertical(
            Static("Connecting...", id="summary"),
            DataTable(id="channel_table"),
            Log(id="activity_log", max_lines=500),
        )
        yield Footer()

    def on_mount(self) -> None:
        self.title = "Fanout Relay"
        self.sub_title = self.client.base_url
        table = self.query_one(DataTable)
        table.add_columns("Channel", "Subscribers")
        self.log_message(f"Watching {self.client.base_url}")
        self._timer = self.set_interval(self._refresh_interval, self._poll)
        self.call_later(self._poll)

    def log_message(self, message: str, severity: str = "info") -> None:
        timestamp = datetime.now().strftime("%H:%M:%S")
        self.query_one(Log).write_line(f"[{timestamp}] [{severity.upper()}] {message}")

    async def action_refresh(self) -> None:
        await self._poll()

    def action_increase_interval(self) -> None:
        self._refresh_interval = min(MAX_INTERVAL, self._refresh_interval + 1.0)
        self._restart_timer()
        self.log_message(f"Refresh interval: {self._refresh_interval}s")

    def action_decrease_interval(self) -> None:
        self._refresh_interval = max(MIN_INTERVAL, self._refresh_interval - 1.0)
        self._restart_timer()
        self.log_message(f"Refresh interval: {self._refresh_interval}s")

    def _restart_timer(self) -> None:
        if self._timer:
            self._timer.stop()
        self._timer = self.set_interval(self._refresh_interval, self._poll)

    async def _poll(self) -> None:
        try:
            stats = await self.client.stats()
            channels = await self.client.channels()
        except (ConnectionError, RelayAPIError) as e:
            self.log_message(str(e), severity="error")
            return
        self.update_view(stats, channels)

    def update_view(self, stats: dict, channels: dict[str, int]) -> None:
        self.query_one("#summary", Static).update(format_summary(stats))
        table = self.query_one(DataTable)
        table.clear()
        for name, count in channels.items():
            table.add_row(name, str(count), key=name)

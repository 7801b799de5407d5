"""
Relay Statistics

Architectural Intent:
- Observes relay lifecycle events on the event bus and keeps counters
- Read by the HTTP status API and, through it, the TUI dashboard
- Holds no references to subscribers or payloads, only counts
"""

from __future__ import annotations
from dataclasses import dataclass, field, asdict
from datetime import datetime, UTC
from typing import Any
import threading

from fanout.domain.events.relay_events import (
    SubscriberConnectedEvent,
    SubscriberDisconnectedEvent,
    EventPublishedEvent,
    DeliveryFailedEvent,
)
from fanout.domain.ports.event_bus_port import EventBusPort


@dataclass
class StatsSnapshot:
    started_at: str
    events_published: int = 0
    events_unmatched: int = 0
    deliveries: int = 0
    delivery_failures: int = 0
    connects: int = 0
    disconnects: int = 0
    last_event_at: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


class RelayStats:
    """Counters fed by relay events."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._stats = StatsSnapshot(started_at=datetime.now(UTC).isoformat())
        self._failures_by_channel: dict[str, int] = {}

    def attach(self, bus: EventBusPort) -> None:
        bus.subscribe(EventPublishedEvent, self._on_published)
        bus.subscribe(DeliveryFailedEvent, self._on_failed)
        bus.subscribe(SubscriberConnectedEvent, self._on_connected)
        bus.subscribe(SubscriberDisconnectedEvent, self._on_disconnected)

    async def _on_published(self, event: EventPublishedEvent) -> None:
        with self._lock:
            self._stats.events_published += 1
            self._stats.deliveries += event.delivered
            if event.matched == 0:
                self._stats.events_unmatched += 1
            self._stats.last_event_at = event.occurred_at

    async def _on_failed(self, event: DeliveryFailedEvent) -> None:
        with self._lock:
            self._stats.delivery_failures += 1
            self._failures_by_channel[event.channel] = (
                self._failures_by_channel.get(event.channel, 0) + 1
            )

    async def _on_connected(self, event: SubscriberConnectedEvent) -> None:
        with self._lock:
            self._stats.connects += 1

    async def _on_disconnected(self, event: SubscriberDisconnectedEvent) -> None:
        with self._lock:
            self._stats.disconnects += 1

    def snapshot(self) -> StatsSnapshot:
        with self._lock:
            return StatsSnapshot(**asdict(self._stats))

    def failures_by_channel(self) -> dict[str, int]:
        with self._lock:
            return dict(self._failures_by_channel)

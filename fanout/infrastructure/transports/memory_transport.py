"""
In-Memory Transport

Architectural Intent:
- Loopback implementation of TransportPort with per-subscriber inboxes
- Used by the demo walkthrough and by tests that need a real transport
  without sockets
- connect() and disconnect() behave like an accepted and a dropped
  connection: the connected event is published and the disconnect hook runs
"""

from __future__ import annotations
from typing import Optional
import logging

from fanout.domain.events.relay_events import SubscriberConnectedEvent
from fanout.domain.ports.event_bus_port import EventBusPort
from fanout.domain.ports.transport_port import DeliveryError, DisconnectHook
from fanout.domain.value_objects.subscriber_id import SubscriberId

logger = logging.getLogger(__name__)


class InMemoryTransport:
    def __init__(self, event_bus: Optional[EventBusPort] = None) -> None:
        self.event_bus = event_bus
        self._inboxes: dict[SubscriberId, list[bytes]] = {}
        self._disconnect_hook: Optional[DisconnectHook] = None

    def set_disconnect_hook(self, hook: DisconnectHook) -> None:
        self._disconnect_hook = hook

    async def connect(self, subscriber: Optional[SubscriberId] = None) -> SubscriberId:
        subscriber = subscriber or SubscriberId.generate("mem")
        if self.is_connected(subscriber):
            return subscriber
        self._inboxes[subscriber] = []
        logger.debug("In-memory subscriber connected: %s", subscriber)
        if self.event_bus is not None:
            await self.event_bus.publish(
                [SubscriberConnectedEvent(subscriber_id=str(subscriber))]
            )
        return subscriber

    async def disconnect(self, subscriber: SubscriberId) -> None:
        if self._inboxes.pop(subscriber, None) is None:
            return
        if self._disconnect_hook is not None:
            await self._disconnect_hook(subscriber)

    async def send(self, subscriber: SubscriberId, payload: bytes) -> None:
        if not self.is_connected(subscriber):
            raise DeliveryError(subscriber, "not connected")
        self._inboxes[subscriber].append(payload)

    def received(self, subscriber: SubscriberId) -> list[bytes]:
        return list(self._inboxes.get(subscriber, ()))

    def is_connected(self, subscriber: SubscriberId) -> bool:
        return subscriber in self._inboxes

    @property
    def connection_count(self) -> int:
        return len(self._inboxes)

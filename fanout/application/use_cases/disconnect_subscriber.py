"""
Disconnect Subscriber Use Case

Architectural Intent:
- Disconnect hook for transports: purges every interest of a subscriber
- Events already in flight to the subscriber are not guaranteed; they are dropped
"""

import logging
from typing import Optional

from fanout.domain.events.relay_events import SubscriberDisconnectedEvent
from fanout.domain.ports.event_bus_port import EventBusPort
from fanout.domain.services.subscription_registry import SubscriptionRegistry
from fanout.domain.value_objects.channel import Channel
from fanout.domain.value_objects.subscriber_id import SubscriberId

logger = logging.getLogger(__name__)


class DisconnectSubscriber:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        event_bus: Optional[EventBusPort] = None,
    ):
        self.registry = registry
        self.event_bus = event_bus

    async def execute(self, subscriber: SubscriberId) -> frozenset[Channel]:
        channels = self.registry.remove_subscriber(subscriber)
        logger.info(
            "Subscriber %s disconnected (%d subscription(s) removed)",
            subscriber,
            len(channels),
        )
        if self.event_bus is not None:
            await self.event_bus.publish([
                SubscriberDisconnectedEvent(
                    subscriber_id=str(subscriber),
                    channels=tuple(sorted(c.name for c in channels)),
                )
            ])
        return channels

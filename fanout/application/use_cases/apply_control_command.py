"""
Apply Control Command Use Case

Architectural Intent:
- Applies a decoded subscriber control command to the subscription registry
- UNKNOWN commands are ignored without error
- Publishes ChannelSubscribed/ChannelUnsubscribed events when interests change
"""

import logging
from typing import Optional

from fanout.domain.events.relay_events import (
    ChannelSubscribedEvent,
    ChannelUnsubscribedEvent,
)
from fanout.domain.ports.event_bus_port import EventBusPort
from fanout.domain.services.subscription_registry import SubscriptionRegistry
from fanout.domain.value_objects.control_command import CommandKind, ControlCommand
from fanout.domain.value_objects.subscriber_id import SubscriberId

logger = logging.getLogger(__name__)


class ApplyControlCommand:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        event_bus: Optional[EventBusPort] = None,
    ):
        self.registry = registry
        self.event_bus = event_bus

    async def execute(self, subscriber: SubscriberId, command: ControlCommand) -> bool:
        """Returns True if the subscriber's interest set changed."""
        if not command.is_actionable:
            logger.debug("Ignoring control frame from %s: %r", subscriber, command.raw)
            return False

        match command.kind:
            case CommandKind.SUBSCRIBE:
                changed = self.registry.subscribe(subscriber, command.channel)
                event = ChannelSubscribedEvent(
                    subscriber_id=str(subscriber), channel=command.channel.name
                )
            case CommandKind.UNSUBSCRIBE:
                changed = self.registry.unsubscribe(subscriber, command.channel)
                event = ChannelUnsubscribedEvent(
                    subscriber_id=str(subscriber), channel=command.channel.name
                )

        if not changed:
            return False
        logger.debug(
            "%s %s %s, now on %d channel(s)",
            subscriber,
            command.kind.name.lower(),
            command.channel,
            len(self.registry.channels_for(subscriber)),
        )
        if self.event_bus is not None:
            await self.event_bus.publish([event])
        return True

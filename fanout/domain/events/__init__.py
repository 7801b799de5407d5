"""
Domain Events Package

Architectural Intent:
- Contains relay lifecycle events
- Events are the only way observers learn about relay activity
"""

from fanout.domain.events.event_base import DomainEvent
from fanout.domain.events.relay_events import (
    SubscriberConnectedEvent,
    SubscriberDisconnectedEvent,
    ChannelSubscribedEvent,
    ChannelUnsubscribedEvent,
    EventPublishedEvent,
    DeliveryFailedEvent,
)

__all__ = [
    "DomainEvent",
    "SubscriberConnectedEvent",
    "SubscriberDisconnectedEvent",
    "ChannelSubscribedEvent",
    "ChannelUnsubscribedEvent",
    "EventPublishedEvent",
    "DeliveryFailedEvent",
]

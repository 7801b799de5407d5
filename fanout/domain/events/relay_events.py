"""
Relay Events

Architectural Intent:
- Lifecycle events emitted by the relay's use cases
- Carry plain strings so observers never hold references to connections

Domain Events:
- SubscriberConnectedEvent: a transport accepted a new subscriber
- SubscriberDisconnectedEvent: a subscriber went away and was purged
- ChannelSubscribedEvent / ChannelUnsubscribedEvent: interest set changed
- EventPublishedEvent: one inbound event finished fan-out
- DeliveryFailedEvent: forwarding to one subscriber failed
"""

from dataclasses import dataclass
from typing import Any

from fanout.domain.events.event_base import DomainEvent


@dataclass(frozen=True, kw_only=True)
class SubscriberConnectedEvent(DomainEvent):
    subscriber_id: str

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "subscriber_id": self.subscriber_id}


@dataclass(frozen=True, kw_only=True)
class SubscriberDisconnectedEvent(DomainEvent):
    subscriber_id: str
    channels: tuple[str, ...] = ()

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "subscriber_id": self.subscriber_id,
            "channels": list(self.channels),
        }


@dataclass(frozen=True, kw_only=True)
class ChannelSubscribedEvent(DomainEvent):
    subscriber_id: str
    channel: str

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "subscriber_id": self.subscriber_id,
            "channel": self.channel,
        }


@dataclass(frozen=True, kw_only=True)
class ChannelUnsubscribedEvent(DomainEvent):
    subscriber_id: str
    channel: str

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "subscriber_id": self.subscriber_id,
            "channel": self.channel,
        }


@dataclass(frozen=True, kw_only=True)
class EventPublishedEvent(DomainEvent):
    channel: str
    matched: int = 0
    delivered: int = 0
    failed: int = 0

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "channel": self.channel,
            "matched": self.matched,
            "delivered": self.delivered,
            "failed": self.failed,
        }


@dataclass(frozen=True, kw_only=True)
class DeliveryFailedEvent(DomainEvent):
    subscriber_id: str
    channel: str
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "subscriber_id": self.subscriber_id,
            "channel": self.channel,
            "reason": self.reason,
        }

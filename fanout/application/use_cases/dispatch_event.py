"""
Dispatch Event Use Case

Architectural Intent:
- The relay dispatcher: fans one inbound event out to every subscriber whose
  interest set contains the event's channel at dispatch time
- Delivery is best-effort and at-most-once: no acknowledgement, no retry,
  no persistence
- A failing subscriber never blocks or fails delivery to the others

Ordering:
- Dispatches are serialized by an asyncio.Lock, so each subscriber observes
  events in arrival order. Order across subscribers is unspecified.
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional
import asyncio
import logging

from fanout.domain.entities.event import Event
from fanout.domain.events.relay_events import (
    DeliveryFailedEvent,
    EventPublishedEvent,
)
from fanout.domain.ports.event_bus_port import EventBusPort
from fanout.domain.ports.transport_port import DeliveryError, TransportPort
from fanout.domain.services.subscription_registry import SubscriptionRegistry
from fanout.domain.value_objects.channel import Channel
from fanout.domain.value_objects.subscriber_id import SubscriberId

logger = logging.getLogger(__name__)

DEFAULT_SEND_TIMEOUT = 1.0


@dataclass(frozen=True)
class DispatchResult:
    channel: Channel
    matched: int
    delivered: int
    failed: tuple[SubscriberId, ...] = ()

    def to_dict(self) -> dict:
        return {
            "channel": self.channel.name,
            "matched": self.matched,
            "delivered": self.delivered,
            "failed": [str(s) for s in self.failed],
        }


class RelayDispatcher:
    def __init__(
        self,
        registry: SubscriptionRegistry,
        transport: TransportPort,
        event_bus: Optional[EventBusPort] = None,
        send_timeout: float = DEFAULT_SEND_TIMEOUT,
    ):
        self.registry = registry
        self.transport = transport
        self.event_bus = event_bus
        self.send_timeout = send_timeout
        self._lock = asyncio.Lock()

    async def on_event(self, channel: Channel | str, payload: bytes | str) -> DispatchResult:
        """Dispatch a (channel, payload) pair received from an event source."""
        return await self.publish(Event.create(channel, payload))

    async def publish(self, event: Event) -> DispatchResult:
        async with self._lock:
            subscribers = self.registry.subscribers_for(event.channel)
            failed: list[tuple[SubscriberId, str]] = []
            for subscriber in subscribers:
                reason = await self._forward(subscriber, event)
                if reason is not None:
                    failed.append((subscriber, reason))

        result = DispatchResult(
            channel=event.channel,
            matched=len(subscribers),
            delivered=len(subscribers) - len(failed),
            failed=tuple(s for s, _ in failed),
        )
        logger.debug(
            "Dispatched %d byte(s) on %s: %d matched, %d delivered",
            event.size,
            event.channel,
            result.matched,
            result.delivered,
        )

        if self.event_bus is not None:
            events = [
                DeliveryFailedEvent(
                    subscriber_id=str(s), channel=event.channel.name, reason=reason
                )
                for s, reason in failed
            ]
            events.append(
                EventPublishedEvent(
                    channel=event.channel.name,
                    matched=result.matched,
                    delivered=result.delivered,
                    failed=len(result.failed),
                )
            )
            await self.event_bus.publish(events)
        return result

    async def _forward(self, subscriber: SubscriberId, event: Event) -> Optional[str]:
        """Forward to one subscriber. Returns a failure reason, or None."""
        try:
            await asyncio.wait_for(
                self.transport.send(subscriber, event.payload),
                timeout=self.send_timeout,
            )
        except DeliveryError as e:
            reason = e.reason
        except asyncio.TimeoutError:
            reason = f"send timed out after {self.send_timeout}s"
        except (ConnectionError, OSError) as e:
            reason = str(e) or e.__class__.__name__
        except Exception as e:
            logger.exception(
                "Transport error forwarding on %s to %s", event.channel, subscriber
            )
            return f"{e.__class__.__name__}: {e}"
        else:
            return None

        logger.warning(
            "Dropping event on %s for %s: %s", event.channel, subscriber, reason
        )
        return reason

"""
Transport Port

Architectural Intent:
- Abstract interface between the relay dispatcher and real subscriber connections
- The transport owns connections; the relay only addresses them by SubscriberId
- Disconnects are reported through a hook so the registry can be purged

Design Decisions:
- Uses Protocol for structural typing (no inheritance needed)
- send() must never block indefinitely: it either completes quickly
  (e.g. enqueues) or raises DeliveryError
- Payloads are forwarded verbatim; the transport adds no envelope
"""

from typing import Awaitable, Callable, Protocol, runtime_checkable

from fanout.domain.value_objects.subscriber_id import SubscriberId

DisconnectHook = Callable[[SubscriberId], Awaitable[None]]


class DeliveryError(Exception):
    """Raised when a payload cannot be handed to a subscriber."""

    def __init__(self, subscriber: SubscriberId, reason: str):
        super().__init__(f"Delivery to {subscriber} failed: {reason}")
        self.subscriber = subscriber
        self.reason = reason


@runtime_checkable
class TransportPort(Protocol):
    """Port for forwarding payloads to connected subscribers."""

    async def send(self, subscriber: SubscriberId, payload: bytes) -> None:
        """Forward a payload to one subscriber.

        Raises:
            DeliveryError: if the subscriber is gone or cannot accept more data
        """
        ...

    def set_disconnect_hook(self, hook: DisconnectHook) -> None:
        """Register the coroutine called once per disconnected subscriber."""
        ...

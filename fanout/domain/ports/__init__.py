"""
Domain Ports Package

Architectural Intent:
- Contains port interfaces (abstract contracts) for external dependencies
- Ports define what the relay needs, adapters implement how
- Follows Hexagonal Architecture principles
"""

from fanout.domain.ports.transport_port import (
    TransportPort,
    DeliveryError,
    DisconnectHook,
)
from fanout.domain.ports.event_bus_port import EventBusPort

__all__ = [
    "TransportPort",
    "DeliveryError",
    "DisconnectHook",
    "EventBusPort",
]

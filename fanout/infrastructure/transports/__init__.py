"""
Relay Transports

Architectural Intent:
- Adapters implementing TransportPort
- TCPTransport serves real subscriber connections
- InMemoryTransport is a loopback used by the demo and tests
"""

from fanout.infrastructure.transports.tcp_transport import (
    TCPTransport,
    SubscriberConnection,
)
from fanout.infrastructure.transports.memory_transport import InMemoryTransport

__all__ = [
    "TCPTransport",
    "SubscriberConnection",
    "InMemoryTransport",
]

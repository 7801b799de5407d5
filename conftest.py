"""Global test configuration.

Shared fixtures for a relay wired with the in-memory transport.
"""

import pytest

from fanout.composition_root import create_container
from fanout.domain.services.subscription_registry import SubscriptionRegistry
from fanout.infrastructure.event_bus import EventBus
from fanout.infrastructure.transports.memory_transport import InMemoryTransport


@pytest.fixture()
def registry() -> SubscriptionRegistry:
    return SubscriptionRegistry()


@pytest.fixture()
def event_bus() -> EventBus:
    return EventBus()


@pytest.fixture()
def memory_transport(event_bus) -> InMemoryTransport:
    return InMemoryTransport(event_bus=event_bus)


@pytest.fixture()
def container(memory_transport, event_bus):
    """A fully wired relay using the in-memory transport."""
    return create_container(transport=memory_transport, event_bus=event_bus)

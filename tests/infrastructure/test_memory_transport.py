"""Tests for the in-memory transport."""

import pytest
from unittest.mock import AsyncMock

from fanout.domain.events.relay_events import SubscriberConnectedEvent
from fanout.domain.ports.transport_port import DeliveryError, TransportPort
from fanout.domain.value_objects.subscriber_id import SubscriberId
from fanout.infrastructure.transports.memory_transport import InMemoryTransport


class TestInMemoryTransport:
    def test_satisfies_port(self, memory_transport):
        assert isinstance(memory_transport, TransportPort)

    @pytest.mark.asyncio
    async def test_send_appends_in_order(self, memory_transport):
        s = await memory_transport.connect()
        await memory_transport.send(s, b"a")
        await memory_transport.send(s, b"b")
        assert memory_transport.received(s) == [b"a", b"b"]

    @pytest.mark.asyncio
    async def test_send_unknown_raises(self, memory_transport):
        with pytest.raises(DeliveryError, match="not connected"):
            await memory_transport.send(SubscriberId("ghost"), b"a")

    @pytest.mark.asyncio
    async def test_connect_with_explicit_id(self, memory_transport):
        s = await memory_transport.connect(SubscriberId("fixed"))
        assert s == SubscriberId("fixed")
        assert memory_transport.is_connected(s)
        assert memory_transport.connection_count == 1

    @pytest.mark.asyncio
    async def test_disconnect_fires_hook_once(self):
        transport = InMemoryTransport()
        hook = AsyncMock()
        transport.set_disconnect_hook(hook)
        s = await transport.connect()

        await transport.disconnect(s)
        await transport.disconnect(s)

        hook.assert_awaited_once_with(s)
        assert not transport.is_connected(s)
        with pytest.raises(DeliveryError):
            await transport.send(s, b"late")

    @pytest.mark.asyncio
    async def test_connect_publishes_connected_event(self, memory_transport, event_bus):
        seen = []

        async def on_connected(event):
            seen.append(event)

        event_bus.subscribe(SubscriberConnectedEvent, on_connected)

        s = await memory_transport.connect(SubscriberId("s1"))
        await memory_transport.connect(s)

        assert [e.subscriber_id for e in seen] == ["s1"]

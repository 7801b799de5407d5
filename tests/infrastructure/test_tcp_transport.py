"""Tests for the TCP line transport."""

import asyncio
import pytest
import pytest_asyncio
from unittest.mock import AsyncMock, MagicMock

from fanout.composition_root import create_container
from fanout.domain.ports.transport_port import DeliveryError, TransportPort
from fanout.domain.value_objects.control_command import CommandKind
from fanout.domain.value_objects.subscriber_id import SubscriberId
from fanout.infrastructure.transports.tcp_transport import (
    MAX_FRAME_BYTES,
    SubscriberConnection,
    TCPTransport,
)


async def _wait_for(predicate, timeout: float = 2.0) -> None:
    """Poll *predicate* until it is truthy or fail after *timeout* seconds."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not met in time")
        await asyncio.sleep(0.01)


@pytest_asyncio.fixture()
async def relay():
    """Start a TCP relay on a random port, yield (container, port), then stop."""
    container = create_container()
    await container.transport.start("127.0.0.1", 0)
    yield container, container.transport.bound_port
    await container.transport.stop()


class TestSubscriberConnection:
    @pytest.mark.asyncio
    async def test_queue_full_raises(self):
        conn = SubscriberConnection(SubscriberId("s1"), MagicMock(), 1, 1.0)
        conn.enqueue(b"a")
        with pytest.raises(DeliveryError, match="outbound queue full"):
            conn.enqueue(b"b")

    @pytest.mark.asyncio
    async def test_closed_connection_rejects(self):
        writer = MagicMock()
        conn = SubscriberConnection(SubscriberId("s1"), writer, 4, 1.0)
        conn.close()
        writer.close.assert_called_once()
        with pytest.raises(DeliveryError, match="connection closed"):
            conn.enqueue(b"a")

    @pytest.mark.asyncio
    async def test_slow_peer_is_closed(self):
        async def never_drains():
            await asyncio.sleep(10)

        writer = MagicMock()
        writer.drain = AsyncMock(side_effect=never_drains)
        conn = SubscriberConnection(SubscriberId("s1"), writer, 4, 0.05)
        conn.enqueue(b"payload")

        await asyncio.wait_for(conn.write_loop(), timeout=2)

        writer.write.assert_called_once_with(b"payload")
        assert conn.closed
        writer.close.assert_called()

    @pytest.mark.asyncio
    async def test_broken_pipe_closes(self):
        writer = MagicMock()
        writer.drain = AsyncMock(side_effect=BrokenPipeError())
        conn = SubscriberConnection(SubscriberId("s1"), writer, 4, 1.0)
        conn.enqueue(b"payload")

        await asyncio.wait_for(conn.write_loop(), timeout=2)

        assert conn.closed


class TestTCPTransport:
    def test_satisfies_port(self):
        assert isinstance(TCPTransport(), TransportPort)

    @pytest.mark.asyncio
    async def test_send_unknown_raises(self):
        transport = TCPTransport()
        with pytest.raises(DeliveryError, match="not connected"):
            await transport.send(SubscriberId("ghost"), b"x")

    @pytest.mark.asyncio
    async def test_serve_forever_requires_start(self):
        with pytest.raises(RuntimeError):
            await TCPTransport().serve_forever()

    @pytest.mark.asyncio
    async def test_stop_without_start(self):
        await TCPTransport().stop()

    @pytest.mark.asyncio
    async def test_subscribe_and_receive(self, relay):
        container, port = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"subscribe|topic.1\n")
        await writer.drain()
        await _wait_for(lambda: container.registry.subscribers_for("topic.1"))

        result = await container.dispatcher.on_event("topic.1", b"hello\n")

        assert result.delivered == 1
        line = await asyncio.wait_for(reader.readline(), timeout=2)
        assert line == b"hello\n"
        writer.close()
        await writer.wait_closed()

    @pytest.mark.asyncio
    async def test_payload_forwarded_verbatim_in_order(self, relay):
        container, port = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"subscribe|c\n")
        await writer.drain()
        await _wait_for(lambda: container.registry.subscribers_for("c"))

        for chunk in (b"one", b"two", b"\x00three"):
            await container.dispatcher.on_event("c", chunk)

        data = await asyncio.wait_for(reader.readexactly(14), timeout=2)
        assert data == b"onetwo\x00three"
        writer.close()
        await writer.wait_closed()

    @pytest.mark.asyncio
    async def test_unsubscribe_stops_delivery(self, relay):
        container, port = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"subscribe|c\r\n")
        writer.write(b"unsubscribe|c\n")
        writer.write(b"subscribe|marker\n")
        await writer.drain()
        # Frames apply in order: the marker lands after both c frames
        await _wait_for(lambda: container.registry.subscribers_for("marker"))

        result = await container.dispatcher.on_event("c", b"dropped")
        assert result.matched == 0
        writer.close()
        await writer.wait_closed()

    @pytest.mark.asyncio
    async def test_unknown_and_invalid_frames_ignored(self, relay):
        container, port = relay
        commands = []
        original = container.apply_command.execute

        async def spy(subscriber, command):
            commands.append(command)
            return await original(subscriber, command)

        container.transport.set_command_handler(spy)
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"hello there\n")
        writer.write(b"\xff\xfe\n")
        writer.write(b"x" * (MAX_FRAME_BYTES + 10) + b"\n")
        writer.write(b"subscribe|ok\n")
        await writer.drain()

        await _wait_for(lambda: container.registry.subscribers_for("ok"))
        assert commands[0].kind is CommandKind.UNKNOWN
        assert commands[-1].kind is CommandKind.SUBSCRIBE
        assert container.transport.connection_count == 1
        writer.close()
        await writer.wait_closed()

    @pytest.mark.asyncio
    async def test_oversized_frame_tail_is_discarded(self, relay):
        container, port = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"x" * (MAX_FRAME_BYTES + 100))
        await writer.drain()
        await asyncio.sleep(0.2)
        # Same line as the oversized prefix, so it must not subscribe
        writer.write(b"subscribe|leak\n")
        writer.write(b"subscribe|ok\n")
        await writer.drain()

        await _wait_for(lambda: container.registry.subscribers_for("ok"))
        assert not container.registry.subscribers_for("leak")
        assert container.transport.connection_count == 1
        writer.close()
        await writer.wait_closed()

    @pytest.mark.asyncio
    async def test_oversized_frame_then_eof_disconnects(self, relay):
        container, port = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"subscribe|a\n")
        writer.write(b"x" * (MAX_FRAME_BYTES * 2))
        await writer.drain()
        await _wait_for(lambda: container.registry.subscribers_for("a"))

        writer.close()
        await writer.wait_closed()

        await _wait_for(lambda: container.transport.connection_count == 0)
        assert container.registry.subscriber_count == 0

    @pytest.mark.asyncio
    async def test_disconnect_removes_subscriptions(self, relay):
        container, port = relay
        reader, writer = await asyncio.open_connection("127.0.0.1", port)
        writer.write(b"subscribe|a\nsubscribe|b\n")
        await writer.drain()
        await _wait_for(lambda: container.registry.channel_count == 2)

        writer.close()
        await writer.wait_closed()

        await _wait_for(lambda: container.registry.subscriber_count == 0)
        await _wait_for(lambda: container.transport.connection_count == 0)
        assert container.stats.snapshot().disconnects == 1

    @pytest.mark.asyncio
    async def test_stop_closes_clients(self):
        container = create_container()
        await container.transport.start("127.0.0.1", 0)
        reader, writer = await asyncio.open_connection(
            "127.0.0.1", container.transport.bound_port
        )
        writer.write(b"subscribe|a\n")
        await writer.drain()
        await _wait_for(lambda: container.registry.subscriber_count == 1)

        await container.transport.stop()

        assert await asyncio.wait_for(reader.read(), timeout=2) == b""
        assert container.registry.subscriber_count == 0
        assert container.transport.bound_port == 0
        writer.close()

"""
TCP Line Transport

Architectural Intent:
- Subscriber-facing transport: one asyncio task per persistent TCP connection
- Inbound traffic is newline-framed UTF-8 control frames
  ("subscribe|<channel>", "unsubscribe|<channel>"), decoded into
  ControlCommand values and handed to the command handler
- Outbound payloads are written verbatim; framing is up to the publisher
- Uses only stdlib (asyncio streams)

Resource Model:
- Each connection owns a bounded outbound queue drained by a writer task.
  send() only enqueues, so it never blocks the dispatcher; a full queue or a
  closed connection raises DeliveryError and the payload is dropped.
- A writer that cannot drain within write_timeout closes its connection.
- When a connection ends for any reason the disconnect hook runs once and
  queued payloads are discarded.
"""

from __future__ import annotations
from typing import Any, Awaitable, Callable, Optional
import asyncio
import logging

from fanout.domain.events.relay_events import SubscriberConnectedEvent
from fanout.domain.ports.event_bus_port import EventBusPort
from fanout.domain.ports.transport_port import DeliveryError, DisconnectHook
from fanout.domain.value_objects.control_command import (
    ControlCommand,
    decode_control_frame,
)
from fanout.domain.value_objects.subscriber_id import SubscriberId

logger = logging.getLogger(__name__)

CommandHandler = Callable[[SubscriberId, ControlCommand], Awaitable[Any]]

# Longest accepted control frame, in bytes
MAX_FRAME_BYTES = 4096
STOP_TIMEOUT = 5.0


class SubscriberConnection:
    """Outbound side of one subscriber connection."""

    def __init__(
        self,
        subscriber: SubscriberId,
        writer: asyncio.StreamWriter,
        max_queue: int,
        write_timeout: float,
    ) -> None:
        self.subscriber = subscriber
        self._writer = writer
        self._queue: asyncio.Queue[bytes] = asyncio.Queue(maxsize=max_queue)
        self._write_timeout = write_timeout
        self.closed = False
        self.finished = asyncio.Event()

    @property
    def peer(self) -> str:
        peer = self._writer.get_extra_info("peername")
        return f"{peer[0]}:{peer[1]}" if peer else "?"

    def enqueue(self, payload: bytes) -> None:
        if self.closed:
            raise DeliveryError(self.subscriber, "connection closed")
        try:
            self._queue.put_nowait(payload)
        except asyncio.QueueFull:
            raise DeliveryError(self.subscriber, "outbound queue full") from None

    async def write_loop(self) -> None:
        try:
            while True:
                payload = await self._queue.get()
                self._writer.write(payload)
                await asyncio.wait_for(self._writer.drain(), self._write_timeout)
        except asyncio.TimeoutError:
            logger.warning(
                "Closing %s: peer did not drain within %ss",
                self.subscriber,
                self._write_timeout,
            )
            self.close()
        except (ConnectionError, OSError) as e:
            logger.info("Closing %s: write failed: %s", self.subscriber, e)
            self.close()

    def close(self) -> None:
        self.closed = True
        self._writer.close()


class TCPTransport:
    """TransportPort implementation over asyncio TCP streams."""

    def __init__(
        self,
        command_handler: Optional[CommandHandler] = None,
        event_bus: Optional[EventBusPort] = None,
        max_queue: int = 1024,
        write_timeout: float = 5.0,
    ) -> None:
        self._command_handler = command_handler
        self._disconnect_hook: Optional[DisconnectHook] = None
        self.event_bus = event_bus
        self.max_queue = max_queue
        self.write_timeout = write_timeout
        self._connections: dict[SubscriberId, SubscriberConnection] = {}
        self._server: Optional[asyncio.AbstractServer] = None

    # ---- TransportPort -----------------------------------------------------

    async def send(self, subscriber: SubscriberId, payload: bytes) -> None:
        connection = self._connections.get(subscriber)
        if connection is None:
            raise DeliveryError(subscriber, "not connected")
        connection.enqueue(payload)

    def set_disconnect_hook(self, hook: DisconnectHook) -> None:
        self._disconnect_hook = hook

    def set_command_handler(self, handler: CommandHandler) -> None:
        self._command_handler = handler

    # ---- lifecycle ---------------------------------------------------------

    async def start(self, host: str = "127.0.0.1", port: int = 7400) -> None:
        self._server = await asyncio.start_server(
            self._handle_client, host, port, limit=MAX_FRAME_BYTES
        )
        logger.info("Relay listening for subscribers on %s:%d", host, self.bound_port)

    async def stop(self) -> None:
        """Stop accepting subscribers and close every open connection."""
        if self._server is None:
            return
        self._server.close()
        connections = list(self._connections.values())
        for connection in connections:
            connection.close()
        if connections:
            await asyncio.wait(
                [asyncio.create_task(c.finished.wait()) for c in connections],
                timeout=STOP_TIMEOUT,
            )
        await self._server.wait_closed()
        self._server = None
        logger.info("Relay stopped")

    async def serve_forever(self) -> None:
        if self._server is None:
            raise RuntimeError("TCPTransport.start() must be awaited first")
        await self._server.serve_forever()

    @property
    def bound_port(self) -> int:
        if self._server is None or not self._server.sockets:
            return 0
        return self._server.sockets[0].getsockname()[1]

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    # ---- connection handling -----------------------------------------------

    async def _handle_client(
        self, reader: asyncio.StreamReader, writer: asyncio.StreamWriter
    ) -> None:
        subscriber = SubscriberId.generate("tcp")
        connection = SubscriberConnection(
            subscriber, writer, self.max_queue, self.write_timeout
        )
        self._connections[subscriber] = connection
        writer_task = asyncio.create_task(connection.write_loop())
        logger.info("Subscriber %s connected from %s", subscriber, connection.peer)

        try:
            if self.event_bus is not None:
                await self.event_bus.publish(
                    [SubscriberConnectedEvent(subscriber_id=str(subscriber))]
                )
            await self._read_loop(subscriber, reader)
        finally:
            self._connections.pop(subscriber, None)
            connection.close()
            writer_task.cancel()
            await asyncio.gather(writer_task, return_exceptions=True)
            try:
                await writer.wait_closed()
            except (ConnectionError, OSError):
                pass
            try:
                if self._disconnect_hook is not None:
                    await self._disconnect_hook(subscriber)
            finally:
                connection.finished.set()

    async def _read_loop(self, subscriber: SubscriberId, reader: asyncio.StreamReader) -> None:
        while True:
            try:
                line = await reader.readuntil(b"\n")
            except asyncio.IncompleteReadError as e:
                # EOF; a trailing unterminated frame is still decoded once
                line = e.partial
            except asyncio.LimitOverrunError:
                logger.debug("Discarding oversized frame from %s", subscriber)
                if not await self._discard_frame(reader):
                    return
                continue
            except (ConnectionError, OSError):
                return
            if not line:
                return

            try:
                text = line.decode("utf-8")
            except UnicodeDecodeError:
                logger.debug("Discarding undecodable frame from %s", subscriber)
                continue

            command = decode_control_frame(text)
            if self._command_handler is not None:
                await self._command_handler(subscriber, command)

    @staticmethod
    async def _discard_frame(reader: asyncio.StreamReader) -> bool:
        """Drop input up to and including the next newline.

        Returns False if the stream ended first.
        """
        while True:
            try:
                await reader.readuntil(b"\n")
                return True
            except asyncio.LimitOverrunError as e:
                await reader.readexactly(e.consumed)
            except asyncio.IncompleteReadError:
                return False

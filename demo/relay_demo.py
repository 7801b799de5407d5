#!/usr/bin/env python3
"""
Fanout Relay Demo: channel fan-out walkthrough

Wires the relay with the in-memory transport, subscribes two subscribers to
overlapping channels, publishes a few events, disconnects one subscriber,
and prints what each subscriber received. No sockets required.
"""

import asyncio
import sys

sys.path.insert(0, ".")

from fanout.composition_root import create_container
from fanout.domain.value_objects.control_command import decode_control_frame
from fanout.infrastructure.event_bus import EventBus
from fanout.infrastructure.transports.memory_transport import InMemoryTransport

BOLD = "\033[1m"
GREEN = "\033[32m"
DIM = "\033[2m"
RESET = "\033[0m"


async def main() -> None:
    event_bus = EventBus()
    transport = InMemoryTransport(event_bus=event_bus)
    container = create_container(transport=transport, event_bus=event_bus)
    dispatcher = container.dispatcher

    s1 = await transport.connect()
    s2 = await transport.connect()

    for subscriber, frame in [
        (s1, "subscribe|topic.1"),
        (s1, "subscribe|topic.2"),
        (s2, "subscribe|topic.2"),
        (s2, "hello relay"),
    ]:
        changed = await container.apply_command.execute(
            subscriber, decode_control_frame(frame)
        )
        print(f"{DIM}{subscriber} <- {frame!r} (changed={changed}){RESET}")

    print(f"\n{BOLD}Channels:{RESET} {container.registry.snapshot()}\n")

    for channel, payload in [("topic.1", "hello"), ("topic.2", "world")]:
        result = await dispatcher.on_event(channel, payload)
        print(
            f"{GREEN}publish {channel}:{payload!r}{RESET} -> "
            f"{result.delivered}/{result.matched} delivered"
        )

    print()
    for subscriber in (s1, s2):
        print(f"  {subscriber}: {[p.decode() for p in transport.received(subscriber)]}")

    await transport.disconnect(s2)
    result = await dispatcher.on_event("topic.2", "after disconnect")
    print(f"\n{BOLD}After {s2} disconnected:{RESET} topic.2 matched {result.matched}")

    stats = container.stats.snapshot()
    print(
        f"\n  Events published: {stats.events_published}"
        f"\n  Deliveries:       {stats.deliveries}"
        f"\n  Connects:         {stats.connects}"
        f"\n  Disconnects:      {stats.disconnects}"
    )


if __name__ == "__main__":
    asyncio.run(main())

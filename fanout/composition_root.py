"""
Composition Root

Architectural Intent:
- Dependency injection composition root for the fanout relay
- Single place where the registry, transports, and use cases are wired together
- The registry is owned by the container; nothing reaches it as a global

Design Decisions:
- Uses a simple dataclass container instead of a DI framework
- The transport's disconnect hook is always wired to DisconnectSubscriber
- Any TransportPort may be supplied; TCPTransport is the default
- The OTEL exporter is always built but only exports once initialized
  with a configured endpoint
"""

from dataclasses import dataclass
from typing import Optional

from fanout.application.use_cases.apply_control_command import ApplyControlCommand
from fanout.application.use_cases.disconnect_subscriber import DisconnectSubscriber
from fanout.application.use_cases.dispatch_event import RelayDispatcher
from fanout.domain.ports.transport_port import TransportPort
from fanout.domain.services.subscription_registry import SubscriptionRegistry
from fanout.infrastructure.config import FanoutConfig
from fanout.infrastructure.event_bus import EventBus
from fanout.infrastructure.stats import RelayStats
from fanout.infrastructure.telemetry.otel_exporter import OTELConfig, OTELExporter
from fanout.infrastructure.transports.tcp_transport import TCPTransport


@dataclass
class FanoutContainer:
    """DI container holding all wired dependencies."""

    config: FanoutConfig
    registry: SubscriptionRegistry
    event_bus: EventBus
    stats: RelayStats
    transport: TransportPort
    apply_command: ApplyControlCommand
    disconnect: DisconnectSubscriber
    dispatcher: RelayDispatcher
    telemetry: OTELExporter


def create_container(
    config: Optional[FanoutConfig] = None,
    transport: Optional[TransportPort] = None,
    event_bus: Optional[EventBus] = None,
) -> FanoutContainer:
    """Create and wire all dependencies.

    A supplied transport that publishes connection events should share
    *event_bus* so RelayStats sees both connects and disconnects.
    """
    config = config or FanoutConfig()
    registry = SubscriptionRegistry()
    if event_bus is None:
        event_bus = EventBus()
    stats = RelayStats()
    stats.attach(event_bus)

    apply_command = ApplyControlCommand(registry, event_bus)
    disconnect = DisconnectSubscriber(registry, event_bus)

    if transport is None:
        transport = TCPTransport(
            command_handler=apply_command.execute,
            event_bus=event_bus,
            max_queue=config.relay.max_queue,
            write_timeout=config.relay.write_timeout,
        )
    transport.set_disconnect_hook(disconnect.execute)

    dispatcher = RelayDispatcher(
        registry,
        transport,
        event_bus,
        send_timeout=config.relay.send_timeout,
    )

    telemetry = OTELExporter(
        OTELConfig(
            endpoint=config.telemetry.endpoint,
            service_name=config.telemetry.service_name,
            export_interval=config.telemetry.export_interval,
            insecure=config.telemetry.insecure,
        )
    )

    return FanoutContainer(
        config=config,
        registry=registry,
        event_bus=event_bus,
        stats=stats,
        transport=transport,
        apply_command=apply_command,
        disconnect=disconnect,
        dispatcher=dispatcher,
        telemetry=telemetry,
    )

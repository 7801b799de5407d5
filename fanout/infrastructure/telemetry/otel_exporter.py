"""
OpenTelemetry Exporter for Fanout

Architectural Intent:
- Exports relay counters (events, deliveries, failures, connections) to
  OTLP-compatible backends
- RelayStats stays the read model; this exporter samples it periodically
- The OpenTelemetry SDK is optional and imported lazily; without an endpoint
  or without the SDK installed, telemetry is disabled

Security:
- Endpoint defaults to empty string (must be explicitly configured)
- Non-localhost http:// endpoints rejected unless insecure=True
"""

from __future__ import annotations
from dataclasses import dataclass
from typing import Optional, Any
from urllib.parse import urlparse
import asyncio
import logging
from datetime import datetime, UTC

from fanout.infrastructure.stats import RelayStats

logger = logging.getLogger(__name__)

# StatsSnapshot fields exported as gauges
_COUNTERS = (
    "events_published",
    "events_unmatched",
    "deliveries",
    "delivery_failures",
    "connects",
    "disconnects",
)


@dataclass
class OTELConfig:
    endpoint: str = ""
    service_name: str = "fanout"
    environment: str = "development"
    export_interval: float = 5.0
    insecure: bool = False

    def __post_init__(self) -> None:
        if self.endpoint:
            parsed = urlparse(self.endpoint)
            is_localhost = parsed.hostname in ("localhost", "127.0.0.1", "::1")
            if parsed.scheme == "http" and not is_localhost and not self.insecure:
                raise ValueError(
                    f"Non-localhost HTTP endpoint '{self.endpoint}' requires "
                    "insecure=True or use https://. "
                    "Set insecure=True to explicitly allow plaintext export."
                )


class OTELExporter:
    """OpenTelemetry metrics exporter for a running relay."""

    def __init__(self, config: OTELConfig):
        self.config = config
        self._initialized = False
        self._metrics_buffer: list[dict[str, Any]] = []
        self._meter: Any = None
        self._gauges: dict[str, Any] = {}

    @property
    def enabled(self) -> bool:
        return self._initialized

    async def initialize(self) -> None:
        """Initialize the OpenTelemetry SDK and the OTLP metric exporter."""
        if not self.config.endpoint:
            logger.info("OTEL endpoint not configured, telemetry disabled")
            return

        try:
            from opentelemetry import metrics
            from opentelemetry.sdk.metrics import MeterProvider
            from opentelemetry.sdk.metrics.export import PeriodicExportingMetricReader
            from opentelemetry.sdk.resources import Resource, SERVICE_NAME
            from opentelemetry.exporter.otlp.proto.grpc.metric_exporter import (
                OTLPMetricExporter,
            )

            resource = Resource(
                attributes={
                    SERVICE_NAME: self.config.service_name,
                    "environment": self.config.environment,
                }
            )
            metric_reader = PeriodicExportingMetricReader(
                OTLPMetricExporter(
                    endpoint=self.config.endpoint, insecure=self.config.insecure
                ),
                export_interval_millis=self.config.export_interval * 1000,
            )
            provider = MeterProvider(resource=resource, metric_readers=[metric_reader])
            metrics.set_meter_provider(provider)
            self._meter = metrics.get_meter(__name__)
            self._initialized = True
            logger.info("Exporting relay metrics to %s", self.config.endpoint)

        except ImportError:
            logger.warning("OpenTelemetry SDK not installed, telemetry disabled")
            self._initialized = False
        except Exception as e:
            logger.error("Failed to initialize OTEL: %s", e)
            self._initialized = False

    def _get_gauge(self, name: str, unit: str = "") -> Any:
        if name not in self._gauges and self._meter:
            self._gauges[name] = self._meter.create_gauge(name, unit=unit)
        return self._gauges.get(name)

    def record_metric(
        self,
        name: str,
        value: float,
        unit: str = "",
        attributes: Optional[dict[str, str]] = None,
    ) -> None:
        """Record a metric value."""
        self._metrics_buffer.append(
            {
                "name": name,
                "value": value,
                "unit": unit,
                "attributes": attributes or {},
                "timestamp": datetime.now(UTC).isoformat(),
            }
        )

        if self._initialized:
            gauge = self._get_gauge(name, unit)
            if gauge:
                gauge.set(value, attributes=attributes or {})

    def record_stats(self, stats: RelayStats) -> None:
        """Sample the relay counters into fanout.relay.* gauges."""
        snapshot = stats.snapshot()
        for name in _COUNTERS:
            self.record_metric(f"fanout.relay.{name}", float(getattr(snapshot, name)))
        for channel, count in stats.failures_by_channel().items():
            self.record_metric(
                "fanout.channel.delivery_failures",
                float(count),
                attributes={"channel": channel},
            )

    async def export(self) -> None:
        """Flush the local buffer; the SDK reader does the actual export."""
        if not self._initialized:
            return

        exported_count = len(self._metrics_buffer)
        self._metrics_buffer.clear()

        if exported_count:
            logger.debug("Flushed %d buffered metrics", exported_count)

    async def run(
        self, stats: RelayStats, stop_event: Optional[asyncio.Event] = None
    ) -> None:
        """Sample *stats* every export_interval seconds until stopped."""
        stop_event = stop_event or asyncio.Event()
        while not stop_event.is_set():
            self.record_stats(stats)
            await self.export()
            try:
                await asyncio.wait_for(
                    stop_event.wait(), timeout=self.config.export_interval
                )
            except asyncio.TimeoutError:
                pass


async def create_exporter(
    endpoint: Optional[str] = None,
    service_name: str = "fanout",
    export_interval: float = 5.0,
    insecure: bool = False,
) -> OTELExporter:
    """Factory function to create and initialize an OTEL exporter."""
    config = OTELConfig(
        endpoint=endpoint or "",
        service_name=service_name,
        export_interval=export_interval,
        insecure=insecure,
    )
    exporter = OTELExporter(config)
    await exporter.initialize()
    return exporter

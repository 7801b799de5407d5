"""
Fanout Telemetry Infrastructure

Architectural Intent:
- Optional OpenTelemetry export of relay metrics
"""

from fanout.infrastructure.telemetry.otel_exporter import (
    OTELExporter,
    OTELConfig,
    create_exporter,
)

__all__ = [
    "OTELExporter",
    "OTELConfig",
    "create_exporter",
]

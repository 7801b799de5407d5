"""
Configuration Module

Architectural Intent:
- Centralized configuration loading from a JSON file
- Provides typed access to all relay settings
- Falls back to sensible defaults when config file is absent
- Environment variables override file-based config

Design Decisions:
- Config is a frozen dataclass for immutability after load
- Nested config sections map to sub-dataclasses
- String values (from the environment) are coerced by field type
"""

from __future__ import annotations
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional
import dataclasses
import json
import logging
import os

logger = logging.getLogger(__name__)

_TOP_LEVEL_KEYS = ("log_level", "json_logs")


@dataclass(frozen=True)
class RelayConfig:
    """Subscriber-facing TCP relay configuration."""
    host: str = "127.0.0.1"
    port: int = 7400
    max_queue: int = 1024
    write_timeout: float = 5.0
    send_timeout: float = 1.0


@dataclass(frozen=True)
class WebConfig:
    """HTTP ingestion and status API configuration."""
    host: str = "127.0.0.1"
    port: int = 8080
    publish_timeout: float = 5.0


@dataclass(frozen=True)
class ClientConfig:
    """Relay API client settings (publish, stats, dash commands)."""
    url: str = "http://127.0.0.1:8080"
    refresh_interval: float = 2.0


@dataclass(frozen=True)
class TelemetryConfig:
    """OpenTelemetry configuration. An empty endpoint disables export."""
    endpoint: str = ""
    insecure: bool = False
    service_name: str = "fanout"
    export_interval: float = 5.0


@dataclass(frozen=True)
class FanoutConfig:
    """Root configuration for the fanout relay."""
    relay: RelayConfig = field(default_factory=RelayConfig)
    web: WebConfig = field(default_factory=WebConfig)
    client: ClientConfig = field(default_factory=ClientConfig)
    telemetry: TelemetryConfig = field(default_factory=TelemetryConfig)
    log_level: str = "WARNING"
    json_logs: bool = False


def _env_override(data: dict, prefix: str = "FANOUT") -> dict:
    """Override config values with environment variables.

    Environment variables follow the pattern FANOUT_SECTION_KEY.
    For example: FANOUT_WEB_PORT=9090, FANOUT_RELAY_MAX_QUEUE=64.
    Field names may contain underscores: FANOUT_TELEMETRY_SERVICE_NAME.
    Top-level keys use FANOUT_KEY, e.g. FANOUT_LOG_LEVEL=DEBUG.
    """
    for key, value in os.environ.items():
        if not key.startswith(f"{prefix}_"):
            continue
        name = key[len(prefix) + 1:].lower()
        if name in _TOP_LEVEL_KEYS:
            data[name] = value
            continue
        parts = name.split("_", 1)
        if len(parts) == 2:
            section, field_name = parts
            if not isinstance(data.get(section), dict):
                data[section] = {}
            data[section][field_name] = value
    return data


def _parse_config_file(path: Path) -> dict:
    """Parse a JSON config file. Returns empty dict on failure."""
    try:
        with open(path) as f:
            data = json.load(f)
    except FileNotFoundError:
        logger.debug("Config file not found: %s", path)
        return {}
    except json.JSONDecodeError as e:
        logger.warning("Invalid config file %s: %s", path, e)
        return {}
    if not isinstance(data, dict):
        logger.warning("Config file %s must contain a JSON object", path)
        return {}
    return data


def _coerce(value, type_name: str):
    if not isinstance(value, str):
        if type_name == "float" and isinstance(value, int):
            return float(value)
        return value
    if type_name == "int":
        return int(value)
    if type_name == "float":
        return float(value)
    if type_name == "bool":
        return value.lower() in ("true", "1", "yes")
    return value


def _build_sub_config(cls, data: dict):
    """Build a sub-config dataclass from a dict, ignoring unknown keys."""
    if not isinstance(data, dict):
        return cls()
    valid_fields = {f.name: f for f in dataclasses.fields(cls)}
    filtered = {
        k: _coerce(v, valid_fields[k].type)
        for k, v in data.items()
        if k in valid_fields
    }
    return cls(**filtered)


def load_config(
    path: Optional[str] = None,
    env_prefix: str = "FANOUT",
) -> FanoutConfig:
    """Load configuration from file and environment variables.

    Priority (highest to lowest):
    1. Environment variables (FANOUT_SECTION_KEY)
    2. Config file values
    3. Defaults

    Args:
        path: Path to config file (JSON). Defaults to fanout.json in CWD.
        env_prefix: Environment variable prefix. Defaults to FANOUT.
    """
    config_path = Path(path) if path else Path("fanout.json")
    data = _parse_config_file(config_path)
    data = _env_override(data, env_prefix)

    return FanoutConfig(
        relay=_build_sub_config(RelayConfig, data.get("relay", {})),
        web=_build_sub_config(WebConfig, data.get("web", {})),
        client=_build_sub_config(ClientConfig, data.get("client", {})),
        telemetry=_build_sub_config(TelemetryConfig, data.get("telemetry", {})),
        log_level=str(data.get("log_level", "WARNING")).upper(),
        json_logs=_coerce(data.get("json_logs", False), "bool"),
    )

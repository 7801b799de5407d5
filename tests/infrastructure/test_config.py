"""Tests for configuration module."""

import json
from unittest.mock import patch

from fanout.infrastructure.config import (
    FanoutConfig,
    RelayConfig,
    WebConfig,
    ClientConfig,
    TelemetryConfig,
    load_config,
)


class TestDefaultConfig:
    def test_defaults(self):
        config = load_config(path="/nonexistent/fanout.json")
        assert config.log_level == "WARNING"
        assert config.json_logs is False
        assert config.relay.port == 7400
        assert config.relay.max_queue == 1024
        assert config.relay.send_timeout == 1.0
        assert config.web.port == 8080
        assert config.client.url == "http://127.0.0.1:8080"

    def test_all_sections_present(self):
        config = load_config(path="/nonexistent/fanout.json")
        assert isinstance(config, FanoutConfig)
        assert isinstance(config.relay, RelayConfig)
        assert isinstance(config.web, WebConfig)
        assert isinstance(config.client, ClientConfig)
        assert isinstance(config.telemetry, TelemetryConfig)
        assert config.telemetry.endpoint == ""


class TestFileConfig:
    def test_load_from_file(self, tmp_path):
        config_file = tmp_path / "fanout.json"
        config_file.write_text(json.dumps({
            "log_level": "debug",
            "relay": {"port": 9000, "max_queue": 16, "write_timeout": 2},
            "web": {"port": 9090},
        }))

        config = load_config(path=str(config_file))
        assert config.log_level == "DEBUG"
        assert config.relay.port == 9000
        assert config.relay.max_queue == 16
        assert config.relay.write_timeout == 2.0
        assert isinstance(config.relay.write_timeout, float)
        assert config.web.port == 9090

    def test_partial_config(self, tmp_path):
        config_file = tmp_path / "fanout.json"
        config_file.write_text(json.dumps({"web": {"port": 3000}}))

        config = load_config(path=str(config_file))
        assert config.web.port == 3000
        assert config.web.host == "127.0.0.1"  # default preserved
        assert config.relay.port == 7400  # default preserved

    def test_invalid_json_returns_defaults(self, tmp_path):
        config_file = tmp_path / "fanout.json"
        config_file.write_text("not valid json{{{")

        config = load_config(path=str(config_file))
        assert config.web.port == 8080

    def test_non_object_returns_defaults(self, tmp_path):
        config_file = tmp_path / "fanout.json"
        config_file.write_text("[1, 2, 3]")

        config = load_config(path=str(config_file))
        assert config.relay.port == 7400

    def test_unknown_keys_ignored(self, tmp_path):
        config_file = tmp_path / "fanout.json"
        config_file.write_text(json.dumps({
            "web": {"port": 3000, "unknown_key": "ignored"},
            "mystery": {"a": 1},
        }))

        config = load_config(path=str(config_file))
        assert config.web.port == 3000


class TestEnvOverride:
    def test_env_overrides_file(self, tmp_path):
        config_file = tmp_path / "fanout.json"
        config_file.write_text(json.dumps({"web": {"port": 3000}}))

        with patch.dict("os.environ", {"FANOUT_WEB_PORT": "4000"}):
            config = load_config(path=str(config_file))
        assert config.web.port == 4000

    def test_env_coerces_types(self):
        env = {
            "FANOUT_RELAY_MAX_QUEUE": "8",
            "FANOUT_RELAY_SEND_TIMEOUT": "0.25",
            "FANOUT_JSON_LOGS": "yes",
            "FANOUT_LOG_LEVEL": "info",
        }
        with patch.dict("os.environ", env):
            config = load_config(path="/nonexistent/fanout.json")
        assert config.relay.max_queue == 8
        assert config.relay.send_timeout == 0.25
        assert config.json_logs is True
        assert config.log_level == "INFO"

    def test_custom_prefix(self):
        with patch.dict("os.environ", {"RELAY_RELAY_PORT": "7500"}):
            config = load_config(path="/nonexistent/fanout.json", env_prefix="RELAY")
        assert config.relay.port == 7500

    def test_telemetry_from_env(self, tmp_path):
        config_file = tmp_path / "fanout.json"
        config_file.write_text(json.dumps({"telemetry": {"export_interval": 10}}))
        env = {
            "FANOUT_TELEMETRY_ENDPOINT": "http://localhost:4317",
            "FANOUT_TELEMETRY_SERVICE_NAME": "relay-a",
        }
        with patch.dict("os.environ", env):
            config = load_config(path=str(config_file))
        assert config.telemetry.endpoint == "http://localhost:4317"
        assert config.telemetry.service_name == "relay-a"
        assert config.telemetry.export_interval == 10.0
        assert config.telemetry.insecure is False

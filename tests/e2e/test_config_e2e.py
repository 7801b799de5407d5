"""End-to-end tests for configuration flowing through the CLI.

Verifies that a fanout.json in the working directory, environment overrides
and CLI flags reach the composition root and the relay runner.
"""

import json
import logging

import pytest
from unittest.mock import patch, AsyncMock

from fanout.presentation.cli.cli import async_main


@pytest.fixture()
def config_dir(tmp_path, monkeypatch):
    (tmp_path / "fanout.json").write_text(json.dumps({
        "log_level": "INFO",
        "relay": {"host": "0.0.0.0", "port": 7600, "max_queue": 8},
        "web": {"port": 9100, "publish_timeout": 1.5},
    }))
    monkeypatch.chdir(tmp_path)
    return tmp_path


class TestServeFromConfig:
    @pytest.mark.asyncio
    async def test_config_file_values_used(self, config_dir):
        with patch("sys.argv", ["fanout", "serve"]):
            with patch(
                "fanout.presentation.cli.cli.run_relay", new=AsyncMock()
            ) as run:
                await async_main()

        container, relay_host, relay_port, web_host, web_port = run.await_args.args
        assert (relay_host, relay_port) == ("0.0.0.0", 7600)
        assert (web_host, web_port) == ("127.0.0.1", 9100)
        assert container.transport.max_queue == 8
        assert container.config.web.publish_timeout == 1.5
        assert logging.getLogger("fanout").level == logging.INFO

    @pytest.mark.asyncio
    async def test_env_beats_file_and_flags_beat_env(self, config_dir):
        env = {"FANOUT_RELAY_PORT": "7700", "FANOUT_WEB_PORT": "9200"}
        with patch.dict("os.environ", env):
            with patch("sys.argv", ["fanout", "serve", "--web-port", "9300"]):
                with patch(
                    "fanout.presentation.cli.cli.run_relay", new=AsyncMock()
                ) as run:
                    await async_main()

        _, _, relay_port, _, web_port = run.await_args.args
        assert relay_port == 7700
        assert web_port == 9300

    @pytest.mark.asyncio
    async def test_explicit_config_path(self, tmp_path):
        path = tmp_path / "other.json"
        path.write_text(json.dumps({"relay": {"port": 7800}}))
        with patch("sys.argv", ["fanout", "--config", str(path), "serve"]):
            with patch(
                "fanout.presentation.cli.cli.run_relay", new=AsyncMock()
            ) as run:
                await async_main()

        assert run.await_args.args[2] == 7800

"""Tests for the Textual relay dashboard."""

import pytest
from unittest.mock import AsyncMock, MagicMock

from textual.widgets import DataTable, Log

from fanout.presentation.tui.dashboard import (
    Dashboard,
    MAX_INTERVAL,
    MIN_INTERVAL,
    format_summary,
)


def _make_client(stats=None, channels=None, error=None):
    client = MagicMock()
    client.base_url = "http://relay:8080"
    if error is not None:
        client.stats = AsyncMock(side_effect=error)
    else:
        client.stats = AsyncMock(return_value=stats or {})
    client.channels = AsyncMock(return_value=channels or {})
    return client


class TestFormatSummary:
    def test_summary_fields(self):
        text = format_summary({
            "subscribers": 2,
            "channels": 3,
            "events_published": 10,
            "deliveries": 9,
            "delivery_failures": 1,
        })
        assert "Subscribers: 2" in text
        assert "Channels: 3" in text
        assert "Failures: 1" in text

    def test_missing_fields_default_to_zero(self):
        assert "Events: 0" in format_summary({})


class TestDashboard:
    @pytest.mark.asyncio
    async def test_poll_fills_channel_table(self):
        client = _make_client(
            stats={"subscribers": 2, "channels": 2},
            channels={"a": 1, "b": 2},
        )
        app = Dashboard(client, refresh_interval=60)
        async with app.run_test() as pilot:
            await app._poll()
            await pilot.pause()
            table = app.query_one(DataTable)
            assert table.row_count == 2

    @pytest.mark.asyncio
    async def test_poll_error_is_logged(self):
        client = _make_client(error=ConnectionError("relay down"))
        app = Dashboard(client, refresh_interval=60)
        async with app.run_test() as pilot:
            await app._poll()
            await pilot.pause()
            assert app.query_one(DataTable).row_count == 0
            assert any("relay down" in line for line in app.query_one(Log).lines)

    @pytest.mark.asyncio
    async def test_interval_bounds(self):
        app = Dashboard(_make_client(), refresh_interval=MAX_INTERVAL)
        async with app.run_test():
            app.action_increase_interval()
            assert app._refresh_interval == MAX_INTERVAL
            for _ in range(100):
                app.action_decrease_interval()
            assert app._refresh_interval == MIN_INTERVAL

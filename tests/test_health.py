"""
Tests for src.health — HTTP liveness endpoint.

Uses aiohttp's TestClient so no real TCP socket is needed.
"""

import asyncio
from unittest.mock import AsyncMock, MagicMock, patch

import pytest
from aiohttp.test_utils import TestClient, TestServer

from src.health import ALIVE_TEXT, create_app, run_health_server


@pytest.mark.asyncio
async def test_root_reports_alive():
    async with TestClient(TestServer(create_app())) as client:
        resp = await client.get("/")
        assert resp.status == 200
        assert await resp.text() == ALIVE_TEXT == "Bot is alive!"


@pytest.mark.asyncio
async def test_unknown_path_404():
    async with TestClient(TestServer(create_app())) as client:
        resp = await client.get("/metrics")
        assert resp.status == 404


@pytest.mark.asyncio
async def test_run_health_server_cleans_up_on_cancel():
    runner = MagicMock()
    runner.setup = AsyncMock()
    runner.cleanup = AsyncMock()
    site = MagicMock()
    site.start = AsyncMock()

    with patch("src.health.web.AppRunner", return_value=runner), \
         patch("src.health.web.TCPSite", return_value=site) as tcp_site:
        task = asyncio.create_task(run_health_server(4321))
        await asyncio.sleep(0.01)
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)

    tcp_site.assert_called_once_with(runner, "0.0.0.0", 4321)
    site.start.assert_awaited_once()
    runner.cleanup.assert_awaited_once()

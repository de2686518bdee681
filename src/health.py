"""
Liveness endpoint.

Runs an aiohttp server on PORT alongside the Telegram bot in the same
asyncio event loop, so hosting platforms that expect an open HTTP port
keep the process alive.

Endpoints:
  GET /  → 200 "Bot is alive!"
"""

from __future__ import annotations

import asyncio
import logging

from aiohttp import web

logger = logging.getLogger(__name__)

ALIVE_TEXT = "Bot is alive!"


async def _handle_root(request: web.Request) -> web.Response:
    return web.Response(text=ALIVE_TEXT)


def create_app() -> web.Application:
    app = web.Application()
    app.router.add_get("/", _handle_root)
    return app


async def run_health_server(port: int | None = None) -> None:
    """
    Start the health server on the given port.
    Runs until cancelled. Call with asyncio.create_task().
    """
    if port is None:
        from src.config import settings
        port = settings.PORT

    runner = web.AppRunner(create_app(), access_log=None)
    await runner.setup()
    site = web.TCPSite(runner, "0.0.0.0", port)

    try:
        await site.start()
        logger.info("Health server listening on http://0.0.0.0:%d", port)
        while True:
            await asyncio.sleep(3600)
    except asyncio.CancelledError:
        logger.info("Health server shutting down")
    finally:
        await runner.cleanup()

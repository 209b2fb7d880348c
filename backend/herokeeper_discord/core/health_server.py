"""HTTP health check server"""

import asyncio
import logging
import time
from typing import TYPE_CHECKING, Any

from aiohttp import web

from .config import BOT_VERSION

if TYPE_CHECKING:
    from herokeeper_discord.bot import HeroKeeperClient

logger = logging.getLogger(__name__)


class HealthCheckServer:
    """Liveness/status endpoints for Render/Docker and the management API."""

    def __init__(
        self, bot: "HeroKeeperClient | None" = None, host: str = "0.0.0.0", port: int = 8080
    ) -> None:
        self.bot: Any = bot
        self.host = host
        self.port = port
        self.app = web.Application()
        self.runner: web.AppRunner | None = None
        self._start_time: float = time.time()
        self._heartbeat_task: asyncio.Task | None = None
        self.app.router.add_get("/", self.handle_root)
        self.app.router.add_get("/health", self.handle_health)
        self.app.router.add_get("/status", self.handle_status)
        self.app.router.add_get("/ping", self.handle_ping)

    def _ready(self) -> bool:
        return self.bot is not None and self.bot.is_ready()

    def _scheduled_timers(self) -> int:
        timer = getattr(self.bot, "hero_point_timer", None)
        return timer.scheduled_count if timer is not None else 0

    async def handle_root(self, request: web.Request) -> web.Response:
        return web.json_response({"service": "herokeeper-discord", "status": "running"})

    async def handle_health(self, request: web.Request) -> web.Response:
        """Always 200 (liveness)"""
        ready = self._ready()
        return web.json_response({"status": "healthy" if ready else "starting", "ready": ready})

    async def handle_status(self, request: web.Request) -> web.Response:
        ready = self._ready()
        return web.json_response(
            {
                "service": "herokeeper-discord",
                "version": BOT_VERSION,
                "bot_id": str(self.bot.user.id) if ready and self.bot.user else None,
                "uptime_seconds": int(time.time() - self._start_time),
                "guilds": len(self.bot.guilds) if ready else 0,
                "scheduled_timers": self._scheduled_timers(),
            }
        )

    async def handle_ping(self, request: web.Request) -> web.Response:
        return web.Response(text="pong")

    async def _heartbeat(self, interval: int = 300) -> None:
        while True:
            await asyncio.sleep(interval)
            uptime = int(time.time() - self._start_time)
            logger.info(
                f"Heartbeat: uptime={uptime}s, ready={self._ready()}, "
                f"timers={self._scheduled_timers()}"
            )

    async def start(self) -> None:
        self.runner = web.AppRunner(self.app)
        await self.runner.setup()
        site = web.TCPSite(self.runner, self.host, self.port)
        await site.start()
        self._heartbeat_task = asyncio.create_task(self._heartbeat())
        logger.info(f"Health server started on {self.host}:{self.port}")

    async def stop(self) -> None:
        if self._heartbeat_task:
            self._heartbeat_task.cancel()
        if self.runner:
            try:
                await self.runner.cleanup()
                logger.info("Health server stopped")
            except Exception as e:
                logger.exception(f"Error stopping health server: {e}")

"""FastAPI application factory"""

import asyncio
import logging
import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import PlainTextResponse

from herokeeper.database import DatabaseManager
from herokeeper.pg_listener import HERO_POINT_CHANGE_CHANNEL, cache_invalidator, pg_listen
from herokeeper.repositories import CharacterRepository, HeroPointSettingsRepository

from .core.config import get_settings
from .core.database import get_database_manager, init_database_manager
from .core.logging import setup_logging
from .routers import hero_points_router

logger = logging.getLogger(__name__)

SERVICE_NAME = "herokeeper-api"
VERSION = "1.0.0"

_start_time: float = 0.0
_db_retry_task: asyncio.Task | None = None
_listen_task: asyncio.Task | None = None


def _start_cache_listener(db_manager: DatabaseManager) -> None:
    """Drop cached roster and settings entries when another process writes them."""
    global _listen_task
    handler = cache_invalidator(
        CharacterRepository(db_manager.pool), HeroPointSettingsRepository(db_manager.pool)
    )
    _listen_task = asyncio.create_task(
        pg_listen(db_manager.pool, HERO_POINT_CHANGE_CHANNEL, handler)
    )


async def _db_retry_loop(db_manager: DatabaseManager) -> None:
    """Keep retrying the database after a failed startup connect."""
    delay = 5
    max_delay = 60
    while True:
        await asyncio.sleep(delay)
        if db_manager.is_connected:
            return
        try:
            await db_manager.connect()
            logger.info("Database connected (background retry)")
            _start_cache_listener(db_manager)
            return
        except asyncio.CancelledError:
            return
        except Exception as e:
            delay = min(delay * 2, max_delay)
            logger.warning(
                f"DB background retry failed: {type(e).__name__}: {e}, next retry in {delay}s"
            )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Handle startup and shutdown"""
    global _start_time, _db_retry_task
    _start_time = time.time()
    settings = get_settings()

    logger.info(f"Starting HeroKeeper API server ({settings.environment})")

    # Requests get 503 until the pool is ready
    db_manager = init_database_manager(settings.database_url)
    try:
        await asyncio.wait_for(db_manager.connect(), timeout=30)
        logger.info("Database connected")
        _start_cache_listener(db_manager)
    except Exception as e:
        logger.error(
            f"DB connection failed during startup: {type(e).__name__}: {e}, retrying in background"
        )
        _db_retry_task = asyncio.create_task(_db_retry_loop(db_manager))

    yield

    logger.info("Shutting down HeroKeeper API server")
    if _db_retry_task:
        _db_retry_task.cancel()
    if _listen_task:
        _listen_task.cancel()
    await db_manager.disconnect()


def create_app() -> FastAPI:
    """Create and configure FastAPI application"""
    settings = get_settings()
    setup_logging(settings)

    app = FastAPI(
        title="HeroKeeper API",
        description="Hero point settings, roster and timers for HeroKeeper campaigns",
        version=VERSION,
        lifespan=lifespan,
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(hero_points_router.router)

    @app.get("/")
    async def root():
        return {"service": SERVICE_NAME, "status": "running"}

    @app.get("/health")
    async def health():
        """Liveness check (no DB dependency)"""
        return {"status": "healthy", "uptime_seconds": int(time.time() - _start_time)}

    @app.get("/status")
    async def status():
        """Readiness check including DB health"""
        try:
            db_ok = await get_database_manager().check_health()
        except RuntimeError:
            db_ok = False
        return {
            "service": SERVICE_NAME,
            "version": VERSION,
            "uptime_seconds": int(time.time() - _start_time),
            "db_connected": db_ok,
            "environment": settings.environment,
        }

    @app.api_route("/ping", methods=["GET", "HEAD"], response_class=PlainTextResponse)
    async def ping():
        return "pong"

    return app

"""PostgreSQL LISTEN/NOTIFY loop that keeps in-process caches fresh."""

from __future__ import annotations

import asyncio
import json
import logging
from collections.abc import Callable, Coroutine
from typing import Any

import asyncpg

from herokeeper.repositories import CharacterRepository, HeroPointSettingsRepository

logger = logging.getLogger(__name__)

HERO_POINT_CHANGE_CHANNEL = "hero_point_change"

NotifyHandler = Callable[[Any, int, str, str], Coroutine[Any, Any, None]]


async def _drop_connection(
    pool: asyncpg.Pool, connection: asyncpg.Connection, channel: str, handler: NotifyHandler
) -> None:
    try:
        await connection.remove_listener(channel, handler)
        await pool.release(connection)
    except Exception as e:
        logger.debug(f"LISTEN connection for '{channel}' not released cleanly: {e}")
        connection.terminate()


async def pg_listen(
    pool: asyncpg.Pool,
    channel: str,
    handler: NotifyHandler,
    *,
    keepalive_interval: int = 30,
    reconnect_delay: int = 10,
) -> None:
    """Listen on a NOTIFY channel until cancelled, reconnecting after errors.

    ``handler`` is called as ``(connection, pid, channel, payload)``.
    """
    while True:
        connection: asyncpg.Connection | None = None
        try:
            connection = await pool.acquire()
            await connection.add_listener(channel, handler)
            logger.info(f"PostgreSQL LISTEN active on '{channel}'")
            while True:
                await asyncio.sleep(keepalive_interval)
                await connection.execute("SELECT 1")
        except asyncio.CancelledError:
            logger.info(f"PostgreSQL LISTEN '{channel}' shutting down")
            if connection is not None:
                await _drop_connection(pool, connection, channel, handler)
            raise
        except Exception as e:
            logger.error(f"Error in pg_listen('{channel}'): {e}")
            logger.warning(f"Reconnecting LISTEN '{channel}' in {reconnect_delay}s")
            if connection is not None:
                await _drop_connection(pool, connection, channel, handler)
            await asyncio.sleep(reconnect_delay)


def cache_invalidator(
    characters: CharacterRepository, settings: HeroPointSettingsRepository
) -> NotifyHandler:
    """Build the NOTIFY handler that drops the cache entry a write touched."""

    async def handle(connection, pid, channel, payload) -> None:
        try:
            data = json.loads(payload)
        except (TypeError, ValueError):
            logger.warning(f"[NOTIFY] Bad {channel} payload: {payload!r}")
            return
        campaign_id = data.get("campaign_id")
        if not campaign_id:
            return

        table = data.get("table")
        if table == "characters":
            characters.invalidate_cache(campaign_id)
        elif table == "hero_point_settings":
            settings.invalidate_cache(campaign_id)
        else:
            return
        logger.debug(f"[NOTIFY] {table} changed for {campaign_id}, cache dropped")

    return handle

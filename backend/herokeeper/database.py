"""PostgreSQL pool management shared by the Discord bot and the API.

Supabase connection modes:
  - Session Pooler  (port 5432) : long-lived processes, prepared statements OK
  - Transaction Pooler (port 6543) : short-lived/serverless, no prepared statements
"""

from __future__ import annotations

import asyncio
import logging
import socket
from dataclasses import dataclass, fields
from typing import Any, ClassVar
from urllib.parse import urlparse

import asyncpg

logger = logging.getLogger(__name__)


@dataclass
class PoolConfig:
    """Pool sizing, timeouts and retry policy."""

    min_size: int = 1
    max_size: int = 5
    timeout: float = 5.0
    command_timeout: float = 15.0
    max_inactive_connection_lifetime: float = 30.0
    max_retries: int = 3
    retry_delay: float = 3.0
    ssl: str | None = "require"

    # The bot holds timers for hours, so it keeps warm session connections.
    # The API is bursty and borrows connections on demand.
    _SERVICE_PRESETS: ClassVar[dict[str, dict]] = {
        "api": {"min_size": 0, "max_size": 10},
        "discord": {"min_size": 1, "max_size": 4},
    }

    @classmethod
    def for_service(cls, service: str, **overrides) -> PoolConfig:
        valid_keys = {f.name for f in fields(cls) if not f.name.startswith("_")}
        preset = dict(cls._SERVICE_PRESETS.get(service, {}))
        preset.update(overrides)
        return cls(**{k: v for k, v in preset.items() if k in valid_keys})


class DatabaseManager:
    """Owns the asyncpg pool: pooler detection, connect retry, shutdown."""

    def __init__(self, database_url: str, config: PoolConfig | None = None):
        self.database_url = database_url
        self.config = config or PoolConfig()
        self._pool: asyncpg.Pool | None = None
        self._pooler_mode: str = "transaction" if ":6543" in database_url else "session"

    async def _init_session_connection(self, conn: asyncpg.Connection) -> None:
        timeout_ms = int(self.config.command_timeout * 1000)
        await conn.execute(f"SET statement_timeout = {timeout_ms}")

    def pool_kwargs(self) -> dict[str, Any]:
        """asyncpg.create_pool kwargs for the detected pooler mode."""
        cfg = self.config
        kwargs: dict[str, Any] = {
            "dsn": self.database_url,
            "max_size": cfg.max_size,
            "timeout": cfg.timeout,
            "command_timeout": cfg.command_timeout,
            "ssl": cfg.ssl,
        }
        if self._pooler_mode == "transaction":
            # PgBouncer transaction mode: no prepared statements, no session state
            kwargs.update(min_size=0, statement_cache_size=0, max_inactive_connection_lifetime=0)
        else:
            kwargs.update(
                min_size=cfg.min_size,
                statement_cache_size=100,
                max_inactive_connection_lifetime=cfg.max_inactive_connection_lifetime,
                init=self._init_session_connection,
            )
        return kwargs

    def _diagnose_connection(self) -> None:
        """Log DNS/TCP reachability of the database host."""
        parsed = urlparse(self.database_url)
        host = parsed.hostname or "unknown"
        port = parsed.port or 5432
        try:
            addrs = socket.getaddrinfo(host, port, socket.AF_UNSPEC, socket.SOCK_STREAM)
        except socket.gaierror as e:
            logger.error(f"[DB Diag] DNS FAILED for {host}: {e}")
            return
        logger.info(f"[DB Diag] DNS OK: {sorted({a[4][0] for a in addrs})}")
        family, _, _, _, sockaddr = addrs[0]
        try:
            with socket.socket(family, socket.SOCK_STREAM) as sock:
                sock.settimeout(5)
                sock.connect(sockaddr)
            logger.info(f"[DB Diag] TCP OK: {sockaddr[0]}:{sockaddr[1]}")
        except OSError as e:
            logger.error(f"[DB Diag] TCP FAILED to {sockaddr[0]}:{sockaddr[1]}: {e}")

    async def connect(self) -> None:
        """Create and verify the pool, retrying with exponential backoff."""
        if self._pool is not None:
            logger.warning("Database pool already initialized")
            return

        pool_kwargs = self.pool_kwargs()
        logger.info(f"Connecting with {self._pooler_mode} pooler mode")

        cfg = self.config
        for attempt in range(1, cfg.max_retries + 1):
            try:
                self._pool = await asyncpg.create_pool(**pool_kwargs)
                async with self._pool.acquire() as conn:
                    await conn.fetchval("SELECT 1")
                logger.info(
                    f"Database pool ready (mode={self._pooler_mode}, "
                    f"size={pool_kwargs['min_size']}-{cfg.max_size})"
                )
                return
            except Exception as e:
                if self._pool is not None:
                    await self._pool.close()
                    self._pool = None
                if attempt == cfg.max_retries:
                    logger.exception(
                        f"Database connection failed after {cfg.max_retries} attempts: "
                        f"{type(e).__name__}: {e}"
                    )
                    raise
                delay = cfg.retry_delay * (2 ** (attempt - 1))
                logger.warning(
                    f"Database connection attempt {attempt}/{cfg.max_retries} failed: "
                    f"{type(e).__name__}: {e}, retrying in {delay}s..."
                )
                if attempt == 1:
                    self._diagnose_connection()
                await asyncio.sleep(delay)

    async def disconnect(self) -> None:
        if self._pool is None:
            return
        try:
            await self._pool.close()
            logger.info("Database pool closed")
        except Exception as e:
            logger.exception(f"Error closing database pool: {e}")
        finally:
            self._pool = None

    async def check_health(self) -> bool:
        if self._pool is None:
            return False
        try:
            async with self._pool.acquire(timeout=2.0) as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception:
            return False

    @property
    def is_connected(self) -> bool:
        return self._pool is not None

    @property
    def pool(self) -> asyncpg.Pool:
        """The connection pool. Raises if not connected."""
        if self._pool is None:
            raise RuntimeError("Database pool not initialized. Call connect() first.")
        return self._pool

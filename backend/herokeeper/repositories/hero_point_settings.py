"""Repository for hero_point_settings table."""

from __future__ import annotations

import asyncpg

from herokeeper.cache import AsyncTTLCache, cached
from herokeeper.models import HeroPointSettings

# Freshness across processes via pg_notify (see migrations/versions/002_change_notify.sql).
_settings_cache = AsyncTTLCache(maxsize=64, ttl=600)

_COLUMNS = "campaign_id, default_timeout_minutes, max_hero_points, updated_at"


class HeroPointSettingsRepository:
    """Campaign hero point settings, falling back to process-wide defaults."""

    def __init__(
        self,
        pool: asyncpg.Pool,
        *,
        default_timeout_minutes: int = 60,
        max_hero_points: int = 3,
    ) -> None:
        self.pool = pool
        self.default_timeout_minutes = default_timeout_minutes
        self.max_hero_points = max_hero_points

    def defaults(self, campaign_id: str) -> HeroPointSettings:
        return HeroPointSettings(
            campaign_id=campaign_id,
            default_timeout_minutes=self.default_timeout_minutes,
            max_hero_points=self.max_hero_points,
        )

    @cached(
        cache=_settings_cache,
        key_func=lambda self, campaign_id: f"hero_point_settings:{campaign_id}",
    )
    async def get(self, campaign_id: str) -> HeroPointSettings:
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"SELECT {_COLUMNS} FROM hero_point_settings WHERE campaign_id = $1",
                campaign_id,
            )
            if not row:
                return self.defaults(campaign_id)
            return HeroPointSettings(**dict(row))

    async def update(
        self,
        campaign_id: str,
        *,
        default_timeout_minutes: int | None = None,
        max_hero_points: int | None = None,
    ) -> HeroPointSettings:
        """Insert or update a campaign's settings. Invalidates cache."""
        if default_timeout_minutes is not None and default_timeout_minutes < 0:
            raise ValueError("default_timeout_minutes must be >= 0")
        if max_hero_points is not None and max_hero_points < 0:
            raise ValueError("max_hero_points must be >= 0")

        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                INSERT INTO hero_point_settings (campaign_id, default_timeout_minutes, max_hero_points)
                VALUES ($1, COALESCE($2, $4), COALESCE($3, $5))
                ON CONFLICT (campaign_id) DO UPDATE SET
                    default_timeout_minutes = COALESCE($2, hero_point_settings.default_timeout_minutes),
                    max_hero_points         = COALESCE($3, hero_point_settings.max_hero_points),
                    updated_at              = NOW()
                RETURNING {_COLUMNS}
                """,
                campaign_id,
                default_timeout_minutes,
                max_hero_points,
                self.default_timeout_minutes,
                self.max_hero_points,
            )
        _settings_cache.invalidate(f"hero_point_settings:{campaign_id}")
        return HeroPointSettings(**dict(row))

    def invalidate_cache(self, campaign_id: str) -> None:
        """Invalidate a campaign's settings (called by the pg_notify handler)."""
        _settings_cache.invalidate(f"hero_point_settings:{campaign_id}")

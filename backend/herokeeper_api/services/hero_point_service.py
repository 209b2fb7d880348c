"""Read and update hero point state for the dashboard."""

from __future__ import annotations

import logging

import asyncpg

from herokeeper.heropoints import HandlerContext, HeroPointTimer, is_hero
from herokeeper.models import Character, HeroPointSettings
from herokeeper.repositories import (
    CharacterRepository,
    HeroPointSettingsRepository,
    UserFlagRepository,
)

logger = logging.getLogger(__name__)


class HeroPointService:
    """Thin layer over the shared repositories.

    The API never schedules anything: its timer only reads the stored
    countdown, the bot process owns the scheduled fires.
    """

    def __init__(
        self,
        pool: asyncpg.Pool,
        *,
        default_timeout_minutes: int = 60,
        max_hero_points: int = 3,
    ) -> None:
        self.characters = CharacterRepository(pool)
        self.settings = HeroPointSettingsRepository(
            pool,
            default_timeout_minutes=default_timeout_minutes,
            max_hero_points=max_hero_points,
        )
        self.timer = HeroPointTimer(UserFlagRepository(pool), self.settings)

    async def get_settings(self, campaign_id: str) -> HeroPointSettings:
        return await self.settings.get(campaign_id)

    async def update_settings(
        self,
        campaign_id: str,
        *,
        default_timeout_minutes: int | None = None,
        max_hero_points: int | None = None,
    ) -> HeroPointSettings:
        updated = await self.settings.update(
            campaign_id,
            default_timeout_minutes=default_timeout_minutes,
            max_hero_points=max_hero_points,
        )
        logger.info(
            f"Hero point settings updated for {campaign_id}: "
            f"timeout={updated.default_timeout_minutes}, max={updated.max_hero_points}"
        )
        return updated

    async def list_roster(self, campaign_id: str) -> list[tuple[Character, bool]]:
        """Every character of the campaign, paired with whether it earns hero points."""
        return [(c, is_hero(c)) for c in await self.characters.list_for_campaign(campaign_id)]

    async def timer_status(self, campaign_id: str, user_id: str) -> dict:
        ctx = HandlerContext(campaign_id, user_id)
        record = await self.timer.load(ctx)
        remaining = await self.timer.calc_remaining_minutes(ctx, False)
        return {
            "campaign_id": campaign_id,
            "user_id": user_id,
            "running": remaining > 0,
            "remaining_minutes": max(remaining, 0),
            "start_time": record.start_time if record else None,
            "budget_minutes": record.remaining_minutes if record else None,
        }

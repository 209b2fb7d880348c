"""Apply hero point awards to the roster, capped by the campaign maximum."""

from __future__ import annotations

import logging

from herokeeper.models import Character

from .messages import HeroPointMessages
from .selector import CandidateSelector
from .types import (
    ALL_CHARACTERS,
    NO_CHARACTER,
    BulkAction,
    HandlerContext,
    Notifier,
    Resolution,
    RosterSource,
    SettingsSource,
)

logger = logging.getLogger(__name__)


class HeroPointAwarder:
    def __init__(
        self,
        roster: RosterSource,
        settings: SettingsSource,
        selector: CandidateSelector,
        notifier: Notifier,
        messages: HeroPointMessages | None = None,
    ) -> None:
        self.roster = roster
        self.settings = settings
        self.selector = selector
        self.notifier = notifier
        self.messages = messages or HeroPointMessages()

    async def _max_hero_points(self, campaign_id: str) -> int:
        return (await self.settings.get(campaign_id)).max_hero_points

    async def _targets(self, campaign_id: str, target: str) -> list[Character]:
        if target == ALL_CHARACTERS:
            return await self.selector.heroes(campaign_id)
        if target == NO_CHARACTER:
            return []
        character = await self.roster.get(campaign_id, target)
        if character is None:
            logger.warning(f"Hero point target {target} not found in {campaign_id}")
            return []
        return [character]

    async def reset_hero_points(self, campaign_id: str, amount: int) -> list[Character]:
        """Set every hero's points to *amount*, capped at the maximum."""
        value = max(min(amount, await self._max_hero_points(campaign_id)), 0)
        updated = []
        for hero in await self.selector.heroes(campaign_id):
            result = await self.roster.set_hero_points(campaign_id, hero.id, value)
            if result is not None:
                updated.append(result)
        logger.info(f"Hero points reset to {value} for {len(updated)} heroes in {campaign_id}")
        return updated

    async def add_hero_points(
        self, campaign_id: str, amount: int, target: str = ALL_CHARACTERS
    ) -> list[Character]:
        """Add *amount* to the target's points, capped at the maximum.

        *target* is ``ALL``, ``NONE`` or a character id.
        """
        maximum = await self._max_hero_points(campaign_id)
        updated = []
        for character in await self._targets(campaign_id, target):
            result = await self.roster.add_hero_points(
                campaign_id, character.id, amount, maximum
            )
            if result is not None:
                updated.append(result)
        if updated:
            logger.info(
                f"Added {amount} hero point(s) to {len(updated)} character(s) in {campaign_id}"
            )
        return updated

    async def adjust_hero_points(
        self, campaign_id: str, character_id: str, delta: int
    ) -> Character | None:
        """Step a single character's points by *delta*, no-op at ``0`` and the maximum."""
        maximum = await self._max_hero_points(campaign_id)
        stepped = await self.roster.step_hero_points(campaign_id, character_id, delta, maximum)
        if stepped is not None:
            return stepped
        return await self.roster.get(campaign_id, character_id)

    async def award_single(self, ctx: HandlerContext, target: str) -> None:
        """One extra point for *target* (or every hero for ``ALL``), then announce it."""
        if target == NO_CHARACTER:
            return
        updated = await self.add_hero_points(ctx.campaign_id, 1, target)
        if target == ALL_CHARACTERS:
            await self.notifier.publish(ctx, self.messages.added_for_all(1))
        elif updated:
            await self.notifier.publish(ctx, self.messages.added_for_character(updated[0].name))

    async def apply(self, ctx: HandlerContext, resolution: Resolution) -> None:
        action = resolution.action
        if action.kind is BulkAction.RESET:
            await self.reset_hero_points(ctx.campaign_id, action.amount)
            await self.notifier.publish(ctx, self.messages.reset_for_all(action.amount))
        elif action.kind is BulkAction.ADD:
            await self.add_hero_points(ctx.campaign_id, action.amount)
            await self.notifier.publish(ctx, self.messages.added_for_all(action.amount))
        await self.award_single(ctx, resolution.single_award)

"""Discord implementations of the hero point workflow's collaborators."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord

from herokeeper.heropoints import HandlerContext, WorkflowResult, WorkflowSeed
from herokeeper.repositories import UserFlagRepository

from .constants import CHANNEL_FLAG
from .views import HeroPointView, build_workflow_embed

if TYPE_CHECKING:
    from discord.ext import commands

logger = logging.getLogger(__name__)

Messageable = discord.TextChannel | discord.Thread | discord.VoiceChannel


class WorkflowChannels:
    """Remembers where each user's workflow is posted, across restarts."""

    def __init__(self, bot: commands.Bot, flags: UserFlagRepository) -> None:
        self.bot = bot
        self.flags = flags
        self._known: dict[HandlerContext, int] = {}

    async def remember(self, ctx: HandlerContext, channel_id: int) -> None:
        if self._known.get(ctx) == channel_id:
            return
        await self.flags.set_flags(ctx, {CHANNEL_FLAG: channel_id})
        self._known[ctx] = channel_id

    async def resolve(self, ctx: HandlerContext) -> Messageable | None:
        channel_id = self._known.get(ctx)
        if channel_id is None:
            flags = await self.flags.get_flags(ctx, CHANNEL_FLAG)
            channel_id = flags.get(CHANNEL_FLAG)
            if channel_id is None:
                return None
            self._known[ctx] = int(channel_id)

        channel = self.bot.get_channel(int(channel_id))
        if isinstance(channel, Messageable):
            return channel
        return None


class GuildParticipants:
    """Members who are not offline count as active participants."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    def active_user_ids(self, campaign_id: str) -> set[str]:
        guild = self.bot.get_guild(int(campaign_id))
        if guild is None:
            return set()
        return {
            str(member.id)
            for member in guild.members
            if not member.bot and member.status is not discord.Status.offline
        }


class DiscordNotifier:
    """Public messages go to the workflow channel, private ones by DM."""

    def __init__(self, bot: commands.Bot, channels: WorkflowChannels) -> None:
        self.bot = bot
        self.channels = channels

    async def publish(
        self,
        ctx: HandlerContext,
        message: str,
        whisper_to: list[str] | None = None,
    ) -> None:
        if whisper_to:
            for user_id in whisper_to:
                await self._whisper(int(user_id), message)
            return

        channel = await self.channels.resolve(ctx)
        if channel is None:
            logger.warning(f"No channel for hero point message in {ctx.campaign_id}: {message}")
            return
        await channel.send(message)

    async def _whisper(self, user_id: int, message: str) -> None:
        try:
            user = self.bot.get_user(user_id) or await self.bot.fetch_user(user_id)
            await user.send(message)
        except discord.HTTPException as e:
            logger.warning(f"Could not DM {user_id}: {type(e).__name__}: {e}")


class DiscordPresenter:
    """Posts a HeroPointView and waits for the game master to finish it."""

    def __init__(self, channels: WorkflowChannels) -> None:
        self.channels = channels
        self._views: dict[int, HeroPointView] = {}

    async def present(self, ctx: HandlerContext, seed: WorkflowSeed) -> WorkflowResult:
        channel = await self.channels.resolve(ctx)
        if channel is None:
            logger.warning(
                f"No channel to open the hero point workflow for {ctx.user_id} in {ctx.campaign_id}"
            )
            return WorkflowResult(button=None)

        view = HeroPointView(owner_id=int(ctx.user_id), seed=seed)
        message = await channel.send(
            content=f"<@{ctx.user_id}>",
            embed=build_workflow_embed(seed),
            view=view,
        )
        self._views[message.id] = view
        try:
            return await view.wait_for_result()
        finally:
            self._views.pop(message.id, None)
            try:
                await message.edit(view=None)
            except discord.HTTPException:
                # deleted while open
                pass

    def message_deleted(self, message_id: int) -> None:
        view = self._views.get(message_id)
        if view is not None:
            view.complete(None)

    def close_all(self) -> None:
        for view in list(self._views.values()):
            view.complete(None)

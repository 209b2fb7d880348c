"""Hero point feature cog."""

from __future__ import annotations

import asyncio
import json
import logging

import discord
from discord import app_commands
from discord.ext import commands

from herokeeper.heropoints import (
    ALL_CHARACTERS,
    CandidateSelector,
    HandlerContext,
    HeroPointAwarder,
    HeroPointHandler,
    HeroPointMessages,
    TriggerState,
)
from herokeeper.models import Character

from ...core import DATA_DIR
from .adapters import DiscordNotifier, DiscordPresenter, GuildParticipants, WorkflowChannels
from .views import RosterView, build_roster_embed

logger = logging.getLogger(__name__)

ROSTER_TITLE = "【英雄點】"


def load_messages() -> HeroPointMessages:
    """讀取訊息模板，缺檔時使用預設英文"""
    try:
        with open(DATA_DIR / "hero_points.json", encoding="utf-8") as f:
            return HeroPointMessages.from_mapping(json.load(f).get("messages", {}))
    except FileNotFoundError:
        logger.warning("hero_points.json not found, using default messages")
        return HeroPointMessages()


class HeroPointsCog(commands.Cog):
    """英雄點計時與發放"""

    hero_points = app_commands.Group(
        name="heropoints",
        description="英雄點計時與發放",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.messages = load_messages()
        self.channels = WorkflowChannels(bot, bot.user_flags)  # type: ignore[attr-defined]
        self.presenter = DiscordPresenter(self.channels)
        self.notifier = DiscordNotifier(bot, self.channels)
        self.characters = bot.characters  # type: ignore[attr-defined]
        self.settings = bot.hero_point_settings  # type: ignore[attr-defined]

        self.selector = CandidateSelector(self.characters, GuildParticipants(bot))
        self.awarder = HeroPointAwarder(
            self.characters, self.settings, self.selector, self.notifier, self.messages
        )
        self.handler = HeroPointHandler(
            timer=bot.hero_point_timer,  # type: ignore[attr-defined]
            selector=self.selector,
            awarder=self.awarder,
            presenter=self.presenter,
            notifier=self.notifier,
            settings=self.settings,
            messages=self.messages,
        )
        self._workflow_tasks: set[asyncio.Task] = set()

    async def cog_unload(self) -> None:
        self.presenter.close_all()

    # ==================== Helpers ====================

    @staticmethod
    def _context(interaction: discord.Interaction) -> HandlerContext:
        assert interaction.guild_id is not None
        return HandlerContext(str(interaction.guild_id), str(interaction.user.id))

    async def _run_workflow(self, ctx: HandlerContext, state: TriggerState) -> None:
        try:
            await self.handler.hero_point_handler(ctx, state)
        except Exception:
            logger.exception(f"Hero point workflow failed for {ctx.user_id} in {ctx.campaign_id}")

    async def _open_workflow(self, interaction: discord.Interaction, state: TriggerState) -> None:
        ctx = self._context(interaction)
        if self.handler.is_open(ctx):
            await interaction.response.send_message("英雄點視窗已經開啟中", ephemeral=True)
            return

        await interaction.response.send_message("已開啟英雄點視窗", ephemeral=True)
        if interaction.channel_id is not None:
            await self.channels.remember(ctx, interaction.channel_id)

        task = asyncio.create_task(self._run_workflow(ctx, state))
        self._workflow_tasks.add(task)
        task.add_done_callback(self._workflow_tasks.discard)

    # ==================== Commands ====================

    @hero_points.command(name="start", description="開始新的一場：重設計時並發放英雄點")
    async def start(self, interaction: discord.Interaction):
        await self._open_workflow(interaction, TriggerState.SESSION_START)

    @hero_points.command(name="check", description="查看計時並發放英雄點")
    async def check(self, interaction: discord.Interaction):
        await self._open_workflow(interaction, TriggerState.MANUAL_CHECK)

    @hero_points.command(name="stop", description="停止英雄點計時")
    async def stop(self, interaction: discord.Interaction):
        ctx = self._context(interaction)
        await self.handler.stop_timer(ctx)
        await interaction.response.send_message(self.messages.timer_stopped, ephemeral=True)

    @hero_points.command(name="reset", description="將全隊英雄點重設為指定點數")
    @app_commands.describe(amount="點數")
    async def reset(self, interaction: discord.Interaction, amount: app_commands.Range[int, 0, 99]):
        await interaction.response.defer(ephemeral=True)
        ctx = self._context(interaction)
        if interaction.channel_id is not None:
            await self.channels.remember(ctx, interaction.channel_id)
        await self.handler.reset_hero_points(ctx, amount)
        await interaction.followup.send("完成", ephemeral=True)

    @hero_points.command(name="add", description="增加英雄點（未指定角色時為全隊）")
    @app_commands.describe(amount="點數", character="角色")
    async def add(
        self,
        interaction: discord.Interaction,
        amount: app_commands.Range[int, 1, 99],
        character: str | None = None,
    ):
        await interaction.response.defer(ephemeral=True)
        ctx = self._context(interaction)
        if interaction.channel_id is not None:
            await self.channels.remember(ctx, interaction.channel_id)
        if character is not None and await self.characters.get(ctx.campaign_id, character) is None:
            await interaction.followup.send("找不到這個角色", ephemeral=True)
            return
        await self.handler.add_hero_points(ctx, amount, character or ALL_CHARACTERS)
        await interaction.followup.send("完成", ephemeral=True)

    @add.autocomplete("character")
    async def character_autocomplete(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        if interaction.guild_id is None:
            return []
        heroes = await self.selector.heroes(str(interaction.guild_id))
        current = current.casefold()
        return [
            app_commands.Choice(name=c.name[:100], value=c.id)
            for c in heroes
            if current in c.name.casefold()
        ][:25]

    @hero_points.command(name="roster", description="查看並調整角色英雄點")
    async def roster(self, interaction: discord.Interaction):
        ctx = self._context(interaction)
        heroes = await self.selector.heroes(ctx.campaign_id)

        async def adjust(character_id: str, delta: int) -> list[Character]:
            await self.awarder.adjust_hero_points(ctx.campaign_id, character_id, delta)
            return await self.selector.heroes(ctx.campaign_id)

        settings = await self.settings.get(ctx.campaign_id)

        def render(characters: list[Character]) -> discord.Embed:
            return build_roster_embed(ROSTER_TITLE, characters, settings.max_hero_points)

        view = RosterView(heroes, adjust, render)
        await interaction.response.send_message(embed=render(heroes), view=view, ephemeral=True)

    # ==================== Listeners ====================

    @commands.Cog.listener()
    async def on_raw_message_delete(self, payload: discord.RawMessageDeleteEvent):
        self.presenter.message_deleted(payload.message_id)

"""Hero point feature UI components."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import discord

from herokeeper.heropoints import (
    ALL_CHARACTERS,
    NO_CHARACTER,
    NO_TIMER_BUTTON,
    TIMER_BUTTON,
    BulkAction,
    RosterCandidate,
    WorkflowResult,
    WorkflowSeed,
    render_track,
)
from herokeeper.heropoints.resolver import (
    ACTION_FIELD,
    AMOUNT_FIELD,
    CHARACTER_FIELD,
    MINUTES_FIELD,
)
from herokeeper.models import Character

from .constants import (
    ACTION_LABELS,
    HERO_POINT_COLOR,
    INSTRUCTIONS,
    MAX_AMOUNT_OPTIONS,
    MAX_CHARACTER_OPTIONS,
)


def build_workflow_embed(seed: WorkflowSeed) -> discord.Embed:
    """建立英雄點確認 Embed"""
    embed = discord.Embed(title=seed.title, description=INSTRUCTIONS, color=HERO_POINT_COLOR)
    embed.add_field(name="在線角色", value=str(len(seed.candidates)), inline=True)
    embed.add_field(name="英雄點上限", value=str(seed.max_hero_points), inline=True)
    embed.add_field(name="預設計時", value=f"{seed.timer_minutes} 分鐘", inline=True)
    return embed


def build_roster_embed(title: str, characters: list[Character], maximum: int) -> discord.Embed:
    """建立角色英雄點列表 Embed"""
    embed = discord.Embed(title=title, color=HERO_POINT_COLOR)
    if not characters:
        embed.description = "目前沒有可獲得英雄點的角色"
        return embed
    embed.description = "\n".join(
        f"**{c.name}** {render_track(c.hero_points, maximum)} ({c.hero_points}/{maximum})"
        for c in characters
    )
    return embed


class ActionSelect(discord.ui.Select["HeroPointView"]):
    def __init__(self) -> None:
        options = [
            discord.SelectOption(
                label=label, value=value, default=value == BulkAction.IGNORE.value
            )
            for value, label in ACTION_LABELS.items()
        ]
        super().__init__(placeholder="全隊動作", options=options, row=0)

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        self.view.fields[ACTION_FIELD] = self.values[0]
        await interaction.response.defer()


class AmountSelect(discord.ui.Select["HeroPointView"]):
    def __init__(self, maximum: int, default_amount: int) -> None:
        upper = min(maximum, MAX_AMOUNT_OPTIONS - 1)
        options = [
            discord.SelectOption(label=f"{n} 點", value=str(n), default=n == default_amount)
            for n in range(0, upper + 1)
        ]
        super().__init__(placeholder="點數", options=options, row=1)

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        self.view.fields[AMOUNT_FIELD] = self.values[0]
        await interaction.response.defer()


def visible_candidates(seed: WorkflowSeed) -> list[RosterCandidate]:
    """The candidates that fit in the select, always including the pre-filled pick."""
    shown = seed.candidates[:MAX_CHARACTER_OPTIONS]
    if any(c.id == seed.default_selection for c in shown):
        return shown
    for candidate in seed.candidates[MAX_CHARACTER_OPTIONS:]:
        if candidate.id == seed.default_selection:
            return shown[:-1] + [candidate]
    return shown


class CharacterSelect(discord.ui.Select["HeroPointView"]):
    def __init__(self, seed: WorkflowSeed) -> None:
        options = [
            discord.SelectOption(
                label=c.display_name[:100], value=c.id, default=c.id == seed.default_selection
            )
            for c in visible_candidates(seed)
        ]
        options.append(
            discord.SelectOption(
                label="全隊各 +1",
                value=ALL_CHARACTERS,
                default=seed.default_selection == ALL_CHARACTERS,
            )
        )
        options.append(
            discord.SelectOption(
                label="不額外給予",
                value=NO_CHARACTER,
                default=seed.default_selection == NO_CHARACTER,
            )
        )
        super().__init__(placeholder="額外 +1 英雄點", options=options, row=2)

    async def callback(self, interaction: discord.Interaction) -> None:
        assert self.view is not None
        self.view.fields[CHARACTER_FIELD] = self.values[0]
        await interaction.response.defer()


class TimerModal(discord.ui.Modal, title="開始計時"):
    """計時分鐘輸入表單"""

    minutes: discord.ui.TextInput[discord.ui.Modal] = discord.ui.TextInput(
        label="計時分鐘",
        required=True,
        max_length=4,
    )

    def __init__(self, view: HeroPointView):
        super().__init__()
        self.hero_view = view
        self.minutes.default = view.fields[MINUTES_FIELD]
        self.minutes.placeholder = f"0 - {view.seed.max_timer_minutes}"

    async def on_submit(self, interaction: discord.Interaction) -> None:
        self.hero_view.fields[MINUTES_FIELD] = self.minutes.value
        await interaction.response.defer()
        self.hero_view.complete(TIMER_BUTTON)


class HeroPointView(discord.ui.View):
    """英雄點確認視窗，只有開啟者可以操作"""

    def __init__(self, owner_id: int, seed: WorkflowSeed):
        super().__init__(timeout=None)
        self.owner_id = owner_id
        self.seed = seed
        self.fields: dict[str, str] = {
            ACTION_FIELD: BulkAction.IGNORE.value,
            AMOUNT_FIELD: str(seed.default_amount),
            CHARACTER_FIELD: seed.default_selection,
            MINUTES_FIELD: str(seed.timer_minutes),
        }
        self._result: asyncio.Future[WorkflowResult] = (
            asyncio.get_running_loop().create_future()
        )

        self.add_item(ActionSelect())
        self.add_item(AmountSelect(seed.max_hero_points, seed.default_amount))
        self.add_item(CharacterSelect(seed))

    async def interaction_check(self, interaction: discord.Interaction) -> bool:
        if interaction.user.id != self.owner_id:
            await interaction.response.send_message("只有開啟者可以操作", ephemeral=True)
            return False
        return True

    def complete(self, button: str | None) -> None:
        if not self._result.done():
            self._result.set_result(
                WorkflowResult(button=button, fields=dict(self.fields) if button else {})
            )
        self.stop()

    async def wait_for_result(self) -> WorkflowResult:
        return await self._result

    @discord.ui.button(label="開始計時", style=discord.ButtonStyle.primary, row=3)
    async def timer_btn(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await interaction.response.send_modal(TimerModal(self))

    @discord.ui.button(label="不計時", style=discord.ButtonStyle.secondary, row=3)
    async def no_timer_btn(
        self, interaction: discord.Interaction, button: discord.ui.Button
    ) -> None:
        await interaction.response.defer()
        self.complete(NO_TIMER_BUTTON)

    @discord.ui.button(label="關閉", style=discord.ButtonStyle.danger, row=3)
    async def close_btn(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await interaction.response.defer()
        self.complete(None)


class RosterView(discord.ui.View):
    """角色英雄點 +1 / -1"""

    def __init__(
        self,
        characters: list[Character],
        adjust: Callable[[str, int], Awaitable[list[Character]]],
        render: Callable[[list[Character]], discord.Embed],
    ):
        super().__init__(timeout=300)
        self._adjust = adjust
        self._render = render
        self.selected: str | None = None
        if characters:
            self.character_select.options = [
                discord.SelectOption(label=c.name[:100], value=c.id)
                for c in characters[:25]
            ]
        else:
            self.clear_items()

    @discord.ui.select(placeholder="選擇角色", options=[discord.SelectOption(label="-")], row=0)
    async def character_select(
        self, interaction: discord.Interaction, select: discord.ui.Select
    ) -> None:
        self.selected = select.values[0]
        await interaction.response.defer()

    async def _step(self, interaction: discord.Interaction, delta: int) -> None:
        if self.selected is None:
            await interaction.response.send_message("請先選擇角色", ephemeral=True)
            return
        characters = await self._adjust(self.selected, delta)
        await interaction.response.edit_message(embed=self._render(characters), view=self)

    @discord.ui.button(label="+1", style=discord.ButtonStyle.success, row=1)
    async def plus_btn(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self._step(interaction, 1)

    @discord.ui.button(label="-1", style=discord.ButtonStyle.secondary, row=1)
    async def minus_btn(self, interaction: discord.Interaction, button: discord.ui.Button) -> None:
        await self._step(interaction, -1)

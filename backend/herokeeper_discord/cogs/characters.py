"""
角色名冊 Cog
管理戰役中可以獲得英雄點的角色
"""

import logging

import discord
from discord import app_commands
from discord.ext import commands

from herokeeper.heropoints import is_hero
from herokeeper.repositories import CharacterRepository

logger = logging.getLogger(__name__)

ACTOR_TYPES = ["character", "npc", "familiar", "hazard"]
ALLIANCES = ["party", "neutral", "opposition"]


class CharactersCog(commands.Cog):
    """角色名冊管理"""

    character = app_commands.Group(
        name="character",
        description="管理戰役角色",
        guild_only=True,
        default_permissions=discord.Permissions(manage_guild=True),
    )

    def __init__(self, bot: commands.Bot):
        self.bot = bot
        self.characters: CharacterRepository = bot.characters  # type: ignore[attr-defined]

    async def _character_choices(
        self, interaction: discord.Interaction, current: str
    ) -> list[app_commands.Choice[str]]:
        if interaction.guild_id is None:
            return []
        roster = await self.characters.list_for_campaign(str(interaction.guild_id))
        current = current.casefold()
        return [
            app_commands.Choice(name=c.name[:100], value=c.id)
            for c in roster
            if current in c.name.casefold()
        ][:25]

    @character.command(name="add", description="新增角色")
    @app_commands.describe(
        name="角色名稱",
        player="遊玩此角色的玩家",
        actor_type="角色類型",
        alliance="陣營",
        traits="特徵，以逗號分隔（例如 minion, eidolon）",
        player_owned="是否為玩家角色",
    )
    @app_commands.choices(
        actor_type=[app_commands.Choice(name=t, value=t) for t in ACTOR_TYPES],
        alliance=[app_commands.Choice(name=a, value=a) for a in ALLIANCES],
    )
    async def add(
        self,
        interaction: discord.Interaction,
        name: app_commands.Range[str, 1, 100],
        player: discord.Member | None = None,
        actor_type: str = "character",
        alliance: str = "party",
        traits: str | None = None,
        player_owned: bool = True,
    ):
        assert interaction.guild_id is not None
        try:
            created = await self.characters.create(
                str(interaction.guild_id),
                name,
                actor_type=actor_type,
                alliance=alliance,
                traits=traits.split(",") if traits else None,
                player_owned=player_owned,
                assigned_user_id=str(player.id) if player else None,
            )
        except ValueError:
            await interaction.response.send_message(f"角色「{name}」已經存在", ephemeral=True)
            return

        logger.info(f"角色新增 | 伺服器: {interaction.guild_id} | {created.name} ({created.id})")
        note = "" if is_hero(created) else "（此角色不會獲得英雄點）"
        await interaction.response.send_message(f"已新增角色 **{created.name}**{note}", ephemeral=True)

    @character.command(name="assign", description="指定遊玩角色的玩家")
    @app_commands.describe(character="角色", player="玩家（留空則取消指定）")
    async def assign(
        self,
        interaction: discord.Interaction,
        character: str,
        player: discord.Member | None = None,
    ):
        assert interaction.guild_id is not None
        updated = await self.characters.assign(
            str(interaction.guild_id), character, str(player.id) if player else None
        )
        if updated is None:
            await interaction.response.send_message("找不到這個角色", ephemeral=True)
            return
        who = player.mention if player else "無"
        await interaction.response.send_message(
            f"**{updated.name}** 的玩家：{who}", ephemeral=True
        )

    @character.command(name="remove", description="刪除角色")
    @app_commands.describe(character="角色")
    async def remove(self, interaction: discord.Interaction, character: str):
        assert interaction.guild_id is not None
        if await self.characters.delete(str(interaction.guild_id), character):
            await interaction.response.send_message("已刪除角色", ephemeral=True)
        else:
            await interaction.response.send_message("找不到這個角色", ephemeral=True)

    @character.command(name="list", description="列出戰役角色")
    async def list_characters(self, interaction: discord.Interaction):
        assert interaction.guild_id is not None
        roster = await self.characters.list_for_campaign(str(interaction.guild_id))
        if not roster:
            await interaction.response.send_message("目前沒有任何角色", ephemeral=True)
            return

        lines = []
        for c in roster:
            player = f"<@{c.assigned_user_id}>" if c.assigned_user_id else "-"
            tags = ", ".join(c.traits) if c.traits else ""
            marker = "★" if is_hero(c) else "·"
            lines.append(
                f"{marker} **{c.name}** [{c.actor_type}/{c.alliance or '-'}] {player}"
                + (f" ({tags})" if tags else "")
            )
        embed = discord.Embed(title="角色名冊", description="\n".join(lines))
        embed.set_footer(text="★ 可獲得英雄點")
        await interaction.response.send_message(embed=embed, ephemeral=True)

    @assign.autocomplete("character")
    async def assign_autocomplete(self, interaction: discord.Interaction, current: str):
        return await self._character_choices(interaction, current)

    @remove.autocomplete("character")
    async def remove_autocomplete(self, interaction: discord.Interaction, current: str):
        return await self._character_choices(interaction, current)


async def setup(bot: commands.Bot):
    """載入 Cog"""
    await bot.add_cog(CharactersCog(bot))

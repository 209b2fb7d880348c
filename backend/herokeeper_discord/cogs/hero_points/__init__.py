"""Hero point feature module."""

from discord.ext import commands

from .cog import HeroPointsCog

__all__ = ["HeroPointsCog", "setup"]


async def setup(bot: commands.Bot) -> None:
    """Extension entry point."""
    await bot.add_cog(HeroPointsCog(bot))

"""Discord bot configuration"""

import logging
import os
from pathlib import Path

import discord

logger = logging.getLogger(__name__)

BOT_NAME = "HeroKeeper"
BOT_VERSION = "1.0.0"

DISCORD_DIR = Path(__file__).resolve().parent.parent
DATA_DIR = Path(os.getenv("HEROKEEPER_DATA_DIR", str(DISCORD_DIR / "data")))


def _int_env(name: str, default: int) -> int:
    raw = os.getenv(name, "")
    try:
        return int(raw) if raw else default
    except ValueError:
        logger.warning(f"{name}={raw!r} is not an integer, using {default}")
        return default


class BotConfig:
    TOKEN: str = os.getenv("DISCORD_BOT_TOKEN", "")
    DATABASE_URL: str = os.getenv("DATABASE_URL", "")
    GUILD_ID: str = os.getenv("DISCORD_GUILD_ID", "")

    STATUS: str = os.getenv("DISCORD_STATUS", "")
    ACTIVITY_TYPE: str = os.getenv("DISCORD_ACTIVITY_TYPE", "")
    ACTIVITY_NAME: str = os.getenv("DISCORD_ACTIVITY_NAME", "")

    HEALTH_PORT: int = _int_env("PORT", 8080)

    # Used for campaigns that have no hero_point_settings row yet
    HERO_POINT_DEFAULT_TIMEOUT_MINUTES: int = _int_env("HERO_POINT_DEFAULT_TIMEOUT_MINUTES", 60)
    HERO_POINT_MAX: int = _int_env("HERO_POINT_MAX", 3)

    @classmethod
    def reload(cls) -> None:
        """Re-read the environment (after load_dotenv)."""
        cls.TOKEN = os.getenv("DISCORD_BOT_TOKEN", "")
        cls.DATABASE_URL = os.getenv("DATABASE_URL", "")
        cls.GUILD_ID = os.getenv("DISCORD_GUILD_ID", "")
        cls.STATUS = os.getenv("DISCORD_STATUS", "")
        cls.ACTIVITY_TYPE = os.getenv("DISCORD_ACTIVITY_TYPE", "")
        cls.ACTIVITY_NAME = os.getenv("DISCORD_ACTIVITY_NAME", "")
        cls.HEALTH_PORT = _int_env("PORT", 8080)
        cls.HERO_POINT_DEFAULT_TIMEOUT_MINUTES = _int_env("HERO_POINT_DEFAULT_TIMEOUT_MINUTES", 60)
        cls.HERO_POINT_MAX = _int_env("HERO_POINT_MAX", 3)

    @classmethod
    def get_status(cls) -> discord.Status:
        status_map = {
            "online": discord.Status.online,
            "idle": discord.Status.idle,
            "dnd": discord.Status.dnd,
            "invisible": discord.Status.invisible,
        }
        return status_map.get(cls.STATUS.lower(), discord.Status.online)

    @classmethod
    def get_activity(cls) -> discord.Activity | None:
        """Activity from DISCORD_ACTIVITY_TYPE / DISCORD_ACTIVITY_NAME.

        Supports: playing, listening, watching, competing
        """
        if not cls.ACTIVITY_NAME:
            return None

        activity_map = {
            "playing": discord.ActivityType.playing,
            "listening": discord.ActivityType.listening,
            "watching": discord.ActivityType.watching,
            "competing": discord.ActivityType.competing,
        }
        activity_type = activity_map.get(cls.ACTIVITY_TYPE.lower(), discord.ActivityType.playing)
        return discord.Activity(type=activity_type, name=cls.ACTIVITY_NAME)

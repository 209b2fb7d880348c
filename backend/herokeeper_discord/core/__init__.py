"""Core modules for the Discord bot."""

from .config import BOT_NAME, BOT_VERSION, DATA_DIR, DISCORD_DIR, BotConfig
from .health_server import HealthCheckServer
from .logging import setup_logging

__all__ = [
    # Config
    "BotConfig",
    "BOT_NAME",
    "BOT_VERSION",
    # Paths
    "DISCORD_DIR",
    "DATA_DIR",
    # Services
    "HealthCheckServer",
    # Logging
    "setup_logging",
]

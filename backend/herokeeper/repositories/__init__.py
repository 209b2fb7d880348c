"""Repository layer for HeroKeeper services."""

from .characters import CharacterRepository
from .hero_point_settings import HeroPointSettingsRepository
from .user_flags import UserFlagRepository

__all__ = [
    "CharacterRepository",
    "HeroPointSettingsRepository",
    "UserFlagRepository",
]

"""Shared data models for HeroKeeper services."""

from .hero_points import Character, HeroPointSettings, TimerRecord

__all__ = [
    "Character",
    "HeroPointSettings",
    "TimerRecord",
]

"""Data models for hero point tables and the per-user countdown."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime


@dataclass
class Character:
    """A roster entry of a campaign (one row of ``characters``)."""

    id: str
    campaign_id: str
    name: str
    actor_type: str = "character"
    alliance: str | None = "party"
    traits: list[str] = field(default_factory=list)
    player_owned: bool = True
    assigned_user_id: str | None = None
    hero_points: int = 0
    created_at: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class HeroPointSettings:
    """Campaign-level hero point configuration."""

    campaign_id: str
    default_timeout_minutes: int = 60
    max_hero_points: int = 3
    updated_at: datetime | None = None


@dataclass
class TimerRecord:
    """Stored countdown of one user.

    ``start_time`` is epoch milliseconds. ``scheduled_fire`` only lives in
    memory and is gone after a restart.
    """

    start_time: int | None
    remaining_minutes: int | None
    scheduled_fire: asyncio.Handle | None = None

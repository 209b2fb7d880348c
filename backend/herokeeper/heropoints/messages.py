"""Text of hero point notifications and the workflow title."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, fields, replace
from datetime import datetime

from .timer import ONE_MINUTE_IN_MS

ICON_FILLED = "●"
ICON_EMPTY = "○"


def render_track(value: int, maximum: int) -> str:
    """Hero point row, e.g. ``●●○`` for 2 of 3."""
    value = max(0, min(value, maximum))
    return ICON_FILLED * value + ICON_EMPTY * (maximum - value)


@dataclass(frozen=True)
class HeroPointMessages:
    """Templates for everything the workflow publishes.

    Placeholders: ``{minutes}``, ``{time}`` (HH:MM), ``{timestamp}`` (unix
    seconds), ``{heroPoints}`` and ``{name}``.
    """

    title: str = "Hero Point Handler"
    minutes_left: str = "{minutes} minutes left"
    no_running_timer: str = "no running timer"
    will_be_reset_in: str = "Hero points will be reset in {minutes} minutes (at {time})."
    timer_stopped: str = "Hero point timer stopped."
    reset_to_for_all: str = "Everyone's hero points were reset to {heroPoints}."
    added_to_for_all: str = "Everyone got {heroPoints} hero point(s)."
    added_for: str = "{name} got {heroPoints} hero point(s)!"

    @classmethod
    def from_mapping(cls, data: Mapping[str, str]) -> HeroPointMessages:
        """Defaults overridden by any known keys of *data*."""
        known = {f.name for f in fields(cls)}
        return replace(cls(), **{k: str(v) for k, v in data.items() if k in known})

    def workflow_title(self, remaining_minutes: int) -> str:
        detail = (
            self.minutes_left.format(minutes=remaining_minutes)
            if remaining_minutes > 0
            else self.no_running_timer
        )
        return f"{self.title} ({detail})"

    def remaining_time(self, remaining_minutes: int, now_ms: int) -> str:
        if remaining_minutes <= 0:
            return self.timer_stopped
        fire_at_ms = now_ms + remaining_minutes * ONE_MINUTE_IN_MS
        return self.will_be_reset_in.format(
            minutes=remaining_minutes,
            time=datetime.fromtimestamp(fire_at_ms / 1000).strftime("%H:%M"),
            timestamp=fire_at_ms // 1000,
        )

    def reset_for_all(self, amount: int) -> str:
        return self.reset_to_for_all.format(heroPoints=amount)

    def added_for_all(self, amount: int) -> str:
        return self.added_to_for_all.format(heroPoints=amount)

    def added_for_character(self, name: str, amount: int = 1) -> str:
        return self.added_for.format(name=name, heroPoints=amount)

"""Value types and collaborator interfaces of the hero point workflow."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Collection, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Protocol

from herokeeper.models import Character, HeroPointSettings

# Single award targets besides a character id
ALL_CHARACTERS = "ALL"
NO_CHARACTER = "NONE"


class TriggerState(Enum):
    """Why the workflow was opened."""

    SESSION_START = "session_start"
    MANUAL_CHECK = "manual_check"
    TIMER_EXPIRED = "timer_expired"


class BulkAction(str, Enum):
    RESET = "RESET"
    ADD = "ADD"
    IGNORE = "IGNORE"


@dataclass(frozen=True)
class HandlerContext:
    """The user a countdown belongs to, inside one campaign."""

    campaign_id: str
    user_id: str


@dataclass(frozen=True)
class RosterCandidate:
    id: str
    display_name: str


@dataclass(frozen=True)
class AwardAction:
    """Bulk action applied to the whole roster."""

    kind: BulkAction
    amount: int = 0

    @classmethod
    def reset(cls, amount: int) -> AwardAction:
        return cls(BulkAction.RESET, amount)

    @classmethod
    def add(cls, amount: int) -> AwardAction:
        return cls(BulkAction.ADD, amount)

    @classmethod
    def ignore(cls) -> AwardAction:
        return cls(BulkAction.IGNORE, 0)


@dataclass(frozen=True)
class Resolution:
    """Normalized outcome of a confirmation workflow."""

    action: AwardAction
    single_award: str
    new_timer_minutes: int


@dataclass(frozen=True)
class WorkflowSeed:
    """Everything the confirmation workflow is pre-filled with."""

    state: TriggerState
    title: str
    remaining_minutes: int
    timer_minutes: int
    candidates: list[RosterCandidate]
    default_selection: str
    max_hero_points: int
    max_timer_minutes: int
    default_amount: int = 1


@dataclass(frozen=True)
class WorkflowResult:
    """Raw completion of the confirmation workflow.

    ``button`` is the pressed button name, or None when the workflow was
    closed without one.
    """

    button: str | None
    fields: Mapping[str, str] = field(default_factory=dict)


ExpireCallback = Callable[[HandlerContext], Awaitable[Any]]
Scheduler = Callable[[float, Callable[[], None]], asyncio.Handle]


class FlagStore(Protocol):
    async def get_flags(self, ctx: HandlerContext, prefix: str) -> dict[str, Any]: ...

    async def set_flags(self, ctx: HandlerContext, values: Mapping[str, Any]) -> None: ...

    async def unset_flags(self, ctx: HandlerContext, *keys: str) -> None: ...


class SettingsSource(Protocol):
    async def get(self, campaign_id: str) -> HeroPointSettings: ...


class RosterSource(Protocol):
    async def list_for_campaign(self, campaign_id: str) -> list[Character]: ...

    async def get(self, campaign_id: str, character_id: str) -> Character | None: ...

    async def set_hero_points(
        self, campaign_id: str, character_id: str, value: int
    ) -> Character | None: ...

    async def add_hero_points(
        self, campaign_id: str, character_id: str, amount: int, maximum: int
    ) -> Character | None: ...

    async def step_hero_points(
        self, campaign_id: str, character_id: str, delta: int, maximum: int
    ) -> Character | None: ...


class ParticipantSource(Protocol):
    def active_user_ids(self, campaign_id: str) -> Collection[str]: ...


class ConfirmationPresenter(Protocol):
    async def present(self, ctx: HandlerContext, seed: WorkflowSeed) -> WorkflowResult: ...


class Notifier(Protocol):
    async def publish(
        self,
        ctx: HandlerContext,
        message: str,
        whisper_to: list[str] | None = None,
    ) -> None: ...

"""Hero point countdown and award workflow."""

from .awards import HeroPointAwarder
from .handler import HeroPointHandler
from .messages import HeroPointMessages, render_track
from .resolver import NO_TIMER_BUTTON, TIMER_BUTTON, resolve_response
from .selector import CandidateSelector, is_hero
from .timer import HeroPointTimer, remaining_minutes
from .types import (
    ALL_CHARACTERS,
    NO_CHARACTER,
    AwardAction,
    BulkAction,
    HandlerContext,
    Resolution,
    RosterCandidate,
    TriggerState,
    WorkflowResult,
    WorkflowSeed,
)

__all__ = [
    "ALL_CHARACTERS",
    "NO_CHARACTER",
    "NO_TIMER_BUTTON",
    "TIMER_BUTTON",
    "AwardAction",
    "BulkAction",
    "CandidateSelector",
    "HandlerContext",
    "HeroPointAwarder",
    "HeroPointHandler",
    "HeroPointMessages",
    "HeroPointTimer",
    "Resolution",
    "RosterCandidate",
    "TriggerState",
    "WorkflowResult",
    "WorkflowSeed",
    "is_hero",
    "remaining_minutes",
    "render_track",
    "resolve_response",
]

"""Turn raw confirmation form fields into a validated award + timer outcome."""

from __future__ import annotations

import logging
import re
from collections.abc import Mapping

from .timer import clamp
from .types import (
    ALL_CHARACTERS,
    NO_CHARACTER,
    AwardAction,
    BulkAction,
    Resolution,
    WorkflowResult,
)

logger = logging.getLogger(__name__)

# Form field names
ACTION_FIELD = "sessionStart"
AMOUNT_FIELD = "heropoints"
CHARACTER_FIELD = "characters"
MINUTES_FIELD = "timerText"

# Completion buttons
TIMER_BUTTON = "timer"
NO_TIMER_BUTTON = "noTimer"


_LEADING_INT = re.compile(r"\s*([+-]?[0-9]+)")


def parse_int(value: object) -> int | None:
    """Read the leading ASCII integer of an operator-typed value.

    ``"1.5"`` reads as 1 and ``"12 min"`` as 12. None when there is no leading integer.
    """
    if value is None:
        return None
    match = _LEADING_INT.match(str(value))
    if match is None:
        return None
    return int(match.group(1))


def _resolve_action(fields: Mapping[str, str]) -> AwardAction:
    raw = str(fields.get(ACTION_FIELD) or BulkAction.IGNORE.value).upper()
    try:
        kind = BulkAction(raw)
    except ValueError:
        logger.warning(f"Unknown hero point action {raw!r}, ignoring")
        return AwardAction.ignore()

    if kind is BulkAction.IGNORE:
        return AwardAction.ignore()

    amount = parse_int(fields.get(AMOUNT_FIELD))
    if amount is None:
        logger.warning(
            f"Hero point amount {fields.get(AMOUNT_FIELD)!r} is not a number, "
            f"skipping {kind.value}"
        )
        return AwardAction.ignore()
    return AwardAction(kind, max(amount, 0))


def _resolve_single_award(fields: Mapping[str, str]) -> str:
    raw = str(fields.get(CHARACTER_FIELD) or "").strip()
    if not raw or raw.upper() == NO_CHARACTER:
        return NO_CHARACTER
    if raw.upper() == ALL_CHARACTERS:
        return ALL_CHARACTERS
    return raw


def resolve_response(result: WorkflowResult, *, max_minutes: int) -> Resolution:
    """Normalize a workflow completion.

    Closing without a button awards nothing and asks for no timer. With the
    timer button, the typed minutes are clamped to ``[0, max_minutes]``; a
    non-numeric value means no timer.
    """
    if result.button is None:
        return Resolution(AwardAction.ignore(), NO_CHARACTER, 0)

    fields = result.fields
    minutes = 0
    if result.button == TIMER_BUTTON:
        parsed = parse_int(fields.get(MINUTES_FIELD))
        if parsed is None:
            logger.warning(f"Timer value {fields.get(MINUTES_FIELD)!r} is not a number")
        else:
            minutes = clamp(parsed, 0, max(max_minutes, 0))

    return Resolution(
        action=_resolve_action(fields),
        single_award=_resolve_single_award(fields),
        new_timer_minutes=minutes,
    )

"""Roster filtering and the pre-filled single award pick."""

from __future__ import annotations

import logging
import random

from herokeeper.models import Character

from .types import (
    NO_CHARACTER,
    ParticipantSource,
    RosterCandidate,
    RosterSource,
    TriggerState,
)

logger = logging.getLogger(__name__)

EXCLUDED_TRAITS = ("minion", "eidolon")
PARTY_ALLIANCE = "party"


def is_hero(character: Character) -> bool:
    """Player-owned creature without a disqualifying trait."""
    if not character.player_owned or character.actor_type != "character":
        return False
    traits = ",".join(character.traits).lower()
    return not any(excluded in traits for excluded in EXCLUDED_TRAITS)


class CandidateSelector:
    def __init__(
        self,
        roster: RosterSource,
        participants: ParticipantSource,
        rng: random.Random | None = None,
    ) -> None:
        self.roster = roster
        self.participants = participants
        self.rng = rng or random.SystemRandom()

    async def heroes(self, campaign_id: str) -> list[Character]:
        """Every eligible character, whether or not its player is around."""
        characters = await self.roster.list_for_campaign(campaign_id)
        return [c for c in characters if is_hero(c)]

    async def candidates(self, campaign_id: str) -> list[RosterCandidate]:
        """Party heroes currently played by an active participant."""
        active = set(self.participants.active_user_ids(campaign_id))
        return [
            RosterCandidate(id=c.id, display_name=c.name)
            for c in await self.heroes(campaign_id)
            if c.alliance == PARTY_ALLIANCE and c.assigned_user_id in active
        ]

    def default_selection(
        self, state: TriggerState, candidates: list[RosterCandidate]
    ) -> str:
        if state is TriggerState.TIMER_EXPIRED and candidates:
            pick = candidates[self.rng.randrange(len(candidates))]
            logger.debug(f"Random hero point pick: {pick.display_name}")
            return pick.id
        return NO_CHARACTER

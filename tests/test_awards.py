import asyncio

import pytest
from fakes import Notifier, Participants, Roster, Settings, character

from herokeeper.heropoints import (
    ALL_CHARACTERS,
    NO_CHARACTER,
    AwardAction,
    CandidateSelector,
    HandlerContext,
    HeroPointAwarder,
    HeroPointMessages,
    Resolution,
)

CTX = HandlerContext("guild", "gm")


def make_awarder(*characters, maximum=3):
    roster = Roster(*characters)
    notifier = Notifier()
    awarder = HeroPointAwarder(
        roster,
        Settings(max_hero_points=maximum),
        CandidateSelector(roster, Participants()),
        notifier,
        HeroPointMessages(),
    )
    return awarder, roster, notifier


class TestResetHeroPoints:
    def test_sets_every_hero_including_inactive(self):
        awarder, roster, _ = make_awarder(
            character("a", hero_points=3),
            character("b", user_id="away"),
            character("npc", actor_type="npc", hero_points=2),
        )

        asyncio.run(awarder.reset_hero_points("guild", 1))

        assert roster.points("a") == 1
        assert roster.points("b") == 1
        assert roster.points("npc") == 2

    def test_capped_at_maximum(self):
        awarder, roster, _ = make_awarder(character("a"), maximum=3)
        asyncio.run(awarder.reset_hero_points("guild", 10))
        assert roster.points("a") == 3


class TestAddHeroPoints:
    @pytest.mark.parametrize("amount", [1, 2, 5, 100])
    def test_never_exceeds_maximum(self, amount):
        awarder, roster, _ = make_awarder(
            character("a", hero_points=0), character("b", hero_points=2), maximum=3
        )

        asyncio.run(awarder.add_hero_points("guild", amount, ALL_CHARACTERS))

        assert roster.points("a") == min(amount, 3)
        assert roster.points("b") == min(2 + amount, 3)

    def test_single_target(self):
        awarder, roster, _ = make_awarder(character("a"), character("b"))

        updated = asyncio.run(awarder.add_hero_points("guild", 1, "b"))

        assert [c.id for c in updated] == ["b"]
        assert roster.points("a") == 0
        assert roster.points("b") == 1

    def test_none_and_unknown_targets_change_nothing(self):
        awarder, roster, _ = make_awarder(character("a"))

        asyncio.run(awarder.add_hero_points("guild", 1, NO_CHARACTER))
        asyncio.run(awarder.add_hero_points("guild", 1, "ghost"))

        assert roster.writes == []


class TestAdjustHeroPoints:
    def test_steps_within_bounds(self):
        awarder, roster, _ = make_awarder(character("a", hero_points=1))

        asyncio.run(awarder.adjust_hero_points("guild", "a", 1))
        assert roster.points("a") == 2
        asyncio.run(awarder.adjust_hero_points("guild", "a", -1))
        assert roster.points("a") == 1

    def test_noop_at_bounds(self):
        awarder, roster, _ = make_awarder(
            character("full", hero_points=3), character("empty", hero_points=0)
        )

        asyncio.run(awarder.adjust_hero_points("guild", "full", 1))
        asyncio.run(awarder.adjust_hero_points("guild", "empty", -1))

        assert roster.writes == []


class TestApply:
    def test_bulk_then_single_award(self):
        awarder, roster, notifier = make_awarder(character("a"), character("b"))

        asyncio.run(awarder.apply(CTX, Resolution(AwardAction.add(1), "b", 0)))

        assert roster.points("a") == 1
        assert roster.points("b") == 2
        assert notifier.public == [
            "Everyone got 1 hero point(s).",
            "B got 1 hero point(s)!",
        ]

    def test_ignore_with_all_gives_everyone_one(self):
        awarder, roster, notifier = make_awarder(character("a"), character("b", hero_points=3))

        asyncio.run(awarder.apply(CTX, Resolution(AwardAction.ignore(), ALL_CHARACTERS, 0)))

        assert roster.points("a") == 1
        assert roster.points("b") == 3
        assert notifier.public == ["Everyone got 1 hero point(s)."]

    def test_ignore_with_none_publishes_nothing(self):
        awarder, roster, notifier = make_awarder(character("a"))

        asyncio.run(awarder.apply(CTX, Resolution(AwardAction.ignore(), NO_CHARACTER, 0)))

        assert roster.writes == []
        assert notifier.messages == []

    def test_reset_announces(self):
        awarder, roster, notifier = make_awarder(character("a", hero_points=3))

        asyncio.run(awarder.apply(CTX, Resolution(AwardAction.reset(1), NO_CHARACTER, 0)))

        assert roster.points("a") == 1
        assert notifier.public == ["Everyone's hero points were reset to 1."]


class DelayedRoster(Roster):
    """Every call yields to the event loop before it touches the roster."""

    async def get(self, campaign_id, character_id):
        await asyncio.sleep(0)
        return await super().get(campaign_id, character_id)

    async def set_hero_points(self, campaign_id, character_id, value):
        await asyncio.sleep(0)
        return await super().set_hero_points(campaign_id, character_id, value)

    async def add_hero_points(self, campaign_id, character_id, amount, maximum):
        await asyncio.sleep(0)
        return await super().add_hero_points(campaign_id, character_id, amount, maximum)

    async def step_hero_points(self, campaign_id, character_id, delta, maximum):
        await asyncio.sleep(0)
        return await super().step_hero_points(campaign_id, character_id, delta, maximum)


class TestConcurrentAwards:
    def make(self, *characters, maximum=3):
        roster = DelayedRoster(*characters)
        awarder = HeroPointAwarder(
            roster,
            Settings(max_hero_points=maximum),
            CandidateSelector(roster, Participants()),
            Notifier(),
        )
        return awarder, roster

    def test_parallel_adds_both_land(self):
        awarder, roster = self.make(character("a"))

        async def scenario():
            await asyncio.gather(
                awarder.add_hero_points("guild", 1, "a"),
                awarder.add_hero_points("guild", 1, "a"),
            )

        asyncio.run(scenario())

        assert roster.points("a") == 2

    def test_parallel_adds_stop_at_maximum(self):
        awarder, roster = self.make(character("a", hero_points=2))

        async def scenario():
            await asyncio.gather(
                awarder.add_hero_points("guild", 1, "a"),
                awarder.add_hero_points("guild", 1, "a"),
            )

        asyncio.run(scenario())

        assert roster.points("a") == 3

    def test_roster_button_during_workflow_award(self):
        awarder, roster = self.make(character("a"), character("b"))

        async def scenario():
            await asyncio.gather(
                awarder.apply(CTX, Resolution(AwardAction.add(1), "a", 0)),
                awarder.adjust_hero_points("guild", "a", 1),
            )

        asyncio.run(scenario())

        assert roster.points("a") == 3
        assert roster.points("b") == 1

    def test_parallel_steps_respect_maximum(self):
        awarder, roster = self.make(character("a", hero_points=2))

        async def scenario():
            return await asyncio.gather(
                awarder.adjust_hero_points("guild", "a", 1),
                awarder.adjust_hero_points("guild", "a", 1),
            )

        results = asyncio.run(scenario())

        assert roster.points("a") == 3
        assert [c.hero_points for c in results] == [3, 3]

import asyncio
import json
from contextlib import asynccontextmanager
from datetime import datetime

import asyncpg
import pytest

from herokeeper.heropoints import HandlerContext
from herokeeper.migrations import MigrationRunner
from herokeeper.pg_listener import HERO_POINT_CHANGE_CHANNEL, cache_invalidator
from herokeeper.repositories import (
    CharacterRepository,
    HeroPointSettingsRepository,
    UserFlagRepository,
)

CTX = HandlerContext("guild", "gm")
CHARACTER_ID = "3f1c2a9e-5b7d-4c1e-9a0f-1234567890ab"


class FakeConnection:
    def __init__(self, pool):
        self.pool = pool

    async def fetch(self, query, *args):
        self.pool.calls.append(("fetch", query, args))
        return self.pool.next_result([])

    async def fetchrow(self, query, *args):
        self.pool.calls.append(("fetchrow", query, args))
        result = self.pool.next_result(None)
        if isinstance(result, Exception):
            raise result
        return result

    async def execute(self, query, *args):
        self.pool.calls.append(("execute", query, args))
        return self.pool.next_result("OK")

    async def executemany(self, query, args):
        self.pool.calls.append(("executemany", query, args))

    @asynccontextmanager
    async def transaction(self):
        yield


class FakePool:
    def __init__(self, *results):
        self.results = list(results)
        self.calls = []

    def next_result(self, default):
        return self.results.pop(0) if self.results else default

    @asynccontextmanager
    async def acquire(self, timeout=None):
        yield FakeConnection(self)


def roster_change(campaign_id):
    return json.dumps({"table": "characters", "campaign_id": campaign_id})


def character_row(name="Kyra", **overrides):
    row = {
        "id": CHARACTER_ID,
        "campaign_id": "guild",
        "name": name,
        "actor_type": "character",
        "alliance": "party",
        "traits": ["human"],
        "player_owned": True,
        "assigned_user_id": "u1",
        "hero_points": 1,
        "created_at": datetime(2024, 1, 1),
        "updated_at": datetime(2024, 1, 1),
    }
    row.update(overrides)
    return row


class TestUserFlagRepository:
    def test_get_flags_decodes_json(self):
        pool = FakePool(
            [
                {"flag_key": "heroPointHandler.startTime", "value": "1700000000000"},
                {"flag_key": "heroPointHandler.remainingMinutes", "value": 30},
            ]
        )

        flags = asyncio.run(UserFlagRepository(pool).get_flags(CTX, "heroPointHandler"))

        assert flags == {
            "heroPointHandler.startTime": 1700000000000,
            "heroPointHandler.remainingMinutes": 30,
        }
        assert pool.calls[0][2] == ("guild", "gm", "heroPointHandler")

    def test_set_flags_upserts_every_key(self):
        pool = FakePool()

        asyncio.run(UserFlagRepository(pool).set_flags(CTX, {"a": 1, "b": {"x": True}}))

        kind, _, rows = pool.calls[0]
        assert kind == "executemany"
        assert rows == [
            ("guild", "gm", "a", json.dumps(1)),
            ("guild", "gm", "b", json.dumps({"x": True})),
        ]

    def test_unset_flags(self):
        pool = FakePool()
        asyncio.run(UserFlagRepository(pool).unset_flags(CTX, "a", "b"))
        assert pool.calls[0][2] == ("guild", "gm", ["a", "b"])

    def test_list_contexts(self):
        pool = FakePool([{"campaign_id": "g1", "user_id": "u1"}])
        contexts = asyncio.run(UserFlagRepository(pool).list_contexts("k"))
        assert contexts == [HandlerContext("g1", "u1")]


class TestCharacterRepository:
    def test_roster_is_cached(self):
        pool = FakePool([character_row()])
        repo = CharacterRepository(pool)

        async def scenario():
            first = await repo.list_for_campaign("guild")
            second = await repo.get("guild", CHARACTER_ID)
            by_name = await repo.get_by_name("guild", " kyra ")
            return first, second, by_name

        first, second, by_name = asyncio.run(scenario())

        assert [c.name for c in first] == ["Kyra"]
        assert second == first[0]
        assert by_name == first[0]
        assert len(pool.calls) == 1

    def test_writes_invalidate_the_roster(self):
        pool = FakePool([character_row()], character_row(hero_points=2), [character_row()])
        repo = CharacterRepository(pool)

        async def scenario():
            await repo.list_for_campaign("guild")
            updated = await repo.set_hero_points("guild", CHARACTER_ID, 2)
            await repo.list_for_campaign("guild")
            return updated

        updated = asyncio.run(scenario())

        assert updated.hero_points == 2
        assert [call[0] for call in pool.calls] == ["fetch", "fetchrow", "fetch"]

    def test_add_hero_points_increments_in_one_statement(self):
        pool = FakePool(character_row(hero_points=3))

        updated = asyncio.run(
            CharacterRepository(pool).add_hero_points("guild", CHARACTER_ID, 2, 3)
        )

        kind, query, args = pool.calls[0]
        assert len(pool.calls) == 1
        assert kind == "fetchrow"
        assert "hero_points + $3" in query
        assert args == ("guild", CHARACTER_ID, 2, 3)
        assert updated.hero_points == 3

    def test_step_out_of_range_returns_none(self):
        pool = FakePool(None)

        stepped = asyncio.run(
            CharacterRepository(pool).step_hero_points("guild", CHARACTER_ID, 1, 3)
        )

        _, query, args = pool.calls[0]
        assert stepped is None
        assert "BETWEEN 0 AND $4" in query
        assert args == ("guild", CHARACTER_ID, 1, 3)

    def test_notify_handler_invalidates_cache(self):
        pool = FakePool([character_row()], [character_row(hero_points=3)])
        repo = CharacterRepository(pool)
        handle = cache_invalidator(repo, HeroPointSettingsRepository(pool))

        async def scenario():
            await repo.list_for_campaign("guild")
            await handle(None, 1, HERO_POINT_CHANGE_CHANNEL, "not json")
            await handle(None, 1, HERO_POINT_CHANGE_CHANNEL, roster_change("other"))
            cached = await repo.list_for_campaign("guild")
            await handle(None, 1, HERO_POINT_CHANGE_CHANNEL, roster_change("guild"))
            return cached, await repo.list_for_campaign("guild")

        cached, fresh = asyncio.run(scenario())

        assert cached[0].hero_points == 1
        assert fresh[0].hero_points == 3
        assert [call[0] for call in pool.calls] == ["fetch", "fetch"]

    def test_duplicate_name_raises_value_error(self):
        pool = FakePool(asyncpg.UniqueViolationError("duplicate key"))

        with pytest.raises(ValueError):
            asyncio.run(CharacterRepository(pool).create("guild", "Kyra"))

    def test_create_normalizes_traits(self):
        pool = FakePool(character_row(traits=["minion"]))

        created = asyncio.run(
            CharacterRepository(pool).create("guild", " Pet ", traits=[" Minion ", ""])
        )

        args = pool.calls[0][2]
        assert args[1] == "Pet"
        assert args[4] == ["minion"]
        assert created.traits == ["minion"]

    def test_invalid_ids_skip_the_database(self):
        pool = FakePool()
        repo = CharacterRepository(pool)

        assert asyncio.run(repo.assign("guild", "not-a-uuid", "u1")) is None
        assert asyncio.run(repo.set_hero_points("guild", "Kyra", 1)) is None
        assert asyncio.run(repo.delete("guild", "Kyra")) is False
        assert pool.calls == []

    def test_delete(self):
        pool = FakePool("DELETE 1")
        assert asyncio.run(CharacterRepository(pool).delete("guild", CHARACTER_ID)) is True


class TestHeroPointSettingsRepository:
    def test_defaults_without_row(self):
        repo = HeroPointSettingsRepository(
            FakePool(None), default_timeout_minutes=45, max_hero_points=4
        )

        settings = asyncio.run(repo.get("guild"))

        assert settings.default_timeout_minutes == 45
        assert settings.max_hero_points == 4

    def test_update_rejects_negative_values(self):
        repo = HeroPointSettingsRepository(FakePool())

        with pytest.raises(ValueError):
            asyncio.run(repo.update("guild", default_timeout_minutes=-1))
        with pytest.raises(ValueError):
            asyncio.run(repo.update("guild", max_hero_points=-1))

    def test_update_invalidates_cache(self):
        row = {
            "campaign_id": "guild",
            "default_timeout_minutes": 30,
            "max_hero_points": 3,
            "updated_at": None,
        }
        pool = FakePool(None, row, row)
        repo = HeroPointSettingsRepository(pool)

        async def scenario():
            await repo.get("guild")
            await repo.update("guild", default_timeout_minutes=30)
            return await repo.get("guild")

        assert asyncio.run(scenario()).default_timeout_minutes == 30
        assert len(pool.calls) == 3

    def test_change_from_another_process_reaches_the_cache(self):
        row = {
            "campaign_id": "guild",
            "default_timeout_minutes": 60,
            "max_hero_points": 1,
            "updated_at": None,
        }
        pool = FakePool(None, row)
        repo = HeroPointSettingsRepository(pool, max_hero_points=3)
        handle = cache_invalidator(CharacterRepository(pool), repo)

        async def scenario():
            before = await repo.get("guild")
            await handle(
                None,
                1,
                HERO_POINT_CHANGE_CHANNEL,
                '{"table": "hero_point_settings", "campaign_id": "guild"}',
            )
            return before, await repo.get("guild")

        before, after = asyncio.run(scenario())

        assert before.max_hero_points == 3
        assert after.max_hero_points == 1


class TestMigrationRunner:
    def test_pending_skips_applied_versions(self, tmp_path):
        (tmp_path / "001_init.sql").write_text("SELECT 1;")
        (tmp_path / "002_more.sql").write_text("SELECT 2;")
        pool = FakePool("OK", [{"version": "001_init"}])

        pending = asyncio.run(MigrationRunner(pool, tmp_path).pending())

        assert [p.stem for p in pending] == ["002_more"]

    def test_bundled_migrations_are_discovered(self):
        versions = [p.stem for p in MigrationRunner(FakePool()).discover()]
        assert versions[0] == "001_hero_points"
        assert "002_change_notify" in versions

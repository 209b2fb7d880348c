"""Repository for characters table (the campaign roster)."""

from __future__ import annotations

import logging
import uuid

import asyncpg

from herokeeper.cache import AsyncTTLCache, cached
from herokeeper.models import Character

logger = logging.getLogger(__name__)

# Freshness across processes via pg_notify (see migrations/versions/002_change_notify.sql).
_roster_cache = AsyncTTLCache(maxsize=64, ttl=300)

_COLUMNS = (
    "id::text AS id, campaign_id, name, actor_type, alliance, traits, "
    "player_owned, assigned_user_id, hero_points, created_at, updated_at"
)


def _row_to_character(row: asyncpg.Record) -> Character:
    d = dict(row)
    d["traits"] = list(d.get("traits") or [])
    return Character(**d)


def _roster_key(campaign_id: str) -> str:
    return f"roster:{campaign_id}"


def _is_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except (TypeError, ValueError):
        return False
    return True


class CharacterRepository:
    """Pure SQL operations for characters."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    @cached(
        cache=_roster_cache,
        key_func=lambda self, campaign_id: _roster_key(campaign_id),
    )
    async def list_for_campaign(self, campaign_id: str) -> list[Character]:
        """All characters of a campaign, ordered by name."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                f"SELECT {_COLUMNS} FROM characters WHERE campaign_id = $1 ORDER BY name",
                campaign_id,
            )
            return [_row_to_character(row) for row in rows]

    async def get(self, campaign_id: str, character_id: str) -> Character | None:
        for character in await self.list_for_campaign(campaign_id):
            if character.id == character_id:
                return character
        return None

    async def get_by_name(self, campaign_id: str, name: str) -> Character | None:
        wanted = name.strip().casefold()
        for character in await self.list_for_campaign(campaign_id):
            if character.name.casefold() == wanted:
                return character
        return None

    async def create(
        self,
        campaign_id: str,
        name: str,
        *,
        actor_type: str = "character",
        alliance: str | None = "party",
        traits: list[str] | None = None,
        player_owned: bool = True,
        assigned_user_id: str | None = None,
    ) -> Character:
        """Insert a character. Raises ValueError when the name is taken."""
        async with self.pool.acquire() as conn:
            try:
                row = await conn.fetchrow(
                    f"""
                    INSERT INTO characters
                        (campaign_id, name, actor_type, alliance, traits, player_owned, assigned_user_id)
                    VALUES ($1, $2, $3, $4, $5, $6, $7)
                    RETURNING {_COLUMNS}
                    """,
                    campaign_id,
                    name.strip(),
                    actor_type,
                    alliance,
                    [t.strip().lower() for t in traits or [] if t.strip()],
                    player_owned,
                    assigned_user_id,
                )
            except asyncpg.UniqueViolationError as e:
                raise ValueError(f"Character '{name}' already exists") from e
        _roster_cache.invalidate(_roster_key(campaign_id))
        return _row_to_character(row)

    async def assign(
        self, campaign_id: str, character_id: str, user_id: str | None
    ) -> Character | None:
        """Set (or clear) the participant playing a character."""
        if not _is_uuid(character_id):
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE characters SET assigned_user_id = $3, updated_at = NOW()
                WHERE campaign_id = $1 AND id = $2::uuid
                RETURNING {_COLUMNS}
                """,
                campaign_id,
                character_id,
                user_id,
            )
        _roster_cache.invalidate(_roster_key(campaign_id))
        return _row_to_character(row) if row else None

    async def set_hero_points(
        self, campaign_id: str, character_id: str, value: int
    ) -> Character | None:
        if not _is_uuid(character_id):
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE characters SET hero_points = $3, updated_at = NOW()
                WHERE campaign_id = $1 AND id = $2::uuid
                RETURNING {_COLUMNS}
                """,
                campaign_id,
                character_id,
                value,
            )
        _roster_cache.invalidate(_roster_key(campaign_id))
        if not row:
            logger.warning(f"Character {character_id} vanished from {campaign_id}")
            return None
        return _row_to_character(row)

    async def add_hero_points(
        self, campaign_id: str, character_id: str, amount: int, maximum: int
    ) -> Character | None:
        """Add *amount* in one statement, clamped to ``[0, maximum]``."""
        if not _is_uuid(character_id):
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE characters
                SET hero_points = GREATEST(LEAST(hero_points + $3, $4), 0), updated_at = NOW()
                WHERE campaign_id = $1 AND id = $2::uuid
                RETURNING {_COLUMNS}
                """,
                campaign_id,
                character_id,
                amount,
                maximum,
            )
        _roster_cache.invalidate(_roster_key(campaign_id))
        return _row_to_character(row) if row else None

    async def step_hero_points(
        self, campaign_id: str, character_id: str, delta: int, maximum: int
    ) -> Character | None:
        """Move points by *delta* only if the result stays in ``[0, maximum]``.

        Returns None when the character is missing or the step would leave the range.
        """
        if not _is_uuid(character_id):
            return None
        async with self.pool.acquire() as conn:
            row = await conn.fetchrow(
                f"""
                UPDATE characters SET hero_points = hero_points + $3, updated_at = NOW()
                WHERE campaign_id = $1 AND id = $2::uuid
                  AND hero_points + $3 BETWEEN 0 AND $4
                RETURNING {_COLUMNS}
                """,
                campaign_id,
                character_id,
                delta,
                maximum,
            )
        _roster_cache.invalidate(_roster_key(campaign_id))
        return _row_to_character(row) if row else None

    async def delete(self, campaign_id: str, character_id: str) -> bool:
        """Delete a character. Returns True if deleted."""
        if not _is_uuid(character_id):
            return False
        async with self.pool.acquire() as conn:
            result = await conn.execute(
                "DELETE FROM characters WHERE campaign_id = $1 AND id = $2::uuid",
                campaign_id,
                character_id,
            )
        _roster_cache.invalidate(_roster_key(campaign_id))
        return result == "DELETE 1"

    def invalidate_cache(self, campaign_id: str) -> None:
        """Invalidate a campaign's roster (called by the pg_notify handler)."""
        _roster_cache.invalidate(_roster_key(campaign_id))

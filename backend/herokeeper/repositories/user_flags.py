"""Repository for the user_flags table (per-user key-value state)."""

from __future__ import annotations

import json
from collections.abc import Mapping
from typing import Any

import asyncpg

from herokeeper.heropoints.types import HandlerContext


def _decode(value: Any) -> Any:
    """JSONB arrives as text unless a codec is registered on the pool."""
    return json.loads(value) if isinstance(value, str) else value


class UserFlagRepository:
    """Flags scoped by (campaign, user). Not cached: countdown state must be exact."""

    def __init__(self, pool: asyncpg.Pool) -> None:
        self.pool = pool

    async def get_flags(self, ctx: HandlerContext, prefix: str) -> dict[str, Any]:
        """Return every flag whose key starts with *prefix*."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                """
                SELECT flag_key, value FROM user_flags
                WHERE campaign_id = $1 AND user_id = $2 AND flag_key LIKE $3 || '%'
                """,
                ctx.campaign_id,
                ctx.user_id,
                prefix,
            )
            return {row["flag_key"]: _decode(row["value"]) for row in rows}

    async def set_flags(self, ctx: HandlerContext, values: Mapping[str, Any]) -> None:
        """Upsert several flags in one transaction."""
        async with self.pool.acquire() as conn:
            async with conn.transaction():
                await conn.executemany(
                    """
                    INSERT INTO user_flags (campaign_id, user_id, flag_key, value)
                    VALUES ($1, $2, $3, $4::jsonb)
                    ON CONFLICT (campaign_id, user_id, flag_key) DO UPDATE SET
                        value = EXCLUDED.value,
                        updated_at = NOW()
                    """,
                    [
                        (ctx.campaign_id, ctx.user_id, key, json.dumps(value))
                        for key, value in values.items()
                    ],
                )

    async def unset_flags(self, ctx: HandlerContext, *keys: str) -> None:
        async with self.pool.acquire() as conn:
            await conn.execute(
                """
                DELETE FROM user_flags
                WHERE campaign_id = $1 AND user_id = $2 AND flag_key = ANY($3::text[])
                """,
                ctx.campaign_id,
                ctx.user_id,
                list(keys),
            )

    async def list_contexts(self, flag_key: str) -> list[HandlerContext]:
        """Every (campaign, user) that currently holds *flag_key*."""
        async with self.pool.acquire() as conn:
            rows = await conn.fetch(
                "SELECT campaign_id, user_id FROM user_flags WHERE flag_key = $1",
                flag_key,
            )
            return [HandlerContext(row["campaign_id"], row["user_id"]) for row in rows]

"""Run database migrations.

Usage:
    python -m herokeeper.migrations          # apply pending migrations
    python -m herokeeper.migrations --dry    # list pending migrations only
"""

import asyncio
import logging
import os
import sys

import asyncpg
from dotenv import load_dotenv

from .runner import MigrationRunner

logging.basicConfig(level=logging.INFO, format="%(levelname)s: %(message)s")


async def main(argv: list[str]) -> int:
    load_dotenv()
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL not set. Check .env or environment variables.")
        return 1

    pool = await asyncpg.create_pool(database_url, min_size=1, max_size=2, statement_cache_size=0)
    try:
        runner = MigrationRunner(pool)
        if "--dry" in argv:
            pending = await runner.pending()
            print(f"Pending: {len(pending)}")
            for path in pending:
                print(f"  -> {path.stem}")
        else:
            applied = await runner.run_pending()
            print(f"Applied {len(applied)} migration(s).")
    finally:
        await pool.close()
    return 0


def run() -> None:
    sys.exit(asyncio.run(main(sys.argv[1:])))


if __name__ == "__main__":
    run()

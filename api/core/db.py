"""
Async database access helpers (raw SQL) using asyncpg.

`Database` owns the connection pool. The app opens it on startup and closes
it on shutdown (see `api/main.py`), then hands it to whoever needs SQL.

SQL parameter style:
- asyncpg uses positional placeholders: $1, $2, $3, ...
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import asyncpg

logger = logging.getLogger(__name__)


class DatabaseUnavailable(RuntimeError):
    pass


def _record_to_dict(record: asyncpg.Record) -> dict[str, Any]:
    return dict(record)


class Database:
    def __init__(self, pool: asyncpg.Pool) -> None:
        self._pool = pool

    @classmethod
    async def connect(cls, dsn: str) -> "Database":
        pool = await asyncpg.create_pool(
            dsn=dsn,
            min_size=1,
            max_size=5,
            command_timeout=30,
        )
        return cls(pool)

    @property
    def pool(self) -> asyncpg.Pool:
        return self._pool

    async def close(self) -> None:
        await self._pool.close()

    async def fetch_one(self, sql: str, *args: Any) -> dict[str, Any] | None:
        """
        Run a query and return a single row as a dict (or None).
        """
        row = await self._pool.fetchrow(sql, *args)
        return _record_to_dict(row) if row is not None else None

    async def fetch_all(self, sql: str, *args: Any) -> list[dict[str, Any]]:
        """
        Run a query and return all rows as a list of dicts.
        """
        rows = await self._pool.fetch(sql, *args)
        return [_record_to_dict(r) for r in rows]

    async def execute(self, sql: str, *args: Any) -> None:
        """
        Run a statement (INSERT/UPDATE/DELETE/DDL). No result returned.
        """
        await self._pool.execute(sql, *args)


async def connect_with_retry(dsn: str, *, attempts: int, delay_s: float) -> Database:
    """
    Open the pool, retrying a fixed number of times with a fixed delay.

    The database container usually comes up after the API, so the first few
    attempts are expected to fail.
    """
    last_error: BaseException | None = None
    for attempt in range(1, attempts + 1):
        try:
            # create_pool opens min_size connections, so success means reachable.
            database = await Database.connect(dsn)
        except (OSError, asyncio.TimeoutError, asyncpg.PostgresError, asyncpg.InterfaceError) as exc:
            last_error = exc
            logger.warning(
                "Waiting for database... attempt=%s/%s error=%s",
                attempt,
                attempts,
                exc,
            )
            if attempt < attempts:
                await asyncio.sleep(delay_s)
            continue

        logger.info("database_connected attempt=%s", attempt)
        return database

    raise DatabaseUnavailable(
        f"Could not connect to database after {attempts} attempts: {last_error}"
    ) from last_error

"""
Organization persistence (raw SQL).

The natural key is (name, year). Rows are only ever inserted; a second
insert for the same key is silently ignored.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Iterable

import asyncpg

from core.db import Database

from .schemas import Organization

logger = logging.getLogger(__name__)

_DB_ERRORS = (asyncpg.PostgresError, asyncpg.InterfaceError, OSError, asyncio.TimeoutError)

# Errors that reject a single row (SQLSTATE classes 22, 23, 54) rather than the connection.
_ROW_ERRORS = (asyncpg.DataError, asyncpg.IntegrityConstraintViolationError, asyncpg.ProgramLimitExceededError)

SCHEMA_SQL = """
CREATE TABLE IF NOT EXISTS organizations (
  id BIGSERIAL PRIMARY KEY,
  name TEXT NOT NULL,
  description TEXT NOT NULL DEFAULT '',
  url TEXT NOT NULL DEFAULT '',
  year INTEGER NOT NULL,
  CONSTRAINT organizations_name_year_key UNIQUE (name, year)
)
"""

INSERT_IF_ABSENT_SQL = """
INSERT INTO organizations (name, description, url, year)
VALUES ($1, $2, $3, $4)
ON CONFLICT (name, year) DO NOTHING
RETURNING id
"""


class StoreError(RuntimeError):
    pass


class OrganizationStore:
    def __init__(self, database: Database) -> None:
        self._db = database

    async def ensure_schema(self) -> None:
        """
        Create the organizations table if it does not exist yet.
        """
        try:
            await self._db.execute(SCHEMA_SQL)
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to create organizations table: {exc}") from exc

    async def insert_if_absent(self, org: Organization) -> bool:
        """
        Insert one organization. Returns False when (name, year) already exists.
        """
        try:
            row = await self._db.fetch_one(
                INSERT_IF_ABSENT_SQL,
                org.name,
                org.description,
                org.url,
                org.year,
            )
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to insert organization {org.name!r} ({org.year}): {exc}") from exc
        return row is not None

    async def insert_many_if_absent(self, orgs: Iterable[Organization]) -> int:
        """
        Insert a batch and return how many rows were new.

        Each row gets its own savepoint inside the batch transaction, so a row
        Postgres rejects (bad characters, oversized key) is logged and skipped
        without losing the rest. Connection-level failures still raise.
        """
        records = [(o.name, o.description, o.url, o.year) for o in orgs]
        if not records:
            return 0

        inserted = 0
        rejected = 0
        try:
            async with self._db.pool.acquire() as conn:  # type: asyncpg.Connection
                async with conn.transaction():
                    for record in records:
                        try:
                            async with conn.transaction():
                                row = await conn.fetchrow(INSERT_IF_ABSENT_SQL, *record)
                        except _ROW_ERRORS as exc:
                            rejected += 1
                            logger.warning(
                                "organization_rejected name=%r year=%s error=%s",
                                record[0],
                                record[3],
                                exc,
                            )
                            continue
                        if row is not None:
                            inserted += 1
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to insert {len(records)} organizations: {exc}") from exc

        if rejected:
            logger.warning("organizations_rejected count=%s of=%s", rejected, len(records))
        return inserted

    async def list_all(self) -> list[Organization]:
        """
        All organizations, newest year first, then by name.
        """
        try:
            rows = await self._db.fetch_all(
                """
                SELECT name, description, url, year
                FROM organizations
                ORDER BY year DESC, name ASC
                """
            )
        except _DB_ERRORS as exc:
            raise StoreError(f"Failed to list organizations: {exc}") from exc

        return [
            Organization(
                name=str(row["name"]),
                description=str(row["description"] or ""),
                url=str(row["url"] or ""),
                year=int(row["year"]),
            )
            for row in rows
        ]

    async def ping(self) -> bool:
        try:
            row = await self._db.fetch_one("SELECT 1 AS ok")
        except _DB_ERRORS as exc:
            logger.warning("store_ping_failed error=%s", exc)
            return False
        return row is not None

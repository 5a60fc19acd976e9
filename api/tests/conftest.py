"""
Shared pytest fixtures.
"""

from __future__ import annotations

import json
from collections.abc import Callable, Iterable
from contextlib import asynccontextmanager
from typing import Any
from unittest.mock import MagicMock

import httpx
import pytest

from core.db import Database
from organizations.repository import StoreError
from organizations.schemas import Organization

BASE_URL = "https://api.test/"


class FakeStore:
    """
    In-memory stand-in for OrganizationStore with the same contract.
    """

    def __init__(self) -> None:
        self.rows: dict[tuple[str, int], Organization] = {}
        self.reachable = True
        self.fail_list = False
        self.fail_years: set[int] = set()

    async def ensure_schema(self) -> None:
        return None

    async def insert_if_absent(self, org: Organization) -> bool:
        key = (org.name, org.year)
        if key in self.rows:
            return False
        self.rows[key] = org
        return True

    async def insert_many_if_absent(self, orgs: Iterable[Organization]) -> int:
        orgs = list(orgs)
        if any(o.year in self.fail_years for o in orgs):
            raise StoreError("simulated write failure")
        inserted = 0
        for org in orgs:
            if await self.insert_if_absent(org):
                inserted += 1
        return inserted

    async def list_all(self) -> list[Organization]:
        if self.fail_list:
            raise StoreError("simulated query failure")
        return sorted(self.rows.values(), key=lambda o: (-o.year, o.name))

    async def ping(self) -> bool:
        return self.reachable


@pytest.fixture
def store() -> FakeStore:
    return FakeStore()


def api_client(responses: dict[int, Any]) -> httpx.AsyncClient:
    """
    Build an AsyncClient whose transport answers `/<year>.json` from `responses`.

    A value may be:
    - dict/list: served as JSON with 200
    - str: served verbatim with 200 (for malformed bodies)
    - int: served as an empty body with that status code
    - Exception instance: raised from the transport
    Years missing from the mapping answer 404.
    """

    def handler(request: httpx.Request) -> httpx.Response:
        year = int(request.url.path.rsplit("/", 1)[-1].removesuffix(".json"))
        if year not in responses:
            return httpx.Response(404, text="not found")
        value = responses[year]
        if isinstance(value, Exception):
            raise value
        if isinstance(value, int):
            return httpx.Response(value, text="upstream error")
        if isinstance(value, str):
            return httpx.Response(200, text=value, headers={"content-type": "application/json"})
        return httpx.Response(200, content=json.dumps(value).encode(), headers={"content-type": "application/json"})

    return httpx.AsyncClient(transport=httpx.MockTransport(handler))


@pytest.fixture
def make_api_client() -> Callable[[dict[int, Any]], httpx.AsyncClient]:
    return api_client


class FakeConnection:
    """
    Minimal asyncpg.Connection stand-in for the batch insert path.

    `outcomes` maps an organization name to what `fetchrow` should do for it:
    an exception instance is raised, anything else is returned. Names not in
    the mapping insert a new row. Names already inserted return None, the
    same as ON CONFLICT DO NOTHING.
    """

    def __init__(self, outcomes: dict[str, Any] | None = None) -> None:
        self.outcomes = outcomes or {}
        self.inserted: list[tuple[str, int]] = []
        self.savepoints = 0
        self.rolled_back = 0

    @asynccontextmanager
    async def transaction(self):
        self.savepoints += 1
        try:
            yield
        except BaseException:
            self.rolled_back += 1
            raise

    async def fetchrow(self, sql: str, *args: Any) -> dict[str, Any] | None:
        name, year = args[0], args[3]
        outcome = self.outcomes.get(name)
        if isinstance(outcome, BaseException):
            raise outcome
        if (name, year) in self.inserted:
            return None
        self.inserted.append((name, year))
        return {"id": len(self.inserted)}


def stub_database(conn: FakeConnection) -> MagicMock:
    """
    A Database whose pool hands out `conn` from `acquire()`.
    """

    @asynccontextmanager
    async def acquire():
        yield conn

    database = MagicMock(spec=Database)
    database.pool.acquire = acquire
    return database

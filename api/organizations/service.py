"""
Sync "service layer".

One sync pass walks the configured years in order. Each year is isolated:
a failed fetch, an unparseable body or a failed write is logged and the pass
moves on to the next year. There is no rollback, so a pass can end with some
years synced and others not.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass, field

import httpx

from . import client as gsoc_client
from .repository import OrganizationStore, StoreError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class YearResult:
    year: int
    ok: bool
    fetched: int = 0
    inserted: int = 0
    stage: str | None = None
    error: str | None = None


@dataclass
class SyncReport:
    results: list[YearResult] = field(default_factory=list)

    @property
    def synced_years(self) -> list[int]:
        return [r.year for r in self.results if r.ok]

    @property
    def failed_years(self) -> list[int]:
        return [r.year for r in self.results if not r.ok]

    @property
    def inserted(self) -> int:
        return sum(r.inserted for r in self.results)


async def sync_year(
    store: OrganizationStore,
    client: httpx.AsyncClient,
    *,
    base_url: str,
    year: int,
) -> YearResult:
    logger.info("sync_year_started year=%s url=%s", year, gsoc_client.year_url(base_url, year))
    try:
        orgs = await gsoc_client.fetch_year(client, base_url=base_url, year=year)
    except gsoc_client.GsocApiError as exc:
        logger.warning("sync_year_failed year=%s stage=%s error=%s", year, exc.stage, exc)
        return YearResult(year=year, ok=False, stage=exc.stage, error=str(exc))

    try:
        inserted = await store.insert_many_if_absent(orgs)
    except StoreError as exc:
        logger.warning("sync_year_failed year=%s stage=store error=%s", year, exc)
        return YearResult(year=year, ok=False, fetched=len(orgs), stage="store", error=str(exc))

    logger.info("sync_year_done year=%s fetched=%s inserted=%s", year, len(orgs), inserted)
    return YearResult(year=year, ok=True, fetched=len(orgs), inserted=inserted)


async def sync_years(
    store: OrganizationStore,
    client: httpx.AsyncClient,
    *,
    base_url: str,
    years: Iterable[int],
) -> SyncReport:
    """
    Run one sync pass over `years`, sequentially and in order.
    """
    report = SyncReport()
    for year in years:
        report.results.append(
            await sync_year(store, client, base_url=base_url, year=year)
        )

    logger.info(
        "sync_pass_done synced=%s failed=%s inserted=%s",
        report.synced_years,
        report.failed_years,
        report.inserted,
    )
    return report

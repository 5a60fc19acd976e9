"""
GSoC organizations API client.

Used endpoint:
- GET /<year>.json -> {"<org name>": {"projects_url": "...", ...}, ...}

The JSON root is an object keyed by organization name, not an array.
"""

from __future__ import annotations

import json
from typing import Any

import httpx

from .schemas import DEFAULT_DESCRIPTION, Organization


# API failures are explicit and separable from other runtime errors.
class GsocApiError(RuntimeError):
    stage = "fetch"

    def __init__(self, year: int, message: str) -> None:
        super().__init__(message)
        self.year = year


class FetchFailed(GsocApiError):
    stage = "fetch"


class ParseFailed(GsocApiError):
    stage = "parse"


def year_url(base_url: str, year: int) -> str:
    base_url = (base_url or "").strip()
    if not base_url:
        raise ValueError("GSoC API base URL is empty.")
    return f"{base_url.rstrip('/')}/{year}.json"


def _string_field(data: dict[str, Any], *keys: str) -> str | None:
    for key in keys:
        value = data.get(key)
        if isinstance(value, str):
            return value
    return None


def parse_payload(year: int, payload: Any) -> list[Organization]:
    """
    Turn a decoded `<year>.json` body into organization records.

    Missing fields fall back to an empty URL and the placeholder description.
    """
    if not isinstance(payload, dict):
        raise ParseFailed(year, f"Expected a JSON object for {year}, got {type(payload).__name__}.")

    orgs: list[Organization] = []
    for raw_name, raw_data in payload.items():
        name = str(raw_name)
        if not name.strip():
            continue

        data = raw_data if isinstance(raw_data, dict) else {}
        url = _string_field(data, "projects_url", "url")
        description = _string_field(data, "description")

        orgs.append(
            Organization(
                name=name,
                description=description if description else DEFAULT_DESCRIPTION,
                url=url or "",
                year=year,
            )
        )
    return orgs


async def fetch_year(
    client: httpx.AsyncClient,
    *,
    base_url: str,
    year: int,
) -> list[Organization]:
    """
    Fetch and parse the organization list for one year.

    Raises FetchFailed on network errors and non-2xx responses, ParseFailed
    on bodies that are not a JSON object.
    """
    url = year_url(base_url, year)
    try:
        resp = await client.get(url)
    except httpx.HTTPError as exc:
        raise FetchFailed(year, f"Failed to fetch {url}: {exc}") from exc

    if not resp.is_success:
        # Avoid dumping huge bodies; include a small snippet.
        body = resp.text[:300]
        raise FetchFailed(year, f"API returned {resp.status_code} for year {year}: {body}")

    try:
        payload = resp.json()
    except (json.JSONDecodeError, UnicodeDecodeError) as exc:
        raise ParseFailed(year, f"JSON parse error for {year}: {exc}") from exc

    return parse_payload(year, payload)

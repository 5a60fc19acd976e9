"""
Environment-driven configuration.

Every value is read on demand through a small helper so tests can patch the
environment without reloading modules.
"""

from __future__ import annotations

import os
from urllib.parse import parse_qsl, quote, urlencode, urlsplit, urlunsplit

DEFAULT_GSOC_API_BASE_URL = "https://api.gsocorganizations.dev/"

# The API currently has robust data up to 2025.
DEFAULT_SYNC_YEARS = (2022, 2023, 2024, 2025)

DEFAULT_DB_PORT = 5432
DEFAULT_DB_CONNECT_ATTEMPTS = 10
DEFAULT_DB_CONNECT_DELAY_S = 3.0


def _env(name: str, default: str = "") -> str:
    return os.environ.get(name, default).strip()


def _sanitize_database_url(url: str) -> str:
    # asyncpg rejects libpq-only query params such as sslmode.
    parts = urlsplit(url)
    if not parts.query:
        return url

    params = [(k, v) for (k, v) in parse_qsl(parts.query, keep_blank_values=True) if k != "sslmode"]
    query = urlencode(params)
    return urlunsplit((parts.scheme, parts.netloc, parts.path, query, parts.fragment))


def database_url() -> str:
    """
    Resolve the PostgreSQL DSN.

    `DATABASE_URL` wins when set. Otherwise the DSN is assembled from
    DB_USER / DB_PASSWORD / DB_HOST / DB_PORT / DB_NAME.
    """
    url = _env("DATABASE_URL")
    if url:
        return _sanitize_database_url(url)

    host = _env("DB_HOST")
    name = _env("DB_NAME")
    if not host or not name:
        raise RuntimeError("Set DATABASE_URL, or DB_HOST and DB_NAME.")

    user = quote(_env("DB_USER"), safe="")
    password = quote(_env("DB_PASSWORD"), safe="")
    port = _positive_int("DB_PORT", DEFAULT_DB_PORT)

    credentials = user
    if password:
        credentials = f"{user}:{password}"
    if credentials:
        credentials += "@"

    return f"postgresql://{credentials}{host}:{port}/{quote(name, safe='')}"


def _positive_int(name: str, default: int) -> int:
    raw = _env(name)
    if not raw:
        return default
    try:
        value = int(raw)
    except ValueError:
        raise RuntimeError(f"Invalid {name}. It must be an integer.")
    if value <= 0:
        raise RuntimeError(f"Invalid {name}. It must be > 0.")
    return value


def db_connect_attempts() -> int:
    return _positive_int("DB_CONNECT_ATTEMPTS", DEFAULT_DB_CONNECT_ATTEMPTS)


def db_connect_delay_s() -> float:
    raw = _env("DB_CONNECT_DELAY_S")
    if not raw:
        return DEFAULT_DB_CONNECT_DELAY_S
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError("Invalid DB_CONNECT_DELAY_S. It must be a number.")
    if value < 0:
        raise RuntimeError("Invalid DB_CONNECT_DELAY_S. It must be >= 0.")
    return value


def gsoc_api_base_url() -> str:
    return _env("GSOC_API_BASE_URL") or DEFAULT_GSOC_API_BASE_URL


def gsoc_api_timeout_s() -> float | None:
    """
    Fetch timeout in seconds, or None to keep the httpx default.
    """
    raw = _env("GSOC_API_TIMEOUT_S")
    if not raw:
        return None
    try:
        value = float(raw)
    except ValueError:
        raise RuntimeError("Invalid GSOC_API_TIMEOUT_S. It must be a number.")
    if value <= 0:
        raise RuntimeError("Invalid GSOC_API_TIMEOUT_S. It must be > 0.")
    return value


def sync_years() -> list[int]:
    """
    Years covered by one sync pass, in the order they are fetched.
    """
    raw = _env("SYNC_YEARS")
    if not raw:
        return list(DEFAULT_SYNC_YEARS)

    years: list[int] = []
    for part in raw.split(","):
        part = part.strip()
        if not part:
            continue
        try:
            year = int(part)
        except ValueError:
            raise RuntimeError(f"Invalid SYNC_YEARS entry '{part}'. Years must be integers.")
        if year not in years:
            years.append(year)

    if not years:
        raise RuntimeError("SYNC_YEARS is set but lists no years.")
    return years


def log_level() -> str:
    return (_env("LOG_LEVEL") or "INFO").upper()

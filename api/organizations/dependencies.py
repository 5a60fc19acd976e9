"""
FastAPI dependencies that hand process-wide resources to route handlers.

`main.lifespan` attaches the store and the HTTP client to `app.state`;
handlers receive them through `Depends` instead of reaching for globals.
"""

from __future__ import annotations

import httpx
from fastapi import Depends, HTTPException, Request, status

from .repository import OrganizationStore


def get_optional_store(request: Request) -> OrganizationStore | None:
    return getattr(request.app.state, "store", None)


def get_store(store: OrganizationStore | None = Depends(get_optional_store)) -> OrganizationStore:
    if store is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="DB not initialized",
        )
    return store


def get_http_client(request: Request) -> httpx.AsyncClient:
    client = getattr(request.app.state, "http_client", None)
    if client is None:
        raise RuntimeError("HTTP client is not initialized. It is created on startup.")
    return client

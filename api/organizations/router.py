"""
FastAPI router for the organization page and the sync trigger.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import httpx
import jinja2
from fastapi import APIRouter, Depends, HTTPException, Request
from fastapi.responses import HTMLResponse, RedirectResponse
from fastapi.templating import Jinja2Templates

from core import settings

from . import dependencies, service
from .repository import OrganizationStore, StoreError

logger = logging.getLogger(__name__)

TEMPLATES_DIR = Path(__file__).resolve().parent.parent / "templates"

templates = Jinja2Templates(directory=str(TEMPLATES_DIR))

router = APIRouter()


def _sync_time() -> str:
    # RFC 1123, always in UTC.
    return datetime.now(timezone.utc).strftime("%a, %d %b %Y %H:%M:%S GMT")


@router.get("/", response_class=HTMLResponse)
async def home(
    request: Request,
    store: OrganizationStore = Depends(dependencies.get_store),
) -> HTMLResponse:
    """
    Render every stored organization, newest year first.
    """
    try:
        orgs = await store.list_all()
    except StoreError:
        logger.exception("home_query_failed")
        raise HTTPException(status_code=500, detail="Database error")

    years = sorted({o.year for o in orgs}, reverse=True)
    try:
        return templates.TemplateResponse(
            request,
            "index.html",
            {
                "orgs": orgs,
                "years": years,
                "count": len(orgs),
                "sync_time": _sync_time(),
            },
        )
    except jinja2.TemplateError:
        logger.exception("home_render_failed")
        raise HTTPException(status_code=500, detail="Template error")


@router.get("/sync")
async def sync(
    store: OrganizationStore = Depends(dependencies.get_store),
    client: httpx.AsyncClient = Depends(dependencies.get_http_client),
) -> RedirectResponse:
    """
    Run one sync pass over the configured years, then go back to the list.

    Per-year failures are logged by the service and never fail the request.
    """
    await service.sync_years(
        store,
        client,
        base_url=settings.gsoc_api_base_url(),
        years=settings.sync_years(),
    )
    return RedirectResponse(url="/", status_code=303)

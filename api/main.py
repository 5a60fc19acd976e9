from contextlib import asynccontextmanager

import httpx
from fastapi import Depends, FastAPI
from fastapi.responses import PlainTextResponse

from core import db, settings
from core.log import configure_logging
from organizations import dependencies
from organizations import router as organizations_router
from organizations.repository import OrganizationStore

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    # Fails startup (and so the process) once the retries are used up.
    database = await db.connect_with_retry(
        settings.database_url(),
        attempts=settings.db_connect_attempts(),
        delay_s=settings.db_connect_delay_s(),
    )
    store = OrganizationStore(database)
    timeout = settings.gsoc_api_timeout_s()
    http_client = httpx.AsyncClient(timeout=timeout) if timeout is not None else httpx.AsyncClient()
    try:
        await store.ensure_schema()
        app.state.store = store
        app.state.http_client = http_client
        yield
    finally:
        app.state.store = None
        app.state.http_client = None
        await http_client.aclose()
        await database.close()


app = FastAPI(lifespan=lifespan)

app.include_router(organizations_router.router, tags=["organizations"])


@app.get("/health", response_class=PlainTextResponse)
async def health(
    store: OrganizationStore | None = Depends(dependencies.get_optional_store),
) -> PlainTextResponse:
    if store is None:
        return PlainTextResponse("DB not initialized", status_code=503)
    if not await store.ping():
        return PlainTextResponse("DB connection failed", status_code=503)
    return PlainTextResponse("OK")

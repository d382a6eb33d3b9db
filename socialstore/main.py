"""Application entry point for the FastAPI surface of the social store."""
from __future__ import annotations

import logging
import os
from typing import Iterable

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .backends import create_backend
from .config import get_settings
from .errors import StoreError
from .routers import (
    admin_router,
    auth_router,
    friends_router,
    messages_router,
    notifications_router,
    posts_router,
    realtime_router,
    users_router,
)
from .services import SessionRegistry, SyncEngine, seed_defaults

settings = get_settings()
logging.basicConfig(
    level=getattr(logging, settings.log_level.upper(), logging.INFO),
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
)
logger = logging.getLogger(__name__)

app = FastAPI(title=settings.app_name, version=settings.api_version)

cors_origins = os.getenv("CORS_ORIGINS")
if cors_origins:
    origins: Iterable[str] = [origin.strip() for origin in cors_origins.split(",") if origin.strip()]
else:
    origins = ["*"]

app.add_middleware(
    CORSMiddleware,
    allow_origins=list(origins),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(auth_router)
app.include_router(users_router)
app.include_router(friends_router)
app.include_router(posts_router)
app.include_router(messages_router)
app.include_router(notifications_router)
app.include_router(admin_router)
app.include_router(realtime_router)


@app.exception_handler(StoreError)
async def _store_error_handler(request: Request, exc: StoreError) -> JSONResponse:
    if exc.status_code >= 500:
        logger.warning("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content={"detail": exc.message})


@app.on_event("startup")
async def _startup() -> None:
    """Open the configured backend and seed it before serving."""

    try:
        store = create_backend(settings)
    except Exception:  # pragma: no cover - best effort logging
        logger.exception("Storage initialisation failed")
        raise

    app.state.store = store
    app.state.sessions = SessionRegistry()
    app.state.sync = SyncEngine(store, settings)

    if settings.seed_defaults:
        await seed_defaults(store)
    logger.info("Serving %s with the %s backend (%s sync)", settings.app_name, store.name, app.state.sync.strategy)


@app.on_event("shutdown")
async def _shutdown() -> None:
    """Stop subscriptions and release the backend."""

    await app.state.sync.close()
    await app.state.sessions.close_all()
    await app.state.store.close()


@app.get("/api", tags=["system"])
def api_info() -> dict[str, str]:
    return {"service": settings.app_name, "version": settings.api_version}


@app.get("/health", tags=["system"])
async def healthcheck(request: Request) -> dict[str, str]:
    store = request.app.state.store
    return {"status": "ok", "backend": store.name, "sync": request.app.state.sync.strategy}

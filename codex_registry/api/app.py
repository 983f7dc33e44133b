"""Codex Registry — FastAPI application factory.

Usage:
    uvicorn codex_registry.api.app:create_app --factory --reload --port 3001

Or for production:
    uvicorn codex_registry.api.app:app --host 0.0.0.0 --port 3001

One process holds one connection registry, so run a single worker per
registry (or front several with a pub/sub fan-out).
"""

from __future__ import annotations

import logging
from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from codex_registry import __version__
from codex_registry.config import Settings
from codex_registry.config import settings as default_settings
from codex_registry.realtime import ConnectionRegistry, EventRouter
from codex_registry.records import InMemoryRecordStore

logger = logging.getLogger("codex_registry.api")


def create_app(
    settings: Optional[Settings] = None,
    store: Optional[InMemoryRecordStore] = None,
    registry: Optional[ConnectionRegistry] = None,
) -> FastAPI:
    """Build and return the FastAPI application."""
    settings = settings or default_settings
    include_docs = settings.INCLUDE_DOCS

    app = FastAPI(
        title=settings.APP_NAME,
        description="Record visibility and real-time user events",
        version=__version__,
        docs_url="/docs" if include_docs else None,
        redoc_url="/redoc" if include_docs else None,
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    registry = registry or ConnectionRegistry(channel=settings.EVENT_CHANNEL)
    app.state.settings = settings
    app.state.record_store = store if store is not None else InMemoryRecordStore()
    app.state.connection_registry = registry
    app.state.event_router = EventRouter(registry)

    from codex_registry.api.routes.events import router as events_router
    from codex_registry.api.routes.health import router as health_router
    from codex_registry.api.routes.records import router as records_router
    from codex_registry.api.websocket import router as ws_router

    app.include_router(health_router)
    app.include_router(records_router)
    app.include_router(events_router)
    app.include_router(ws_router)

    logger.info("%s v%s configured", settings.APP_NAME, __version__)
    return app


# Default app instance for `uvicorn codex_registry.api.app:app`
app = create_app()

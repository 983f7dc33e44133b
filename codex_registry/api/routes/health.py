"""Health check."""

from __future__ import annotations

from fastapi import APIRouter, Request

from codex_registry import __version__

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health")
async def health(request: Request) -> dict:
    registry = request.app.state.connection_registry
    return {
        "status": "ok",
        "version": __version__,
        "connections": registry.connection_count(),
    }

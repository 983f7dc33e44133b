"""Viewer identity extraction.

Token verification happens upstream (gateway / auth middleware); by the time
a request reaches us the authenticated address is in a trusted header.
WebSocket clients in browsers cannot set headers, so the socket endpoint also
accepts an ``address`` query parameter.
"""

from __future__ import annotations

from typing import Optional

from fastapi import Depends, HTTPException, Request, WebSocket

from codex_registry.records.addresses import normalize_address


def get_viewer(request: Request) -> Optional[str]:
    """Authenticated address of the caller, or ``None`` for anonymous."""
    header = request.app.state.settings.VIEWER_HEADER
    return normalize_address(request.headers.get(header))


def require_viewer(viewer: Optional[str] = Depends(get_viewer)) -> str:
    if viewer is None:
        raise HTTPException(status_code=401, detail="authentication required")
    return viewer


def websocket_viewer(websocket: WebSocket) -> Optional[str]:
    header = websocket.app.state.settings.VIEWER_HEADER
    return normalize_address(
        websocket.headers.get(header) or websocket.query_params.get("address")
    )

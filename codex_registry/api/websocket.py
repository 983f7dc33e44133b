"""WebSocket endpoint for real-time user events.

Clients connect to ``/ws/events`` as an authenticated address and receive
every event published for that address while connected.

Protocol:
    server -> client  {"type": "user-event", "payload": {"name": "...", "data": ...}}
    client -> server  {"type": "ping"}   answered with {"type": "pong"}
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status

from codex_registry.api.auth import websocket_viewer
from codex_registry.realtime import ConnectionRegistry, WebSocketConnection

logger = logging.getLogger(__name__)

router = APIRouter(tags=["realtime"])


@router.websocket("/ws/events")
async def events_ws(websocket: WebSocket) -> None:
    address = websocket_viewer(websocket)
    if address is None:
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    registry: ConnectionRegistry = websocket.app.state.connection_registry
    await websocket.accept()
    connection = WebSocketConnection(
        websocket, on_close=lambda conn: registry.remove(address, conn)
    )
    registry.add(address, connection)
    sender = asyncio.create_task(connection.pump())

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                data: dict[str, Any] = json.loads(raw)
            except json.JSONDecodeError:
                connection.send({"type": "error", "detail": "invalid JSON"})
                continue

            msg_type = data.get("type", "") if isinstance(data, dict) else ""
            if msg_type == "ping":
                connection.send({"type": "pong"})
            else:
                connection.send({
                    "type": "error",
                    "detail": f"unknown message type: {msg_type}",
                })

    except WebSocketDisconnect:
        logger.debug("WebSocket disconnected: %s", address)
    except Exception:
        logger.exception("WebSocket receive failed: %s", address)
        try:
            await websocket.close(code=status.WS_1011_INTERNAL_ERROR)
        except Exception as exc:
            logger.debug("Socket for %s already closed: %r", address, exc)
    finally:
        registry.remove(address, connection)
        connection.close()
        try:
            await asyncio.wait_for(sender, timeout=1.0)
        except Exception as exc:
            logger.debug("Sender for %s stopped: %r", address, exc)
            sender.cancel()

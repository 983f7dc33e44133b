"""Real-time event delivery.

    from codex_registry.realtime import ConnectionRegistry, EventRouter
    registry = ConnectionRegistry()
    registry.add("0xaa", connection)
    EventRouter(registry).publish("0xaa", "record:transferred", {"tokenId": "7"})
"""

from codex_registry.realtime.registry import (
    USER_EVENT_CHANNEL,
    Connection,
    ConnectionRegistry,
)
from codex_registry.realtime.router import EventRouter
from codex_registry.realtime.websocket import ConnectionClosedError, WebSocketConnection

__all__ = [
    "Connection",
    "ConnectionClosedError",
    "ConnectionRegistry",
    "EventRouter",
    "USER_EVENT_CHANNEL",
    "WebSocketConnection",
]

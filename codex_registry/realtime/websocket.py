"""WebSocket transport for the connection registry.

A :class:`WebSocketConnection` satisfies the registry's ``Connection``
protocol. ``emit`` may be called from any thread: frames are handed to the
socket's event loop and written by :meth:`WebSocketConnection.pump`, which
the endpoint runs as a task for the lifetime of the socket.

Frames on the wire::

    {"type": "user-event", "payload": {"name": "...", "data": ...}}
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Callable, Optional

from fastapi import WebSocket

logger = logging.getLogger(__name__)


class ConnectionClosedError(RuntimeError):
    """Raised when emitting to a connection that has been closed."""


class WebSocketConnection:
    """Queue-backed writer around a FastAPI WebSocket.

    Frames are JSON-encoded in :meth:`send`, so a payload that cannot be
    encoded fails that one emit and nothing else. A socket write error closes
    the connection; later emits raise :class:`ConnectionClosedError`.
    """

    def __init__(
        self,
        websocket: WebSocket,
        loop: Optional[asyncio.AbstractEventLoop] = None,
        on_close: Optional[Callable[["WebSocketConnection"], None]] = None,
    ) -> None:
        self._websocket = websocket
        self._loop = loop or asyncio.get_running_loop()
        self._queue: asyncio.Queue[Optional[str]] = asyncio.Queue()
        self._on_close = on_close
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    def emit(self, channel: str, message: dict[str, Any]) -> None:
        self.send({"type": channel, "payload": message})

    def send(self, frame: dict[str, Any]) -> None:
        """Encode and queue a raw frame. Thread-safe and non-blocking."""
        if self._closed:
            raise ConnectionClosedError("connection is closed")
        text = json.dumps(frame, separators=(",", ":"))
        self._loop.call_soon_threadsafe(self._queue.put_nowait, text)

    def close(self) -> None:
        """Stop accepting frames and let :meth:`pump` finish."""
        if self._closed:
            return
        self._closed = True
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, None)
        except RuntimeError:
            # Loop already gone; nothing left to drain.
            logger.debug("Event loop closed before connection shutdown")
        if self._on_close is not None:
            self._on_close(self)

    async def pump(self) -> None:
        """Write queued frames to the socket until closed or the socket fails."""
        while True:
            text = await self._queue.get()
            if text is None:
                return
            try:
                await self._websocket.send_text(text)
            except Exception:
                logger.exception("WebSocket write failed; closing connection")
                self.close()
                return

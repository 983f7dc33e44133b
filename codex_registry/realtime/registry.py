"""Connection registry — identity to live connections.

One identity may have several live connections at once (tabs, devices).
Events for an identity fan out to all of them over the single
``user-event`` channel as ``{"name": ..., "data": ...}``.

The registry is safe to call from any thread. Delivery happens while the
registry lock is held, so once :meth:`ConnectionRegistry.remove` returns no
further event reaches that connection. Connections must therefore make
``emit`` non-blocking (enqueue and return).
"""

from __future__ import annotations

import logging
from threading import RLock
from typing import Any, Optional, Protocol, runtime_checkable

from codex_registry.records.addresses import normalize_address

logger = logging.getLogger(__name__)

USER_EVENT_CHANNEL = "user-event"


@runtime_checkable
class Connection(Protocol):
    """Anything that can take a message for a named channel."""

    def emit(self, channel: str, message: dict[str, Any]) -> None:
        ...


class ConnectionRegistry:
    """Tracks live connections per identity."""

    def __init__(self, channel: str = USER_EVENT_CHANNEL) -> None:
        self._channel = channel
        self._lock = RLock()
        self._connections: dict[str, list[Connection]] = {}

    @property
    def channel(self) -> str:
        return self._channel

    @staticmethod
    def _key(identity: str) -> str:
        key = normalize_address(identity)
        if key is None:
            raise ValueError("connection identity must be a non-empty address")
        return key

    def add(self, identity: str, connection: Connection) -> None:
        """Register *connection* under *identity*."""
        key = self._key(identity)
        with self._lock:
            conns = self._connections.setdefault(key, [])
            if any(existing is connection for existing in conns):
                return
            conns.append(connection)
            count = len(conns)
        logger.debug("Connection added for %s (%d live)", key, count)

    def remove(self, identity: str, connection: Connection) -> bool:
        """Drop exactly *connection* from *identity*. ``False`` if it was not there."""
        key = normalize_address(identity)
        if key is None:
            return False
        with self._lock:
            conns = self._connections.get(key)
            if not conns:
                return False
            for index, existing in enumerate(conns):
                if existing is connection:
                    del conns[index]
                    break
            else:
                return False
            if not conns:
                self._connections.pop(key, None)
            count = len(conns)
        logger.debug("Connection removed for %s (%d live)", key, count)
        return True

    def emit(self, identity: str, event_name: str, payload: Any) -> int:
        """Send an event to every connection of *identity*.

        Returns the number of connections that accepted it. A failing
        connection is logged and skipped; the rest still get the event.
        """
        key = normalize_address(identity)
        if key is None:
            return 0
        message = {"name": event_name, "data": payload}
        delivered = 0
        with self._lock:
            conns = list(self._connections.get(key, ()))
            for connection in conns:
                try:
                    connection.emit(self._channel, message)
                except Exception:
                    logger.exception(
                        "Failed to deliver %r to a connection of %s", event_name, key
                    )
                    continue
                delivered += 1
        if not conns:
            logger.debug("No live connections for %s; dropping %r", key, event_name)
        return delivered

    def connection_count(self, identity: Optional[str] = None) -> int:
        with self._lock:
            if identity is not None:
                return len(self._connections.get(normalize_address(identity) or "", ()))
            return sum(len(v) for v in self._connections.values())

    def identities(self) -> list[str]:
        """Identities that currently have at least one connection."""
        with self._lock:
            return sorted(key for key, conns in self._connections.items() if conns)

    def connections(self, identity: str) -> list[Connection]:
        """Snapshot of the connections registered for *identity*."""
        with self._lock:
            return list(self._connections.get(normalize_address(identity) or "", ()))

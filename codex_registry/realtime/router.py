"""Event router — the seam business logic publishes through."""

from __future__ import annotations

import logging
from typing import Any

from codex_registry.realtime.registry import ConnectionRegistry

logger = logging.getLogger(__name__)


class EventRouter:
    """Pushes named events to every live connection of an identity.

    Delivery is best effort: an identity with no connections, or a
    connection that fails, never raises to the publisher.
    """

    def __init__(self, registry: ConnectionRegistry) -> None:
        self._registry = registry

    @property
    def registry(self) -> ConnectionRegistry:
        return self._registry

    def publish(self, identity: str, event_name: str, payload: Any = None) -> int:
        """Deliver *event_name* with *payload* to *identity*; returns delivery count."""
        delivered = self._registry.emit(identity, event_name, payload)
        logger.debug("Published %r to %s (%d delivered)", event_name, identity, delivered)
        return delivered

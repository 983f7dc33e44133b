"""Codex Registry — record visibility and real-time event delivery.

Two pieces carry the interesting invariants:

    from codex_registry.records import RecordProjector
    projector = RecordProjector()
    safe = projector.project(record, viewer="0xbb")

    from codex_registry.realtime import ConnectionRegistry, EventRouter
    registry = ConnectionRegistry()
    router = EventRouter(registry)
    router.publish("0xaa", "faucet-transfer:complete", {"amount": 10})
"""

__version__ = "0.3.0"

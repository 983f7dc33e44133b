"""Tests for codex_registry.realtime — connection registry and event router.

Tests cover:
  - add / remove / emit semantics and message shape
  - Removal targets the exact connection instance
  - Silent no-ops for unknown identities and connections
  - Per-connection failures do not stop delivery to siblings
  - Concurrent add / remove / emit from many threads
"""

import threading
from concurrent.futures import ThreadPoolExecutor

import pytest

from codex_registry.realtime import (
    USER_EVENT_CHANNEL,
    Connection,
    ConnectionRegistry,
    EventRouter,
)


class FakeConnection:
    """Records every emitted message."""

    def __init__(self, name: str = "") -> None:
        self.name = name
        self.received: list[tuple[str, dict]] = []
        self._lock = threading.Lock()

    def emit(self, channel: str, message: dict) -> None:
        with self._lock:
            self.received.append((channel, message))

    def __eq__(self, other):
        # Equal-looking connections must still be told apart by identity
        return isinstance(other, FakeConnection) and other.name == self.name

    __hash__ = object.__hash__


class BrokenConnection:
    def emit(self, channel: str, message: dict) -> None:
        raise ConnectionError("socket gone")


@pytest.fixture
def registry():
    return ConnectionRegistry()


class TestAddRemoveEmit:
    def test_fake_connection_satisfies_protocol(self):
        assert isinstance(FakeConnection(), Connection)

    def test_emit_shape(self, registry):
        conn = FakeConnection()
        registry.add("0xaa", conn)
        delivered = registry.emit("0xaa", "faucet-transfer:complete", {"amount": 10})
        assert delivered == 1
        assert conn.received == [
            (USER_EVENT_CHANNEL, {"name": "faucet-transfer:complete", "data": {"amount": 10}}),
        ]
        assert USER_EVENT_CHANNEL == "user-event"

    def test_emit_reaches_every_connection(self, registry):
        c1, c2, c3 = FakeConnection("1"), FakeConnection("2"), FakeConnection("3")
        for conn in (c1, c2, c3):
            registry.add("0xaa", conn)
        assert registry.emit("0xaa", "x", {}) == 3
        assert all(len(c.received) == 1 for c in (c1, c2, c3))

    def test_remove_then_emit_delivers_to_remaining(self, registry):
        c1, c2 = FakeConnection("1"), FakeConnection("2")
        registry.add("0xaa", c1)
        registry.add("0xaa", c2)
        assert registry.remove("0xaa", c1) is True

        registry.emit("0xaa", "x", {})

        assert c1.received == []
        assert c2.received == [(USER_EVENT_CHANNEL, {"name": "x", "data": {}})]

    def test_remove_targets_exact_instance(self, registry):
        twin_a, twin_b = FakeConnection("same"), FakeConnection("same")
        assert twin_a == twin_b
        registry.add("0xaa", twin_a)
        registry.add("0xaa", twin_b)

        registry.remove("0xaa", twin_b)

        assert registry.connections("0xaa") == [twin_a]
        assert registry.connections("0xaa")[0] is twin_a

    def test_insertion_order_kept(self, registry):
        conns = [FakeConnection(str(i)) for i in range(4)]
        for conn in conns:
            registry.add("0xaa", conn)
        assert all(a is b for a, b in zip(registry.connections("0xaa"), conns))

    def test_adding_same_instance_twice_registers_once(self, registry):
        conn = FakeConnection()
        registry.add("0xaa", conn)
        registry.add("0xaa", conn)
        assert registry.emit("0xaa", "x", None) == 1

    def test_emit_to_unregistered_identity_is_noop(self, registry):
        assert registry.emit("unregistered-address", "x", {}) == 0

    def test_remove_unknown_identity_is_noop(self, registry):
        assert registry.remove("0xzz", FakeConnection()) is False

    def test_remove_unknown_connection_is_noop(self, registry):
        registry.add("0xaa", FakeConnection("1"))
        assert registry.remove("0xaa", FakeConnection("2")) is False
        assert registry.connection_count("0xaa") == 1

    def test_empty_identity_entries_dropped(self, registry):
        conn = FakeConnection()
        registry.add("0xaa", conn)
        registry.remove("0xaa", conn)
        assert registry.identities() == []
        assert registry.connection_count() == 0

    def test_identities_are_case_insensitive(self, registry):
        conn = FakeConnection()
        registry.add("0xAA", conn)
        assert registry.emit("0xaa", "x", {}) == 1
        assert registry.remove("0xAa", conn) is True

    def test_blank_identity_rejected_on_add(self, registry):
        with pytest.raises(ValueError):
            registry.add("  ", FakeConnection())

    def test_identities_do_not_cross(self, registry):
        mine, theirs = FakeConnection("mine"), FakeConnection("theirs")
        registry.add("0xaa", mine)
        registry.add("0xbb", theirs)
        registry.emit("0xaa", "x", {})
        assert theirs.received == []

    def test_custom_channel(self):
        registry = ConnectionRegistry(channel="codex-event")
        conn = FakeConnection()
        registry.add("0xaa", conn)
        registry.emit("0xaa", "x", 1)
        assert conn.received[0][0] == "codex-event"


class TestDeliveryFailures:
    def test_failing_connection_does_not_stop_siblings(self, registry, caplog):
        before, after = FakeConnection("before"), FakeConnection("after")
        registry.add("0xaa", before)
        registry.add("0xaa", BrokenConnection())
        registry.add("0xaa", after)

        with caplog.at_level("ERROR"):
            delivered = registry.emit("0xaa", "x", {})

        assert delivered == 2
        assert len(before.received) == 1
        assert len(after.received) == 1
        assert "Failed to deliver" in caplog.text

    def test_router_never_raises_on_failure(self, registry):
        registry.add("0xaa", BrokenConnection())
        assert EventRouter(registry).publish("0xaa", "x", {}) == 0


class TestEventRouter:
    def test_publish_delegates_to_registry(self, registry):
        conn = FakeConnection()
        registry.add("0xaa", conn)
        router = EventRouter(registry)

        assert router.publish("0xaa", "record:approved", {"tokenId": "7"}) == 1
        assert conn.received == [
            (USER_EVENT_CHANNEL, {"name": "record:approved", "data": {"tokenId": "7"}}),
        ]
        assert router.registry is registry

    def test_publish_to_offline_identity(self, registry):
        assert EventRouter(registry).publish("0xoffline", "x") == 0


class TestConcurrency:
    def test_concurrent_adds_are_all_retained(self, registry):
        conns = [FakeConnection(str(i)) for i in range(200)]
        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(lambda c: registry.add("0xaa", c), conns))

        assert registry.connection_count("0xaa") == 200
        assert registry.emit("0xaa", "x", {}) == 200
        assert all(len(c.received) == 1 for c in conns)

    def test_concurrent_add_and_remove(self, registry):
        keep = [FakeConnection(f"keep-{i}") for i in range(100)]
        drop = [FakeConnection(f"drop-{i}") for i in range(100)]
        for conn in drop:
            registry.add("0xaa", conn)

        def work(i):
            registry.add("0xaa", keep[i])
            assert registry.remove("0xaa", drop[i]) is True

        with ThreadPoolExecutor(max_workers=16) as pool:
            list(pool.map(work, range(100)))

        remaining = registry.connections("0xaa")
        assert len(remaining) == 100
        assert {id(c) for c in remaining} == {id(c) for c in keep}

    def test_no_delivery_after_remove_returns(self, registry):
        victim = FakeConnection("victim")
        stable = FakeConnection("stable")
        registry.add("0xaa", victim)
        registry.add("0xaa", stable)
        removed = threading.Event()
        late_deliveries = []

        original_emit = victim.emit

        def checked_emit(channel, message):
            if removed.is_set():
                late_deliveries.append(message)
            original_emit(channel, message)

        victim.emit = checked_emit

        def publisher():
            for i in range(500):
                registry.emit("0xaa", "tick", i)

        thread = threading.Thread(target=publisher)
        thread.start()
        registry.remove("0xaa", victim)
        removed.set()
        thread.join()

        assert late_deliveries == []
        assert len(stable.received) == 500

    def test_concurrent_emits_deliver_once_each(self, registry):
        conns = [FakeConnection(str(i)) for i in range(10)]
        for conn in conns:
            registry.add("0xaa", conn)

        with ThreadPoolExecutor(max_workers=8) as pool:
            results = list(pool.map(lambda i: registry.emit("0xaa", "x", i), range(100)))

        assert results == [10] * 100
        for conn in conns:
            assert sorted(m["data"] for _, m in conn.received) == list(range(100))

"""Unit tests for the session registry and broadcast notifier."""

import threading
from unittest.mock import MagicMock

import pytest

from serialgate.core.models import LifecycleAction, LifecycleEvent
from serialgate.web.notifier import NOTIFY_EVENT, BroadcastNotifier
from serialgate.web.registry import SessionRegistry


def make_session(sid):
    session = MagicMock()
    session.sid = sid
    return session


@pytest.fixture
def registry():
    return SessionRegistry()


class TestSessionRegistry:
    """Tests for SessionRegistry."""

    def test_register_and_get(self, registry):
        session = make_session("a")
        registry.register(session)

        assert registry.get("a") is session
        assert "a" in registry
        assert len(registry) == 1

    def test_register_duplicate(self, registry):
        registry.register(make_session("a"))
        with pytest.raises(ValueError):
            registry.register(make_session("a"))

    def test_unregister(self, registry):
        session = make_session("a")
        registry.register(session)

        assert registry.unregister("a") is session
        assert registry.unregister("a") is None
        assert "a" not in registry
        assert len(registry) == 0

    def test_sids_snapshot(self, registry):
        registry.register(make_session("a"))
        registry.register(make_session("b"))
        sids = registry.sids()
        registry.unregister("a")

        assert sorted(sids) == ["a", "b"]

    def test_for_each_excludes(self, registry):
        for sid in ("a", "b", "c"):
            registry.register(make_session(sid))

        seen = []
        registry.for_each(lambda s: seen.append(s.sid), exclude="b")

        assert sorted(seen) == ["a", "c"]

    def test_mutation_during_iteration(self, registry):
        """Test callbacks may register and unregister sessions safely."""
        registry.register(make_session("a"))
        registry.register(make_session("b"))

        def fn(session):
            registry.unregister(session.sid)
            registry.register(make_session(session.sid + "2"))

        registry.for_each(fn)
        assert sorted(registry.sids()) == ["a2", "b2"]

    def test_concurrent_register_unregister(self, registry):
        """Test many threads connecting and disconnecting at once."""

        def churn(n):
            for i in range(200):
                sid = f"{n}-{i}"
                registry.register(make_session(sid))
                registry.for_each(lambda s: None)
                registry.unregister(sid)

        threads = [threading.Thread(target=churn, args=(n,)) for n in range(8)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()

        assert len(registry) == 0


class TestBroadcastNotifier:
    """Tests for BroadcastNotifier."""

    def test_excludes_sender(self, registry):
        """Test the emitting session is not notified; all others are."""
        a, b, c = make_session("a"), make_session("b"), make_session("c")
        for s in (a, b, c):
            registry.register(s)
        notifier = BroadcastNotifier(registry)

        event = LifecycleEvent(LifecycleAction.OPEN_PORT, "/dev/ttyUSB0", "A", source_sid="a")
        delivered = notifier.broadcast(event)

        assert delivered == 2
        a.emit.assert_not_called()
        expected = {"action": "openPort", "path": "/dev/ttyUSB0", "DisplayName": "A"}
        b.emit.assert_called_once_with(NOTIFY_EVENT, expected)
        c.emit.assert_called_once_with(NOTIFY_EVENT, expected)

    def test_includes_error_message(self, registry):
        b = make_session("b")
        registry.register(b)
        notifier = BroadcastNotifier(registry)

        notifier.broadcast(
            LifecycleEvent(
                LifecycleAction.SUDDEN_PORT_DISC,
                "/dev/ttyUSB0",
                "A",
                message="unplugged",
                source_sid="a",
            )
        )

        payload = b.emit.call_args.args[1]
        assert payload["action"] == "suddenPortDisc"
        assert payload["err"] == "unplugged"

    def test_no_delivery_after_unregister(self, registry):
        a, b = make_session("a"), make_session("b")
        registry.register(a)
        registry.register(b)
        registry.unregister("b")
        notifier = BroadcastNotifier(registry)

        notifier.broadcast(LifecycleEvent(LifecycleAction.CLOSE_PORT, "/dev/x", "A", source_sid="a"))

        b.emit.assert_not_called()

    def test_failed_delivery_does_not_stop_others(self, registry):
        """Test one broken receiver does not block the rest."""
        bad, good = make_session("bad"), make_session("good")
        bad.emit.side_effect = RuntimeError("socket gone")
        registry.register(bad)
        registry.register(good)
        notifier = BroadcastNotifier(registry)

        delivered = notifier.broadcast(
            LifecycleEvent(LifecycleAction.OPEN_PORT, "/dev/x", "A", source_sid="a")
        )

        assert delivered == 1
        good.emit.assert_called_once()

    def test_empty_registry(self, registry):
        notifier = BroadcastNotifier(registry)
        event = LifecycleEvent(LifecycleAction.OPEN_PORT, "/dev/x", "A", source_sid="a")
        assert notifier.broadcast(event) == 0

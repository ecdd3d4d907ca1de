"""
Tests for the controller inbox and the observer bus
"""

import threading

from maestro.core.events import (
    Command,
    ControlEvent,
    EventBus,
    EventQueue,
    EventType,
    PlayerEvent,
)


class TestEventQueue:
    """Test suite for EventQueue."""

    def test_fifo_drain(self):
        inbox = EventQueue()
        inbox.put(ControlEvent.tick())
        inbox.put(ControlEvent.fade_step(3))
        inbox.put(ControlEvent.command(Command.SET_MODE, mode="static"))
        assert len(inbox) == 3

        events = list(inbox.drain())
        assert [e.type for e in events] == [EventType.TICK, EventType.FADE_STEP, EventType.COMMAND]
        assert events[1].payload == {"generation": 3}
        assert events[2].payload == {"command": Command.SET_MODE, "mode": "static"}
        assert len(inbox) == 0

    def test_get_timeout(self):
        assert EventQueue().get(timeout=0.01) is None

    def test_full_queue_drops(self):
        inbox = EventQueue(maxsize=1)
        assert inbox.put(ControlEvent.tick())
        assert not inbox.put(ControlEvent.tick())
        assert inbox.dropped == 1

    def test_concurrent_producers(self):
        inbox = EventQueue()

        def produce():
            for _ in range(100):
                inbox.put(ControlEvent.player_event(PlayerEvent.PLAY))

        threads = [threading.Thread(target=produce) for _ in range(4)]
        for t in threads:
            t.start()
        for t in threads:
            t.join()
        assert len(list(inbox.drain())) == 400


class TestEventBus:
    """Test suite for EventBus."""

    def test_emit_passes_kwargs(self):
        bus = EventBus()
        received = []
        bus.subscribe("mode_changed", lambda mode: received.append(mode))
        bus.emit("mode_changed", mode="static")
        assert received == ["static"]

    def test_priority_order(self):
        bus = EventBus()
        order = []
        bus.subscribe("x", lambda: order.append("low"), priority=0)
        bus.subscribe("x", lambda: order.append("high"), priority=10)
        bus.emit("x")
        assert order == ["high", "low"]

    def test_failing_listener_isolated(self):
        bus = EventBus()
        received = []

        def broken(**kwargs):
            raise RuntimeError("boom")

        bus.subscribe("x", broken, priority=1)
        bus.subscribe("x", lambda **kwargs: received.append(kwargs))
        bus.emit("x", value=1)
        assert received == [{"value": 1}]

    def test_unsubscribe_and_clear(self):
        bus = EventBus()
        received = []
        callback = received.append
        bus.subscribe("x", lambda: None)
        bus.subscribe("y", callback)
        assert bus.listener_count == 2
        bus.unsubscribe("y", callback)
        assert bus.listener_count == 1
        bus.clear()
        assert bus.listener_count == 0

    def test_history(self):
        bus = EventBus(max_history=2)
        for name in ("a", "b", "c"):
            bus.emit(name, value=1)
        history = bus.get_history()
        assert [h.event for h in history] == ["b", "c"]
        assert history[-1].data_keys == ("value",)

    def test_history_bounded_and_filtered(self):
        bus = EventBus(max_history=50)
        for i in range(200):
            bus.emit("tick" if i % 2 else "status", value=i)
        assert len(bus.get_history(last_n=500)) == 50
        statuses = bus.get_history(last_n=3, event_name="status")
        assert [h.event for h in statuses] == ["status"] * 3
        assert bus.get_history(event_name="missing") == []

    def test_buses_are_independent(self):
        first, second = EventBus(), EventBus()
        first.subscribe("x", lambda: None)
        assert second.listener_count == 0

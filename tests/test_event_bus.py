"""Tests for the turn event bus."""

from nomenklatura.state.event_bus import EventBus, EventType, GameEvent


class TestEventBus:

    def test_emit_reaches_subscribers_in_order(self, bus):
        seen = []
        bus.on(EventType.INCIDENT_FIRED, lambda e: seen.append(("first", e.data["incident_type"])))
        bus.on(EventType.INCIDENT_FIRED, lambda e: seen.append(("second", e.turn)))
        event = bus.emit(EventType.INCIDENT_FIRED, turn=4, incident_type="rival_action")
        assert isinstance(event, GameEvent)
        assert seen == [("first", "rival_action"), ("second", 4)]

    def test_duplicate_subscription_ignored(self, bus):
        calls = []
        handler = calls.append
        bus.on(EventType.TURN_END, handler)
        bus.on(EventType.TURN_END, handler)
        bus.emit(EventType.TURN_END)
        assert len(calls) == 1
        assert bus.listener_count(EventType.TURN_END) == 1

    def test_off(self, bus):
        calls = []
        bus.on(EventType.TURN_END, calls.append)
        bus.off(EventType.TURN_END, calls.append)
        bus.off(EventType.TURN_END, calls.append)
        bus.emit(EventType.TURN_END)
        assert calls == []

    def test_raising_handler_does_not_stop_others(self, bus):
        calls = []

        def broken(event):
            raise ValueError("listener bug")

        bus.on(EventType.QUIET_TURN, broken)
        bus.on(EventType.QUIET_TURN, calls.append)
        bus.emit(EventType.QUIET_TURN, reason="pacing")
        assert len(calls) == 1

    def test_history_filter_and_limit(self):
        bus = EventBus(history_limit=3)
        for turn in range(5):
            bus.emit(EventType.TURN_STARTED, turn=turn)
        bus.emit(EventType.TURN_END, turn=5)
        assert [e.turn for e in bus.get_history()] == [3, 4, 5]
        assert [e.turn for e in bus.get_history(EventType.TURN_END)] == [5]

    def test_clear(self, bus):
        bus.on(EventType.TURN_END, lambda e: None)
        bus.emit(EventType.TURN_END)
        bus.clear()
        assert bus.get_history() == []
        assert bus.listener_count(EventType.TURN_END) == 0

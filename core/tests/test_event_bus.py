"""Tests for the synchronous EventBus."""

from flowforge.runtime.event_bus import EventBus, EventType, WorkflowEvent


class TestSubscriptions:
    def test_handler_receives_subscribed_types_only(self):
        bus = EventBus()
        received = []
        bus.subscribe([EventType.NODE_CREATED], received.append)

        bus.emit(EventType.NODE_CREATED, node_id="a")
        bus.emit(EventType.NODE_DELETED, node_id="a")

        assert [e.type for e in received] == [EventType.NODE_CREATED]

    def test_filter_node(self):
        bus = EventBus()
        received = []
        bus.subscribe([EventType.NODE_MOVED], received.append, filter_node="b")

        bus.emit(EventType.NODE_MOVED, node_id="a")
        bus.emit(EventType.NODE_MOVED, node_id="b")

        assert [e.node_id for e in received] == ["b"]

    def test_filter_run(self):
        bus = EventBus()
        received = []
        bus.subscribe([EventType.NODE_STATE_CHANGED], received.append, filter_run="run-2")

        bus.emit(EventType.NODE_STATE_CHANGED, node_id="a", run_id="run-1")
        bus.emit(EventType.NODE_STATE_CHANGED, node_id="a", run_id="run-2")

        assert [e.run_id for e in received] == ["run-2"]

    def test_failing_handler_does_not_stop_others(self):
        bus = EventBus()
        received = []

        def broken(event):
            raise RuntimeError("listener bug")

        bus.subscribe([EventType.CUSTOM], broken)
        bus.subscribe([EventType.CUSTOM], received.append)

        bus.emit(EventType.CUSTOM, message="hello")

        assert len(received) == 1
        assert received[0].message == "hello"

    def test_unsubscribe(self):
        bus = EventBus()
        received = []
        sub_id = bus.subscribe([EventType.CUSTOM], received.append)
        assert bus.subscriber_count == 1

        assert bus.unsubscribe(sub_id) is True
        assert bus.unsubscribe(sub_id) is False
        bus.emit(EventType.CUSTOM)

        assert received == []
        assert bus.subscriber_count == 0

    def test_handler_may_unsubscribe_itself(self):
        bus = EventBus()
        calls = []

        def once(event):
            calls.append(event)
            bus.unsubscribe(sub_id)

        sub_id = bus.subscribe([EventType.CUSTOM], once)
        bus.emit(EventType.CUSTOM)
        bus.emit(EventType.CUSTOM)

        assert len(calls) == 1


class TestPollingAndHistory:
    def test_drain(self):
        bus = EventBus()
        bus.emit(EventType.NODE_CREATED, node_id="a")
        bus.emit(EventType.NODE_CREATED, node_id="b")

        assert [e.node_id for e in bus.drain()] == ["a", "b"]
        assert bus.drain() == []
        # draining does not touch the history
        assert len(bus.get_history()) == 2

    def test_history_filters(self):
        bus = EventBus()
        bus.emit(EventType.NODE_CREATED, node_id="a")
        bus.emit(EventType.NODE_MOVED, node_id="a")
        bus.emit(EventType.NODE_CREATED, node_id="b")

        assert len(bus.get_history(EventType.NODE_CREATED)) == 2
        assert [e.type for e in bus.get_history(node_id="a")] == [
            EventType.NODE_CREATED,
            EventType.NODE_MOVED,
        ]
        assert [e.node_id for e in bus.get_history(limit=1)] == ["b"]
        assert bus.get_history(limit=0) == []

    def test_history_is_bounded(self):
        bus = EventBus(max_history=3)
        for i in range(5):
            bus.emit(EventType.CUSTOM, node_id=str(i))
        assert [e.node_id for e in bus.get_history()] == ["2", "3", "4"]

    def test_clear_history(self):
        bus = EventBus()
        bus.emit(EventType.CUSTOM)
        bus.clear_history()
        assert bus.get_history() == []
        assert bus.drain() == []


def test_event_to_dict():
    event = WorkflowEvent(
        type=EventType.NODES_CONNECTED,
        node_id="a",
        message="connected",
        data={"target_id": "b"},
    )
    data = event.to_dict()
    assert data["type"] == "nodes_connected"
    assert data["node_id"] == "a"
    assert data["run_id"] is None
    assert data["data"] == {"target_id": "b"}
    assert "timestamp" in data


def test_emit_returns_published_event():
    bus = EventBus()
    event = bus.emit(EventType.GRAPH_CLEARED, message="cleared", reason="test")
    assert event.data == {"reason": "test"}
    assert bus.get_history() == [event]

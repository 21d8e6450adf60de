"""Tests for analytics events and sinks."""

from unittest.mock import Mock

import pytest
from flow_core.events import (
    CompositeEventSink,
    EventSink,
    EventType,
    FlowEvent,
    InMemoryEventSink,
    LoggingEventSink,
    detect_telco,
    publish_event,
)
from flow_runtime import Session


@pytest.fixture
def session():
    """Create a session at the start node."""
    return Session(
        flow_id="balance",
        phone_number="+233 24 123 4567",
        ussd_code="*123#",
        current_node_id="start",
    )


class TestDetectTelco:
    """Tests for network detection."""

    @pytest.mark.parametrize(
        "phone_number, telco",
        [
            ("0241234567", "mtn"),
            ("233241234567", "mtn"),
            ("+233 24 123 4567", "mtn"),
            ("0201234567", "telecel"),
            ("0271234567", "airteltigo"),
            ("0551234567", "unknown"),
            ("", "unknown"),
        ],
    )
    def test_prefixes(self, phone_number, telco):
        """Test prefix detection across formats."""
        assert detect_telco(phone_number) == telco


class TestFlowEvent:
    """Tests for FlowEvent."""

    def test_for_session(self, session):
        """Test building an event from a session."""
        event = FlowEvent.for_session(EventType.NODE_VISITED, session, node_type="menu")

        assert event.session_id == session.session_id
        assert event.flow_id == "balance"
        assert event.node_id == "start"
        assert event.telco == "mtn"
        assert event.data == {"node_type": "menu"}

    def test_explicit_node_id(self, session):
        """Test overriding the reported node."""
        event = FlowEvent.for_session(EventType.ACTION_INITIATED, session, node_id="pay")

        assert event.node_id == "pay"

    def test_to_dict(self, session):
        """Test serialisation for external sinks."""
        data = FlowEvent.for_session(EventType.SESSION_STARTED, session).to_dict()

        assert data["event_type"] == "session_started"
        assert data["flow_id"] == "balance"
        assert isinstance(data["timestamp"], str)


class TestInMemoryEventSink:
    """Tests for InMemoryEventSink."""

    def test_records_in_order(self, session):
        """Test that events are kept in emission order."""
        sink = InMemoryEventSink()

        sink.emit(FlowEvent.for_session(EventType.SESSION_STARTED, session))
        sink.emit(FlowEvent.for_session(EventType.INPUT_RECEIVED, session))

        assert sink.types() == [EventType.SESSION_STARTED, EventType.INPUT_RECEIVED]
        assert len(sink.events(EventType.INPUT_RECEIVED)) == 1
        assert sink.events(session_id="sess_other") == []

    def test_max_events(self, session):
        """Test that only the newest events are kept."""
        sink = InMemoryEventSink(max_events=2)

        for event_type in (EventType.SESSION_STARTED, EventType.INPUT_RECEIVED, EventType.NODE_VISITED):
            sink.emit(FlowEvent.for_session(event_type, session))

        assert sink.types() == [EventType.INPUT_RECEIVED, EventType.NODE_VISITED]

    def test_clear(self, session):
        """Test clearing recorded events."""
        sink = InMemoryEventSink()
        sink.emit(FlowEvent.for_session(EventType.SESSION_STARTED, session))

        sink.clear()

        assert sink.events() == []


class TestPublishEvent:
    """Tests for fire-and-forget delivery."""

    def test_none_sink(self, session):
        """Test that a missing sink drops the event."""
        publish_event(None, FlowEvent.for_session(EventType.SESSION_STARTED, session))

    def test_failing_sink_is_swallowed(self, session):
        """Test that sink errors never reach the caller."""
        sink = Mock(spec=EventSink)
        sink.emit.side_effect = RuntimeError("sink down")

        publish_event(sink, FlowEvent.for_session(EventType.SESSION_STARTED, session))

        sink.emit.assert_called_once()

    def test_composite_isolates_sinks(self, session):
        """Test that one broken sink does not starve the others."""
        broken = Mock(spec=EventSink)
        broken.emit.side_effect = RuntimeError("sink down")
        memory = InMemoryEventSink()

        CompositeEventSink([broken, memory, LoggingEventSink()]).emit(
            FlowEvent.for_session(EventType.SESSION_STARTED, session)
        )

        assert memory.types() == [EventType.SESSION_STARTED]

"""Analytics events emitted by the session engine.

Events are delivered fire-and-forget: a sink that fails is logged and never
affects the session that produced the event.
"""

import re
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from threading import Lock
from typing import Any, Dict, List, Optional, Sequence

import structlog
from flow_runtime import Session, utcnow

logger = structlog.get_logger(__name__)

# Ghanaian network prefixes, after stripping non-digits
TELCO_PREFIXES = (
    (re.compile(r"^(233|0)24"), "mtn"),
    (re.compile(r"^(233|0)20"), "telecel"),
    (re.compile(r"^(233|0)27"), "airteltigo"),
)


def detect_telco(phone_number: str) -> str:
    """Guess the mobile network from a phone number prefix.

    Args:
        phone_number: Phone number in any formatting

    Returns:
        Network name, or "unknown"
    """
    digits = re.sub(r"\D", "", phone_number)
    for pattern, telco in TELCO_PREFIXES:
        if pattern.match(digits):
            return telco
    return "unknown"


class EventType(str, Enum):
    """Kinds of analytics event."""

    SESSION_STARTED = "session_started"
    NODE_VISITED = "node_visited"
    INPUT_RECEIVED = "input_received"
    ERROR_OCCURRED = "error_occurred"
    ACTION_INITIATED = "action_initiated"
    SESSION_COMPLETED = "session_completed"
    SESSION_TERMINATED = "session_terminated"
    SESSION_EXPIRED = "session_expired"


@dataclass(frozen=True)
class FlowEvent:
    """A single analytics event.

    Attributes:
        event_type: What happened
        session_id: Session the event belongs to
        flow_id: Flow the session runs
        node_id: Node the session was at, where applicable
        phone_number: Caller's phone number
        telco: Network detected from the phone number
        timestamp: When the event was produced
        data: Event-specific payload
    """

    event_type: EventType
    session_id: str
    flow_id: str
    node_id: Optional[str] = None
    phone_number: Optional[str] = None
    telco: str = "unknown"
    timestamp: datetime = field(default_factory=utcnow)
    data: Dict[str, Any] = field(default_factory=dict)

    @classmethod
    def for_session(
        cls,
        event_type: EventType,
        session: Session,
        node_id: Optional[str] = None,
        **data: Any,
    ) -> "FlowEvent":
        """Build an event describing ``session``.

        Args:
            event_type: What happened
            session: Session the event is about
            node_id: Node to report (defaults to the session's current node)
            **data: Event-specific payload

        Returns:
            The new FlowEvent
        """
        return cls(
            event_type=event_type,
            session_id=session.session_id,
            flow_id=session.flow_id,
            node_id=node_id if node_id is not None else session.current_node_id,
            phone_number=session.phone_number,
            telco=detect_telco(session.phone_number),
            data=data,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the event for external sinks."""
        return {
            "event_type": self.event_type.value,
            "session_id": self.session_id,
            "flow_id": self.flow_id,
            "node_id": self.node_id,
            "phone_number": self.phone_number,
            "telco": self.telco,
            "timestamp": self.timestamp.isoformat(),
            "data": dict(self.data),
        }


class EventSink(ABC):
    """Destination for analytics events."""

    @abstractmethod
    def emit(self, event: FlowEvent) -> None:
        """Deliver one event.

        Args:
            event: Event to deliver
        """
        pass


class InMemoryEventSink(EventSink):
    """Keeps events in memory; used by the API and in tests."""

    def __init__(self, max_events: Optional[int] = None) -> None:
        self._events: List[FlowEvent] = []
        self._max_events = max_events
        self._lock = Lock()

    def emit(self, event: FlowEvent) -> None:
        with self._lock:
            self._events.append(event)
            if self._max_events is not None and len(self._events) > self._max_events:
                del self._events[: len(self._events) - self._max_events]

    def events(
        self,
        event_type: Optional[EventType] = None,
        session_id: Optional[str] = None,
    ) -> List[FlowEvent]:
        """Get recorded events, optionally filtered."""
        with self._lock:
            events = list(self._events)
        if event_type is not None:
            events = [e for e in events if e.event_type == event_type]
        if session_id is not None:
            events = [e for e in events if e.session_id == session_id]
        return events

    def types(self, session_id: Optional[str] = None) -> List[EventType]:
        """Event types recorded so far, in order."""
        return [e.event_type for e in self.events(session_id=session_id)]

    def clear(self) -> None:
        with self._lock:
            self._events.clear()


class LoggingEventSink(EventSink):
    """Writes every event to the structured log."""

    def __init__(self) -> None:
        self._logger = structlog.get_logger("flow_events")

    def emit(self, event: FlowEvent) -> None:
        payload = event.to_dict()
        self._logger.info(payload.pop("event_type"), **payload)


class CompositeEventSink(EventSink):
    """Fans events out to several sinks."""

    def __init__(self, sinks: Sequence[EventSink]) -> None:
        self.sinks = list(sinks)

    def emit(self, event: FlowEvent) -> None:
        for sink in self.sinks:
            publish_event(sink, event)


def publish_event(sink: Optional[EventSink], event: FlowEvent) -> None:
    """Deliver an event without letting sink failures escape.

    Args:
        sink: Destination (None drops the event)
        event: Event to deliver
    """
    if sink is None:
        return
    try:
        sink.emit(event)
    except Exception as e:
        logger.error(
            "event_delivery_failed",
            event_type=event.event_type.value,
            session_id=event.session_id,
            error=str(e),
        )

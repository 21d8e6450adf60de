"""Session state machine for the USSD flow engine.

This module provides the engine that creates sessions, advances them one
input at a time through their flow graph, and moves them into a terminal
state (completed, terminated or expired).

The engine is the only writer of a session's ``status`` and
``current_node_id``. Every mutation happens while holding that session's
lock, so duplicate requests, terminations and the expiry sweeper never
interleave on the same session.
"""

import time
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Any, Dict, List, Optional, Union

import structlog
from flow_config import BaseNode, EndNode, EngineSettings, FlowGraph
from flow_runtime import FlowRegistry, Session, SessionLocks, SessionStatus, SessionStore, utcnow

from .actions import ExternalActionExecutor
from .dispatcher import NodeDispatcher
from .errors import (
    FlowNotFoundError,
    FlowValidationError,
    InvalidStateError,
    NodeNotFoundError,
    SessionNotFoundError,
)
from .events import EventSink, EventType, FlowEvent, publish_event
from .graph import create_turn_graph, create_turn_state
from .metrics import ACTIVE_SESSIONS, INPUT_LATENCY, INPUTS_PROCESSED, NODE_VISITS, SESSIONS, VALIDATIONS
from .prompt import render_prompt
from .validation import FlowValidator, ValidationResult

if TYPE_CHECKING:
    from langgraph.graph.state import CompiledStateGraph  # type: ignore[import-not-found]

logger = structlog.get_logger(__name__)

DEFAULT_CLOSING_PROMPT = "Thank you. Goodbye."


@dataclass
class NavigationResult:
    """What the request layer shows after one turn.

    Attributes:
        session_id: Session that was advanced
        prompt: Text to display on the handset
        terminated: Whether the session is finished
        error: Recoverable error message when the input was rejected
        status: Session status after the turn
        node_id: Node the session is now at
    """

    session_id: str
    prompt: str
    terminated: bool
    error: Optional[str]
    status: SessionStatus
    node_id: Optional[str]

    def to_dict(self) -> Dict[str, Any]:
        """Serialise the result for the request layer."""
        return {
            "session_id": self.session_id,
            "prompt": self.prompt,
            "terminated": self.terminated,
            "error": self.error,
            "status": self.status.value,
            "node_id": self.node_id,
        }


SessionRef = Union[str, Session]


def _session_id(session: SessionRef) -> str:
    return session if isinstance(session, str) else session.session_id


class SessionEngine:
    """Drives USSD sessions through published flow graphs."""

    def __init__(
        self,
        registry: Optional[FlowRegistry] = None,
        store: Optional[SessionStore] = None,
        settings: Optional[EngineSettings] = None,
        event_sink: Optional[EventSink] = None,
        action_executor: Optional[ExternalActionExecutor] = None,
        locks: Optional[SessionLocks] = None,
    ):
        """Initialize the session engine.

        Args:
            registry: Published flows (a fresh in-memory registry if omitted)
            store: Session store (a fresh in-memory store if omitted)
            settings: Engine settings (defaults if omitted)
            event_sink: Destination for analytics events
            action_executor: Capability used by payment and api nodes
            locks: Per-session locks (shared with the expiry sweeper)
        """
        self.settings = settings or EngineSettings()
        self.registry = registry if registry is not None else FlowRegistry()
        self.store = store if store is not None else SessionStore()
        self.event_sink = event_sink
        self.locks = locks if locks is not None else SessionLocks()
        self.validator = FlowValidator(max_prompt_length=self.settings.max_prompt_length)
        self.dispatcher = NodeDispatcher(action_executor, self.settings.action_timeout_seconds)
        self._graph: Optional[CompiledStateGraph] = None

    @property
    def graph(self) -> "CompiledStateGraph":
        """Get or create the turn pipeline graph.

        Returns:
            Compiled LangGraph state machine
        """
        if self._graph is None:
            self._graph = create_turn_graph(self)
        return self._graph

    # ------------------------------------------------------------------ flows

    def validate_flow(self, flow: FlowGraph) -> ValidationResult:
        """Validate a flow graph without publishing it.

        Args:
            flow: Graph to validate

        Returns:
            ValidationResult for the graph
        """
        result = self.validator.validate(flow)
        VALIDATIONS.labels(result="valid" if result.is_valid else "invalid").inc()
        return result

    def publish_flow(self, flow: FlowGraph) -> FlowGraph:
        """Validate a flow and make it the current version for new sessions.

        Args:
            flow: Graph to publish

        Returns:
            The graph as stored by the registry

        Raises:
            FlowValidationError: If the graph has error-severity issues
        """
        result = self.validate_flow(flow)
        if not result.is_valid:
            logger.warning(
                "flow_rejected",
                flow_id=flow.id,
                errors=[issue.kind.value for issue in result.errors],
            )
            raise FlowValidationError(flow.id, result)

        published = self.registry.publish(flow)
        logger.info(
            "flow_published",
            flow_id=published.id,
            version=published.version,
            warnings=len(result.warnings),
        )
        return published

    def flow_for(self, session: Session) -> FlowGraph:
        """Get the flow version a session is pinned to.

        Raises:
            FlowNotFoundError: If that version is no longer stored
        """
        flow = self.registry.get_version(session.flow_id, session.flow_version)
        if flow is None:
            logger.error(
                "pinned_flow_missing",
                session_id=session.session_id,
                flow_id=session.flow_id,
                version=session.flow_version,
            )
            raise FlowNotFoundError(session.flow_id, session.flow_version)
        return flow

    def _current_node(self, session: Session, flow: FlowGraph) -> BaseNode:
        node = flow.get_node(session.current_node_id)
        if node is None:
            logger.error(
                "fatal_inconsistency",
                reason="current node missing from published flow",
                session_id=session.session_id,
                flow_id=flow.id,
                node_id=session.current_node_id,
            )
            raise NodeNotFoundError(flow.id, session.current_node_id)
        return node

    # --------------------------------------------------------------- sessions

    def get_session(self, session_id: str) -> Session:
        """Get a session by id.

        Raises:
            SessionNotFoundError: If the id is unknown
        """
        session = self.store.get(session_id)
        if session is None:
            raise SessionNotFoundError(session_id)
        return session

    async def create_session(self, flow_id: str, phone_number: str, ussd_code: str) -> Session:
        """Start a session, or resume the caller's unexpired active one.

        Args:
            flow_id: Published flow to run
            phone_number: Caller's phone number
            ussd_code: Dialled USSD code

        Returns:
            The new or resumed Session

        Raises:
            FlowNotFoundError: If the flow is not published
        """
        flow = self.registry.get(flow_id)
        if flow is None:
            raise FlowNotFoundError(flow_id)

        start_key = f"start:{flow_id}:{phone_number}:{ussd_code}"
        async with self.locks.hold(start_key):
            existing = self.store.find_active(flow_id, phone_number, ussd_code)
            if existing is not None:
                logger.info("session_resumed", session_id=existing.session_id, flow_id=flow_id)
                return existing

            now = utcnow()
            session = Session(
                flow_id=flow.id,
                flow_version=flow.version,
                phone_number=phone_number,
                ussd_code=ussd_code,
                current_node_id=flow.start_node_id,
                variables=dict(flow.variables),
                started_at=now,
                last_activity_at=now,
                expires_at=now + timedelta(seconds=self.settings.session_timeout_seconds),
            )
            node = self._current_node(session, flow)

            async with self.locks.hold(session.session_id):
                self.store.create(session)
                ACTIVE_SESSIONS.inc()
                SESSIONS.labels(status="started").inc()
                self.emit(EventType.SESSION_STARTED, session, ussd_code=ussd_code, flow_version=flow.version)
                logger.info(
                    "session_started",
                    session_id=session.session_id,
                    flow_id=flow.id,
                    flow_version=flow.version,
                )

                # Resolve a transient start node (e.g. a conditional) right away
                await self.graph.ainvoke(
                    create_turn_state(session, flow, node, None),
                    config={"recursion_limit": self._recursion_limit(flow)},
                )
                self.store.update(session)

        self.locks.discard(start_key)
        return session

    async def process_input(self, session: SessionRef, raw_input: str) -> NavigationResult:
        """Advance a session by one input.

        Recoverable problems (unknown menu key, invalid input, failed action
        without a failure branch) keep the session at the same node and come
        back as ``error`` on the result; they never raise.

        Args:
            session: Session (or its id) to advance
            raw_input: Text the user sent

        Returns:
            NavigationResult describing what to display next

        Raises:
            SessionNotFoundError: If the session id is unknown
            InvalidStateError: If the session is not active (or just expired)
            NodeNotFoundError: If the session's node is missing from its flow
        """
        session_id = _session_id(session)
        start_time = time.perf_counter()
        outcome = "error"

        try:
            async with self.locks.hold(session_id):
                current = self.get_session(session_id)

                if not current.is_active():
                    outcome = "rejected"
                    raise InvalidStateError(session_id, current.status.value)

                if current.is_past_expiry():
                    self._expire(current, utcnow())
                    outcome = "expired"
                    raise InvalidStateError(session_id, current.status.value)

                flow = self.flow_for(current)
                node = self._current_node(current, flow)

                result = await self.graph.ainvoke(
                    create_turn_state(current, flow, node, raw_input),
                    config={"recursion_limit": self._recursion_limit(flow)},
                )
                self.store.update(current)

            if result["error"]:
                outcome = "reprompt"
            elif result["terminated"]:
                outcome = "completed"
            else:
                outcome = "advanced"

            return NavigationResult(
                session_id=session_id,
                prompt=result["prompt"],
                terminated=result["terminated"],
                error=result["error"],
                status=current.status,
                node_id=current.current_node_id,
            )
        finally:
            INPUTS_PROCESSED.labels(outcome=outcome).inc()
            INPUT_LATENCY.observe(time.perf_counter() - start_time)
            if outcome in ("completed", "expired"):
                self.locks.discard(session_id)

    def navigate_to(self, session: Session, flow: FlowGraph, node_id: str) -> BaseNode:
        """Move a session to ``node_id``.

        Args:
            session: Session to move
            flow: Flow version the session is pinned to
            node_id: Target node

        Returns:
            The node the session is now at

        Raises:
            NodeNotFoundError: If ``node_id`` is not in the flow
        """
        node = flow.get_node(node_id)
        if node is None:
            logger.error(
                "fatal_inconsistency",
                reason="navigation target missing from published flow",
                session_id=session.session_id,
                flow_id=flow.id,
                node_id=node_id,
            )
            raise NodeNotFoundError(flow.id, node_id)

        session.current_node_id = node_id
        session.last_activity_at = utcnow()
        NODE_VISITS.labels(kind=node.kind).inc()  # type: ignore[attr-defined]
        self.emit(EventType.NODE_VISITED, session, node_type=node.kind)  # type: ignore[attr-defined]
        return node

    def complete_session(self, session: Session) -> None:
        """Mark a session completed and count a use of its flow.

        Raises:
            InvalidStateError: If the session is not active
        """
        if not session.is_active():
            raise InvalidStateError(session.session_id, session.status.value)

        now = utcnow()
        session.status = SessionStatus.COMPLETED
        session.completed_at = now
        session.last_activity_at = now

        self.registry.increment_usage(session.flow_id)
        ACTIVE_SESSIONS.dec()
        SESSIONS.labels(status=SessionStatus.COMPLETED.value).inc()
        self.emit(
            EventType.SESSION_COMPLETED,
            session,
            duration=session.get_duration_seconds(now),
            steps=session.step_count,
        )
        logger.info(
            "session_completed",
            session_id=session.session_id,
            flow_id=session.flow_id,
            steps=session.step_count,
        )

    async def terminate_session(
        self, session: SessionRef, reason: str = "user_terminated"
    ) -> Session:
        """End a session on request of the user or a policy.

        Args:
            session: Session (or its id) to terminate
            reason: Why the session is being ended

        Returns:
            The terminated Session

        Raises:
            SessionNotFoundError: If the session id is unknown
            InvalidStateError: If the session is no longer active
        """
        session_id = _session_id(session)

        async with self.locks.hold(session_id):
            current = self.get_session(session_id)
            if not current.is_active():
                raise InvalidStateError(session_id, current.status.value)

            now = utcnow()
            current.status = SessionStatus.TERMINATED
            current.termination_reason = reason
            current.last_activity_at = now
            self.store.update(current)

            ACTIVE_SESSIONS.dec()
            SESSIONS.labels(status=SessionStatus.TERMINATED.value).inc()
            self.emit(
                EventType.SESSION_TERMINATED,
                current,
                reason=reason,
                duration=current.get_duration_seconds(now),
            )
            logger.info("session_terminated", session_id=session_id, reason=reason)

        self.locks.discard(session_id)
        return current

    async def expire_session(self, session_id: str, now: Optional[datetime] = None) -> bool:
        """Expire a session if it is still active and past its expiry.

        The status is re-checked under the session's lock, so a session that
        was advanced or finished in the meantime is left alone.

        Args:
            session_id: Session to expire
            now: Reference time (defaults to the current time)

        Returns:
            True if the session was expired
        """
        now = now or utcnow()

        async with self.locks.hold(session_id):
            session = self.store.get(session_id)
            if session is None or not session.is_active() or not session.is_past_expiry(now):
                return False
            self._expire(session, now)

        self.locks.discard(session_id)
        return True

    def _expire(self, session: Session, now: datetime) -> None:
        session.status = SessionStatus.EXPIRED
        session.last_activity_at = now
        self.store.update(session)

        ACTIVE_SESSIONS.dec()
        SESSIONS.labels(status=SessionStatus.EXPIRED.value).inc()
        self.emit(
            EventType.SESSION_EXPIRED,
            session,
            duration=session.get_duration_seconds(now),
        )
        logger.info("session_expired", session_id=session.session_id, flow_id=session.flow_id)

    # ---------------------------------------------------------------- display

    def closing_prompt(self, node: Optional[BaseNode], session: Session) -> str:
        """Text shown when a session completes at ``node``."""
        if isinstance(node, EndNode) and node.text:
            return render_prompt(node, session.variables)
        return DEFAULT_CLOSING_PROMPT

    def render_prompt(self, session: SessionRef) -> str:
        """Render the screen for a session's current node.

        Args:
            session: Session (or its id) to render

        Returns:
            Prompt for an active session, or the closing text otherwise
        """
        current = self.get_session(session) if isinstance(session, str) else session
        node = self.flow_for(current).get_node(current.current_node_id)
        if current.is_active():
            return render_prompt(node, current.variables)
        return self.closing_prompt(node, current)

    # -------------------------------------------------------------- analytics

    def emit(
        self,
        event_type: EventType,
        session: Session,
        node_id: Optional[str] = None,
        **data: Any,
    ) -> None:
        """Send an analytics event for ``session`` (fire-and-forget)."""
        publish_event(self.event_sink, FlowEvent.for_session(event_type, session, node_id, **data))

    def session_stats(self, flow_id: Optional[str] = None) -> Dict[str, Any]:
        """Summarise sessions, optionally for one flow.

        Args:
            flow_id: Optional flow filter

        Returns:
            Counts per status, average steps and average completed duration
        """
        sessions: List[Session] = self.store.list(flow_id=flow_id)
        completed = [s for s in sessions if s.status == SessionStatus.COMPLETED]

        stats: Dict[str, Any] = {
            "total_sessions": len(sessions),
            "average_steps": (
                round(sum(s.step_count for s in sessions) / len(sessions), 2) if sessions else 0.0
            ),
            "average_duration": (
                round(sum(s.get_duration_seconds() for s in completed) / len(completed), 2)
                if completed
                else 0.0
            ),
        }
        for status in SessionStatus:
            stats[f"{status.value}_sessions"] = sum(1 for s in sessions if s.status == status)
        return stats

    @staticmethod
    def _recursion_limit(flow: FlowGraph) -> int:
        # each transient hop costs two graph steps
        return max(25, 2 * len(flow.nodes) + 10)

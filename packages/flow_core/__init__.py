"""USSD Flow Engine - Core Package."""

from .actions import ActionResult, ExternalActionExecutor, HttpActionExecutor, SimulatedActionExecutor
from .dispatcher import NodeDispatcher
from .engine import NavigationResult, SessionEngine
from .errors import (
    FlowEngineError,
    FlowNotFoundError,
    FlowValidationError,
    InvalidStateError,
    NodeNotFoundError,
    SessionNotFoundError,
)
from .events import (
    CompositeEventSink,
    EventSink,
    EventType,
    FlowEvent,
    InMemoryEventSink,
    LoggingEventSink,
    detect_telco,
)
from .graph import TurnState, create_turn_graph
from .handlers import NavigationOutcome, NodeHandler
from .logging_setup import configure_logging
from .prompt import render_prompt
from .sweeper import ExpirySweeper
from .validation import FlowValidator, IssueKind, Severity, ValidationIssue, ValidationResult, validate_flow

__version__ = "0.1.0"

__all__ = [
    "ActionResult",
    "CompositeEventSink",
    "EventSink",
    "EventType",
    "ExpirySweeper",
    "ExternalActionExecutor",
    "FlowEngineError",
    "FlowEvent",
    "FlowNotFoundError",
    "FlowValidationError",
    "FlowValidator",
    "HttpActionExecutor",
    "InMemoryEventSink",
    "InvalidStateError",
    "IssueKind",
    "LoggingEventSink",
    "NavigationOutcome",
    "NavigationResult",
    "NodeDispatcher",
    "NodeHandler",
    "NodeNotFoundError",
    "SessionEngine",
    "SessionNotFoundError",
    "Severity",
    "SimulatedActionExecutor",
    "TurnState",
    "ValidationIssue",
    "ValidationResult",
    "configure_logging",
    "create_turn_graph",
    "detect_telco",
    "render_prompt",
    "validate_flow",
]

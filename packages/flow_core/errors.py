"""Exceptions raised by the USSD flow engine."""

from typing import TYPE_CHECKING, Optional

if TYPE_CHECKING:
    from .validation import ValidationResult


class FlowEngineError(Exception):
    """Base class for engine errors."""

    pass


class FlowNotFoundError(FlowEngineError):
    """Raised when a flow is not published (or its pinned version is gone)."""

    def __init__(self, flow_id: str, version: Optional[int] = None):
        self.flow_id = flow_id
        self.version = version
        suffix = f" (version {version})" if version is not None else ""
        super().__init__(f"Flow '{flow_id}'{suffix} is not published")


class NodeNotFoundError(FlowEngineError):
    """Raised when a session points at a node its flow does not contain."""

    def __init__(self, flow_id: str, node_id: Optional[str]):
        self.flow_id = flow_id
        self.node_id = node_id
        super().__init__(f"Node '{node_id}' not found in flow '{flow_id}'")


class SessionNotFoundError(FlowEngineError):
    """Raised when a session id is unknown."""

    def __init__(self, session_id: str):
        self.session_id = session_id
        super().__init__(f"Session '{session_id}' not found")


class InvalidStateError(FlowEngineError):
    """Raised when a non-active session is asked to change."""

    def __init__(self, session_id: str, status: str):
        self.session_id = session_id
        self.status = status
        super().__init__(f"Session '{session_id}' is {status}, not active")


class FlowValidationError(FlowEngineError):
    """Raised when publishing a flow that has error-severity issues."""

    def __init__(self, flow_id: str, result: "ValidationResult"):
        self.flow_id = flow_id
        self.result = result
        super().__init__(
            f"Flow '{flow_id}' has {len(result.errors)} validation error(s) and cannot be published"
        )

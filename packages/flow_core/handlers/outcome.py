"""Navigation outcome model.

This module defines the value a node handler returns after interpreting one
input: move to another node, finish the session, or re-prompt with an error.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional


@dataclass
class NavigationOutcome:
    """Result of interpreting an input at one node.

    Exactly one of ``next_node_id``, ``terminate`` or ``error`` is set.

    Attributes:
        next_node_id: Node to move to
        terminate: Whether the session completes
        error: User-facing message; the session stays at the same node
        captured: Variables to store, applied only when the transition succeeds
        metadata: Additional details for logging and events
    """

    next_node_id: Optional[str] = None
    terminate: bool = False
    error: Optional[str] = None
    captured: Dict[str, str] = field(default_factory=dict)
    metadata: Dict[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        """Validate that the outcome is unambiguous."""
        chosen = sum([self.next_node_id is not None, self.terminate, self.error is not None])
        if chosen != 1:
            raise ValueError(
                "NavigationOutcome needs exactly one of next_node_id, terminate or error"
            )

    @classmethod
    def advance(cls, node_id: str, **captured: str) -> "NavigationOutcome":
        """Move to ``node_id``."""
        return cls(next_node_id=node_id, captured=dict(captured))

    @classmethod
    def finish(cls, **captured: str) -> "NavigationOutcome":
        """Complete the session."""
        return cls(terminate=True, captured=dict(captured))

    @classmethod
    def fail(cls, message: str, **metadata: Any) -> "NavigationOutcome":
        """Stay at the current node and re-prompt with ``message``."""
        return cls(error=message, metadata=dict(metadata))

    @classmethod
    def follow(
        cls, target: Optional[str], captured: Optional[Dict[str, str]] = None
    ) -> "NavigationOutcome":
        """Move to ``target``, or complete the session when it is None."""
        captured = captured or {}
        if target is None:
            return cls.finish(**captured)
        return cls.advance(target, **captured)

    @property
    def is_error(self) -> bool:
        """Whether the outcome is a recoverable user-facing error."""
        return self.error is not None

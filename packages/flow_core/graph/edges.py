"""Edge routing functions for the turn graph.

This module provides the conditional routing functions that determine
the next pipeline step based on the current turn state.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Literal

from flow_config import NodeKind

from .state import TurnState

if TYPE_CHECKING:
    from flow_core.engine import SessionEngine

# Nodes evaluated as soon as the session lands on them, without waiting for input
TRANSIENT_KINDS = frozenset({NodeKind.CONDITIONAL.value})


def is_transient(state: TurnState) -> bool:
    """Whether the current node resolves without user input."""
    return state["node"].kind in TRANSIENT_KINDS  # type: ignore[attr-defined]


def route_entry(
    state: TurnState,
    engine: SessionEngine,
) -> Literal["record_input", "dispatch", "respond"]:
    """Route the start of a turn.

    An inbound input is recorded first. Without input (a new session being
    settled) a transient start node is dispatched directly and anything else
    is simply rendered.
    """
    if state["raw_input"] is not None:
        return "record_input"
    if is_transient(state):
        return "dispatch"
    return "respond"


def route_after_dispatch(
    state: TurnState,
    engine: SessionEngine,
) -> Literal["advance", "complete", "reprompt"]:
    """Route on the handler's outcome.

    Args:
        state: Current turn state
        engine: The session engine

    Returns:
        Next pipeline step
    """
    outcome = state["outcome"]
    if outcome is None or outcome.is_error:
        return "reprompt"
    if outcome.terminate:
        return "complete"
    return "advance"


def route_after_advance(
    state: TurnState,
    engine: SessionEngine,
) -> Literal["dispatch", "respond"]:
    """Keep going through transient nodes; stop at one that needs input."""
    if is_transient(state):
        return "dispatch"
    return "respond"

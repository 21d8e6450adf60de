"""Graph state definition for the per-turn LangGraph pipeline.

This module defines the TypedDict state that flows through the turn graph,
carrying the session, its pinned flow graph and the outcome of the turn.
"""

from typing import Any, Optional, TypedDict

from flow_config import BaseNode, FlowGraph
from flow_runtime import Session

from ..handlers import NavigationOutcome


class TurnState(TypedDict):
    """State that flows through the turn graph.

    Attributes:
        session: The session being advanced (mutated in place)
        flow: The flow version the session is pinned to
        node: The node currently being interpreted
        raw_input: Text the user sent, or None when settling a new session
        outcome: Outcome returned by the node handler
        hops: Number of nodes entered during this turn
        prompt: Text to show on the handset
        error: Recoverable error message, if any
        terminated: Whether the session is finished after this turn
        metadata: Additional metadata for the turn
    """

    session: Session
    flow: FlowGraph
    node: BaseNode
    raw_input: Optional[str]
    outcome: Optional[NavigationOutcome]
    hops: int
    prompt: str
    error: Optional[str]
    terminated: bool
    metadata: dict[str, Any]


def create_turn_state(
    session: Session,
    flow: FlowGraph,
    node: BaseNode,
    raw_input: Optional[str],
) -> TurnState:
    """Create the initial state for one turn.

    Args:
        session: Session being advanced
        flow: Flow version the session is pinned to
        node: The session's current node
        raw_input: Text the user sent (None to settle a new session)

    Returns:
        Initialized TurnState with default values
    """
    return TurnState(
        session=session,
        flow=flow,
        node=node,
        raw_input=raw_input,
        outcome=None,
        hops=0,
        prompt="",
        error=None,
        terminated=False,
        metadata={},
    )

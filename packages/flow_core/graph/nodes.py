"""Node functions for the turn graph.

This module provides the individual steps of one turn: recording the input,
dispatching to the node handler and applying the outcome.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from flow_config import NodeKind
from flow_runtime import Session

from ..events import EventType
from ..prompt import render_prompt
from .state import TurnState

if TYPE_CHECKING:
    from flow_core.engine import SessionEngine

ACTION_KINDS = frozenset({NodeKind.PAYMENT.value, NodeKind.API.value})


def _apply_captured(session: Session, state: TurnState) -> None:
    outcome = state["outcome"]
    if outcome is not None and outcome.captured:
        session.variables.update(outcome.captured)


async def record_input_node(
    state: TurnState,
    engine: SessionEngine,
) -> TurnState:
    """Append the input to the session history and renew its expiry.

    The attempt is recorded even when the input later turns out invalid.
    """
    session = state["session"]
    raw_input = state["raw_input"] or ""

    record = session.record_input(raw_input, engine.settings.session_timeout_seconds)
    engine.emit(EventType.INPUT_RECEIVED, session, input=raw_input, step=record.step_index)
    return state


async def dispatch_node(
    state: TurnState,
    engine: SessionEngine,
) -> TurnState:
    """Ask the handler for the current node to interpret the input."""
    node = state["node"]
    raw_input = state["raw_input"] if state["hops"] == 0 and state["raw_input"] else ""
    kind = node.kind  # type: ignore[attr-defined]
    if kind in ACTION_KINDS:
        engine.emit(EventType.ACTION_INITIATED, state["session"], node_id=node.id, action=kind)
    state["outcome"] = await engine.dispatcher.dispatch(node, state["session"], raw_input)
    state["metadata"].update(state["outcome"].metadata)
    return state


async def advance_node(
    state: TurnState,
    engine: SessionEngine,
) -> TurnState:
    """Move the session to the outcome's target node.

    The target is resolved before anything is written, so a missing node
    leaves the session's variables and position untouched.
    """
    session = state["session"]
    outcome = state["outcome"]
    if outcome is None or outcome.next_node_id is None:
        raise ValueError("advance reached without a target node")

    node = engine.navigate_to(session, state["flow"], outcome.next_node_id)
    _apply_captured(session, state)

    state["node"] = node
    state["hops"] += 1
    state["outcome"] = None
    return state


async def complete_node(
    state: TurnState,
    engine: SessionEngine,
) -> TurnState:
    """Finish the session and render the closing screen."""
    session = state["session"]
    _apply_captured(session, state)
    engine.complete_session(session)

    state["terminated"] = True
    state["prompt"] = engine.closing_prompt(state["node"], session)
    return state


async def reprompt_node(
    state: TurnState,
    engine: SessionEngine,
) -> TurnState:
    """Keep the session where it is and show the error above the prompt."""
    session = state["session"]
    outcome = state["outcome"]
    message = outcome.error if outcome is not None and outcome.error else "Unexpected error"

    engine.emit(
        EventType.ERROR_OCCURRED,
        session,
        error_message=message,
        input=state["raw_input"],
    )

    state["error"] = message
    state["prompt"] = render_prompt(state["node"], session.variables, error=message)
    return state


async def respond_node(
    state: TurnState,
    engine: SessionEngine,
) -> TurnState:
    """Render the screen for the node now awaiting input."""
    state["prompt"] = render_prompt(state["node"], state["session"].variables)
    return state

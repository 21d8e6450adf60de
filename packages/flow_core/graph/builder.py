"""Graph builder for the per-turn pipeline.

This module provides the function to construct and compile the LangGraph
state machine that processes one input for one session.
"""

from __future__ import annotations

from functools import partial
from typing import TYPE_CHECKING, Any

from langgraph.graph import END, StateGraph  # type: ignore[import-not-found]

from .edges import route_after_advance, route_after_dispatch, route_entry
from .nodes import (
    advance_node,
    complete_node,
    dispatch_node,
    record_input_node,
    reprompt_node,
    respond_node,
)
from .state import TurnState

if TYPE_CHECKING:
    from flow_core.engine import SessionEngine
    from langgraph.graph.state import CompiledStateGraph  # type: ignore[import-not-found]


def create_turn_graph(engine: SessionEngine) -> CompiledStateGraph:
    """Create and compile the turn pipeline graph.

    The graph follows this flow:
    ```
    START ─┬─→ record_input → dispatch ─┬─→ reprompt → END
           │                   ↑        ├─→ complete → END
           ├───────────────────┘        └─→ advance ─┬─→ respond → END
           │                   ↑                     │
           │                   └─────────────────────┘ (transient node)
           └─→ respond → END
    ```

    Args:
        engine: The session engine instance to bind to node functions

    Returns:
        Compiled StateGraph ready for execution
    """
    workflow: StateGraph[TurnState, Any, Any] = StateGraph(TurnState)

    workflow.add_node("record_input", partial(_wrap_node, record_input_node, engine=engine))
    workflow.add_node("dispatch", partial(_wrap_node, dispatch_node, engine=engine))
    workflow.add_node("advance", partial(_wrap_node, advance_node, engine=engine))
    workflow.add_node("complete", partial(_wrap_node, complete_node, engine=engine))
    workflow.add_node("reprompt", partial(_wrap_node, reprompt_node, engine=engine))
    workflow.add_node("respond", partial(_wrap_node, respond_node, engine=engine))

    workflow.set_conditional_entry_point(
        partial(route_entry, engine=engine),
        {
            "record_input": "record_input",
            "dispatch": "dispatch",
            "respond": "respond",
        },
    )

    workflow.add_edge("record_input", "dispatch")

    workflow.add_conditional_edges(
        "dispatch",
        partial(route_after_dispatch, engine=engine),
        {
            "advance": "advance",
            "complete": "complete",
            "reprompt": "reprompt",
        },
    )

    workflow.add_conditional_edges(
        "advance",
        partial(route_after_advance, engine=engine),
        {
            "dispatch": "dispatch",
            "respond": "respond",
        },
    )

    workflow.add_edge("respond", END)
    workflow.add_edge("complete", END)
    workflow.add_edge("reprompt", END)

    return workflow.compile()


async def _wrap_node(
    node_func: Any,
    state: TurnState,
    engine: SessionEngine,
) -> TurnState:
    """Wrap and handle async node execution.

    Args:
        node_func: The node function to execute
        state: Current turn state
        engine: The session engine instance

    Returns:
        Updated turn state
    """
    return await node_func(state, engine)  # type: ignore[no-any-return]

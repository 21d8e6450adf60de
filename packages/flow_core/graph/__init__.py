"""LangGraph state machine for processing one turn of a session.

This module provides the per-turn pipeline: record the input, dispatch to
the node handler, then advance, complete or re-prompt.
"""

from .builder import create_turn_graph
from .state import TurnState, create_turn_state

__all__ = ["TurnState", "create_turn_graph", "create_turn_state"]

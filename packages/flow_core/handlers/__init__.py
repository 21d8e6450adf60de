"""Node type handlers.

This module exports the handler for every node kind a flow can contain.
"""

from .action import ActionNodeHandler
from .base import NodeHandler
from .conditional import ConditionalNodeHandler, coerce_operands, evaluate_condition
from .end import EndNodeHandler
from .input import InputNodeHandler
from .menu import MenuNodeHandler
from .outcome import NavigationOutcome

__all__ = [
    "ActionNodeHandler",
    "ConditionalNodeHandler",
    "EndNodeHandler",
    "InputNodeHandler",
    "MenuNodeHandler",
    "NavigationOutcome",
    "NodeHandler",
    "coerce_operands",
    "evaluate_condition",
]

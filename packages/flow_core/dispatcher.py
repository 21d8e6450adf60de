"""Dispatch of inputs to node type handlers.

This module maps node kinds to their handlers and routes each input to the
handler for the session's current node.
"""

from typing import Dict, Optional, Type

from flow_config import BaseNode, NodeKind
from flow_runtime import Session

from .actions import ExternalActionExecutor
from .handlers import (
    ActionNodeHandler,
    ConditionalNodeHandler,
    EndNodeHandler,
    InputNodeHandler,
    MenuNodeHandler,
    NavigationOutcome,
    NodeHandler,
)


class NodeDispatcher:
    """Routes a node to the handler for its kind.

    Payment and api nodes share one handler, which receives the injected
    action executor and timeout.
    """

    # Mapping of node kinds to handler classes
    HANDLER_CLASSES: Dict[str, Type[NodeHandler]] = {
        NodeKind.MENU.value: MenuNodeHandler,
        NodeKind.INPUT.value: InputNodeHandler,
        NodeKind.CONDITIONAL.value: ConditionalNodeHandler,
        NodeKind.END.value: EndNodeHandler,
    }

    ACTION_KINDS = (NodeKind.PAYMENT.value, NodeKind.API.value)

    def __init__(
        self,
        action_executor: Optional[ExternalActionExecutor] = None,
        action_timeout_seconds: float = 5.0,
    ):
        """Initialize the dispatcher.

        Args:
            action_executor: Capability used by payment and api nodes
            action_timeout_seconds: Upper bound on one external call
        """
        self._handlers: Dict[str, NodeHandler] = {}
        self._initialize_handlers(action_executor, action_timeout_seconds)

    def _initialize_handlers(
        self,
        action_executor: Optional[ExternalActionExecutor],
        action_timeout_seconds: float,
    ) -> None:
        """Create one handler per node kind."""
        for kind, handler_class in self.HANDLER_CLASSES.items():
            self._handlers[kind] = handler_class()

        action_handler = ActionNodeHandler(action_executor, action_timeout_seconds)
        for kind in self.ACTION_KINDS:
            self._handlers[kind] = action_handler

    def register(self, kind: str, handler: NodeHandler) -> None:
        """Replace the handler for a node kind."""
        self._handlers[kind] = handler

    def get_handler(self, kind: str) -> NodeHandler:
        """Get the handler for a node kind.

        Raises:
            KeyError: If no handler serves the kind
        """
        handler = self._handlers.get(kind)
        if handler is None:
            raise KeyError(f"No handler registered for node kind '{kind}'")
        return handler

    async def dispatch(
        self,
        node: BaseNode,
        session: Session,
        raw_input: str,
    ) -> NavigationOutcome:
        """Interpret ``raw_input`` at ``node`` with the matching handler.

        Args:
            node: The session's current node
            session: Session being advanced
            raw_input: Text the user sent

        Returns:
            The handler's NavigationOutcome
        """
        handler = self.get_handler(node.kind)  # type: ignore[attr-defined]
        return await handler.handle(node, session, raw_input)

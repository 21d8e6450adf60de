"""Base class for node type handlers.

This module defines the abstract base class that all node handlers must implement.
"""

from abc import ABC, abstractmethod
from typing import Type, TypeVar

from flow_config import BaseNode
from flow_runtime import Session

from .outcome import NavigationOutcome

NodeT = TypeVar("NodeT", bound=BaseNode)


class NodeHandler(ABC):
    """Abstract base class for node type handlers.

    A handler interprets one raw input at one node and returns an outcome.
    Handlers never mutate the session; captured values travel in the outcome
    and are applied by the engine.
    """

    node_kind: str = "base"

    @abstractmethod
    async def handle(
        self,
        node: BaseNode,
        session: Session,
        raw_input: str,
    ) -> NavigationOutcome:
        """Interpret ``raw_input`` at ``node``.

        Args:
            node: The session's current node
            session: Session being advanced (read-only)
            raw_input: Text the user sent

        Returns:
            NavigationOutcome describing where the session goes next
        """
        pass

    def require(self, node: BaseNode, node_type: Type[NodeT]) -> NodeT:
        """Narrow ``node`` to the type this handler serves.

        Raises:
            TypeError: If the dispatcher routed the wrong kind of node here
        """
        if not isinstance(node, node_type):
            raise TypeError(
                f"{type(self).__name__} cannot handle {node.kind} node '{node.id}'"  # type: ignore[attr-defined]
            )
        return node

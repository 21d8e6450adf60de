"""End node handler."""

from flow_config import BaseNode
from flow_runtime import Session

from .base import NodeHandler
from .outcome import NavigationOutcome


class EndNodeHandler(NodeHandler):
    """Handler for end nodes: whatever the input, the session completes."""

    node_kind: str = "end"

    async def handle(
        self,
        node: BaseNode,
        session: Session,
        raw_input: str,
    ) -> NavigationOutcome:
        return NavigationOutcome.finish()

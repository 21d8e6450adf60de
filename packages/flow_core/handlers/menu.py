"""Menu node handler.

Looks the input up among the node's options by key.
"""

from flow_config import BaseNode, MenuNode
from flow_runtime import Session

from .base import NodeHandler
from .outcome import NavigationOutcome

INVALID_OPTION = "Invalid option selected"


class MenuNodeHandler(NodeHandler):
    """Handler for menu nodes.

    The input is stripped of surrounding whitespace and compared with each
    option key. A match follows the option's target (None completes the
    session); no match re-prompts.
    """

    node_kind: str = "menu"

    async def handle(
        self,
        node: BaseNode,
        session: Session,
        raw_input: str,
    ) -> NavigationOutcome:
        menu = self.require(node, MenuNode)

        option = menu.get_option(raw_input.strip())
        if option is None:
            return NavigationOutcome.fail(INVALID_OPTION, selected=raw_input)

        outcome = NavigationOutcome.follow(option.target_node_id)
        outcome.metadata["selected_option"] = option.key
        return outcome

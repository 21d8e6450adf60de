"""Input node handler.

Validates free-text input and captures it into a session variable.
"""

import re

from flow_config import BaseNode, InputNode
from flow_runtime import Session

from .base import NodeHandler
from .outcome import NavigationOutcome

INPUT_REQUIRED = "Input is required"
INVALID_FORMAT = "Invalid input format"


class InputNodeHandler(NodeHandler):
    """Handler for input nodes.

    Checks:
        required: empty (or whitespace-only) input is rejected
        pattern: the whole input must match the regex

    On success the raw input is captured under ``input_spec.variable_name``.
    """

    node_kind: str = "input"

    async def handle(
        self,
        node: BaseNode,
        session: Session,
        raw_input: str,
    ) -> NavigationOutcome:
        input_node = self.require(node, InputNode)
        spec = input_node.input_spec

        if spec.required and not raw_input.strip():
            return NavigationOutcome.fail(INPUT_REQUIRED)

        if spec.pattern and not re.fullmatch(spec.pattern, raw_input):
            return NavigationOutcome.fail(INVALID_FORMAT, pattern=spec.pattern)

        return NavigationOutcome.follow(input_node.next_node_id, {spec.variable_name: raw_input})

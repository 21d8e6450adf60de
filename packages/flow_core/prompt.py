"""Prompt rendering for USSD screens.

Turns the current node into the text shown on the handset. ``{name}``
placeholders in node text are filled from session variables; unknown
placeholders are left as they are.
"""

import re
from typing import Mapping, Optional

from flow_config import BaseNode, MenuNode

PLACEHOLDER = re.compile(r"\{(\w+)\}")


def fill_placeholders(text: str, variables: Mapping[str, str]) -> str:
    """Replace ``{name}`` placeholders with variable values.

    Args:
        text: Template text
        variables: Values available for substitution

    Returns:
        Text with known placeholders replaced
    """

    def _replace(match: "re.Match[str]") -> str:
        name = match.group(1)
        return str(variables[name]) if name in variables else match.group(0)

    return PLACEHOLDER.sub(_replace, text)


def render_prompt(
    node: Optional[BaseNode],
    variables: Optional[Mapping[str, str]] = None,
    error: Optional[str] = None,
) -> str:
    """Render the screen for ``node``.

    Args:
        node: Node to render (None renders only the error, if any)
        variables: Session variables for placeholder substitution
        error: Optional error shown above the node's prompt on a re-prompt

    Returns:
        Prompt text, one line per menu option
    """
    variables = variables or {}
    lines = []

    if error:
        lines.append(error)

    if node is not None:
        if node.text:
            lines.append(fill_placeholders(node.text, variables))

        if isinstance(node, MenuNode):
            for option in node.options:
                lines.append(f"{option.key}. {fill_placeholders(option.text, variables)}")

    return "\n".join(lines)

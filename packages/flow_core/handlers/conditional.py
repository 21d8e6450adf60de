"""Conditional node handler.

Routes on a comparison between a session variable and a fixed value.
"""

import math
from typing import Optional, Tuple, Union

from flow_config import BaseNode, ConditionalNode, ConditionOperator
from flow_runtime import Session

from .base import NodeHandler
from .outcome import NavigationOutcome

Comparable = Union[float, str]


def _as_number(value: str) -> Optional[float]:
    """Parse ``value`` as a finite number, or None if it is not numeric."""
    try:
        text = value.strip()
    except AttributeError:
        return None
    if "_" in text:
        return None
    try:
        number = float(text)
    except ValueError:
        return None
    if not math.isfinite(number):
        return None
    return number


def coerce_operands(left: str, right: str) -> Tuple[Comparable, Comparable]:
    """Coerce both sides to numbers when both parse as numbers.

    Args:
        left: Variable value
        right: Configured comparison value

    Returns:
        Both operands as floats, or both unchanged strings
    """
    left_number = _as_number(left)
    right_number = _as_number(right)
    if left_number is not None and right_number is not None:
        return left_number, right_number
    return left, right


def evaluate_condition(operator: ConditionOperator, left: Optional[str], right: str) -> bool:
    """Evaluate ``left <operator> right``.

    ``equals``, ``not_equals``, ``greater_than`` and ``less_than`` compare
    numerically when both sides are numeric and as strings otherwise.
    ``contains`` and ``starts_with`` always work on the text. A missing
    variable makes every operator false.

    Args:
        operator: Comparison to apply
        left: Session variable value (None when unset)
        right: Configured comparison value

    Returns:
        Result of the comparison
    """
    if left is None:
        return False

    if operator == ConditionOperator.CONTAINS:
        return right in left
    if operator == ConditionOperator.STARTS_WITH:
        return left.startswith(right)

    a, b = coerce_operands(left, right)
    if operator == ConditionOperator.EQUALS:
        return a == b
    if operator == ConditionOperator.NOT_EQUALS:
        return a != b
    if operator == ConditionOperator.GREATER_THAN:
        return a > b  # type: ignore[operator]
    if operator == ConditionOperator.LESS_THAN:
        return a < b  # type: ignore[operator]

    raise ValueError(f"Unsupported operator: {operator}")


class ConditionalNodeHandler(NodeHandler):
    """Handler for conditional nodes.

    True follows ``success_node_id`` and false follows ``failure_node_id``.
    A branch that is not configured falls back to ``next_node_id``; when that
    is also unset the session completes. The raw input is ignored.
    """

    node_kind: str = "conditional"

    async def handle(
        self,
        node: BaseNode,
        session: Session,
        raw_input: str,
    ) -> NavigationOutcome:
        conditional = self.require(node, ConditionalNode)
        condition = conditional.condition

        matched = evaluate_condition(
            condition.operator,
            session.variables.get(condition.variable),
            condition.value,
        )
        branch = conditional.success_node_id if matched else conditional.failure_node_id
        if branch is None:
            branch = conditional.next_node_id

        outcome = NavigationOutcome.follow(branch)
        outcome.metadata["condition_matched"] = matched
        return outcome

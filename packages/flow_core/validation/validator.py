"""Flow graph validator.

Static checks run before a flow is allowed to serve live sessions. The
validator never mutates the graph and returns the same result for the same
graph.
"""

from collections import Counter
from typing import List, Optional

from flow_config import FlowGraph, InputNode, MenuNode, NodeKind

from ..prompt import render_prompt
from .adjacency import FlowAdjacency, breadth_first_levels, find_cycle_nodes
from .result import IssueKind, Severity, ValidationIssue, ValidationResult, ValidationStats

DEFAULT_MAX_PROMPT_LENGTH = 182
DEFAULT_MAX_MENU_OPTIONS = 9


class FlowValidator:
    """Validates flow structure before publication.

    Checks:
    - Entry: the start node exists
    - References: every edge target exists
    - Menus: option keys are unique, menus are not empty
    - Cycles: no directed cycle (USSD sessions must terminate)
    - Reachability: every node is reachable and an end node can be reached
    - Usability suggestions: option counts, input validation, prompt length
    """

    def __init__(
        self,
        max_prompt_length: int = DEFAULT_MAX_PROMPT_LENGTH,
        max_menu_options: int = DEFAULT_MAX_MENU_OPTIONS,
    ):
        """Initialize the validator.

        Args:
            max_prompt_length: USSD page size prompts are checked against
            max_menu_options: Menus with more options than this get a suggestion
        """
        self.max_prompt_length = max_prompt_length
        self.max_menu_options = max_menu_options

    def validate(self, graph: FlowGraph) -> ValidationResult:
        """Validate a complete flow graph.

        Args:
            graph: Graph to validate

        Returns:
            ValidationResult with errors, warnings, suggestions and stats
        """
        adjacency = FlowAdjacency.from_graph(graph)
        result = ValidationResult(flow_id=graph.id)

        issues: List[ValidationIssue] = []
        issues.extend(self._check_entry(graph))
        issues.extend(self._check_references(adjacency))
        issues.extend(self._check_menus(graph))
        issues.extend(self._check_cycles(graph, adjacency))

        if graph.has_node(graph.start_node_id):
            issues.extend(self._check_reachability(graph, adjacency))

        issues.extend(self._check_usability(graph))

        for issue in issues:
            result.add(issue)

        result.stats = self._collect_stats(graph, adjacency)
        return result

    def _check_entry(self, graph: FlowGraph) -> List[ValidationIssue]:
        """The start node must exist."""
        if graph.has_node(graph.start_node_id):
            return []

        return [
            ValidationIssue(
                kind=IssueKind.MISSING_START_NODE,
                node_id=graph.start_node_id,
                message=f"Start node '{graph.start_node_id}' does not exist",
                severity=Severity.ERROR,
            )
        ]

    def _check_references(self, adjacency: FlowAdjacency) -> List[ValidationIssue]:
        """Every edge must point at an existing node."""
        return [
            ValidationIssue(
                kind=IssueKind.DANGLING_REFERENCE,
                node_id=source,
                message=f"Node '{source}' points to non-existent node '{target}'",
                severity=Severity.ERROR,
            )
            for source, target in adjacency.dangling()
        ]

    def _check_menus(self, graph: FlowGraph) -> List[ValidationIssue]:
        """Menus need options, and option keys must be unique per menu."""
        issues = []

        for node in graph.nodes.values():
            if not isinstance(node, MenuNode):
                continue

            if not node.options:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.EMPTY_MENU,
                        node_id=node.id,
                        message=f"Menu '{node.id}' has no options",
                        severity=Severity.WARNING,
                    )
                )
                continue

            counts = Counter(option.key for option in node.options)
            duplicates = [key for key, count in counts.items() if count > 1]
            if duplicates:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.DUPLICATE_OPTION_KEY,
                        node_id=node.id,
                        message=f"Menu '{node.id}' has duplicate option keys: "
                        + ", ".join(duplicates),
                        severity=Severity.ERROR,
                    )
                )

        return issues

    def _check_cycles(self, graph: FlowGraph, adjacency: FlowAdjacency) -> List[ValidationIssue]:
        """No node kind is allowed to loop back on the path that led to it."""
        first: Optional[str] = graph.start_node_id if graph.has_node(graph.start_node_id) else None

        return [
            ValidationIssue(
                kind=IssueKind.CIRCULAR_REFERENCE,
                node_id=node_id,
                message=f"Circular reference detected through node '{node_id}'",
                severity=Severity.ERROR,
            )
            for node_id in find_cycle_nodes(adjacency, first=first)
        ]

    def _check_reachability(
        self, graph: FlowGraph, adjacency: FlowAdjacency
    ) -> List[ValidationIssue]:
        """Every node should be reachable, and so should at least one end node."""
        issues = []
        reachable = breadth_first_levels(adjacency, graph.start_node_id)

        for node_id in adjacency.node_ids:
            if node_id not in reachable:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.UNREACHABLE_NODE,
                        node_id=node_id,
                        message=f"Node '{node_id}' is not reachable from the start node",
                        severity=Severity.WARNING,
                    )
                )

        if not any(graph.nodes[node_id].kind == NodeKind.END for node_id in reachable):
            issues.append(
                ValidationIssue(
                    kind=IssueKind.NO_TERMINAL_PATH,
                    node_id=graph.start_node_id,
                    message="No end node is reachable from the start node; "
                    "sessions can only finish by expiring",
                    severity=Severity.WARNING,
                )
            )

        return issues

    def _check_usability(self, graph: FlowGraph) -> List[ValidationIssue]:
        """Advisory checks that never block publication."""
        issues = []

        for node in graph.nodes.values():
            if isinstance(node, MenuNode) and len(node.options) > self.max_menu_options:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.TOO_MANY_OPTIONS,
                        node_id=node.id,
                        message=f"Menu '{node.id}' has {len(node.options)} options. "
                        "Consider grouping into sub-menus.",
                        severity=Severity.SUGGESTION,
                    )
                )

            if isinstance(node, InputNode) and not node.input_spec.pattern:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.MISSING_VALIDATION,
                        node_id=node.id,
                        message=f"Input node '{node.id}' has no validation pattern",
                        severity=Severity.SUGGESTION,
                    )
                )

            prompt_length = len(render_prompt(node, graph.variables))
            if prompt_length > self.max_prompt_length:
                issues.append(
                    ValidationIssue(
                        kind=IssueKind.LONG_PROMPT,
                        node_id=node.id,
                        message=f"Prompt for '{node.id}' is {prompt_length} characters; "
                        f"USSD pages hold {self.max_prompt_length}",
                        severity=Severity.SUGGESTION,
                    )
                )

        return issues

    def _collect_stats(self, graph: FlowGraph, adjacency: FlowAdjacency) -> ValidationStats:
        """Gather shape statistics.

        ``max_depth`` is the largest breadth-first level, i.e. the number of
        steps needed to reach the farthest reachable node.
        """
        levels = breadth_first_levels(adjacency, graph.start_node_id)
        menus = [node for node in graph.nodes.values() if isinstance(node, MenuNode)]
        avg_options = (
            round(sum(len(menu.options) for menu in menus) / len(menus), 1) if menus else 0.0
        )

        return ValidationStats(
            total_nodes=len(graph.nodes),
            total_edges=adjacency.edge_count(),
            reachable_nodes=len(levels),
            max_depth=max(levels.values()) if levels else 0,
            avg_options_per_menu=avg_options,
        )


def validate_flow(
    graph: FlowGraph, max_prompt_length: int = DEFAULT_MAX_PROMPT_LENGTH
) -> ValidationResult:
    """Validate ``graph`` with default limits.

    Args:
        graph: Graph to validate
        max_prompt_length: USSD page size prompts are checked against

    Returns:
        ValidationResult for the graph
    """
    return FlowValidator(max_prompt_length=max_prompt_length).validate(graph)

"""Tests for the flow graph validator."""

from pathlib import Path

import pytest
from flow_config import discover_flow_files, load_flow_from_dict, load_flow_from_file
from flow_core.validation import (
    FlowAdjacency,
    FlowValidator,
    IssueKind,
    Severity,
    breadth_first_levels,
    find_cycle_nodes,
    reachable_from,
    validate_flow,
)


def make_flow(start, nodes):
    """Build a flow graph from a compact node mapping."""
    return load_flow_from_dict({"id": "test", "startNodeId": start, "nodes": nodes})


def menu(*targets, text="Choose"):
    """Menu node with keys 1..n pointing at ``targets``."""
    return {
        "kind": "menu",
        "text": text,
        "options": [
            {"key": str(i), "text": f"Option {i}", "targetNodeId": target}
            for i, target in enumerate(targets, 1)
        ],
    }


END = {"kind": "end", "text": "Bye"}


@pytest.fixture
def validator():
    """Create a validator with default limits."""
    return FlowValidator()


class TestFlowValidatorBasics:
    """Tests for overall validation behaviour."""

    def test_valid_flow(self, validator, balance_flow):
        """Test that a well-formed flow has no issues."""
        result = validator.validate(balance_flow)

        assert result.is_valid is True
        assert result.errors == []
        assert result.warnings == []
        assert result.flow_id == "balance"

    def test_validation_is_deterministic(self, validator, airtime_flow):
        """Test that validating the same graph twice gives the same result."""
        assert validator.validate(airtime_flow) == validator.validate(airtime_flow)

    def test_validation_does_not_mutate(self, validator, balance_flow):
        """Test that the graph is unchanged by validation."""
        before = balance_flow.model_dump()

        validator.validate(balance_flow)

        assert balance_flow.model_dump() == before

    def test_module_level_helper(self, balance_flow):
        """Test the validate_flow convenience function."""
        assert validate_flow(balance_flow).is_valid is True


class TestEntryAndReachability:
    """Tests for start node and reachability checks."""

    def test_missing_start_node(self, validator):
        """Test that a missing start node is an error."""
        result = validator.validate(make_flow("nope", {"a": menu("b"), "b": END}))

        issues = result.issues_of(IssueKind.MISSING_START_NODE)
        assert len(issues) == 1
        assert issues[0].severity == Severity.ERROR
        assert issues[0].node_id == "nope"
        assert result.is_valid is False

    def test_missing_start_skips_reachability(self, validator):
        """Test that nodes are not all flagged unreachable when start is missing."""
        result = validator.validate(make_flow("nope", {"a": menu("b"), "b": END}))

        assert result.issues_of(IssueKind.UNREACHABLE_NODE) == []
        assert result.issues_of(IssueKind.NO_TERMINAL_PATH) == []

    def test_single_unreachable_node(self, validator, balance_flow):
        """Test that adding an orphan produces exactly one warning naming it."""
        graph = make_flow(
            "start",
            {"start": menu("bal"), "bal": END, "orphan": {"kind": "end", "text": "Lost"}},
        )

        issues = validator.validate(graph).issues_of(IssueKind.UNREACHABLE_NODE)

        assert len(issues) == 1
        assert issues[0].node_id == "orphan"
        assert issues[0].severity == Severity.WARNING

    def test_no_terminal_path(self, validator):
        """Test a flow that can only finish by expiring or exiting."""
        graph = make_flow(
            "start",
            {
                "start": menu("ask"),
                "ask": {"kind": "input", "inputSpec": {"pattern": ".*"}, "nextNodeId": None},
            },
        )

        result = validator.validate(graph)

        issues = result.issues_of(IssueKind.NO_TERMINAL_PATH)
        assert len(issues) == 1
        assert issues[0].severity == Severity.WARNING
        assert result.is_valid is True


class TestReferencesAndMenus:
    """Tests for reference integrity and menu checks."""

    def test_dangling_reference(self, validator):
        """Test that an edge to a missing node is an error on the source."""
        result = validator.validate(make_flow("start", {"start": menu("ghost", "bal"), "bal": END}))

        issues = result.issues_of(IssueKind.DANGLING_REFERENCE)
        assert len(issues) == 1
        assert issues[0].node_id == "start"
        assert "ghost" in issues[0].message
        assert result.is_valid is False

    def test_duplicate_option_keys(self, validator):
        """Test that duplicate keys in one menu are a single error."""
        graph = make_flow(
            "start",
            {
                "start": {
                    "kind": "menu",
                    "options": [
                        {"key": "1", "targetNodeId": "bal"},
                        {"key": "1", "targetNodeId": "bal"},
                        {"key": "1", "targetNodeId": None},
                    ],
                },
                "bal": END,
            },
        )

        issues = validator.validate(graph).issues_of(IssueKind.DUPLICATE_OPTION_KEY)

        assert len(issues) == 1
        assert issues[0].node_id == "start"
        assert issues[0].severity == Severity.ERROR

    def test_same_key_in_different_menus_is_fine(self, validator):
        """Test that keys only need to be unique within one menu."""
        graph = make_flow("start", {"start": menu("sub"), "sub": menu("bal"), "bal": END})

        assert validator.validate(graph).issues_of(IssueKind.DUPLICATE_OPTION_KEY) == []

    def test_empty_menu(self, validator):
        """Test that a menu without options is a warning."""
        graph = make_flow("start", {"start": menu("empty", "bal"), "empty": menu(), "bal": END})

        issues = validator.validate(graph).issues_of(IssueKind.EMPTY_MENU)

        assert len(issues) == 1
        assert issues[0].node_id == "empty"
        assert issues[0].severity == Severity.WARNING


class TestCycleDetection:
    """Tests for circular reference detection."""

    def test_menu_cycle(self, validator):
        """Test that a loop between menus is reported on a node of the loop."""
        graph = make_flow("a", {"a": menu("b"), "b": menu("a", "end"), "end": END})

        issues = validator.validate(graph).issues_of(IssueKind.CIRCULAR_REFERENCE)

        assert len(issues) >= 1
        assert {issue.node_id for issue in issues} <= {"a", "b"}
        assert all(issue.severity == Severity.ERROR for issue in issues)

    def test_conditional_cycle(self, validator):
        """Test that a loop through a conditional node is reported."""
        graph = make_flow(
            "menu",
            {
                "menu": menu("check"),
                "check": {
                    "kind": "conditional",
                    "condition": {"variable": "x", "operator": "equals", "value": "1"},
                    "successNodeId": "end",
                    "failureNodeId": "menu",
                },
                "end": END,
            },
        )

        issues = validator.validate(graph).issues_of(IssueKind.CIRCULAR_REFERENCE)

        assert len(issues) >= 1
        assert {issue.node_id for issue in issues} <= {"menu", "check"}

    def test_self_loop(self, validator):
        """Test that a node pointing at itself is a cycle."""
        graph = make_flow("a", {"a": menu("a", "end"), "end": END})

        issues = validator.validate(graph).issues_of(IssueKind.CIRCULAR_REFERENCE)

        assert [issue.node_id for issue in issues] == ["a"]

    def test_cycle_in_unreachable_part(self, validator):
        """Test that cycles are found even away from the start node."""
        graph = make_flow(
            "start", {"start": menu("end"), "end": END, "x": menu("y"), "y": menu("x")}
        )

        issues = validator.validate(graph).issues_of(IssueKind.CIRCULAR_REFERENCE)

        assert {issue.node_id for issue in issues} <= {"x", "y"}
        assert len(issues) >= 1

    def test_diamond_is_acyclic(self, validator):
        """Test that converging branches are not mistaken for a cycle."""
        graph = make_flow(
            "start",
            {"start": menu("left", "right"), "left": menu("end"), "right": menu("end"), "end": END},
        )

        result = validator.validate(graph)

        assert result.issues_of(IssueKind.CIRCULAR_REFERENCE) == []
        assert result.is_valid is True


class TestSuggestions:
    """Tests for advisory suggestions."""

    def test_too_many_options(self, validator):
        """Test that menus with more than nine options get a suggestion."""
        graph = make_flow("start", {"start": menu(*(["end"] * 10)), "end": END})

        result = validator.validate(graph)

        issues = result.issues_of(IssueKind.TOO_MANY_OPTIONS)
        assert len(issues) == 1
        assert issues[0].severity == Severity.SUGGESTION
        assert result.is_valid is True

    def test_missing_validation(self, validator):
        """Test that input nodes without a pattern get a suggestion."""
        graph = make_flow("ask", {"ask": {"kind": "input", "nextNodeId": "end"}, "end": END})

        issues = validator.validate(graph).suggestions

        assert [issue.kind for issue in issues] == [IssueKind.MISSING_VALIDATION]

    def test_long_prompt(self):
        """Test that prompts longer than the page limit get a suggestion."""
        graph = make_flow("start", {"start": menu("end", text="x" * 30), "end": END})

        issues = FlowValidator(max_prompt_length=20).validate(graph).issues_of(
            IssueKind.LONG_PROMPT
        )

        assert len(issues) == 1
        assert issues[0].node_id == "start"

    def test_suggestions_never_block(self, validator):
        """Test that suggestions alone keep a flow valid."""
        graph = make_flow("ask", {"ask": {"kind": "input", "nextNodeId": "end"}, "end": END})

        assert validator.validate(graph).is_valid is True


class TestStats:
    """Tests for shape statistics."""

    def test_balance_flow_stats(self, validator, balance_flow):
        """Test statistics for the two-node flow."""
        stats = validator.validate(balance_flow).stats

        assert stats.total_nodes == 2
        assert stats.total_edges == 1
        assert stats.reachable_nodes == 2
        assert stats.max_depth == 1
        assert stats.avg_options_per_menu == 2.0

    def test_airtime_flow_depth(self, validator, airtime_flow):
        """Test depth of the longest shortest path."""
        stats = validator.validate(airtime_flow).stats

        assert stats.total_nodes == 7
        assert stats.reachable_nodes == 7
        assert stats.max_depth == 4


class TestAdjacency:
    """Tests for the graph algorithms behind the validator."""

    def test_successors_skip_missing_targets(self):
        """Test that dangling targets are kept only as references."""
        graph = make_flow("start", {"start": menu("ghost", "end", "end"), "end": END})

        adjacency = FlowAdjacency.from_graph(graph)

        assert adjacency.successors["start"] == ("end",)
        assert adjacency.edge_count() == 3
        assert list(adjacency.dangling()) == [("start", "ghost")]
        assert "start" in adjacency
        assert "ghost" not in adjacency

    def test_breadth_first_levels(self, airtime_flow):
        """Test BFS levels from the start node."""
        levels = breadth_first_levels(FlowAdjacency.from_graph(airtime_flow), "menu")

        assert levels["menu"] == 0
        assert levels["amount"] == 1
        assert levels["check"] == 2
        assert levels["pay"] == 3
        assert levels["done"] == 4

    def test_reachable_from_unknown_start(self, balance_flow):
        """Test that an unknown start reaches nothing."""
        assert reachable_from(FlowAdjacency.from_graph(balance_flow), "missing") == []

    def test_find_cycle_nodes_acyclic(self, airtime_flow):
        """Test that acyclic graphs have no cycle nodes."""
        assert find_cycle_nodes(FlowAdjacency.from_graph(airtime_flow)) == []

    def test_find_cycle_nodes_reports_back_edge_target(self):
        """Test that the node closing the cycle is reported."""
        graph = make_flow("a", {"a": menu("b"), "b": menu("c"), "c": menu("a")})

        assert find_cycle_nodes(FlowAdjacency.from_graph(graph), first="a") == ["a"]


def test_bundled_flows_are_valid():
    """Test that every flow shipped in flows/ passes validation."""
    flows_dir = Path(__file__).resolve().parents[2] / "flows"

    paths = discover_flow_files(flows_dir)

    assert paths
    for path in paths:
        result = validate_flow(load_flow_from_file(path))
        assert result.is_valid, f"{path.name}: {result.errors}"
        assert result.warnings == []

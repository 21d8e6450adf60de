"""Static validation of flow graphs.

This module provides the validator that certifies a flow is well-formed
before it is published for live sessions.
"""

from .adjacency import FlowAdjacency, breadth_first_levels, find_cycle_nodes, reachable_from
from .result import IssueKind, Severity, ValidationIssue, ValidationResult, ValidationStats
from .validator import FlowValidator, validate_flow

__all__ = [
    "FlowAdjacency",
    "FlowValidator",
    "IssueKind",
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "ValidationStats",
    "breadth_first_levels",
    "find_cycle_nodes",
    "reachable_from",
    "validate_flow",
]

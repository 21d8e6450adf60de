"""Validation result models.

This module defines the issues reported by the flow validator and the
result object grouping them by severity.
"""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class Severity(str, Enum):
    """How serious a validation issue is."""

    ERROR = "error"
    WARNING = "warning"
    SUGGESTION = "suggestion"


class IssueKind(str, Enum):
    """Kinds of issue the validator reports."""

    MISSING_START_NODE = "missing_start_node"
    UNREACHABLE_NODE = "unreachable_node"
    DANGLING_REFERENCE = "dangling_reference"
    DUPLICATE_OPTION_KEY = "duplicate_option_key"
    CIRCULAR_REFERENCE = "circular_reference"
    NO_TERMINAL_PATH = "no_terminal_path"
    EMPTY_MENU = "empty_menu"
    TOO_MANY_OPTIONS = "too_many_options"
    MISSING_VALIDATION = "missing_validation"
    LONG_PROMPT = "long_prompt"


class ValidationIssue(BaseModel):
    """A single finding about a flow graph."""

    kind: IssueKind = Field(..., description="What was found")
    node_id: Optional[str] = Field(default=None, description="Node the issue is about")
    message: str = Field(..., description="Human-readable explanation")
    severity: Severity = Field(..., description="error, warning or suggestion")


class ValidationStats(BaseModel):
    """Shape statistics gathered while validating."""

    total_nodes: int = 0
    total_edges: int = 0
    reachable_nodes: int = 0
    max_depth: int = 0
    avg_options_per_menu: float = 0.0


class ValidationResult(BaseModel):
    """Outcome of validating a flow graph.

    Only ``errors`` block publication; warnings and suggestions are advisory.
    """

    flow_id: Optional[str] = None
    errors: List[ValidationIssue] = Field(default_factory=list)
    warnings: List[ValidationIssue] = Field(default_factory=list)
    suggestions: List[ValidationIssue] = Field(default_factory=list)
    stats: ValidationStats = Field(default_factory=ValidationStats)

    @property
    def is_valid(self) -> bool:
        """True when there are no error-severity issues."""
        return not self.errors

    def add(self, issue: ValidationIssue) -> None:
        """File an issue under the list matching its severity."""
        if issue.severity == Severity.ERROR:
            self.errors.append(issue)
        elif issue.severity == Severity.WARNING:
            self.warnings.append(issue)
        else:
            self.suggestions.append(issue)

    def issues_of(self, kind: IssueKind) -> List[ValidationIssue]:
        """All issues of a given kind, across severities."""
        return [i for i in self.errors + self.warnings + self.suggestions if i.kind == kind]

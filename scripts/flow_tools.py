#!/usr/bin/env python3
"""Flow definition tools for the USSD flow engine.

Usage:
    python scripts/flow_tools.py list          # List available flows
    python scripts/flow_tools.py validate      # Validate all flows
    python scripts/flow_tools.py validate FILE # Validate specific flow
    python scripts/flow_tools.py show FILE     # Show flow details
"""

import os
import sys
from pathlib import Path

# Add packages to path
sys.path.insert(0, str(Path(__file__).parent.parent / "packages"))

from flow_config import (  # noqa: E402
    FLOW_FILE_SUFFIXES,
    ConfigurationError,
    FlowGraph,
    MenuNode,
    discover_flow_files,
    load_flow_from_file,
)
from flow_core import ValidationIssue, validate_flow  # noqa: E402

FLOWS_DIR = Path(os.getenv("USSD_FLOWS_DIR", "flows"))

# Colors
GREEN = "\033[0;32m"
RED = "\033[0;31m"
BLUE = "\033[0;34m"
YELLOW = "\033[1;33m"
NC = "\033[0m"  # No Color


def list_flows() -> None:
    """List all available flow files."""
    print(f"{BLUE}Available flows:{NC}\n")

    if not FLOWS_DIR.exists():
        print(f"{RED}  No flows directory found at {FLOWS_DIR}{NC}")
        return

    flow_files = discover_flow_files(FLOWS_DIR)
    if not flow_files:
        print(f"{YELLOW}  No flow files found in {FLOWS_DIR}/{NC}")
        return

    for flow_file in flow_files:
        print(f"  {GREEN}•{NC} {flow_file.stem}")
        print(f"    Path: {flow_file}")
        try:
            flow = load_flow_from_file(flow_file)
            print(f"    Name: {flow.name or '-'}")
            print(f"    Nodes: {len(flow.nodes)} (start: {flow.start_node_id})")
        except ConfigurationError as e:
            print(f"    {RED}Error loading: {e}{NC}")
        print()


def _print_issues(label: str, color: str, issues: list[ValidationIssue]) -> None:
    for issue in issues:
        where = f"[{issue.node_id}] " if issue.node_id else ""
        print(f"      {color}{label}{NC} {where}{issue.message}")


def _validate_single_flow(flow_file: Path) -> bool:
    """Validate a single flow file."""
    print(f"  Checking {flow_file.name}...", end=" ")

    if not flow_file.exists():
        print(f"{RED}✗ File not found{NC}")
        return False

    try:
        result = validate_flow(load_flow_from_file(flow_file))
    except ConfigurationError as e:
        print(f"{RED}✗ Invalid: {e}{NC}")
        return False

    if not result.is_valid:
        print(f"{RED}✗ {len(result.errors)} error(s){NC}")
    elif result.warnings:
        print(f"{YELLOW}⚠ {len(result.warnings)} warning(s){NC}")
    else:
        print(f"{GREEN}✓ Valid{NC}")

    _print_issues("error:", RED, result.errors)
    _print_issues("warning:", YELLOW, result.warnings)
    _print_issues("hint:", BLUE, result.suggestions)
    return result.is_valid


def validate_flows(flow_path: str | None = None) -> bool:
    """Validate flow file(s)."""
    flow_files = [Path(flow_path)] if flow_path else discover_flow_files(FLOWS_DIR)

    if not flow_files:
        print(f"{RED}No flow files found{NC}")
        return False

    print(f"{BLUE}Validating flows...{NC}\n")

    results = [_validate_single_flow(flow_file) for flow_file in flow_files]
    all_valid = all(results)

    print()
    if all_valid:
        print(f"{GREEN}All flows are valid!{NC}")
    else:
        print(f"{RED}Some flows have errors.{NC}")

    return all_valid


def _resolve_flow_path(flow_path: str) -> Path:
    """Resolve a flow path from a name or a full path."""
    path = Path(flow_path)

    if path.exists():
        return path

    if not path.suffix:
        for suffix in FLOW_FILE_SUFFIXES:
            candidate = FLOWS_DIR / f"{flow_path}{suffix}"
            if candidate.exists():
                return candidate

    return path


def _print_flow_details(flow: FlowGraph) -> None:
    """Print every node of a flow with its outgoing edges."""
    print(f"{GREEN}Flow:{NC} {flow.id} v{flow.version}")
    if flow.name:
        print(f"  Name: {flow.name}")
    print(f"  Start: {flow.start_node_id}")
    if flow.variables:
        print(f"  Variables: {', '.join(sorted(flow.variables))}")
    print()

    print(f"{GREEN}Nodes ({len(flow.nodes)}):{NC}")
    for node_id, node in flow.nodes.items():
        marker = f"{BLUE}▶{NC}" if node_id == flow.start_node_id else " "
        print(f"  {marker} {node_id} ({node.kind})")
        if node.text:
            print(f"       Text: {node.text}")
        if isinstance(node, MenuNode):
            for option in node.options:
                target = option.target_node_id or "(end)"
                print(f"       {option.key}. {option.text} → {target}")
        else:
            for target in node.targets():
                print(f"       → {target}")
    print()

    stats = validate_flow(flow).stats
    print(f"{GREEN}Shape:{NC}")
    print(f"  Edges: {stats.total_edges}")
    print(f"  Reachable nodes: {stats.reachable_nodes}")
    print(f"  Max depth: {stats.max_depth}")


def show_flow(flow_path: str) -> None:
    """Display detailed flow information."""
    path = _resolve_flow_path(flow_path)

    if not path.exists():
        print(f"{RED}Flow file not found: {flow_path}{NC}")
        sys.exit(1)

    print(f"{BLUE}Flow file: {path.name}{NC}")
    print(f"{'=' * 50}\n")

    try:
        _print_flow_details(load_flow_from_file(path))
    except ConfigurationError as e:
        print(f"{RED}Error loading flow: {e}{NC}")
        sys.exit(1)


def main() -> None:
    """Execute the flow tool command."""
    if len(sys.argv) < 2:
        print(__doc__)
        sys.exit(1)

    command = sys.argv[1].lower()

    if command == "list":
        list_flows()
    elif command == "validate":
        flow_path = sys.argv[2] if len(sys.argv) > 2 else None
        success = validate_flows(flow_path)
        sys.exit(0 if success else 1)
    elif command == "show":
        if len(sys.argv) < 3:
            print(f"{RED}Usage: flow_tools.py show <flow_name>{NC}")
            sys.exit(1)
        show_flow(sys.argv[2])
    else:
        print(f"{RED}Unknown command: {command}{NC}")
        print(__doc__)
        sys.exit(1)


if __name__ == "__main__":
    main()

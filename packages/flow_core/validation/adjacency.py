"""Graph algorithms over a flow's edges.

Reachability (breadth-first) and cycle detection (depth-first with a
recursion stack) are kept as separate functions over one shared adjacency
view of the graph.
"""

from collections import deque
from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Set, Tuple

from flow_config import FlowGraph


@dataclass(frozen=True)
class FlowAdjacency:
    """Adjacency view of a flow graph.

    Attributes:
        node_ids: Node ids in declaration order
        successors: Existing targets of each node, de-duplicated, in edge order
        references: Every non-null (source, target) edge, including dangling ones
    """

    node_ids: Tuple[str, ...]
    successors: Dict[str, Tuple[str, ...]] = field(default_factory=dict)
    references: Tuple[Tuple[str, str], ...] = ()

    @classmethod
    def from_graph(cls, graph: FlowGraph) -> "FlowAdjacency":
        """Build the adjacency view of ``graph``."""
        successors: Dict[str, Tuple[str, ...]] = {}
        references: List[Tuple[str, str]] = []

        for node_id, node in graph.nodes.items():
            seen: List[str] = []
            for target in node.targets():
                references.append((node_id, target))
                if target in graph.nodes and target not in seen:
                    seen.append(target)
            successors[node_id] = tuple(seen)

        return cls(
            node_ids=tuple(graph.nodes.keys()),
            successors=successors,
            references=tuple(references),
        )

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.successors

    def edge_count(self) -> int:
        """Number of non-null edges, dangling ones included."""
        return len(self.references)

    def dangling(self) -> Iterator[Tuple[str, str]]:
        """Edges whose target is not a node of the graph."""
        for source, target in self.references:
            if target not in self.successors:
                yield source, target


def breadth_first_levels(adjacency: FlowAdjacency, start: str) -> Dict[str, int]:
    """Map every node reachable from ``start`` to its distance in edges.

    Args:
        adjacency: Graph adjacency
        start: Node to start from (must exist)

    Returns:
        Ordered mapping of node id to BFS level, in visiting order
    """
    if start not in adjacency:
        return {}

    levels: Dict[str, int] = {start: 0}
    queue = deque([start])

    while queue:
        node_id = queue.popleft()
        for target in adjacency.successors[node_id]:
            if target not in levels:
                levels[target] = levels[node_id] + 1
                queue.append(target)

    return levels


def reachable_from(adjacency: FlowAdjacency, start: str) -> List[str]:
    """Nodes reachable from ``start`` in breadth-first order (``start`` included)."""
    return list(breadth_first_levels(adjacency, start))


def find_cycle_nodes(adjacency: FlowAdjacency, first: Optional[str] = None) -> List[str]:
    """Find nodes that close a directed cycle.

    Runs an iterative depth-first search from every unvisited node (``first``
    is searched before the rest). When an edge leads to a node that is still
    on the recursion stack, that node lies on a cycle and is reported once.

    Args:
        adjacency: Graph adjacency
        first: Optional node to start the search from

    Returns:
        Node ids closing a cycle, in discovery order; empty for acyclic graphs
    """
    roots = list(adjacency.node_ids)
    if first is not None and first in adjacency:
        roots.remove(first)
        roots.insert(0, first)

    visited: Set[str] = set()
    on_stack: Set[str] = set()
    found: List[str] = []

    for root in roots:
        if root in visited:
            continue

        visited.add(root)
        on_stack.add(root)
        stack: List[Tuple[str, Iterator[str]]] = [(root, iter(adjacency.successors[root]))]

        while stack:
            node_id, remaining = stack[-1]
            target = next(remaining, None)

            if target is None:
                stack.pop()
                on_stack.discard(node_id)
                continue

            if target in on_stack:
                if target not in found:
                    found.append(target)
                continue

            if target not in visited:
                visited.add(target)
                on_stack.add(target)
                stack.append((target, iter(adjacency.successors[target])))

    return found

"""In-memory registry of published flows.

Published graphs are immutable. Publishing a new version swaps the flow's
current pointer under a lock; older versions stay resolvable so sessions
keep running against the version they started with.
"""

from datetime import datetime
from threading import Lock
from typing import Dict, List, Optional, Tuple

from flow_config import FlowGraph
from pydantic import BaseModel, Field

from .state import utcnow


class FlowUsage(BaseModel):
    """Usage counters for a published flow."""

    flow_id: str
    usage_count: int = Field(default=0, description="Sessions that completed on this flow")
    last_used_at: Optional[datetime] = None


class FlowRegistry:
    """Holds every published version of every flow."""

    def __init__(self) -> None:
        """Initialize the registry."""
        self._versions: Dict[Tuple[str, int], FlowGraph] = {}
        self._current: Dict[str, int] = {}
        self._usage: Dict[str, FlowUsage] = {}
        self._lock = Lock()

    def publish(self, graph: FlowGraph) -> FlowGraph:
        """Make ``graph`` the current version of its flow.

        If the flow already has a version at or above ``graph.version`` the
        graph is stored as the next version instead.

        Args:
            graph: Validated graph to publish

        Returns:
            The graph as stored (its version may have been bumped)
        """
        with self._lock:
            current = self._current.get(graph.id)
            if current is not None and graph.version <= current:
                graph = graph.model_copy(update={"version": current + 1})

            self._versions[(graph.id, graph.version)] = graph
            self._current[graph.id] = graph.version
            self._usage.setdefault(graph.id, FlowUsage(flow_id=graph.id))
            return graph

    def unpublish(self, flow_id: str) -> bool:
        """Stop serving new sessions for a flow.

        Stored versions are kept so in-flight sessions can finish.

        Returns:
            True if the flow was published, False otherwise
        """
        with self._lock:
            return self._current.pop(flow_id, None) is not None

    def get(self, flow_id: str) -> Optional[FlowGraph]:
        """Get the current published version of a flow."""
        with self._lock:
            version = self._current.get(flow_id)
            if version is None:
                return None
            return self._versions.get((flow_id, version))

    def get_version(self, flow_id: str, version: int) -> Optional[FlowGraph]:
        """Get a specific stored version of a flow."""
        with self._lock:
            return self._versions.get((flow_id, version))

    def is_published(self, flow_id: str) -> bool:
        """Check whether a flow currently accepts new sessions."""
        with self._lock:
            return flow_id in self._current

    def list(self) -> List[FlowGraph]:
        """List the current version of every published flow, sorted by id."""
        with self._lock:
            return [
                self._versions[(flow_id, version)]
                for flow_id, version in sorted(self._current.items())
            ]

    def increment_usage(self, flow_id: str) -> FlowUsage:
        """Count one completed session against a flow.

        Args:
            flow_id: Flow that was used

        Returns:
            Updated usage counters
        """
        with self._lock:
            usage = self._usage.setdefault(flow_id, FlowUsage(flow_id=flow_id))
            usage.usage_count += 1
            usage.last_used_at = utcnow()
            return usage.model_copy()

    def get_usage(self, flow_id: str) -> Optional[FlowUsage]:
        """Get usage counters for a flow."""
        with self._lock:
            usage = self._usage.get(flow_id)
            return usage.model_copy() if usage is not None else None

    def clear(self) -> None:
        """Remove every flow and counter."""
        with self._lock:
            self._versions.clear()
            self._current.clear()
            self._usage.clear()

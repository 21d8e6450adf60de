"""Payment and api node handler.

Runs the injected external action under a bounded timeout. A timeout or an
exception from the executor counts as a failure; the session is never left
waiting on the external call.
"""

import asyncio
import time
from typing import Dict, Optional

import structlog
from flow_config import ActionNode, BaseNode
from flow_runtime import Session

from ..actions import ActionResult, ExternalActionExecutor
from ..metrics import ACTION_CALLS, ACTION_LATENCY
from .base import NodeHandler
from .outcome import NavigationOutcome

logger = structlog.get_logger(__name__)

ACTION_FAILED = "Action failed"


def _captured_values(node: ActionNode, result: ActionResult) -> Dict[str, str]:
    """Flatten scalar result data into ``<node_id>_<key>`` variables."""
    captured = {
        f"{node.id}_{key}": str(value)
        for key, value in result.data.items()
        if isinstance(value, (str, int, float, bool))
    }
    # the outcome wins over a "status" key in the result data
    captured[f"{node.id}_status"] = "success" if result.success else "failed"
    return captured


class ActionNodeHandler(NodeHandler):
    """Handler for payment and api nodes.

    Success follows ``success_node_id`` (None completes the session). Failure
    and timeout follow ``failure_node_id`` when configured, otherwise the
    user is re-prompted with an error at the same node.
    """

    node_kind: str = "action"

    def __init__(
        self,
        executor: Optional[ExternalActionExecutor] = None,
        timeout_seconds: float = 5.0,
    ):
        """Initialize the handler.

        Args:
            executor: Capability that performs the side effect
            timeout_seconds: Upper bound on one call
        """
        self.executor = executor
        self.timeout_seconds = timeout_seconds

    async def _run(self, node: ActionNode, session: Session) -> ActionResult:
        if self.executor is None:
            return ActionResult(success=False, error="No action executor configured")

        start_time = time.perf_counter()
        try:
            return await asyncio.wait_for(
                self.executor.execute(node, session), timeout=self.timeout_seconds
            )
        except asyncio.TimeoutError:
            logger.warning(
                "action_timed_out",
                session_id=session.session_id,
                node_id=node.id,
                timeout_seconds=self.timeout_seconds,
            )
            return ActionResult(success=False, error="timeout")
        except Exception as e:
            logger.error(
                "action_raised",
                session_id=session.session_id,
                node_id=node.id,
                error=str(e),
            )
            return ActionResult(success=False, error=str(e))
        finally:
            ACTION_LATENCY.labels(kind=node.kind).observe(time.perf_counter() - start_time)

    async def handle(
        self,
        node: BaseNode,
        session: Session,
        raw_input: str,
    ) -> NavigationOutcome:
        action = self.require(node, ActionNode)
        result = await self._run(action, session)
        ACTION_CALLS.labels(
            kind=action.kind, result="success" if result.success else "failure"
        ).inc()

        captured = _captured_values(action, result)
        metadata = {"action_success": result.success, "action_error": result.error}

        if result.success:
            outcome = NavigationOutcome.follow(action.success_node_id, captured)
        elif action.failure_node_id is not None:
            outcome = NavigationOutcome(next_node_id=action.failure_node_id, captured=captured)
        else:
            return NavigationOutcome.fail(ACTION_FAILED, **metadata)

        outcome.metadata.update(metadata)
        return outcome

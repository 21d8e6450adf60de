"""External actions for payment and api nodes.

The engine never talks to payment gateways or third-party APIs itself; it
awaits an injected :class:`ExternalActionExecutor` under a bounded timeout.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, Optional

import httpx
import structlog
from flow_config import ActionNode, ApiNode, PaymentNode
from flow_runtime import Session

logger = structlog.get_logger(__name__)


@dataclass
class ActionResult:
    """Result of an external action.

    Attributes:
        success: Whether the action succeeded
        data: Values returned by the action (stored in session variables)
        error: Failure description when ``success`` is False
    """

    success: bool
    data: Dict[str, Any] = field(default_factory=dict)
    error: Optional[str] = None


class ExternalActionExecutor(ABC):
    """Capability that performs the side effect behind a payment/api node."""

    @abstractmethod
    async def execute(self, node: ActionNode, session: Session) -> ActionResult:
        """Perform the action for ``node`` on behalf of ``session``.

        Args:
            node: Payment or api node being executed
            session: Session the action runs for (read-only)

        Returns:
            ActionResult describing success or failure
        """
        pass


class SimulatedActionExecutor(ExternalActionExecutor):
    """Always succeeds without contacting anything.

    Stands in for a gateway while a flow is being tried out.
    """

    def __init__(self, success: bool = True) -> None:
        self.success = success

    async def execute(self, node: ActionNode, session: Session) -> ActionResult:
        if not self.success:
            return ActionResult(success=False, error="Simulated failure")

        data: Dict[str, Any] = {"status": "simulated"}
        if isinstance(node, PaymentNode):
            data.update({"amount": node.amount, "currency": node.currency})
        return ActionResult(success=True, data=data)


class HttpActionExecutor(ExternalActionExecutor):
    """Performs actions by calling an HTTP endpoint.

    Api nodes call their own ``url`` (falling back to the webhook); payment
    nodes always go to the webhook. Any 2xx response is a success and a JSON
    object body becomes the result data.
    """

    def __init__(
        self,
        webhook_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 5.0,
    ) -> None:
        """Initialize the executor.

        Args:
            webhook_url: Endpoint for payment nodes and api nodes without a url
            client: Optional shared client (created lazily otherwise)
            timeout: Per-request timeout in seconds
        """
        self.webhook_url = webhook_url
        self._client = client
        self._timeout = timeout

    @property
    def client(self) -> httpx.AsyncClient:
        """Get or create the HTTP client."""
        if self._client is None:
            self._client = httpx.AsyncClient(timeout=httpx.Timeout(self._timeout))
        return self._client

    def _build_payload(self, node: ActionNode, session: Session) -> Dict[str, Any]:
        payload: Dict[str, Any] = {
            "kind": node.kind,
            "node_id": node.id,
            "session_id": session.session_id,
            "flow_id": session.flow_id,
            "phone_number": session.phone_number,
            "variables": dict(session.variables),
        }
        if isinstance(node, PaymentNode):
            payload.update({"amount": node.amount, "currency": node.currency})
        return payload

    async def execute(self, node: ActionNode, session: Session) -> ActionResult:
        url = node.url if isinstance(node, ApiNode) and node.url else self.webhook_url
        method = node.method if isinstance(node, ApiNode) else "POST"

        if not url:
            return ActionResult(success=False, error=f"No endpoint configured for node '{node.id}'")

        payload = self._build_payload(node, session)
        try:
            if method == "GET":
                response = await self.client.get(url, params={"session_id": session.session_id})
            else:
                response = await self.client.request(method, url, json=payload)
        except httpx.HTTPError as e:
            logger.warning("action_request_failed", node_id=node.id, url=url, error=str(e))
            return ActionResult(success=False, error=str(e))

        if not response.is_success:
            return ActionResult(success=False, error=f"HTTP {response.status_code}")

        data: Dict[str, Any] = {}
        try:
            body = response.json()
            if isinstance(body, dict):
                data = body
        except ValueError:
            data = {"body": response.text}

        return ActionResult(success=True, data=data)

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        if self._client is not None:
            await self._client.aclose()
            self._client = None

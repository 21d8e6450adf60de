"""Flow graph schemas for the USSD flow engine.

This module defines the Pydantic models describing a published flow: the
graph, its nodes (a tagged union keyed by ``kind``) and menu options.
Graphs are frozen once built, down to their node map and menu options; edits
produce a new graph instance.
"""

import re
from types import MappingProxyType
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Mapping, Optional, Tuple, Union
from uuid import uuid4

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SerializerFunctionWrapHandler,
    field_serializer,
    field_validator,
    model_validator,
)
from pydantic.alias_generators import to_camel


class NodeKind(str, Enum):
    """Kinds of node a flow can contain."""

    MENU = "menu"
    INPUT = "input"
    CONDITIONAL = "conditional"
    PAYMENT = "payment"
    API = "api"
    END = "end"


class ConditionOperator(str, Enum):
    """Comparison operators supported by conditional nodes."""

    EQUALS = "equals"
    NOT_EQUALS = "not_equals"
    GREATER_THAN = "greater_than"
    LESS_THAN = "less_than"
    CONTAINS = "contains"
    STARTS_WITH = "starts_with"


class _FlowModel(BaseModel):
    """Base for all flow models: frozen, accepts camelCase or snake_case keys."""

    model_config = ConfigDict(
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class MenuOption(_FlowModel):
    """A selectable choice on a menu node."""

    key: str = Field(..., description="Key the user types to select this option")
    text: str = Field(default="", description="Display label")
    target_node_id: Optional[str] = Field(
        default=None, description="Node to move to; None terminates the session"
    )

    @field_validator("key", mode="before")
    @classmethod
    def validate_key(cls, v: Any) -> str:
        """Coerce numeric keys and reject blank ones."""
        if v is None:
            raise ValueError("Option key cannot be empty")
        key = str(v).strip()
        if not key:
            raise ValueError("Option key cannot be empty")
        return key


class InputSpec(_FlowModel):
    """What an input node captures and how it is checked."""

    variable_name: str = Field(default="input", description="Session variable to store into")
    required: bool = Field(default=True, description="Whether empty input is rejected")
    pattern: Optional[str] = Field(default=None, description="Regex the input must fully match")

    @field_validator("pattern")
    @classmethod
    def validate_pattern(cls, v: Optional[str]) -> Optional[str]:
        """Make sure the pattern compiles."""
        if v is None or v == "":
            return None
        try:
            re.compile(v)
        except re.error as e:
            raise ValueError(f"Invalid input pattern '{v}': {e}") from e
        return v


class Condition(_FlowModel):
    """Comparison evaluated by a conditional node."""

    variable: str = Field(..., description="Session variable on the left-hand side")
    operator: ConditionOperator = Field(
        default=ConditionOperator.EQUALS, description="Comparison operator"
    )
    value: str = Field(default="", description="Right-hand side of the comparison")

    @field_validator("value", mode="before")
    @classmethod
    def coerce_value(cls, v: Any) -> str:
        """Store the comparison value as text; numbers are coerced at evaluation."""
        return "" if v is None else str(v)


class BaseNode(_FlowModel):
    """Fields shared by every node kind."""

    id: str = Field(..., description="Node identifier, unique within the flow")
    text: str = Field(default="", description="Prompt text shown when the node is current")

    def edges(self) -> List[Optional[str]]:
        """Outgoing edge targets in declaration order (None means terminate)."""
        return []

    def targets(self) -> List[str]:
        """Non-null outgoing edge targets."""
        return [target for target in self.edges() if target is not None]


class MenuNode(BaseNode):
    """A list of options, one of which the user selects by key."""

    kind: Literal["menu"] = "menu"
    options: Tuple[MenuOption, ...] = Field(default_factory=tuple)

    def edges(self) -> List[Optional[str]]:
        return [option.target_node_id for option in self.options]

    def get_option(self, key: str) -> Optional[MenuOption]:
        """Get the first option with the given key."""
        for option in self.options:
            if option.key == key:
                return option
        return None


class InputNode(BaseNode):
    """Free-text prompt whose answer is stored in a session variable."""

    kind: Literal["input"] = "input"
    input_spec: InputSpec = Field(default_factory=InputSpec)
    next_node_id: Optional[str] = None

    def edges(self) -> List[Optional[str]]:
        return [self.next_node_id]


class ConditionalNode(BaseNode):
    """Routes on a comparison against a session variable."""

    kind: Literal["conditional"] = "conditional"
    condition: Condition
    success_node_id: Optional[str] = Field(default=None, description="Branch when true")
    failure_node_id: Optional[str] = Field(default=None, description="Branch when false")
    next_node_id: Optional[str] = Field(default=None, description="Default branch")

    def edges(self) -> List[Optional[str]]:
        return [self.success_node_id, self.failure_node_id, self.next_node_id]


class ActionNode(BaseNode):
    """Common shape of nodes that call out to an external action."""

    success_node_id: Optional[str] = None
    failure_node_id: Optional[str] = None

    def edges(self) -> List[Optional[str]]:
        return [self.success_node_id, self.failure_node_id]


class PaymentNode(ActionNode):
    """Initiates a payment through the injected action executor."""

    kind: Literal["payment"] = "payment"
    amount: float = Field(default=0.0, ge=0)
    currency: str = Field(default="GHS")


class ApiNode(ActionNode):
    """Calls an external API through the injected action executor."""

    kind: Literal["api"] = "api"
    url: Optional[str] = None
    method: str = Field(default="POST")

    @field_validator("method")
    @classmethod
    def validate_method(cls, v: str) -> str:
        """Normalise and restrict the HTTP method."""
        method = v.strip().upper()
        if method not in {"GET", "POST", "PUT", "PATCH"}:
            raise ValueError(f"Method '{v}' not supported. Must be one of GET, POST, PUT, PATCH")
        return method


class EndNode(BaseNode):
    """Terminal node; any input completes the session."""

    kind: Literal["end"] = "end"


Node = Annotated[
    Union[MenuNode, InputNode, ConditionalNode, PaymentNode, ApiNode, EndNode],
    Field(discriminator="kind"),
]


class FlowGraph(_FlowModel):
    """Immutable in-memory representation of a flow."""

    id: str = Field(default_factory=lambda: str(uuid4()), description="Flow identifier")
    name: Optional[str] = Field(default=None, description="Human-readable flow name")
    description: Optional[str] = None
    version: int = Field(default=1, ge=1, description="Graph version, bumped on every edit")
    start_node_id: str = Field(..., description="Node a new session starts at")
    nodes: Mapping[str, Node] = Field(default_factory=dict)
    variables: Mapping[str, str] = Field(
        default_factory=dict, description="Default variables seeded into each session"
    )

    @model_validator(mode="before")
    @classmethod
    def inject_node_ids(cls, data: Any) -> Any:
        """Fill each node's ``id`` from its key in the ``nodes`` mapping."""
        if not isinstance(data, dict):
            return data

        nodes = data.get("nodes")
        if not isinstance(nodes, dict):
            return data

        injected: Dict[str, Any] = {}
        for node_id, node in nodes.items():
            if isinstance(node, dict):
                node = dict(node)
                declared = node.get("id")
                if declared is not None and declared != node_id:
                    raise ValueError(
                        f"Node key '{node_id}' does not match its declared id '{declared}'"
                    )
                node["id"] = node_id
            elif isinstance(node, BaseNode) and node.id != node_id:
                raise ValueError(f"Node key '{node_id}' does not match its id '{node.id}'")
            injected[node_id] = node

        data = dict(data)
        data["nodes"] = injected
        return data

    @field_validator("variables", mode="before")
    @classmethod
    def coerce_variables(cls, v: Any) -> Any:
        """Store default variables as text."""
        if isinstance(v, dict):
            return {str(key): "" if value is None else str(value) for key, value in v.items()}
        return v

    @field_validator("nodes", "variables", mode="after")
    @classmethod
    def freeze_mapping(cls, v: Mapping[str, Any]) -> Mapping[str, Any]:
        """Expose nodes and default variables as read-only mappings."""
        return MappingProxyType(dict(v))

    @field_serializer("nodes", "variables", mode="wrap")
    def serialize_mapping(
        self, v: Mapping[str, Any], handler: SerializerFunctionWrapHandler
    ) -> Dict[str, Any]:
        return handler(dict(v))

    def get_node(self, node_id: Optional[str]) -> Optional[BaseNode]:
        """Get a node by id.

        Args:
            node_id: Node identifier to look up

        Returns:
            The node if present, None otherwise
        """
        if node_id is None:
            return None
        return self.nodes.get(node_id)

    def has_node(self, node_id: Optional[str]) -> bool:
        """Check whether a node id exists in this graph."""
        return node_id is not None and node_id in self.nodes

    @property
    def start_node(self) -> Optional[BaseNode]:
        """The node new sessions start at, if it exists."""
        return self.nodes.get(self.start_node_id)

    def with_node(self, node: BaseNode) -> "FlowGraph":
        """Return a new graph with ``node`` added or replaced.

        Args:
            node: Node to add or replace (matched by id)

        Returns:
            New FlowGraph with the version bumped
        """
        nodes = dict(self.nodes)
        nodes[node.id] = node
        return self.model_copy(
            update={"nodes": MappingProxyType(nodes), "version": self.version + 1}
        )

    def without_node(self, node_id: str) -> "FlowGraph":
        """Return a new graph with ``node_id`` removed.

        Edges pointing at the removed node are left as they are so the
        validator reports them as dangling references.
        """
        if node_id not in self.nodes:
            raise KeyError(f"Node '{node_id}' not found in flow '{self.id}'")
        nodes = {key: value for key, value in self.nodes.items() if key != node_id}
        return self.model_copy(
            update={"nodes": MappingProxyType(nodes), "version": self.version + 1}
        )

    def to_definition(self) -> Dict[str, Any]:
        """Serialise back into the camelCase definition document."""
        data = self.model_dump(by_alias=True, mode="json")
        for node in data["nodes"].values():
            node.pop("id", None)
        return data

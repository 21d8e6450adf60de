"""USSD Flow Engine - Configuration Package."""

from .loader import (
    FLOW_FILE_SUFFIXES,
    ConfigurationError,
    FlowDefinitionError,
    discover_flow_files,
    load_flow_from_dict,
    load_flow_from_file,
    load_flow_from_json,
)
from .schemas import (
    ActionNode,
    ApiNode,
    BaseNode,
    Condition,
    ConditionalNode,
    ConditionOperator,
    EndNode,
    FlowGraph,
    InputNode,
    InputSpec,
    MenuNode,
    MenuOption,
    Node,
    NodeKind,
    PaymentNode,
)
from .settings import EngineSettings, LogFormat, load_settings_from_env

__version__ = "0.1.0"

__all__ = [
    "FLOW_FILE_SUFFIXES",
    "ActionNode",
    "ApiNode",
    "BaseNode",
    "Condition",
    "ConditionOperator",
    "ConditionalNode",
    "ConfigurationError",
    "EndNode",
    "EngineSettings",
    "FlowDefinitionError",
    "FlowGraph",
    "InputNode",
    "InputSpec",
    "LogFormat",
    "MenuNode",
    "MenuOption",
    "Node",
    "NodeKind",
    "PaymentNode",
    "discover_flow_files",
    "load_flow_from_dict",
    "load_flow_from_file",
    "load_flow_from_json",
    "load_settings_from_env",
]

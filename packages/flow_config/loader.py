"""Flow definition loader for the USSD flow engine.

This module provides utilities to load and validate flow definitions from
JSON or YAML documents produced by the flow editor.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

import yaml
from pydantic import ValidationError

from .schemas import FlowGraph

FLOW_FILE_SUFFIXES = (".json", ".yaml", ".yml")


class ConfigurationError(Exception):
    """Raised when configuration loading or validation fails."""

    pass


class FlowDefinitionError(ConfigurationError):
    """Raised when a flow definition cannot be parsed into a FlowGraph."""

    pass


def _read_document(path: Path) -> Any:
    """Parse a JSON or YAML file based on its suffix."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            if path.suffix.lower() == ".json":
                return json.load(f)
            return yaml.safe_load(f)
    except json.JSONDecodeError as e:
        raise FlowDefinitionError(f"Failed to parse JSON file: {e}") from e
    except yaml.YAMLError as e:
        raise FlowDefinitionError(f"Failed to parse YAML file: {e}") from e
    except OSError as e:
        raise FlowDefinitionError(f"Failed to read flow file: {e}") from e


def load_flow_from_file(flow_path: Union[str, Path]) -> FlowGraph:
    """Load and parse a flow definition from a JSON or YAML file.

    When the document has no ``id`` the file stem is used, so a flow stored
    as ``balance_check.yaml`` is published as ``balance_check``.

    Args:
        flow_path: Path to the flow definition file

    Returns:
        Parsed FlowGraph instance

    Raises:
        FlowDefinitionError: If the file cannot be read or parsed
        FileNotFoundError: If the file doesn't exist
    """
    path = Path(flow_path)

    if not path.exists():
        raise FileNotFoundError(f"Flow file not found: {flow_path}")

    if not path.is_file():
        raise FlowDefinitionError(f"Flow path is not a file: {flow_path}")

    if path.suffix.lower() not in FLOW_FILE_SUFFIXES:
        raise FlowDefinitionError(
            f"Unsupported flow file type '{path.suffix}'. Use one of: {FLOW_FILE_SUFFIXES}"
        )

    document = _read_document(path)

    if document is None:
        raise FlowDefinitionError("Flow file is empty")

    if not isinstance(document, dict):
        raise FlowDefinitionError("Flow definition must be an object (dict)")

    document.setdefault("id", path.stem)
    return load_flow_from_dict(document)


def load_flow_from_json(document: str) -> FlowGraph:
    """Parse a flow definition from a JSON string.

    Args:
        document: JSON text

    Returns:
        Parsed FlowGraph instance

    Raises:
        FlowDefinitionError: If the text is not valid JSON or not a valid flow
    """
    try:
        data = json.loads(document)
    except json.JSONDecodeError as e:
        raise FlowDefinitionError(f"Failed to parse JSON document: {e}") from e

    if not isinstance(data, dict):
        raise FlowDefinitionError("Flow definition must be an object (dict)")

    return load_flow_from_dict(data)


def load_flow_from_dict(flow_dict: Dict[str, Any]) -> FlowGraph:
    """Parse a flow definition from a dictionary.

    Args:
        flow_dict: Flow definition dictionary

    Returns:
        Parsed FlowGraph instance

    Raises:
        FlowDefinitionError: If the dictionary does not describe a valid flow
    """
    try:
        return FlowGraph.model_validate(flow_dict)
    except ValidationError as e:
        raise FlowDefinitionError(f"Flow definition is invalid: {e}") from e
    except ValueError as e:
        raise FlowDefinitionError(f"Flow definition is invalid: {e}") from e


def discover_flow_files(flows_dir: Union[str, Path]) -> List[Path]:
    """List flow definition files in a directory, sorted by name.

    Args:
        flows_dir: Directory to scan

    Returns:
        Sorted list of JSON/YAML file paths (empty if the directory is missing)
    """
    directory = Path(flows_dir)
    if not directory.is_dir():
        return []
    return sorted(p for p in directory.iterdir() if p.suffix.lower() in FLOW_FILE_SUFFIXES)

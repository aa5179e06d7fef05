"""Loading diagram documents (JSON) and configuration files (YAML)."""

import json
from datetime import datetime
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import yaml
from pydantic import ValidationError

from .errors import ConfigLoadError, ParseError
from .models import DiagramFile

if TYPE_CHECKING:
    from ..graph.diagram import Diagram


def load_yaml(path: str | Path) -> dict:
    """Load a YAML file and return the raw data.

    Args:
        path: Path to the YAML file.

    Returns:
        The parsed YAML data as a dictionary.

    Raises:
        ConfigLoadError: If the file cannot be read or parsed.
    """
    path = Path(path)

    if not path.exists():
        raise ConfigLoadError(f"File not found: {path}", str(path))

    if not path.is_file():
        raise ConfigLoadError(f"Not a file: {path}", str(path))

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigLoadError(f"Invalid YAML: {e}", str(path)) from e
    except OSError as e:
        raise ConfigLoadError(f"Cannot read file: {e}", str(path)) from e

    if data is None:
        return {}

    if not isinstance(data, dict):
        raise ConfigLoadError(
            f"Expected YAML mapping at root, got {type(data).__name__}", str(path)
        )

    return data


def parse_diagram_file(text: str) -> DiagramFile:
    """Parse a diagram JSON document.

    The document is checked structurally first (root object, version, node
    and edge arrays, element shapes), then every payload is validated.

    Args:
        text: The JSON document.

    Returns:
        The parsed DiagramFile.

    Raises:
        ParseError: If the document is malformed in any way.
    """
    try:
        data = json.loads(text)
    except json.JSONDecodeError as e:
        raise ParseError(f"Invalid JSON: {e}") from e

    _check_structure(data)

    try:
        return DiagramFile.model_validate(data)
    except ValidationError as e:
        errors = [
            {
                "loc": ".".join(str(x) for x in err["loc"]),
                "msg": err["msg"],
                "type": err["type"],
            }
            for err in e.errors()
        ]
        raise ParseError(
            f"Diagram validation failed with {len(errors)} error(s)", errors
        ) from e


def load_diagram(
    text: str,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> "Diagram":
    """Parse a diagram JSON document into a live Diagram.

    Args:
        text: The JSON document.
        id_factory: Id factory for elements added later.
        clock: Clock for metadata timestamps.

    Returns:
        The loaded Diagram, with ids preserved.

    Raises:
        ParseError: If the document is malformed or inconsistent.
    """
    from ..graph.builder import build_diagram
    from ..graph.errors import InvariantViolation

    diagram_file = parse_diagram_file(text)
    try:
        return build_diagram(diagram_file, id_factory=id_factory, clock=clock)
    except InvariantViolation as e:
        raise ParseError(f"Inconsistent diagram: {e}") from e


def _check_structure(data: Any) -> None:
    if not isinstance(data, dict):
        raise ParseError("Invalid JSON structure")

    if not isinstance(data.get("version"), str):
        raise ParseError("Missing or invalid version field")

    if not isinstance(data.get("nodes"), list):
        raise ParseError("Missing or invalid nodes field")

    if not isinstance(data.get("edges"), list):
        raise ParseError("Missing or invalid edges field")

    for node in data["nodes"]:
        if not _is_valid_node(node):
            raise ParseError("Invalid node structure detected")

    for edge in data["edges"]:
        if not _is_valid_edge(edge):
            raise ParseError("Invalid edge structure detected")


def _is_valid_node(node: Any) -> bool:
    return (
        isinstance(node, dict)
        and isinstance(node.get("id"), str)
        and isinstance(node.get("type"), str)
        and isinstance(node.get("position"), dict)
        and isinstance(node.get("data"), dict)
    )


def _is_valid_edge(edge: Any) -> bool:
    return (
        isinstance(edge, dict)
        and isinstance(edge.get("id"), str)
        and isinstance(edge.get("source"), str)
        and isinstance(edge.get("target"), str)
    )

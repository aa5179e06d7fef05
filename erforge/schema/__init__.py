"""Schema layer: the diagram IR models and the diagram file format."""

from .errors import ConfigLoadError, ParseError
from .types import DeleteRule, EdgeType, FetchType, NodeType, RelationType
from .models import (
    DIAGRAM_VERSION,
    DiagramFile,
    DiagramMetadata,
    DiagramSnapshot,
    EmbeddableData,
    EmbeddableNode,
    EntityData,
    EntityNode,
    EnumData,
    EnumMappingData,
    EnumMappingEdge,
    EnumNode,
    EnumValue,
    Index,
    InterfaceData,
    InterfaceMethod,
    InterfaceNode,
    Position,
    Property,
    RelationshipData,
    RelationshipEdge,
)
from .loader import load_diagram, load_yaml, parse_diagram_file

__all__ = [
    "ConfigLoadError",
    "ParseError",
    "DeleteRule",
    "EdgeType",
    "FetchType",
    "NodeType",
    "RelationType",
    "DIAGRAM_VERSION",
    "DiagramFile",
    "DiagramMetadata",
    "DiagramSnapshot",
    "EmbeddableData",
    "EmbeddableNode",
    "EntityData",
    "EntityNode",
    "EnumData",
    "EnumMappingData",
    "EnumMappingEdge",
    "EnumNode",
    "EnumValue",
    "Index",
    "InterfaceData",
    "InterfaceMethod",
    "InterfaceNode",
    "Position",
    "Property",
    "RelationshipData",
    "RelationshipEdge",
    "load_diagram",
    "load_yaml",
    "parse_diagram_file",
]

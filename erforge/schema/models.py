"""Pydantic models for the diagram IR and the diagram file."""

from datetime import datetime, timezone
from typing import Annotated, Any, Iterator, Literal, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic.alias_generators import to_camel

from .types import DeleteRule, EdgeType, FetchType, NodeType, RelationType

DIAGRAM_VERSION = "1.0"


class IRModel(BaseModel):
    """Base model: snake_case in Python, camelCase on the wire."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


def _stringify(value: Any) -> Any:
    """Coerce scalar JSON values to the string form the editor stores."""
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    return value


# -----------------------------------------------------------------------------
# Node payloads
# -----------------------------------------------------------------------------


class Position(IRModel):
    """Canvas position. Layout only."""

    x: float = 0
    y: float = 0


class Property(IRModel):
    """A field of an entity, embeddable or interface."""

    id: str
    name: str
    type: str = "string"
    is_primary_key: bool = False
    is_unique: bool = False
    is_nullable: bool = False
    default_value: str | None = None

    @field_validator("default_value", mode="before")
    @classmethod
    def normalize_default(cls, value: Any) -> Any:
        return _stringify(value)


class Index(IRModel):
    """A (possibly composite) index over entity properties."""

    id: str
    name: str | None = None
    properties: list[str] = Field(default_factory=list)  # Property ids
    is_unique: bool = False


class EnumValue(IRModel):
    """A single enum member."""

    key: str
    value: str

    @field_validator("value", mode="before")
    @classmethod
    def normalize_value(cls, value: Any) -> Any:
        return _stringify(value)


class InterfaceMethod(IRModel):
    """A method signature. Parameters and return type are free-form text."""

    name: str
    parameters: str = ""
    return_type: str = "void"


class EntityData(IRModel):
    name: str
    table_name: str | None = None
    properties: list[Property] = Field(default_factory=list)
    indexes: list[Index] = Field(default_factory=list)
    is_aggregate_root: bool = False


class EmbeddableData(IRModel):
    name: str
    properties: list[Property] = Field(default_factory=list)


class EnumData(IRModel):
    name: str
    values: list[EnumValue] = Field(default_factory=list)


class InterfaceData(IRModel):
    name: str
    properties: list[Property] = Field(default_factory=list)
    methods: list[InterfaceMethod] = Field(default_factory=list)


# -----------------------------------------------------------------------------
# Nodes
# -----------------------------------------------------------------------------


class EntityNode(IRModel):
    id: str
    type: Literal["entity"] = "entity"
    position: Position = Field(default_factory=Position)
    data: EntityData


class EmbeddableNode(IRModel):
    id: str
    type: Literal["embeddable"] = "embeddable"
    position: Position = Field(default_factory=Position)
    data: EmbeddableData


class EnumNode(IRModel):
    id: str
    type: Literal["enum"] = "enum"
    position: Position = Field(default_factory=Position)
    data: EnumData


class InterfaceNode(IRModel):
    id: str
    type: Literal["interface"] = "interface"
    position: Position = Field(default_factory=Position)
    data: InterfaceData


Node = Annotated[
    Union[EntityNode, EmbeddableNode, EnumNode, InterfaceNode],
    Field(discriminator="type"),
]

NODE_DATA_MODELS: dict[NodeType, type[IRModel]] = {
    NodeType.ENTITY: EntityData,
    NodeType.EMBEDDABLE: EmbeddableData,
    NodeType.ENUM: EnumData,
    NodeType.INTERFACE: InterfaceData,
}

NODE_MODELS: dict[NodeType, type[IRModel]] = {
    NodeType.ENTITY: EntityNode,
    NodeType.EMBEDDABLE: EmbeddableNode,
    NodeType.ENUM: EnumNode,
    NodeType.INTERFACE: InterfaceNode,
}


# -----------------------------------------------------------------------------
# Edges
# -----------------------------------------------------------------------------


class RelationshipData(IRModel):
    relation_type: RelationType = RelationType.ONE_TO_MANY
    source_property: str = "items"
    target_property: str | None = None
    is_nullable: bool = True
    cascade: bool = False
    orphan_removal: bool = False
    fetch_type: FetchType = FetchType.LAZY
    delete_rule: DeleteRule | None = None


class EnumMappingData(IRModel):
    property_id: str | None = None
    previous_type: str | None = None


class RelationshipEdge(IRModel):
    id: str
    type: Literal["relationship"] = "relationship"
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    data: RelationshipData = Field(default_factory=RelationshipData)


class EnumMappingEdge(IRModel):
    id: str
    type: Literal["enum-mapping"] = "enum-mapping"
    source: str
    target: str
    source_handle: str | None = None
    target_handle: str | None = None
    data: EnumMappingData = Field(default_factory=EnumMappingData)


Edge = Annotated[
    Union[RelationshipEdge, EnumMappingEdge],
    Field(discriminator="type"),
]

EDGE_DATA_MODELS: dict[EdgeType, type[IRModel]] = {
    EdgeType.RELATIONSHIP: RelationshipData,
    EdgeType.ENUM_MAPPING: EnumMappingData,
}

EDGE_MODELS: dict[EdgeType, type[IRModel]] = {
    EdgeType.RELATIONSHIP: RelationshipEdge,
    EdgeType.ENUM_MAPPING: EnumMappingEdge,
}

PropertyOwner = EntityNode | EmbeddableNode | InterfaceNode


# -----------------------------------------------------------------------------
# Snapshot and file
# -----------------------------------------------------------------------------


class DiagramSnapshot(IRModel):
    """A read-only copy of the IR handed to emitters.

    Importers produce snapshots too (as fragments to merge).
    """

    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)
    name: str | None = None
    created_at: datetime | None = None

    def get_node(self, node_id: str) -> Node | None:
        """Get a node by id."""
        for node in self.nodes:
            if node.id == node_id:
                return node
        return None

    def iter_nodes(self, kind: NodeType) -> Iterator[Node]:
        """Iterate over nodes of one variant, in insertion order."""
        return (node for node in self.nodes if node.type == kind)

    @property
    def entities(self) -> list[EntityNode]:
        return list(self.iter_nodes(NodeType.ENTITY))

    @property
    def embeddables(self) -> list[EmbeddableNode]:
        return list(self.iter_nodes(NodeType.EMBEDDABLE))

    @property
    def enums(self) -> list[EnumNode]:
        return list(self.iter_nodes(NodeType.ENUM))

    @property
    def interfaces(self) -> list[InterfaceNode]:
        return list(self.iter_nodes(NodeType.INTERFACE))

    @property
    def relationships(self) -> list[RelationshipEdge]:
        return [e for e in self.edges if e.type == EdgeType.RELATIONSHIP]

    @property
    def enum_mappings(self) -> list[EnumMappingEdge]:
        return [e for e in self.edges if e.type == EdgeType.ENUM_MAPPING]

    def enum_names(self) -> set[str]:
        return {node.data.name for node in self.enums}

    def find_enum(self, name: str) -> EnumNode | None:
        """Get the first enum with the given name."""
        for node in self.enums:
            if node.data.name == name:
                return node
        return None

    def find_embeddable(self, name: str) -> EmbeddableNode | None:
        """Get the first embeddable with the given name."""
        for node in self.embeddables:
            if node.data.name == name:
                return node
        return None

    def outgoing(self, node_id: str) -> list[RelationshipEdge]:
        """Relationship edges leaving a node."""
        return [e for e in self.relationships if e.source == node_id]

    def incoming(self, node_id: str) -> list[RelationshipEdge]:
        """Relationship edges arriving at a node."""
        return [e for e in self.relationships if e.target == node_id]


class DiagramMetadata(IRModel):
    created_at: str | None = None
    updated_at: str | None = None
    name: str | None = None


class DiagramFile(IRModel):
    """The persisted diagram document."""

    version: str = DIAGRAM_VERSION
    metadata: DiagramMetadata = Field(default_factory=DiagramMetadata)
    nodes: list[Node] = Field(default_factory=list)
    edges: list[Edge] = Field(default_factory=list)

    @field_validator("edges", mode="before")
    @classmethod
    def default_edge_type(cls, value: Any) -> Any:
        """Edges saved without a ``type`` are relationships."""
        if not isinstance(value, list):
            return value
        return [
            {**edge, "type": EdgeType.RELATIONSHIP.value}
            if isinstance(edge, dict) and "type" not in edge
            else edge
            for edge in value
        ]

    def to_snapshot(self) -> DiagramSnapshot:
        created = _parse_timestamp(self.metadata.created_at)
        return DiagramSnapshot(
            nodes=list(self.nodes),
            edges=list(self.edges),
            name=self.metadata.name,
            created_at=created,
        )


def format_timestamp(value: datetime) -> str:
    """Format a datetime as an ISO-8601 UTC string with milliseconds."""
    if value.tzinfo is not None:
        value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def _parse_timestamp(text: str | None) -> datetime | None:
    if not text:
        return None
    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        return None

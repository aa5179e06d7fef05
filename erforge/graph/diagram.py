"""Diagram: the mutable IR, backed by a networkx multigraph."""

import itertools
import re
import uuid
from contextlib import contextmanager
from datetime import datetime, timezone
from logging import getLogger
from typing import Any, Callable, Iterator

import networkx as nx
from pydantic import BaseModel

from ..schema.models import (
    DIAGRAM_VERSION,
    EDGE_DATA_MODELS,
    EDGE_MODELS,
    NODE_DATA_MODELS,
    NODE_MODELS,
    DiagramFile,
    DiagramMetadata,
    DiagramSnapshot,
    Edge,
    EmbeddableData,
    EntityData,
    EnumData,
    EnumMappingEdge,
    EnumNode,
    EnumValue,
    InterfaceData,
    InterfaceMethod,
    Node,
    Position,
    Property,
    format_timestamp,
)
from ..schema.types import EdgeType, NodeType
from .consistency import changed_property_types, repair_enum_rename, sync_enum_mappings
from .errors import DiagramError, ElementNotFoundError, InvariantViolation

logger = getLogger(__name__)

PROPERTY_OWNERS = (NodeType.ENTITY, NodeType.EMBEDDABLE, NodeType.INTERFACE)

DEFAULT_NAMES = {
    NodeType.ENTITY: "NewEntity",
    NodeType.EMBEDDABLE: "NewEmbeddable",
    NodeType.ENUM: "NewEnum",
    NodeType.INTERFACE: "NewInterface",
}


def _uuid_ids() -> str:
    return str(uuid.uuid4())


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


def sequential_ids(prefix: str = "id") -> Callable[[], str]:
    """Create a deterministic id factory: ``prefix-1``, ``prefix-2``, ..."""
    counter = itertools.count(1)
    return lambda: f"{prefix}-{next(counter)}"


def unique_name(base_name: str, existing_names: list[str]) -> str:
    """Return ``base_name``, or ``base_name N`` when it is already taken."""
    if base_name not in existing_names:
        return base_name

    pattern = re.compile(rf"^{re.escape(base_name)}(?: (\d+))?$")
    highest = 0
    for name in existing_names:
        match = pattern.match(name)
        if match:
            highest = max(highest, int(match.group(1) or 0))
    return f"{base_name} {highest + 1}"


class Diagram:
    """The diagram IR.

    Nodes live in a networkx MultiDiGraph keyed by node id; every edge is
    stored under its own id as the multigraph key, so several relationships
    may connect the same pair of nodes.

    All mutations are synchronous and transactional: the invariants are
    re-checked when the outermost mutation finishes and the whole mutation is
    rolled back if any of them fails.
    """

    def __init__(
        self,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
        name: str | None = None,
        created_at: datetime | None = None,
    ):
        """Initialize an empty diagram.

        Args:
            id_factory: Zero-argument callable returning fresh ids.
            clock: Callable returning the current UTC time.
            name: Optional diagram name.
            created_at: Creation time; defaults to ``clock()``.
        """
        self._graph = nx.MultiDiGraph()
        self._edge_index: dict[str, tuple[str, str]] = {}
        self._issued_ids: set[str] = set()
        self._id_factory = id_factory or _uuid_ids
        self._clock = clock or _utc_now
        self._depth = 0
        self.name = name
        self.created_at = created_at or self._clock()

    @property
    def graph(self) -> nx.MultiDiGraph:
        """Get the underlying networkx graph."""
        return self._graph

    @property
    def clock(self) -> Callable[[], datetime]:
        return self._clock

    # -------------------------------------------------------------------------
    # Construction from existing data
    # -------------------------------------------------------------------------

    @classmethod
    def from_snapshot(
        cls,
        snapshot: DiagramSnapshot,
        id_factory: Callable[[], str] | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> "Diagram":
        """Build a diagram holding exactly the snapshot's nodes and edges.

        Ids are preserved and the Consistency Engine is not run; the
        invariants are checked once everything is in place.

        Raises:
            InvariantViolation: If the snapshot is inconsistent.
        """
        diagram = cls(
            id_factory=id_factory,
            clock=clock,
            name=snapshot.name,
            created_at=snapshot.created_at,
        )
        with diagram._mutation():
            for node in snapshot.nodes:
                diagram._register_id(node.id)
                diagram._graph.add_node(node.id, node=node.model_copy(deep=True))
            for edge in snapshot.edges:
                diagram._register_id(edge.id)
                for endpoint in (edge.source, edge.target):
                    if not diagram._graph.has_node(endpoint):
                        raise InvariantViolation(
                            "DANGLING_EDGE",
                            f"Edge '{edge.id}' references missing node '{endpoint}'",
                        )
                diagram._insert_edge(edge.model_copy(deep=True))
        return diagram

    # -------------------------------------------------------------------------
    # Node mutations
    # -------------------------------------------------------------------------

    def add_node(
        self,
        kind: NodeType | str,
        data: BaseModel | dict[str, Any] | None = None,
        position: Position | dict[str, float] | None = None,
    ) -> str:
        """Add a node and return its id.

        Args:
            kind: The node variant.
            data: The initial payload; the variant's default payload when omitted.
            position: Canvas position.

        Returns:
            The new node id.
        """
        kind = NodeType(kind)
        with self._mutation():
            node_id = self._new_id()
            if data is None:
                payload = self._default_data(kind, node_id)
            else:
                payload = _coerce(NODE_DATA_MODELS[kind], data)
            node = NODE_MODELS[kind](
                id=node_id,
                position=_coerce(Position, position or {}),
                data=payload,
            )
            self._graph.add_node(node_id, node=node)

            if kind == NodeType.ENTITY:
                sync_enum_mappings(
                    self, node_id, changed_property_types([], payload.properties)
                )

        logger.debug("Added %s node %s (%s)", kind.value, node_id, payload.name)
        return node_id

    def update_node(
        self,
        node_id: str,
        changes: dict[str, Any],
        reactive: bool = True,
    ) -> None:
        """Merge a partial payload into a node's data.

        Replacing an entity's properties runs the Consistency Engine; renaming
        an enum repairs the properties that referenced it by name.

        Args:
            node_id: The node to update.
            changes: Field values keyed by field name or JSON alias.
            reactive: Run the Consistency Engine. Invariants are checked either way.
        """
        node = self.get_node(node_id)
        current = node.data
        data_model = type(current)
        changes = _normalize_keys(data_model, changes)

        with self._mutation():
            updated = data_model.model_validate({**_shallow_fields(current), **changes})
            self._graph.nodes[node_id]["node"] = node.model_copy(update={"data": updated})

            if reactive and node.type == NodeType.ENTITY and "properties" in changes:
                sync_enum_mappings(
                    self,
                    node_id,
                    changed_property_types(current.properties, updated.properties),
                )
            elif reactive and node.type == NodeType.ENUM and updated.name != current.name:
                repair_enum_rename(self, node_id, current.name, updated.name)

        logger.debug("Updated node %s: %s", node_id, ", ".join(sorted(changes)))

    def move_node(self, node_id: str, x: float, y: float) -> None:
        """Change a node's canvas position."""
        node = self.get_node(node_id)
        with self._mutation():
            self._graph.nodes[node_id]["node"] = node.model_copy(
                update={"position": Position(x=x, y=y)}
            )

    def delete_node(self, node_id: str) -> None:
        """Delete a node and every edge that references it."""
        self.get_node(node_id)
        with self._mutation():
            incident = [
                key for _, _, key in self._graph.in_edges(node_id, keys=True)
            ] + [key for _, _, key in self._graph.out_edges(node_id, keys=True)]
            for edge_id in incident:
                self._edge_index.pop(edge_id, None)
            self._graph.remove_node(node_id)

        logger.debug("Deleted node %s and %d edge(s)", node_id, len(set(incident)))

    # -------------------------------------------------------------------------
    # Edge mutations
    # -------------------------------------------------------------------------

    def add_edge(
        self,
        kind: EdgeType | str,
        source: str,
        target: str,
        data: BaseModel | dict[str, Any] | None = None,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> str:
        """Add an edge and return its id.

        Args:
            kind: The edge variant.
            source: Source node id.
            target: Target node id.
            data: The initial payload; the variant's defaults when omitted.
            source_handle: Optional source handle (layout only).
            target_handle: Optional target handle (layout only).

        Returns:
            The new edge id.
        """
        kind = EdgeType(kind)
        self.get_node(source)
        self.get_node(target)

        with self._mutation():
            edge_id = self._new_id()
            payload = _coerce(EDGE_DATA_MODELS[kind], data or {})
            edge = EDGE_MODELS[kind](
                id=edge_id,
                source=source,
                target=target,
                source_handle=source_handle,
                target_handle=target_handle,
                data=payload,
            )
            self._insert_edge(edge)

        logger.debug("Added %s edge %s (%s -> %s)", kind.value, edge_id, source, target)
        return edge_id

    def update_edge(self, edge_id: str, changes: dict[str, Any]) -> None:
        """Merge a partial payload into an edge's data."""
        edge = self.get_edge(edge_id)
        current = edge.data
        data_model = type(current)
        changes = _normalize_keys(data_model, changes)

        with self._mutation():
            updated = data_model.model_validate({**_shallow_fields(current), **changes})
            source, target = self._edge_index[edge_id]
            self._graph.edges[source, target, edge_id]["edge"] = edge.model_copy(
                update={"data": updated}
            )

    def delete_edge(self, edge_id: str, restore_type: bool = True) -> None:
        """Delete an edge.

        Deleting an enum mapping whose property still carries the enum's type
        restores that property's previous type.

        Args:
            edge_id: The edge to delete.
            restore_type: Restore the mapped property's type (enum mappings only).
        """
        edge = self.get_edge(edge_id)
        with self._mutation():
            source, target = self._edge_index.pop(edge_id)
            self._graph.remove_edge(source, target, key=edge_id)

            if (
                restore_type
                and edge.type == EdgeType.ENUM_MAPPING
                and edge.data.property_id is not None
            ):
                self._restore_mapped_type(edge)

        logger.debug("Deleted edge %s", edge_id)

    def connect(
        self,
        source: str,
        target: str,
        source_handle: str | None = None,
        target_handle: str | None = None,
    ) -> str:
        """Connect two nodes the way the editor's connect gesture does.

        Entity <-> Enum (either direction) becomes an enum mapping from the
        entity to the enum, reusing an existing mapping for the pair.
        Anything else becomes a default relationship.
        """
        source_node = self.get_node(source)
        target_node = self.get_node(target)
        kinds = {source_node.type, target_node.type}

        if kinds == {NodeType.ENTITY, NodeType.ENUM}:
            if source_node.type == NodeType.ENUM:
                source, target = target, source
                source_handle, target_handle = target_handle, source_handle
            existing = self.find_enum_mapping(source, target)
            if existing is not None:
                return existing.id
            return self.add_edge(
                EdgeType.ENUM_MAPPING,
                source,
                target,
                source_handle=source_handle,
                target_handle=target_handle,
            )

        return self.add_edge(
            EdgeType.RELATIONSHIP,
            source,
            target,
            source_handle=source_handle,
            target_handle=target_handle,
        )

    def assign_enum_mapping(self, edge_id: str, property_id: str) -> None:
        """Bind an enum mapping to one of its entity's properties.

        The property's type becomes the enum name; the Consistency Engine
        then records the property id and its previous type on the mapping.
        """
        edge = self.get_edge(edge_id)
        if edge.type != EdgeType.ENUM_MAPPING:
            raise DiagramError(f"Edge '{edge_id}' is not an enum mapping")

        entity = self.get_node(edge.source)
        enum_name = self.get_node(edge.target).data.name
        if not any(p.id == property_id for p in entity.data.properties):
            raise ElementNotFoundError("property", property_id)

        with self._mutation():
            prop = next(p for p in entity.data.properties if p.id == property_id)
            if prop.type == enum_name:
                self.update_edge(edge_id, {"property_id": property_id})
            else:
                self.update_node(
                    entity.id,
                    {
                        "properties": [
                            p.model_copy(update={"type": enum_name})
                            if p.id == property_id
                            else p
                            for p in entity.data.properties
                        ]
                    },
                )

    # -------------------------------------------------------------------------
    # Queries
    # -------------------------------------------------------------------------

    def has_node(self, node_id: str) -> bool:
        return self._graph.has_node(node_id)

    def has_edge(self, edge_id: str) -> bool:
        return edge_id in self._edge_index

    def get_node(self, node_id: str) -> Node:
        """Get a node by id.

        Raises:
            ElementNotFoundError: If the id is unknown.
        """
        if not self._graph.has_node(node_id):
            raise ElementNotFoundError("node", node_id)
        return self._graph.nodes[node_id]["node"]

    def get_edge(self, edge_id: str) -> Edge:
        """Get an edge by id.

        Raises:
            ElementNotFoundError: If the id is unknown.
        """
        if edge_id not in self._edge_index:
            raise ElementNotFoundError("edge", edge_id)
        source, target = self._edge_index[edge_id]
        return self._graph.edges[source, target, edge_id]["edge"]

    def nodes(self, kind: NodeType | str | None = None) -> list[Node]:
        """Get all nodes (optionally of one variant) in insertion order."""
        return [
            data["node"]
            for _, data in self._graph.nodes(data=True)
            if kind is None or data["node"].type == kind
        ]

    def edges(self, kind: EdgeType | str | None = None) -> list[Edge]:
        """Get all edges (optionally of one variant) in insertion order."""
        return [
            edge
            for edge in self._iter_edges()
            if kind is None or edge.type == kind
        ]

    def edges_for_node(self, node_id: str) -> list[Edge]:
        """Get every edge whose source or target is the node."""
        return [
            edge
            for edge in self._iter_edges()
            if node_id in (edge.source, edge.target)
        ]

    def find_enum_by_name(self, name: str) -> EnumNode | None:
        """Get the first enum (in insertion order) with the given name."""
        for node in self.nodes(NodeType.ENUM):
            if node.data.name == name:
                return node
        return None

    def find_enum_mapping(self, entity_id: str, enum_id: str) -> EnumMappingEdge | None:
        """Get the enum mapping for an (entity, enum) pair, if any."""
        edges = self._graph.get_edge_data(entity_id, enum_id) or {}
        for data in edges.values():
            if data["edge"].type == EdgeType.ENUM_MAPPING:
                return data["edge"]
        return None

    @contextmanager
    def batch(self) -> Iterator[None]:
        """Apply several mutations as one.

        Invariants are checked once when the block ends. If anything in the
        block raises, the diagram is restored to its state before the block.
        """
        with self._mutation():
            yield

    def snapshot(self) -> DiagramSnapshot:
        """Get a detached copy of the current IR."""
        return DiagramSnapshot(
            nodes=[node.model_copy(deep=True) for node in self.nodes()],
            edges=[edge.model_copy(deep=True) for edge in self.edges()],
            name=self.name,
            created_at=self.created_at,
        )

    def to_file(self, updated_at: datetime | None = None) -> DiagramFile:
        """Get the persisted form of the diagram.

        Args:
            updated_at: Save time; defaults to the diagram clock.
        """
        return DiagramFile(
            version=DIAGRAM_VERSION,
            metadata=DiagramMetadata(
                created_at=format_timestamp(self.created_at),
                updated_at=format_timestamp(updated_at or self._clock()),
                name=self.name,
            ),
            nodes=[node.model_copy(deep=True) for node in self.nodes()],
            edges=[edge.model_copy(deep=True) for edge in self.edges()],
        )

    # -------------------------------------------------------------------------
    # Invariants
    # -------------------------------------------------------------------------

    def check_invariants(self) -> None:
        """Verify every structural invariant.

        Raises:
            InvariantViolation: On the first violated invariant.
        """
        graph_edge_ids = {key for _, _, key in self._graph.edges(keys=True)}
        if graph_edge_ids != set(self._edge_index):
            raise InvariantViolation("DANGLING_EDGE", "Edge index is out of sync with the graph")

        for node_id, data in self._graph.nodes(data=True):
            if data["node"].id != node_id:
                raise InvariantViolation("ID_REUSED", f"Node '{node_id}' changed its id")
            if node_id in self._edge_index:
                raise InvariantViolation(
                    "ID_REUSED", f"Id '{node_id}' is used by a node and an edge"
                )

        mapped_pairs: set[tuple[str, str]] = set()
        for edge in self._iter_edges():
            source = self._graph.nodes[edge.source]["node"]
            target = self._graph.nodes[edge.target]["node"]

            if edge.type == EdgeType.ENUM_MAPPING:
                self._check_enum_mapping(edge, source, target, mapped_pairs)

        for node in self.nodes(NodeType.ENTITY):
            property_ids = {p.id for p in node.data.properties}
            for index in node.data.indexes:
                missing = [p for p in index.properties if p not in property_ids]
                if missing:
                    raise InvariantViolation(
                        "INDEX_FOREIGN_PROPERTY",
                        f"Index '{index.id}' on '{node.data.name}' references "
                        f"unknown properties: {', '.join(missing)}",
                    )

    def _check_enum_mapping(
        self,
        edge: EnumMappingEdge,
        source: Node,
        target: Node,
        mapped_pairs: set[tuple[str, str]],
    ) -> None:
        if source.type != NodeType.ENTITY or target.type != NodeType.ENUM:
            raise InvariantViolation(
                "MAPPING_ENDPOINTS",
                f"Enum mapping '{edge.id}' must connect an entity to an enum, "
                f"got {source.type} -> {target.type}",
            )

        pair = (edge.source, edge.target)
        if pair in mapped_pairs:
            raise InvariantViolation(
                "DUPLICATE_MAPPING",
                f"More than one enum mapping between '{source.data.name}' "
                f"and '{target.data.name}'",
            )
        mapped_pairs.add(pair)

        property_id = edge.data.property_id
        if property_id is None:
            return
        prop = next((p for p in source.data.properties if p.id == property_id), None)
        if prop is None or prop.type != target.data.name:
            raise InvariantViolation(
                "MAPPING_PROPERTY_TYPE",
                f"Enum mapping '{edge.id}' points at property '{property_id}' "
                f"whose type is not '{target.data.name}'",
            )

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    @contextmanager
    def _mutation(self) -> Iterator[None]:
        """Run a mutation; check invariants and roll back on failure.

        Nested mutations join the outermost one.
        """
        if self._depth:
            self._depth += 1
            try:
                yield
            finally:
                self._depth -= 1
            return

        saved_graph = self._graph.copy()
        saved_index = dict(self._edge_index)
        self._depth = 1
        try:
            yield
            self.check_invariants()
        except BaseException:
            self._graph = saved_graph
            self._edge_index = saved_index
            raise
        finally:
            self._depth = 0

    def _new_id(self) -> str:
        element_id = self._id_factory()
        self._register_id(element_id)
        return element_id

    def _register_id(self, element_id: str) -> None:
        if element_id in self._issued_ids:
            raise InvariantViolation("ID_REUSED", f"Id '{element_id}' is already in use")
        self._issued_ids.add(element_id)

    def _insert_edge(self, edge: Edge) -> None:
        self._graph.add_edge(edge.source, edge.target, key=edge.id, edge=edge)
        self._edge_index[edge.id] = (edge.source, edge.target)

    def _iter_edges(self) -> Iterator[Edge]:
        for edge_id, (source, target) in self._edge_index.items():
            yield self._graph.edges[source, target, edge_id]["edge"]

    def _restore_mapped_type(self, edge: EnumMappingEdge) -> None:
        entity = self._graph.nodes[edge.source]["node"]
        enum_node = self._graph.nodes[edge.target]["node"]
        if entity.type != NodeType.ENTITY:
            return

        prop = next(
            (p for p in entity.data.properties if p.id == edge.data.property_id), None
        )
        if prop is None or prop.type != enum_node.data.name:
            return

        previous = edge.data.previous_type or "string"
        self.update_node(
            entity.id,
            {
                "properties": [
                    p.model_copy(update={"type": previous}) if p.id == prop.id else p
                    for p in entity.data.properties
                ]
            },
        )

    def _default_data(self, kind: NodeType, node_id: str) -> BaseModel:
        existing = [node.data.name for node in self.nodes(kind)]
        name = unique_name(DEFAULT_NAMES[kind], existing)

        if kind == NodeType.ENTITY:
            return EntityData(
                name=name,
                properties=[
                    Property(
                        id=f"{node_id}-prop-id",
                        name="id",
                        type="number",
                        is_primary_key=True,
                    )
                ],
            )
        if kind == NodeType.EMBEDDABLE:
            return EmbeddableData(
                name=name,
                properties=[Property(id=f"{node_id}-prop-1", name="value", type="string")],
            )
        if kind == NodeType.ENUM:
            return EnumData(
                name=name,
                values=[
                    EnumValue(key="Value1", value="value1"),
                    EnumValue(key="Value2", value="value2"),
                ],
            )
        return InterfaceData(
            name=name,
            properties=[Property(id=f"{node_id}-prop-1", name="id", type="number")],
            methods=[InterfaceMethod(name="execute", parameters="", return_type="void")],
        )


def _coerce(model: type[BaseModel], value: BaseModel | dict[str, Any]) -> BaseModel:
    """Validate a payload given as a model instance or a plain dict."""
    if isinstance(value, model):
        return value.model_copy(deep=True)
    if isinstance(value, BaseModel):
        value = value.model_dump()
    return model.model_validate(value)


def _shallow_fields(model: BaseModel) -> dict[str, Any]:
    """Field values of a model without dumping nested models."""
    return {name: getattr(model, name) for name in type(model).model_fields}


def _normalize_keys(model: type[BaseModel], changes: dict[str, Any]) -> dict[str, Any]:
    """Map JSON aliases to field names and reject unknown fields."""
    by_alias = {
        field.alias: name
        for name, field in model.model_fields.items()
        if field.alias is not None
    }
    normalized: dict[str, Any] = {}
    for key, value in changes.items():
        if key in model.model_fields:
            normalized[key] = value
        elif key in by_alias:
            normalized[by_alias[key]] = value
        else:
            raise DiagramError(f"Unknown field '{key}' for {model.__name__}")
    return normalized

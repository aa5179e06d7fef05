"""Building diagrams from snapshots and merging imported fragments."""

from datetime import datetime
from logging import getLogger
from typing import Callable

from ..schema.models import DiagramFile, DiagramSnapshot
from ..schema.types import EdgeType, NodeType
from .diagram import Diagram

logger = getLogger(__name__)


def build_diagram(
    source: DiagramSnapshot | DiagramFile,
    id_factory: Callable[[], str] | None = None,
    clock: Callable[[], datetime] | None = None,
) -> Diagram:
    """Build a Diagram from a snapshot or a parsed diagram file.

    Ids are preserved exactly.

    Args:
        source: The snapshot or file to load.
        id_factory: Id factory for elements added later.
        clock: Clock for metadata timestamps.

    Returns:
        A Diagram holding the source's nodes and edges.

    Raises:
        InvariantViolation: If the source breaks a structural invariant.
    """
    if isinstance(source, DiagramFile):
        source = source.to_snapshot()
    return Diagram.from_snapshot(source, id_factory=id_factory, clock=clock)


def merge_fragment(diagram: Diagram, fragment: DiagramSnapshot) -> dict[str, str]:
    """Merge an imported fragment into a live diagram.

    Everything goes through the mutation API with fresh ids: enums first, so
    that the Consistency Engine can create enum mappings for the entities
    added next, then the remaining nodes, then relationships. Enum mappings
    carried by the fragment are not copied; the engine derives them.

    The merge is all-or-nothing: if any element is rejected, the diagram is
    left as it was.

    Args:
        diagram: The diagram to merge into.
        fragment: The fragment produced by an importer.

    Returns:
        A mapping from fragment ids to the ids assigned in the diagram.

    Raises:
        InvariantViolation: If the merged diagram would break an invariant.
    """
    id_map: dict[str, str] = {}

    ordered = [n for n in fragment.nodes if n.type == NodeType.ENUM] + [
        n for n in fragment.nodes if n.type != NodeType.ENUM
    ]
    with diagram.batch():
        for node in ordered:
            id_map[node.id] = diagram.add_node(
                node.type, data=node.data, position=node.position
            )

        for edge in fragment.edges:
            if edge.type == EdgeType.ENUM_MAPPING:
                continue
            if edge.source not in id_map or edge.target not in id_map:
                logger.warning("Skipping edge %s with an endpoint outside the fragment", edge.id)
                continue
            id_map[edge.id] = diagram.add_edge(
                edge.type,
                id_map[edge.source],
                id_map[edge.target],
                data=edge.data,
                source_handle=edge.source_handle,
                target_handle=edge.target_handle,
            )

    logger.debug(
        "Merged fragment: %d node(s), %d edge(s)",
        len(fragment.nodes),
        len(id_map) - len(fragment.nodes),
    )
    return id_map

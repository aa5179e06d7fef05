"""Orphan entity detection validator."""

from ..schema.models import DiagramSnapshot
from .base import ValidationResult


def check_orphan_entities(snapshot: DiagramSnapshot) -> ValidationResult:
    """Check for entities with no relationships.

    An orphan entity is one that no relationship edge starts or ends at.
    Enum mappings do not count. This may indicate a missing relationship or
    an entity that should be removed.

    Args:
        snapshot: The diagram to check.

    Returns:
        ValidationResult with warnings for orphan entities.
    """
    result = ValidationResult()

    connected = set()
    for edge in snapshot.relationships:
        connected.add(edge.source)
        connected.add(edge.target)

    for entity in snapshot.entities:
        if entity.id not in connected:
            result.add_warning(
                code="ORPHAN_ENTITY",
                message=f"Entity '{entity.data.name}' has no relationships to other nodes",
                node=entity.data.name,
            )

    return result

"""Reference integrity validator."""

from ..schema.models import DiagramSnapshot
from ..schema.types import NodeType, RelationType
from .base import ValidationResult


def check_reference_integrity(snapshot: DiagramSnapshot) -> ValidationResult:
    """Check that relationships point at nodes that can play their role.

    This validator checks:
    - Structural relationships connect two entities
    - Implementation targets are interfaces
    - Inheritance connects nodes of the same kind
    - Enum mappings are bound to a property

    Args:
        snapshot: The diagram to check.

    Returns:
        ValidationResult with errors for relationships that cannot be
        generated and warnings for questionable ones.
    """
    result = ValidationResult()

    for edge in snapshot.relationships:
        source = snapshot.get_node(edge.source)
        target = snapshot.get_node(edge.target)
        relation = edge.data.relation_type
        field_name = edge.data.source_property

        if relation.is_structural:
            for end in (source, target):
                if end.type != NodeType.ENTITY:
                    result.add_error(
                        code="STRUCTURAL_RELATION_NON_ENTITY",
                        message=(
                            f"{relation.value} relationship involves "
                            f"{end.type} '{end.data.name}'; both ends must be entities"
                        ),
                        node=source.data.name,
                        element=field_name,
                        target=target.data.name,
                    )
        elif relation == RelationType.IMPLEMENTATION and target.type != NodeType.INTERFACE:
            result.add_warning(
                code="IMPLEMENTS_NON_INTERFACE",
                message=f"'{source.data.name}' implements {target.type} '{target.data.name}'",
                node=source.data.name,
                target=target.data.name,
            )
        elif relation == RelationType.INHERITANCE and target.type != source.type:
            result.add_warning(
                code="INHERITANCE_KIND_MISMATCH",
                message=(
                    f"{source.type} '{source.data.name}' extends "
                    f"{target.type} '{target.data.name}'"
                ),
                node=source.data.name,
                target=target.data.name,
            )

    for edge in snapshot.enum_mappings:
        if edge.data.property_id is None:
            source = snapshot.get_node(edge.source)
            target = snapshot.get_node(edge.target)
            result.add_warning(
                code="UNBOUND_ENUM_MAPPING",
                message=(
                    f"Enum mapping from '{source.data.name}' to '{target.data.name}' "
                    "is not bound to a property"
                ),
                node=source.data.name,
                enum=target.data.name,
            )

    return result

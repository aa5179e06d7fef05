"""Field name conflict validator."""

from collections import Counter

from ..schema.models import DiagramSnapshot
from .base import ValidationResult


def check_field_conflicts(snapshot: DiagramSnapshot) -> ValidationResult:
    """Check that every generated class field name is used once.

    Property names and the field names of outgoing structural relationships
    share one namespace per entity.

    Args:
        snapshot: The diagram to check.

    Returns:
        ValidationResult with an error per duplicated field name.
    """
    result = ValidationResult()

    for entity in snapshot.entities:
        names = [p.name for p in entity.data.properties]
        names.extend(
            edge.data.source_property
            for edge in snapshot.outgoing(entity.id)
            if edge.data.relation_type.is_structural
        )
        for name, count in Counter(names).items():
            if count > 1:
                result.add_error(
                    code="FIELD_NAME_CONFLICT",
                    message=f"Field '{name}' is declared {count} times",
                    node=entity.data.name,
                    element=name,
                )

    return result

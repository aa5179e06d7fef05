"""Consistency Engine: keeps enum-mapping edges in step with property types.

An entity property whose ``type`` equals an enum's name references that enum.
Every such reference is mirrored by exactly one enum-mapping edge from the
entity to the enum. The functions here are called by the ``Diagram`` mutation
API after entity properties or enum names change.
"""

from logging import getLogger
from typing import TYPE_CHECKING, NamedTuple

from ..schema.models import Property
from ..schema.types import EdgeType, NodeType

if TYPE_CHECKING:
    from .diagram import Diagram

logger = getLogger(__name__)


class TypeChange(NamedTuple):
    """A property whose type changed, appeared or disappeared."""

    property_id: str
    old_type: str | None  # None: property added
    new_type: str | None  # None: property removed


def changed_property_types(
    before: list[Property],
    after: list[Property],
) -> list[TypeChange]:
    """Diff two property lists by id, keeping only type changes.

    Removed properties come first, followed by changed and added properties
    in their new order.
    """
    old_types = {prop.id: prop.type for prop in before}
    new_ids = {prop.id for prop in after}

    changes = [
        TypeChange(prop.id, prop.type, None) for prop in before if prop.id not in new_ids
    ]
    for prop in after:
        old_type = old_types.get(prop.id)
        if old_type != prop.type:
            changes.append(TypeChange(prop.id, old_type, prop.type))
    return changes


def sync_enum_mappings(
    diagram: "Diagram",
    entity_id: str,
    changes: list[TypeChange],
) -> None:
    """Create, rebind or delete enum mappings for an entity's type changes.

    All deletions run before any creation, so one edit that moves an enum
    type from one property to another keeps the mapping.

    Args:
        diagram: The diagram being mutated.
        entity_id: The entity whose properties changed.
        changes: Type changes, applied in order.
    """
    changes = [change for change in changes if change.old_type != change.new_type]

    for change in changes:
        old_enum = diagram.find_enum_by_name(change.old_type) if change.old_type else None
        if old_enum is None:
            continue
        mapping = diagram.find_enum_mapping(entity_id, old_enum.id)
        if mapping is not None:
            logger.debug(
                "Removing enum mapping %s (%s no longer typed %s)",
                mapping.id,
                change.property_id,
                old_enum.data.name,
            )
            diagram.delete_edge(mapping.id, restore_type=False)

    for change in changes:
        new_enum = diagram.find_enum_by_name(change.new_type) if change.new_type else None
        if new_enum is None:
            continue

        mapping = diagram.find_enum_mapping(entity_id, new_enum.id)
        if mapping is None:
            edge_id = diagram.add_edge(EdgeType.ENUM_MAPPING, entity_id, new_enum.id)
            logger.debug(
                "Created enum mapping %s for %s -> %s",
                edge_id,
                change.property_id,
                new_enum.data.name,
            )
        else:
            edge_id = mapping.id

        diagram.update_edge(
            edge_id,
            {"property_id": change.property_id, "previous_type": change.old_type},
        )


def repair_enum_rename(
    diagram: "Diagram",
    enum_id: str,
    old_name: str,
    new_name: str,
) -> None:
    """Follow an enum rename through every property that referenced it.

    When no other enum still carries ``old_name``, every entity, embeddable
    and interface property typed ``old_name`` is retyped to ``new_name``.
    Otherwise those properties keep referencing the remaining enum and the
    renamed enum's mappings are moved over to it.
    """
    remaining = diagram.find_enum_by_name(old_name)
    if remaining is None:
        for node in diagram.nodes():
            if node.type == NodeType.ENUM:
                continue
            properties = node.data.properties
            if not any(prop.type == old_name for prop in properties):
                continue
            diagram.update_node(
                node.id,
                {
                    "properties": [
                        prop.model_copy(update={"type": new_name})
                        if prop.type == old_name
                        else prop
                        for prop in properties
                    ]
                },
                reactive=False,
            )
            logger.debug("Retyped %s properties on %s", old_name, node.data.name)
        return

    for mapping in diagram.edges(EdgeType.ENUM_MAPPING):
        if mapping.target != enum_id:
            continue
        entity_id = mapping.source
        property_id = mapping.data.property_id
        diagram.delete_edge(mapping.id, restore_type=False)
        if property_id is not None:
            sync_enum_mappings(
                diagram, entity_id, [TypeChange(property_id, None, old_name)]
            )

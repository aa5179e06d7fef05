"""JSON emitters: the persisted diagram document and a name-based schema summary."""

import json
from datetime import datetime, timezone

from ..config import GeneratorConfig
from ..schema.models import (
    DIAGRAM_VERSION,
    DiagramFile,
    DiagramMetadata,
    DiagramSnapshot,
    Index,
    Property,
    format_timestamp,
)

DIAGRAM_FILENAME = "diagram.json"
SCHEMA_FILENAME = "schema.json"


def diagram_document(snapshot: DiagramSnapshot, now: datetime | None = None) -> dict:
    """Build the diagram document as plain JSON data.

    ``createdAt`` is the snapshot's creation time; ``updatedAt`` is ``now``.
    """
    now = now or datetime.now(timezone.utc)
    diagram_file = DiagramFile(
        version=DIAGRAM_VERSION,
        metadata=DiagramMetadata(
            created_at=format_timestamp(snapshot.created_at or now),
            updated_at=format_timestamp(now),
            name=snapshot.name,
        ),
        nodes=snapshot.nodes,
        edges=snapshot.edges,
    )
    return diagram_file.model_dump(mode="json", by_alias=True, exclude_none=True)


def emit_json(
    snapshot: DiagramSnapshot,
    config: GeneratorConfig | None = None,
    now: datetime | None = None,
) -> dict[str, str]:
    """Serialize the diagram to its JSON file format.

    Args:
        snapshot: The diagram to emit.
        config: Generator options (``json_indent``).
        now: Emission time, used for ``updatedAt``.

    Returns:
        ``{"diagram.json": text}``.
    """
    config = config or GeneratorConfig()
    document = diagram_document(snapshot, now)
    return {DIAGRAM_FILENAME: json.dumps(document, indent=config.json_indent) + "\n"}


def schema_summary(snapshot: DiagramSnapshot, now: datetime | None = None) -> dict:
    """Describe the diagram by names instead of ids.

    Relationships whose endpoints cannot be resolved are left out.
    """
    now = now or datetime.now(timezone.utc)
    names = {node.id: node.data.name for node in snapshot.nodes}

    entities = []
    for node in snapshot.entities:
        entry = {
            "kind": "entity",
            "name": node.data.name,
            "properties": [_property_summary(p) for p in node.data.properties],
        }
        if node.data.table_name:
            entry["tableName"] = node.data.table_name
        if node.data.indexes:
            entry["indexes"] = [
                _index_summary(index, node.data.properties) for index in node.data.indexes
            ]
        if node.data.is_aggregate_root:
            entry["isAggregateRoot"] = True
        entities.append(entry)

    relationships = []
    for edge in snapshot.relationships:
        if edge.source not in names or edge.target not in names:
            continue
        data = edge.data
        entry = {
            "type": data.relation_type.value,
            "source": names[edge.source],
            "target": names[edge.target],
            "sourceProperty": data.source_property,
        }
        if data.target_property:
            entry["targetProperty"] = data.target_property
        if data.is_nullable:
            entry["isNullable"] = True
        if data.cascade:
            entry["cascade"] = True
        if data.orphan_removal:
            entry["orphanRemoval"] = True
        if data.delete_rule is not None:
            entry["deleteRule"] = data.delete_rule.value
        relationships.append(entry)

    return {
        "version": DIAGRAM_VERSION,
        "metadata": {
            "exportedAt": format_timestamp(now),
            "nodeCount": len(snapshot.nodes),
            "relationshipCount": len(relationships),
        },
        "entities": entities,
        "embeddables": [
            {
                "kind": "embeddable",
                "name": node.data.name,
                "properties": [_property_summary(p) for p in node.data.properties],
            }
            for node in snapshot.embeddables
        ],
        "enums": [
            {
                "kind": "enum",
                "name": node.data.name,
                "values": [{"key": v.key, "value": v.value} for v in node.data.values],
            }
            for node in snapshot.enums
        ],
        "interfaces": [
            {
                "kind": "interface",
                "name": node.data.name,
                "properties": [_property_summary(p) for p in node.data.properties],
                "methods": [
                    m.model_dump(by_alias=True) for m in node.data.methods
                ],
            }
            for node in snapshot.interfaces
        ],
        "relationships": relationships,
    }


def emit_schema_summary(
    snapshot: DiagramSnapshot,
    config: GeneratorConfig | None = None,
    now: datetime | None = None,
) -> dict[str, str]:
    """Serialize the name-based schema summary.

    Returns:
        ``{"schema.json": text}``.
    """
    config = config or GeneratorConfig()
    document = schema_summary(snapshot, now)
    return {SCHEMA_FILENAME: json.dumps(document, indent=config.json_indent) + "\n"}


def _property_summary(prop: Property) -> dict:
    entry = {"name": prop.name, "type": prop.type}
    if prop.is_primary_key:
        entry["isPrimaryKey"] = True
    if prop.is_unique:
        entry["isUnique"] = True
    if prop.is_nullable:
        entry["isNullable"] = True
    if prop.default_value is not None and prop.default_value != "":
        entry["defaultValue"] = prop.default_value
    return entry


def _index_summary(index: Index, properties: list[Property]) -> dict:
    names = {p.id: p.name for p in properties}
    entry = {
        "properties": [names.get(p, p) for p in index.properties],
        "isUnique": index.is_unique,
    }
    if index.name:
        entry["name"] = index.name
    return entry

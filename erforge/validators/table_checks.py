"""Validators for things the SQL emitter needs from entities."""

from collections import defaultdict

from ..codegen.naming import table_name
from ..schema.models import DiagramSnapshot
from .base import ValidationResult


def check_primary_keys(snapshot: DiagramSnapshot) -> ValidationResult:
    """Warn about entities without a primary key.

    Foreign keys to such an entity cannot be generated.
    """
    result = ValidationResult()

    for entity in snapshot.entities:
        if not any(p.is_primary_key for p in entity.data.properties):
            result.add_warning(
                code="MISSING_PRIMARY_KEY",
                message=f"Entity '{entity.data.name}' has no primary key",
                node=entity.data.name,
            )

    return result


def check_duplicate_tables(snapshot: DiagramSnapshot) -> ValidationResult:
    """Report entities that would be generated into the same table."""
    result = ValidationResult()

    tables: dict[str, list[str]] = defaultdict(list)
    for entity in snapshot.entities:
        tables[table_name(entity.data.name, entity.data.table_name)].append(entity.data.name)

    for table, names in tables.items():
        if len(names) > 1:
            result.add_error(
                code="DUPLICATE_TABLE_NAME",
                message=f"Entities {', '.join(repr(n) for n in names)} share table '{table}'",
                node=names[0],
                table=table,
                entities=names,
            )

    return result

"""Validation runner that orchestrates all validators."""

from pathlib import Path

from ..schema.loader import load_diagram
from ..schema.models import DiagramSnapshot
from .base import ValidationResult
from .field_conflicts import check_field_conflicts
from .orphan_detector import check_orphan_entities
from .reference_integrity import check_reference_integrity
from .table_checks import check_duplicate_tables, check_primary_keys


def run_validators(snapshot: DiagramSnapshot) -> ValidationResult:
    """Run all validators on a diagram.

    Args:
        snapshot: The diagram to lint.

    Returns:
        Combined ValidationResult from all validators.
    """
    result = ValidationResult()

    # Run reference integrity first (most fundamental)
    result.merge(check_reference_integrity(snapshot))

    result.merge(check_duplicate_tables(snapshot))
    result.merge(check_field_conflicts(snapshot))
    result.merge(check_primary_keys(snapshot))
    result.merge(check_orphan_entities(snapshot))

    return result


def validate_diagram_file(path: str | Path) -> ValidationResult:
    """Load and lint a diagram file.

    Args:
        path: Path to the diagram JSON file.

    Returns:
        ValidationResult from all validators.

    Raises:
        OSError: If the file cannot be read.
        ParseError: If the file is not a valid diagram.
    """
    text = Path(path).read_text(encoding="utf-8")
    return run_validators(load_diagram(text).snapshot())

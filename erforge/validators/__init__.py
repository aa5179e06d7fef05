"""Validators for structural lint checks of diagrams."""

from .base import Severity, ValidationIssue, ValidationResult
from .field_conflicts import check_field_conflicts
from .orphan_detector import check_orphan_entities
from .reference_integrity import check_reference_integrity
from .table_checks import check_duplicate_tables, check_primary_keys
from .runner import run_validators, validate_diagram_file

__all__ = [
    "Severity",
    "ValidationIssue",
    "ValidationResult",
    "check_field_conflicts",
    "check_orphan_entities",
    "check_reference_integrity",
    "check_duplicate_tables",
    "check_primary_keys",
    "run_validators",
    "validate_diagram_file",
]

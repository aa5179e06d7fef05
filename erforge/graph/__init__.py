"""Graph layer: the mutable diagram IR and its consistency rules."""

from .errors import DiagramError, ElementNotFoundError, InvariantViolation
from .diagram import Diagram, sequential_ids, unique_name
from .consistency import TypeChange, changed_property_types, sync_enum_mappings
from .builder import build_diagram, merge_fragment

__all__ = [
    "DiagramError",
    "ElementNotFoundError",
    "InvariantViolation",
    "Diagram",
    "sequential_ids",
    "unique_name",
    "TypeChange",
    "changed_property_types",
    "sync_enum_mappings",
    "build_diagram",
    "merge_fragment",
]

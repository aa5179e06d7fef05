"""Code generation from diagram snapshots."""

from .generator import TARGETS, generate
from .json_export import emit_json, emit_schema_summary
from .sql import emit_sql
from .typescript import emit_typescript

__all__ = [
    "TARGETS",
    "generate",
    "emit_json",
    "emit_schema_summary",
    "emit_sql",
    "emit_typescript",
]

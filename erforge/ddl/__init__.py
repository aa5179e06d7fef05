"""Import of existing SQL table definitions."""

from .errors import DdlSyntaxError
from .parser import DdlParseResult, detect_dialect, parse_ddl, split_statements

__all__ = [
    "DdlSyntaxError",
    "DdlParseResult",
    "detect_dialect",
    "parse_ddl",
    "split_statements",
]

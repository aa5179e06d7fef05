"""Issue records shared by the linter and the DDL importer.

A lint issue points at a node (and optionally one of its properties or
relation fields) by name. An import diagnostic points at the script line of
the statement it came from. Both are ``ValidationIssue`` records, so one
formatter and one severity scale serve ``erforge lint`` and
``erforge import-ddl`` alike.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Severity(str, Enum):
    """Severity level of a lint issue or import diagnostic."""

    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


@dataclass
class ValidationIssue:
    """A lint issue or an import diagnostic."""

    code: str
    message: str
    severity: Severity = Severity.WARNING
    node: str | None = None  # Node name, or table name for imports
    element: str | None = None  # Property or relation field name
    details: dict[str, Any] = field(default_factory=dict)
    line: int | None = None  # 1-based script line, imports only

    @property
    def location(self) -> str:
        """Where the issue is, e.g. ``line 3`` or ``Post.author``."""
        parts = []
        if self.line is not None:
            parts.append(f"line {self.line}")
        if self.node:
            parts.append(f"{self.node}.{self.element}" if self.element else self.node)
        return ", ".join(parts)

    def __str__(self) -> str:
        location = f" [{self.location}]" if self.location else ""
        return f"{self.severity.value.upper()}: {self.code}{location} - {self.message}"


@dataclass
class ValidationResult:
    """Issues collected by one lint run or one DDL import."""

    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.ERROR]

    @property
    def warnings(self) -> list[ValidationIssue]:
        return [i for i in self.issues if i.severity == Severity.WARNING]

    @property
    def has_errors(self) -> bool:
        return bool(self.errors)

    @property
    def has_warnings(self) -> bool:
        return bool(self.warnings)

    @property
    def is_valid(self) -> bool:
        """No error-level issues; warnings are allowed."""
        return not self.has_errors

    def add(
        self,
        severity: Severity,
        code: str,
        message: str,
        node: str | None = None,
        element: str | None = None,
        line: int | None = None,
        **details: Any,
    ) -> ValidationIssue:
        """Record an issue and return it."""
        issue = ValidationIssue(code, message, severity, node, element, details, line)
        self.issues.append(issue)
        return issue

    def add_error(
        self,
        code: str,
        message: str,
        node: str | None = None,
        element: str | None = None,
        **details: Any,
    ) -> ValidationIssue:
        return self.add(Severity.ERROR, code, message, node, element, **details)

    def add_warning(
        self,
        code: str,
        message: str,
        node: str | None = None,
        element: str | None = None,
        **details: Any,
    ) -> ValidationIssue:
        return self.add(Severity.WARNING, code, message, node, element, **details)

    def merge(self, other: "ValidationResult") -> None:
        self.issues.extend(other.issues)

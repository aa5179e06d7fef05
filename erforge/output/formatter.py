"""Output formatting for lint results and DDL import diagnostics."""

import json
from typing import Literal

from ..validators.base import Severity, ValidationIssue, ValidationResult

_SYMBOLS = {
    Severity.ERROR: "✘",
    Severity.WARNING: "⚠",
    Severity.INFO: "ℹ",
}


def format_validation_result(
    result: ValidationResult,
    format: Literal["text", "json"] = "text",
) -> str:
    """Format a validation result for output.

    Args:
        result: The validation result to format.
        format: Output format ("text" or "json").

    Returns:
        Formatted string representation.
    """
    if format == "json":
        return _format_json(result)
    return _format_text(result)


def format_diagnostics(diagnostics: list[ValidationIssue]) -> str:
    """Format DDL import diagnostics, one per line, in script order."""
    lines = [
        f"line {d.line}: {_format_issue_text(d)}"
        for d in sorted(diagnostics, key=lambda d: d.line or 0)
    ]
    errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
    lines.append(
        f"{len(diagnostics)} diagnostic(s), {errors} statement(s) could not be parsed"
    )
    return "\n".join(lines)


def _format_text(result: ValidationResult) -> str:
    """Format result as human-readable text."""
    lines: list[str] = []

    errors = result.errors
    warnings = result.warnings

    lines.append("ERRORS:")
    if errors:
        for issue in errors:
            lines.append(f"  {_format_issue_text(issue)}")
    else:
        lines.append("  (none)")

    lines.append("")

    lines.append("WARNINGS:")
    if warnings:
        for issue in warnings:
            lines.append(f"  {_format_issue_text(issue)}")
    else:
        lines.append("  (none)")

    lines.append("")
    if result.is_valid:
        if warnings:
            lines.append(f"Diagram is valid with {len(warnings)} warning(s)")
        else:
            lines.append("Diagram is valid")
    else:
        lines.append(
            f"Diagram has problems: {len(errors)} error(s), {len(warnings)} warning(s)"
        )

    return "\n".join(lines)


def _format_issue_text(issue: ValidationIssue) -> str:
    """Format a single issue as text."""
    location = ""
    if issue.node:
        location = f"[{issue.node}"
        if issue.element:
            location += f".{issue.element}"
        location += "] "

    return f"{_SYMBOLS[issue.severity]} {issue.code}: {location}{issue.message}"


def _format_json(result: ValidationResult) -> str:
    """Format result as JSON."""
    data = {
        "valid": result.is_valid,
        "error_count": len(result.errors),
        "warning_count": len(result.warnings),
        "issues": [
            {
                "code": issue.code,
                "message": issue.message,
                "severity": issue.severity.value,
                "node": issue.node,
                "element": issue.element,
                "details": issue.details,
            }
            for issue in result.issues
        ],
    }
    return json.dumps(data, indent=2)

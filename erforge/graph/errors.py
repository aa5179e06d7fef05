"""Diagram mutation errors."""


class DiagramError(Exception):
    """Base exception for diagram mutation errors."""

    pass


class ElementNotFoundError(DiagramError, KeyError):
    """Raised when a node or edge id does not exist."""

    def __init__(self, kind: str, element_id: str):
        self.kind = kind
        self.element_id = element_id
        super().__init__(f"Unknown {kind} id: {element_id}")

    def __str__(self) -> str:
        return self.args[0]


class InvariantViolation(AssertionError):
    """Raised when a mutation would leave the diagram inconsistent.

    This is a programming error: callers are expected to pass validated input.
    The offending mutation is rolled back before this is raised.
    """

    def __init__(self, code: str, message: str):
        self.code = code
        super().__init__(f"{code}: {message}")

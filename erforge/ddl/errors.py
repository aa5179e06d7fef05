"""DDL import exceptions."""


class DdlSyntaxError(ValueError):
    """Raised for a statement the DDL parser cannot make sense of.

    The parser turns it into a diagnostic for that statement and moves on.
    """

    def __init__(self, message: str, line: int | None = None):
        self.line = line
        super().__init__(message)

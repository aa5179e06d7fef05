"""Schema-related exceptions."""


class ParseError(Exception):
    """Raised when a diagram document cannot be imported.

    The import is aborted as a whole; nothing is partially applied.
    """

    def __init__(self, message: str, errors: list[dict] | None = None):
        self.errors = errors or []
        super().__init__(message)


class ConfigLoadError(Exception):
    """Raised when a YAML configuration file cannot be loaded."""

    def __init__(self, message: str, path: str | None = None):
        self.path = path
        super().__init__(message)

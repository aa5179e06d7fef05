"""Target registry: maps output targets to emitters."""

from logging import getLogger
from typing import Callable

from ..config import GeneratorConfig
from ..schema.models import DiagramSnapshot
from .json_export import emit_json, emit_schema_summary
from .sql import emit_sql
from .type_mapping import MYSQL, POSTGRES
from .typescript import emit_typescript

logger = getLogger(__name__)

Emitter = Callable[[DiagramSnapshot, GeneratorConfig], dict[str, str]]

TARGETS: dict[str, Emitter] = {
    "typescript": lambda snapshot, config: emit_typescript(snapshot, config),
    "json": lambda snapshot, config: emit_json(snapshot, config),
    "schema": lambda snapshot, config: emit_schema_summary(snapshot, config),
    POSTGRES: lambda snapshot, config: emit_sql(snapshot, POSTGRES, config),
    MYSQL: lambda snapshot, config: emit_sql(snapshot, MYSQL, config),
}


def generate(
    snapshot: DiagramSnapshot,
    target: str,
    config: GeneratorConfig | None = None,
) -> dict[str, str]:
    """Run the emitter registered for a target.

    Args:
        snapshot: The diagram to emit.
        target: One of ``TARGETS``.
        config: Generator options.

    Returns:
        Generated file contents keyed by file name.

    Raises:
        ValueError: If the target is unknown.
    """
    if target not in TARGETS:
        raise ValueError(
            f"Unknown target '{target}'. Available: {', '.join(sorted(TARGETS))}"
        )

    logger.debug("Generating %s output for %d node(s)", target, len(snapshot.nodes))
    return TARGETS[target](snapshot, config or GeneratorConfig())

"""Generator configuration, read from ``erforge.yaml``."""

import os
from pathlib import Path
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from .schema.errors import ConfigLoadError
from .schema.loader import load_yaml

CONFIG_FILENAME = "erforge.yaml"
CONFIG_ENV_VAR = "ERFORGE_CONFIG"


class GeneratorConfig(BaseModel):
    """Options shared by the emitters."""

    model_config = ConfigDict(extra="forbid")

    indent_size: int = Field(default=2, ge=0, le=8)
    orm_import: str = "@mikro-orm/core"
    dialect: Literal["postgres", "mysql"] = "postgres"
    native_enums: bool = False
    mysql_engine: str = "InnoDB"
    json_indent: int = Field(default=2, ge=0)

    def indent(self, level: int = 1) -> str:
        return " " * (self.indent_size * level)


def load_config(path: str | Path | None = None) -> GeneratorConfig:
    """Load the generator configuration.

    The file is taken from ``path``, then ``$ERFORGE_CONFIG``, then
    ``./erforge.yaml``. Without any of them the defaults apply.

    Args:
        path: Explicit configuration file.

    Returns:
        The validated configuration.

    Raises:
        ConfigLoadError: If the file cannot be read or holds invalid options.
    """
    if path is None:
        path = os.environ.get(CONFIG_ENV_VAR)
    if path is None and Path(CONFIG_FILENAME).is_file():
        path = CONFIG_FILENAME
    if path is None:
        return GeneratorConfig()

    data = load_yaml(path)
    try:
        return GeneratorConfig.model_validate(data)
    except ValidationError as e:
        problems = "; ".join(
            f"{'.'.join(str(x) for x in err['loc'])}: {err['msg']}" for err in e.errors()
        )
        raise ConfigLoadError(f"Invalid configuration: {problems}", str(path)) from e

"""
Settings for the pyionex command line tools.

Values come from a YAML file (``${VAR}`` references are expanded) and
``PYIONEX_`` environment variables, e.g. ``PYIONEX_LOGGING__LEVEL=DEBUG``.
Keyword values read from the file take precedence over the environment.

Example ``pyionex.yaml``::

    logging:
      level: INFO
      log_dir: ${HOME}/.pyionex/logs
      log_to_file: true
    formatting:
      exponent: -1
      program: pyionex
      run_by: ESA
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

#: Searched in order when no explicit file is given.
CONFIG_LOCATIONS = (
    Path("pyionex.yaml"),
    Path("config") / "pyionex.yaml",
    Path.home() / ".pyionex" / "settings.yaml",
)


def expand_env_vars(value: Any) -> Any:
    """Expand ``$VAR`` and ``${VAR}`` in every string of a YAML tree."""
    if isinstance(value, str):
        return os.path.expandvars(value)
    if isinstance(value, dict):
        return {key: expand_env_vars(item) for key, item in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


class LoggingConfig(BaseModel):
    """Where and how log events are rendered."""

    level: str = "INFO"
    log_dir: Path | None = None
    log_to_file: bool = False
    log_to_console: bool = True
    json_format: bool = False


class FormattingConfig(BaseModel):
    """Defaults applied when writing IONEX files.

    ``program`` and ``run_by`` replace the header values of the source
    file and must fit their 20-column fields.
    """

    exponent: int | None = None
    program: str | None = None
    run_by: str | None = None

    @field_validator("exponent")
    @classmethod
    def _small_exponent(cls, value: int | None) -> int | None:
        if value is not None and abs(value) > 9:
            raise ValueError(f"exponent must be within [-9, 9], got {value}")
        return value

    @field_validator("program", "run_by")
    @classmethod
    def _fits_column(cls, value: str | None) -> str | None:
        if value is not None and len(value) > 20:
            raise ValueError(f"'{value}' is longer than 20 characters")
        return value


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_prefix="PYIONEX_", env_nested_delimiter="__")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    formatting: FormattingConfig = Field(default_factory=FormattingConfig)


def find_config(config_path: Path | str | None = None) -> Path | None:
    """First existing configuration file, or None."""
    candidates = (Path(config_path),) if config_path else CONFIG_LOCATIONS
    return next((path for path in candidates if path.exists()), None)


def load_settings(config_path: Path | str | None = None) -> Settings:
    """Load settings from YAML file.

    Args:
        config_path: Explicit YAML file. If None, ``CONFIG_LOCATIONS`` are
            searched. A missing file yields the defaults.

    Returns:
        Settings instance.
    """
    path = find_config(config_path)
    if path is None:
        return Settings()

    with open(path) as f:
        raw_data = yaml.safe_load(f) or {}
    return Settings(**expand_env_vars(raw_data))

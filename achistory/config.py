"""
Settings for the history layer.

Read from a YAML file (``ACHISTORY_CONFIG`` or ``~/.achistory/config.yaml``);
``ACHISTORY_*`` environment variables override individual values.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError, field_validator

from achistory.errors import ConfigError

CONFIG_ENV_VAR = "ACHISTORY_CONFIG"
DEFAULT_CONFIG_DIR = Path.home() / ".achistory"
DEFAULT_CONFIG_FILENAME = "config.yaml"

ENV_OVERRIDES = {
    "ACHISTORY_NR_OF_HISTORIES": "nr_of_histories_to_save",
    "ACHISTORY_STORE": "store_path",
    "ACHISTORY_LOG_LEVEL": "log_level",
}


class Settings(BaseModel):
    nr_of_histories_to_save: int = Field(5, ge=0, description="Number of newest histories kept")
    store_path: Path = Field(
        default_factory=lambda: DEFAULT_CONFIG_DIR / "repository.json",
        description="JSON file backing the repository tree",
    )
    log_level: str = Field("WARNING", description="Logging level name")

    @field_validator("log_level", mode="before")
    def _check_level(cls, v):  # type: ignore
        level = str(v or "WARNING").strip().upper()
        if not isinstance(logging.getLevelName(level), int):
            raise ValueError(f"unknown log level '{v}'")
        return level

    @field_validator("store_path", mode="after")
    def _expand(cls, v: Path) -> Path:  # type: ignore
        return v.expanduser()


def get_config_path() -> Path:
    override = os.environ.get(CONFIG_ENV_VAR)
    if override:
        return Path(override).expanduser()
    return DEFAULT_CONFIG_DIR / DEFAULT_CONFIG_FILENAME


def _read_config_file(path: Path) -> Dict[str, Any]:
    if not path.exists():
        return {}
    try:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config file {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"Config file {path} must contain a mapping")
    return data


def load_settings(path: Optional[Path] = None) -> Settings:
    """
    Load settings from the config file and the environment.

    Args:
        path: Config file; defaults to ``get_config_path()``

    Raises:
        ConfigError: File is malformed or a value is invalid
    """
    values = _read_config_file(path or get_config_path())
    for env_var, key in ENV_OVERRIDES.items():
        raw = os.environ.get(env_var)
        if raw:
            values[key] = raw
    try:
        return Settings(**values)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration: {e}") from e

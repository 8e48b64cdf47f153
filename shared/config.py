"""
Shared configuration management for the GitGate release gateway.
"""

import json
import os
from pathlib import Path
from typing import Any, Dict, Optional, Union

from pydantic_settings import BaseSettings, SettingsConfigDict

from shared.errors import ConfigurationError

CONFIG_PATH_ENV = "GITGATE_CONFIG"
DEFAULT_CONFIG_FILE = "config.json"


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_prefix="GITGATE_",
        env_file=".env",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore"
    )

    # Environment
    env: str = "local"
    log_level: str = "info"

    # Listener
    host: str = "0.0.0.0"
    port: int = 3000


def resolve_config_path(config_path: Optional[Union[str, Path]] = None) -> tuple:
    """Return (path, explicit) for the configuration file to read.

    ``explicit`` is False only when falling back to ./config.json, in which
    case a missing file is not an error.
    """
    if config_path:
        return Path(config_path), True
    env_path = os.getenv(CONFIG_PATH_ENV)
    if env_path:
        return Path(env_path), True
    return Path.cwd() / DEFAULT_CONFIG_FILE, False


def load_json_config(config_path: Optional[Union[str, Path]] = None) -> Dict[str, Any]:
    """Read the JSON configuration document, if any."""
    path, explicit = resolve_config_path(config_path)
    if not path.exists() and not explicit:
        return {}

    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as e:
        raise ConfigurationError(
            f"Failed to load config from {path}: {e}",
            details={"path": str(path)}
        ) from e

    if not isinstance(data, dict):
        raise ConfigurationError(
            f"Config file {path} must contain a JSON object",
            details={"path": str(path)}
        )
    return data

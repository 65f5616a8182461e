"""
Configuration utilities for chainbox.

Settings come from three layers, later ones winning:
1. Built-in defaults from constants
2. ``<home>/config.toml``
3. CHAINBOX_* environment variables
"""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional, Union

import toml

from chainbox.commands.constants import (
    CHAINS_DEFINITIONS_DIR,
    CONTAINER_STOP_TIMEOUT,
    DEFAULT_DATA_IMAGE,
    DEFAULT_HOME_DIR,
    DEFAULT_LOG_LEVEL,
    ENV_CHAINBOX_DATA_IMAGE,
    ENV_CHAINBOX_HOME,
    ENV_CHAINBOX_LOG_LEVEL,
    ENV_CHAINBOX_STOP_TIMEOUT,
    SERVICES_DEFINITIONS_DIR,
    SETTINGS_FILE_NAME,
)
from chainbox.commands.errors import ConfigurationError


@dataclass
class Settings:
    """Resolved chainbox settings."""

    home: Path
    log_level: str = DEFAULT_LOG_LEVEL
    stop_timeout: int = CONTAINER_STOP_TIMEOUT
    data_image: str = DEFAULT_DATA_IMAGE

    @property
    def chains_dir(self) -> Path:
        return self.home / CHAINS_DEFINITIONS_DIR

    @property
    def services_dir(self) -> Path:
        return self.home / SERVICES_DEFINITIONS_DIR

    @property
    def settings_file(self) -> Path:
        return self.home / SETTINGS_FILE_NAME


def get_nested_config(config: dict, key: str, default: Any = None) -> Any:
    """Read a dot-separated key from a nested dictionary."""
    current: Any = config
    for k in key.split("."):
        if not isinstance(current, dict) or k not in current:
            return default
        current = current[k]
    return current


def resolve_home(home: Optional[Union[str, Path]] = None) -> Path:
    """Return the chainbox home directory, honouring CHAINBOX_HOME."""
    if home is None:
        home = os.getenv(ENV_CHAINBOX_HOME) or DEFAULT_HOME_DIR
    return Path(home).expanduser()


def _read_settings_file(path: Path) -> dict:
    if not path.exists():
        return {}
    try:
        with open(path, encoding="utf-8") as f:
            return toml.load(f)
    except toml.TomlDecodeError as e:
        raise ConfigurationError(
            f"Invalid TOML in settings file: {e}", config_file=str(path)
        ) from e
    except OSError as e:
        raise ConfigurationError(
            f"Could not read settings file: {e}", config_file=str(path)
        ) from e


def load_settings(home: Optional[Union[str, Path]] = None) -> Settings:
    """Load settings from the home directory and the environment."""
    settings = Settings(home=resolve_home(home))
    file_config = _read_settings_file(settings.settings_file)

    settings.log_level = get_nested_config(
        file_config, "logging.level", settings.log_level
    )
    settings.stop_timeout = get_nested_config(
        file_config, "runtime.stop_timeout", settings.stop_timeout
    )
    settings.data_image = get_nested_config(
        file_config, "runtime.data_image", settings.data_image
    )

    env_log_level = os.getenv(ENV_CHAINBOX_LOG_LEVEL)
    if env_log_level:
        settings.log_level = env_log_level

    env_stop_timeout = os.getenv(ENV_CHAINBOX_STOP_TIMEOUT)
    if env_stop_timeout:
        settings.stop_timeout = env_stop_timeout

    env_data_image = os.getenv(ENV_CHAINBOX_DATA_IMAGE)
    if env_data_image:
        settings.data_image = env_data_image

    try:
        settings.stop_timeout = int(settings.stop_timeout)
    except (TypeError, ValueError) as e:
        raise ConfigurationError(
            f"stop_timeout must be an integer, got {settings.stop_timeout!r}",
            config_file=str(settings.settings_file),
        ) from e

    return settings

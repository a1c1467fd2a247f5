"""Configuration loader for sqlmigrate.

Loads configuration from a TOML file; environment variables override any
value found there.
"""

import logging
import os
import tomllib
from pathlib import Path
from typing import Any

from sqlmigrate.config.schema import SqlMigrateConfig

logger = logging.getLogger(__name__)

ENV_PREFIX = "SQLMIGRATE"

# Environment variable suffix -> (section, key)
ENV_MAPPINGS = {
    "DATABASE_URL": ("database", "url"),
    "DATABASE_ECHO": ("database", "echo"),
    "MIGRATIONS_PATH": ("migrations", "path"),
    "TABLE": ("migrations", "table"),
    "CHECK_HASH": ("migrations", "check_hash"),
    "VALIDATE_DOWN": ("migrations", "validate_down"),
    "FORCE": ("migrations", "force"),
    "LOG_LEVEL": ("logging", "level"),
}

BOOLEAN_KEYS = {"echo", "check_hash", "validate_down"}


def get_config_search_paths() -> list[Path]:
    """Get the list of paths to search for configuration files.

    Returns paths in priority order (first found wins):
    1. ./sqlmigrate.toml (project root)
    2. ~/.config/sqlmigrate/config.toml (user config)
    3. /etc/sqlmigrate/config.toml (system config)
    """
    return [
        Path.cwd() / "sqlmigrate.toml",
        Path.home() / ".config" / "sqlmigrate" / "config.toml",
        Path("/etc/sqlmigrate/config.toml"),
    ]


def find_config_file() -> Path | None:
    """Find the first existing config file from search paths."""
    for path in get_config_search_paths():
        if path.exists() and path.is_file():
            logger.debug(f"Found config file: {path}")
            return path
    return None


def load_toml_file(path: Path) -> dict[str, Any]:
    """Load a TOML file and return its contents as a dictionary."""
    with open(path, "rb") as f:
        return tomllib.load(f)


def _parse_bool(value: str) -> bool:
    return value.lower() in ("true", "1", "yes")


def apply_env_overrides(config_dict: dict[str, Any], prefix: str = ENV_PREFIX) -> None:
    """Apply environment variable overrides to a configuration dictionary.

    Environment variables are mapped as follows:
    - SQLMIGRATE_DATABASE_URL -> config_dict["database"]["url"]
    - SQLMIGRATE_TABLE -> config_dict["migrations"]["table"]
    - etc.

    Note: This modifies config_dict in place.
    """
    for suffix, (section, key) in ENV_MAPPINGS.items():
        value = os.environ.get(f"{prefix}_{suffix}")
        if value is None:
            continue

        section_dict = config_dict.setdefault(section, {})

        if key in BOOLEAN_KEYS:
            section_dict[key] = _parse_bool(value)
        elif key == "force":
            section_dict[key] = "last" if value.lower() == "last" else False
        elif key == "level":
            section_dict[key] = value.upper()
        else:
            section_dict[key] = value


def load_config(config_file: Path | None = None) -> SqlMigrateConfig:
    """Load configuration from a TOML file with environment variable overrides.

    Args:
        config_file: Optional path to config file. If not provided,
                     searches default locations.

    Returns:
        SqlMigrateConfig instance with all settings loaded.
    """
    config_dict: dict[str, Any] = {}

    if config_file is None:
        config_file = find_config_file()

    if config_file and config_file.exists():
        logger.info(f"Loading config from: {config_file}")
        config_dict = load_toml_file(config_file)
    else:
        logger.debug("No config file found, using defaults with env overrides")

    apply_env_overrides(config_dict)

    return SqlMigrateConfig(**config_dict)

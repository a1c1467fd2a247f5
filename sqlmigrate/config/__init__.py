"""sqlmigrate configuration module.

Configuration is loaded from the following locations (in order of priority):
1. Environment variables (highest priority)
2. ./sqlmigrate.toml (project root)
3. ~/.config/sqlmigrate/config.toml (user config)
4. /etc/sqlmigrate/config.toml (system config)

Command-line options override all of these.
"""

from sqlmigrate.config.loader import load_config
from sqlmigrate.config.schema import (
    DatabaseConfig,
    LoggingConfig,
    MigrationsConfig,
    SqlMigrateConfig,
)

__all__ = [
    "DatabaseConfig",
    "LoggingConfig",
    "MigrationsConfig",
    "SqlMigrateConfig",
    "load_config",
]

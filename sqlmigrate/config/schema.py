"""Pydantic models for sqlmigrate configuration.

These models define the structure of the sqlmigrate.toml file.
"""

from pathlib import Path
from typing import Literal

from pydantic import BaseModel, Field


class DatabaseConfig(BaseModel):
    """Database connection configuration."""

    url: str = "sqlite+aiosqlite:///./data/app.db"
    echo: bool = False


class MigrationsConfig(BaseModel):
    """Migration run configuration."""

    path: Path = Field(default_factory=lambda: Path("migrations"))
    table: str = "migrations"
    check_hash: bool = False
    validate_down: bool = False
    force: Literal[False, "last"] = False


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = "INFO"
    format: str = "%(asctime)s - %(levelname)s - %(message)s"


class SqlMigrateConfig(BaseModel):
    """Main configuration loaded from sqlmigrate.toml."""

    database: DatabaseConfig = Field(default_factory=DatabaseConfig)
    migrations: MigrationsConfig = Field(default_factory=MigrationsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

"""Exception hierarchy for sqlmigrate.

Every failure that aborts a run derives from MigrationError so callers can
catch one type, or distinguish "nothing to migrate" from "a script failed".
"""

from pathlib import Path


class MigrationError(Exception):
    """Base class for all migration failures."""

    pass


class ConfigurationError(MigrationError):
    """Raised when neither or both of client and pool are supplied."""

    pass


class DiscoveryError(MigrationError):
    """Raised when the migrations directory cannot be scanned."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Cannot read migrations from '{path}': {reason}")


class NoMigrationsFound(MigrationError):
    """Raised when the migrations directory holds no migration files."""

    def __init__(self, path: Path) -> None:
        self.path = path
        super().__init__(f"No migration files found in '{path}'.")


class MalformedMigrationFile(MigrationError):
    """Raised when a migration file has no '-- down' separator."""

    def __init__(self, filename: str) -> None:
        self.filename = filename
        super().__init__(f"The {filename} file does not contain '-- Down' separator.")


class InvalidMigrationId(MigrationError):
    """Raised when a migration file is numbered below 1."""

    def __init__(self, filename: str, migration_id: int) -> None:
        self.filename = filename
        self.migration_id = migration_id
        super().__init__(
            f"The {filename} file has migration id {migration_id}; ids start at 1."
        )


class MigrationReadError(MigrationError):
    """Raised when a migration file cannot be read."""

    def __init__(self, path: Path, reason: str) -> None:
        self.path = path
        super().__init__(f"Failed to read migration file '{path}': {reason}")


class QueryError(MigrationError):
    """Raised when a SQL statement fails.

    Attributes:
        phase: Which step failed (bootstrap, backfill, apply, validate, rollback).
        migration_id: The migration being processed, if any.
    """

    def __init__(self, phase: str, message: str, migration_id: int | None = None) -> None:
        self.phase = phase
        self.migration_id = migration_id
        if migration_id is not None:
            text = f"{phase} of migration {migration_id} failed: {message}"
        else:
            text = f"{phase} failed: {message}"
        super().__init__(text)

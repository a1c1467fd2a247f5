"""sqlmigrate - reconcile numbered SQL migration files with a database ledger."""

from sqlmigrate.errors import (
    ConfigurationError,
    DiscoveryError,
    InvalidMigrationId,
    MalformedMigrationFile,
    MigrationError,
    MigrationReadError,
    NoMigrationsFound,
    QueryError,
)
from sqlmigrate.models import (
    SENTINEL_HASH,
    IntegrityMismatch,
    MigrationDefinition,
    MigrationRecord,
    MigrationResult,
    ReconciliationPlan,
)
from sqlmigrate.runner import list_history, migrate, plan_migrations

__version__ = "0.4.0"

__all__ = [
    # Runs
    "migrate",
    "plan_migrations",
    "list_history",
    # Models
    "SENTINEL_HASH",
    "IntegrityMismatch",
    "MigrationDefinition",
    "MigrationRecord",
    "MigrationResult",
    "ReconciliationPlan",
    # Errors
    "ConfigurationError",
    "DiscoveryError",
    "InvalidMigrationId",
    "MalformedMigrationFile",
    "MigrationError",
    "MigrationReadError",
    "NoMigrationsFound",
    "QueryError",
]

"""Execution of single migrations, each inside its own transaction.

A migration's script and its ledger mutation commit together or not at all.
A failure rolls back the in-flight transaction and aborts the run; nothing is
retried.
"""

import logging

from sqlalchemy.exc import SQLAlchemyError

from sqlmigrate.errors import QueryError
from sqlmigrate.models import AuditResult, MigrationDefinition, MigrationRecord
from sqlmigrate.session import Session
from sqlmigrate.store import LedgerStore

logger = logging.getLogger(__name__)


class Executor:
    """Applies and rolls back migrations one transaction at a time."""

    def __init__(self, session: Session, store: LedgerStore, validate_down: bool = False) -> None:
        """Initialize the executor.

        Args:
            session: The run's database session.
            store: Ledger accessor bound to the session's connection.
            validate_down: Run up, down and up again when applying, so a broken
                down script is caught before it is recorded.
        """
        self.session = session
        self.store = store
        self.validate_down = validate_down

    async def apply(self, definition: MigrationDefinition) -> None:
        """Apply a migration and record it in the ledger."""
        logger.info(f"Applying migration {definition.display_name}")
        phase = "apply"
        try:
            async with self.session.transaction():
                await self.store.execute_script(definition.up)
                if self.validate_down:
                    phase = "validate"
                    logger.debug(f"Validating down script of migration {definition.id}")
                    await self.store.execute_script(definition.down)
                    await self.store.execute_script(definition.up)
                    phase = "apply"
                await self.store.insert_record(definition)
        except SQLAlchemyError as e:
            logger.error(f"Failed to apply {definition.display_name}: {e}")
            raise QueryError(phase, str(e), definition.id) from e

    async def rollback(self, record: MigrationRecord) -> None:
        """Run a migration's down script and remove it from the ledger."""
        logger.info(f"Rolling back migration {record.id:03d}.{record.name}")
        try:
            async with self.session.transaction():
                await self.store.execute_script(record.down)
                await self.store.delete_record(record.id)
        except SQLAlchemyError as e:
            logger.error(f"Failed to roll back migration {record.id}: {e}")
            raise QueryError("rollback", str(e), record.id) from e

    async def backfill(self, audit: AuditResult) -> None:
        """Replace sentinel hashes with source hashes in a single transaction."""
        if not audit.backfills:
            return

        logger.info(f"Backfilling hash for {len(audit.backfills)} legacy migration rows")
        try:
            async with self.session.transaction():
                for migration_id, hash_value in audit.backfills:
                    await self.store.update_hash(migration_id, hash_value)
        except SQLAlchemyError as e:
            raise QueryError("backfill", str(e)) from e

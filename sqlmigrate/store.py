"""Access to the ledger table recording applied migrations.

The ledger holds one row per applied migration with the scripts that were run
and the integrity hash of the source file at the time. Tables created before
the hash column existed are upgraded in place: the column is added with the
sentinel default so old rows can be backfilled later.
"""

import logging

from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncConnection

from sqlmigrate.models import SENTINEL_HASH, MigrationDefinition, MigrationRecord
from sqlmigrate.sql import split_statements

logger = logging.getLogger(__name__)

DEFAULT_TABLE = "migrations"


class LedgerStore:
    """Reads and writes ledger rows on a single connection.

    Transaction boundaries are owned by the caller; every method here runs
    inside whatever transaction is open on the connection.
    """

    def __init__(self, connection: AsyncConnection, table: str = DEFAULT_TABLE) -> None:
        """Initialize the store.

        Args:
            connection: A started SQLAlchemy async connection.
            table: Name of the ledger table.
        """
        self.connection = connection
        self.table = table
        self.quoted_table = connection.dialect.identifier_preparer.quote(table)

    async def get_columns(self) -> set[str]:
        """Get the column names of the ledger table."""

        def _columns(sync_conn) -> set[str]:
            return {column["name"] for column in inspect(sync_conn).get_columns(self.table)}

        return await self.connection.run_sync(_columns)

    async def ensure_table(self) -> None:
        """Create the ledger table, or add the hash column to an older one."""
        logger.debug(f"Ensuring migration table ({self.table}) exists")
        await self.connection.execute(
            text(
                f"""
                CREATE TABLE IF NOT EXISTS {self.quoted_table} (
                    id INTEGER PRIMARY KEY,
                    name TEXT NOT NULL,
                    up TEXT NOT NULL,
                    down TEXT NOT NULL,
                    hash TEXT NOT NULL
                )
                """
            )
        )

        if "hash" in await self.get_columns():
            return

        logger.info(f"Adding hash column to migration table ({self.table})")
        await self.connection.execute(
            text(
                f"ALTER TABLE {self.quoted_table} "
                f"ADD COLUMN hash TEXT NOT NULL DEFAULT '{SENTINEL_HASH}'"
            )
        )
        # SQLite has no ALTER COLUMN, the default stays there
        if self.connection.dialect.name != "sqlite":
            await self.connection.execute(
                text(f"ALTER TABLE {self.quoted_table} ALTER COLUMN hash DROP DEFAULT")
            )

    async def list_records(self) -> list[MigrationRecord]:
        """List all ledger rows ordered by id."""
        result = await self.connection.execute(
            text(f"SELECT id, name, up, down, hash FROM {self.quoted_table} ORDER BY id ASC")
        )
        return [
            MigrationRecord(id=row.id, name=row.name, up=row.up, down=row.down, hash=row.hash)
            for row in result
        ]

    async def insert_record(self, definition: MigrationDefinition) -> None:
        """Insert the ledger row for a definition, replacing any existing row."""
        await self.delete_record(definition.id)
        await self.connection.execute(
            text(
                f"INSERT INTO {self.quoted_table} (id, name, up, down, hash) "
                "VALUES (:id, :name, :up, :down, :hash)"
            ),
            {
                "id": definition.id,
                "name": definition.name,
                "up": definition.up,
                "down": definition.down,
                "hash": definition.hash,
            },
        )

    async def delete_record(self, migration_id: int) -> None:
        """Delete the ledger row with the given id."""
        await self.connection.execute(
            text(f"DELETE FROM {self.quoted_table} WHERE id = :id"),
            {"id": migration_id},
        )

    async def update_hash(self, migration_id: int, hash_value: str) -> None:
        """Replace the stored hash of one ledger row."""
        await self.connection.execute(
            text(f"UPDATE {self.quoted_table} SET hash = :hash WHERE id = :id"),
            {"id": migration_id, "hash": hash_value},
        )

    async def execute_script(self, script: str) -> None:
        """Execute a migration script statement by statement."""
        for statement in split_statements(script):
            await self.connection.exec_driver_sql(statement)

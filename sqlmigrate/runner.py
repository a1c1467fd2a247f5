"""Migration runs: bring the ledger and schema in line with the source files.

A run opens a session, loads the source definitions, bootstraps and reads the
ledger, then executes the reconciler's decisions strictly in sequence:

    1. Backfill sentinel hashes (when hash checking is on)
    2. Roll back the selected ledger rows, newest first
    3. Apply every definition newer than the newest remaining row

The first failure aborts the run. The ledger then reflects exactly the
migrations whose transactions committed, so re-running resumes safely.
"""

import logging
from pathlib import Path
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, ValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine

from sqlmigrate.errors import ConfigurationError, QueryError
from sqlmigrate.executor import Executor
from sqlmigrate.loader import load_migrations
from sqlmigrate.models import MigrationRecord, MigrationResult, ReconciliationPlan
from sqlmigrate.reconciler import Reconciler
from sqlmigrate.session import Session, open_session
from sqlmigrate.store import DEFAULT_TABLE, LedgerStore

logger = logging.getLogger(__name__)


class MigrationOptions(BaseModel):
    """Settings of a run other than the connection source."""

    model_config = ConfigDict(frozen=True)

    force: Literal[False, "last"] = False
    table: str = DEFAULT_TABLE
    migrations_path: Path = Path("./migrations")
    check_hash: bool = False
    validate_down: bool = False


def build_options(**kwargs: Any) -> MigrationOptions:
    """Validate run settings, reporting bad values as ConfigurationError."""
    try:
        return MigrationOptions(**kwargs)
    except ValidationError as e:
        raise ConfigurationError(f"Invalid migration options: {e}") from e


async def _read_ledger(session: Session, store: LedgerStore) -> list[MigrationRecord]:
    """Ensure the ledger table exists and list its rows."""
    try:
        async with session.transaction():
            await store.ensure_table()
        logger.debug("Listing existing migrations ...")
        async with session.transaction():
            records = await store.list_records()
    except SQLAlchemyError as e:
        raise QueryError("bootstrap", str(e)) from e

    logger.debug(f"... has {len(records)} migrations")
    return records


async def migrate(
    client: AsyncConnection | None = None,
    pool: AsyncEngine | None = None,
    *,
    force: Literal[False, "last"] = False,
    table: str = DEFAULT_TABLE,
    migrations_path: str | Path = "./migrations",
    check_hash: bool = False,
    validate_down: bool = False,
) -> MigrationResult:
    """Reconcile the database with the migrations directory.

    Args:
        client: A caller-owned connection. Closed when the run ends.
        pool: A caller-owned engine to check a connection out of.
        force: ``"last"`` rolls back and reapplies the newest migration.
        table: Name of the ledger table.
        migrations_path: Directory holding the migration files.
        check_hash: Roll back from the first migration whose file changed.
        validate_down: Test each down script while applying its migration.

    Returns:
        What the run rolled back, applied and backfilled.

    Raises:
        MigrationError: On any failure; see sqlmigrate.errors.
    """
    options = build_options(
        force=force,
        table=table,
        migrations_path=migrations_path,
        check_hash=check_hash,
        validate_down=validate_down,
    )
    result = MigrationResult()

    async with open_session(client=client, pool=pool) as session:
        definitions = await load_migrations(options.migrations_path)

        store = LedgerStore(session.connection, options.table)
        records = await _read_ledger(session, store)

        reconciler = Reconciler(definitions, check_hash=options.check_hash, force=options.force)
        executor = Executor(session, store, validate_down=options.validate_down)

        audit = reconciler.audit(records)
        result.mismatches = list(audit.mismatches)
        if audit.backfills:
            await executor.backfill(audit)
            result.backfilled = [migration_id for migration_id, _ in audit.backfills]
            new_hashes = dict(audit.backfills)
            records = [
                record.model_copy(update={"hash": new_hashes[record.id]})
                if record.id in new_hashes
                else record
                for record in records
            ]

        for record in reconciler.select_rollbacks(records, audit.first_mismatch):
            await executor.rollback(record)
            records = [r for r in records if r.id != record.id]
            result.rolled_back.append(record.id)

        for definition in reconciler.select_applies(records):
            await executor.apply(definition)
            result.applied.append(definition.id)

    logger.info(
        f"Done: {len(result.rolled_back)} rolled back, {len(result.applied)} applied"
    )
    return result


async def plan_migrations(
    client: AsyncConnection | None = None,
    pool: AsyncEngine | None = None,
    *,
    force: Literal[False, "last"] = False,
    table: str = DEFAULT_TABLE,
    migrations_path: str | Path = "./migrations",
    check_hash: bool = False,
) -> ReconciliationPlan:
    """Compute what migrate() would do without running any migration.

    The ledger table is created if missing; nothing else is written.
    """
    options = build_options(
        force=force,
        table=table,
        migrations_path=migrations_path,
        check_hash=check_hash,
    )

    async with open_session(client=client, pool=pool) as session:
        definitions = await load_migrations(options.migrations_path)
        store = LedgerStore(session.connection, options.table)
        records = await _read_ledger(session, store)

    reconciler = Reconciler(definitions, check_hash=options.check_hash, force=options.force)
    return reconciler.plan(records)


async def list_history(
    client: AsyncConnection | None = None,
    pool: AsyncEngine | None = None,
    *,
    table: str = DEFAULT_TABLE,
) -> list[MigrationRecord]:
    """List the ledger rows, creating the ledger table if missing."""
    async with open_session(client=client, pool=pool) as session:
        store = LedgerStore(session.connection, table)
        return await _read_ledger(session, store)

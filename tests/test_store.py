"""Tests for the ledger table accessor."""

import pytest
from sqlalchemy import text
from sqlalchemy.ext.asyncio import AsyncEngine

from sqlmigrate.models import SENTINEL_HASH, MigrationDefinition
from sqlmigrate.store import LedgerStore

from .conftest import ledger_rows, table_names


def make_definition(migration_id: int, hash_value: str = "abc") -> MigrationDefinition:
    return MigrationDefinition(
        id=migration_id,
        name=f"m{migration_id}",
        up="SELECT 1;",
        down="SELECT 2;",
        hash=hash_value,
    )


class TestEnsureTable:
    """Test creation and upgrade of the ledger table."""

    @pytest.mark.asyncio
    async def test_creates_table(self, engine: AsyncEngine):
        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.ensure_table()
            assert await store.get_columns() == {"id", "name", "up", "down", "hash"}

        assert "migrations" in await table_names(engine)

    @pytest.mark.asyncio
    async def test_idempotent(self, engine: AsyncEngine):
        """Test ensuring twice keeps existing rows."""
        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.ensure_table()
            await store.insert_record(make_definition(1))

        async with engine.begin() as conn:
            await LedgerStore(conn).ensure_table()

        assert list(await ledger_rows(engine)) == [1]

    @pytest.mark.asyncio
    async def test_custom_table_name_is_quoted(self, engine: AsyncEngine):
        """Test table names needing quotes work."""
        async with engine.begin() as conn:
            store = LedgerStore(conn, "schema ledger")
            await store.ensure_table()
            await store.insert_record(make_definition(1))

        assert "schema ledger" in await table_names(engine)
        assert list(await ledger_rows(engine, "schema ledger")) == [1]

    @pytest.mark.asyncio
    async def test_adds_hash_column_to_legacy_table(self, engine: AsyncEngine):
        """Test a table without the hash column gets it with the sentinel value."""
        async with engine.begin() as conn:
            await conn.execute(
                text(
                    "CREATE TABLE migrations ("
                    "id INTEGER PRIMARY KEY, name TEXT NOT NULL, "
                    "up TEXT NOT NULL, down TEXT NOT NULL)"
                )
            )
            await conn.execute(
                text("INSERT INTO migrations (id, name, up, down) VALUES (1, 'old', 'u', 'd')")
            )

        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.ensure_table()
            records = await store.list_records()

        assert len(records) == 1
        assert records[0].hash == SENTINEL_HASH
        assert records[0].has_sentinel_hash


class TestRecords:
    """Test reading and writing ledger rows."""

    @pytest.mark.asyncio
    async def test_list_is_ordered(self, engine: AsyncEngine):
        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.ensure_table()
            for migration_id in (3, 1, 2):
                await store.insert_record(make_definition(migration_id))
            records = await store.list_records()

        assert [r.id for r in records] == [1, 2, 3]
        assert records[0].name == "m1"
        assert records[0].up == "SELECT 1;"
        assert records[0].down == "SELECT 2;"

    @pytest.mark.asyncio
    async def test_insert_overwrites(self, engine: AsyncEngine):
        """Test inserting an existing id replaces the row."""
        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.ensure_table()
            await store.insert_record(make_definition(1, "old"))
            await store.insert_record(make_definition(1, "new"))

        rows = await ledger_rows(engine)
        assert rows[1]["hash"] == "new"

    @pytest.mark.asyncio
    async def test_delete(self, engine: AsyncEngine):
        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.ensure_table()
            await store.insert_record(make_definition(1))
            await store.insert_record(make_definition(2))
            await store.delete_record(2)

        assert list(await ledger_rows(engine)) == [1]

    @pytest.mark.asyncio
    async def test_update_hash(self, engine: AsyncEngine):
        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.ensure_table()
            await store.insert_record(make_definition(1, SENTINEL_HASH))
            await store.update_hash(1, "fresh")

        rows = await ledger_rows(engine)
        assert rows[1]["hash"] == "fresh"

    @pytest.mark.asyncio
    async def test_execute_script_runs_every_statement(self, engine: AsyncEngine):
        async with engine.begin() as conn:
            store = LedgerStore(conn)
            await store.execute_script(
                "CREATE TABLE a (id INTEGER);\nCREATE TABLE b (note TEXT);\n"
                "INSERT INTO b VALUES ('x;y');"
            )

        assert {"a", "b"} <= await table_names(engine)

"""Pytest configuration and fixtures for sqlmigrate tests on SQLite."""

from collections.abc import AsyncGenerator
from pathlib import Path

import pytest
import pytest_asyncio
from sqlalchemy import inspect, text
from sqlalchemy.ext.asyncio import AsyncEngine

from sqlmigrate.engine import create_engine

CREATE_USERS = """\
-- Up
CREATE TABLE users (
    id INTEGER PRIMARY KEY,
    login TEXT NOT NULL
);

-- Down
DROP TABLE users;
"""

ADD_EMAILS = """\
CREATE TABLE user_emails (
    user_id INTEGER NOT NULL REFERENCES users(id),
    email TEXT NOT NULL
);
-- down
DROP TABLE user_emails;
"""


def write_migration(directory: Path, filename: str, content: str) -> Path:
    """Write a migration file with exact line endings."""
    path = directory / filename
    path.write_bytes(content.encode("utf-8"))
    return path


async def ledger_ids(engine: AsyncEngine, table: str = "migrations") -> list[int]:
    """Get the ids recorded in the ledger table."""
    async with engine.connect() as conn:
        result = await conn.execute(text(f'SELECT id FROM "{table}" ORDER BY id'))
        return [row.id for row in result]


async def ledger_rows(engine: AsyncEngine, table: str = "migrations") -> dict[int, dict]:
    """Get the ledger rows keyed by id."""
    async with engine.connect() as conn:
        result = await conn.execute(text(f'SELECT id, name, up, down, hash FROM "{table}"'))
        return {row.id: dict(row._mapping) for row in result}


async def table_names(engine: AsyncEngine) -> set[str]:
    """Get the names of the tables in the database."""
    async with engine.connect() as conn:
        return set(await conn.run_sync(lambda sync_conn: inspect(sync_conn).get_table_names()))


@pytest_asyncio.fixture(scope="function")
async def engine(tmp_path: Path) -> AsyncGenerator[AsyncEngine, None]:
    """Create an engine on a fresh file-backed SQLite database."""
    engine = create_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}")
    yield engine
    await engine.dispose()


@pytest.fixture
def migrations_dir(tmp_path: Path) -> Path:
    """Create an empty migrations directory."""
    directory = tmp_path / "migrations"
    directory.mkdir()
    return directory


@pytest.fixture
def scenario_dir(migrations_dir: Path) -> Path:
    """Migrations directory holding 001.create_users and 002.add_emails."""
    write_migration(migrations_dir, "001.create_users.sql", CREATE_USERS)
    write_migration(migrations_dir, "002.add_emails.sql", ADD_EMAILS)
    return migrations_dir

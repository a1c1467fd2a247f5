"""Ownership of the database connection for the duration of a run."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import AsyncConnection, AsyncEngine, AsyncTransaction

from sqlmigrate.errors import ConfigurationError

logger = logging.getLogger(__name__)


class Session:
    """A connection held exclusively by one migration run."""

    def __init__(self, connection: AsyncConnection) -> None:
        self.connection = connection

    def transaction(self) -> AsyncTransaction:
        """Begin a transaction; use as ``async with session.transaction():``."""
        return self.connection.begin()


def validate_connection_source(
    client: AsyncConnection | None,
    pool: AsyncEngine | None,
) -> None:
    """Ensure exactly one of client and pool is given."""
    if (client is None) == (pool is None):
        raise ConfigurationError("You must specify a client *OR* pool.")


@asynccontextmanager
async def open_session(
    client: AsyncConnection | None = None,
    pool: AsyncEngine | None = None,
) -> AsyncIterator[Session]:
    """Acquire a connection and release it however the block exits.

    Args:
        client: A connection owned by the caller. It is started if needed and
            closed when the block exits.
        pool: An engine to check a connection out of. The connection is
            invalidated on exit so the pool does not reuse it.

    Raises:
        ConfigurationError: If neither or both of client and pool are given.
    """
    validate_connection_source(client, pool)

    logger.debug("Connecting to database ...")
    if client is not None:
        connection = client
        if connection.sync_connection is None:
            await connection.start()
    else:
        connection = await pool.connect()
    logger.debug("Connected.")

    try:
        yield Session(connection)
    finally:
        if pool is not None:
            await connection.invalidate()
        await connection.close()
        logger.debug("Connection released.")

"""Engine construction for migration runs."""

from typing import Any

from sqlalchemy import event
from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine


def _enable_transactional_ddl(engine: AsyncEngine) -> None:
    """Make SQLite include DDL in explicit transactions.

    The sqlite3 driver only opens a transaction before DML, so a migration's
    CREATE TABLE would otherwise commit on its own. Driver-level transaction
    handling is switched off and SQLAlchemy emits BEGIN itself.
    """

    @event.listens_for(engine.sync_engine, "connect")
    def _on_connect(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _on_begin(conn) -> None:
        conn.exec_driver_sql("BEGIN")


def create_engine(url: str, **kwargs: Any) -> AsyncEngine:
    """Create an async engine suitable for running migrations.

    Args:
        url: SQLAlchemy database URL, e.g. ``sqlite+aiosqlite:///data/app.db``.
        **kwargs: Passed through to ``create_async_engine``.

    Returns:
        The configured AsyncEngine.
    """
    engine = create_async_engine(url, **kwargs)
    if make_url(url).get_backend_name() == "sqlite":
        _enable_transactional_ddl(engine)
    return engine

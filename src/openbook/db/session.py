"""Database session management.

Builds SQLite engines for openbook databases and runs units of work on
sessions drawn from a factory.

File databases get one connection per pool checkout. pysqlite's own
transaction handling is switched off and every transaction is opened with
BEGIN IMMEDIATE, so a writer holds the database lock from its first
statement and SAVEPOINTs behave as documented.
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from pathlib import Path
from typing import Generator

from sqlalchemy import Engine, create_engine, event
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

from openbook.config import DEFAULT_DB_PATH

logger = logging.getLogger(__name__)

MEMORY_DB = ":memory:"

DEFAULT_BUSY_TIMEOUT_S = 30.0


def _install_sqlite_hooks(engine: Engine, *, wal: bool) -> None:
    """Attach pragma and BEGIN IMMEDIATE listeners to an engine."""

    @event.listens_for(engine, "connect")
    def _on_connect(dbapi_connection, connection_record):
        # Let SQLAlchemy emit BEGIN itself
        dbapi_connection.isolation_level = None
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        if wal:
            cursor.execute("PRAGMA journal_mode=WAL")
            cursor.execute("PRAGMA synchronous=NORMAL")
        cursor.close()

    @event.listens_for(engine, "begin")
    def _on_begin(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")


def create_store_engine(
    db_path: Path | str | None = None,
    *,
    busy_timeout_s: float = DEFAULT_BUSY_TIMEOUT_S,
) -> Engine:
    """Create a SQLAlchemy engine for an openbook database.

    Args:
        db_path: Path to SQLite database file, or ":memory:".
            Defaults to data/openbook.db.
        busy_timeout_s: Seconds a writer waits for the database lock
            before failing with "database is locked".

    Returns:
        SQLAlchemy engine with the SQLite hooks installed.
    """
    if db_path is None:
        db_path = DEFAULT_DB_PATH

    if str(db_path) == MEMORY_DB:
        # One shared connection, otherwise every checkout sees an empty database.
        # Not safe for concurrent transactions across threads.
        engine = create_engine(
            "sqlite://",
            echo=False,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )
        _install_sqlite_hooks(engine, wal=False)
        logger.debug("Created in-memory engine")
        return engine

    db_path = Path(db_path)
    db_path.parent.mkdir(parents=True, exist_ok=True)

    engine = create_engine(
        f"sqlite:///{db_path}",
        echo=False,
        connect_args={"check_same_thread": False, "timeout": busy_timeout_s},
    )
    _install_sqlite_hooks(engine, wal=True)
    logger.debug(f"Created engine for {db_path}")
    return engine


@contextmanager
def session_scope(factory: sessionmaker) -> Generator[Session, None, None]:
    """Run a unit of work on a session from the given factory.

    Commits on successful exit, rolls back on exception, and always
    closes the session.
    """
    session = factory()
    try:
        yield session
        session.commit()
    except BaseException:
        session.rollback()
        raise
    finally:
        session.close()

"""Shared pytest fixtures for openbook tests."""

import pytest
from sqlalchemy import event
from sqlalchemy.exc import OperationalError
from sqlalchemy.orm import sessionmaker

from openbook.db.schema import Base
from openbook.db.session import create_store_engine
from openbook.store import OpeningBookStore


@pytest.fixture
def engine(tmp_path):
    """Create a file-backed SQLite engine with the store's transaction setup."""
    engine = create_store_engine(tmp_path / "test.db")
    Base.metadata.create_all(engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session(engine):
    """Create a database session for testing."""
    Session = sessionmaker(bind=engine)
    session = Session()
    yield session
    session.close()


@pytest.fixture
def store(tmp_path):
    """Create an initialized store on a temporary database file."""
    store = OpeningBookStore(tmp_path / "store.db")
    store.init()
    yield store
    store.close()


@pytest.fixture
def merge_fault():
    """Return a function that breaks the n-th openings INSERT on an engine.

    inject(engine, fail_at) makes the fail_at-th INSERT INTO openings raise a
    store error and returns a dict whose "calls" entry counts executions.
    """

    def inject(engine, fail_at: int) -> dict:
        state = {"calls": 0}

        @event.listens_for(engine, "before_cursor_execute")
        def _fail(conn, cursor, statement, parameters, context, executemany):
            if statement.lstrip().upper().startswith("INSERT INTO OPENINGS"):
                state["calls"] += 1
                if state["calls"] == fail_at:
                    raise OperationalError(statement, parameters, Exception("disk I/O error"))

        return state

    return inject

"""openbook: chess game store and opening book aggregator.

Structure:
- db/      - SQLAlchemy schema, sessions, repository operations
- models/  - domain dataclasses and pydantic input records
- ingest/  - game import (names -> ids -> game -> opening counters)
- store.py - one-session-per-operation facade
"""

from openbook.core.errors import ConsistencyViolation, OpenBookError, StoreFailure
from openbook.store import OpeningBookStore

__all__ = [
    "ConsistencyViolation",
    "OpenBookError",
    "OpeningBookStore",
    "StoreFailure",
]

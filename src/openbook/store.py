"""Store facade: one session per operation.

OpeningBookStore owns the engine for one database file. Each method opens
a session, runs a single repository operation, commits on success or
rolls back on any exception, and closes the session. Nothing (ids,
counters) is cached between calls.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Sequence, TypeVar

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from openbook.config import StoreSettings
from openbook.core.errors import StoreFailure
from openbook.db import repo
from openbook.db.schema import Base
from openbook.db.session import create_store_engine, session_scope
from openbook.ingest.importer import ImportResult, import_game
from openbook.models.domain import (
    EventEntity,
    GameEntity,
    OpeningStatEntity,
    PlayerEntity,
    SiteEntity,
)
from openbook.models.types import GameRecord, OpeningObservation, ParsedGame

logger = logging.getLogger(__name__)

T = TypeVar("T")


class OpeningBookStore:
    """Games and opening statistics stored in one SQLite database.

    Example:
        store = OpeningBookStore("data/openbook.db")
        store.init()
        result = store.import_game(parsed_game)
    """

    def __init__(self, db_path: Path | str | None = None, *, settings: StoreSettings | None = None):
        """Initialize store.

        Args:
            db_path: Database file (or ":memory:"); overrides settings.db_path.
            settings: Store settings. Defaults to StoreSettings().
        """
        self.settings = settings or StoreSettings()
        self.db_path = db_path if db_path is not None else self.settings.db_path
        self.engine = create_store_engine(
            self.db_path, busy_timeout_s=self.settings.busy_timeout_s
        )
        self._session_factory = sessionmaker(bind=self.engine)

    def init(self) -> None:
        """Create tables that do not exist yet."""
        Base.metadata.create_all(self.engine)
        logger.info(f"Opening book schema ready at {self.db_path}")

    def close(self) -> None:
        """Release all pooled connections."""
        self.engine.dispose()

    def __enter__(self) -> OpeningBookStore:
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.close()

    def _run(self, operation: str, fn: Callable[..., T], *args, **kwargs) -> T:
        """Run fn(session, ...) in its own session and transaction.

        Store errors raised outside the repository (commit, connect) are
        reported as StoreFailure like the ones raised inside it.
        """
        try:
            with session_scope(self._session_factory) as session:
                return fn(session, *args, **kwargs)
        except SQLAlchemyError as e:
            logger.warning(f"{operation} failed: {e}")
            raise StoreFailure(operation, str(e)) from e

    # -------------------------------------------------------------------------
    # Reference entities
    # -------------------------------------------------------------------------

    def get_or_create_player(self, name: str, *, elo: int | None = None) -> PlayerEntity:
        return self._run("get_or_create_player", repo.get_or_create_player, name, elo=elo)

    def get_or_create_event(self, name: str) -> EventEntity:
        return self._run("get_or_create_event", repo.get_or_create_event, name)

    def get_or_create_site(self, name: str) -> SiteEntity:
        return self._run("get_or_create_site", repo.get_or_create_site, name)

    # -------------------------------------------------------------------------
    # Games and openings
    # -------------------------------------------------------------------------

    def create_game(self, record: GameRecord) -> GameEntity:
        return self._run("create_game", repo.create_game, record)

    def merge_openings(self, batch: Sequence[OpeningObservation]) -> int:
        """Merge observations as one transaction. See repo.merge_openings."""
        return self._run(
            "merge_openings",
            repo.merge_openings,
            batch,
            chunk_size=self.settings.merge_chunk_size,
        )

    def import_game(self, parsed: ParsedGame) -> ImportResult:
        """Import one game and its openings as one transaction."""
        return self._run(
            "import_game",
            import_game,
            parsed,
            chunk_size=self.settings.merge_chunk_size,
            max_ply=self.settings.max_ply,
        )

    def get_opening_stat(self, position_hash: int, move: bytes) -> OpeningStatEntity | None:
        return self._run("get_opening_stat", repo.get_opening_stat, position_hash, move)

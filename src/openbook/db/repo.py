"""Repository pattern for database operations.

Encapsulates all SQLAlchemy queries, keeping domain logic pure.
Returns domain models (not SQLAlchemy entities) to external callers.

Every write runs inside a SAVEPOINT on the caller's session: a failure
rolls back only that call's work and is raised as StoreFailure (store
error) or ConsistencyViolation (invariant broken). Committing is the
caller's job.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Sequence

from sqlalchemy import select
from sqlalchemy.dialects.sqlite import insert as sqlite_insert
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from openbook.config import DEFAULT_CHUNK_SIZE
from openbook.core.errors import ConsistencyViolation, StoreFailure
from openbook.core.hashing import to_signed64
from openbook.db.schema import (
    GAME_IDENTITY_COLUMNS,
    MAX_COUNTER,
    Event,
    Game,
    Opening,
    Player,
    Site,
)
from openbook.models.domain import (
    EventEntity,
    GameEntity,
    OpeningStatEntity,
    PlayerEntity,
    SiteEntity,
)
from openbook.models.types import GameRecord, OpeningObservation

if TYPE_CHECKING:
    from sqlalchemy.orm import Session as DbSession
else:
    DbSession = Session

logger = logging.getLogger(__name__)

# Re-export for external use
__all__ = ["DbSession"]

OpeningKey = tuple[int, bytes]
Counts = tuple[int, int, int]


# ============================================================================
# Converters: SQLAlchemy -> Domain
# ============================================================================


def _player_to_entity(player: Player) -> PlayerEntity:
    """Convert SQLAlchemy Player to domain entity."""
    return PlayerEntity(player_id=player.id, name=player.name, elo=player.elo)


def _event_to_entity(event: Event) -> EventEntity:
    """Convert SQLAlchemy Event to domain entity."""
    return EventEntity(event_id=event.id, name=event.name)


def _site_to_entity(site: Site) -> SiteEntity:
    """Convert SQLAlchemy Site to domain entity."""
    return SiteEntity(site_id=site.id, name=site.name)


def _game_to_entity(game: Game, created: bool) -> GameEntity:
    """Convert SQLAlchemy Game to domain entity."""
    return GameEntity(
        game_id=game.id,
        white_id=game.white_id,
        black_id=game.black_id,
        event_id=game.event_id,
        site_id=game.site_id,
        date=game.date,
        round=game.round,
        result=game.result,
        created=created,
    )


# ============================================================================
# Reference Entity Repository
# ============================================================================


def _require_name(name: str) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValueError(f"name must be a non-empty string, got {name!r}")
    return name.strip()


def _get_or_create(session: DbSession, model, name: str, **extra):
    """Insert a row for name unless one exists, then read it back.

    The read-back runs on every call: when the insert was ignored the row
    belongs to an earlier (or concurrent, already committed) caller.

    Returns:
        The ORM row for name.
    """
    name = _require_name(name)
    operation = f"get_or_create {model.__tablename__}"
    try:
        with session.begin_nested():
            result = session.execute(
                sqlite_insert(model.__table__)
                .values(name=name, **extra)
                .on_conflict_do_nothing(index_elements=["name"])
            )
            inserted = result.rowcount == 1
            row = session.scalars(select(model).where(model.name == name)).one_or_none()
            if row is None:
                raise ConsistencyViolation(
                    f"{model.__tablename__} row for {name!r} missing after insert"
                )
    except SQLAlchemyError as e:
        logger.warning(f"{operation} failed for {name!r}: {e}")
        raise StoreFailure(operation, str(e)) from e

    if inserted:
        logger.debug(f"Created {model.__tablename__} {name!r} (id={row.id})")
    return row


def get_or_create_player(session: DbSession, name: str, *, elo: int | None = None) -> PlayerEntity:
    """Get the player called name, creating it if needed.

    elo is stored only when the row is created; an existing player keeps
    its rating.
    """
    return _player_to_entity(_get_or_create(session, Player, name, elo=elo))


def get_or_create_event(session: DbSession, name: str) -> EventEntity:
    """Get the event called name, creating it if needed."""
    return _event_to_entity(_get_or_create(session, Event, name))


def get_or_create_site(session: DbSession, name: str) -> SiteEntity:
    """Get the site called name, creating it if needed."""
    return _site_to_entity(_get_or_create(session, Site, name))


def get_player(session: DbSession, name: str) -> PlayerEntity | None:
    """Get player by name."""
    player = session.scalars(select(Player).where(Player.name == name)).one_or_none()
    return _player_to_entity(player) if player else None


# ============================================================================
# Game Repository
# ============================================================================


def create_game(session: DbSession, record: GameRecord) -> GameEntity:
    """Insert a game unless the same game is already stored.

    The insert ignores uniqueness conflicts, then the game is always read
    back by its identity columns: the id reported by an ignored insert
    says nothing about the existing row.

    Args:
        session: Database session.
        record: Game with resolved player/event/site ids.

    Returns:
        GameEntity; created is True only if this call inserted the row.

    Raises:
        StoreFailure: On any store error (including foreign key violations).
        ConsistencyViolation: If the read-back finds no row, or several
            rows (identity constraint missing from the schema).
    """
    values = record.model_dump()
    identity = {column: values[column] for column in GAME_IDENTITY_COLUMNS}
    try:
        with session.begin_nested():
            # No conflict target: with the identity constraint missing the
            # duplicate lands and the read-back below reports it.
            result = session.execute(
                sqlite_insert(Game.__table__).values(**values).on_conflict_do_nothing()
            )
            created = result.rowcount == 1
            rows = session.scalars(
                select(Game).where(*(getattr(Game, c) == v for c, v in identity.items()))
            ).all()
            if len(rows) != 1:
                raise ConsistencyViolation(
                    f"expected exactly one game for {identity}, found {len(rows)}"
                )
    except SQLAlchemyError as e:
        logger.warning(f"create_game failed for {identity}: {e}")
        raise StoreFailure("create_game", str(e)) from e

    logger.debug(f"{'Created' if created else 'Found existing'} game id={rows[0].id}")
    return _game_to_entity(rows[0], created)


# ============================================================================
# Opening Repository
# ============================================================================

_openings = Opening.__table__
_merge_insert = sqlite_insert(_openings)

# Insert-or-increment; never overwrites a counter with a smaller value.
_MERGE_OPENINGS = _merge_insert.on_conflict_do_update(
    index_elements=[_openings.c.hash, _openings.c.move],
    set_={
        "white": _openings.c.white + _merge_insert.excluded.white,
        "black": _openings.c.black + _merge_insert.excluded.black,
        "draw": _openings.c.draw + _merge_insert.excluded.draw,
    },
)


def aggregate_observations(batch: Sequence[OpeningObservation]) -> dict[OpeningKey, Counts]:
    """Sum observations that share a (position_hash, move) key.

    Args:
        batch: Observations, possibly with repeated keys.

    Returns:
        Mapping of key to (white, black, draw) totals, in first-seen order.

    Raises:
        ValueError: If a summed counter does not fit in a SQLite INTEGER.
    """
    totals: dict[OpeningKey, list[int]] = {}
    for obs in batch:
        counts = totals.setdefault(obs.key, [0, 0, 0])
        counts[0] += obs.white_wins
        counts[1] += obs.black_wins
        counts[2] += obs.draws

    for key, counts in totals.items():
        if max(counts) > MAX_COUNTER:
            raise ValueError(
                f"counter total {max(counts)} for key {key!r} exceeds {MAX_COUNTER}"
            )
    return {key: (w, b, d) for key, (w, b, d) in totals.items()}


def merge_openings(
    session: DbSession,
    batch: Sequence[OpeningObservation],
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
) -> int:
    """Merge a batch of observations into the opening counters.

    New keys are inserted with the batch's counts; existing keys have
    their counters incremented in place. Duplicate keys within the batch
    are summed first. The whole batch is one unit: if any chunk fails,
    no key of the batch changes.

    Counts are increments, so merging the same batch twice counts it
    twice. Deduplicate upstream (see ingest.importer.import_game).

    Args:
        session: Database session.
        batch: Non-empty sequence of observations.
        chunk_size: Rows bound per executemany call.

    Returns:
        Number of distinct keys merged.

    Raises:
        ValueError: If batch is empty, chunk_size < 1, or a key's summed
            counter exceeds MAX_COUNTER.
        StoreFailure: On any store error, including a stored counter that
            would overflow; the batch is rolled back.
    """
    if not batch:
        raise ValueError("merge_openings requires a non-empty batch")
    if chunk_size < 1:
        raise ValueError(f"chunk_size must be >= 1, got {chunk_size}")

    rows = [
        {"hash": position_hash, "move": move, "white": w, "black": b, "draw": d}
        for (position_hash, move), (w, b, d) in aggregate_observations(batch).items()
    ]

    try:
        with session.begin_nested():
            for start in range(0, len(rows), chunk_size):
                session.execute(_MERGE_OPENINGS, rows[start : start + chunk_size])
    except SQLAlchemyError as e:
        logger.warning(f"merge_openings failed, {len(rows)} keys rolled back: {e}")
        raise StoreFailure("merge_openings", str(e)) from e

    logger.debug(f"Merged {len(batch)} observations into {len(rows)} opening keys")
    return len(rows)


def get_opening_stat(
    session: DbSession, position_hash: int, move: bytes
) -> OpeningStatEntity | None:
    """Get the counters stored for one (position_hash, move) key.

    position_hash may be given signed or unsigned.
    """
    stored_hash = to_signed64(position_hash)
    row = session.execute(
        select(Opening.move, Opening.white, Opening.black, Opening.draw).where(
            Opening.hash == stored_hash, Opening.move == move
        )
    ).one_or_none()
    if row is None:
        return None
    return OpeningStatEntity(
        position_hash=stored_hash, move=row.move, white=row.white, black=row.black, draw=row.draw
    )


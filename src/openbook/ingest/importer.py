"""Game import into the store and opening book.

Resolves names to reference rows, stores the game, and feeds the
game's moves into the opening counters, as one unit of work.

Domain logic is pure - database operations go through repo.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Sequence

from sqlalchemy.exc import SQLAlchemyError

from openbook.config import DEFAULT_CHUNK_SIZE
from openbook.core.errors import StoreFailure
from openbook.db import repo
from openbook.db.repo import DbSession
from openbook.models.types import GameRecord, GameResult, OpeningObservation, ParsedGame, PositionMove

logger = logging.getLogger(__name__)

# Counter each decisive result feeds; "*" feeds none
_RESULT_COUNTER = {
    "1-0": "white_wins",
    "0-1": "black_wins",
    "1/2-1/2": "draws",
}


@dataclass
class ImportResult:
    """Result of importing one game."""

    game_id: int
    created: bool
    openings_merged: int


def observations_for_game(
    positions: Sequence[PositionMove],
    result: GameResult,
    max_ply: int | None = None,
) -> list[OpeningObservation]:
    """Turn a replayed game into opening observations.

    Each (position, move) pair adds one to the counter matching the game
    result. Unfinished games ("*") contribute nothing.

    Args:
        positions: (position, move) pairs in play order.
        result: PGN result string.
        max_ply: Only the first max_ply pairs are used; None uses all.

    Returns:
        List of observations, one per used pair.
    """
    counter = _RESULT_COUNTER.get(result)
    if counter is None:
        return []

    if max_ply is not None:
        positions = positions[:max_ply]

    return [
        OpeningObservation(position_hash=p.position_hash, move=p.move, **{counter: 1})
        for p in positions
    ]


def import_game(
    session: DbSession,
    parsed: ParsedGame,
    *,
    chunk_size: int = DEFAULT_CHUNK_SIZE,
    max_ply: int | None = None,
) -> ImportResult:
    """Import a parsed game.

    Openings are merged only when the game row is new, so importing the
    same game again leaves the counters untouched. Everything runs in one
    SAVEPOINT: if the merge fails the game row is rolled back too, and a
    retry of the import applies both.

    Args:
        session: Database session.
        parsed: Game with player/event/site names and replayed positions.
        chunk_size: Rows per executemany call when merging openings.
        max_ply: Limit on pairs fed to the opening book.

    Returns:
        ImportResult with the game id and what was written.

    Raises:
        StoreFailure: On store errors; nothing from this import is kept.
        ConsistencyViolation: If the store contradicts an invariant.
    """
    try:
        with session.begin_nested():
            white = repo.get_or_create_player(session, parsed.white, elo=parsed.white_elo)
            black = repo.get_or_create_player(session, parsed.black, elo=parsed.black_elo)
            event = repo.get_or_create_event(session, parsed.event)
            site = repo.get_or_create_site(session, parsed.site)

            record = GameRecord(
                white_id=white.player_id,
                black_id=black.player_id,
                event_id=event.event_id,
                site_id=site.site_id,
                date=parsed.date,
                round=parsed.round,
                result=parsed.result,
                white_elo=parsed.white_elo,
                black_elo=parsed.black_elo,
                time_control=parsed.time_control,
                eco=parsed.eco,
                ply_count=len(parsed.positions),
                fen=parsed.fen,
                moves=parsed.moves,
            )
            game = repo.create_game(session, record)

            merged = 0
            if game.created:
                observations = observations_for_game(parsed.positions, parsed.result, max_ply)
                if observations:
                    merged = repo.merge_openings(session, observations, chunk_size=chunk_size)
    except SQLAlchemyError as e:
        # Raised by the SAVEPOINT itself (begin / release)
        raise StoreFailure("import_game", str(e)) from e

    if game.created:
        logger.info(
            f"Imported game {game.game_id}: {parsed.white} - {parsed.black} "
            f"{parsed.result}, {merged} opening keys"
        )
    else:
        logger.debug(f"Game {game.game_id} already imported, openings untouched")

    return ImportResult(game_id=game.game_id, created=game.created, openings_merged=merged)

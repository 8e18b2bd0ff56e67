"""Tests for conflict-ignoring game insert.

Invariants:
1. Inserting the same game twice yields one row and the same id
2. created is True only for the inserting call
3. A missing identity constraint is reported as ConsistencyViolation
4. Store errors (e.g. unknown foreign keys) surface as StoreFailure
"""

import pytest
from sqlalchemy import text

from openbook.core.errors import ConsistencyViolation, StoreFailure
from openbook.db import repo
from openbook.db.schema import Game
from openbook.models.types import GameRecord

# games table as created by schema.py, minus the identity constraint
_GAMES_WITHOUT_IDENTITY = """
CREATE TABLE games (
    id INTEGER PRIMARY KEY,
    white_id INTEGER NOT NULL REFERENCES players (id),
    black_id INTEGER NOT NULL REFERENCES players (id),
    event_id INTEGER NOT NULL REFERENCES events (id),
    site_id INTEGER NOT NULL REFERENCES sites (id),
    date VARCHAR(10) NOT NULL,
    round VARCHAR(16) NOT NULL,
    result VARCHAR(8) NOT NULL,
    white_elo INTEGER,
    black_elo INTEGER,
    time_control VARCHAR(32),
    eco VARCHAR(3),
    ply_count INTEGER,
    fen TEXT,
    moves BLOB
)
"""


@pytest.fixture
def game_record(session) -> GameRecord:
    """A game record with resolved reference ids."""
    white = repo.get_or_create_player(session, "Carlsen, Magnus", elo=2830)
    black = repo.get_or_create_player(session, "So, Wesley", elo=2757)
    event = repo.get_or_create_event(session, "Sinquefield Cup")
    site = repo.get_or_create_site(session, "Saint Louis")
    session.commit()
    return GameRecord(
        white_id=white.player_id,
        black_id=black.player_id,
        event_id=event.event_id,
        site_id=site.site_id,
        date="2023.11.20",
        round="3",
        result="1-0",
        eco="C65",
        moves=b"\x0c\x1c\x06\x15",
    )


class TestCreateGame:
    """Basic insert behavior."""

    def test_first_insert_creates(self, session, game_record):
        """A new game is inserted and flagged as created."""
        game = repo.create_game(session, game_record)
        session.commit()

        assert game.created is True
        assert game.result == "1-0"
        assert session.query(Game).count() == 1

    def test_metadata_stored(self, session, game_record):
        """Metadata and raw move bytes are persisted."""
        game = repo.create_game(session, game_record)
        session.commit()

        row = session.get(Game, game.game_id)
        assert row.eco == "C65"
        assert row.moves == b"\x0c\x1c\x06\x15"


class TestGameDedup:
    """Resubmitting a game is a no-op returning the same id."""

    def test_same_game_twice_one_row(self, session, game_record):
        """Both calls return the same id; only the first created it."""
        first = repo.create_game(session, game_record)
        second = repo.create_game(session, game_record)
        session.commit()

        assert first.game_id == second.game_id
        assert first.created is True
        assert second.created is False
        assert session.query(Game).count() == 1

    def test_resubmission_with_different_metadata_keeps_original(self, session, game_record):
        """Only identity columns decide; the stored game is not updated."""
        first = repo.create_game(session, game_record)
        changed = game_record.model_copy(update={"result": "0-1", "eco": "B90"})
        second = repo.create_game(session, changed)

        assert second.game_id == first.game_id
        assert second.result == "1-0"

    def test_dedup_across_transactions(self, store):
        """The same game submitted through separate sessions stays single."""
        white = store.get_or_create_player("Nepomniachtchi, Ian")
        black = store.get_or_create_player("Ding, Liren")
        event = store.get_or_create_event("World Championship")
        site = store.get_or_create_site("Astana")
        record = GameRecord(
            white_id=white.player_id,
            black_id=black.player_id,
            event_id=event.event_id,
            site_id=site.site_id,
            date="2023.04.30",
            round="14",
            result="0-1",
        )

        first = store.create_game(record)
        second = store.create_game(record)

        assert first.game_id == second.game_id
        assert (first.created, second.created) == (True, False)

    def test_other_round_is_new_game(self, session, game_record):
        """Changing an identity column creates a distinct game."""
        first = repo.create_game(session, game_record)
        second = repo.create_game(session, game_record.model_copy(update={"round": "4"}))

        assert first.game_id != second.game_id
        assert second.created is True


class TestGameFailures:
    """Failure reporting."""

    def test_unknown_player_raises_store_failure(self, session, game_record):
        """A foreign key violation is a store failure; nothing is written."""
        bad = game_record.model_copy(update={"white_id": 9999})

        with pytest.raises(StoreFailure):
            repo.create_game(session, bad)

        assert session.query(Game).count() == 0

    def test_missing_identity_constraint_is_consistency_violation(self, session, game_record):
        """Without the unique constraint a duplicate is detected and undone."""
        session.execute(text("DROP TABLE games"))
        session.execute(text(_GAMES_WITHOUT_IDENTITY))
        session.commit()

        repo.create_game(session, game_record)
        with pytest.raises(ConsistencyViolation):
            repo.create_game(session, game_record)
        session.commit()

        assert session.query(Game).count() == 1

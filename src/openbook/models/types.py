"""Pydantic models for records handed to the store.

Inputs are validated here, before any database work starts:
counters are non-negative and fit in a SQLite INTEGER, position hashes
fit in 64 bits and are normalized to their signed storage form, names are
non-empty.
"""

from typing import Literal

from pydantic import BaseModel, Field, field_validator

from openbook.core.hashing import to_signed64
from openbook.db.schema import MAX_COUNTER, UNKNOWN_DATE, UNKNOWN_ROUND

GameResult = Literal["1-0", "0-1", "1/2-1/2", "*"]


class OpeningObservation(BaseModel):
    """Counter increments for one (position, move) key.

    Usually a single game contributes 1 to exactly one counter, but
    pre-aggregated increments are accepted.
    """

    position_hash: int
    move: bytes
    white_wins: int = Field(default=0, ge=0, le=MAX_COUNTER)
    black_wins: int = Field(default=0, ge=0, le=MAX_COUNTER)
    draws: int = Field(default=0, ge=0, le=MAX_COUNTER)

    @field_validator("position_hash")
    @classmethod
    def normalize_hash(cls, value: int) -> int:
        return to_signed64(value)

    @property
    def key(self) -> tuple[int, bytes]:
        return (self.position_hash, self.move)


class PositionMove(BaseModel):
    """A move played from a position, produced by replaying a game."""

    position_hash: int
    move: bytes

    @field_validator("position_hash")
    @classmethod
    def normalize_hash(cls, value: int) -> int:
        return to_signed64(value)


class GameRecord(BaseModel):
    """A game with already-resolved player, event and site ids."""

    white_id: int
    black_id: int
    event_id: int
    site_id: int
    date: str = UNKNOWN_DATE
    round: str = UNKNOWN_ROUND
    result: GameResult = "*"
    white_elo: int | None = None
    black_elo: int | None = None
    time_control: str | None = None
    eco: str | None = Field(default=None, max_length=3)
    ply_count: int | None = Field(default=None, ge=0)
    fen: str | None = None
    moves: bytes | None = None


class ParsedGame(BaseModel):
    """A game as handed over by a parser: names instead of ids.

    positions holds the (position, move) pairs in play order.
    """

    white: str
    black: str
    event: str = "?"
    site: str = "?"
    date: str = UNKNOWN_DATE
    round: str = UNKNOWN_ROUND
    result: GameResult = "*"
    white_elo: int | None = None
    black_elo: int | None = None
    time_control: str | None = None
    eco: str | None = Field(default=None, max_length=3)
    fen: str | None = None
    moves: bytes | None = None
    positions: list[PositionMove] = Field(default_factory=list)

    @field_validator("white", "black", "event", "site")
    @classmethod
    def require_name(cls, value: str) -> str:
        value = value.strip()
        if not value:
            raise ValueError("name must be a non-empty string")
        return value

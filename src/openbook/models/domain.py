"""Domain models for openbook.

Pure Python dataclasses representing stored entities.
These models are independent of SQLAlchemy and are what the
repository hands back to callers.
"""

from __future__ import annotations

from dataclasses import dataclass

from openbook.core.hashing import to_unsigned64


# ============================================================================
# Reference Entities
# ============================================================================


@dataclass(frozen=True)
class PlayerEntity:
    """Domain model for a player."""

    player_id: int
    name: str
    elo: int | None = None


@dataclass(frozen=True)
class EventEntity:
    """Domain model for an event."""

    event_id: int
    name: str


@dataclass(frozen=True)
class SiteEntity:
    """Domain model for a site."""

    site_id: int
    name: str


# ============================================================================
# Game Domain
# ============================================================================


@dataclass(frozen=True)
class GameEntity:
    """Domain model for a stored game.

    created is True only for the call that inserted the row.
    """

    game_id: int
    white_id: int
    black_id: int
    event_id: int
    site_id: int
    date: str
    round: str
    result: str
    created: bool = False


# ============================================================================
# Opening Domain
# ============================================================================


@dataclass(frozen=True)
class OpeningStatEntity:
    """Domain model for one opening book row."""

    position_hash: int
    move: bytes
    white: int
    black: int
    draw: int

    @property
    def total(self) -> int:
        return self.white + self.black + self.draw

    @property
    def unsigned_hash(self) -> int:
        return to_unsigned64(self.position_hash)

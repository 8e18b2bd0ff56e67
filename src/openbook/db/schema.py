"""Database schema for openbook.

Reference tables (players, events, sites) are keyed by a unique name.
Games are unique per natural identity. Openings hold one counter row per
(position hash, move).
"""

from sqlalchemy import (
    BigInteger,
    CheckConstraint,
    ForeignKey,
    Integer,
    LargeBinary,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

UNKNOWN_DATE = "????.??.??"
UNKNOWN_ROUND = "?"

# Largest value a SQLite INTEGER holds
MAX_COUNTER = 2**63 - 1


class Base(DeclarativeBase):
    """Base class for all models."""

    pass


class Player(Base):
    """A player, created on first reference.

    Invariant: UNIQUE(name). elo is set only when the row is created.
    """

    __tablename__ = "players"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    elo: Mapped[int | None] = mapped_column(Integer, nullable=True)


class Event(Base):
    """A tournament or event name."""

    __tablename__ = "events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


class Site(Base):
    """A playing site name."""

    __tablename__ = "sites"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    name: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)


# Columns that identify a game; a second insert with the same values is ignored.
GAME_IDENTITY_COLUMNS = ("white_id", "black_id", "event_id", "site_id", "date", "round")


class Game(Base):
    """An imported game.

    Invariant: UNIQUE(white_id, black_id, event_id, site_id, date, round)
    date and round are NOT NULL so unknown values still take part in the
    constraint (SQLite treats NULLs as distinct).
    """

    __tablename__ = "games"

    id: Mapped[int] = mapped_column(Integer, primary_key=True)
    white_id: Mapped[int] = mapped_column(Integer, ForeignKey("players.id"), nullable=False)
    black_id: Mapped[int] = mapped_column(Integer, ForeignKey("players.id"), nullable=False)
    event_id: Mapped[int] = mapped_column(Integer, ForeignKey("events.id"), nullable=False)
    site_id: Mapped[int] = mapped_column(Integer, ForeignKey("sites.id"), nullable=False)
    date: Mapped[str] = mapped_column(String(10), nullable=False, default=UNKNOWN_DATE)
    round: Mapped[str] = mapped_column(String(16), nullable=False, default=UNKNOWN_ROUND)
    result: Mapped[str] = mapped_column(String(8), nullable=False, default="*")
    white_elo: Mapped[int | None] = mapped_column(Integer, nullable=True)
    black_elo: Mapped[int | None] = mapped_column(Integer, nullable=True)
    time_control: Mapped[str | None] = mapped_column(String(32), nullable=True)
    eco: Mapped[str | None] = mapped_column(String(3), nullable=True)
    ply_count: Mapped[int | None] = mapped_column(Integer, nullable=True)
    fen: Mapped[str | None] = mapped_column(Text, nullable=True)
    moves: Mapped[bytes | None] = mapped_column(LargeBinary, nullable=True)

    __table_args__ = (UniqueConstraint(*GAME_IDENTITY_COLUMNS, name="uq_game_identity"),)


class Opening(Base):
    """Aggregated outcome counters for one move from one position.

    Invariant: PRIMARY KEY(hash, move); counters only ever grow.
    hash is the signed 64-bit form of the position digest, move is raw bytes.
    SQLite turns an INTEGER that overflows into REAL; the CHECKs make such an
    increment fail instead.
    """

    __tablename__ = "openings"

    hash: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=False)
    move: Mapped[bytes] = mapped_column(LargeBinary, primary_key=True)
    white: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    black: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    draw: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    __table_args__ = (
        CheckConstraint("typeof(white) = 'integer' AND white >= 0", name="ck_openings_white"),
        CheckConstraint("typeof(black) = 'integer' AND black >= 0", name="ck_openings_black"),
        CheckConstraint("typeof(draw) = 'integer' AND draw >= 0", name="ck_openings_draw"),
    )

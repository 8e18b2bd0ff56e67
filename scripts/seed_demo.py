#!/usr/bin/env python3
"""Seed a demo opening book database.

Imports a handful of hard-coded games (already replayed into Polyglot
position keys) and prints the resulting counters for the first moves.

Usage:
    python scripts/seed_demo.py [--db PATH]

This script:
1. Initializes the demo database
2. Imports the demo games (re-running is a no-op: games are deduplicated)
3. Prints white/black/draw counts for the demo opening keys
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add src to path for imports
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT / "src"))

from openbook.models.types import ParsedGame, PositionMove  # noqa: E402
from openbook.store import OpeningBookStore  # noqa: E402

# Constants
DEMO_DB_PATH = PROJECT_ROOT / "demo.db"

# Polyglot keys
START = 0x463B96181691FC9C
AFTER_E4 = 0x823C9B50FD114196
AFTER_E4_D5 = 0x0756B94461C50FB0

# (white, black, event, round, result, moves as (position, move) pairs)
DEMO_GAMES = [
    ("Fischer, Robert James", "Spassky, Boris V.", "World Championship", "6", "1-0",
     [(START, b"c2c4")]),
    ("Kasparov, Garry", "Karpov, Anatoly", "World Championship", "16", "1-0",
     [(START, b"e2e4"), (AFTER_E4, b"c7c5")]),
    ("Carlsen, Magnus", "Anand, Viswanathan", "World Championship", "9", "1/2-1/2",
     [(START, b"e2e4"), (AFTER_E4, b"d7d5"), (AFTER_E4_D5, b"e4e5")]),
    ("Anand, Viswanathan", "Carlsen, Magnus", "World Championship", "3", "0-1",
     [(START, b"d2d4")]),
]


def seed_database(store: OpeningBookStore) -> int:
    """Import the demo games.

    Returns:
        Number of games newly created.
    """
    created = 0
    for white, black, event, round_, result, pairs in DEMO_GAMES:
        parsed = ParsedGame(
            white=white,
            black=black,
            event=event,
            site="Demo",
            round=round_,
            result=result,
            positions=[PositionMove(position_hash=h, move=m) for h, m in pairs],
        )
        outcome = store.import_game(parsed)
        if outcome.created:
            created += 1
            print(f"Imported game {outcome.game_id}: {white} - {black} {result}")
        else:
            print(f"Game already present: {white} - {black} (id {outcome.game_id})")
    return created


def print_book(store: OpeningBookStore) -> None:
    """Print counters for every key the demo games touch."""
    keys = {(h, m) for *_, pairs in DEMO_GAMES for h, m in pairs}
    for position_hash, move in sorted(keys):
        stat = store.get_opening_stat(position_hash, move)
        if stat is None:
            continue
        print(
            f"{position_hash:016x} {move.decode('ascii'):>5}: "
            f"white={stat.white} black={stat.black} draw={stat.draw}"
        )


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(description="Seed a demo opening book")
    parser.add_argument("--db", type=Path, default=DEMO_DB_PATH, help="database file")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(levelname)s %(name)s: %(message)s")

    with OpeningBookStore(args.db) as store:
        store.init()
        created = seed_database(store)
        print(f"{created} new games")
        print_book(store)

    return 0


if __name__ == "__main__":
    sys.exit(main())

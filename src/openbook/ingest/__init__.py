"""Game import module.

Turns parsed games into stored games and opening book increments.
"""

from openbook.ingest.importer import ImportResult, import_game, observations_for_game

__all__ = ["ImportResult", "import_game", "observations_for_game"]

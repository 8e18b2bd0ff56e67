"""Store configuration.

Settings come from OPENBOOK_* environment variables and are validated by
a pydantic model, so a bad value fails at startup rather than mid-import.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Mapping

from pydantic import BaseModel, Field

DEFAULT_DB_PATH = Path("data/openbook.db")

# Rows per executemany call in merge_openings
DEFAULT_CHUNK_SIZE = 500

ENV_PREFIX = "OPENBOOK_"


class StoreSettings(BaseModel):
    """Runtime settings for an opening book store."""

    db_path: Path = DEFAULT_DB_PATH
    busy_timeout_s: float = Field(default=30.0, gt=0)
    merge_chunk_size: int = Field(default=DEFAULT_CHUNK_SIZE, ge=1)
    max_ply: int | None = Field(default=None, ge=1)


def load_settings(env: Mapping[str, str] | None = None) -> StoreSettings:
    """Build settings from environment variables.

    Recognized variables: OPENBOOK_DB_PATH, OPENBOOK_BUSY_TIMEOUT_S,
    OPENBOOK_MERGE_CHUNK_SIZE, OPENBOOK_MAX_PLY. Unset or empty variables
    fall back to the model defaults.

    Args:
        env: Mapping to read instead of os.environ (useful in tests).

    Returns:
        Validated StoreSettings.

    Raises:
        pydantic.ValidationError: If a variable holds an invalid value.
    """
    if env is None:
        env = os.environ

    values: dict[str, str] = {}
    for field_name in StoreSettings.model_fields:
        raw = env.get(ENV_PREFIX + field_name.upper())
        if raw:
            values[field_name] = raw

    return StoreSettings(**values)

# game_settings.py
# Configuration for a 2048 game session, validated with pydantic.

import os
from typing import Optional

from pydantic import BaseModel, Field

MIN_BOARD_SIZE = 4
DEFAULT_WIN_TILE = 2048
DEFAULT_FOUR_PROBABILITY = 0.1

ENV_PREFIX = "TILE_MERGE_"


class GameSettings(BaseModel):
    """Settings for creating a new game."""
    rows: int = Field(
        default=MIN_BOARD_SIZE,
        ge=MIN_BOARD_SIZE,
        description="Number of rows on the board (at least 4)."
    )
    cols: int = Field(
        default=MIN_BOARD_SIZE,
        ge=MIN_BOARD_SIZE,
        description="Number of columns on the board (at least 4)."
    )
    win_tile: int = Field(
        default=DEFAULT_WIN_TILE,
        gt=0,
        description="The tile value that ends the game as a win (e.g., 2048)."
    )
    four_probability: float = Field(
        default=DEFAULT_FOUR_PROBABILITY,
        ge=0.0,
        le=1.0,
        description="Chance that a spawned tile is a 4 instead of a 2."
    )
    seed: Optional[int] = Field(
        default=None,
        description="Seed for the tile spawner. None draws from system entropy."
    )

    @classmethod
    def from_env(cls, environ=None) -> "GameSettings":
        """
        Builds settings from TILE_MERGE_* environment variables.
        Args:
            environ (Mapping[str, str]): Environment to read. Defaults to os.environ.
        Returns:
            GameSettings: Settings with any variables found applied over the defaults.
        Raises:
            pydantic.ValidationError: If a variable holds an out-of-range value.
        """
        environ = os.environ if environ is None else environ
        values = {}
        for name in cls.model_fields:
            raw = environ.get(ENV_PREFIX + name.upper())
            if raw is not None and raw != "":
                values[name] = raw
        return cls(**values)

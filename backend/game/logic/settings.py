"""Scoring rules for flip-cup baseball games."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict

# Game lengths an umpire may pick at game start.
ALLOWED_INNINGS = frozenset({3, 5, 7, 9})
DEFAULT_INNINGS = 7

MAX_UNDO_REASON_LENGTH = 500
MAX_GAME_NOTES_LENGTH = 1000


class GameRules(BaseModel):
    """
    Count and out thresholds applied by the state machine.

    Defaults are regulation baseball thresholds.
    """

    model_config = ConfigDict(frozen=True)

    strikes_per_out: int = 3
    balls_per_walk: int = 4
    outs_per_half_inning: int = 3

    # A foul ball only adds a strike while the count is below this value.
    foul_strike_limit: int = 2


DEFAULT_RULES = GameRules()

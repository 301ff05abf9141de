"""Enumerations shared across the game engine.

String values are part of the umpire-facing wire contract and must not change.
"""

from enum import StrEnum


class GameStatus(StrEnum):
    NOT_STARTED = "not_started"
    IN_PROGRESS = "in_progress"
    PAUSED = "paused"
    COMPLETED = "completed"


class HalfInning(StrEnum):
    TOP = "top"
    BOTTOM = "bottom"


class TeamSide(StrEnum):
    HOME = "home"
    AWAY = "away"


class EventType(StrEnum):
    """Types of umpire-submitted game events."""

    GAME_START = "game_start"
    PITCH = "pitch"
    FLIP_CUP = "flip_cup"
    AT_BAT = "at_bat"
    UNDO = "undo"
    EDIT = "edit"
    TAKEOVER = "takeover"
    INNING_END = "inning_end"
    GAME_END = "game_end"


class PitchResult(StrEnum):
    STRIKE = "strike"
    FOUL_BALL = "foul ball"
    BALL = "ball"
    FIRST_CUP_HIT = "first cup hit"
    SECOND_CUP_HIT = "second cup hit"
    THIRD_CUP_HIT = "third cup hit"
    FOURTH_CUP_HIT = "fourth cup hit"


class FlipCupResult(StrEnum):
    OFFENSE_WINS = "offense wins"
    DEFENSE_WINS = "defense wins"


class AtBatResult(StrEnum):
    OUT = "out"
    WALK = "walk"
    SINGLE = "single"
    DOUBLE = "double"
    TRIPLE = "triple"
    HOMERUN = "homerun"


class ScoringMethod(StrEnum):
    LIVE = "live"
    QUICK_RESULT = "quick_result"


class SideEffectType(StrEnum):
    """Notifications emitted by a transition for the storage/transport shell."""

    GAME_START = "game_start"
    GAME_END = "game_end"
    SCORE_CHANGE = "score_change"
    LINEUP_ADVANCE = "lineup_advance"
    FLIP_CUP_PENDING = "flip_cup_pending"
    HALF_INNING_END = "half_inning_end"
    INNING_CHANGE = "inning_change"
    UMPIRE_CHANGE = "umpire_change"
    REBUILD_REQUIRED = "rebuild_required"


class ErrorKind(StrEnum):
    """Rule-violation categories returned by the state machine as data."""

    INVALID_STATE = "invalid_state"
    INVALID_SEQUENCE = "invalid_sequence"
    VALIDATION = "validation"

"""Side effects emitted by state transitions.

Side effects describe what changed so the storage/transport shell can notify
viewers or trigger a rebuild. They carry no behaviour of their own.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict

from game.logic.enums import AtBatResult, EventType, HalfInning, ScoringMethod, SideEffectType, TeamSide


class SideEffect(BaseModel):
    """Base class for all transition side effects."""

    model_config = ConfigDict(frozen=True)

    type: SideEffectType


class GameStartEffect(SideEffect):
    type: Literal[SideEffectType.GAME_START] = SideEffectType.GAME_START
    home_team_id: str
    away_team_id: str
    started_at: datetime


class GameEndEffect(SideEffect):
    type: Literal[SideEffectType.GAME_END] = SideEffectType.GAME_END
    final_score_home: int
    final_score_away: int
    scoring_method: ScoringMethod


class ScoreChangeEffect(SideEffect):
    type: Literal[SideEffectType.SCORE_CHANGE] = SideEffectType.SCORE_CHANGE
    runs_scored: int
    team: TeamSide
    score_home: int
    score_away: int


class LineupAdvanceEffect(SideEffect):
    type: Literal[SideEffectType.LINEUP_ADVANCE] = SideEffectType.LINEUP_ADVANCE
    team: TeamSide
    new_batter_id: str
    position: int


class FlipCupPendingEffect(SideEffect):
    """A cup hit was recorded; the at-bat resolves on the following flip_cup event."""

    type: Literal[SideEffectType.FLIP_CUP_PENDING] = SideEffectType.FLIP_CUP_PENDING
    cup: int
    hit_type: AtBatResult
    batter_id: str


class HalfInningEndEffect(SideEffect):
    type: Literal[SideEffectType.HALF_INNING_END] = SideEffectType.HALF_INNING_END
    inning: int
    half: HalfInning


class InningChangeEffect(SideEffect):
    type: Literal[SideEffectType.INNING_CHANGE] = SideEffectType.INNING_CHANGE
    inning: int
    is_top_of_inning: bool


class UmpireChangeEffect(SideEffect):
    type: Literal[SideEffectType.UMPIRE_CHANGE] = SideEffectType.UMPIRE_CHANGE
    previous_umpire_id: str
    new_umpire_id: str


class RebuildRequiredEffect(SideEffect):
    """The log was rewritten by an undo or edit; the snapshot must be re-projected."""

    type: Literal[SideEffectType.REBUILD_REQUIRED] = SideEffectType.REBUILD_REQUIRED
    target_event_id: str
    action: Literal[EventType.UNDO, EventType.EDIT]

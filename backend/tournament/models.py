"""Value types for round-robin play and elimination brackets.

All models are frozen. Operations that change a standing, schedule or
bracket return a new instance.
"""

from __future__ import annotations

from datetime import datetime
from enum import StrEnum
from typing import Literal, NamedTuple

from pydantic import BaseModel, ConfigDict, Field, computed_field

from game.logic.enums import GameStatus


class BracketType(StrEnum):
    SINGLE_ELIMINATION = "single_elimination"
    DOUBLE_ELIMINATION = "double_elimination"


class Team(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str


class TournamentGame(BaseModel):
    """A round-robin game result as the standings calculator sees it."""

    model_config = ConfigDict(frozen=True)

    id: str | None = None
    home_team_id: str
    away_team_id: str
    home_score: int = Field(default=0, ge=0)
    away_score: int = Field(default=0, ge=0)
    status: GameStatus = GameStatus.COMPLETED

    @property
    def is_completed(self) -> bool:
        return self.status == GameStatus.COMPLETED

    @property
    def winner_id(self) -> str | None:
        """Team id of the winner, or None for a tied score."""
        if self.home_score > self.away_score:
            return self.home_team_id
        if self.away_score > self.home_score:
            return self.away_team_id
        return None


# ---------------------------------------------------------------------------
# Standings
# ---------------------------------------------------------------------------


class TeamStanding(BaseModel):
    """
    Aggregate record of one team.

    head_to_head_wins counts wins against each opponent id. It is carried so
    incremental merges can resolve head-to-head ties exactly as a full
    recomputation would.
    """

    model_config = ConfigDict(frozen=True)

    team_id: str
    team_name: str
    wins: int = 0
    losses: int = 0
    runs_scored: int = 0
    runs_allowed: int = 0
    games_played: int = 0
    seed: int | None = None
    head_to_head_wins: dict[str, int] = Field(default_factory=dict)

    @computed_field  # type: ignore[prop-decorator]
    @property
    def run_differential(self) -> int:
        return self.runs_scored - self.runs_allowed

    @computed_field  # type: ignore[prop-decorator]
    @property
    def win_percentage(self) -> float:
        decided = self.wins + self.losses
        return self.wins / decided if decided else 0.0


class TiebreakerExplanation(BaseModel):
    model_config = ConfigDict(frozen=True)

    teams: tuple[str, ...]
    reason: str
    resolution: str


# ---------------------------------------------------------------------------
# Round-robin schedule
# ---------------------------------------------------------------------------


class ScheduleMatch(BaseModel):
    model_config = ConfigDict(frozen=True)

    home_team: Team
    away_team: Team
    round_number: int = Field(ge=1)
    game_number: int = Field(ge=1)
    time_slot: str | None = None


class RoundRobinSchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_rounds: int
    matches_per_round: int
    matches: tuple[ScheduleMatch, ...]


class TimeSlot(BaseModel):
    """A window in which up to max_games matches may start at start_time."""

    model_config = ConfigDict(frozen=True)

    id: str
    start_time: datetime
    end_time: datetime
    label: str = ""
    max_games: int = Field(default=1, ge=1)


class ScheduledMatch(ScheduleMatch):
    slot: TimeSlot
    scheduled_start: datetime
    scheduled_end: datetime


class TimedSchedule(BaseModel):
    model_config = ConfigDict(frozen=True)

    total_rounds: int
    matches_per_round: int
    matches: tuple[ScheduledMatch, ...]
    time_slots: tuple[TimeSlot, ...]


class SchedulingError(BaseModel):
    """A match that could not be placed in any slot."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["no_suitable_slot"] = "no_suitable_slot"
    message: str
    game_number: int


class SlotAssignmentResult(NamedTuple):
    schedule: TimedSchedule | None
    error: SchedulingError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


# ---------------------------------------------------------------------------
# Elimination bracket
# ---------------------------------------------------------------------------


class BracketMatch(BaseModel):
    """
    One bracket slot.

    Teams are None until the feeding matches are decided. A bye match holds
    its team in home, has no away team and is already won.
    """

    model_config = ConfigDict(frozen=True)

    game_number: int
    round_number: int
    home_team_id: str | None = None
    away_team_id: str | None = None
    home_seed: int | None = None
    away_seed: int | None = None
    winner_team_id: str | None = None
    is_bye: bool = False
    next_game_number: int | None = None


class TournamentBracket(BaseModel):
    """
    A generated or persisted bracket.

    total_games counts games actually played (bye matches excluded), while
    matches holds every slot of the bracket tree. bracket_type is kept as
    given so a persisted bracket with an unknown type can still be validated.
    """

    model_config = ConfigDict(frozen=True)

    tournament_id: str
    bracket_type: BracketType | str
    matches: tuple[BracketMatch, ...]
    total_rounds: int
    total_games: int
    seeding: tuple[str, ...] = ()

    def match(self, game_number: int) -> BracketMatch | None:
        return next((m for m in self.matches if m.game_number == game_number), None)

    def round_matches(self, round_number: int) -> tuple[BracketMatch, ...]:
        return tuple(m for m in self.matches if m.round_number == round_number)


class ByeAssignment(BaseModel):
    model_config = ConfigDict(frozen=True)

    team_id: str
    team_name: str
    seed: int
    bye_round: int = 1
    bye_game_number: int
    next_game_number: int

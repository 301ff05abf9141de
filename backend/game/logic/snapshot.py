"""Immutable game snapshot: the current state of one game derived from its event log."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from game.logic.enums import GameStatus, HalfInning, ScoringMethod, TeamSide
from game.logic.settings import DEFAULT_INNINGS

# Base numbers used by runner advancement. Home plate is 4.
FIRST_BASE = 1
SECOND_BASE = 2
THIRD_BASE = 3
HOME_PLATE = 4


class BaseRunners(BaseModel):
    """Player ids occupying first, second and third base (None when empty)."""

    model_config = ConfigDict(frozen=True)

    first: str | None = None
    second: str | None = None
    third: str | None = None

    def at(self, base: int) -> str | None:
        """Return the runner on base 1-3."""
        return (self.first, self.second, self.third)[base - 1]

    @classmethod
    def from_bases(cls, occupants: dict[int, str]) -> BaseRunners:
        return cls(
            first=occupants.get(FIRST_BASE),
            second=occupants.get(SECOND_BASE),
            third=occupants.get(THIRD_BASE),
        )

    @property
    def is_empty(self) -> bool:
        return self.first is None and self.second is None and self.third is None


class GameSnapshot(BaseModel):
    """
    Authoritative current state of a single game.

    Produced only by the state machine and the projector; never mutated in place.
    Away bats in the top half of each inning, home in the bottom half.
    """

    model_config = ConfigDict(frozen=True)

    game_id: str | None = None
    status: GameStatus = GameStatus.NOT_STARTED

    # --- Inning and count ---
    current_inning: int = Field(default=1, ge=1)
    is_top_of_inning: bool = True
    outs: int = Field(default=0, ge=0)
    balls: int = Field(default=0, ge=0)
    strikes: int = Field(default=0, ge=0)
    total_innings: int = DEFAULT_INNINGS

    # --- Score ---
    score_home: int = Field(default=0, ge=0)
    score_away: int = Field(default=0, ge=0)

    # --- Teams and players ---
    home_team_id: str | None = None
    away_team_id: str | None = None
    batter_id: str | None = None
    catcher_id: str | None = None
    base_runners: BaseRunners = Field(default_factory=BaseRunners)
    home_lineup: tuple[str, ...] = ()
    away_lineup: tuple[str, ...] = ()
    home_lineup_position: int = Field(default=0, ge=0)
    away_lineup_position: int = Field(default=0, ge=0)
    umpire_id: str | None = None

    # --- Result metadata ---
    scoring_method: ScoringMethod | None = None
    is_quick_result: bool = False
    last_event_id: str | None = None
    last_updated: datetime | None = None

    @property
    def half_inning(self) -> HalfInning:
        return HalfInning.TOP if self.is_top_of_inning else HalfInning.BOTTOM

    @property
    def batting_side(self) -> TeamSide:
        return TeamSide.AWAY if self.is_top_of_inning else TeamSide.HOME

    @property
    def batting_lineup(self) -> tuple[str, ...]:
        return self.away_lineup if self.is_top_of_inning else self.home_lineup

    @property
    def batting_lineup_position(self) -> int:
        return self.away_lineup_position if self.is_top_of_inning else self.home_lineup_position


def empty_snapshot(game_id: str | None = None) -> GameSnapshot:
    """Return the pre-start snapshot every projection begins from."""
    return GameSnapshot(game_id=game_id)

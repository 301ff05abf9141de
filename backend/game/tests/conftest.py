from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import pytest

from game.logic.enums import AtBatResult, EventType, FlipCupResult, PitchResult, ScoringMethod
from game.logic.events import GameEvent, parse_payload
from game.logic.projector import project
from game.session.event_store import InMemoryEventStore
from game.session.scorekeeper import Scorekeeper
from shared.retry import RetryConfig, RetryPolicy

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.snapshot import GameSnapshot

GAME_ID = "game-1"
UMPIRE_ID = "ump-1"
HOME_TEAM_ID = "team-home"
AWAY_TEAM_ID = "team-away"
HOME_LINEUP = ("h1", "h2", "h3", "h4")
AWAY_LINEUP = ("a1", "a2", "a3", "a4")
BASE_TIME = datetime(2025, 6, 1, 18, 0, tzinfo=UTC)


# ============================================================================
# Event Builder Helpers
# ============================================================================


def game_start_data(
    *,
    home_lineup: Sequence[str] = HOME_LINEUP,
    away_lineup: Sequence[str] = AWAY_LINEUP,
    innings: int = 7,
    umpire_id: str = UMPIRE_ID,
) -> dict[str, Any]:
    """Raw game_start payload with sensible defaults for testing."""
    return {
        "umpire_id": umpire_id,
        "home_team_id": HOME_TEAM_ID,
        "away_team_id": AWAY_TEAM_ID,
        "lineups": {"home": list(home_lineup), "away": list(away_lineup)},
        "innings": innings,
    }


def create_event(
    event_type: EventType,
    data: dict[str, Any],
    *,
    sequence_number: int = 1,
    event_id: str | None = None,
    game_id: str = GAME_ID,
    umpire_id: str = UMPIRE_ID,
    created_at: datetime | None = None,
) -> GameEvent:
    """Create a GameEvent from raw payload data."""
    return GameEvent(
        id=event_id or f"evt-{sequence_number}",
        game_id=game_id,
        sequence_number=sequence_number,
        payload=parse_payload(event_type, data),
        umpire_id=umpire_id,
        created_at=created_at or BASE_TIME + timedelta(seconds=sequence_number),
    )


class EventLogBuilder:
    """
    Append-only event log for one game, with sequence numbers assigned in order.

    Pitch, flip cup and at-bat helpers fill batter_id and catcher_id from the
    snapshot the log currently projects to, unless they are given explicitly.
    """

    def __init__(self, game_id: str = GAME_ID) -> None:
        self.game_id = game_id
        self.events: list[GameEvent] = []

    @property
    def next_sequence(self) -> int:
        return self.events[-1].sequence_number + 1 if self.events else 1

    def snapshot(self) -> GameSnapshot:
        return project(self.events, self.game_id)

    def add(self, event_type: EventType, data: dict[str, Any], *, umpire_id: str = UMPIRE_ID) -> GameEvent:
        event = create_event(
            event_type,
            data,
            sequence_number=self.next_sequence,
            game_id=self.game_id,
            umpire_id=umpire_id,
        )
        self.events.append(event)
        return event

    def _players(self, batter_id: str | None, catcher_id: str | None) -> dict[str, str]:
        snapshot = self.snapshot()
        return {
            "batter_id": batter_id or snapshot.batter_id or "unknown-batter",
            "catcher_id": catcher_id or snapshot.catcher_id or "unknown-catcher",
        }

    def start(self, **kwargs: Any) -> GameEvent:
        return self.add(EventType.GAME_START, game_start_data(**kwargs))

    def pitch(self, result: PitchResult, *, batter_id: str | None = None, catcher_id: str | None = None) -> GameEvent:
        return self.add(EventType.PITCH, {"result": result, **self._players(batter_id, catcher_id)})

    def flip_cup(
        self,
        result: FlipCupResult,
        *,
        batter_id: str | None = None,
        catcher_id: str | None = None,
    ) -> GameEvent:
        return self.add(EventType.FLIP_CUP, {"result": result, **self._players(batter_id, catcher_id)})

    def at_bat(self, result: AtBatResult, *, batter_id: str | None = None, catcher_id: str | None = None) -> GameEvent:
        return self.add(EventType.AT_BAT, {"result": result, **self._players(batter_id, catcher_id)})

    def hit(self, cup: PitchResult, *, batter_id: str | None = None) -> tuple[GameEvent, GameEvent]:
        """A cup-hit pitch followed by an offense-wins flip cup."""
        pitch = self.pitch(cup, batter_id=batter_id)
        flip = self.flip_cup(FlipCupResult.OFFENSE_WINS, batter_id=batter_id)
        return pitch, flip

    def strikeout(self) -> None:
        for _ in range(3):
            self.pitch(PitchResult.STRIKE)

    def undo(self, target: GameEvent, reason: str | None = None) -> GameEvent:
        return self.add(EventType.UNDO, {"target_event_id": target.id, "reason": reason})

    def edit(self, target: GameEvent, new_data: dict[str, Any], reason: str | None = None) -> GameEvent:
        return self.add(EventType.EDIT, {"target_event_id": target.id, "new_data": new_data, "reason": reason})

    def inning_end(self, **kwargs: Any) -> GameEvent:
        return self.add(EventType.INNING_END, kwargs)

    def game_end(
        self,
        home: int,
        away: int,
        scoring_method: ScoringMethod = ScoringMethod.LIVE,
    ) -> GameEvent:
        return self.add(
            EventType.GAME_END,
            {"final_score_home": home, "final_score_away": away, "scoring_method": scoring_method},
        )


def started_log() -> EventLogBuilder:
    builder = EventLogBuilder()
    builder.start()
    return builder


def create_retry_policy(operation: str = "test", max_attempts: int = 3) -> RetryPolicy:
    """Retry policy that never sleeps and has no jitter."""

    async def no_sleep(_delay: float) -> None:
        return None

    return RetryPolicy(
        operation,
        RetryConfig(max_attempts=max_attempts, base_delay=0.0, jitter=False),
        sleep=no_sleep,
    )


# ============================================================================
# Fixtures
# ============================================================================


@pytest.fixture
def log() -> EventLogBuilder:
    return started_log()


@pytest.fixture
def event_store() -> InMemoryEventStore:
    return InMemoryEventStore()


@pytest.fixture
def scorekeeper(event_store) -> Scorekeeper:
    return Scorekeeper(
        event_store,
        load_policy=create_retry_policy("event_log.load"),
        append_policy=create_retry_policy("event_log.append"),
    )

"""
Game state machine: applies one umpire event to a snapshot.

transition() is a pure function. It never mutates its input and never raises
for rule violations; those come back as a TransitionError inside the result.
Undo and edit do not change the snapshot here. They are validated and answered
with a rebuild request, and the projector replays the rewritten log.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import ValidationError

from game.logic.enums import AtBatResult, ErrorKind, EventType, FlipCupResult, GameStatus, PitchResult, ScoringMethod
from game.logic.events import (
    CUP_HIT_RESULTS,
    LOG_CONTROL_EVENTS,
    AtBatPayload,
    EditPayload,
    FlipCupPayload,
    GameEndPayload,
    GameStartPayload,
    InningEndPayload,
    PitchPayload,
    TakeoverPayload,
    UndoPayload,
    effective_events,
    merge_payload,
)
from game.logic.settings import DEFAULT_RULES, GameRules
from game.logic.side_effects import (
    FlipCupPendingEffect,
    GameEndEffect,
    GameStartEffect,
    RebuildRequiredEffect,
    SideEffect,
    UmpireChangeEffect,
)
from game.logic.snapshot import GameSnapshot
from game.logic.state_utils import (
    HIT_BASES,
    add_runs,
    advance_lineup,
    advance_runners,
    batter_and_catcher,
    end_half_inning,
    force_walk,
    record_out,
    reset_count,
)
from game.logic.transition_result import TransitionResult, rejected
from game.logic.validation import validate_game_end
from shared.validation import format_validation_errors

if TYPE_CHECKING:
    from collections.abc import Sequence

    from game.logic.events import GameEvent

logger = structlog.get_logger()

# Gameplay events that only make sense while the game is being played.
_REQUIRES_IN_PROGRESS = frozenset(
    {
        EventType.PITCH,
        EventType.FLIP_CUP,
        EventType.AT_BAT,
        EventType.INNING_END,
        EventType.GAME_END,
    },
)


def transition(
    snapshot: GameSnapshot,
    event: GameEvent,
    prior_events: Sequence[GameEvent] = (),
    rules: GameRules = DEFAULT_RULES,
) -> TransitionResult:
    """
    Apply a single event to a snapshot.

    Args:
        snapshot: Current snapshot of the game
        event: The event being applied
        prior_events: Events already in the game's log (raw, including undo/edit records)
        rules: Count and out thresholds

    Returns:
        TransitionResult with the new snapshot and side effects, or the unchanged
        snapshot and an error

    """
    result = _dispatch(snapshot, event, prior_events, rules)
    if result.error is not None:
        logger.debug(
            "event rejected",
            game_id=event.game_id,
            event_id=event.id,
            event_type=event.type,
            error_kind=result.error.kind,
            reason=result.error.message,
        )
        return result
    if event.type in LOG_CONTROL_EVENTS:
        return result
    stamped = result.snapshot.model_copy(update={"last_event_id": event.id, "last_updated": event.created_at})
    return result._replace(snapshot=stamped)


def _dispatch(  # noqa: PLR0911
    snapshot: GameSnapshot,
    event: GameEvent,
    prior_events: Sequence[GameEvent],
    rules: GameRules,
) -> TransitionResult:
    if snapshot.game_id is not None and event.game_id != snapshot.game_id:
        return rejected(
            snapshot,
            ErrorKind.VALIDATION,
            f"Event {event.id} belongs to game {event.game_id}, not {snapshot.game_id}",
        )
    if snapshot.status == GameStatus.COMPLETED and event.type not in LOG_CONTROL_EVENTS:
        return rejected(snapshot, ErrorKind.INVALID_STATE, f"Cannot apply {event.type} to a completed game")
    if event.type in _REQUIRES_IN_PROGRESS and snapshot.status != GameStatus.IN_PROGRESS:
        return rejected(
            snapshot,
            ErrorKind.INVALID_STATE,
            f"{event.type} requires a game in progress, game is {snapshot.status}",
        )

    payload = event.payload
    if isinstance(payload, GameStartPayload):
        return _apply_game_start(snapshot, event, payload)
    if isinstance(payload, PitchPayload):
        return _apply_pitch(snapshot, payload, rules)
    if isinstance(payload, FlipCupPayload):
        return _apply_flip_cup(snapshot, event, payload, prior_events, rules)
    if isinstance(payload, AtBatPayload):
        return _resolve_plate_appearance(snapshot, payload.result, payload.batter_id, rules)
    if isinstance(payload, InningEndPayload):
        return _apply_inning_end(snapshot, payload)
    if isinstance(payload, GameEndPayload):
        return _apply_game_end(snapshot, payload)
    if isinstance(payload, TakeoverPayload):
        return _apply_takeover(snapshot, payload)
    if isinstance(payload, UndoPayload):
        return _apply_undo(snapshot, event, payload, prior_events)
    return _apply_edit(snapshot, event, payload, prior_events)


# ---------------------------------------------------------------------------
# Game lifecycle
# ---------------------------------------------------------------------------


def _apply_game_start(snapshot: GameSnapshot, event: GameEvent, payload: GameStartPayload) -> TransitionResult:
    if snapshot.status != GameStatus.NOT_STARTED:
        return rejected(snapshot, ErrorKind.INVALID_STATE, "Game has already started")

    # Away bats first; the on-deck away batter catches.
    batter_id, catcher_id = batter_and_catcher(payload.lineups.away, 0)
    started = GameSnapshot(
        game_id=event.game_id,
        status=GameStatus.IN_PROGRESS,
        total_innings=payload.innings,
        home_team_id=payload.home_team_id,
        away_team_id=payload.away_team_id,
        home_lineup=payload.lineups.home,
        away_lineup=payload.lineups.away,
        batter_id=batter_id,
        catcher_id=catcher_id,
        umpire_id=payload.umpire_id,
    )
    effect = GameStartEffect(
        home_team_id=payload.home_team_id,
        away_team_id=payload.away_team_id,
        started_at=event.created_at,
    )
    return TransitionResult(snapshot=started, side_effects=(effect,))


def _apply_game_end(snapshot: GameSnapshot, payload: GameEndPayload) -> TransitionResult:
    validation = validate_game_end(snapshot, payload)
    if not validation.is_valid:
        return rejected(snapshot, ErrorKind.VALIDATION, "; ".join(validation.errors))

    ended = snapshot.model_copy(
        update={
            "status": GameStatus.COMPLETED,
            "score_home": payload.final_score_home,
            "score_away": payload.final_score_away,
            "scoring_method": payload.scoring_method,
            "is_quick_result": payload.scoring_method == ScoringMethod.QUICK_RESULT,
        },
    )
    effect = GameEndEffect(
        final_score_home=payload.final_score_home,
        final_score_away=payload.final_score_away,
        scoring_method=payload.scoring_method,
    )
    return TransitionResult(snapshot=ended, side_effects=(effect,))


def _apply_takeover(snapshot: GameSnapshot, payload: TakeoverPayload) -> TransitionResult:
    if snapshot.status == GameStatus.NOT_STARTED:
        return rejected(snapshot, ErrorKind.INVALID_STATE, "Cannot take over a game that has not started")
    if payload.previous_umpire_id != snapshot.umpire_id:
        return rejected(
            snapshot,
            ErrorKind.VALIDATION,
            f"Umpire {payload.previous_umpire_id} is not the current umpire of this game",
        )
    effect = UmpireChangeEffect(previous_umpire_id=payload.previous_umpire_id, new_umpire_id=payload.new_umpire_id)
    return TransitionResult(
        snapshot=snapshot.model_copy(update={"umpire_id": payload.new_umpire_id}),
        side_effects=(effect,),
    )


def _apply_inning_end(snapshot: GameSnapshot, payload: InningEndPayload) -> TransitionResult:
    updates = {}
    if payload.score_home is not None:
        updates["score_home"] = payload.score_home
    if payload.score_away is not None:
        updates["score_away"] = payload.score_away
    snapshot, effects = end_half_inning(snapshot.model_copy(update=updates))
    return TransitionResult(snapshot=snapshot, side_effects=effects)


# ---------------------------------------------------------------------------
# At-bat resolution
# ---------------------------------------------------------------------------


def _apply_pitch(snapshot: GameSnapshot, payload: PitchPayload, rules: GameRules) -> TransitionResult:
    result = payload.result
    if result == PitchResult.STRIKE:
        strikes = snapshot.strikes + 1
        if strikes >= rules.strikes_per_out:
            return _resolve_plate_appearance(snapshot, AtBatResult.OUT, payload.batter_id, rules)
        return TransitionResult(snapshot=snapshot.model_copy(update={"strikes": strikes}))

    if result == PitchResult.FOUL_BALL:
        if snapshot.strikes < rules.foul_strike_limit:
            snapshot = snapshot.model_copy(update={"strikes": snapshot.strikes + 1})
        return TransitionResult(snapshot=snapshot)

    if result == PitchResult.BALL:
        balls = snapshot.balls + 1
        if balls >= rules.balls_per_walk:
            return _resolve_plate_appearance(snapshot, AtBatResult.WALK, payload.batter_id, rules)
        return TransitionResult(snapshot=snapshot.model_copy(update={"balls": balls}))

    # Cup hit: resolution is deferred to the flip cup that follows.
    hit_type = CUP_HIT_RESULTS[result]
    effect = FlipCupPendingEffect(cup=HIT_BASES[hit_type], hit_type=hit_type, batter_id=payload.batter_id)
    return TransitionResult(snapshot=snapshot, side_effects=(effect,))


def _apply_flip_cup(
    snapshot: GameSnapshot,
    event: GameEvent,
    payload: FlipCupPayload,
    prior_events: Sequence[GameEvent],
    rules: GameRules,
) -> TransitionResult:
    pitch = _pending_cup_hit(event, prior_events)
    if pitch is None:
        return rejected(
            snapshot,
            ErrorKind.INVALID_SEQUENCE,
            "Flip cup must immediately follow a cup hit pitch",
        )
    if payload.result == FlipCupResult.DEFENSE_WINS:
        return _resolve_plate_appearance(snapshot, AtBatResult.OUT, payload.batter_id, rules)
    return _resolve_plate_appearance(snapshot, CUP_HIT_RESULTS[pitch.result], payload.batter_id, rules)


def _pending_cup_hit(event: GameEvent, prior_events: Sequence[GameEvent]) -> PitchPayload | None:
    """Return the cup-hit pitch this flip cup resolves, if it is the latest gameplay event."""
    earlier = [e for e in prior_events if e.sequence_number < event.sequence_number]
    effective = effective_events(earlier)
    if not effective:
        return None
    latest = effective[-1].payload
    if isinstance(latest, PitchPayload) and latest.is_cup_hit:
        return latest
    return None


def _resolve_plate_appearance(
    snapshot: GameSnapshot,
    result: AtBatResult,
    batter_id: str,
    rules: GameRules,
) -> TransitionResult:
    """Finish the current batter's turn: out, walk or hit."""
    if result == AtBatResult.OUT:
        snapshot, effects = record_out(snapshot, rules)
        return TransitionResult(snapshot=snapshot, side_effects=effects)

    if result == AtBatResult.WALK:
        runners, runs = force_walk(snapshot.base_runners, batter_id)
    else:
        runners, runs = advance_runners(snapshot.base_runners, HIT_BASES[result], batter_id)

    snapshot, score_effects = add_runs(snapshot.model_copy(update={"base_runners": runners}), runs)
    snapshot, advanced = advance_lineup(reset_count(snapshot))
    side_effects: tuple[SideEffect, ...] = (*score_effects, advanced)
    return TransitionResult(snapshot=snapshot, side_effects=side_effects)


# ---------------------------------------------------------------------------
# Log rewrites
# ---------------------------------------------------------------------------


def _find_target(
    snapshot: GameSnapshot,
    event: GameEvent,
    target_event_id: str,
    prior_events: Sequence[GameEvent],
) -> tuple[GameEvent | None, TransitionResult | None]:
    """Locate an undo/edit target, returning a rejection when it cannot be rewritten."""
    target = next((e for e in prior_events if e.id == target_event_id), None)
    if target is None:
        return None, rejected(snapshot, ErrorKind.VALIDATION, f"Target event {target_event_id} not found")
    if target.game_id != event.game_id:
        return None, rejected(
            snapshot,
            ErrorKind.VALIDATION,
            f"Target event {target_event_id} belongs to a different game",
        )
    if not target.is_gameplay:
        return None, rejected(snapshot, ErrorKind.VALIDATION, f"Cannot rewrite {target.type} event {target_event_id}")

    effective = effective_events(prior_events)
    current = next((e for e in effective if e.id == target_event_id), None)
    if current is None:
        return None, rejected(snapshot, ErrorKind.VALIDATION, f"Target event {target_event_id} has been undone")
    return current, None


def _apply_undo(
    snapshot: GameSnapshot,
    event: GameEvent,
    payload: UndoPayload,
    prior_events: Sequence[GameEvent],
) -> TransitionResult:
    target, rejection = _find_target(snapshot, event, payload.target_event_id, prior_events)
    if rejection is not None:
        return rejection

    latest = effective_events(prior_events)[-1]
    if target is None or latest.id != target.id:
        return rejected(snapshot, ErrorKind.VALIDATION, "Only the most recent event can be undone")

    effect = RebuildRequiredEffect(target_event_id=target.id, action=EventType.UNDO)
    return TransitionResult(snapshot=snapshot, side_effects=(effect,))


def _apply_edit(
    snapshot: GameSnapshot,
    event: GameEvent,
    payload: EditPayload,
    prior_events: Sequence[GameEvent],
) -> TransitionResult:
    target, rejection = _find_target(snapshot, event, payload.target_event_id, prior_events)
    if rejection is not None:
        return rejection
    if target is None:
        return rejected(snapshot, ErrorKind.VALIDATION, f"Target event {payload.target_event_id} not found")

    new_type = payload.new_data.get("type")
    if new_type is not None and new_type != target.type:
        return rejected(snapshot, ErrorKind.VALIDATION, f"Edit cannot change a {target.type} event into {new_type}")
    try:
        merge_payload(target.payload, payload.new_data)
    except ValidationError as exc:
        return rejected(snapshot, ErrorKind.VALIDATION, "; ".join(format_validation_errors(exc)))

    effect = RebuildRequiredEffect(target_event_id=target.id, action=EventType.EDIT)
    return TransitionResult(snapshot=snapshot, side_effects=(effect,))

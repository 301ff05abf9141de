"""
Snapshot projector: rebuild a game's snapshot by replaying its event log.

The log is first resolved into its effective events (undone events dropped,
edits applied), then folded through the state machine starting from the
pre-start snapshot. Replaying the same log always yields an equal snapshot.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

import structlog
from pydantic import BaseModel, ConfigDict, SerializeAsAny, ValidationError

from game.logic.events import GameEvent, effective_events
from game.logic.exceptions import EventLogCorruptError
from game.logic.settings import DEFAULT_RULES, GameRules
from game.logic.side_effects import SideEffect
from game.logic.snapshot import GameSnapshot, empty_snapshot
from game.logic.state_machine import transition
from shared.validation import format_validation_errors

if TYPE_CHECKING:
    from collections.abc import Iterable, Iterator

logger = structlog.get_logger()


class ProjectionStep(BaseModel):
    """One replay transition: snapshot_before + event -> side effects + snapshot_after."""

    model_config = ConfigDict(frozen=True)

    event: GameEvent
    snapshot_before: GameSnapshot
    snapshot_after: GameSnapshot
    side_effects: tuple[SerializeAsAny[SideEffect], ...] = ()


def project(
    events: Iterable[GameEvent],
    game_id: str | None = None,
    rules: GameRules = DEFAULT_RULES,
) -> GameSnapshot:
    """
    Return the snapshot produced by replaying events from an empty game.

    Raises:
        EventLogCorruptError: If any effective event is rejected by the state machine

    """
    snapshot = empty_snapshot(game_id)
    for step in _fold(events, game_id, rules):
        snapshot = step.snapshot_after
    return snapshot


def trace(
    events: Iterable[GameEvent],
    game_id: str | None = None,
    rules: GameRules = DEFAULT_RULES,
) -> tuple[ProjectionStep, ...]:
    """Replay events and return every intermediate step."""
    return tuple(_fold(events, game_id, rules))


def _fold(events: Iterable[GameEvent], game_id: str | None, rules: GameRules) -> Iterator[ProjectionStep]:
    ordered = sorted(events, key=lambda e: e.sequence_number)
    _check_sequence_numbers(ordered, game_id)
    try:
        effective = effective_events(ordered)
    except ValidationError as exc:
        raise EventLogCorruptError(
            "recorded edit no longer validates: " + "; ".join(format_validation_errors(exc)),
            game_id=game_id,
        ) from exc

    snapshot = empty_snapshot(game_id)
    for index, event in enumerate(effective):
        result = transition(snapshot, event, effective[:index], rules)
        if result.error is not None:
            logger.warning(
                "replay rejected stored event",
                game_id=event.game_id,
                sequence_number=event.sequence_number,
                error_kind=result.error.kind,
            )
            raise EventLogCorruptError(
                result.error.message,
                game_id=event.game_id,
                sequence_number=event.sequence_number,
                error=result.error,
            )
        yield ProjectionStep(
            event=event,
            snapshot_before=snapshot,
            snapshot_after=result.snapshot,
            side_effects=result.side_effects,
        )
        snapshot = result.snapshot


def _check_sequence_numbers(ordered: list[GameEvent], game_id: str | None) -> None:
    for previous, current in zip(ordered, ordered[1:], strict=False):
        if current.sequence_number == previous.sequence_number:
            raise EventLogCorruptError(
                f"duplicate sequence number {current.sequence_number}",
                game_id=game_id or current.game_id,
                sequence_number=current.sequence_number,
            )

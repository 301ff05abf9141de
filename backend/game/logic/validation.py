"""Submission-time validators for umpire events.

These mirror the checks the state machine applies but report every problem
at once, so a submission form can show all of them together.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from game.logic.enums import EventType, ScoringMethod
from game.logic.events import parse_payload
from shared.validation import ValidationResult, format_validation_errors

if TYPE_CHECKING:
    from game.logic.events import GameEndPayload
    from game.logic.snapshot import GameSnapshot


def validate_event_data(event_type: EventType | str, data: dict[str, Any]) -> ValidationResult:
    """Check raw payload data against the contract for its event type."""
    try:
        EventType(event_type)
    except ValueError:
        return ValidationResult.from_messages([f"Unknown event type: {event_type}"])
    try:
        parse_payload(event_type, data)
    except ValidationError as exc:
        return ValidationResult.from_messages(format_validation_errors(exc))
    return ValidationResult()


def validate_game_end(snapshot: GameSnapshot, payload: GameEndPayload) -> ValidationResult:
    """
    Check final scores against the live snapshot.

    Live-scored games must end with exactly the scores the snapshot holds.
    A quick result is an explicit manual override and accepts any scores.
    """
    if payload.scoring_method == ScoringMethod.QUICK_RESULT:
        return ValidationResult()

    errors = []
    if payload.final_score_home != snapshot.score_home:
        errors.append(
            f"Final home score {payload.final_score_home} does not match live score {snapshot.score_home}",
        )
    if payload.final_score_away != snapshot.score_away:
        errors.append(
            f"Final away score {payload.final_score_away} does not match live score {snapshot.score_away}",
        )
    return ValidationResult.from_messages(errors)

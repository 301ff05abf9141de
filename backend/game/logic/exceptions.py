"""Typed exceptions for event-log integrity failures.

Rule violations on live submissions are returned as data by the state
machine. These exceptions are reserved for logs that cannot be trusted:
a stored event the state machine rejects during replay, or a log file that
cannot be read back.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from game.logic.transition_result import TransitionError


class EventLogError(Exception):
    """Base exception for event logs that cannot be replayed."""


class EventLogCorruptError(EventLogError):
    """Raised when replaying a stored log hits an event that cannot be applied.

    Attributes:
        game_id: Game the log belongs to (None when unknown).
        sequence_number: Sequence number of the offending event (None for whole-log problems).
        error: The state machine's rejection, when the failure came from a transition.

    """

    def __init__(
        self,
        reason: str,
        *,
        game_id: str | None = None,
        sequence_number: int | None = None,
        error: TransitionError | None = None,
    ) -> None:
        self.reason = reason
        self.game_id = game_id
        self.sequence_number = sequence_number
        self.error = error
        location = f" at sequence {sequence_number}" if sequence_number is not None else ""
        super().__init__(f"corrupt event log for game {game_id}{location}: {reason}")


class EventLogConflictError(EventLogError):
    """Raised when an append would not extend the log's sequence.

    The log already holds this sequence number under another event id, or a
    later one. Retrying the append cannot succeed.
    """

    def __init__(self, game_id: str, sequence_number: int, last_sequence_number: int) -> None:
        self.game_id = game_id
        self.sequence_number = sequence_number
        self.last_sequence_number = last_sequence_number
        super().__init__(
            f"cannot append sequence {sequence_number} to game {game_id}: log already ends at {last_sequence_number}",
        )

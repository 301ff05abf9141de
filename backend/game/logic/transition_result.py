"""Result type returned by the game state machine.

Lives in its own module so the state machine, the projector and the session
shell can share it without importing each other.
"""

from typing import NamedTuple

from pydantic import BaseModel, ConfigDict

from game.logic.enums import ErrorKind
from game.logic.side_effects import SideEffect
from game.logic.snapshot import GameSnapshot


class TransitionError(BaseModel):
    """A rule violation reported as data rather than raised."""

    model_config = ConfigDict(frozen=True)

    kind: ErrorKind
    message: str


class TransitionResult(NamedTuple):
    """
    Result of applying one event to a snapshot.

    On error, snapshot is the unchanged input snapshot and side_effects is empty.
    The caller must not persist an event whose result carries an error.
    """

    snapshot: GameSnapshot
    side_effects: tuple[SideEffect, ...] = ()
    error: TransitionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def rejected(snapshot: GameSnapshot, kind: ErrorKind, message: str) -> TransitionResult:
    """Build a failed result that leaves the snapshot untouched."""
    return TransitionResult(snapshot=snapshot, error=TransitionError(kind=kind, message=message))

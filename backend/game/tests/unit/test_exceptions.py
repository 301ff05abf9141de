"""Tests for the event-log exception hierarchy."""

import pytest

from game.logic.enums import ErrorKind
from game.logic.exceptions import EventLogCorruptError, EventLogError
from game.logic.transition_result import TransitionError


class TestEventLogCorruptError:
    """Verify EventLogCorruptError keeps its location context."""

    def test_stores_context(self) -> None:
        rejection = TransitionError(kind=ErrorKind.INVALID_STATE, message="Game has not started")
        err = EventLogCorruptError("replay rejected", game_id="game-1", sequence_number=4, error=rejection)

        assert err.reason == "replay rejected"
        assert err.game_id == "game-1"
        assert err.sequence_number == 4
        assert err.error is rejection

    def test_message_format(self) -> None:
        err = EventLogCorruptError("duplicate sequence number", game_id="game-1", sequence_number=2)
        assert str(err) == "corrupt event log for game game-1 at sequence 2: duplicate sequence number"

    def test_message_without_sequence(self) -> None:
        err = EventLogCorruptError("log is empty")
        assert str(err) == "corrupt event log for game None: log is empty"

    def test_is_event_log_error(self) -> None:
        with pytest.raises(EventLogError):
            raise EventLogCorruptError("bad", game_id="game-1")

    def test_requires_keyword_context(self) -> None:
        with pytest.raises(TypeError):
            EventLogCorruptError("bad", "game-1")  # type: ignore[misc]

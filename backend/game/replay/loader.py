"""Event-log loader: parse newline-delimited JSON event logs into GameEvents.

Each line holds one GameEvent as written by dump_event_log() or the file
event store. Blank lines are ignored. A log must belong to a single game and
list its events in strictly increasing sequence order; anything else is
reported as EventLogLoadError rather than silently repaired.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import TYPE_CHECKING

from pydantic import ValidationError

from game.logic.events import GameEvent
from game.logic.exceptions import EventLogError
from shared.validation import format_validation_errors

if TYPE_CHECKING:
    from collections.abc import Iterable

# Safety limit to prevent memory exhaustion from maliciously large log files.
_MAX_LOG_EVENTS = 100_000


class EventLogLoadError(EventLogError):
    """Raised when an event log cannot be loaded or parsed."""


def _parse_line(line: str, line_number: int) -> GameEvent:
    try:
        data = json.loads(line)
    except json.JSONDecodeError as exc:
        raise EventLogLoadError(f"Malformed JSON on line {line_number}: {exc}") from exc
    if not isinstance(data, dict):
        raise EventLogLoadError(f"Line {line_number} is not a JSON object")
    try:
        return GameEvent.model_validate(data)
    except ValidationError as exc:
        details = "; ".join(format_validation_errors(exc))
        raise EventLogLoadError(f"Invalid event on line {line_number}: {details}") from exc


def _validate_ordering(events: list[GameEvent]) -> None:
    """Require one game id and strictly increasing sequence numbers."""
    game_ids = {event.game_id for event in events}
    if len(game_ids) > 1:
        raise EventLogLoadError(f"Event log mixes games: {sorted(game_ids)}")
    for previous, current in zip(events, events[1:], strict=False):
        if current.sequence_number <= previous.sequence_number:
            raise EventLogLoadError(
                f"Sequence numbers must strictly increase: {previous.sequence_number} then {current.sequence_number}",
            )


def load_event_log(content: str) -> list[GameEvent]:
    """Parse NDJSON content into an ordered list of events. Empty content is an empty log."""
    lines = [(number, line) for number, line in enumerate(content.splitlines(), start=1) if line.strip()]
    if len(lines) > _MAX_LOG_EVENTS:
        raise EventLogLoadError(f"Event log exceeds maximum event count ({_MAX_LOG_EVENTS})")

    events = [_parse_line(line, number) for number, line in lines]
    _validate_ordering(events)
    return events


def load_event_log_from_file(path: str | Path) -> list[GameEvent]:
    """Load an event log from a file path."""
    path = Path(path)
    try:
        content = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise EventLogLoadError(f"Cannot read event log file {path}: {exc}") from exc
    return load_event_log(content)


def dump_event_log(events: Iterable[GameEvent]) -> str:
    """Serialize events to NDJSON, one event per line, in sequence order."""
    ordered = sorted(events, key=lambda e: e.sequence_number)
    return "".join(event.model_dump_json() + "\n" for event in ordered)

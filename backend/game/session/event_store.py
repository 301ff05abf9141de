"""Event store adapters: where a game's append-only event log lives.

The state machine and projector never touch storage. The scorekeeper reads
and appends through an EventStore, wrapping every call in its retry policy.
"""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Protocol

import structlog

from game.logic.exceptions import EventLogConflictError
from game.replay.loader import load_event_log

if TYPE_CHECKING:
    from game.logic.events import GameEvent
    from shared.storage import EventLogStorage

logger = structlog.get_logger()


class EventStore(Protocol):
    """Protocol for loading and appending a game's events."""

    async def load_events(self, game_id: str) -> list[GameEvent]: ...

    async def append_event(self, event: GameEvent) -> None: ...


class InMemoryEventStore:
    """Keeps each game's events in a list. Used by tests and single-process tools."""

    def __init__(self) -> None:
        self._events: dict[str, list[GameEvent]] = {}  # game_id -> events in sequence order

    async def load_events(self, game_id: str) -> list[GameEvent]:
        return list(self._events.get(game_id, ()))

    async def append_event(self, event: GameEvent) -> None:
        log = self._events.setdefault(event.game_id, [])
        if _already_appended(log[-1] if log else None, event):
            return
        log.append(event)


class FileEventStore:
    """Persists events as NDJSON lines through an EventLogStorage.

    Blocking file I/O runs in a worker thread so the event loop stays free
    while a log is read or fsynced. Appends are idempotent: an append that
    failed after its line reached the file is not written twice on retry.
    """

    def __init__(self, storage: EventLogStorage) -> None:
        self._storage = storage

    async def load_events(self, game_id: str) -> list[GameEvent]:
        lines = await asyncio.to_thread(self._storage.read_lines, game_id)
        events = load_event_log("\n".join(lines))
        logger.debug("loaded event log", game_id=game_id, event_count=len(events))
        return events

    def _append(self, event: GameEvent) -> None:
        lines = self._storage.read_lines(event.game_id)
        last = load_event_log(lines[-1])[0] if lines else None
        if _already_appended(last, event):
            return
        self._storage.append_line(event.game_id, event.model_dump_json())

    async def append_event(self, event: GameEvent) -> None:
        await asyncio.to_thread(self._append, event)


def _already_appended(last: GameEvent | None, event: GameEvent) -> bool:
    """
    Check the event against the last one stored for its game.

    Returns True when the event is already the last stored one.

    Raises:
        EventLogConflictError: If the log already reaches the event's sequence number with other content

    """
    if last is None or event.sequence_number > last.sequence_number:
        return False
    if last.sequence_number == event.sequence_number and last.id == event.id:
        logger.warning(
            "event already persisted",
            game_id=event.game_id,
            event_id=event.id,
            sequence_number=event.sequence_number,
        )
        return True
    raise EventLogConflictError(event.game_id, event.sequence_number, last.sequence_number)

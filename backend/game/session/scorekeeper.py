"""Scorekeeper: the I/O shell around the pure game core.

Accepts umpire submissions, turns them into sequenced GameEvents, runs them
through the state machine and appends accepted events to the game's log.
Submissions for the same game are serialized by a per-game asyncio.Lock, so
sequence numbers are assigned without gaps or races.
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, NamedTuple
from uuid import uuid4

import structlog
from pydantic import ValidationError

from game.logic.enums import ErrorKind, EventType
from game.logic.events import GameEvent, parse_payload
from game.logic.exceptions import EventLogCorruptError
from game.logic.projector import project
from game.logic.settings import DEFAULT_RULES, GameRules
from game.logic.side_effects import RebuildRequiredEffect
from game.logic.state_machine import transition
from game.logic.transition_result import TransitionError
from game.session.event_store import FileEventStore
from shared.retry import RetryPolicy, build_retry_policy
from shared.storage import LocalEventLogStorage
from shared.validation import format_validation_errors

if TYPE_CHECKING:
    from collections.abc import Callable

    from game.logic.side_effects import SideEffect
    from game.logic.snapshot import GameSnapshot
    from game.session.event_store import EventStore
    from shared.settings import ScorekeeperSettings

logger = structlog.get_logger()


class SubmissionResult(NamedTuple):
    """Outcome of one submission: the recorded event, or the reason it was refused."""

    snapshot: GameSnapshot
    event: GameEvent | None = None
    side_effects: tuple[SideEffect, ...] = ()
    error: TransitionError | None = None

    @property
    def ok(self) -> bool:
        return self.error is None


def _new_event_id() -> str:
    return str(uuid4())


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class Scorekeeper:
    """Records umpire events for any number of games."""

    def __init__(  # noqa: PLR0913
        self,
        store: EventStore,
        *,
        load_policy: RetryPolicy | None = None,
        append_policy: RetryPolicy | None = None,
        rules: GameRules = DEFAULT_RULES,
        id_factory: Callable[[], str] = _new_event_id,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._store = store
        self._load_policy = load_policy or RetryPolicy("event_log.load")
        self._append_policy = append_policy or RetryPolicy("event_log.append")
        self._rules = rules
        self._id_factory = id_factory
        self._clock = clock
        self._game_locks: dict[str, asyncio.Lock] = {}  # game_id -> Lock
        self._snapshots: dict[str, tuple[int, GameSnapshot]] = {}  # game_id -> (last sequence, snapshot)

    @classmethod
    def from_settings(cls, settings: ScorekeeperSettings) -> Scorekeeper:
        """Build a file-backed scorekeeper with one retry policy per storage operation."""
        store = FileEventStore(LocalEventLogStorage(settings.event_log_dir))
        return cls(
            store,
            load_policy=build_retry_policy("event_log.load", settings),
            append_policy=build_retry_policy("event_log.append", settings),
        )

    def _get_game_lock(self, game_id: str) -> asyncio.Lock:
        return self._game_locks.setdefault(game_id, asyncio.Lock())

    async def _load(self, game_id: str) -> tuple[list[GameEvent], GameSnapshot]:
        events = await self._load_policy.run(lambda: self._store.load_events(game_id))
        last_sequence = events[-1].sequence_number if events else 0
        cached = self._snapshots.get(game_id)
        if cached is not None and cached[0] == last_sequence:
            return events, cached[1]
        snapshot = project(events, game_id, self._rules)
        self._snapshots[game_id] = (last_sequence, snapshot)
        return events, snapshot

    async def get_snapshot(self, game_id: str) -> GameSnapshot:
        """Return the current snapshot of a game, replaying its log if needed."""
        async with self._get_game_lock(game_id):
            _, snapshot = await self._load(game_id)
        return snapshot

    async def get_events(self, game_id: str) -> list[GameEvent]:
        """Return the raw event log of a game, including undo and edit records."""
        return await self._load_policy.run(lambda: self._store.load_events(game_id))

    async def submit(
        self,
        game_id: str,
        event_type: EventType | str,
        data: dict[str, Any],
        umpire_id: str,
    ) -> SubmissionResult:
        """
        Validate and record one umpire event.

        Rejections (bad payloads, rule violations, inconsistent rewrites) come
        back in the result and leave the log untouched.

        Raises:
            CircuitOpenError: If storage is currently refusing calls
            EventLogCorruptError: If the stored log can no longer be replayed
            EventLogConflictError: If the store already holds a different event at this sequence number

        """
        async with self._get_game_lock(game_id):
            events, snapshot = await self._load(game_id)

            try:
                payload = parse_payload(EventType(event_type), data)
            except ValueError as exc:
                message = (
                    "; ".join(format_validation_errors(exc))
                    if isinstance(exc, ValidationError)
                    else f"Unknown event type: {event_type}"
                )
                return self._refuse(game_id, snapshot, event_type, ErrorKind.VALIDATION, message)

            event = GameEvent(
                id=self._id_factory(),
                game_id=game_id,
                sequence_number=events[-1].sequence_number + 1 if events else 1,
                payload=payload,
                umpire_id=umpire_id,
                created_at=self._clock(),
            )
            result = transition(snapshot, event, events, self._rules)
            if result.error is not None:
                return self._refuse(game_id, snapshot, event_type, result.error.kind, result.error.message)

            new_snapshot = result.snapshot
            if any(isinstance(effect, RebuildRequiredEffect) for effect in result.side_effects):
                try:
                    new_snapshot = project([*events, event], game_id, self._rules)
                except EventLogCorruptError as exc:
                    return self._refuse(
                        game_id,
                        snapshot,
                        event_type,
                        ErrorKind.VALIDATION,
                        f"Rewrite would leave the log inconsistent: {exc.reason}",
                    )

            await self._append_policy.run(lambda: self._store.append_event(event))
            self._snapshots[game_id] = (event.sequence_number, new_snapshot)
            logger.info(
                "event accepted",
                game_id=game_id,
                event_id=event.id,
                event_type=event.type,
                sequence_number=event.sequence_number,
                umpire_id=umpire_id,
            )
            return SubmissionResult(snapshot=new_snapshot, event=event, side_effects=result.side_effects)

    def _refuse(  # noqa: PLR0913
        self,
        game_id: str,
        snapshot: GameSnapshot,
        event_type: EventType | str,
        kind: ErrorKind,
        message: str,
    ) -> SubmissionResult:
        logger.info("event rejected", game_id=game_id, event_type=event_type, error_kind=kind, reason=message)
        return SubmissionResult(snapshot=snapshot, error=TransitionError(kind=kind, message=message))

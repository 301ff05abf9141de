"""Tests for the in-memory and file-backed event stores."""

import pytest

from game.logic.enums import EventType, PitchResult
from game.logic.exceptions import EventLogConflictError
from game.replay.loader import EventLogLoadError
from game.session.event_store import FileEventStore, InMemoryEventStore
from game.tests.conftest import GAME_ID, create_event, game_start_data, started_log
from shared.storage import LocalEventLogStorage


class TestInMemoryEventStore:
    async def test_unknown_game_is_empty(self, event_store):
        assert await event_store.load_events("nope") == []

    async def test_append_and_load(self, event_store):
        log = started_log()
        log.pitch(PitchResult.BALL)
        for event in log.events:
            await event_store.append_event(event)

        assert await event_store.load_events(GAME_ID) == log.events

    async def test_load_returns_copy(self, event_store):
        log = started_log()
        await event_store.append_event(log.events[0])

        loaded = await event_store.load_events(GAME_ID)
        loaded.clear()

        assert len(await event_store.load_events(GAME_ID)) == 1

    async def test_reappending_last_event_is_ignored(self, event_store):
        log = started_log()
        await event_store.append_event(log.events[0])

        await event_store.append_event(log.events[0])

        assert await event_store.load_events(GAME_ID) == log.events

    async def test_rejects_other_event_at_same_sequence(self, event_store):
        log = started_log()
        await event_store.append_event(log.events[0])
        other = create_event(EventType.GAME_START, game_start_data(), event_id="evt-other")

        with pytest.raises(EventLogConflictError, match="log already ends at 1"):
            await event_store.append_event(other)


class TestFileEventStore:
    async def test_round_trips_through_disk(self, tmp_path):
        store = FileEventStore(LocalEventLogStorage(str(tmp_path)))
        log = started_log()
        log.pitch(PitchResult.STRIKE)
        for event in log.events:
            await store.append_event(event)

        assert await store.load_events(GAME_ID) == log.events
        assert len((tmp_path / f"{GAME_ID}.ndjson").read_text().splitlines()) == 2

    async def test_missing_log_is_empty(self, tmp_path):
        store = FileEventStore(LocalEventLogStorage(str(tmp_path)))

        assert await store.load_events(GAME_ID) == []

    async def test_corrupt_file_raises_load_error(self, tmp_path):
        (tmp_path / f"{GAME_ID}.ndjson").write_text("{broken\n")
        store = FileEventStore(LocalEventLogStorage(str(tmp_path)))

        with pytest.raises(EventLogLoadError):
            await store.load_events(GAME_ID)

    async def test_reappending_persisted_event_writes_nothing(self, tmp_path):
        store = FileEventStore(LocalEventLogStorage(str(tmp_path)))
        log = started_log()
        log.pitch(PitchResult.BALL)
        for event in log.events:
            await store.append_event(event)

        await store.append_event(log.events[-1])

        assert await store.load_events(GAME_ID) == log.events

    async def test_rejects_sequence_behind_the_log(self, tmp_path):
        store = FileEventStore(LocalEventLogStorage(str(tmp_path)))
        log = started_log()
        log.pitch(PitchResult.BALL)
        for event in log.events:
            await store.append_event(event)

        with pytest.raises(EventLogConflictError):
            await store.append_event(log.events[0])

        assert len(await store.load_events(GAME_ID)) == 2

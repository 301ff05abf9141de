"""Tests for the NDJSON event-log loader: parsing, ordering checks and error handling."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import pytest

if TYPE_CHECKING:
    from pathlib import Path

from game.logic.enums import AtBatResult, PitchResult
from game.logic.projector import project
from game.replay import loader as replay_loader_module
from game.replay.loader import EventLogLoadError, dump_event_log, load_event_log, load_event_log_from_file
from game.tests.conftest import GAME_ID, EventLogBuilder, started_log


def _sample_log() -> EventLogBuilder:
    log = started_log()
    log.pitch(PitchResult.BALL)
    log.at_bat(AtBatResult.SINGLE)
    return log


class TestLoadEventLog:
    def test_loads_dumped_log(self):
        log = _sample_log()

        events = load_event_log(dump_event_log(log.events))

        assert events == log.events
        assert project(events, GAME_ID) == log.snapshot()

    def test_empty_content_is_empty_log(self):
        assert load_event_log("") == []

    def test_blank_lines_ignored(self):
        log = _sample_log()
        content = "\n\n".join(event.model_dump_json() for event in log.events) + "\n\n"

        assert len(load_event_log(content)) == 3

    def test_dump_orders_by_sequence(self):
        log = _sample_log()

        lines = dump_event_log(reversed(log.events)).splitlines()

        assert [json.loads(line)["sequence_number"] for line in lines] == [1, 2, 3]

    def test_malformed_json_reports_line(self):
        log = _sample_log()
        content = log.events[0].model_dump_json() + "\n{not json\n"

        with pytest.raises(EventLogLoadError, match="Malformed JSON on line 2"):
            load_event_log(content)

    def test_non_object_line_rejected(self):
        with pytest.raises(EventLogLoadError, match="Line 1 is not a JSON object"):
            load_event_log("[1, 2, 3]\n")

    def test_invalid_event_reports_fields(self):
        with pytest.raises(EventLogLoadError, match="Invalid event on line 1"):
            load_event_log(json.dumps({"id": "evt-1", "game_id": GAME_ID}) + "\n")

    def test_out_of_order_sequence_rejected(self):
        log = _sample_log()
        content = "\n".join(event.model_dump_json() for event in reversed(log.events))

        with pytest.raises(EventLogLoadError, match="Sequence numbers must strictly increase"):
            load_event_log(content)

    def test_mixed_games_rejected(self):
        first = started_log()
        other = EventLogBuilder(game_id="game-2")
        other.start()
        content = dump_event_log(first.events) + dump_event_log(other.events)

        with pytest.raises(EventLogLoadError, match="Event log mixes games"):
            load_event_log(content)

    def test_event_count_limit(self, monkeypatch):
        monkeypatch.setattr(replay_loader_module, "_MAX_LOG_EVENTS", 2)

        with pytest.raises(EventLogLoadError, match="exceeds maximum event count"):
            load_event_log(dump_event_log(_sample_log().events))


class TestLoadEventLogFromFile:
    def test_loads_file(self, tmp_path: Path):
        log = _sample_log()
        path = tmp_path / "game-1.ndjson"
        path.write_text(dump_event_log(log.events), encoding="utf-8")

        assert load_event_log_from_file(path) == log.events

    def test_missing_file_raises_load_error(self, tmp_path: Path):
        with pytest.raises(EventLogLoadError, match="Cannot read event log file"):
            load_event_log_from_file(tmp_path / "missing.ndjson")

import json
import logging
from datetime import UTC, datetime
from pathlib import Path
from unittest.mock import patch

import pytest
import structlog

from game.logic.enums import EventType, PitchResult
from shared.logging import _serialize_enums, setup_logging


@pytest.fixture(autouse=True)
def _cleanup_root_logger():
    """Close and remove all handlers from the root logger after each test."""
    yield
    root = logging.getLogger()
    for handler in root.handlers[:]:
        handler.close()
        root.removeHandler(handler)


@pytest.fixture
def allow_file_logging():
    """Disable the _is_test guard so a test can create a real file handler."""
    with patch("shared.logging._is_test", return_value=False):
        yield


class TestSetupLogging:
    def test_stdout_only_by_default(self):
        assert setup_logging() is None

        root = logging.getLogger()
        assert root.level == logging.INFO
        (handler,) = root.handlers
        assert isinstance(handler, logging.StreamHandler)
        assert isinstance(handler.formatter, structlog.stdlib.ProcessorFormatter)

    def test_skips_file_under_pytest(self, tmp_path):
        assert setup_logging(log_dir=tmp_path / "scorekeeper") is None
        assert not (tmp_path / "scorekeeper").exists()

    @pytest.mark.usefixtures("allow_file_logging")
    def test_adds_timestamped_file_handler(self, tmp_path):
        fixed_time = datetime(2025, 6, 1, 18, 5, 9, tzinfo=UTC)
        with patch("shared.logging.datetime") as mock_dt:
            mock_dt.now.return_value = fixed_time
            log_path = setup_logging(log_dir=tmp_path / "scorekeeper")

        assert log_path == tmp_path / "scorekeeper" / "2025-06-01_18-05-09.log"
        file_handlers = [h for h in logging.getLogger().handlers if isinstance(h, logging.FileHandler)]
        assert [Path(h.baseFilename) for h in file_handlers] == [log_path]

    @pytest.mark.usefixtures("allow_file_logging")
    def test_json_lines_carry_event_fields(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "json")
        log_path = setup_logging(log_dir=str(tmp_path / "nested" / "logs"))

        structlog.contextvars.bind_contextvars(game_id="game-7")
        structlog.get_logger("test.json").info("event accepted", event_type=EventType.PITCH, sequence_number=4)

        assert log_path is not None
        parsed = json.loads(log_path.read_text().strip().splitlines()[0])
        assert parsed["event"] == "event accepted"
        assert parsed["game_id"] == "game-7"
        assert parsed["event_type"] == "pitch"
        assert parsed["sequence_number"] == 4

    @pytest.mark.usefixtures("allow_file_logging")
    def test_console_lines_are_readable(self, tmp_path, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "console")
        log_path = setup_logging(log_dir=tmp_path)

        structlog.get_logger("test.console").warning("replay rejected stored event")

        assert log_path is not None
        assert "replay rejected stored event" in log_path.read_text()

    def test_repeated_calls_replace_handlers(self):
        setup_logging()
        setup_logging()

        assert len(logging.getLogger().handlers) == 1

    def test_explicit_level_wins_over_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "ERROR")
        setup_logging(level=logging.DEBUG)

        assert logging.getLogger().level == logging.DEBUG

    def test_level_from_env(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "warning")
        setup_logging()

        assert logging.getLogger().level == logging.WARNING

    def test_invalid_level_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_LEVEL", "loud")
        with pytest.raises(ValueError, match="Invalid LOG_LEVEL"):
            setup_logging()

    def test_invalid_format_raises(self, monkeypatch):
        monkeypatch.setenv("LOG_FORMAT", "xml")
        with pytest.raises(ValueError, match="Invalid LOG_FORMAT"):
            setup_logging()


class TestSerializeEnums:
    def test_top_level_enum(self):
        result = _serialize_enums(None, "", {"event_type": EventType.UNDO, "game_id": "g"})

        assert result == {"event_type": "undo", "game_id": "g"}

    def test_enum_inside_dict(self):
        result = _serialize_enums(None, "", {"payload": {"result": PitchResult.BALL, "count": 3}})

        assert result["payload"] == {"result": "ball", "count": 3}

    def test_enums_inside_sequences(self):
        result = _serialize_enums(None, "", {"types": (EventType.PITCH, EventType.FLIP_CUP), "ids": ["a"]})

        assert result["types"] == ["pitch", "flip_cup"]
        assert result["ids"] == ["a"]

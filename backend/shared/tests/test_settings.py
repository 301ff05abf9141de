import pytest
from pydantic import ValidationError

from shared.settings import ScorekeeperSettings


class TestScorekeeperSettings:
    def test_defaults(self):
        settings = ScorekeeperSettings()

        assert settings.event_log_dir == "backend/data/events"
        assert settings.retry_max_attempts == 3
        assert settings.breaker_failure_threshold == 5
        assert settings.retry_jitter is True

    def test_reads_prefixed_env(self, monkeypatch):
        monkeypatch.setenv("SCOREKEEPER_EVENT_LOG_DIR", "/var/lib/flipcup/events")
        monkeypatch.setenv("SCOREKEEPER_RETRY_MAX_ATTEMPTS", "7")
        monkeypatch.setenv("SCOREKEEPER_RETRY_JITTER", "false")

        settings = ScorekeeperSettings()

        assert settings.event_log_dir == "/var/lib/flipcup/events"
        assert settings.retry_max_attempts == 7
        assert settings.retry_jitter is False

    def test_ignores_unprefixed_env(self, monkeypatch):
        monkeypatch.setenv("EVENT_LOG_DIR", "/tmp/elsewhere")

        assert ScorekeeperSettings().event_log_dir == "backend/data/events"

    @pytest.mark.parametrize(
        ("field", "value"),
        [
            ("retry_max_attempts", 0),
            ("retry_base_delay", -1.0),
            ("retry_backoff_multiplier", 0.5),
            ("breaker_failure_threshold", 0),
            ("breaker_half_open_max_attempts", 0),
            ("event_log_dir", ""),
        ],
    )
    def test_rejects_invalid_values(self, field, value):
        with pytest.raises(ValidationError):
            ScorekeeperSettings(**{field: value})

"""Scorekeeper configuration via environment variables."""

from pydantic import Field
from pydantic_settings import BaseSettings


class ScorekeeperSettings(BaseSettings):
    model_config = {"env_prefix": "SCOREKEEPER_"}

    log_dir: str = Field(default="backend/logs/scorekeeper", min_length=1)
    event_log_dir: str = Field(default="backend/data/events", min_length=1)

    retry_max_attempts: int = Field(default=3, ge=1)
    retry_base_delay: float = Field(default=1.0, ge=0)  # seconds
    retry_max_delay: float = Field(default=30.0, ge=0)  # seconds
    retry_backoff_multiplier: float = Field(default=2.0, ge=1)
    retry_jitter: bool = True

    breaker_failure_threshold: int = Field(default=5, ge=1)
    breaker_recovery_timeout: float = Field(default=60.0, ge=0)  # seconds
    breaker_half_open_max_attempts: int = Field(default=3, ge=1)

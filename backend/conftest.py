"""Root conftest for the scorekeeper suites.

Loads LOG_FORMAT / LOG_LEVEL from .env.tests, routes structlog through stdlib
logging with the same enum serialization the app uses, and keeps SCOREKEEPER_*
settings from the surrounding shell out of every test.
"""

import os
from pathlib import Path

import pytest
import structlog
from dotenv import load_dotenv

from shared.logging import _serialize_enums

load_dotenv(Path(__file__).resolve().parent.parent / ".env.tests")

_SETTINGS_ENV_PREFIX = "SCOREKEEPER_"

# caplog sees structlog events as stdlib records.
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        _serialize_enums,
        structlog.processors.StackInfoRenderer(),
        structlog.processors.UnicodeDecoder(),
        structlog.stdlib.ProcessorFormatter.wrap_for_formatter,
    ],
    logger_factory=structlog.stdlib.LoggerFactory(),
    wrapper_class=structlog.stdlib.BoundLogger,
    cache_logger_on_first_use=False,
)


@pytest.fixture(autouse=True)
def _isolate_settings_env(monkeypatch):
    """Tests see ScorekeeperSettings defaults unless they set SCOREKEEPER_* themselves."""
    for key in list(os.environ):
        if key.startswith(_SETTINGS_ENV_PREFIX):
            monkeypatch.delenv(key)


@pytest.fixture(autouse=True)
def _clear_log_context():
    structlog.contextvars.clear_contextvars()
    yield
    structlog.contextvars.clear_contextvars()

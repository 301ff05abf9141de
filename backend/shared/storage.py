"""Storage abstraction for event-log persistence.

Each game's event log is an append-only NDJSON file: one serialized event per
line. Files are written with owner-only permissions (0o600) inside an
owner-only directory (0o700) as a filesystem hygiene measure.
"""

import os
from pathlib import Path
from typing import Protocol

import structlog

logger = structlog.get_logger()

# Owner-only directory permissions for event-log storage.
_EVENT_LOG_DIR_MODE = 0o700

# Owner-only file permissions for event-log files.
_EVENT_LOG_FILE_MODE = 0o600


class EventLogStorage(Protocol):
    """Protocol for persisting raw event-log lines per game."""

    def append_line(self, game_id: str, line: str) -> None: ...

    def read_lines(self, game_id: str) -> list[str]: ...


class LocalEventLogStorage:
    """Appends event-log lines to per-game files on the local filesystem.

    Files are created with owner-only read/write (0o600) inside an
    owner-only directory (0o700) as a filesystem hygiene measure.
    """

    def __init__(self, event_log_dir: str) -> None:
        self._event_log_dir = Path(event_log_dir).resolve()

    def _path_for(self, game_id: str) -> Path:
        target = (self._event_log_dir / f"{game_id}.ndjson").resolve()
        if not target.is_relative_to(self._event_log_dir):
            raise ValueError(f"Path traversal rejected: '{game_id}' resolves outside event log directory")
        return target

    def append_line(self, game_id: str, line: str) -> None:
        """Append one line to the game's log and fsync it.

        Creates the directory lazily on first write with owner-only
        permissions. A trailing newline is added when the line lacks one.
        Rejects path traversal attempts that would place the file outside
        the event-log root.
        """
        target = self._path_for(game_id)
        if "\n" in line.rstrip("\n"):
            raise ValueError("Event-log lines must not contain embedded newlines")

        self._event_log_dir.mkdir(mode=_EVENT_LOG_DIR_MODE, parents=True, exist_ok=True)
        self._event_log_dir.chmod(_EVENT_LOG_DIR_MODE)

        data = (line if line.endswith("\n") else line + "\n").encode("utf-8")
        fd = os.open(target, os.O_WRONLY | os.O_CREAT | os.O_APPEND, _EVENT_LOG_FILE_MODE)
        with os.fdopen(fd, "wb") as f:
            f.write(data)
            f.flush()
            os.fsync(f.fileno())
        logger.debug("appended event log line", game_id=game_id, path=str(target))

    def read_lines(self, game_id: str) -> list[str]:
        """Return the game's log lines in write order; a missing log is empty."""
        target = self._path_for(game_id)
        try:
            content = target.read_text(encoding="utf-8")
        except FileNotFoundError:
            return []
        return [line for line in content.splitlines() if line.strip()]

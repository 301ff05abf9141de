"""Rebuild a game snapshot from its event-log file.

Replays every effective event through the state machine and prints the
resulting snapshot as JSON. With --trace, prints every replay step instead
(event, snapshot before and after, side effects), one JSON object per line.

Usage:
    uv run python bin/rebuild-snapshot.py backend/data/events/<game_id>.ndjson
    uv run python bin/rebuild-snapshot.py --trace path/to/log.ndjson
"""

from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path

# Add backend to path for imports
sys.path.insert(0, str(Path(__file__).resolve().parent.parent / "backend"))

from game.logic.exceptions import EventLogError
from game.logic.projector import project, trace
from game.replay.loader import load_event_log_from_file
from shared.logging import setup_logging


def rebuild(log_path: Path, *, show_trace: bool) -> None:
    events = load_event_log_from_file(log_path)
    game_id = events[0].game_id if events else None
    if show_trace:
        for step in trace(events, game_id):
            print(step.model_dump_json())
        return
    print(project(events, game_id).model_dump_json(indent=2))


def main() -> None:
    parser = argparse.ArgumentParser(description="Rebuild a game snapshot by replaying its event log")
    parser.add_argument("log", type=Path, help="path to an NDJSON event-log file")
    parser.add_argument("--trace", action="store_true", help="print every replay step instead of the final snapshot")
    parser.add_argument("-v", "--verbose", action="store_true", help="log replay diagnostics to stdout")
    args = parser.parse_args()

    setup_logging(level=logging.DEBUG if args.verbose else logging.WARNING)

    if not args.log.exists():
        print(f"Event log not found: {args.log}", file=sys.stderr)
        sys.exit(1)

    try:
        rebuild(args.log, show_trace=args.trace)
    except EventLogError as exc:
        print(f"Cannot rebuild snapshot: {exc}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()

"""
Round-robin schedule generation and time-slot assignment.

Pairings use the circle method: the first team stays fixed and the others
rotate one position per round, so every unordered pair meets exactly once
over n-1 rounds. Odd rosters are padded with a bye team whose matches are
dropped, leaving every team one idle round.
"""

from __future__ import annotations

from datetime import UTC, date, datetime, timedelta, tzinfo
from typing import TYPE_CHECKING

import structlog

from shared.validation import ValidationResult
from tournament.models import (
    RoundRobinSchedule,
    ScheduledMatch,
    ScheduleMatch,
    SchedulingError,
    SlotAssignmentResult,
    TimedSchedule,
    TimeSlot,
)
from tournament.settings import (
    DEFAULT_BREAK_BETWEEN_GAMES,
    DEFAULT_GAME_DURATION,
    DEFAULT_GAMES_PER_DAY,
    DEFAULT_MIN_REST,
    FIRST_SLOT_TIME,
)

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tournament.models import Team

logger = structlog.get_logger()

_MIN_TEAMS = 2


def calculate_rounds_needed(num_teams: int) -> int:
    return num_teams - 1


def calculate_games_needed(num_teams: int) -> int:
    return num_teams * (num_teams - 1) // 2


def generate_round_robin_schedule(teams: Sequence[Team]) -> RoundRobinSchedule:
    """
    Pair every team with every other team exactly once.

    Rounds are 1-based and game numbers run 1..k over the kept matches in
    round order.

    Raises:
        ValueError: If fewer than two teams are given

    """
    if len(teams) < _MIN_TEAMS:
        raise ValueError("At least 2 teams are required for a round robin tournament")

    # Odd rosters get a None slot; pairings against it are byes and are dropped.
    padded: list[Team | None] = list(teams)
    if len(padded) % 2 == 1:
        padded.append(None)

    size = len(padded)
    total_rounds = size - 1
    matches_per_round = size // 2
    rotation = list(range(size))
    matches: list[ScheduleMatch] = []

    for round_number in range(1, total_rounds + 1):
        for slot in range(matches_per_round):
            home_index, away_index = rotation[slot], rotation[size - 1 - slot]
            home, away = padded[home_index], padded[away_index]
            if home is None or away is None:
                continue
            matches.append(
                ScheduleMatch(
                    home_team=home,
                    away_team=away,
                    round_number=round_number,
                    game_number=len(matches) + 1,
                ),
            )
        # Keep index 0 fixed, rotate the rest clockwise.
        rotation = [rotation[0], rotation[-1], *rotation[1:-1]]

    logger.debug("generated round robin schedule", team_count=len(teams), match_count=len(matches))
    return RoundRobinSchedule(total_rounds=total_rounds, matches_per_round=matches_per_round, matches=tuple(matches))


def validate_round_robin_schedule(schedule: RoundRobinSchedule, teams: Sequence[Team]) -> ValidationResult:
    """Check that every pair meets once and every team plays n-1 games."""
    errors: list[str] = []
    team_ids = [team.id for team in teams]
    known = set(team_ids)
    opponents: dict[str, set[str]] = {team_id: set() for team_id in team_ids}

    for index, match in enumerate(schedule.matches, start=1):
        home_id, away_id = match.home_team.id, match.away_team.id
        if home_id not in known:
            errors.append(f"Match {index}: Home team {home_id} not found in original teams")
        if away_id not in known:
            errors.append(f"Match {index}: Away team {away_id} not found in original teams")
        if home_id == away_id:
            errors.append(f"Match {index}: Team {home_id} cannot play against itself")

        if away_id in opponents.get(home_id, ()) or home_id in opponents.get(away_id, ()):
            errors.append(f"Duplicate matchup: {home_id} vs {away_id}")
        if home_id in opponents:
            opponents[home_id].add(away_id)
        if away_id in opponents:
            opponents[away_id].add(home_id)

    expected = len(teams) - 1
    for team_id in team_ids:
        played = len(opponents[team_id])
        if played != expected:
            errors.append(f"Team {team_id} plays {played} games, expected {expected}")

    return ValidationResult.from_messages(errors)


def distribute_games_across_time_slots(
    schedule: RoundRobinSchedule,
    time_slots: Sequence[str],
) -> list[ScheduleMatch]:
    """Label matches with slot names, cycling through time_slots in order.

    Raises:
        ValueError: If time_slots is empty

    """
    if not time_slots:
        raise ValueError("At least one time slot is required")
    return [
        match.model_copy(update={"time_slot": time_slots[index % len(time_slots)]})
        for index, match in enumerate(schedule.matches)
    ]


def _last_played_key(team_id: str, last_game_end: dict[str, datetime]) -> tuple[int, float]:
    # Teams that have not played yet sort first.
    end = last_game_end.get(team_id)
    return (0, 0.0) if end is None else (1, end.timestamp())


def _find_slot(  # noqa: PLR0913
    match: ScheduleMatch,
    slots: Sequence[TimeSlot],
    last_game_end: dict[str, datetime],
    slot_usage: dict[str, int],
    game_duration: timedelta,
    min_rest: timedelta,
) -> TimeSlot | None:
    """Return the earliest slot the match fits in with both teams rested."""
    for slot in slots:
        if slot.start_time + game_duration > slot.end_time:
            continue
        if slot_usage.get(slot.id, 0) >= slot.max_games:
            continue
        rested = all(
            slot.start_time - last_game_end[team_id] >= min_rest
            for team_id in (match.home_team.id, match.away_team.id)
            if team_id in last_game_end
        )
        if rested:
            return slot
    return None


def distribute_games_with_constraints(
    schedule: RoundRobinSchedule,
    time_slots: Sequence[TimeSlot],
    game_duration: int = DEFAULT_GAME_DURATION,
    min_rest: int = DEFAULT_MIN_REST,
) -> SlotAssignmentResult:
    """
    Greedily place every match in the earliest feasible slot.

    Rounds are scheduled in order. Within a round, matches whose home team
    played least recently go first. A slot is feasible when the game fits
    before the slot ends, the slot has capacity left, and both teams have
    rested at least min_rest minutes since their previous game ended.
    Durations are in minutes.

    Raises:
        ValueError: If time_slots is empty

    """
    if not time_slots:
        raise ValueError("At least one time slot is required")

    slots = sorted(time_slots, key=lambda s: s.start_time)
    duration = timedelta(minutes=game_duration)
    rest = timedelta(minutes=min_rest)
    last_game_end: dict[str, datetime] = {}
    slot_usage: dict[str, int] = {}
    scheduled: list[ScheduledMatch] = []

    round_numbers = sorted({match.round_number for match in schedule.matches})
    for round_number in round_numbers:
        round_matches = [m for m in schedule.matches if m.round_number == round_number]
        round_matches.sort(key=lambda m: _last_played_key(m.home_team.id, last_game_end))
        for match in round_matches:
            slot = _find_slot(match, slots, last_game_end, slot_usage, duration, rest)
            if slot is None:
                message = f"No suitable time slot found for match {match.game_number}"
                logger.warning("scheduling failed", game_number=match.game_number, round_number=round_number)
                return SlotAssignmentResult(
                    schedule=None,
                    error=SchedulingError(message=message, game_number=match.game_number),
                )
            end = slot.start_time + duration
            scheduled.append(
                ScheduledMatch(
                    **match.model_dump(exclude={"time_slot"}),
                    time_slot=slot.label or slot.id,
                    slot=slot,
                    scheduled_start=slot.start_time,
                    scheduled_end=end,
                ),
            )
            slot_usage[slot.id] = slot_usage.get(slot.id, 0) + 1
            last_game_end[match.home_team.id] = end
            last_game_end[match.away_team.id] = end

    return SlotAssignmentResult(
        schedule=TimedSchedule(
            total_rounds=schedule.total_rounds,
            matches_per_round=schedule.matches_per_round,
            matches=tuple(scheduled),
            time_slots=tuple(slots),
        ),
    )


def generate_default_time_slots(  # noqa: PLR0913
    start_date: date,
    end_date: date,
    games_per_day: int = DEFAULT_GAMES_PER_DAY,
    game_duration: int = DEFAULT_GAME_DURATION,
    break_between_games: int = DEFAULT_BREAK_BETWEEN_GAMES,
    tz: tzinfo = UTC,
) -> list[TimeSlot]:
    """One single-game slot every game_duration + break minutes from 10:00, each day inclusive."""
    slots: list[TimeSlot] = []
    step = timedelta(minutes=game_duration + break_between_games)
    duration = timedelta(minutes=game_duration)
    day = start_date
    while day <= end_date:
        day_start = datetime.combine(day, FIRST_SLOT_TIME, tzinfo=tz)
        for game in range(games_per_day):
            start = day_start + game * step
            slots.append(
                TimeSlot(
                    id=f"day-{day.isoformat()}-game-{game + 1}",
                    start_time=start,
                    end_time=start + duration,
                    label=f"{day.isoformat()} - Game {game + 1}",
                    max_games=1,
                ),
            )
        day += timedelta(days=1)
    return slots

"""
Structural validation of bracket seedings, bye assignments and brackets.

Every check runs regardless of earlier failures, so one call reports every
problem. Errors make a result invalid; warnings flag suspicious but legal
states such as a match that has no teams yet.
"""

from __future__ import annotations

from collections import defaultdict
from typing import TYPE_CHECKING

from shared.validation import ValidationResult
from tournament.bracket import calculate_bracket_rounds, calculate_byes_needed, calculate_games_played
from tournament.models import BracketType
from tournament.settings import BYE

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tournament.models import BracketMatch, ByeAssignment, TeamStanding, TournamentBracket

_BRACKET_TYPES = frozenset(BracketType)


def _is_power_of_two(n: int) -> bool:
    return n > 0 and n & (n - 1) == 0


def validate_bracket_seeding(seeding: Sequence[str], standings: Sequence[TeamStanding]) -> ValidationResult:
    errors = []
    team_ids = [standing.team_id for standing in standings]
    seeded = [team_id for team_id in seeding if team_id != BYE]

    errors.extend(f"Team {team_id} not found in bracket seeding" for team_id in team_ids if team_id not in seeded)
    errors.extend(f"Unknown team {team_id} found in bracket seeding" for team_id in seeded if team_id not in team_ids)
    if not _is_power_of_two(len(seeding)):
        errors.append(f"Bracket seeding length {len(seeding)} is not a power of 2")
    if len(set(seeded)) != len(seeded):
        errors.append("Duplicate teams found in bracket seeding")
    return ValidationResult.from_messages(errors)


def validate_bye_assignments(
    assignments: Sequence[ByeAssignment],
    standings: Sequence[TeamStanding],
) -> ValidationResult:
    """Check bye count, that byes went to the top seeds, and the downstream game references."""
    errors = []
    expected = calculate_byes_needed(len(standings))
    if len(assignments) != expected:
        errors.append(f"Expected {expected} byes, but {len(assignments)} were assigned")

    team_ids = {standing.team_id for standing in standings}
    bye_team_ids = [assignment.team_id for assignment in assignments]
    errors.extend(f"Unknown team {team_id} assigned a bye" for team_id in bye_team_ids if team_id not in team_ids)
    if len(set(bye_team_ids)) != len(bye_team_ids):
        errors.append("Duplicate teams found in bye assignments")

    top_seeds = {standing.team_id for standing in standings[:expected]}
    errors.extend(
        f"Team {team_id} is not a top seed but was assigned a bye"
        for team_id in bye_team_ids
        if team_id not in top_seeds
    )
    errors.extend(
        f"Invalid next game number for team {assignment.team_id}"
        for assignment in assignments
        if assignment.next_game_number <= 0
    )
    return ValidationResult.from_messages(errors)


# ---------------------------------------------------------------------------
# Bracket structure
# ---------------------------------------------------------------------------


def _by_round(matches: Sequence[BracketMatch]) -> dict[int, list[BracketMatch]]:
    rounds: dict[int, list[BracketMatch]] = defaultdict(list)
    for match in matches:
        rounds[match.round_number].append(match)
    return rounds


def _check_matches(matches: Sequence[BracketMatch]) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    game_numbers = [match.game_number for match in matches]
    present = set(game_numbers)
    if len(present) != len(game_numbers):
        errors.append("Duplicate game numbers found in bracket")
    if game_numbers:
        errors.extend(
            f"Missing game number: {number}" for number in range(1, max(game_numbers) + 1) if number not in present
        )

    for match in matches:
        if match.game_number <= 0:
            errors.append(f"Invalid game number: {match.game_number}")
        if match.round_number <= 0:
            errors.append(f"Invalid round number: {match.round_number}")

        if match.is_bye:
            if match.away_team_id:
                errors.append(f"Bye match {match.game_number} should not have an away team")
            if not match.winner_team_id:
                errors.append(f"Bye match {match.game_number} should have a winner")
        elif not match.home_team_id and not match.away_team_id:
            warnings.append(f"Match {match.game_number} has no teams assigned")

        if match.next_game_number is not None:
            if match.next_game_number <= 0:
                errors.append(f"Invalid next game number: {match.next_game_number}")
            if match.next_game_number not in present:
                errors.append(f"Next game number {match.next_game_number} does not exist")

    return ValidationResult.from_messages(errors, warnings)


def _check_progression(matches: Sequence[BracketMatch]) -> ValidationResult:
    errors: list[str] = []
    warnings: list[str] = []

    rounds = _by_round(matches)
    round_numbers = sorted(rounds)
    for previous, current in zip(round_numbers, round_numbers[1:], strict=False):
        if current != previous + 1:
            errors.append(f"Missing round {previous + 1} between rounds {previous} and {current}")

    for round_number in round_numbers:
        expected = 2 ** (len(round_numbers) - round_number)
        actual = len(rounds[round_number])
        if actual != expected:
            errors.append(f"Round {round_number} has {actual} games, expected {expected}")

    by_number = {match.game_number: match for match in matches}
    for match in matches:
        if not match.winner_team_id or not match.next_game_number:
            continue
        downstream = by_number.get(match.next_game_number)
        if downstream is not None and match.winner_team_id not in (downstream.home_team_id, downstream.away_team_id):
            warnings.append(
                f"Winner of game {match.game_number} not properly assigned to game {match.next_game_number}",
            )

    return ValidationResult.from_messages(errors, warnings)


def _check_teams(matches: Sequence[BracketMatch], standings: Sequence[TeamStanding]) -> ValidationResult:
    errors: list[str] = []
    known = {standing.team_id for standing in standings}

    referenced: dict[str, None] = {}  # insertion-ordered set
    for match in matches:
        for team_id in (match.home_team_id, match.away_team_id, match.winner_team_id):
            if team_id:
                referenced[team_id] = None
    errors.extend(f"Unknown team ID found in bracket: {team_id}" for team_id in referenced if team_id not in known)

    errors.extend(
        f"Team {match.home_team_id} cannot play against itself in game {match.game_number}"
        for match in matches
        if match.home_team_id and match.home_team_id == match.away_team_id
    )

    for round_number, round_matches in _by_round(matches).items():
        seen: set[str] = set()
        for match in round_matches:
            for team_id in (match.home_team_id, match.away_team_id):
                if not team_id:
                    continue
                if team_id in seen:
                    errors.append(f"Team {team_id} appears multiple times in round {round_number}")
                seen.add(team_id)

    return ValidationResult.from_messages(errors)


def _check_completeness(bracket: TournamentBracket, standings: Sequence[TeamStanding]) -> ValidationResult:
    errors: list[str] = []
    num_teams = len(standings)

    expected_games = calculate_games_played(num_teams, bracket.bracket_type)
    if bracket.total_games != expected_games:
        errors.append(f"Expected {expected_games} games, but bracket has {bracket.total_games}")

    expected_rounds = calculate_bracket_rounds(num_teams)
    if bracket.bracket_type == BracketType.SINGLE_ELIMINATION:
        if bracket.total_rounds != expected_rounds:
            errors.append(f"Expected {expected_rounds} rounds, but bracket has {bracket.total_rounds}")
    elif bracket.total_rounds != expected_rounds + 1:
        errors.append(
            f"Expected {expected_rounds + 1} rounds for double elimination, but bracket has {bracket.total_rounds}",
        )

    first_round: set[str] = set()
    for match in bracket.matches:
        if match.round_number == 1:
            first_round.update(team_id for team_id in (match.home_team_id, match.away_team_id) if team_id)
    errors.extend(
        f"Team {standing.team_id} not found in first round"
        for standing in standings
        if standing.team_id not in first_round
    )
    return ValidationResult.from_messages(errors)


def validate_bracket_structure(bracket: TournamentBracket, standings: Sequence[TeamStanding]) -> ValidationResult:
    """
    Validate a generated or persisted bracket against the standings it was built from.

    Checks identifiers and type, match numbering, bye shape, next-game
    references, round contiguity and sizes, winner advancement, unknown
    teams, self-play, duplicate appearances per round, expected totals and
    that every team starts in round 1.
    """
    errors: list[str] = []
    if not bracket.tournament_id:
        errors.append("Tournament ID is required")
    known_type = bracket.bracket_type in _BRACKET_TYPES
    if not known_type:
        errors.append(f"Invalid bracket type: {bracket.bracket_type}")
    if not bracket.matches:
        errors.append("Bracket must contain at least one match")
    if bracket.total_rounds <= 0:
        errors.append("Total rounds must be greater than 0")
    if bracket.total_games <= 0:
        errors.append("Total games must be greater than 0")

    result = ValidationResult.from_messages(errors)
    result = result.merge(_check_matches(bracket.matches))
    result = result.merge(_check_progression(bracket.matches))
    result = result.merge(_check_teams(bracket.matches, standings))
    if known_type:
        result = result.merge(_check_completeness(bracket, standings))
    return result

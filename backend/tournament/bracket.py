"""
Elimination bracket generation from round-robin standings.

The bracket is sized to the next power of two. Seeds are placed in the
standard order (1 v N, then recursively so the top seeds meet as late as
possible) and the empty positions become byes, which therefore fall on the
top seeds. Game numbers run round by round: round 1 holds games
1..2^(R-1), round 2 the next half, and so on up to the final.
"""

from __future__ import annotations

import math
from typing import TYPE_CHECKING

import structlog

from tournament.models import BracketMatch, BracketType, ByeAssignment, TournamentBracket
from tournament.settings import BYE

if TYPE_CHECKING:
    from collections.abc import Sequence

    from tournament.models import TeamStanding

logger = structlog.get_logger()

_MIN_TEAMS = 2


# ---------------------------------------------------------------------------
# Bracket math
# ---------------------------------------------------------------------------


def next_power_of_two(n: int) -> int:
    return 1 if n <= 1 else 2 ** math.ceil(math.log2(n))


def calculate_byes_needed(num_teams: int) -> int:
    return next_power_of_two(num_teams) - num_teams


def calculate_bracket_rounds(num_teams: int) -> int:
    return int(math.log2(next_power_of_two(num_teams)))


def calculate_bracket_games(num_teams: int, bracket_type: BracketType | str) -> int:
    """
    Number of match slots in the bracket tree, bye matches included.

    Single elimination is nextPow2 - 1. Double elimination is
    2 * nextPow2 - 3 for two or more teams.

    Raises:
        ValueError: If bracket_type is not supported

    """
    size = next_power_of_two(num_teams)
    if bracket_type == BracketType.SINGLE_ELIMINATION:
        return size - 1
    if bracket_type == BracketType.DOUBLE_ELIMINATION:
        return 2 * size - 3 if num_teams >= _MIN_TEAMS else 0
    raise ValueError(f"Unsupported bracket type: {bracket_type}")


def calculate_games_played(num_teams: int, bracket_type: BracketType | str) -> int:
    """Games actually contested: every team but the champion is eliminated once (twice for double)."""
    if bracket_type == BracketType.SINGLE_ELIMINATION:
        return max(num_teams - 1, 0)
    if bracket_type == BracketType.DOUBLE_ELIMINATION:
        return max(2 * num_teams - 3, 0)
    raise ValueError(f"Unsupported bracket type: {bracket_type}")


def calculate_first_game_round(bye_round: int) -> int:
    """Round in which a team with a bye in bye_round plays its first game."""
    return bye_round + 1


def calculate_first_game_number(bye_game_number: int, total_rounds: int) -> int:
    """Round-2 game that the winner of first-round game bye_game_number advances into."""
    return 2 ** (total_rounds - 1) + math.ceil(bye_game_number / 2)


def _round_offsets(total_rounds: int) -> dict[int, int]:
    """Map each round to the number of games in all earlier rounds."""
    offsets = {}
    played = 0
    for round_number in range(1, total_rounds + 1):
        offsets[round_number] = played
        played += 2 ** (total_rounds - round_number)
    return offsets


# ---------------------------------------------------------------------------
# Seeding and byes
# ---------------------------------------------------------------------------


def standard_seed_order(bracket_size: int) -> list[int]:
    """
    Return 1-based seeds in bracket position order.

    For 8 slots: [1, 8, 4, 5, 2, 7, 3, 6], giving 1v8, 4v5, 2v7, 3v6.
    """
    if bracket_size <= 1:
        return [1]
    if bracket_size == _MIN_TEAMS:
        return [1, 2]
    upper = standard_seed_order(bracket_size // 2)
    order = []
    for seed in upper:
        order.extend([seed, bracket_size + 1 - seed])
    return order


def _check_bracket_type(bracket_type: BracketType | str) -> None:
    if bracket_type not in (BracketType.SINGLE_ELIMINATION, BracketType.DOUBLE_ELIMINATION):
        raise ValueError(f"Unsupported bracket type: {bracket_type}")


def generate_bracket_seeding(standings: Sequence[TeamStanding], bracket_type: BracketType | str) -> list[str]:
    """
    Lay out team ids in bracket position order, padding with BYE.

    standings must already be ranked (best first). Double elimination uses
    the same seeding as single elimination.

    Raises:
        ValueError: If standings is empty or bracket_type is not supported

    """
    if not standings:
        raise ValueError("No team standings provided for bracket seeding")
    _check_bracket_type(bracket_type)
    size = next_power_of_two(len(standings))
    return [standings[seed - 1].team_id if seed <= len(standings) else BYE for seed in standard_seed_order(size)]


def assign_byes_to_top_seeded_teams(
    standings: Sequence[TeamStanding],
    bracket_type: BracketType | str,
) -> list[ByeAssignment]:
    """Return the teams paired with a BYE in round 1, best seed first."""
    if calculate_byes_needed(len(standings)) == 0:
        return []

    seeding = generate_bracket_seeding(standings, bracket_type)
    total_rounds = calculate_bracket_rounds(len(standings))
    seed_of = {standing.team_id: index for index, standing in enumerate(standings, start=1)}
    by_id = {standing.team_id: standing for standing in standings}

    assignments = []
    for position in range(0, len(seeding), 2):
        pair = seeding[position : position + 2]
        if pair.count(BYE) != 1:
            continue
        team_id = pair[0] if pair[1] == BYE else pair[1]
        game_number = position // 2 + 1
        assignments.append(
            ByeAssignment(
                team_id=team_id,
                team_name=by_id[team_id].team_name,
                seed=seed_of[team_id],
                bye_round=1,
                bye_game_number=game_number,
                next_game_number=calculate_first_game_number(game_number, total_rounds),
            ),
        )
    return sorted(assignments, key=lambda a: a.seed)


# ---------------------------------------------------------------------------
# Bracket construction
# ---------------------------------------------------------------------------


def generate_tournament_bracket(
    tournament_id: str,
    standings: Sequence[TeamStanding],
    bracket_type: BracketType | str,
) -> TournamentBracket:
    """
    Build a full bracket from ranked standings.

    Raises:
        ValueError: If fewer than two teams are given or bracket_type is unknown
        NotImplementedError: For double elimination, whose losers-bracket
            routing is not built

    """
    if len(standings) < _MIN_TEAMS:
        raise ValueError("At least 2 teams are required for bracket generation")
    _check_bracket_type(bracket_type)
    if bracket_type == BracketType.DOUBLE_ELIMINATION:
        raise NotImplementedError("Double elimination bracket construction is not supported")
    return _generate_single_elimination(tournament_id, standings)


def _generate_single_elimination(tournament_id: str, standings: Sequence[TeamStanding]) -> TournamentBracket:
    seeding = generate_bracket_seeding(standings, BracketType.SINGLE_ELIMINATION)
    seed_of = {standing.team_id: index for index, standing in enumerate(standings, start=1)}
    total_rounds = calculate_bracket_rounds(len(standings))
    offsets = _round_offsets(total_rounds)

    def next_game(round_number: int, index: int) -> int | None:
        if round_number == total_rounds:
            return None
        return offsets[round_number + 1] + index // 2 + 1

    matches: dict[int, BracketMatch] = {}
    for index in range(len(seeding) // 2):
        home, away = seeding[2 * index], seeding[2 * index + 1]
        if home == BYE:
            home, away = away, home
        is_bye = away == BYE
        game_number = index + 1
        matches[game_number] = BracketMatch(
            game_number=game_number,
            round_number=1,
            home_team_id=home,
            away_team_id=None if is_bye else away,
            home_seed=seed_of[home],
            away_seed=None if is_bye else seed_of[away],
            winner_team_id=home if is_bye else None,
            is_bye=is_bye,
            next_game_number=next_game(1, index),
        )

    for round_number in range(2, total_rounds + 1):
        for index in range(2 ** (total_rounds - round_number)):
            game_number = offsets[round_number] + index + 1
            matches[game_number] = BracketMatch(
                game_number=game_number,
                round_number=round_number,
                next_game_number=next_game(round_number, index),
            )

    for match in [m for m in matches.values() if m.is_bye]:
        _place_winner(matches, match, match.home_team_id)

    bracket = TournamentBracket(
        tournament_id=tournament_id,
        bracket_type=BracketType.SINGLE_ELIMINATION,
        matches=tuple(matches[number] for number in sorted(matches)),
        total_rounds=total_rounds,
        total_games=calculate_games_played(len(standings), BracketType.SINGLE_ELIMINATION),
        seeding=tuple(seeding),
    )
    logger.info(
        "generated bracket",
        tournament_id=tournament_id,
        team_count=len(standings),
        total_rounds=total_rounds,
        bye_count=calculate_byes_needed(len(standings)),
    )
    return bracket


def _place_winner(
    matches: dict[int, BracketMatch],
    match: BracketMatch,
    winner_id: str | None,
    previous_winner_id: str | None = None,
) -> None:
    """
    Put the winner into the downstream match.

    A replaced winner gives up the slot they held. Otherwise the home slot is
    filled first. A winner already downstream is left where they are.
    """
    if match.next_game_number is None or winner_id is None:
        return
    downstream = matches[match.next_game_number]
    if winner_id in (downstream.home_team_id, downstream.away_team_id):
        return
    seed = match.home_seed if winner_id == match.home_team_id else match.away_seed
    if previous_winner_id is not None and previous_winner_id == downstream.away_team_id:
        side = "away"
    elif downstream.home_team_id is None or previous_winner_id == downstream.home_team_id:
        side = "home"
    else:
        side = "away"
    matches[downstream.game_number] = downstream.model_copy(
        update={f"{side}_team_id": winner_id, f"{side}_seed": seed},
    )


def advance_winner(bracket: TournamentBracket, game_number: int, winner_team_id: str) -> TournamentBracket:
    """
    Record the winner of a game and move them into the next game.

    Recording the same winner again changes nothing. A different winner
    replaces the previous one downstream, as long as the next game has not
    been decided yet.

    Raises:
        ValueError: If the game does not exist, the winner did not play in it,
            or the result is changed after the next game was decided

    """
    matches = {match.game_number: match for match in bracket.matches}
    match = matches.get(game_number)
    if match is None:
        raise ValueError(f"Game {game_number} does not exist in bracket")
    if winner_team_id not in (match.home_team_id, match.away_team_id):
        raise ValueError(f"Team {winner_team_id} did not play in game {game_number}")
    if match.winner_team_id == winner_team_id:
        return bracket

    previous_winner_id = match.winner_team_id
    if previous_winner_id is not None and match.next_game_number is not None:
        downstream = matches[match.next_game_number]
        if downstream.winner_team_id is not None:
            raise ValueError(
                f"Cannot change the result of game {game_number} after game {downstream.game_number} was decided",
            )

    decided = match.model_copy(update={"winner_team_id": winner_team_id})
    matches[game_number] = decided
    _place_winner(matches, decided, winner_team_id, previous_winner_id)
    logger.info(
        "advanced bracket winner",
        tournament_id=bracket.tournament_id,
        game_number=game_number,
        winner_team_id=winner_team_id,
        replaced_winner_id=previous_winner_id,
        next_game_number=decided.next_game_number,
    )
    return bracket.model_copy(update={"matches": tuple(matches[number] for number in sorted(matches))})

"""
Round-robin standings with tiebreak resolution.

Teams are ranked by wins, then run differential, then runs scored (all
descending). Teams still level after those three are ordered by head-to-head
wins within exactly the tied subset: a team with strictly more head-to-head
wins than every other member is placed first and the rest are resolved again
among themselves. When no single team leads, the remainder is alphabetical.

The same cascade drives a full recomputation and the incremental merge, so
both agree for the same set of completed games.
"""

from __future__ import annotations

from itertools import groupby
from typing import TYPE_CHECKING

import structlog

from tournament.models import TeamStanding, TiebreakerExplanation, TournamentGame

if TYPE_CHECKING:
    from collections.abc import Iterable, Sequence

    from tournament.models import Team

logger = structlog.get_logger()


def _record_key(standing: TeamStanding) -> tuple[int, int, int]:
    return standing.wins, standing.run_differential, standing.runs_scored


def _apply_game(by_id: dict[str, TeamStanding], game: TournamentGame) -> None:
    """Fold one completed game into the standings map in place."""
    home = by_id.get(game.home_team_id)
    away = by_id.get(game.away_team_id)
    if home is None or away is None:
        logger.warning(
            "game references unknown team, skipped",
            game_id=game.id,
            home_team_id=game.home_team_id,
            away_team_id=game.away_team_id,
        )
        return

    winner_id = game.winner_id
    if winner_id is None:
        logger.warning("tied game counted without a result", game_id=game.id, score=game.home_score)

    def updated(standing: TeamStanding, scored: int, allowed: int, opponent_id: str) -> TeamStanding:
        won = winner_id == standing.team_id
        lost = winner_id is not None and not won
        head_to_head = dict(standing.head_to_head_wins)
        if won:
            head_to_head[opponent_id] = head_to_head.get(opponent_id, 0) + 1
        return standing.model_copy(
            update={
                "games_played": standing.games_played + 1,
                "runs_scored": standing.runs_scored + scored,
                "runs_allowed": standing.runs_allowed + allowed,
                "wins": standing.wins + int(won),
                "losses": standing.losses + int(lost),
                "head_to_head_wins": head_to_head,
            },
        )

    by_id[home.team_id] = updated(home, game.home_score, game.away_score, away.team_id)
    by_id[away.team_id] = updated(away, game.away_score, game.home_score, home.team_id)


def _head_to_head_order(tied: list[TeamStanding]) -> list[TeamStanding]:
    if len(tied) < 2:  # noqa: PLR2004
        return tied
    ids = {s.team_id for s in tied}
    wins = {s.team_id: sum(n for opp, n in s.head_to_head_wins.items() if opp in ids) for s in tied}
    best = max(wins.values())
    leaders = [s for s in tied if wins[s.team_id] == best]
    if len(leaders) == 1:
        leader = leaders[0]
        return [leader, *_head_to_head_order([s for s in tied if s is not leader])]
    return sorted(tied, key=lambda s: s.team_name)


def rank_standings(standings: Iterable[TeamStanding]) -> list[TeamStanding]:
    """Sort standings by the tiebreak cascade and assign 1-based seeds."""
    ordered = sorted(standings, key=lambda s: (*(-v for v in _record_key(s)), s.team_name))
    ranked: list[TeamStanding] = []
    for _, group in groupby(ordered, key=_record_key):
        ranked.extend(_head_to_head_order(list(group)))
    return [standing.model_copy(update={"seed": index}) for index, standing in enumerate(ranked, start=1)]


def calculate_team_standings(games: Iterable[TournamentGame], teams: Iterable[Team]) -> list[TeamStanding]:
    """
    Compute ranked standings from scratch.

    Only completed games count. Games naming a team outside the roster are
    skipped. Teams without games are listed with zero stats.
    """
    by_id = {team.id: TeamStanding(team_id=team.id, team_name=team.name) for team in teams}
    for game in games:
        if game.is_completed:
            _apply_game(by_id, game)
    return rank_standings(by_id.values())


def update_standings_from_games(
    current: Iterable[TeamStanding],
    new_games: Iterable[TournamentGame],
) -> list[TeamStanding]:
    """Merge newly completed games into existing standings, then re-rank."""
    by_id = {standing.team_id: standing for standing in current}
    merged = 0
    for game in new_games:
        if game.is_completed:
            _apply_game(by_id, game)
            merged += 1
    logger.debug("merged games into standings", game_count=merged, team_count=len(by_id))
    return rank_standings(by_id.values())


def head_to_head_wins(team_id: str, opponent_ids: Iterable[str], games: Iterable[TournamentGame]) -> int:
    """Count completed wins of team_id against any of opponent_ids."""
    opponents = set(opponent_ids)
    total = 0
    for game in games:
        if not game.is_completed or game.winner_id != team_id:
            continue
        loser = game.away_team_id if game.home_team_id == team_id else game.home_team_id
        if loser in opponents:
            total += 1
    return total


def _resolution_text(tied: Sequence[TeamStanding], games: Sequence[TournamentGame]) -> str:
    ids = {s.team_id for s in tied}
    head_to_head = [g for g in games if g.is_completed and g.home_team_id in ids and g.away_team_id in ids]
    if not head_to_head:
        return "No head-to-head games played - tie resolved by alphabetical order"

    records = {s.team_id: [0, 0] for s in tied}  # team_id -> [wins, losses]
    for game in head_to_head:
        winner_id = game.winner_id
        if winner_id is None:
            continue
        loser_id = game.away_team_id if winner_id == game.home_team_id else game.home_team_id
        records[winner_id][0] += 1
        records[loser_id][1] += 1

    best = max(wins for wins, _ in records.values())
    leaders = [s for s in tied if records[s.team_id][0] == best]
    if len(leaders) == 1:
        wins, losses = records[leaders[0].team_id]
        return f"Resolved by head-to-head record: {leaders[0].team_name} ({wins}-{losses})"
    return "Head-to-head record does not resolve tie - resolved by alphabetical order"


def identify_tiebreakers(
    standings: Iterable[TeamStanding],
    games: Iterable[TournamentGame],
) -> list[TiebreakerExplanation]:
    """Describe every group still level on wins, run differential and runs scored."""
    game_list = list(games)
    ordered = sorted(standings, key=lambda s: tuple(-v for v in _record_key(s)))
    explanations = []
    for (wins, run_differential, runs_scored), group in groupby(ordered, key=_record_key):
        tied = list(group)
        if len(tied) < 2:  # noqa: PLR2004
            continue
        explanations.append(
            TiebreakerExplanation(
                teams=tuple(s.team_name for s in tied),
                reason=f"Tied with {wins} wins, {run_differential} run differential, {runs_scored} runs scored",
                resolution=_resolution_text(tied, game_list),
            ),
        )
    return explanations


def is_round_robin_complete(games: Iterable[TournamentGame], teams: Sequence[Team]) -> bool:
    """True once at least n(n-1)/2 games are completed."""
    expected = len(teams) * (len(teams) - 1) // 2
    completed = sum(1 for game in games if game.is_completed)
    return completed >= expected

from game.logic.enums import GameStatus
from tournament.models import Team, TeamStanding, TournamentGame


def create_teams(*names: str) -> list[Team]:
    """Teams whose ids are the lower-cased names."""
    return [Team(id=name.lower(), name=name) for name in names]


def create_game(
    home_team_id: str,
    away_team_id: str,
    home_score: int,
    away_score: int,
    status: GameStatus = GameStatus.COMPLETED,
) -> TournamentGame:
    return TournamentGame(
        id=f"{home_team_id}-{away_team_id}",
        home_team_id=home_team_id,
        away_team_id=away_team_id,
        home_score=home_score,
        away_score=away_score,
        status=status,
    )


def create_standings(count: int) -> list[TeamStanding]:
    """Ranked standings for teams t1..tN, seeded in order."""
    return [
        TeamStanding(team_id=f"t{seed}", team_name=f"Team {seed}", wins=count - seed, seed=seed)
        for seed in range(1, count + 1)
    ]

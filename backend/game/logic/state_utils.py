"""
Immutable snapshot update utilities using Pydantic model_copy.

Provides helper functions for the scoring primitives shared by the
transition handlers. These functions never mutate the input snapshot -
they always return new snapshot objects with the requested changes applied,
together with the side effects the change produces.
"""

from game.logic.enums import AtBatResult
from game.logic.settings import GameRules
from game.logic.side_effects import (
    HalfInningEndEffect,
    InningChangeEffect,
    LineupAdvanceEffect,
    ScoreChangeEffect,
    SideEffect,
)
from game.logic.snapshot import FIRST_BASE, HOME_PLATE, SECOND_BASE, THIRD_BASE, BaseRunners, GameSnapshot

HIT_BASES: dict[AtBatResult, int] = {
    AtBatResult.SINGLE: 1,
    AtBatResult.DOUBLE: 2,
    AtBatResult.TRIPLE: 3,
    AtBatResult.HOMERUN: 4,
}


def advance_runners(runners: BaseRunners, bases: int, batter_id: str) -> tuple[BaseRunners, int]:
    """
    Advance every runner and the batter by the same number of bases.

    Runners are resolved by base position, most advanced first. A runner whose
    new position passes third base scores. The batter lands on base `bases`,
    or scores on a home run. Runner identity is never compared: the batter id
    may legitimately also be standing on a base.

    Args:
        runners: Current base occupants
        bases: Bases awarded by the hit (1-4)
        batter_id: Player id placed on base for the batter

    Returns:
        Tuple of (new base runners, runs scored)

    """
    occupants: dict[int, str] = {}
    runs = 0
    for base in (THIRD_BASE, SECOND_BASE, FIRST_BASE):
        runner = runners.at(base)
        if runner is None:
            continue
        target = base + bases
        if target >= HOME_PLATE:
            runs += 1
        else:
            occupants[target] = runner
    if bases >= HOME_PLATE:
        runs += 1
    else:
        occupants[bases] = batter_id
    return BaseRunners.from_bases(occupants), runs


def force_walk(runners: BaseRunners, batter_id: str) -> tuple[BaseRunners, int]:
    """
    Award first base to the batter, moving only runners who are forced.

    A runner on second moves only when first is occupied, a runner on third
    scores only when the bases are loaded.
    """
    if runners.first is None:
        return runners.model_copy(update={"first": batter_id}), 0
    if runners.second is None:
        return BaseRunners(first=batter_id, second=runners.first, third=runners.third), 0
    runs = 1 if runners.third is not None else 0
    return BaseRunners(first=batter_id, second=runners.first, third=runners.second), runs


def reset_count(snapshot: GameSnapshot) -> GameSnapshot:
    """Return new snapshot with balls and strikes cleared."""
    return snapshot.model_copy(update={"balls": 0, "strikes": 0})


def add_runs(snapshot: GameSnapshot, runs: int) -> tuple[GameSnapshot, tuple[SideEffect, ...]]:
    """Credit runs to the batting team. Emits a score change only when runs > 0."""
    if runs <= 0:
        return snapshot, ()
    if snapshot.is_top_of_inning:
        snapshot = snapshot.model_copy(update={"score_away": snapshot.score_away + runs})
    else:
        snapshot = snapshot.model_copy(update={"score_home": snapshot.score_home + runs})
    effect = ScoreChangeEffect(
        runs_scored=runs,
        team=snapshot.batting_side,
        score_home=snapshot.score_home,
        score_away=snapshot.score_away,
    )
    return snapshot, (effect,)


def batter_and_catcher(lineup: tuple[str, ...], position: int) -> tuple[str | None, str | None]:
    """
    Return the batter at position and the on-deck player who catches.

    The catcher is the next player in the same batting order, wrapping around.
    A one-player lineup bats and catches with the same player.
    """
    if not lineup:
        return None, None
    return lineup[position % len(lineup)], lineup[(position + 1) % len(lineup)]


def advance_lineup(snapshot: GameSnapshot) -> tuple[GameSnapshot, LineupAdvanceEffect]:
    """Move the batting team's lineup pointer to the next batter."""
    lineup = snapshot.batting_lineup
    position = (snapshot.batting_lineup_position + 1) % len(lineup)
    batter_id, catcher_id = batter_and_catcher(lineup, position)
    field = "away_lineup_position" if snapshot.is_top_of_inning else "home_lineup_position"
    snapshot = snapshot.model_copy(update={field: position, "batter_id": batter_id, "catcher_id": catcher_id})
    effect = LineupAdvanceEffect(team=snapshot.batting_side, new_batter_id=batter_id, position=position)
    return snapshot, effect


def end_half_inning(snapshot: GameSnapshot) -> tuple[GameSnapshot, tuple[SideEffect, ...]]:
    """
    Close the current half-inning and hand the bat to the other team.

    Outs, count and bases reset. Top flips to bottom of the same inning,
    bottom advances to the top of the next inning. Lineup positions persist,
    so each team resumes where its order left off.
    """
    ended = HalfInningEndEffect(inning=snapshot.current_inning, half=snapshot.half_inning)
    if snapshot.is_top_of_inning:
        inning, is_top = snapshot.current_inning, False
    else:
        inning, is_top = snapshot.current_inning + 1, True

    lineup = snapshot.away_lineup if is_top else snapshot.home_lineup
    position = snapshot.away_lineup_position if is_top else snapshot.home_lineup_position
    batter_id, catcher_id = batter_and_catcher(lineup, position)

    snapshot = snapshot.model_copy(
        update={
            "current_inning": inning,
            "is_top_of_inning": is_top,
            "outs": 0,
            "balls": 0,
            "strikes": 0,
            "base_runners": BaseRunners(),
            "batter_id": batter_id,
            "catcher_id": catcher_id,
        },
    )
    return snapshot, (ended, InningChangeEffect(inning=inning, is_top_of_inning=is_top))


def record_out(snapshot: GameSnapshot, rules: GameRules) -> tuple[GameSnapshot, tuple[SideEffect, ...]]:
    """
    Retire the current batter.

    The count resets and the lineup advances past the batter. When the out
    is the last of the half-inning, the half-inning ends as well.
    """
    snapshot = reset_count(snapshot.model_copy(update={"outs": snapshot.outs + 1}))
    snapshot, advanced = advance_lineup(snapshot)
    if snapshot.outs < rules.outs_per_half_inning:
        return snapshot, (advanced,)
    snapshot, inning_effects = end_half_inning(snapshot)
    return snapshot, (advanced, *inning_effects)


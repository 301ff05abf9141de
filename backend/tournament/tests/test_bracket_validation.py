"""Tests for bracket seeding, bye and structure validation."""

from tournament.bracket import assign_byes_to_top_seeded_teams, generate_bracket_seeding, generate_tournament_bracket
from tournament.bracket_validation import (
    validate_bracket_seeding,
    validate_bracket_structure,
    validate_bye_assignments,
)
from tournament.models import BracketMatch, BracketType
from tournament.settings import BYE
from tournament.tests.conftest import create_standings

SINGLE = BracketType.SINGLE_ELIMINATION


class TestValidateBracketSeeding:
    def test_generated_seeding_is_valid(self):
        standings = create_standings(6)

        assert validate_bracket_seeding(generate_bracket_seeding(standings, SINGLE), standings).is_valid

    def test_reports_missing_unknown_and_duplicate_teams(self):
        standings = create_standings(4)

        result = validate_bracket_seeding(["t1", "t2", "t2", "t9"], standings)

        assert "Team t3 not found in bracket seeding" in result.errors
        assert "Team t4 not found in bracket seeding" in result.errors
        assert "Unknown team t9 found in bracket seeding" in result.errors
        assert "Duplicate teams found in bracket seeding" in result.errors

    def test_reports_non_power_of_two_length(self):
        standings = create_standings(3)

        result = validate_bracket_seeding(["t1", "t2", "t3"], standings)

        assert result.errors == ("Bracket seeding length 3 is not a power of 2",)

    def test_multiple_byes_are_not_duplicates(self):
        standings = create_standings(5)
        seeding = generate_bracket_seeding(standings, SINGLE)

        assert seeding.count(BYE) == 3
        assert validate_bracket_seeding(seeding, standings).is_valid


class TestValidateByeAssignments:
    def test_generated_assignments_are_valid(self):
        standings = create_standings(6)

        assert validate_bye_assignments(assign_byes_to_top_seeded_teams(standings, SINGLE), standings).is_valid

    def test_reports_wrong_count(self):
        standings = create_standings(6)
        assignments = assign_byes_to_top_seeded_teams(standings, SINGLE)[:1]

        result = validate_bye_assignments(assignments, standings)

        assert result.errors == ("Expected 2 byes, but 1 were assigned",)

    def test_reports_bye_for_lower_seed(self):
        standings = create_standings(6)
        first, second = assign_byes_to_top_seeded_teams(standings, SINGLE)
        wrong = second.model_copy(update={"team_id": "t3", "seed": 3})

        result = validate_bye_assignments([first, wrong], standings)

        assert result.errors == ("Team t3 is not a top seed but was assigned a bye",)

    def test_reports_unknown_and_duplicate_teams(self):
        standings = create_standings(6)
        first, second = assign_byes_to_top_seeded_teams(standings, SINGLE)

        result = validate_bye_assignments([first, first], standings)
        assert "Duplicate teams found in bye assignments" in result.errors

        result = validate_bye_assignments([first, second.model_copy(update={"team_id": "ghost"})], standings)
        assert "Unknown team ghost assigned a bye" in result.errors

    def test_reports_invalid_next_game(self):
        standings = create_standings(6)
        first, second = assign_byes_to_top_seeded_teams(standings, SINGLE)

        result = validate_bye_assignments([first, second.model_copy(update={"next_game_number": 0})], standings)

        assert result.errors == ("Invalid next game number for team t2",)


class TestValidateBracketStructure:
    def test_generated_bracket_is_valid(self):
        standings = create_standings(6)
        bracket = generate_tournament_bracket("cup", standings, SINGLE)

        result = validate_bracket_structure(bracket, standings)

        assert result.is_valid
        assert result.warnings == ("Match 7 has no teams assigned",)

    def test_full_bracket_without_byes_is_valid(self):
        standings = create_standings(8)
        bracket = generate_tournament_bracket("cup", standings, SINGLE)

        assert validate_bracket_structure(bracket, standings).is_valid

    def test_reports_header_problems(self):
        standings = create_standings(4)
        bracket = generate_tournament_bracket("cup", standings, SINGLE).model_copy(
            update={"tournament_id": "", "total_rounds": 0, "total_games": 0},
        )

        result = validate_bracket_structure(bracket, standings)

        assert "Tournament ID is required" in result.errors
        assert "Total rounds must be greater than 0" in result.errors
        assert "Total games must be greater than 0" in result.errors

    def test_unknown_type_skips_completeness(self):
        standings = create_standings(4)
        bracket = generate_tournament_bracket("cup", standings, SINGLE).model_copy(
            update={"bracket_type": "round_robin", "total_games": 99},
        )

        result = validate_bracket_structure(bracket, standings)

        assert result.errors == ("Invalid bracket type: round_robin",)

    def test_reports_wrong_totals(self):
        standings = create_standings(6)
        bracket = generate_tournament_bracket("cup", standings, SINGLE).model_copy(
            update={"total_games": 7, "total_rounds": 4},
        )

        result = validate_bracket_structure(bracket, standings)

        assert "Expected 5 games, but bracket has 7" in result.errors
        assert "Expected 3 rounds, but bracket has 4" in result.errors

    def test_reports_match_numbering_and_bye_shape(self):
        standings = create_standings(2)
        bracket = generate_tournament_bracket("cup", standings, SINGLE).model_copy(
            update={
                "matches": (
                    BracketMatch(game_number=2, round_number=1, home_team_id="t1", away_team_id="t2", is_bye=True),
                ),
            },
        )

        result = validate_bracket_structure(bracket, standings)

        assert "Missing game number: 1" in result.errors
        assert "Bye match 2 should not have an away team" in result.errors
        assert "Bye match 2 should have a winner" in result.errors

    def test_reports_dangling_next_game_and_self_play(self):
        standings = create_standings(2)
        bracket = generate_tournament_bracket("cup", standings, SINGLE).model_copy(
            update={
                "matches": (
                    BracketMatch(
                        game_number=1, round_number=1, home_team_id="t1", away_team_id="t1", next_game_number=4
                    ),
                ),
            },
        )

        result = validate_bracket_structure(bracket, standings)

        assert "Next game number 4 does not exist" in result.errors
        assert "Team t1 cannot play against itself in game 1" in result.errors
        assert "Team t1 appears multiple times in round 1" in result.errors
        assert "Team t2 not found in first round" in result.errors

    def test_reports_round_gaps_and_sizes(self):
        standings = create_standings(4)
        bracket = generate_tournament_bracket("cup", standings, SINGLE)
        final = bracket.match(3).model_copy(update={"round_number": 3})
        bracket = bracket.model_copy(update={"matches": (*bracket.round_matches(1), final)})

        result = validate_bracket_structure(bracket, standings)

        assert "Missing round 2 between rounds 1 and 3" in result.errors

    def test_reports_unknown_team(self):
        standings = create_standings(4)
        bracket = generate_tournament_bracket("cup", standings, SINGLE)

        result = validate_bracket_structure(bracket, standings[:3])

        assert "Unknown team ID found in bracket: t4" in result.errors

    def test_warns_when_winner_not_advanced(self):
        standings = create_standings(4)
        bracket = generate_tournament_bracket("cup", standings, SINGLE)
        decided = bracket.match(1).model_copy(update={"winner_team_id": "t1"})
        bracket = bracket.model_copy(update={"matches": (decided, *bracket.matches[1:])})

        result = validate_bracket_structure(bracket, standings)

        assert "Winner of game 1 not properly assigned to game 3" in result.warnings

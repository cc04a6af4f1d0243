"""
Tests for the scheduling rules and the weighted score.
"""

import pytest

from mock_data import make_team, create_mock_match, create_activity

from tournament_scheduler.models import Division, ActivityType, ViolationLevel, Player, Schedule, RuleViolation
from tournament_scheduler.services.rules import (
    AvoidBackToBackGames, AvoidFirstAndLastGame, AvoidReffingBeforePlaying, AvoidPlayingAfterSetup,
    ManageRestTimeAndGaps, LimitVenueTime, EnsureFairFieldDistribution, ManagePlayerGameBalance,
    EnsurePlayerWarmupTime, BalanceRefereeAssignments, DetectMixedDivisionsInTimeSlot,
    PreventClubRefereeConflict, CustomRule, extract_club_name
)
from tournament_scheduler.services.rules_registry import (
    RULES_REGISTRY, build_rules, create_rule, get_default_rules, list_rules
)


def evaluate(rule, matches):
    return rule.evaluate(Schedule(matches))


def test_back_to_back_two_games_is_warning():
    a = make_team("A")
    violations = evaluate(AvoidBackToBackGames(), [
        create_mock_match(a, "B", 1),
        create_mock_match(a, "C", 2),
    ])

    assert len(violations) == 1
    assert "Team A" in violations[0].description
    assert "1 and 2" in violations[0].description
    assert violations[0].level == ViolationLevel.WARNING


def test_back_to_back_three_games_reports_length():
    a = make_team("A")
    violations = evaluate(AvoidBackToBackGames(), [
        create_mock_match(a, "B", 1),
        create_mock_match(a, "C", 2),
        create_mock_match(a, "D", 3),
    ])

    assert len(violations) == 1
    assert "3 consecutive games" in violations[0].description
    assert "1 to 3" in violations[0].description
    assert violations[0].level == ViolationLevel.WARNING
    assert len(violations[0].matches) == 3


def test_back_to_back_ignores_gaps_and_refereeing():
    a = make_team("A")
    violations = evaluate(AvoidBackToBackGames(), [
        create_mock_match(a, "B", 1),
        create_mock_match("C", "D", 2, referee=a),
        create_mock_match(a, "E", 3),
    ])
    assert violations == []


def test_back_to_back_reports_player_streak_across_teams():
    """A player in two teams can play back to back while neither team does."""
    ann = Player("Ann", mixed_team="A", gendered_team="X")
    a = make_team("A", players=[ann])
    x = make_team("X", Division.GENDERED, players=[ann])

    violations = evaluate(AvoidBackToBackGames(), [
        create_mock_match(a, "B", 1),
        create_mock_match(x, "Y", 2, division=Division.GENDERED),
    ])

    assert len(violations) == 1
    assert violations[0].description.startswith("Player Ann")


def test_first_and_last_period():
    a = make_team("A")
    violations = evaluate(AvoidFirstAndLastGame(), [
        create_activity(ActivityType.SETUP, a, 0),
        create_mock_match("B", "C", 1),
        create_mock_match("D", "E", 2),
        create_mock_match(a, "F", 3),
        create_activity(ActivityType.PACKING_DOWN, "G", 4),
    ])

    # Player violations of team A are suppressed
    assert len(violations) == 1
    assert "Team A" in violations[0].description
    assert violations[0].level == ViolationLevel.ALERT


def test_first_and_last_player_in_two_teams():
    ann = Player("Ann", mixed_team="A", gendered_team="X")
    a = make_team("A", players=[ann, "Bea"])
    x = make_team("X", Division.GENDERED, players=[ann, "Cat"])

    violations = evaluate(AvoidFirstAndLastGame(), [
        create_mock_match(a, "B", 1),
        create_mock_match("C", "D", 2),
        create_mock_match(x, "Y", 3, division=Division.GENDERED),
    ])

    assert [v.description.split(" participates")[0] for v in violations] == ["Player Ann"]


def test_reffing_before_playing_is_note():
    violations = evaluate(AvoidReffingBeforePlaying(), [
        create_mock_match("A", "B", 1, referee="C"),
        create_mock_match("C", "D", 2),
    ])

    assert len(violations) == 1
    assert "Team C" in violations[0].description
    assert violations[0].level == ViolationLevel.NOTE


def test_playing_before_reffing_is_allowed():
    violations = evaluate(AvoidReffingBeforePlaying(), [
        create_mock_match("C", "D", 1),
        create_mock_match("A", "B", 2, referee="C"),
    ])
    assert violations == []


def test_playing_right_after_setup():
    violations = evaluate(AvoidPlayingAfterSetup(), [
        create_activity(ActivityType.SETUP, "A", 0),
        create_mock_match("A", "B", 1),
        create_mock_match("C", "A", 3),
    ])

    assert len(violations) == 1
    assert "Team A" in violations[0].description
    assert violations[0].level == ViolationLevel.WARNING
    assert AvoidPlayingAfterSetup().priority == 10


def test_rest_and_gaps():
    a = make_team("A")
    violations = evaluate(ManageRestTimeAndGaps(min_rest_slots=1, max_gap_slots=3), [
        create_mock_match(a, "B", 1),
        create_mock_match(a, "C", 2),
        create_mock_match(a, "D", 7),
    ])

    notes = [v for v in violations if v.level == ViolationLevel.NOTE]
    warnings = [v for v in violations if v.level == ViolationLevel.WARNING]
    assert len(notes) == 2  # one per player of team A
    assert len(warnings) == 2
    assert "insufficient rest" in notes[0].description
    assert "large gap" in warnings[0].description


def test_venue_time_team_and_player_suppression():
    ann = Player("Ann", mixed_team="A", gendered_team="X")
    a = make_team("A", players=[ann, "Bea"])
    x = make_team("X", Division.GENDERED, players=[ann])

    rule = LimitVenueTime(max_hours=2, minutes_per_slot=60)
    violations = evaluate(rule, [
        create_mock_match(a, "B", 1),
        create_mock_match(a, "C", 4),
        create_mock_match(x, "Y", 6, division=Division.GENDERED),
    ])

    descriptions = [v.description for v in violations]
    assert descriptions == [
        "Team A needs to be at venue for 4.0 hours (max: 2h)",
        "Player Ann needs to be at venue for 6.0 hours (max: 2h)",
    ]


def test_venue_time_counts_refereeing_and_activities():
    violations = evaluate(LimitVenueTime(max_hours=1, minutes_per_slot=30), [
        create_activity(ActivityType.SETUP, "A", 0),
        create_mock_match("B", "C", 2, referee="A"),
    ])
    teams = [v.description for v in violations if v.description.startswith("Team")]
    assert teams == ["Team A needs to be at venue for 1.5 hours (max: 1h)"]


def test_fair_field_distribution():
    a = make_team("A")
    violations = evaluate(EnsureFairFieldDistribution(), [
        create_mock_match(a, "B", 1, "Field 1"),
        create_mock_match(a, "C", 3, "Field 1"),
        create_mock_match(a, "D", 5, "Field 1"),
    ])

    assert len(violations) == 1
    assert "3/3 games on Field 1" in violations[0].description


def test_fair_field_distribution_needs_minimum_games():
    a = make_team("A")
    violations = evaluate(EnsureFairFieldDistribution(), [
        create_mock_match(a, "B", 1, "Field 1"),
        create_mock_match(a, "C", 3, "Field 1"),
    ])
    assert violations == []


def test_player_game_balance():
    a = make_team("A")
    violations = evaluate(ManagePlayerGameBalance(max_games=2), [
        create_mock_match(a, "B", 1),
        create_mock_match(a, "C", 3),
        create_mock_match(a, "D", 5),
    ])

    per_player = [v for v in violations if v.description.startswith("Player")]
    imbalance = [v for v in violations if "imbalance" in v.description]
    assert len(per_player) == 2
    assert len(imbalance) == 1


def test_warmup_relative_to_start_of_day():
    violations = evaluate(EnsurePlayerWarmupTime(min_warmup_slots=1), [
        create_mock_match("A", "B", 3),
        create_mock_match("C", "D", 4),
    ])
    assert {v.description.split(" has")[0] for v in violations} == {
        "Player A Player 1", "Player A Player 2", "Player B Player 1", "Player B Player 2"
    }


def test_balance_referee_assignments():
    violations = evaluate(BalanceRefereeAssignments(), [
        create_mock_match("A", "B", 1, referee="C"),
        create_mock_match("A", "B", 2, referee="C"),
        create_mock_match("A", "B", 3, referee="C"),
        create_mock_match("A", "C", 4, referee="D"),
    ])
    assert len(violations) == 1


def test_mixed_divisions_in_time_slot():
    violations = evaluate(DetectMixedDivisionsInTimeSlot(), [
        create_mock_match("A", "B", 1, "Field 1"),
        create_mock_match("X", "Y", 1, "Field 2", division=Division.CLOTH),
        create_mock_match("C", "D", 2),
    ])

    assert len(violations) == 1
    assert "mixed, cloth" in violations[0].description


def test_club_referee_conflict():
    assert extract_club_name("Falcons Red") == "Falcons"

    violations = evaluate(PreventClubRefereeConflict(), [
        create_mock_match("Falcons Red", "Owls", 1, "Field 1"),
        create_mock_match("Hawks", "Crows", 1, "Field 2", referee="Falcons Blue"),
    ])
    assert len(violations) == 1
    assert "Falcons Blue" in violations[0].description


def test_custom_rule():
    def no_slot_three(schedule):
        return [
            RuleViolation(rule="No slot 3", description=str(m), matches=[m])
            for m in schedule.matches if m.time_slot == 3
        ]

    rule = CustomRule("No slot 3", no_slot_three, priority=7)
    schedule = Schedule([create_mock_match("A", "B", 3)])

    assert schedule.evaluate([rule]) == 7
    assert schedule.violations[0].priority == 7


def test_score_is_weighted_sum_of_violations():
    a = make_team("A")
    matches = [
        create_mock_match(a, "B", 1, referee="C"),
        create_mock_match(a, "C", 2),
    ]
    rules = [AvoidBackToBackGames(priority=5), AvoidReffingBeforePlaying(priority=3)]
    schedule = Schedule(matches, rules)

    score = schedule.evaluate()
    assert score == 1 * 5 + 1 * 3
    assert schedule.score == score
    assert {v.priority for v in schedule.violations} == {5, 3}


def test_evaluate_is_deterministic():
    schedule = Schedule([
        create_mock_match("A", "B", 1, referee="C"),
        create_mock_match("A", "C", 2),
        create_mock_match("A", "D", 3, "Field 2"),
    ], get_default_rules())

    first = schedule.evaluate()
    first_count = len(schedule.violations)
    assert schedule.evaluate() == first
    assert len(schedule.violations) == first_count


def test_registry_defaults():
    rules = get_default_rules()
    enabled = [rule_id for rule_id, entry in RULES_REGISTRY.items() if entry["enabled"]]

    assert len(rules) == len(enabled)
    assert "warmup_time" not in enabled
    assert len(list_rules()) == len(RULES_REGISTRY)


def test_build_rules_from_config():
    rules = build_rules([
        {"id": "limit_venue_time", "priority": 6, "parameters": {"max_hours": 3}},
        {"id": "back_to_back", "enabled": False},
    ])

    assert len(rules) == 1
    assert isinstance(rules[0], LimitVenueTime)
    assert rules[0].priority == 6
    assert rules[0].max_hours == 3


def test_build_rules_rejects_bad_config():
    with pytest.raises(ValueError):
        build_rules([{"id": "no_such_rule"}])

    with pytest.raises(ValueError):
        create_rule("back_to_back", parameters={"unknown": 1})

    with pytest.raises(ValueError):
        create_rule("back_to_back", priority=0)


def test_build_rules_accepts_every_constructor_parameter():
    rules = build_rules([
        {"id": "fair_field_distribution", "parameters": {"min_games": 4}},
        {"id": "limit_venue_time", "parameters": {"tolerance_hours": 1.0}},
    ])

    assert rules[0].min_games == 4
    assert rules[1].tolerance_hours == 1.0

"""
Builders for small schedules used across the tests.
"""

import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tournament_scheduler.core.config import ACTIVITY_PLACEHOLDER
from tournament_scheduler.models import Division, ActivityType, Player, Team, Match, Schedule


def make_team(name, division=Division.MIXED, players=None):
    """Team with the given player names, "<team> Player 1/2" by default."""
    team = Team(name, division)
    if players is None:
        players = [f"{name} Player 1", f"{name} Player 2"]
    for player in players:
        if isinstance(player, str):
            player = Player(player, **{f"{division.value}_team": name})
        team.add_player(player)
    return team


def _team(team, division):
    if team is None or isinstance(team, Team):
        return team
    return make_team(team, division)


def create_mock_match(team1, team2, time_slot, field="Field 1", division=Division.MIXED,
                      referee=None, activity_type=ActivityType.REGULAR, locked=False):
    """Match between teams given as Team objects or names."""
    return Match(
        team1=_team(team1, division),
        team2=_team(team2, division),
        time_slot=time_slot,
        field=field,
        division=division,
        referee_team=_team(referee, division),
        activity_type=activity_type,
        locked=locked,
    )


def create_activity(activity_type, team, time_slot, field="Hall", division=Division.MIXED):
    """SETUP or PACKING_DOWN activity crewed by one team."""
    return create_mock_match(
        team, Team(ACTIVITY_PLACEHOLDER, division), time_slot, field=field,
        division=division, activity_type=activity_type
    )


def sample_schedule(rules=None):
    """
    Two divisions over four slots and two fields, framed by setup and packing down.

    Mixed teams A-D, gendered teams E-H, each division refereed by the other.
    """
    mixed = {name: make_team(name) for name in "ABCD"}
    gendered = {name: make_team(name, Division.GENDERED) for name in "EFGH"}
    m, g = mixed, gendered

    matches = [
        create_activity(ActivityType.SETUP, m["A"], 0),
        create_mock_match(m["A"], m["B"], 1, "Field 1", referee=g["E"]),
        create_mock_match(m["C"], m["D"], 1, "Field 2", referee=g["F"]),
        create_mock_match(m["A"], m["C"], 2, "Field 1", referee=g["G"]),
        create_mock_match(m["B"], m["D"], 2, "Field 2", referee=g["H"]),
        create_mock_match(g["E"], g["F"], 3, "Field 1", division=Division.GENDERED, referee=m["A"]),
        create_mock_match(g["G"], g["H"], 3, "Field 2", division=Division.GENDERED, referee=m["B"]),
        create_mock_match(g["E"], g["G"], 4, "Field 1", division=Division.GENDERED, referee=m["C"]),
        create_mock_match(g["F"], g["H"], 4, "Field 2", division=Division.GENDERED, referee=m["D"]),
        create_activity(ActivityType.PACKING_DOWN, g["H"], 5),
    ]
    schedule = Schedule(matches, rules)
    schedule.evaluate()
    return schedule


def sample_payload():
    """Players and match records for the API and the builder."""
    players = []
    for name in "ABCD":
        players.append({"name": f"{name}1", "mixed_team": name})
        players.append({"name": f"{name}2", "mixed_team": name})

    matches = [
        {"time_slot": 0, "division": "mixed", "field": "Hall", "team1": "A", "team2": "",
         "activity_type": "SETUP"},
        {"time_slot": 1, "division": "mixed", "field": "Field 1", "team1": "A", "team2": "B", "referee_team": "C"},
        {"time_slot": 2, "division": "mixed", "field": "Field 1", "team1": "C", "team2": "D", "referee_team": "A"},
        {"time_slot": 3, "division": "mixed", "field": "Field 1", "team1": "A", "team2": "C", "referee_team": "B"},
        {"time_slot": 4, "division": "mixed", "field": "Field 1", "team1": "B", "team2": "D", "referee_team": "C"},
    ]
    return players, matches

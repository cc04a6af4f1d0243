"""
Grouping helpers shared by the rules and the mutation operators.
"""

from collections import defaultdict
from typing import Dict, List, Iterable

from tournament_scheduler.models.models import Match, Team, Division


def sort_by_time_slot(matches: Iterable[Match]) -> List[Match]:
    return sorted(matches, key=lambda m: m.time_slot)


def regular_matches(matches: Iterable[Match]) -> List[Match]:
    return [m for m in matches if not m.is_special_activity()]


def group_matches_by_team(matches: Iterable[Match]) -> Dict[Team, List[Match]]:
    """Matches each team plays in (refereeing not included)."""
    groups = defaultdict(list)
    for match in matches:
        for team in match.playing_teams:
            if not team.is_placeholder:
                groups[team].append(match)
    return dict(groups)


def group_matches_by_player(matches: Iterable[Match]) -> Dict[str, List[Match]]:
    """Matches each player plays in, through any of their teams."""
    groups = defaultdict(list)
    for match in matches:
        seen = set()
        for player in match.get_players():
            if player.name in seen:
                continue
            seen.add(player.name)
            groups[player.name].append(match)
    return dict(groups)


def group_matches_by_division(matches: Iterable[Match]) -> Dict[Division, List[Match]]:
    groups = defaultdict(list)
    for match in matches:
        groups[match.division].append(match)
    return dict(groups)


def group_matches_by_time_slot(matches: Iterable[Match]) -> Dict[int, List[Match]]:
    groups = defaultdict(list)
    for match in matches:
        groups[match.time_slot].append(match)
    return dict(groups)


def get_schedule_stats(matches: List[Match]) -> Dict:
    """Summary counts used by the CLI report and the API."""
    stats = {
        "total_matches": len(matches),
        "total_players": 0,
        "matches_per_time_slot": defaultdict(int),
        "matches_per_field": defaultdict(int),
        "matches_per_division": defaultdict(int),
        "players_per_team": {},
    }
    players = set()

    for match in matches:
        stats["matches_per_time_slot"][match.time_slot] += 1
        stats["matches_per_field"][match.field] += 1
        stats["matches_per_division"][match.division.value] += 1
        for team in match.playing_teams:
            if team.is_placeholder:
                continue
            stats["players_per_team"][team.name] = len(team.players)
            players.update(p.name for p in team.players)

    stats["total_players"] = len(players)
    for key in ("matches_per_time_slot", "matches_per_field", "matches_per_division"):
        stats[key] = dict(stats[key])
    return stats

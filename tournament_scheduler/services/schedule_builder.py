"""
Build schedules from plain data (API payloads, task arguments, JSON files)
and turn results back into plain data.
"""

from typing import Any, Dict, Iterable, List, Optional

from tournament_scheduler.models.models import Player, Team, Match
from tournament_scheduler.models.schedule import Schedule
from tournament_scheduler.core.logging_config import get_logger
from tournament_scheduler.services.helpers import get_schedule_stats
from tournament_scheduler.services.rules_registry import build_rules

logger = get_logger(__name__)


def load_players(rows: Iterable[Any]) -> List[Player]:
    """Players from dicts (name, mixed_team, ...) or [name, mixed, gendered, cloth] rows."""
    players = []
    for row in rows:
        if isinstance(row, dict):
            player = Player(
                name=row.get("name", ""),
                mixed_team=row.get("mixed_team") or None,
                gendered_team=row.get("gendered_team") or None,
                cloth_team=row.get("cloth_team") or None,
            )
        else:
            player = Player.from_row(row)
        if not player.name:
            raise ValueError("Player without a name")
        players.append(player)
    return players


def build_schedule(players: Iterable[Any], matches: Iterable[Dict[str, Any]],
                   rule_configs: Optional[Iterable[Dict[str, Any]]] = None) -> Schedule:
    """
    Build and evaluate a schedule.

    Raises:
        ValueError: If a player, team, rule or parameter is invalid
    """
    teams_map = Team.create_teams_from_players(load_players(players))
    schedule_matches = Match.create_matches_from_records(matches, teams_map)
    rules = build_rules(rule_configs)

    schedule = Schedule(schedule_matches, rules)
    schedule.evaluate()

    team_count = sum(len(teams) for teams in teams_map.values())
    logger.info(f"Built schedule with {len(schedule_matches)} matches, {team_count} teams, {len(rules)} rules")
    return schedule


def schedule_summary(schedule: Schedule) -> Dict[str, Any]:
    """Plain-data view of a schedule with its violations and statistics."""
    data = schedule.to_dict()
    data["total_matches"] = len(schedule.matches)
    data["total_violations"] = len(schedule.violations)
    data["stats"] = get_schedule_stats(schedule.matches)
    return data

"""
Data models for the Tournament Scheduling Engine.
Defines the entities every rule, mutation operator and strategy works on.
"""

from dataclasses import dataclass, field, replace
from typing import List, Optional, Dict, Any, Iterable
from enum import Enum
import itertools

from tournament_scheduler.core.config import ACTIVITY_PLACEHOLDER


class Division(Enum):
    MIXED = "mixed"
    GENDERED = "gendered"
    CLOTH = "cloth"


class ActivityType(Enum):
    REGULAR = "REGULAR"
    SETUP = "SETUP"
    PACKING_DOWN = "PACKING_DOWN"


class ViolationLevel(Enum):
    NOTE = "note"
    WARNING = "warning"
    ALERT = "alert"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        return _LEVEL_ORDER.index(self)

    def __lt__(self, other):
        if isinstance(other, ViolationLevel):
            return self.severity < other.severity
        return NotImplemented


_LEVEL_ORDER = [ViolationLevel.NOTE, ViolationLevel.WARNING, ViolationLevel.ALERT, ViolationLevel.CRITICAL]

SPECIAL_ACTIVITIES = (ActivityType.SETUP, ActivityType.PACKING_DOWN)


@dataclass(frozen=True)
class Player:
    name: str
    mixed_team: Optional[str] = None
    gendered_team: Optional[str] = None
    cloth_team: Optional[str] = None

    def team_for(self, division: Division) -> Optional[str]:
        """Name of the team this player belongs to in a division."""
        return {
            Division.MIXED: self.mixed_team,
            Division.GENDERED: self.gendered_team,
            Division.CLOTH: self.cloth_team,
        }[division]

    @classmethod
    def from_row(cls, row: List[Optional[str]]) -> "Player":
        """Build a player from a [name, mixed, gendered, cloth] row."""
        padded = list(row) + [None] * (4 - len(row))
        return cls(
            name=padded[0] or "",
            mixed_team=padded[1] or None,
            gendered_team=padded[2] or None,
            cloth_team=padded[3] or None,
        )


TeamsMap = Dict[Division, Dict[str, "Team"]]


@dataclass(eq=False)
class Team:
    name: str
    division: Division
    players: List[Player] = field(default_factory=list)

    def __post_init__(self):
        if isinstance(self.division, str):
            self.division = Division(self.division)

    def __hash__(self):
        return hash((self.name, self.division))

    def __eq__(self, other):
        if isinstance(other, Team):
            return self.name == other.name and self.division == other.division
        return False

    def __repr__(self):
        return f"Team({self.name!r}, {self.division.value})"

    @property
    def is_placeholder(self) -> bool:
        return self.name == ACTIVITY_PLACEHOLDER

    def add_player(self, player: Player):
        if not self.has_player(player.name):
            self.players.append(player)

    def has_player(self, player_name: str) -> bool:
        return any(p.name == player_name for p in self.players)

    @staticmethod
    def create_teams_from_players(players: Iterable[Player]) -> TeamsMap:
        """
        Create teams from player data.

        Every player joins, in each division, the team named in that
        division's column. Teams are created the first time they are seen.
        """
        teams: TeamsMap = {division: {} for division in Division}

        for player in players:
            for division in Division:
                team_name = player.team_for(division)
                if not team_name:
                    continue
                if team_name not in teams[division]:
                    teams[division][team_name] = Team(team_name, division)
                teams[division][team_name].add_player(player)

        return teams


_match_ids = itertools.count(1)


def _next_match_id() -> str:
    return f"M{next(_match_ids)}"


@dataclass(eq=False)
class Match:
    """A fixture between two teams, or a SETUP / PACKING_DOWN activity."""
    team1: Team
    team2: Team
    time_slot: int
    field: str
    division: Division
    referee_team: Optional[Team] = None
    activity_type: ActivityType = ActivityType.REGULAR
    locked: bool = False
    id: str = field(default_factory=_next_match_id)

    def __post_init__(self):
        if isinstance(self.division, str):
            self.division = Division(self.division)
        if isinstance(self.activity_type, str):
            self.activity_type = ActivityType(self.activity_type)
        # Special activities anchor the day and never move
        if self.activity_type in SPECIAL_ACTIVITIES:
            self.locked = True

    def __str__(self):
        return f"{self.team1.name} vs {self.team2.name} (slot {self.time_slot}, {self.field})"

    def is_special_activity(self) -> bool:
        return self.activity_type in SPECIAL_ACTIVITIES

    def is_movable(self) -> bool:
        return not self.locked and not self.is_special_activity()

    @property
    def playing_teams(self) -> List[Team]:
        return [self.team1, self.team2]

    def plays(self, team: Team) -> bool:
        return self.team1 == team or self.team2 == team

    def get_all_involved_teams(self) -> List[Team]:
        """Playing teams plus referee, without duplicates or placeholders."""
        teams = [self.team1, self.team2]
        if self.referee_team is not None:
            teams.append(self.referee_team)
        unique = []
        for team in teams:
            if not team.is_placeholder and team not in unique:
                unique.append(team)
        return unique

    def get_players(self) -> List[Player]:
        """Players of both playing teams."""
        return list(self.team1.players) + list(self.team2.players)

    def key(self):
        """Identity of a match inside one schedule: team pair, slot and field."""
        return (self.team1.name, self.team2.name, self.time_slot, self.field)

    def copy(self) -> "Match":
        """Independent copy sharing the same Team objects."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "team1": self.team1.name,
            "team2": self.team2.name,
            "time_slot": self.time_slot,
            "field": self.field,
            "division": self.division.value,
            "referee_team": self.referee_team.name if self.referee_team else None,
            "activity_type": self.activity_type.value,
            "locked": self.locked,
        }

    @staticmethod
    def create_matches_from_records(records: Iterable[Dict[str, Any]], teams_map: TeamsMap) -> List["Match"]:
        """
        Create matches from imported schedule records.

        Each record needs time_slot, division, field, team1 and team2; referee_team,
        activity_type and locked are optional. Playing teams are looked up in the
        match's own division, referees across all divisions.

        Raises:
            ValueError: If a team cannot be found
        """
        matches = []
        for record in records:
            division = Division(record["division"])
            activity_type = ActivityType(record.get("activity_type") or ActivityType.REGULAR.value)

            team1 = _resolve_playing_team(record.get("team1"), division, activity_type, teams_map)
            team2 = _resolve_playing_team(record.get("team2"), division, activity_type, teams_map)
            if team1 is None or team2 is None:
                raise ValueError(
                    f"Teams not found: {record.get('team1')} or {record.get('team2')} in division {division.value}"
                )

            referee_team = None
            referee_name = record.get("referee_team")
            if referee_name:
                referee_team = _find_team_across_divisions(referee_name, teams_map, preferred=division)
                if referee_team is None:
                    raise ValueError(f"Referee team not found: {referee_name}")

            matches.append(Match(
                team1=team1,
                team2=team2,
                time_slot=int(record["time_slot"]),
                field=str(record["field"]),
                division=division,
                referee_team=referee_team,
                activity_type=activity_type,
                locked=bool(record.get("locked", False)),
            ))
        return matches


def _resolve_playing_team(name, division, activity_type, teams_map: TeamsMap) -> Optional[Team]:
    if activity_type in SPECIAL_ACTIVITIES:
        if not name or name == ACTIVITY_PLACEHOLDER:
            return Team(ACTIVITY_PLACEHOLDER, division)
        # Setup crews may come from any division
        return _find_team_across_divisions(name, teams_map, preferred=division)
    return teams_map.get(division, {}).get(name)


def _find_team_across_divisions(team_name: str, teams_map: TeamsMap, preferred: Division = None) -> Optional[Team]:
    """Find a team by name, looking in the preferred division first."""
    divisions = list(Division)
    if preferred is not None:
        divisions.remove(preferred)
        divisions.insert(0, preferred)

    for division in divisions:
        team = teams_map.get(division, {}).get(team_name)
        if team is not None:
            return team
    return None


@dataclass
class RuleViolation:
    rule: str
    description: str
    matches: List[Match] = field(default_factory=list)
    level: ViolationLevel = ViolationLevel.WARNING
    priority: int = 1

    def __str__(self):
        return f"[{self.level.value}] {self.rule}: {self.description}"

    @property
    def is_critical(self) -> bool:
        return self.level == ViolationLevel.CRITICAL

    def to_dict(self) -> Dict[str, Any]:
        return {
            "rule": self.rule,
            "description": self.description,
            "level": self.level.value,
            "priority": self.priority,
            "matches": [m.id for m in self.matches],
        }

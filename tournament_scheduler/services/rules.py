"""
Scheduling rules for the Tournament Scheduling Engine.

Every rule is stateless with respect to the schedule: it reads the matches and
returns the violations it finds. Schedule.evaluate multiplies the number of
violations of each rule by the rule's priority to build the score.
"""

from abc import ABC, abstractmethod
from collections import defaultdict
from typing import Callable, Dict, List, Optional, Tuple

from tournament_scheduler.models.models import (
    ActivityType, Match, RuleViolation, Team, ViolationLevel
)
from tournament_scheduler.core.config import (
    MIN_REST_SLOTS, MAX_GAP_SLOTS,
    MAX_VENUE_HOURS, MINUTES_PER_SLOT, VENUE_TIME_TOLERANCE_HOURS,
    FIELD_DISTRIBUTION_THRESHOLD, FIELD_DISTRIBUTION_MIN_GAMES,
    MAX_GAMES_PER_PLAYER, MAX_GAME_DIFFERENCE, MIN_WARMUP_SLOTS,
    MAX_REFEREE_DIFFERENCE, PRIORITY_WEIGHTS
)
from tournament_scheduler.services.helpers import (
    sort_by_time_slot, regular_matches, group_matches_by_team,
    group_matches_by_player, group_matches_by_time_slot
)


class ScheduleRule(ABC):
    """
    Base class for schedule rules.

    Subclasses set ``name`` and implement ``evaluate``. A higher priority means
    every violation of the rule costs more.
    """

    name = "Unnamed rule"

    def __init__(self, priority: int = 1):
        self.priority = priority

    def __repr__(self):
        return f"{type(self).__name__}(priority={self.priority})"

    @abstractmethod
    def evaluate(self, schedule) -> List[RuleViolation]:
        """Return the violations of this rule found in the schedule."""

    def _violation(self, description: str, matches: List[Match],
                   level: ViolationLevel = ViolationLevel.WARNING) -> RuleViolation:
        return RuleViolation(
            rule=self.name,
            description=description,
            matches=list(matches),
            level=level,
            priority=self.priority
        )


class AvoidBackToBackGames(ScheduleRule):
    """
    Avoid consecutive games for teams and players.

    A streak is a maximal run of strictly consecutive time slots in which the
    team or player plays. Refereeing neither breaks nor extends a streak.
    Two games in a row is a warning, three or more an alert. A player streak
    is only reported when it is not identical to a streak already reported
    for one of the player's teams.
    """

    name = "Avoid back-to-back games"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["back_to_back"]):
        super().__init__(priority)

    def evaluate(self, schedule) -> List[RuleViolation]:
        matches = sort_by_time_slot(regular_matches(schedule.matches))

        team_streaks: List[Tuple[Team, List[Match]]] = []
        for team, team_matches in group_matches_by_team(matches).items():
            for streak in self._find_streaks(team_matches):
                team_streaks.append((team, streak))

        violations = [
            self._streak_violation(f"Team {team.name}", streak)
            for team, streak in team_streaks
        ]

        for player_name, player_matches in group_matches_by_player(matches).items():
            for streak in self._find_streaks(player_matches):
                if self._is_covered_by_team(player_name, streak, team_streaks):
                    continue
                violations.append(self._streak_violation(f"Player {player_name}", streak))

        return violations

    @staticmethod
    def _find_streaks(matches: List[Match]) -> List[List[Match]]:
        streaks = []
        current = matches[:1]
        for match in matches[1:]:
            if match.time_slot == current[-1].time_slot + 1:
                current.append(match)
            else:
                if len(current) >= 2:
                    streaks.append(current)
                current = [match]
        if len(current) >= 2:
            streaks.append(current)
        return streaks

    @staticmethod
    def _is_covered_by_team(player_name: str, streak: List[Match],
                            team_streaks: List[Tuple[Team, List[Match]]]) -> bool:
        streak_ids = {m.id for m in streak}
        return any(
            team.has_player(player_name) and {m.id for m in team_streak} == streak_ids
            for team, team_streak in team_streaks
        )

    def _streak_violation(self, entity: str, streak: List[Match]) -> RuleViolation:
        first_slot = streak[0].time_slot
        last_slot = streak[-1].time_slot

        if len(streak) == 2:
            return self._violation(
                f"{entity}: 2 back-to-back games in time slots {first_slot} and {last_slot}",
                streak,
                ViolationLevel.WARNING
            )
        return self._violation(
            f"{entity}: {len(streak)} consecutive games in time slots {first_slot} to {last_slot}",
            streak,
            ViolationLevel.WARNING
        )


class AvoidFirstAndLastGame(ScheduleRule):
    """
    Avoid teams and players having both the first and the last game.

    The first period is setup plus the earliest regular time slot, the last
    period is the latest regular time slot plus packing down.
    """

    name = "Avoid having first and last game"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["first_last"]):
        super().__init__(priority)

    def evaluate(self, schedule) -> List[RuleViolation]:
        regular = sort_by_time_slot(regular_matches(schedule.matches))
        if not regular:
            return []

        setup = [m for m in schedule.matches if m.activity_type == ActivityType.SETUP]
        packdown = [m for m in schedule.matches if m.activity_type == ActivityType.PACKING_DOWN]
        first_matches = [m for m in regular if m.time_slot == regular[0].time_slot]
        last_matches = [m for m in regular if m.time_slot == regular[-1].time_slot]

        first_period = setup + first_matches
        last_period = last_matches + packdown
        period_matches = []
        for match in setup + first_matches + last_matches + packdown:
            if match not in period_matches:
                period_matches.append(match)

        violations = []

        # Teams
        first_teams = _period_teams(first_period)
        last_teams = _period_teams(last_period)
        flagged_teams = [team for team in first_teams if team in last_teams]
        for team in flagged_teams:
            relevant = [m for m in period_matches if team in _attending_teams(m)]
            violations.append(self._violation(
                f"Team {team.name} participates in both first period (setup + first game) "
                f"and last period (last game + packdown) of the day",
                relevant,
                ViolationLevel.ALERT
            ))

        # Players, unless one of their teams was already reported
        first_players = _period_players(first_period)
        last_players = _period_players(last_period)
        for player_name in first_players:
            if player_name not in last_players:
                continue
            if any(team.has_player(player_name) for team in flagged_teams):
                continue
            relevant = [
                m for m in period_matches
                if any(t.has_player(player_name) for t in _attending_teams(m))
            ]
            violations.append(self._violation(
                f"Player {player_name} participates in both first period (setup + first game) "
                f"and last period (last game + packdown) of the day",
                relevant,
                ViolationLevel.ALERT
            ))

        return violations


def _attending_teams(match: Match) -> List[Team]:
    """Teams a period counts: whole crew for activities, playing teams for games."""
    if match.is_special_activity():
        return match.get_all_involved_teams()
    return [t for t in match.playing_teams if not t.is_placeholder]


def _period_teams(matches: List[Match]) -> List[Team]:
    teams = []
    for match in matches:
        for team in _attending_teams(match):
            if team not in teams:
                teams.append(team)
    return teams


def _period_players(matches: List[Match]) -> List[str]:
    players = []
    for team in _period_teams(matches):
        for player in team.players:
            if player.name not in players:
                players.append(player.name)
    return players


class AvoidReffingBeforePlaying(ScheduleRule):
    """Avoid teams refereeing in a slot and playing in the next one."""

    name = "Avoid refereeing before playing"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["reffing_before"]):
        super().__init__(priority)

    def evaluate(self, schedule) -> List[RuleViolation]:
        by_slot = group_matches_by_time_slot(regular_matches(schedule.matches))
        slots = sorted(by_slot)
        violations = []

        for slot, next_slot in zip(slots, slots[1:]):
            for match in by_slot[slot]:
                referee = match.referee_team
                if referee is None or referee.is_placeholder:
                    continue
                for next_match in by_slot[next_slot]:
                    if next_match.plays(referee):
                        violations.append(self._violation(
                            f"Team {referee.name} referees in slot {slot} and plays in slot {next_slot}",
                            [match, next_match],
                            ViolationLevel.NOTE
                        ))

        return violations


class AvoidPlayingAfterSetup(ScheduleRule):
    """Teams doing setup must not play in the very next time slot."""

    name = "Avoid playing immediately after setup"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["avoid_playing_after_setup"]):
        super().__init__(priority)

    def evaluate(self, schedule) -> List[RuleViolation]:
        by_slot = group_matches_by_time_slot(schedule.matches)
        violations = []

        for setup in sort_by_time_slot(schedule.matches):
            if setup.activity_type != ActivityType.SETUP:
                continue
            next_slot = setup.time_slot + 1
            for next_match in by_slot.get(next_slot, []):
                if next_match.is_special_activity():
                    continue
                for team in setup.get_all_involved_teams():
                    if next_match.plays(team):
                        violations.append(self._violation(
                            f"Team {team.name} does setup in slot {setup.time_slot} "
                            f"and plays immediately after in slot {next_slot}",
                            [setup, next_match],
                            ViolationLevel.WARNING
                        ))

        return violations


class ManageRestTimeAndGaps(ScheduleRule):
    """Players need enough rest between games without excessive gaps."""

    name = "Manage rest time and gaps"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["manage_rest_and_gaps"],
                 min_rest_slots: int = MIN_REST_SLOTS, max_gap_slots: int = MAX_GAP_SLOTS):
        super().__init__(priority)
        self.min_rest_slots = min_rest_slots
        self.max_gap_slots = max_gap_slots

    def evaluate(self, schedule) -> List[RuleViolation]:
        matches = sort_by_time_slot(regular_matches(schedule.matches))
        violations = []

        for player_name, player_matches in group_matches_by_player(matches).items():
            for prev_match, match in zip(player_matches, player_matches[1:]):
                gap = match.time_slot - prev_match.time_slot - 1

                if gap < self.min_rest_slots:
                    violations.append(self._violation(
                        f"Player {player_name} has insufficient rest ({gap} slots) between games "
                        f"in slots {prev_match.time_slot} and {match.time_slot}",
                        [prev_match, match],
                        ViolationLevel.NOTE
                    ))
                elif gap > self.max_gap_slots:
                    violations.append(self._violation(
                        f"Player {player_name} has a large gap ({gap} slots) between games "
                        f"in slots {prev_match.time_slot} and {match.time_slot}",
                        [prev_match, match],
                        ViolationLevel.WARNING
                    ))

        return violations


class LimitVenueTime(ScheduleRule):
    """
    Limit how long teams and players have to stay at the venue.

    Time at the venue runs from the start of the first appearance (playing,
    refereeing, setup or packing down) to the end of the last one. A player
    inherits every appearance of every team they belong to. Player violations
    are only reported when they exceed every violating team of theirs by more
    than VENUE_TIME_TOLERANCE_HOURS.
    """

    name = "Limit venue time"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["limit_venue_time"],
                 max_hours: float = MAX_VENUE_HOURS, minutes_per_slot: int = MINUTES_PER_SLOT,
                 tolerance_hours: float = VENUE_TIME_TOLERANCE_HOURS):
        super().__init__(priority)
        self.max_hours = max_hours
        self.minutes_per_slot = minutes_per_slot
        self.tolerance_hours = tolerance_hours

    def evaluate(self, schedule) -> List[RuleViolation]:
        team_appearances: Dict[Team, List[Match]] = defaultdict(list)
        for match in sort_by_time_slot(schedule.matches):
            for team in match.get_all_involved_teams():
                team_appearances[team].append(match)

        violations = []
        team_hours: Dict[Team, float] = {}

        for team, appearances in team_appearances.items():
            if len(appearances) < 2:
                continue
            hours = self._hours_at_venue(appearances)
            if hours > self.max_hours:
                team_hours[team] = hours
                violations.append(self._violation(
                    f"Team {team.name} needs to be at venue for {hours:.1f} hours (max: {self.max_hours:g}h)",
                    appearances
                ))

        memberships: Dict[str, List[Team]] = defaultdict(list)
        for team in team_appearances:
            for player in team.players:
                memberships[player.name].append(team)

        for player_name, teams in memberships.items():
            appearances = sort_by_time_slot({
                m.id: m for team in teams for m in team_appearances[team]
            }.values())
            if len(appearances) < 2:
                continue
            hours = self._hours_at_venue(appearances)
            if hours <= self.max_hours:
                continue

            covered = any(
                team in team_hours and hours <= team_hours[team] + self.tolerance_hours
                for team in teams
            )
            if not covered:
                violations.append(self._violation(
                    f"Player {player_name} needs to be at venue for {hours:.1f} hours (max: {self.max_hours:g}h)",
                    appearances
                ))

        return violations

    def _hours_at_venue(self, appearances: List[Match]) -> float:
        slots_span = appearances[-1].time_slot - appearances[0].time_slot + 1
        return slots_span * self.minutes_per_slot / 60


class EnsureFairFieldDistribution(ScheduleRule):
    """Teams should not play most of their games on the same field."""

    name = "Ensure fair field distribution"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["fair_field_distribution"],
                 field_distribution_threshold: float = FIELD_DISTRIBUTION_THRESHOLD,
                 min_games: int = FIELD_DISTRIBUTION_MIN_GAMES):
        super().__init__(priority)
        self.field_distribution_threshold = field_distribution_threshold
        self.min_games = min_games

    def evaluate(self, schedule) -> List[RuleViolation]:
        violations = []

        for team, team_matches in group_matches_by_team(regular_matches(schedule.matches)).items():
            total_games = len(team_matches)
            if total_games < self.min_games:
                continue

            field_counts: Dict[str, int] = defaultdict(int)
            for match in team_matches:
                field_counts[match.field] += 1

            dominant_field = max(field_counts, key=field_counts.get)
            max_field_games = field_counts[dominant_field]
            if max_field_games / total_games > self.field_distribution_threshold:
                violations.append(self._violation(
                    f"Team {team.name} plays {max_field_games}/{total_games} games on {dominant_field}",
                    [m for m in team_matches if m.field == dominant_field]
                ))

        return violations


class ManagePlayerGameBalance(ScheduleRule):
    """Limit games per player and keep game counts even within a division."""

    name = "Manage player game balance"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["manage_player_game_balance"],
                 max_games: int = MAX_GAMES_PER_PLAYER, max_game_difference: int = MAX_GAME_DIFFERENCE):
        super().__init__(priority)
        self.max_games = max_games
        self.max_game_difference = max_game_difference

    def evaluate(self, schedule) -> List[RuleViolation]:
        matches = regular_matches(schedule.matches)
        violations = []

        for player_name, player_matches in group_matches_by_player(matches).items():
            if len(player_matches) > self.max_games:
                violations.append(self._violation(
                    f"Player {player_name} is scheduled for {len(player_matches)} games (max: {self.max_games})",
                    player_matches
                ))

        division_counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
        for match in matches:
            for player in match.get_players():
                division_counts[match.division.value][player.name] += 1

        for division, counts in division_counts.items():
            min_games = min(counts.values())
            max_games = max(counts.values())
            if max_games - min_games > self.max_game_difference:
                violations.append(self._violation(
                    f"Game distribution imbalance in {division}: {min_games}-{max_games} games "
                    f"(max difference: {self.max_game_difference})",
                    []
                ))

        return violations


class EnsurePlayerWarmupTime(ScheduleRule):
    """Players should not play in the opening slots of the day."""

    name = "Ensure player warm-up time"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["warmup_time"], min_warmup_slots: int = MIN_WARMUP_SLOTS):
        super().__init__(priority)
        self.min_warmup_slots = min_warmup_slots

    def evaluate(self, schedule) -> List[RuleViolation]:
        if not schedule.matches:
            return []
        day_start = min(m.time_slot for m in schedule.matches)
        matches = sort_by_time_slot(regular_matches(schedule.matches))
        violations = []

        for player_name, player_matches in group_matches_by_player(matches).items():
            first_match = player_matches[0]
            if first_match.time_slot - day_start < self.min_warmup_slots:
                violations.append(self._violation(
                    f"Player {player_name} has first game in slot {first_match.time_slot} "
                    f"(needs {self.min_warmup_slots} warm-up slots)",
                    [first_match],
                    ViolationLevel.NOTE
                ))

        return violations


class BalanceRefereeAssignments(ScheduleRule):
    """Referee duties should be spread evenly over the refereeing teams."""

    name = "Balance referee assignments"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["balance_referee"],
                 max_referee_difference: int = MAX_REFEREE_DIFFERENCE):
        super().__init__(priority)
        self.max_referee_difference = max_referee_difference

    def evaluate(self, schedule) -> List[RuleViolation]:
        counts: Dict[Team, int] = defaultdict(int)
        for match in schedule.matches:
            if match.referee_team is not None and not match.referee_team.is_placeholder:
                counts[match.referee_team] += 1

        if not counts:
            return []

        min_assignments = min(counts.values())
        max_assignments = max(counts.values())
        if max_assignments - min_assignments > self.max_referee_difference:
            return [self._violation(
                f"Referee assignment imbalance: {min_assignments}-{max_assignments} assignments "
                f"(max difference: {self.max_referee_difference})",
                []
            )]
        return []


class DetectMixedDivisionsInTimeSlot(ScheduleRule):
    """Flag time slots holding games of more than one division."""

    name = "Detect mixed divisions in time slot"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["mixed_divisions_timeslot"]):
        super().__init__(priority)

    def evaluate(self, schedule) -> List[RuleViolation]:
        violations = []
        by_slot = group_matches_by_time_slot(regular_matches(schedule.matches))

        for slot in sorted(by_slot):
            slot_matches = by_slot[slot]
            divisions = []
            for match in slot_matches:
                if match.division.value not in divisions:
                    divisions.append(match.division.value)
            if len(divisions) > 1:
                violations.append(self._violation(
                    f"Time slot {slot} has multiple divisions: {', '.join(divisions)}",
                    slot_matches
                ))

        return violations


class PreventClubRefereeConflict(ScheduleRule):
    """
    Teams should not referee while another team of their club is playing.

    The club is the first word of the team name ("Falcons Red" -> "Falcons").
    """

    name = "Prevent club referee conflict"

    def __init__(self, priority: int = PRIORITY_WEIGHTS["club_referee_conflict"]):
        super().__init__(priority)

    def evaluate(self, schedule) -> List[RuleViolation]:
        violations = []
        by_slot = group_matches_by_time_slot(regular_matches(schedule.matches))

        for slot in sorted(by_slot):
            slot_matches = by_slot[slot]
            if len(slot_matches) <= 1:
                continue

            for match in slot_matches:
                referee = match.referee_team
                if referee is None or referee.is_placeholder:
                    continue
                referee_club = extract_club_name(referee.name)

                for other in slot_matches:
                    if other is match:
                        continue
                    for team in other.playing_teams:
                        if team != referee and extract_club_name(team.name) == referee_club:
                            violations.append(self._violation(
                                f"Team {referee.name} is refereeing in slot {slot} while club team "
                                f"({team.name}) is playing in the same slot",
                                [match, other]
                            ))
                            break

        return violations


def extract_club_name(team_name: str) -> Optional[str]:
    if not team_name:
        return None
    return team_name.strip().split(" ")[0]


class CustomRule(ScheduleRule):
    """Rule backed by a plain function returning violations."""

    def __init__(self, name: str, evaluate_function: Callable[..., List[RuleViolation]], priority: int = 1):
        super().__init__(priority)
        self.name = name
        self.evaluate_function = evaluate_function

    def evaluate(self, schedule) -> List[RuleViolation]:
        return list(self.evaluate_function(schedule))

"""
Schedule model: an ordered collection of matches plus its last evaluation.
"""

import random
from dataclasses import replace
from collections import defaultdict
from typing import List, Optional, Dict, Any, Callable

from tournament_scheduler.models.models import Match, RuleViolation, ViolationLevel
from tournament_scheduler.core.config import DOUBLE_BOOKING_PRIORITY, DEFAULT_ITERATIONS


class Schedule:
    """
    A tournament schedule.

    The schedule owns its matches. Copies share Team and Player objects, which
    are reference data, but never Match objects, so a copy can move matches
    without affecting the schedule it came from.
    """

    def __init__(self, matches: Optional[List[Match]] = None, rules: Optional[List] = None):
        self.matches: List[Match] = list(matches or [])
        self.rules = list(rules or [])
        self._violations: List[RuleViolation] = []
        self._score = 0
        self.original_score: Optional[int] = None

    def __len__(self):
        return len(self.matches)

    def __repr__(self):
        return f"Schedule({len(self.matches)} matches, score={self._score})"

    @property
    def violations(self) -> List[RuleViolation]:
        return list(self._violations)

    @property
    def score(self) -> int:
        return self._score

    def has_critical_violations(self) -> bool:
        return any(v.is_critical for v in self._violations)

    def evaluate(self, rules: Optional[List] = None) -> int:
        """
        Evaluate the schedule and return its score.

        The double-booking check always runs. Each rule then adds its number of
        violations times its priority to the score.

        Args:
            rules: Rules to evaluate, defaults to the schedule's own rules

        Returns:
            The new score (lower is better, 0 means no violations)
        """
        if rules is None:
            rules = self.rules

        self.matches = sorted(self.matches, key=lambda m: m.time_slot)
        violations = self._check_double_booking()
        score = len(violations) * DOUBLE_BOOKING_PRIORITY

        for rule in rules:
            rule_violations = rule.evaluate(self)
            for violation in rule_violations:
                violation.priority = rule.priority
            violations.extend(rule_violations)
            score += len(rule_violations) * rule.priority

        self._violations = violations
        self._score = score
        return score

    def _check_double_booking(self) -> List[RuleViolation]:
        """Teams may hold at most one role (playing or refereeing) per time slot."""
        violations = []
        by_slot: Dict[int, List[Match]] = defaultdict(list)
        for match in self.matches:
            by_slot[match.time_slot].append(match)

        for time_slot in sorted(by_slot):
            roles = defaultdict(list)
            for match in by_slot[time_slot]:
                for team in (match.team1, match.team2, match.referee_team):
                    if team is not None and not team.is_placeholder:
                        roles[team].append(match)

            for team, team_matches in roles.items():
                if len(team_matches) <= 1:
                    continue
                involved = []
                for match in team_matches:
                    if match not in involved:
                        involved.append(match)
                violations.append(RuleViolation(
                    rule="Double booking",
                    description=f"Team {team.name} has {len(team_matches)} assignments in slot {time_slot}",
                    matches=involved,
                    level=ViolationLevel.CRITICAL,
                    priority=DOUBLE_BOOKING_PRIORITY
                ))

        return violations

    def deep_copy(self) -> "Schedule":
        """Copy every match; teams, players and rules stay shared."""
        copies = [m.copy() for m in self.matches]
        by_id = {m.id: m for m in copies}

        new_schedule = Schedule(copies, self.rules)
        new_schedule._violations = [
            replace(v, matches=[by_id.get(m.id, m) for m in v.matches])
            for v in self._violations
        ]
        new_schedule._score = self._score
        new_schedule.original_score = self.original_score
        return new_schedule

    def get_time_slots(self) -> List[int]:
        return sorted({m.time_slot for m in self.matches})

    def get_fields(self) -> List[str]:
        """Distinct fields used by regular matches."""
        return sorted({m.field for m in self.matches if not m.is_special_activity()})

    def find_match(self, match: Match) -> Optional[Match]:
        """Find this schedule's copy of a match by team pair, slot and field."""
        key = match.key()
        for candidate in self.matches:
            if candidate.key() == key:
                return candidate
        return None

    # Mutation operators

    def randomize(self, rng: Optional[random.Random] = None) -> "Schedule":
        from tournament_scheduler.services.mutations import randomize
        return randomize(self, rng)

    def swap_matches(self, match1: Match, match2: Match) -> Optional["Schedule"]:
        from tournament_scheduler.services.mutations import swap_matches
        return swap_matches(self, match1, match2)

    def swap_time_slots(self, time_slot1: int, time_slot2: int) -> Optional["Schedule"]:
        from tournament_scheduler.services.mutations import swap_time_slots
        return swap_time_slots(self, time_slot1, time_slot2)

    def move_matches_to_time_slot(self, matches: List[Match], target_time_slot: int) -> Optional["Schedule"]:
        from tournament_scheduler.services.mutations import move_matches_to_time_slot
        return move_matches_to_time_slot(self, matches, target_time_slot)

    def fix_field_conflicts(self, rng: Optional[random.Random] = None) -> "Schedule":
        from tournament_scheduler.services.mutations import fix_field_conflicts
        return fix_field_conflicts(self, rng)

    def optimize(self, rules: Optional[List] = None, iterations: int = DEFAULT_ITERATIONS,
                 observer: Optional[Callable] = None, strategy: Optional[str] = None,
                 rng: Optional[random.Random] = None) -> "Schedule":
        """Run the optimizer from this schedule and return the best schedule found."""
        from tournament_scheduler.services.optimizer import ScheduleOptimizer
        optimizer = ScheduleOptimizer(self, rules=rules, strategy=strategy, rng=rng)
        return optimizer.optimize(iterations, observer=observer)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "score": self._score,
            "original_score": self.original_score,
            "matches": [m.to_dict() for m in self.matches],
            "violations": [v.to_dict() for v in self._violations],
        }

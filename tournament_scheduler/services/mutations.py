"""
Mutation operators used by the optimization strategies.

Every operator works on a deep copy and returns a new Schedule, or None when
the move is not possible (missing, locked or special matches, no room in the
target slot). Locked matches and special activities never change slot or field.
"""

import random
from collections import defaultdict
from typing import Dict, List, Optional, Set

from tournament_scheduler.models.models import Match, Team
from tournament_scheduler.core.config import BLOCK_SHUFFLE_PROBABILITY, DIVISION_SHUFFLE_PROBABILITY
from tournament_scheduler.core.logging_config import get_logger
from tournament_scheduler.services.helpers import (
    sort_by_time_slot, group_matches_by_division, group_matches_by_time_slot
)

logger = get_logger(__name__)


def randomize(schedule, rng: Optional[random.Random] = None):
    """
    Produce a perturbed copy of the schedule.

    One of three moves is drawn per call: block shuffle, within-division shuffle
    or scatter. Fields are repaired and referees reassigned afterwards.
    """
    rng = rng or random.Random()
    new_schedule = schedule.deep_copy()
    movable = [m for m in new_schedule.matches if m.is_movable()]

    if movable:
        roll = rng.random()
        if roll < BLOCK_SHUFFLE_PROBABILITY:
            _block_shuffle(movable, rng)
        elif roll < BLOCK_SHUFFLE_PROBABILITY + DIVISION_SHUFFLE_PROBABILITY:
            _division_shuffle(movable, rng)
        elif not _scatter(new_schedule, movable, rng):
            _division_shuffle(movable, rng)

        repair_fields(new_schedule, rng)
        assign_referees(new_schedule, rng)

    new_schedule.evaluate()
    return new_schedule


def _block_shuffle(movable: List[Match], rng: random.Random):
    """Lay divisions out as contiguous blocks over the existing slots."""
    slots = sorted(m.time_slot for m in movable)
    by_division = group_matches_by_division(movable)
    divisions = list(by_division)
    rng.shuffle(divisions)

    index = 0
    for division in divisions:
        block = by_division[division]
        rng.shuffle(block)
        for match in block:
            match.time_slot = slots[index]
            index += 1


def _division_shuffle(movable: List[Match], rng: random.Random):
    """Shuffle matches inside each division over that division's own slots."""
    for division_matches in group_matches_by_division(movable).values():
        slots = [m.time_slot for m in division_matches]
        rng.shuffle(slots)
        for match, slot in zip(division_matches, slots):
            match.time_slot = slot


def _scatter(schedule, movable: List[Match], rng: random.Random) -> bool:
    """
    Spread matches over every existing non-special slot.

    Returns False without touching anything when the slots cannot hold all
    movable matches.
    """
    field_count = len(schedule.get_fields())
    special_slots = {m.time_slot for m in schedule.matches if m.is_special_activity()}
    locked = [m for m in schedule.matches if not m.is_movable() and not m.is_special_activity()]

    capacity: Dict[int, int] = {}
    for slot in schedule.get_time_slots():
        if slot in special_slots:
            continue
        capacity[slot] = field_count - sum(1 for m in locked if m.time_slot == slot)

    openings = [slot for slot, free in capacity.items() for _ in range(max(free, 0))]
    if len(openings) < len(movable):
        return False

    rng.shuffle(openings)
    for match, slot in zip(movable, openings):
        match.time_slot = slot
    return True


def repair_fields(schedule, rng: random.Random):
    """Give every match in a slot its own field, keeping locked fields."""
    fields = schedule.get_fields()

    for slot, slot_matches in group_matches_by_time_slot(schedule.matches).items():
        used_fields = [m.field for m in slot_matches]
        if len(used_fields) == len(set(used_fields)):
            continue

        fixed = [m for m in slot_matches if not m.is_movable()]
        pool = [f for f in fields if f not in {m.field for m in fixed}]
        rng.shuffle(pool)

        for match in slot_matches:
            if not match.is_movable():
                continue
            if not pool:
                logger.warning(f"More matches than fields in time slot {slot}; {match} keeps {match.field}")
                continue
            match.field = pool.pop()


def fix_field_conflicts(schedule, rng: Optional[random.Random] = None):
    """Return a copy where no time slot has two matches on the same field."""
    new_schedule = schedule.deep_copy()
    repair_fields(new_schedule, rng or random.Random())
    new_schedule.evaluate()
    return new_schedule


def _busy_teams(matches: List[Match]) -> Set[Team]:
    busy = set()
    for match in matches:
        busy.update(match.get_all_involved_teams())
    return busy


def assign_referees(schedule, rng: Optional[random.Random] = None):
    """
    Reassign referees per division from the referees already in use there.

    Matches are served slot by slot, cycling through the shuffled pool. A
    referee never plays in the match, never has two duties in one slot and is
    not busy elsewhere in the schedule at that time. Matches the pool cannot
    serve fall back to any free team of the division, otherwise they stay
    without a referee.
    """
    rng = rng or random.Random()
    all_by_slot = group_matches_by_time_slot(schedule.matches)

    for division, division_matches in group_matches_by_division(schedule.matches).items():
        movable = [m for m in division_matches if m.is_movable()]
        pool: List[Team] = []
        for match in division_matches:
            if match.is_special_activity() or match.referee_team is None:
                continue
            if match.referee_team.is_placeholder or match.referee_team in pool:
                continue
            pool.append(match.referee_team)
        if not pool or not movable:
            continue

        rng.shuffle(pool)
        for match in movable:
            match.referee_team = None

        division_teams: List[Team] = []
        for match in division_matches:
            for team in match.playing_teams:
                if not team.is_placeholder and team not in division_teams:
                    division_teams.append(team)

        cursor = 0
        for slot, slot_matches in sorted(group_matches_by_time_slot(movable).items()):
            for match in sort_by_time_slot(slot_matches):
                busy = _busy_teams(all_by_slot.get(slot, []))

                for _ in range(len(pool)):
                    candidate = pool[cursor % len(pool)]
                    cursor += 1
                    if candidate not in busy:
                        match.referee_team = candidate
                        break

                if match.referee_team is None:
                    for team in division_teams:
                        if team not in busy:
                            match.referee_team = team
                            break

                if match.referee_team is None:
                    logger.debug(f"Could not assign a referee for {match}")

    return schedule


def _find_all(schedule, matches: List[Match]) -> Optional[List[Match]]:
    found = [schedule.find_match(m) for m in matches]
    if any(m is None for m in found):
        return None
    return found


def swap_matches(schedule, match1: Match, match2: Match):
    """Exchange the time slot and field of two matches."""
    new_schedule = schedule.deep_copy()
    found = _find_all(new_schedule, [match1, match2])
    if found is None:
        return None

    first, second = found
    if not first.is_movable() or not second.is_movable():
        return None

    first.time_slot, second.time_slot = second.time_slot, first.time_slot
    first.field, second.field = second.field, first.field

    new_schedule.evaluate()
    return new_schedule


def swap_time_slots(schedule, time_slot1: int, time_slot2: int):
    """Exchange every match of two time slots. Empty slots are allowed."""
    new_schedule = schedule.deep_copy()
    first = [m for m in new_schedule.matches if m.time_slot == time_slot1]
    second = [m for m in new_schedule.matches if m.time_slot == time_slot2]

    if any(not m.is_movable() for m in first + second):
        return None

    for match in first:
        match.time_slot = time_slot2
    for match in second:
        match.time_slot = time_slot1

    new_schedule.evaluate()
    return new_schedule


def move_matches_to_time_slot(schedule, matches: List[Match], target_time_slot: int):
    """Move matches into an existing slot, onto fields that slot leaves free."""
    new_schedule = schedule.deep_copy()
    found = _find_all(new_schedule, matches)
    if found is None:
        return None
    if any(not m.is_movable() for m in found):
        return None
    if target_time_slot not in new_schedule.get_time_slots():
        return None

    moving_ids = {m.id for m in found}
    staying = [
        m for m in new_schedule.matches
        if m.time_slot == target_time_slot and m.id not in moving_ids
    ]
    if any(m.is_special_activity() for m in staying):
        return None

    fields = new_schedule.get_fields()
    if len(staying) + len(found) > len(fields):
        return None

    free_fields = [f for f in fields if f not in {m.field for m in staying}]
    for match, field_name in zip(found, free_fields):
        match.time_slot = target_time_slot
        match.field = field_name

    new_schedule.evaluate()
    return new_schedule


def field_usage(schedule) -> Dict[int, Dict[str, int]]:
    """Number of matches per field in every time slot."""
    usage: Dict[int, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for match in schedule.matches:
        usage[match.time_slot][match.field] += 1
    return {slot: dict(counts) for slot, counts in usage.items()}

"""
Registry of the built-in scheduling rules.

Each entry describes a rule (name, category, tunable parameters) so the API and
the CLI can list the rules and build configured instances from plain dicts.
"""

from typing import Any, Dict, Iterable, List, Optional

from tournament_scheduler.core.config import (
    PRIORITY_WEIGHTS, MAX_VENUE_HOURS, MINUTES_PER_SLOT, MIN_REST_SLOTS, MAX_GAP_SLOTS,
    FIELD_DISTRIBUTION_THRESHOLD, FIELD_DISTRIBUTION_MIN_GAMES, VENUE_TIME_TOLERANCE_HOURS,
    MAX_GAMES_PER_PLAYER, MAX_GAME_DIFFERENCE, MIN_WARMUP_SLOTS, MAX_REFEREE_DIFFERENCE
)
from tournament_scheduler.core.logging_config import get_logger
from tournament_scheduler.services.rules import (
    ScheduleRule, AvoidBackToBackGames, AvoidFirstAndLastGame, AvoidReffingBeforePlaying,
    AvoidPlayingAfterSetup, ManageRestTimeAndGaps, LimitVenueTime, EnsureFairFieldDistribution,
    ManagePlayerGameBalance, EnsurePlayerWarmupTime, BalanceRefereeAssignments,
    DetectMixedDivisionsInTimeSlot, PreventClubRefereeConflict
)

logger = get_logger(__name__)


RULES_REGISTRY: Dict[str, Dict[str, Any]] = {
    "avoid_playing_after_setup": {
        "name": "Avoid playing immediately after setup",
        "description": "Teams doing setup should not play in the next time slot",
        "category": "temporal",
        "rule_class": AvoidPlayingAfterSetup,
        "parameters": {},
        "enabled": True,
    },
    "back_to_back": {
        "name": "Avoid back-to-back games",
        "description": "Teams and players should not play in consecutive time slots",
        "category": "temporal",
        "rule_class": AvoidBackToBackGames,
        "parameters": {},
        "enabled": True,
    },
    "first_last": {
        "name": "Avoid first and last game",
        "description": "Teams and players should not be on duty at both the start and the end of the day",
        "category": "temporal",
        "rule_class": AvoidFirstAndLastGame,
        "parameters": {},
        "enabled": True,
    },
    "limit_venue_time": {
        "name": "Limit venue time",
        "description": "Teams and players should not need to stay at the venue too long",
        "category": "temporal",
        "rule_class": LimitVenueTime,
        "parameters": {
            "max_hours": MAX_VENUE_HOURS,
            "minutes_per_slot": MINUTES_PER_SLOT,
            "tolerance_hours": VENUE_TIME_TOLERANCE_HOURS,
        },
        "enabled": True,
    },
    "reffing_before": {
        "name": "Avoid refereeing before playing",
        "description": "Teams should not referee right before they play",
        "category": "referee",
        "rule_class": AvoidReffingBeforePlaying,
        "parameters": {},
        "enabled": True,
    },
    "balance_referee": {
        "name": "Balance referee assignments",
        "description": "Referee duties should be spread evenly between teams",
        "category": "referee",
        "rule_class": BalanceRefereeAssignments,
        "parameters": {
            "max_referee_difference": MAX_REFEREE_DIFFERENCE,
        },
        "enabled": True,
    },
    "fair_field_distribution": {
        "name": "Ensure fair field distribution",
        "description": "Teams should not play most of their games on the same field",
        "category": "field",
        "rule_class": EnsureFairFieldDistribution,
        "parameters": {
            "field_distribution_threshold": FIELD_DISTRIBUTION_THRESHOLD,
            "min_games": FIELD_DISTRIBUTION_MIN_GAMES,
        },
        "enabled": True,
    },
    "manage_rest_and_gaps": {
        "name": "Manage rest time and gaps",
        "description": "Players need rest between games without excessive waiting",
        "category": "player",
        "rule_class": ManageRestTimeAndGaps,
        "parameters": {
            "min_rest_slots": MIN_REST_SLOTS,
            "max_gap_slots": MAX_GAP_SLOTS,
        },
        "enabled": True,
    },
    "manage_player_game_balance": {
        "name": "Manage player game balance",
        "description": "Players should play a similar number of games",
        "category": "player",
        "rule_class": ManagePlayerGameBalance,
        "parameters": {
            "max_games": MAX_GAMES_PER_PLAYER,
            "max_game_difference": MAX_GAME_DIFFERENCE,
        },
        "enabled": True,
    },
    "warmup_time": {
        "name": "Ensure player warm-up time",
        "description": "Players should not play in the opening slots of the day",
        "category": "player",
        "rule_class": EnsurePlayerWarmupTime,
        "parameters": {
            "min_warmup_slots": MIN_WARMUP_SLOTS,
        },
        "enabled": False,
    },
    "mixed_divisions_timeslot": {
        "name": "Detect mixed divisions in time slot",
        "description": "Time slots should hold games of a single division",
        "category": "division",
        "rule_class": DetectMixedDivisionsInTimeSlot,
        "parameters": {},
        "enabled": True,
    },
    "club_referee_conflict": {
        "name": "Prevent club referee conflict",
        "description": "Teams should not referee while a team of their club plays",
        "category": "referee",
        "rule_class": PreventClubRefereeConflict,
        "parameters": {},
        "enabled": True,
    },
}


def list_rules() -> List[Dict[str, Any]]:
    """Describe every registered rule (without the implementing class)."""
    return [
        {
            "id": rule_id,
            "name": entry["name"],
            "description": entry["description"],
            "category": entry["category"],
            "priority": PRIORITY_WEIGHTS[rule_id],
            "parameters": dict(entry["parameters"]),
            "enabled": entry["enabled"],
        }
        for rule_id, entry in RULES_REGISTRY.items()
    ]


def create_rule(rule_id: str, priority: Optional[int] = None,
                parameters: Optional[Dict[str, Any]] = None) -> ScheduleRule:
    """
    Instantiate a registered rule.

    Raises:
        ValueError: If the rule id or a parameter name is unknown
    """
    if rule_id not in RULES_REGISTRY:
        raise ValueError(f"Unknown rule: {rule_id}")

    entry = RULES_REGISTRY[rule_id]
    parameters = parameters or {}
    unknown = set(parameters) - set(entry["parameters"])
    if unknown:
        raise ValueError(f"Unknown parameters for rule {rule_id}: {', '.join(sorted(unknown))}")

    kwargs = dict(entry["parameters"])
    kwargs.update(parameters)
    if priority is None:
        priority = PRIORITY_WEIGHTS[rule_id]
    if priority <= 0:
        raise ValueError(f"Priority for rule {rule_id} must be positive")

    return entry["rule_class"](priority=priority, **kwargs)


def get_default_rules() -> List[ScheduleRule]:
    """All rules enabled by default, with their default priorities."""
    return [create_rule(rule_id) for rule_id, entry in RULES_REGISTRY.items() if entry["enabled"]]


def build_rules(configs: Optional[Iterable[Dict[str, Any]]]) -> List[ScheduleRule]:
    """
    Build rules from configuration dicts.

    Each config holds an ``id`` and optionally ``priority``, ``parameters`` and
    ``enabled``. Passing None returns the default rule set.
    """
    if configs is None:
        return get_default_rules()

    rules = []
    for config in configs:
        if not config.get("enabled", True):
            continue
        rules.append(create_rule(
            config.get("id"),
            priority=config.get("priority"),
            parameters=config.get("parameters"),
        ))

    logger.debug(f"Built {len(rules)} rules from configuration")
    return rules

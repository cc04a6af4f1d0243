"""
Data models for the scheduling engine.
"""

from .models import (
    Division,
    ActivityType,
    ViolationLevel,
    Player,
    Team,
    Match,
    RuleViolation
)
from .schedule import Schedule

__all__ = [
    "Division",
    "ActivityType",
    "ViolationLevel",
    "Player",
    "Team",
    "Match",
    "RuleViolation",
    "Schedule"
]

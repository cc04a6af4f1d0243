"""
Services for rule evaluation, schedule mutation and optimization.
"""

from .rules import ScheduleRule, CustomRule
from .rules_registry import RULES_REGISTRY, get_default_rules, build_rules, list_rules
from .strategies import OPTIMIZATION_STRATEGIES, get_strategy
from .optimizer import ScheduleOptimizer, ProgressInfo, optimize_schedule
from .schedule_builder import build_schedule

__all__ = [
    "ScheduleRule",
    "CustomRule",
    "RULES_REGISTRY",
    "get_default_rules",
    "build_rules",
    "list_rules",
    "OPTIMIZATION_STRATEGIES",
    "get_strategy",
    "ScheduleOptimizer",
    "ProgressInfo",
    "optimize_schedule",
    "build_schedule"
]

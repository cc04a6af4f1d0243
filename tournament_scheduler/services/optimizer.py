"""
Optimization driver.

Runs a strategy for a fixed number of iterations, keeps the best schedule seen
and reports progress snapshots. The loop is a generator so callers can stop at
any yield point; optimize() and optimize_async() drain it.
"""

import asyncio
import random
from dataclasses import dataclass, field
from typing import Callable, Iterator, List, Optional

from tournament_scheduler.models.models import RuleViolation
from tournament_scheduler.models.schedule import Schedule
from tournament_scheduler.core.config import DEFAULT_ITERATIONS, YIELD_INTERVAL, RANDOM_SEED
from tournament_scheduler.core.logging_config import get_logger
from tournament_scheduler.services.strategies import (
    OptimizationState, OptimizationStrategy, get_strategy, score_against
)

logger = get_logger(__name__)


@dataclass
class ProgressInfo:
    """Snapshot handed to progress observers."""
    iteration: int
    progress: float
    current_score: int
    best_score: int
    violations: List[RuleViolation] = field(default_factory=list)
    best_schedule_snapshot: Optional[Schedule] = None

    def to_dict(self):
        return {
            "iteration": self.iteration,
            "progress": self.progress,
            "current_score": self.current_score,
            "best_score": self.best_score,
            "violations": len(self.violations),
        }


def make_rng(seed=None) -> random.Random:
    """Random source for a run; falls back to RANDOM_SEED from the environment."""
    if seed is None and RANDOM_SEED not in (None, ""):
        seed = int(RANDOM_SEED)
    return random.Random(seed)


class ScheduleOptimizer:
    """
    Optimizes a schedule with one of the registered strategies.

    The starting schedule is never modified: the optimizer works on copies and
    the best schedule it returns is independent of every other schedule.
    """

    def __init__(self, schedule: Schedule, rules: Optional[List] = None,
                 strategy=None, rng: Optional[random.Random] = None, seed: Optional[int] = None,
                 yield_interval: int = YIELD_INTERVAL):
        """
        Initialize the optimizer.

        Args:
            schedule: Starting schedule
            rules: Rules to optimize against (defaults to the schedule's own rules)
            strategy: Strategy id or OptimizationStrategy instance
            rng: Random source; built from seed when not given
            seed: Seed for a new random source
            yield_interval: Iterations between progress snapshots
        """
        if rules is None:
            rules = schedule.rules
        self.rules = list(rules)
        self.schedule = schedule
        if isinstance(strategy, OptimizationStrategy):
            self.strategy = strategy
        else:
            self.strategy = get_strategy(strategy)
        self.rng = rng or make_rng(seed)
        self.yield_interval = max(1, yield_interval)

        self.best_schedule: Optional[Schedule] = None
        self.best_score: Optional[int] = None

    def iter_optimize(self, iterations: int = DEFAULT_ITERATIONS,
                      observer: Optional[Callable[[ProgressInfo], None]] = None) -> Iterator[ProgressInfo]:
        """
        Run the optimization, yielding a snapshot at every yield point.

        A snapshot is produced every yield_interval iterations, immediately when
        the best score improves and once at the end. The observer, if given,
        receives the same snapshots.
        """
        start = self.schedule.deep_copy()
        start.rules = list(self.rules)
        initial_score = start.evaluate()

        state = OptimizationState(
            current_schedule=start,
            current_score=initial_score,
            best_schedule=start.deep_copy(),
            best_score=initial_score,
        )
        self.best_schedule = state.best_schedule
        self.best_score = state.best_score

        logger.info(
            f"Starting {self.strategy.name} for {iterations} iterations "
            f"(initial score: {initial_score}, {len(start.violations)} violations)"
        )

        for iteration in range(1, iterations + 1):
            result = self.strategy.step(state, iteration, self.rules, self.rng)

            if result.current_schedule is not None:
                state.current_schedule = result.current_schedule
                state.current_score = score_against(result.current_schedule, self.rules)
            if result.storage is not None:
                state.storage = result.storage

            improved = False
            if result.best_schedule is not None:
                candidate_score = score_against(result.best_schedule, self.rules)
                if candidate_score < state.best_score:
                    state.best_schedule = result.best_schedule
                    state.best_score = candidate_score
                    improved = True
                    logger.info(f"Iteration {iteration}: new best score {candidate_score}")

            if improved or iteration % self.yield_interval == 0:
                snapshot = self._snapshot(state, iteration, iterations)
                if observer is not None:
                    observer(snapshot)
                yield snapshot

        self.best_schedule = state.best_schedule
        self.best_score = state.best_score
        self.best_schedule.original_score = initial_score

        logger.info(f"Optimization finished: score {initial_score} -> {state.best_score}")

        snapshot = self._snapshot(state, iterations, iterations)
        if observer is not None:
            observer(snapshot)
        yield snapshot

    def _snapshot(self, state: OptimizationState, iteration: int, iterations: int) -> ProgressInfo:
        return ProgressInfo(
            iteration=iteration,
            progress=(iteration / iterations * 100) if iterations else 100.0,
            current_score=state.current_score,
            best_score=state.best_score,
            violations=state.best_schedule.violations,
            best_schedule_snapshot=state.best_schedule.deep_copy(),
        )

    def optimize(self, iterations: int = DEFAULT_ITERATIONS,
                 observer: Optional[Callable[[ProgressInfo], None]] = None) -> Schedule:
        """Run to completion and return the best schedule."""
        for _ in self.iter_optimize(iterations, observer):
            pass
        return self.best_schedule

    async def optimize_async(self, iterations: int = DEFAULT_ITERATIONS,
                             observer: Optional[Callable[[ProgressInfo], None]] = None) -> Schedule:
        """Run to completion, handing control back to the event loop at every yield point."""
        for _ in self.iter_optimize(iterations, observer):
            await asyncio.sleep(0)
        return self.best_schedule


def optimize_schedule(schedule: Schedule, rules: Optional[List] = None,
                      iterations: int = DEFAULT_ITERATIONS, strategy: Optional[str] = None,
                      seed: Optional[int] = None,
                      observer: Optional[Callable[[ProgressInfo], None]] = None) -> Schedule:
    """Convenience wrapper used by the API, the worker task and the CLI."""
    optimizer = ScheduleOptimizer(schedule, rules=rules, strategy=strategy, seed=seed)
    return optimizer.optimize(iterations, observer=observer)

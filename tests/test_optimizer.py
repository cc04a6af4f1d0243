"""
Tests for the optimization strategies and the optimize driver.
"""

import asyncio
import random

import pytest

from mock_data import create_mock_match, sample_schedule

from tournament_scheduler.models import Schedule
from tournament_scheduler.services.optimizer import ScheduleOptimizer, ProgressInfo
from tournament_scheduler.services.rules import AvoidBackToBackGames, AvoidReffingBeforePlaying
from tournament_scheduler.services.rules_registry import get_default_rules
from tournament_scheduler.services.strategies import (
    OPTIMIZATION_STRATEGIES, GeneticAlgorithm, OptimizationState, SimulatedAnnealing,
    acceptance_probability, get_strategy, strategic_swap
)

STRATEGY_IDS = list(OPTIMIZATION_STRATEGIES)


def snapshot(schedule):
    return [(m.id, m.time_slot, m.field, m.referee_team) for m in schedule.matches]


def test_acceptance_probability():
    assert acceptance_probability(10, 5, 1.0) == 1.0
    assert acceptance_probability(10, 10, 1.0) == pytest.approx(1.0)
    assert 0 < acceptance_probability(10, 12, 10.0) < 1
    assert acceptance_probability(10, 12, 0) == 0.0


def test_get_strategy():
    assert get_strategy("genetic").id == "genetic"
    assert get_strategy(None).id in STRATEGY_IDS
    with pytest.raises(ValueError):
        get_strategy("hill-climbing")


@pytest.mark.parametrize("strategy", STRATEGY_IDS)
def test_perfect_schedule_stays_perfect(strategy):
    rules = [AvoidBackToBackGames()]
    schedule = Schedule([
        create_mock_match("A", "B", 1, "Field 1"),
        create_mock_match("C", "D", 3, "Field 1"),
    ], rules)
    assert schedule.evaluate() == 0

    best = schedule.optimize(rules, iterations=20, strategy=strategy, rng=random.Random(1))

    assert best.score == 0


@pytest.mark.parametrize("strategy", STRATEGY_IDS)
def test_optimize_never_returns_worse_schedule(strategy):
    rules = get_default_rules()
    schedule = sample_schedule(rules)
    initial_score = schedule.score

    best = schedule.optimize(rules, iterations=15, strategy=strategy, rng=random.Random(7))

    assert best.score <= initial_score
    assert best.original_score == initial_score
    reported = best.score
    assert best.evaluate(rules) == reported


@pytest.mark.parametrize("strategy", STRATEGY_IDS)
def test_optimize_leaves_starting_schedule_alone(strategy):
    schedule = sample_schedule(get_default_rules())
    before = snapshot(schedule)
    score = schedule.score

    schedule.optimize(iterations=10, strategy=strategy, rng=random.Random(3))

    assert snapshot(schedule) == before
    assert schedule.score == score


def test_optimize_improves_back_to_back_schedule():
    rules = [AvoidBackToBackGames()]
    schedule = Schedule([
        create_mock_match("A", "B", 1, "Field 1"),
        create_mock_match("A", "C", 2, "Field 1"),
        create_mock_match("D", "E", 3, "Field 1"),
        create_mock_match("F", "G", 4, "Field 1"),
    ], rules)
    assert schedule.evaluate() > 0

    best = schedule.optimize(rules, iterations=200, strategy="simulated-annealing", rng=random.Random(5))

    assert best.score == 0


def test_seeded_runs_are_reproducible():
    rules = get_default_rules()
    schedule = sample_schedule(rules)

    first = ScheduleOptimizer(schedule, rules, "strategic-swapping", seed=11).optimize(30)
    second = ScheduleOptimizer(schedule, rules, "strategic-swapping", seed=11).optimize(30)

    assert first.score == second.score
    assert snapshot(first) == snapshot(second)


def test_observer_receives_snapshots():
    schedule = sample_schedule(get_default_rules())
    received = []

    optimizer = ScheduleOptimizer(schedule, strategy="simulated-annealing", seed=2, yield_interval=10)
    best = optimizer.optimize(35, observer=received.append)

    assert all(isinstance(info, ProgressInfo) for info in received)
    assert [info.iteration for info in received if info.iteration % 10 == 0][:3] == [10, 20, 30]
    assert received[-1].progress == 100.0
    assert received[-1].best_score == best.score
    scores = [info.best_score for info in received]
    assert scores == sorted(scores, reverse=True)
    # Snapshots are independent copies
    assert received[-1].best_schedule_snapshot is not best


def test_iter_optimize_can_stop_early():
    schedule = sample_schedule(get_default_rules())
    optimizer = ScheduleOptimizer(schedule, seed=4, yield_interval=5)

    snapshots = optimizer.iter_optimize(1000)
    first = next(snapshots)
    snapshots.close()

    assert first.iteration <= 5
    assert optimizer.best_schedule is not None


def test_optimize_async():
    schedule = sample_schedule(get_default_rules())
    optimizer = ScheduleOptimizer(schedule, strategy="genetic", seed=8, yield_interval=2)

    best = asyncio.run(optimizer.optimize_async(6))

    assert best.score <= schedule.score


def test_zero_iterations_returns_copy_of_start():
    schedule = sample_schedule(get_default_rules())
    best = ScheduleOptimizer(schedule, seed=1).optimize(0)

    assert best is not schedule
    assert best.score == schedule.score
    assert snapshot(best) == snapshot(schedule)


def test_simulated_annealing_rejects_critical_candidates():
    """Candidates with double bookings never become current or best."""
    rules = [AvoidBackToBackGames()]
    start = Schedule([
        create_mock_match("A", "B", 1, "Field 1"),
        create_mock_match("A", "C", 1, "Field 2"),
        create_mock_match("D", "E", 2, "Field 1"),
    ], rules)
    start.evaluate()
    state = OptimizationState(start, start.score, start, start.score, None)
    strategy = SimulatedAnnealing(initial_temperature=100.0, cooling_rate=0.5)
    rng = random.Random(0)

    result = strategy.step(state, 1, rules, rng)

    assert result.storage == 50.0
    for schedule in (result.current_schedule, result.best_schedule):
        assert schedule is None or not schedule.has_critical_violations()


def test_strategic_swap_targets_highest_priority_violation():
    rules = [AvoidBackToBackGames(priority=5), AvoidReffingBeforePlaying(priority=1)]
    schedule = Schedule([
        create_mock_match("A", "B", 1, "Field 1", referee="C"),
        create_mock_match("A", "C", 2, "Field 1"),
        create_mock_match("D", "E", 3, "Field 1"),
    ], rules)
    schedule.evaluate()
    assert len(schedule.violations) == 2

    swapped, rule = strategic_swap(schedule, random.Random(0))

    assert rule == AvoidBackToBackGames.name
    original = {m.id: (m.time_slot, m.field) for m in schedule.matches}
    moved = {m.id for m in swapped.matches if (m.time_slot, m.field) != original[m.id]}
    assert moved == {schedule.matches[0].id, schedule.matches[1].id}


def test_genetic_crossover_takes_division_pattern():
    schedule = sample_schedule(get_default_rules())
    other = schedule.randomize(random.Random(9))
    ga = GeneticAlgorithm(crossover_rate=1.0)

    child = ga.crossover(schedule, other, random.Random(0))

    donor = {m.id: m for m in other.matches}
    for match in child.matches:
        assert match.time_slot == donor[match.id].time_slot


@pytest.mark.parametrize("strategy", STRATEGY_IDS)
def test_empty_rule_set_is_kept(strategy):
    """A schedule configured with no rules is optimized against no rules."""
    schedule = Schedule([
        create_mock_match("A", "B", 1, "Field 1"),
        create_mock_match("A", "C", 2, "Field 1"),
        create_mock_match("A", "D", 3, "Field 1"),
    ], [])
    assert schedule.evaluate() == 0

    optimizer = ScheduleOptimizer(schedule, strategy=strategy, seed=1)
    best = optimizer.optimize(5)

    assert optimizer.rules == []
    assert best.score <= schedule.score
    assert best.score == 0

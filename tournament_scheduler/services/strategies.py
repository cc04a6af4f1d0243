"""
Optimization strategies.

A strategy is a step function: given the optimizer state, the iteration number
and the rules, it proposes a new current schedule, a new best schedule and its
private storage for the next step. Anything it leaves as None is kept.
"""

import math
import random
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from tournament_scheduler.core.config import (
    SA_INITIAL_TEMPERATURE, SA_COOLING_RATE,
    STRATEGIC_INITIAL_TEMPERATURE, STRATEGIC_COOLING_RATE, STRATEGIC_TARGET_PROBABILITY,
    STRATEGIC_MAX_REJECTIONS, STRATEGIC_TEMPERATURE_BOOST, STRATEGIC_MAX_TEMPERATURE,
    GA_POPULATION_SIZE, GA_ELITE_SIZE, GA_TOURNAMENT_SIZE, GA_CROSSOVER_RATE,
    GA_MUTATION_RATE, GA_STAGNATION_LIMIT, DEFAULT_STRATEGY
)
from tournament_scheduler.core.logging_config import get_logger
from tournament_scheduler.services.mutations import randomize, swap_matches, repair_fields

logger = get_logger(__name__)


@dataclass
class OptimizationState:
    current_schedule: Any
    current_score: int
    best_schedule: Any
    best_score: int
    storage: Any = None


@dataclass
class StepResult:
    current_schedule: Any = None
    best_schedule: Any = None
    storage: Any = None


def acceptance_probability(current_score: int, new_score: int, temperature: float) -> float:
    """Metropolis criterion: always accept improvements."""
    if new_score < current_score:
        return 1.0
    if temperature <= 0:
        return 0.0
    return math.exp((current_score - new_score) / temperature)


def score_against(schedule, rules: List) -> int:
    """Score a schedule with the given rules, reusing its evaluation when they match."""
    if schedule.rules != list(rules):
        schedule.rules = list(rules)
        return schedule.evaluate()
    return schedule.score


class OptimizationStrategy(ABC):
    id = ""
    name = ""
    description = ""

    @abstractmethod
    def step(self, state: OptimizationState, iteration: int, rules: List, rng: random.Random) -> StepResult:
        """Run one iteration of the strategy."""

    def to_dict(self) -> Dict[str, str]:
        return {"id": self.id, "name": self.name, "description": self.description}


class SimulatedAnnealing(OptimizationStrategy):
    """
    Random mutations with temperature-based acceptance.

    Storage is the current temperature. Candidates with critical violations are
    rejected outright, the temperature cools on every iteration.
    """

    id = "simulated-annealing"
    name = "Simulated Annealing"
    description = ("Classic optimization using random mutations with temperature-based acceptance. "
                   "Good general-purpose approach.")

    def __init__(self, initial_temperature: float = SA_INITIAL_TEMPERATURE, cooling_rate: float = SA_COOLING_RATE):
        self.initial_temperature = initial_temperature
        self.cooling_rate = cooling_rate

    def step(self, state: OptimizationState, iteration: int, rules: List, rng: random.Random) -> StepResult:
        temperature = state.storage if state.storage is not None else self.initial_temperature

        candidate = randomize(state.current_schedule, rng)
        new_score = score_against(candidate, rules)

        if candidate.has_critical_violations():
            return StepResult(storage=temperature * self.cooling_rate)

        result = StepResult(storage=temperature * self.cooling_rate)
        if new_score < state.best_score:
            result.best_schedule = candidate.deep_copy()
            logger.debug(f"New best score found: {new_score} (was {state.best_score})")

        if rng.random() < acceptance_probability(state.current_score, new_score, temperature):
            result.current_schedule = candidate

        return result


class StrategicSwapping(OptimizationStrategy):
    """
    Targets the highest-priority violations with match swaps.

    Storage holds the temperature, the number of consecutive rejections and
    the rule of the last targeted violation.
    """

    id = "strategic-swapping"
    name = "Strategic Swapping"
    description = ("Targets specific rule violations with strategic match swapping. "
                   "More focused on problem areas.")

    def __init__(self, initial_temperature: float = STRATEGIC_INITIAL_TEMPERATURE,
                 cooling_rate: float = STRATEGIC_COOLING_RATE,
                 target_probability: float = STRATEGIC_TARGET_PROBABILITY,
                 max_rejections: int = STRATEGIC_MAX_REJECTIONS):
        self.initial_temperature = initial_temperature
        self.cooling_rate = cooling_rate
        self.target_probability = target_probability
        self.max_rejections = max_rejections

    def step(self, state: OptimizationState, iteration: int, rules: List, rng: random.Random) -> StepResult:
        storage = dict(state.storage or {
            "temperature": self.initial_temperature,
            "consecutive_rejections": 0,
            "target_violation": None,
        })

        current = state.current_schedule
        candidate = None
        if current.violations and rng.random() < self.target_probability:
            candidate, target_rule = strategic_swap(current, rng)
            if candidate is not None:
                storage["target_violation"] = target_rule
        if candidate is None:
            candidate = randomize(current, rng)

        new_score = score_against(candidate, rules)

        if candidate.has_critical_violations():
            storage["consecutive_rejections"] += 1
            storage["temperature"] *= self.cooling_rate
            return StepResult(storage=storage)

        result = StepResult()
        if new_score < state.best_score:
            result.best_schedule = candidate.deep_copy()
            storage["consecutive_rejections"] = 0
            logger.debug(f"Strategic optimization found new best: {new_score} (was {state.best_score})")

        if rng.random() < acceptance_probability(state.current_score, new_score, storage["temperature"]):
            result.current_schedule = candidate
            storage["consecutive_rejections"] = 0
        else:
            storage["consecutive_rejections"] += 1

        if storage["consecutive_rejections"] > self.max_rejections:
            logger.debug("Strategic optimization stuck, raising temperature")
            storage["temperature"] = min(storage["temperature"] * STRATEGIC_TEMPERATURE_BOOST,
                                         STRATEGIC_MAX_TEMPERATURE)
            storage["consecutive_rejections"] = 0

        storage["temperature"] *= self.cooling_rate
        result.storage = storage
        return result


def strategic_swap(schedule, rng: random.Random):
    """
    Swap two matches named by one of the highest-priority violations.

    When the violation names a single movable match it is swapped with another
    movable match of the same division.

    Returns:
        (swapped schedule, targeted rule name), or (None, None) if no swap is possible
    """
    violations = schedule.violations
    if not violations:
        return None, None

    highest = max(v.priority for v in violations)
    targets = [v for v in violations if v.priority >= highest]
    target = rng.choice(targets)

    involved = [m for m in target.matches if m.is_movable()]
    if len(involved) >= 2:
        first, second = rng.sample(involved, 2)
    elif len(involved) == 1:
        first = involved[0]
        partners = [
            m for m in schedule.matches
            if m.is_movable() and m.division == first.division and m.id != first.id
        ]
        if not partners:
            return None, None
        second = rng.choice(partners)
    else:
        return None, None

    swapped = swap_matches(schedule, first, second)
    if swapped is None:
        return None, None
    return swapped, target.rule


class GeneticAlgorithm(OptimizationStrategy):
    """
    Population-based search.

    Every step runs one generation: elites survive, the rest are bred from
    tournament-selected parents with divisional crossover and mutation.
    Storage holds the population, the generation count and how many
    generations passed without improvement.
    """

    id = "genetic"
    name = "Genetic Algorithm"
    description = ("Evolves a population of schedules with divisional crossover and mutation. "
                   "Explores widely, slower per iteration.")

    def __init__(self, population_size: int = GA_POPULATION_SIZE, elite_size: int = GA_ELITE_SIZE,
                 tournament_size: int = GA_TOURNAMENT_SIZE, crossover_rate: float = GA_CROSSOVER_RATE,
                 mutation_rate: float = GA_MUTATION_RATE, stagnation_limit: int = GA_STAGNATION_LIMIT):
        self.population_size = population_size
        self.elite_size = min(elite_size, population_size)
        self.tournament_size = tournament_size
        self.crossover_rate = crossover_rate
        self.mutation_rate = mutation_rate
        self.stagnation_limit = stagnation_limit

    def _initial_population(self, schedule, rules: List, rng: random.Random) -> List:
        population = [schedule.deep_copy()]
        while len(population) < self.population_size:
            population.append(randomize(schedule, rng))
        for member in population:
            score_against(member, rules)
        return sorted(population, key=lambda s: s.score)

    def _select(self, population: List, rng: random.Random):
        contestants = rng.sample(population, min(self.tournament_size, len(population)))
        return min(contestants, key=lambda s: s.score)

    def crossover(self, parent1, parent2, rng: random.Random):
        """Child of parent1 taking, per division, parent2's slots, fields and referees."""
        child = parent1.deep_copy()
        donor = {m.id: m for m in parent2.matches}
        divisions = sorted({m.division for m in child.matches}, key=lambda d: d.value)

        for division in divisions:
            if rng.random() >= self.crossover_rate:
                continue
            for match in child.matches:
                if match.division != division or not match.is_movable():
                    continue
                source = donor.get(match.id)
                if source is None:
                    continue
                match.time_slot = source.time_slot
                match.field = source.field
                match.referee_team = source.referee_team

        repair_fields(child, rng)
        return child

    def _mutate(self, child, rng: random.Random):
        if child.violations:
            swapped, _ = strategic_swap(child, rng)
            if swapped is not None:
                return swapped
        return randomize(child, rng)

    def step(self, state: OptimizationState, iteration: int, rules: List, rng: random.Random) -> StepResult:
        storage = state.storage
        if storage is None:
            storage = {
                "population": self._initial_population(state.current_schedule, rules, rng),
                "generation": 0,
                "stagnation_count": 0,
            }
        population = storage["population"]

        next_generation = population[:self.elite_size]
        while len(next_generation) < self.population_size:
            parent1 = self._select(population, rng)
            parent2 = self._select(population, rng)
            child = self.crossover(parent1, parent2, rng)
            child.rules = list(rules)
            child.evaluate()
            if rng.random() < self.mutation_rate:
                child = self._mutate(child, rng)
            next_generation.append(child)

        next_generation.sort(key=lambda s: s.score)

        result = StepResult()
        feasible = [s for s in next_generation if not s.has_critical_violations()]
        if feasible and feasible[0].score < state.best_score:
            result.best_schedule = feasible[0].deep_copy()
            stagnation_count = 0
            logger.debug(f"Generation {storage['generation'] + 1} found new best: {feasible[0].score}")
        else:
            stagnation_count = storage["stagnation_count"] + 1

        if stagnation_count >= self.stagnation_limit:
            logger.debug(f"Population stagnated for {stagnation_count} generations, reseeding")
            elites = next_generation[:self.elite_size] or next_generation[:1]
            reseeded = [randomize(rng.choice(elites), rng) for _ in range(self.population_size - len(elites))]
            for member in reseeded:
                score_against(member, rules)
            next_generation = sorted(elites + reseeded, key=lambda s: s.score)
            stagnation_count = 0

        result.current_schedule = next_generation[0]
        result.storage = {
            "population": next_generation,
            "generation": storage["generation"] + 1,
            "stagnation_count": stagnation_count,
        }
        return result


OPTIMIZATION_STRATEGIES: Dict[str, OptimizationStrategy] = {
    strategy.id: strategy
    for strategy in (SimulatedAnnealing(), GeneticAlgorithm(), StrategicSwapping())
}


def get_strategy(strategy_id: Optional[str]) -> OptimizationStrategy:
    """
    Look up a strategy by id.

    Raises:
        ValueError: If the strategy id is unknown
    """
    if strategy_id is None:
        strategy_id = DEFAULT_STRATEGY
    if strategy_id not in OPTIMIZATION_STRATEGIES:
        raise ValueError(
            f"Unknown optimization strategy: {strategy_id}. "
            f"Available: {', '.join(OPTIMIZATION_STRATEGIES)}"
        )
    return OPTIMIZATION_STRATEGIES[strategy_id]

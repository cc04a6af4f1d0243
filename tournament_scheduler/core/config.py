"""
Configuration constants for the Tournament Scheduling Engine.
All configurable settings are defined here.
"""

import os
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    return int(value) if value not in (None, "") else default


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    return float(value) if value not in (None, "") else default


# Team name used to fill unused team positions of SETUP / PACKING_DOWN activities
ACTIVITY_PLACEHOLDER = "ACTIVITY_PLACEHOLDER"

# Rule priorities (higher = more important, multiplies each violation)
PRIORITY_WEIGHTS = {
    "avoid_playing_after_setup": 10,  # Maximum priority
    "back_to_back": 5,
    "first_last": 4,
    "reffing_before": 4,
    "balance_referee": 3,
    "club_referee_conflict": 3,
    "limit_venue_time": 2,
    "fair_field_distribution": 2,
    "mixed_divisions_timeslot": 2,
    "manage_rest_and_gaps": 1,
    "manage_player_game_balance": 1,
    "warmup_time": 1,
}

# Weight of each hard double-booking violation (always evaluated)
DOUBLE_BOOKING_PRIORITY = _env_int("DOUBLE_BOOKING_PRIORITY", 10)

# Rest time / gap rule
MIN_REST_SLOTS = 2
MAX_GAP_SLOTS = 6

# Venue time rule
MAX_VENUE_HOURS = _env_float("MAX_VENUE_HOURS", 5.0)
MINUTES_PER_SLOT = _env_int("MINUTES_PER_SLOT", 40)
VENUE_TIME_TOLERANCE_HOURS = 0.5  # Player reported only if above team time + tolerance

# Field distribution rule
FIELD_DISTRIBUTION_THRESHOLD = 0.6
FIELD_DISTRIBUTION_MIN_GAMES = 3

# Player balance / warm-up / referee balance rules
MAX_GAMES_PER_PLAYER = 4
MAX_GAME_DIFFERENCE = 1
MIN_WARMUP_SLOTS = 1
MAX_REFEREE_DIFFERENCE = 1

# Randomization mix (remaining probability goes to scatter)
BLOCK_SHUFFLE_PROBABILITY = 0.25
DIVISION_SHUFFLE_PROBABILITY = 0.5

# Simulated annealing
SA_INITIAL_TEMPERATURE = 150.0
SA_COOLING_RATE = 0.995

# Strategic swapping
STRATEGIC_INITIAL_TEMPERATURE = 100.0
STRATEGIC_COOLING_RATE = 0.997
STRATEGIC_TARGET_PROBABILITY = 0.8
STRATEGIC_MAX_REJECTIONS = 50
STRATEGIC_TEMPERATURE_BOOST = 1.5
STRATEGIC_MAX_TEMPERATURE = 200.0

# Genetic algorithm
GA_POPULATION_SIZE = 20
GA_ELITE_SIZE = 2
GA_TOURNAMENT_SIZE = 3
GA_CROSSOVER_RATE = 0.5  # Per division, chance of taking parent 2's pattern
GA_MUTATION_RATE = 0.3
GA_STAGNATION_LIMIT = 25  # Generations without improvement before reseeding

# Optimization Settings
DEFAULT_STRATEGY = os.getenv("OPTIMIZATION_STRATEGY", "simulated-annealing")
DEFAULT_ITERATIONS = _env_int("OPTIMIZATION_ITERATIONS", 10000)
YIELD_INTERVAL = 100  # Iterations between progress snapshots / yield points
RANDOM_SEED = os.getenv("RANDOM_SEED")  # Unset = nondeterministic

# Logging
LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
# Mutation and strategy loggers emit per-iteration debug lines
SEARCH_LOG_LEVEL = os.getenv("SEARCH_LOG_LEVEL", "INFO")

# API server
API_HOST = os.getenv("API_HOST", "0.0.0.0")
API_PORT = _env_int("API_PORT", 8000)

# Background worker (Celery broker and result backend)
REDIS_URL = os.getenv("REDIS_URL", "redis://localhost:6379/0")
OPTIMIZATION_QUEUE = os.getenv("OPTIMIZATION_QUEUE", "optimization")
TASK_TIME_LIMIT = _env_int("TASK_TIME_LIMIT", 1800)  # Seconds, hard kill
TASK_SOFT_TIME_LIMIT = _env_int("TASK_SOFT_TIME_LIMIT", 1740)
TASK_RESULT_EXPIRES = _env_int("TASK_RESULT_EXPIRES", 86400)
WORKER_CONCURRENCY = _env_int("WORKER_CONCURRENCY", 2)

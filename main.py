"""
Main entry point for the Tournament Scheduling Engine.
Evaluates a schedule and optimizes it against the configured rules.
"""

import sys
import json
import argparse
from datetime import datetime

from tournament_scheduler.core.config import DEFAULT_ITERATIONS
from tournament_scheduler.core.logging_config import setup_logging
from tournament_scheduler.models.models import ViolationLevel
from tournament_scheduler.services.schedule_builder import build_schedule, schedule_summary
from tournament_scheduler.services.optimizer import ScheduleOptimizer
from tournament_scheduler.services.strategies import OPTIMIZATION_STRATEGIES


def print_violations(schedule, limit=20):
    """Print violations, most severe first."""
    violations = sorted(schedule.violations, key=lambda v: (v.level.severity, v.priority), reverse=True)
    for violation in violations[:limit]:
        print(f"  {violation}")
    if len(violations) > limit:
        print(f"  ... and {len(violations) - limit} more")


def print_report(schedule):
    by_level = {level: 0 for level in ViolationLevel}
    for violation in schedule.violations:
        by_level[violation.level] += 1

    print(f"Score: {schedule.score}")
    print(f"Matches: {len(schedule.matches)}")
    print("Violations: " + ", ".join(f"{count} {level.value}" for level, count in by_level.items()))
    print_violations(schedule)


def main():
    """
    Main function to run the scheduling engine.
    Loads the schedule, evaluates it, optimizes it and writes the result.
    """
    parser = argparse.ArgumentParser(
        description='Tournament Scheduling Engine - Evaluate and optimize match schedules'
    )
    parser.add_argument(
        '--input',
        required=True,
        help='JSON file with "players", "matches" and optional "rules"'
    )
    parser.add_argument(
        '--output',
        help='Write the optimized schedule to this JSON file'
    )
    parser.add_argument(
        '--iterations',
        type=int,
        default=DEFAULT_ITERATIONS,
        help=f'Number of optimization iterations (default: {DEFAULT_ITERATIONS})'
    )
    parser.add_argument(
        '--strategy',
        choices=list(OPTIMIZATION_STRATEGIES),
        help='Optimization strategy'
    )
    parser.add_argument(
        '--seed',
        type=int,
        help='Random seed for reproducible runs'
    )
    parser.add_argument(
        '--validate-only',
        action='store_true',
        help='Only evaluate the schedule without optimizing it'
    )
    parser.add_argument(
        '--verbose',
        action='store_true',
        help='Enable verbose output'
    )

    args = parser.parse_args()
    if args.verbose:
        setup_logging("DEBUG", search_log_level="DEBUG")
    else:
        setup_logging()

    print("\n" + "=" * 80)
    print("TOURNAMENT SCHEDULING ENGINE")
    print("=" * 80)
    print(f"Started at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
    print("=" * 80)

    try:
        # Step 1: Load schedule
        print(f"\n[STEP 1] Loading schedule from {args.input}...")
        with open(args.input, encoding="utf-8") as f:
            data = json.load(f)

        schedule = build_schedule(data.get("players", []), data.get("matches", []), data.get("rules"))

        if not schedule.matches:
            print("ERROR: No matches loaded. Please check the input file.")
            return 1

        # Step 2: Evaluate
        print("\n[STEP 2] Evaluating schedule...")
        print_report(schedule)

        if args.validate_only:
            print("\n[STEP 3] Skipping optimization (--validate-only flag)")
            return 0

        # Step 3: Optimize
        print(f"\n[STEP 3] Optimizing schedule ({args.iterations} iterations)...")
        optimizer = ScheduleOptimizer(schedule, rules=schedule.rules, strategy=args.strategy, seed=args.seed)

        def report(info):
            if args.verbose:
                print(f"  {info.progress:5.1f}%  iteration {info.iteration}  best score {info.best_score}")

        best = optimizer.optimize(args.iterations, observer=report)

        print("\n" + "=" * 80)
        print("OPTIMIZED SCHEDULE")
        print("=" * 80)
        print_report(best)

        # Step 4: Write result
        if args.output:
            print(f"\n[STEP 4] Writing schedule to {args.output}...")
            with open(args.output, "w", encoding="utf-8") as f:
                json.dump(schedule_summary(best), f, indent=2)

        # Final summary
        print("\n" + "=" * 80)
        print("OPTIMIZATION COMPLETE")
        print("=" * 80)
        print(f"Strategy: {optimizer.strategy.name}")
        print(f"Score: {schedule.score} -> {best.score}")
        print(f"Completed at: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}")
        print("=" * 80)

        return 0

    except KeyboardInterrupt:
        print("\n\nOptimization interrupted by user.")
        return 1

    except (OSError, ValueError) as e:
        print(f"\nERROR: {e}")
        return 1

    except Exception as e:
        print(f"\n\nERROR: An unexpected error occurred:")
        print(f"{type(e).__name__}: {e}")

        import traceback
        print("\nFull traceback:")
        traceback.print_exc()

        return 1


if __name__ == '__main__':
    sys.exit(main())

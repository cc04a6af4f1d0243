"""
Run a Celery worker consuming the schedule optimization queue.
"""

import argparse
import os
import sys

# Add project root to path
sys.path.insert(0, os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from tournament_scheduler.core.celery_app import celery_app
from tournament_scheduler.core.config import OPTIMIZATION_QUEUE, WORKER_CONCURRENCY
from tournament_scheduler.core.logging_config import setup_logging


def main():
    parser = argparse.ArgumentParser(description="Tournament Scheduling Celery worker")
    parser.add_argument('--concurrency', type=int, default=WORKER_CONCURRENCY,
                        help=f'Parallel optimization runs (default: {WORKER_CONCURRENCY})')
    parser.add_argument('--queue', default=OPTIMIZATION_QUEUE,
                        help=f'Queue to consume (default: {OPTIMIZATION_QUEUE})')
    args = parser.parse_args()

    setup_logging()

    print("=" * 60)
    print("Tournament Scheduling - Celery Worker")
    print("=" * 60)
    print(f"Consuming queue '{args.queue}' with concurrency {args.concurrency}")
    print("=" * 60)

    # Windows has no fork
    pool = "solo" if os.name == "nt" else "prefork"
    celery_app.worker_main([
        "worker",
        "--loglevel=info",
        f"--concurrency={args.concurrency}",
        f"--queues={args.queue}",
        f"--pool={pool}",
    ])


if __name__ == "__main__":
    main()

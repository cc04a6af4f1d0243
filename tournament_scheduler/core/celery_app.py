"""
Celery configuration for background schedule optimization.

Optimization runs go to their own queue and each worker process takes one
task at a time.
"""

from celery import Celery

from tournament_scheduler.core.config import (
    REDIS_URL, OPTIMIZATION_QUEUE, TASK_TIME_LIMIT, TASK_SOFT_TIME_LIMIT, TASK_RESULT_EXPIRES
)

celery_app = Celery(
    "tournament_scheduler",
    broker=REDIS_URL,
    backend=REDIS_URL,
    include=["tournament_scheduler.tasks.optimizer_tasks"]
)

celery_app.conf.update(
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",
    timezone="UTC",
    enable_utc=True,
    task_track_started=True,
    task_time_limit=TASK_TIME_LIMIT,
    task_soft_time_limit=TASK_SOFT_TIME_LIMIT,
    result_expires=TASK_RESULT_EXPIRES,
    task_routes={"optimize_schedule": {"queue": OPTIMIZATION_QUEUE}},
    # A task acknowledged late is re-queued if its worker dies mid-run
    task_acks_late=True,
    worker_prefetch_multiplier=1,
    worker_max_tasks_per_child=50,
)

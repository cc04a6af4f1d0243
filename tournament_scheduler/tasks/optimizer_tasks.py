"""
Celery tasks for schedule optimization.
"""

from datetime import datetime
import traceback

from tournament_scheduler.core.celery_app import celery_app
from tournament_scheduler.core.config import DEFAULT_ITERATIONS
from tournament_scheduler.core.logging_config import get_logger
from tournament_scheduler.services.schedule_builder import build_schedule, schedule_summary
from tournament_scheduler.services.optimizer import ScheduleOptimizer

logger = get_logger(__name__)


@celery_app.task(bind=True, name="optimize_schedule")
def optimize_schedule_task(self, players, matches, rules=None, iterations=DEFAULT_ITERATIONS,
                           strategy=None, seed=None):
    """
    Async task to optimize a schedule.

    Progress snapshots are published as PROGRESS task states.

    Returns:
        dict: Optimized schedule with violations and statistics
    """
    try:
        self.update_state(
            state="PROGRESS",
            meta={"status": "Building schedule...", "progress": 0}
        )

        start_time = datetime.now()
        schedule = build_schedule(players, matches, rules)
        optimizer = ScheduleOptimizer(schedule, rules=schedule.rules, strategy=strategy, seed=seed)

        def report(info):
            self.update_state(
                state="PROGRESS",
                meta={
                    "status": f"Iteration {info.iteration}/{iterations}, best score {info.best_score}",
                    **info.to_dict()
                }
            )

        best = optimizer.optimize(iterations, observer=report)
        optimization_time = (datetime.now() - start_time).total_seconds()

        result = schedule_summary(best)
        result.update({
            "success": True,
            "message": f"Optimization finished: score {schedule.score} -> {best.score}",
            "strategy": optimizer.strategy.id,
            "iterations": iterations,
            "optimization_time": optimization_time,
        })
        return result

    except Exception as e:
        error_trace = traceback.format_exc()
        logger.error(f"Error in optimize_schedule_task: {error_trace}")

        return {
            "success": False,
            "message": f"Schedule optimization failed: {str(e)}",
            "error": str(e),
            "traceback": error_trace
        }

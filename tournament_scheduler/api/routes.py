"""
API routes for schedule evaluation and optimization.
"""

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel, Field
from typing import List, Dict, Any, Optional
from datetime import datetime
from celery.result import AsyncResult

from tournament_scheduler.core.config import DEFAULT_ITERATIONS
from tournament_scheduler.core.celery_app import celery_app
from tournament_scheduler.core.logging_config import get_logger
from tournament_scheduler.services.rules_registry import list_rules
from tournament_scheduler.services.strategies import OPTIMIZATION_STRATEGIES
from tournament_scheduler.services.optimizer import ScheduleOptimizer
from tournament_scheduler.services.schedule_builder import build_schedule, schedule_summary
from tournament_scheduler.tasks.optimizer_tasks import optimize_schedule_task

logger = get_logger(__name__)

router = APIRouter(prefix="/api", tags=["schedule"])


class PlayerModel(BaseModel):
    """A player and the team they belong to in each division."""
    name: str
    mixed_team: Optional[str] = None
    gendered_team: Optional[str] = None
    cloth_team: Optional[str] = None


class MatchModel(BaseModel):
    """A match record referencing teams by name."""
    time_slot: int
    division: str
    field: str
    team1: Optional[str] = None
    team2: Optional[str] = None
    referee_team: Optional[str] = None
    activity_type: str = "REGULAR"
    locked: bool = False


class RuleConfigModel(BaseModel):
    """Configuration of one registered rule."""
    id: str
    priority: Optional[int] = None
    parameters: Dict[str, Any] = Field(default_factory=dict)
    enabled: bool = True


class ScheduleRequest(BaseModel):
    """Request model for schedule evaluation."""
    players: List[PlayerModel]
    matches: List[MatchModel]
    rules: Optional[List[RuleConfigModel]] = None

    def payload(self):
        rules = [r.model_dump() for r in self.rules] if self.rules is not None else None
        return (
            [p.model_dump() for p in self.players],
            [m.model_dump() for m in self.matches],
            rules,
        )


class OptimizeRequest(ScheduleRequest):
    """Request model for schedule optimization."""
    iterations: int = Field(DEFAULT_ITERATIONS, ge=0)
    strategy: Optional[str] = None
    seed: Optional[int] = None


class ViolationResponse(BaseModel):
    rule: str
    description: str
    level: str
    priority: int
    matches: List[str]


class ScheduleResponse(BaseModel):
    """Response model for an evaluated schedule."""
    success: bool
    message: str
    score: int
    original_score: Optional[int] = None
    total_matches: int
    total_violations: int
    matches: List[Dict[str, Any]]
    violations: List[ViolationResponse]
    stats: Dict[str, Any]
    strategy: Optional[str] = None
    generation_time: float


@router.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "timestamp": datetime.now().isoformat()}


@router.get("/rules")
async def get_rules():
    """List the registered rules with their default priorities and parameters."""
    return {"rules": list_rules()}


@router.get("/strategies")
async def get_strategies():
    """List the available optimization strategies."""
    return {"strategies": [s.to_dict() for s in OPTIMIZATION_STRATEGIES.values()]}


@router.post("/schedule/evaluate", response_model=ScheduleResponse)
async def evaluate_schedule(request: ScheduleRequest):
    """
    Evaluate a schedule against the configured rules.
    """
    try:
        start_time = datetime.now()
        schedule = build_schedule(*request.payload())

        return ScheduleResponse(
            success=True,
            message=f"Schedule evaluated with {len(schedule.violations)} violations",
            generation_time=(datetime.now() - start_time).total_seconds(),
            **schedule_summary(schedule)
        )

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Schedule evaluation failed")
        raise HTTPException(status_code=500, detail=f"Schedule evaluation failed: {str(e)}")


@router.post("/schedule/optimize", response_model=ScheduleResponse)
async def optimize_schedule(request: OptimizeRequest):
    """
    Optimize a schedule and return the best schedule found.

    This endpoint:
    1. Builds the schedule from the players and match records
    2. Runs the chosen strategy for the requested iterations
    3. Returns the best schedule with its violations
    """
    try:
        start_time = datetime.now()
        schedule = build_schedule(*request.payload())

        optimizer = ScheduleOptimizer(schedule, rules=schedule.rules,
                                      strategy=request.strategy, seed=request.seed)
        best = await optimizer.optimize_async(request.iterations)

        return ScheduleResponse(
            success=True,
            message=f"Optimization finished: score {schedule.score} -> {best.score}",
            strategy=optimizer.strategy.id,
            generation_time=(datetime.now() - start_time).total_seconds(),
            **schedule_summary(best)
        )

    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except Exception as e:
        logger.exception("Schedule optimization failed")
        raise HTTPException(status_code=500, detail=f"Schedule optimization failed: {str(e)}")


@router.post("/schedule/optimize/async")
async def optimize_schedule_async(request: OptimizeRequest):
    """
    Start async schedule optimization task.

    Returns:
        dict: Task ID for polling status
    """
    players, matches, rules = request.payload()
    try:
        # Fail fast on bad input before queueing
        build_schedule(players, matches, rules)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))

    try:
        task = optimize_schedule_task.delay(
            players, matches, rules,
            iterations=request.iterations,
            strategy=request.strategy,
            seed=request.seed
        )

        return {
            "task_id": task.id,
            "status": "PENDING",
            "message": "Schedule optimization started"
        }
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to start task: {str(e)}")


@router.get("/schedule/status/{task_id}")
async def get_schedule_status(task_id: str):
    """
    Get status of async schedule optimization task.

    Args:
        task_id: Celery task ID

    Returns:
        dict: Task status and result (if complete)
    """
    try:
        task_result = AsyncResult(task_id, app=celery_app)

        if task_result.state == "PENDING":
            response = {
                "task_id": task_id,
                "status": "PENDING",
                "message": "Task is waiting to start..."
            }
        elif task_result.state == "PROGRESS":
            info = task_result.info or {}
            response = {
                "task_id": task_id,
                "status": "PROGRESS",
                "message": info.get("status", "Processing..."),
                "progress": info.get("progress"),
                "best_score": info.get("best_score")
            }
        elif task_result.state == "SUCCESS":
            response = {
                "task_id": task_id,
                "status": "SUCCESS",
                "result": task_result.result
            }
        elif task_result.state == "FAILURE":
            response = {
                "task_id": task_id,
                "status": "FAILURE",
                "message": str(task_result.info)
            }
        else:
            response = {
                "task_id": task_id,
                "status": task_result.state,
                "message": f"Task state: {task_result.state}"
            }

        return response
    except Exception as e:
        raise HTTPException(status_code=500, detail=f"Failed to get task status: {str(e)}")

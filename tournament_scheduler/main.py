"""
Main FastAPI application for the Tournament Scheduling Engine.
"""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from tournament_scheduler import __version__
from tournament_scheduler.api import routes
from tournament_scheduler.core.logging_config import setup_logging

setup_logging()

app = FastAPI(
    title="Tournament Scheduling API",
    description="API for evaluating and optimizing tournament schedules",
    version=__version__
)

# Enable CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=["http://localhost:3000"],  # Next.js default port
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Include API routes
app.include_router(routes.router)


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "message": "Tournament Scheduling API",
        "version": __version__,
        "endpoints": {
            "evaluate": "/api/schedule/evaluate",
            "optimize": "/api/schedule/optimize",
            "optimize_async": "/api/schedule/optimize/async",
            "rules": "/api/rules",
            "strategies": "/api/strategies",
            "health": "/api/health"
        }
    }

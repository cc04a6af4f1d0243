"""
Tournament Scheduling Engine.

Evaluates tournament schedules against weighted scheduling rules and improves
them with metaheuristic search.
"""

__version__ = "1.0.0"

"""API routers."""

from planner.api import schedule

__all__ = [
    "schedule",
]

"""Pydantic models (schemas) for the application."""

from planner.models.enums import Priority, UnscheduledReason
from planner.models.schedule import (
    BusyInterval,
    PlanningWindow,
    SchedulableUnit,
    ScheduledSession,
    ScheduleRequest,
    ScheduleResult,
    TaskItem,
    UnscheduledUnit,
    ValidationReport,
    WorkingHoursConfig,
    WorkWindow,
)

__all__ = [
    # Enums
    "Priority",
    "UnscheduledReason",
    # Scheduling
    "WorkingHoursConfig",
    "PlanningWindow",
    "BusyInterval",
    "TaskItem",
    "ScheduleRequest",
    "WorkWindow",
    "SchedulableUnit",
    "ScheduledSession",
    "UnscheduledUnit",
    "ScheduleResult",
    "ValidationReport",
]

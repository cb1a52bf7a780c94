"""
Schedule models for the task-to-calendar scheduling engine.
"""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from planner.models.enums import Priority, UnscheduledReason

MINUTES_PER_DAY = 24 * 60

DEFAULT_WORKDAY_START_MINUTES = 9 * 60
DEFAULT_WORKDAY_END_MINUTES = 17 * 60
DEFAULT_MAX_SESSION_MINUTES = 4 * 60
DEFAULT_BUFFER_MINUTES = 30
DEFAULT_MIN_SESSION_MINUTES = 15


class WorkingHoursConfig(BaseModel):
    """Working hours and session rules for one scheduling run."""

    model_config = ConfigDict(frozen=True)

    start_minutes: int = Field(
        DEFAULT_WORKDAY_START_MINUTES,
        ge=0,
        le=MINUTES_PER_DAY,
        description="Start of the working day in local minutes since midnight",
    )
    end_minutes: int = Field(
        DEFAULT_WORKDAY_END_MINUTES,
        ge=0,
        le=MINUTES_PER_DAY,
        description="End of the working day in local minutes since midnight",
    )
    include_saturday: bool = False
    include_sunday: bool = False
    max_session_minutes: int = Field(DEFAULT_MAX_SESSION_MINUTES, gt=0)
    buffer_minutes: int = Field(DEFAULT_BUFFER_MINUTES, ge=0)
    min_session_minutes: int = Field(DEFAULT_MIN_SESSION_MINUTES, gt=0)


class PlanningWindow(BaseModel):
    """Closed date range [start, end] to plan over."""

    start: date
    end: date


class BusyInterval(BaseModel):
    """Externally booked calendar time, half-open [start, end)."""

    model_config = ConfigDict(frozen=True)

    start: datetime
    end: datetime


class TaskItem(BaseModel):
    """Pending task as supplied by the caller."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(..., min_length=1)
    title: str = ""
    priority: Priority = Priority.MEDIUM
    estimated_minutes: Optional[int] = Field(None, ge=1)
    due_by: Optional[datetime] = None
    tags: frozenset[str] = Field(default_factory=frozenset)
    depends_on: frozenset[str] = Field(default_factory=frozenset)

    @field_validator("priority", mode="before")
    @classmethod
    def _priority_from_rank(cls, value):
        if isinstance(value, int) and not isinstance(value, bool):
            return Priority.from_rank(value)
        return value

    @property
    def priority_rank(self) -> int:
        return self.priority.rank


class ScheduleRequest(BaseModel):
    """Everything one scheduling run needs."""

    planning_window: PlanningWindow
    config: WorkingHoursConfig = Field(default_factory=WorkingHoursConfig)
    tasks: list[TaskItem] = Field(default_factory=list)
    busy_intervals: list[BusyInterval] = Field(default_factory=list)
    utc_offset_minutes: int = Field(
        0,
        ge=-14 * 60,
        le=14 * 60,
        description="Fixed offset of the user's local clock relative to UTC",
    )

    @property
    def tzinfo(self) -> timezone:
        return timezone(timedelta(minutes=self.utc_offset_minutes))


class WorkWindow(BaseModel):
    """Working-hour interval on a single date."""

    model_config = ConfigDict(frozen=True)

    date: date
    start: datetime
    end: datetime

    @property
    def minutes(self) -> int:
        return int((self.end - self.start).total_seconds() // 60)


class SchedulableUnit(BaseModel):
    """One bounded session of a task, waiting for a slot."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    session_index: int = Field(..., ge=1)
    minutes: int = Field(..., ge=1)


class ScheduledSession(BaseModel):
    """A unit placed on the calendar."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    session_index: int = Field(..., ge=1)
    start: datetime
    end: datetime
    minutes: int = Field(..., ge=1)


class UnscheduledUnit(BaseModel):
    """A unit that could not be placed, with the reason."""

    model_config = ConfigDict(frozen=True)

    task_id: str
    session_index: int = Field(..., ge=1)
    minutes: int = Field(..., ge=1)
    reason: UnscheduledReason


class ScheduleResult(BaseModel):
    """Outcome of one scheduling run."""

    model_config = ConfigDict(frozen=True)

    sessions: list[ScheduledSession] = Field(default_factory=list)
    unscheduled: list[UnscheduledUnit] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    total_minutes_scheduled: int = 0

    def sessions_for(self, task_id: str) -> list[ScheduledSession]:
        return [session for session in self.sessions if session.task_id == task_id]

    @property
    def unscheduled_task_ids(self) -> set[str]:
        return {item.task_id for item in self.unscheduled}


class ValidationReport(BaseModel):
    """Result of checking a schedule against its invariants."""

    valid: bool
    violations: list[str] = Field(default_factory=list)


class ScheduleValidationRequest(BaseModel):
    """A request together with a result to check against it."""

    request: ScheduleRequest
    result: ScheduleResult

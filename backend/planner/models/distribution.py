"""
Models for the task distribution payloads used by the planner UI.

Field aliases follow the JSON keys the frontend already sends and expects.
"""

from __future__ import annotations

from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator


class DistributionTask(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    id: str = Field(..., min_length=1)
    title: str = Field("", alias="titulo")
    description: Optional[str] = Field(None, alias="descripcion")
    priority: str = Field("MEDIUM", alias="prioridad")
    due_date: Optional[datetime] = Field(None, alias="fechaVencimiento")
    estimated_hours: Optional[float] = Field(None, alias="estimadoHoras", gt=0)
    tags: list[str] = Field(default_factory=list)
    dependencies: list[str] = Field(default_factory=list, alias="dependencias")


class DistributionConfig(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    working_hours_start: str = Field("09:00", alias="workingHoursStart")
    working_hours_end: str = Field("17:00", alias="workingHoursEnd")
    include_saturdays: bool = Field(False, alias="includeSaturdays")
    include_sundays: bool = Field(False, alias="includeSundays")
    max_task_duration_hours: float = Field(4, alias="maxTaskDurationHours", gt=0)
    buffer_minutes: int = Field(30, alias="bufferMinutes", ge=0)


class CalendarEventFormatted(BaseModel):
    """Busy calendar event; bounds are ISO datetimes or all-day dates."""

    model_config = ConfigDict(populate_by_name=True)

    start: Optional[str] = Field(None, alias="inicio")
    end: Optional[str] = Field(None, alias="fin")
    time_zone: Optional[str] = Field(None, alias="zonaHoraria")


class TaskDistributionRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    project: str = Field("", alias="proyecto")
    description: Optional[str] = Field(None, alias="descripcion")
    tasks: list[DistributionTask] = Field(default_factory=list, alias="tareas")
    config: DistributionConfig = Field(default_factory=DistributionConfig, alias="configuracion")
    start_date: Optional[date] = Field(None, alias="fechaInicio")
    end_date: Optional[date] = Field(None, alias="fechaFin")
    calendar_events: list[CalendarEventFormatted] = Field(default_factory=list, alias="eventos")
    utc_offset_minutes: int = Field(0, alias="utcOffsetMinutes", ge=-14 * 60, le=14 * 60)

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _blank_date_is_none(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value


class ScheduledTaskEntry(BaseModel):
    task_id: str
    task_title: str
    start_date_time: str
    end_date_time: str
    estimated_hours: float
    priority: str
    assigned_to: str
    session_number: int
    dependencies: list[str] = Field(default_factory=list)
    tags: list[str] = Field(default_factory=list)


class TimeBlockUsage(BaseModel):
    date: str
    start_time: str
    end_time: str
    available_hours: float
    tasks_scheduled: int


class DistributionSummary(BaseModel):
    tasks_distributed: int = 0
    total_time_allocated: float = 0.0
    average_daily_hours: float = 0.0
    peak_workday_hours: float = 0.0
    conflicts_resolved: int = 0


class TaskDistributionResponse(BaseModel):
    success: bool = True
    scheduled_tasks: list[ScheduledTaskEntry] = Field(default_factory=list)
    conflicts: list[str] = Field(default_factory=list)
    suggestions: list[str] = Field(default_factory=list)
    total_hours: float = 0.0
    time_blocks_used: list[TimeBlockUsage] = Field(default_factory=list)
    distribution_summary: DistributionSummary = Field(default_factory=DistributionSummary)

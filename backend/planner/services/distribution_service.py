"""
Task distribution service.

Runs the planner UI's "distribute tasks" payload through the local
scheduler and answers in the response shape the UI already consumes.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, datetime, timedelta, timezone, tzinfo
from typing import Any, Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from planner.core.config import Settings, get_settings
from planner.core.exceptions import InvalidConfigurationError
from planner.core.logger import setup_logger
from planner.models.distribution import (
    CalendarEventFormatted,
    DistributionSummary,
    ScheduledTaskEntry,
    TaskDistributionRequest,
    TaskDistributionResponse,
    TimeBlockUsage,
)
from planner.models.enums import Priority
from planner.models.schedule import (
    BusyInterval,
    PlanningWindow,
    ScheduleRequest,
    ScheduleResult,
    TaskItem,
    WorkingHoursConfig,
)
from planner.services.busy_intervals import BusyIntervalSet
from planner.services.scheduler_service import SchedulerService
from planner.services.time_grid import TimeGrid
from planner.utils.datetime_utils import (
    format_minutes_as_time,
    format_utc_iso,
    local_midnight,
    parse_iso_datetime,
    parse_time_to_minutes,
)

logger = setup_logger(__name__)

REQUIRED_RESPONSE_FIELDS = ("success", "scheduled_tasks", "conflicts", "suggestions", "total_hours")
REQUIRED_TASK_FIELDS = ("task_id", "task_title", "start_date_time", "end_date_time", "estimated_hours")


class DistributionService:
    """Adapter between distribution payloads and the scheduler."""

    def __init__(
        self,
        scheduler_service: Optional[SchedulerService] = None,
        settings: Optional[Settings] = None,
    ):
        self.settings = settings or get_settings()
        self.scheduler_service = scheduler_service or SchedulerService(self.settings)

    def distribute(
        self,
        payload: TaskDistributionRequest,
        today: Optional[date] = None,
    ) -> TaskDistributionResponse:
        """
        Schedule the payload's tasks around its calendar events.

        Args:
            payload: Distribution request from the UI
            today: Plan start when the payload has none (None = today in the plan offset)

        Returns:
            TaskDistributionResponse
        """
        request, event_conflicts = self.to_schedule_request(payload, today=today)
        result = self.scheduler_service.build_schedule(request)
        response = self.build_response(payload, request, result, event_conflicts)
        logger.info(
            f"Distributed project '{payload.project}': "
            f"{response.distribution_summary.tasks_distributed}/{len(payload.tasks)} tasks, "
            f"{response.total_hours}h"
        )
        return response

    def to_schedule_request(
        self,
        payload: TaskDistributionRequest,
        today: Optional[date] = None,
    ) -> tuple[ScheduleRequest, list[str]]:
        """
        Convert a distribution payload into a ScheduleRequest.

        Returns:
            The request plus conflict messages for calendar events that were skipped

        Raises:
            InvalidConfigurationError: If working hours are not valid HH:MM times
        """
        cfg = payload.config
        start_minutes = parse_time_to_minutes(cfg.working_hours_start)
        end_minutes = parse_time_to_minutes(cfg.working_hours_end)
        if start_minutes is None or end_minutes is None:
            raise InvalidConfigurationError(
                "Working hours must be HH:MM times",
                details={"start": cfg.working_hours_start, "end": cfg.working_hours_end},
            )

        config = WorkingHoursConfig(
            start_minutes=start_minutes,
            end_minutes=end_minutes,
            include_saturday=cfg.include_saturdays,
            include_sunday=cfg.include_sundays,
            max_session_minutes=max(1, round(cfg.max_task_duration_hours * 60)),
            buffer_minutes=cfg.buffer_minutes,
        )

        tz = timezone(timedelta(minutes=payload.utc_offset_minutes))
        plan_start = payload.start_date or today or datetime.now(tz).date()
        plan_end = payload.end_date or plan_start + timedelta(days=self.settings.DEFAULT_PLAN_DAYS)

        tasks = [
            TaskItem(
                id=task.id,
                title=task.title,
                priority=Priority.parse(task.priority),
                estimated_minutes=round(task.estimated_hours * 60) if task.estimated_hours else None,
                due_by=task.due_date,
                tags=frozenset(task.tags),
                depends_on=frozenset(task.dependencies),
            )
            for task in payload.tasks
        ]

        busy_intervals: list[BusyInterval] = []
        conflicts: list[str] = []
        for event in payload.calendar_events:
            if not event.start or not event.end:
                continue
            interval = self._event_interval(event, tz)
            if interval is None:
                message = f"Ignored calendar event with unreadable bounds: {event.start} - {event.end}"
                logger.warning(message)
                conflicts.append(message)
                continue
            busy_intervals.append(interval)

        request = ScheduleRequest(
            planning_window=PlanningWindow(start=plan_start, end=plan_end),
            config=config,
            tasks=tasks,
            busy_intervals=busy_intervals,
            utc_offset_minutes=payload.utc_offset_minutes,
        )
        return request, conflicts

    @staticmethod
    def _event_interval(event: CalendarEventFormatted, tz: tzinfo) -> Optional[BusyInterval]:
        """
        Busy interval for a calendar event.

        Date-only bounds are all-day events (end date exclusive, as calendar
        APIs send them) running midnight to midnight. Both all-day bounds and
        naive datetimes are read in the event's time zone when it is known,
        otherwise in the plan offset.
        """
        event_tz: tzinfo = tz
        if event.time_zone:
            try:
                event_tz = ZoneInfo(event.time_zone)
            except (ZoneInfoNotFoundError, ValueError):
                logger.debug(f"Unknown calendar time zone {event.time_zone!r}, using plan offset")

        start_text = event.start.strip()
        end_text = event.end.strip()
        try:
            if "T" not in start_text and "T" not in end_text:
                start_day = date.fromisoformat(start_text)
                end_day = date.fromisoformat(end_text)
                if end_day <= start_day:
                    end_day = start_day + timedelta(days=1)
                return BusyInterval(
                    start=local_midnight(start_day, event_tz),
                    end=local_midnight(end_day, event_tz),
                )
            start_dt = parse_iso_datetime(start_text, event_tz)
            end_dt = parse_iso_datetime(end_text, event_tz)
        except ValueError:
            return None
        return BusyInterval(start=start_dt, end=end_dt)

    def build_response(
        self,
        payload: TaskDistributionRequest,
        request: ScheduleRequest,
        result: ScheduleResult,
        event_conflicts: Optional[list[str]] = None,
    ) -> TaskDistributionResponse:
        """Render a ScheduleResult in the distribution response shape."""
        tz = request.tzinfo
        config = request.config
        source_tasks = {task.id: task for task in payload.tasks}
        items = {task.id: task for task in request.tasks}

        scheduled_tasks = [
            ScheduledTaskEntry(
                task_id=session.task_id,
                task_title=items[session.task_id].title,
                start_date_time=format_utc_iso(session.start),
                end_date_time=format_utc_iso(session.end),
                estimated_hours=round(session.minutes / 60, 2),
                priority=items[session.task_id].priority.value,
                assigned_to=self.settings.DISTRIBUTION_ASSIGNEE,
                session_number=session.session_index,
                dependencies=sorted(source_tasks[session.task_id].dependencies),
                tags=list(source_tasks[session.task_id].tags),
            )
            for session in result.sessions
        ]

        conflicts = list(event_conflicts or []) + list(result.conflicts)
        unscheduled_minutes: dict[str, int] = defaultdict(int)
        for item in result.unscheduled:
            unscheduled_minutes[item.task_id] += item.minutes
        for task_id, minutes in unscheduled_minutes.items():
            conflicts.append(
                f"{items[task_id].title or task_id}: {minutes} min could not be scheduled between "
                f"{request.planning_window.start.isoformat()} and {request.planning_window.end.isoformat()}"
            )

        windows = TimeGrid(self.settings.MAX_PLAN_DAYS).windows_for(request.planning_window, config, tz)
        calendar = BusyIntervalSet.build(request.busy_intervals, tz)
        sessions_by_date: dict[date, int] = defaultdict(int)
        minutes_by_date: dict[date, int] = defaultdict(int)
        for session in result.sessions:
            local_day = session.start.astimezone(tz).date()
            sessions_by_date[local_day] += 1
            minutes_by_date[local_day] += session.minutes

        time_blocks_used = [
            TimeBlockUsage(
                date=window.date.isoformat(),
                start_time=format_minutes_as_time(config.start_minutes),
                end_time=format_minutes_as_time(config.end_minutes),
                available_hours=round(
                    (window.minutes - calendar.overlap_minutes(window.start, window.end)) / 60, 2
                ),
                tasks_scheduled=sessions_by_date[window.date],
            )
            for window in windows
            if sessions_by_date.get(window.date)
        ]

        total_hours = round(result.total_minutes_scheduled / 60, 2)
        daily_hours = [minutes / 60 for minutes in minutes_by_date.values()]
        summary = DistributionSummary(
            tasks_distributed=len({session.task_id for session in result.sessions}),
            total_time_allocated=total_hours,
            average_daily_hours=round(sum(daily_hours) / len(daily_hours), 2) if daily_hours else 0.0,
            peak_workday_hours=round(max(daily_hours), 2) if daily_hours else 0.0,
            conflicts_resolved=sum(
                1
                for interval in calendar.intervals
                if any(interval.start < window.end and window.start < interval.end for window in windows)
            ),
        )

        return TaskDistributionResponse(
            success=True,
            scheduled_tasks=scheduled_tasks,
            conflicts=conflicts,
            suggestions=self._suggestions(request, result, unscheduled_minutes),
            total_hours=total_hours,
            time_blocks_used=time_blocks_used,
            distribution_summary=summary,
        )

    @staticmethod
    def _suggestions(
        request: ScheduleRequest,
        result: ScheduleResult,
        unscheduled_minutes: dict[str, int],
    ) -> list[str]:
        suggestions: list[str] = []
        tz = request.tzinfo

        if unscheduled_minutes:
            suggestions.append(
                f"{len(unscheduled_minutes)} task(s) did not fit; extend the planning window, "
                "include weekends or lower the estimates"
            )

        late_count = sum(1 for conflict in result.conflicts if conflict.endswith("after its due date"))
        if late_count:
            suggestions.append(f"{late_count} task(s) end after their due date; review those deadlines")

        days_by_tag: dict[str, set[date]] = defaultdict(set)
        tasks_by_tag: dict[str, set[str]] = defaultdict(set)
        for task in request.tasks:
            for tag in task.tags:
                tasks_by_tag[tag].add(task.id)
        for session in result.sessions:
            for tag, task_ids in tasks_by_tag.items():
                if session.task_id in task_ids:
                    days_by_tag[tag].add(session.start.astimezone(tz).date())
        for tag in sorted(days_by_tag):
            if len(tasks_by_tag[tag]) > 1 and len(days_by_tag[tag]) > 1:
                suggestions.append(
                    f"Tasks tagged '{tag}' are spread over {len(days_by_tag[tag])} days; "
                    "consider grouping them"
                )

        if result.sessions and not unscheduled_minutes and not result.conflicts:
            suggestions.append("All tasks fit within working hours without calendar conflicts")
        return suggestions


def validate_distribution_response(response: Any) -> bool:
    """
    Check that a distribution response has the expected shape.

    Required top-level keys, a ``scheduled_tasks`` list, the required keys on
    each scheduled task, and parseable start/end timestamps.
    """
    if hasattr(response, "model_dump"):
        response = response.model_dump()
    if not isinstance(response, dict):
        return False

    if any(field not in response for field in REQUIRED_RESPONSE_FIELDS):
        return False

    scheduled = response["scheduled_tasks"]
    if not isinstance(scheduled, list):
        return False

    for task in scheduled:
        if not isinstance(task, dict):
            return False
        if any(field not in task for field in REQUIRED_TASK_FIELDS):
            return False
        try:
            parse_iso_datetime(str(task["start_date_time"]))
            parse_iso_datetime(str(task["end_date_time"]))
        except ValueError:
            return False

    return True

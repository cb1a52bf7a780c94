"""
Post-hoc invariant checks for schedule results.
"""

from __future__ import annotations

from collections import defaultdict
from datetime import date, timedelta
from typing import Optional

from planner.core.config import Settings, get_settings
from planner.core.exceptions import InvalidConfigurationError
from planner.models.schedule import (
    ScheduledSession,
    ScheduleRequest,
    ScheduleResult,
    ValidationReport,
    WorkWindow,
)
from planner.services.busy_intervals import BusyIntervalSet
from planner.services.task_queue import TaskQueue
from planner.services.time_grid import TimeGrid
from planner.utils.datetime_utils import ensure_aware, minutes_between


class ScheduleValidator:
    """
    Re-checks a ScheduleResult against the request it claims to answer.

    Checks:
    - session arithmetic (``end - start == minutes``) and the session cap
    - containment in a working window of the session's date
    - no overlap between sessions, buffer included
    - no overlap with calendar busy time, buffer included
    - conservation of minutes for fully scheduled tasks
    - dependency order and the reported total

    Naive session timestamps are read in the request offset.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()
        self.time_grid = TimeGrid(self.settings.MAX_PLAN_DAYS)
        self.task_queue = TaskQueue(self.settings)

    def validate(self, request: ScheduleRequest, result: ScheduleResult) -> ValidationReport:
        violations: list[str] = []
        config = request.config
        tz = request.tzinfo
        task_map = {task.id: task for task in request.tasks}
        sessions = [
            session.model_copy(
                update={"start": ensure_aware(session.start, tz), "end": ensure_aware(session.end, tz)}
            )
            for session in result.sessions
        ]

        try:
            windows = self.time_grid.windows_for(request.planning_window, config, tz)
        except InvalidConfigurationError as exc:
            return ValidationReport(valid=False, violations=[f"Invalid request: {exc.message}"])
        windows_by_date: dict[date, list[WorkWindow]] = defaultdict(list)
        for window in windows:
            windows_by_date[window.date].append(window)

        sessions_by_task: dict[str, list[ScheduledSession]] = defaultdict(list)
        for session in sessions:
            label = f"{session.task_id}#{session.session_index}"
            task = task_map.get(session.task_id)
            if task is None:
                violations.append(f"{label}: unknown task")
                continue
            sessions_by_task[session.task_id].append(session)

            if minutes_between(session.start, session.end) != session.minutes:
                violations.append(f"{label}: end - start does not equal {session.minutes} minutes")

            cap = config.max_session_minutes
            expected = self.task_queue.split_minutes(self.task_queue.effective_minutes(task), config)
            if session.session_index <= len(expected):
                cap = max(cap, expected[session.session_index - 1])
            if session.minutes > cap:
                violations.append(f"{label}: {session.minutes} minutes exceeds the session cap of {cap}")

            local_date = session.start.astimezone(tz).date()
            if not any(
                window.start <= session.start and session.end <= window.end
                for window in windows_by_date.get(local_date, [])
            ):
                violations.append(f"{label}: outside working hours on {local_date.isoformat()}")

        violations.extend(self._check_spacing(sessions, config.buffer_minutes))

        calendar = BusyIntervalSet.build(request.busy_intervals, tz)
        for session in sessions:
            if calendar.first_conflict(session.start, session.end, config.buffer_minutes):
                violations.append(
                    f"{session.task_id}#{session.session_index}: overlaps busy calendar time"
                )

        unscheduled_ids = result.unscheduled_task_ids
        for task_id, task_sessions in sessions_by_task.items():
            indexes = [session.session_index for session in task_sessions]
            if len(indexes) != len(set(indexes)):
                violations.append(f"{task_id}: duplicate session index")
            if task_id in unscheduled_ids:
                continue
            scheduled = sum(session.minutes for session in task_sessions)
            expected_total = self.task_queue.effective_minutes(task_map[task_id])
            if scheduled != expected_total:
                violations.append(
                    f"{task_id}: scheduled {scheduled} minutes but the task needs {expected_total}"
                )
        for task_id in task_map:
            if task_id not in sessions_by_task and task_id not in unscheduled_ids:
                violations.append(f"{task_id}: neither scheduled nor reported as unscheduled")

        for task_id, task_sessions in sessions_by_task.items():
            first_start = min(session.start for session in task_sessions)
            for dep_id in sorted(task_map[task_id].depends_on):
                dep_sessions = sessions_by_task.get(dep_id)
                if not dep_sessions:
                    continue
                if max(session.start for session in dep_sessions) >= first_start:
                    violations.append(f"{task_id}: starts before its dependency {dep_id}")

        total = sum(session.minutes for session in sessions)
        if total != result.total_minutes_scheduled:
            violations.append(
                f"total_minutes_scheduled is {result.total_minutes_scheduled}, sessions sum to {total}"
            )

        return ValidationReport(valid=not violations, violations=violations)

    @staticmethod
    def _check_spacing(sessions: list[ScheduledSession], buffer_minutes: int) -> list[str]:
        violations: list[str] = []
        buffer = timedelta(minutes=buffer_minutes)
        ordered = sorted(sessions, key=lambda session: (session.start, session.end))
        latest: Optional[ScheduledSession] = None
        for session in ordered:
            if latest is not None and latest.end + buffer > session.start:
                violations.append(
                    f"{session.task_id}#{session.session_index}: overlaps "
                    f"{latest.task_id}#{latest.session_index} or its {buffer_minutes}-minute buffer"
                )
            if latest is None or session.end > latest.end:
                latest = session
        return violations

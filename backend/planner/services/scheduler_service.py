"""
Scheduler service for calendar-aware task placement.

Places task sessions into working-hour windows around the user's existing
calendar, respecting priorities, dependencies and buffer spacing.
"""

from bisect import bisect_right
from datetime import datetime, timedelta
from typing import Optional

from planner.core.config import Settings, get_settings
from planner.core.exceptions import ScheduleIntegrityError
from planner.core.logger import setup_logger
from planner.models.enums import UnscheduledReason
from planner.models.schedule import (
    ScheduledSession,
    ScheduleRequest,
    ScheduleResult,
    UnscheduledUnit,
    WorkWindow,
)
from planner.services.busy_intervals import BusyIntervalSet
from planner.services.schedule_validator import ScheduleValidator
from planner.services.task_queue import TaskQueue
from planner.services.time_grid import TimeGrid
from planner.utils.datetime_utils import ensure_aware

logger = setup_logger(__name__)


class SchedulerService:
    """
    Service for earliest-fit task scheduling.

    Provides:
    - Working-window enumeration (TimeGrid)
    - Calendar conflict avoidance with buffers (BusyIntervalSet)
    - Dependency- and priority-ordered session queue (TaskQueue)
    - Greedy earliest-fit placement with unscheduled/conflict reporting
    """

    def __init__(self, settings: Optional[Settings] = None, validate: Optional[bool] = None):
        """
        Initialize scheduler service.

        Args:
            settings: Application settings (None = cached settings)
            validate: Check every result before returning it (None = VALIDATE_SCHEDULES)
        """
        self.settings = settings or get_settings()
        self.validate = self.settings.VALIDATE_SCHEDULES if validate is None else validate
        self.time_grid = TimeGrid(self.settings.MAX_PLAN_DAYS)
        self.task_queue = TaskQueue(self.settings)
        self.validator = ScheduleValidator(self.settings)

    def build_schedule(self, request: ScheduleRequest) -> ScheduleResult:
        """
        Build a schedule for the request.

        - Units are placed in queue order; nothing is moved once placed.
        - A unit that does not fit anywhere is reported and skipped.
        - Late placements are kept and reported as conflicts.

        Raises:
            InvalidConfigurationError: Working hours or planning window are inconsistent
            ScheduleInputError: Duplicate task ids
            CyclicDependencyError: Task dependencies form a cycle
            ScheduleIntegrityError: Validation is on and the result breaks an invariant
        """
        tz = request.tzinfo
        config = request.config
        windows = self.time_grid.windows_for(request.planning_window, config, tz)
        units = self.task_queue.build(request.tasks, config, tz)
        calendar = BusyIntervalSet.build(request.busy_intervals, tz)

        # Calendar plus every session placed so far.
        occupied = calendar.copy()
        window_ends = [window.end for window in windows]
        task_map = {task.id: task for task in request.tasks}

        sessions: list[ScheduledSession] = []
        unscheduled: list[UnscheduledUnit] = []
        conflicts: list[str] = list(calendar.conflicts)
        last_end: dict[str, datetime] = {}
        failed_task_ids: set[str] = set()
        late_task_ids: set[str] = set()

        for unit in units:
            task = task_map[unit.task_id]
            dep_ids = [dep_id for dep_id in sorted(task.depends_on) if dep_id in task_map]

            if any(dep_id in failed_task_ids for dep_id in dep_ids):
                unscheduled.append(
                    UnscheduledUnit(
                        task_id=unit.task_id,
                        session_index=unit.session_index,
                        minutes=unit.minutes,
                        reason=UnscheduledReason.DEPENDENCY_UNSCHEDULED,
                    )
                )
                failed_task_ids.add(unit.task_id)
                continue

            not_before = self._not_before([unit.task_id, *dep_ids], last_end)
            slot = self._find_slot(
                unit.minutes,
                windows,
                window_ends,
                occupied,
                config.buffer_minutes,
                not_before,
            )
            if slot is None:
                unscheduled.append(
                    UnscheduledUnit(
                        task_id=unit.task_id,
                        session_index=unit.session_index,
                        minutes=unit.minutes,
                        reason=UnscheduledReason.NO_AVAILABLE_SLOT,
                    )
                )
                failed_task_ids.add(unit.task_id)
                continue

            start, end = slot
            occupied.add(start, end)
            sessions.append(
                ScheduledSession(
                    task_id=unit.task_id,
                    session_index=unit.session_index,
                    start=start,
                    end=end,
                    minutes=unit.minutes,
                )
            )
            last_end[unit.task_id] = max(end, last_end.get(unit.task_id, end))

            if (
                task.due_by is not None
                and end > ensure_aware(task.due_by, tz)
                and task.id not in late_task_ids
            ):
                late_task_ids.add(task.id)
                conflicts.append(f"{task.id} scheduled after its due date")

        sessions.sort(key=lambda session: (session.start, session.task_id, session.session_index))
        result = ScheduleResult(
            sessions=sessions,
            unscheduled=unscheduled,
            conflicts=conflicts,
            total_minutes_scheduled=sum(session.minutes for session in sessions),
        )

        logger.info(
            f"Schedule built: {len(sessions)}/{len(units)} sessions placed "
            f"({result.total_minutes_scheduled} min over {len(windows)} windows, "
            f"{len(unscheduled)} unscheduled, {len(conflicts)} conflicts)"
        )

        if self.validate:
            report = self.validator.validate(request, result)
            if not report.valid:
                logger.error(f"Schedule failed validation: {report.violations}")
                raise ScheduleIntegrityError(report.violations)

        return result

    @staticmethod
    def _not_before(task_ids: list[str], last_end: dict[str, datetime]) -> Optional[datetime]:
        """Latest end among already placed sessions of the given tasks."""
        ends = [last_end[task_id] for task_id in task_ids if task_id in last_end]
        return max(ends) if ends else None

    @staticmethod
    def _find_slot(
        minutes: int,
        windows: list[WorkWindow],
        window_ends: list[datetime],
        occupied: BusyIntervalSet,
        buffer_minutes: int,
        not_before: Optional[datetime],
    ) -> Optional[tuple[datetime, datetime]]:
        """Earliest ``[start, start + minutes)`` that fits a window and is free."""
        duration = timedelta(minutes=minutes)
        buffer = timedelta(minutes=buffer_minutes)
        first = bisect_right(window_ends, not_before) if not_before else 0

        for window in windows[first:]:
            candidate = window.start if not_before is None else max(window.start, not_before)
            while candidate + duration <= window.end:
                blocker = occupied.first_conflict(candidate, candidate + duration, buffer_minutes)
                if blocker is None:
                    return candidate, candidate + duration
                candidate = blocker.end + buffer
        return None


def get_scheduler_service() -> SchedulerService:
    """Get SchedulerService instance."""
    return SchedulerService()


def schedule_tasks(request: ScheduleRequest) -> ScheduleResult:
    """Run the scheduler once with default settings."""
    return get_scheduler_service().build_schedule(request)

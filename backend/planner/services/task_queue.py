"""
Priority-ordered, dependency-aware queue of schedulable units.
"""

from __future__ import annotations

from datetime import tzinfo
from typing import Optional

from planner.core.config import Settings, get_settings
from planner.core.exceptions import ScheduleInputError
from planner.core.logger import setup_logger
from planner.models.schedule import SchedulableUnit, TaskItem, WorkingHoursConfig
from planner.utils.datetime_utils import UTC, ensure_aware
from planner.utils.dependency_validator import DependencyValidator

logger = setup_logger(__name__)


class TaskQueue:
    """
    Turns caller tasks into an ordered list of bounded sessions.

    Order: dependencies first, then priority rank, then due date (tasks
    without one last), then input order, then task id. A task released by
    its last dependency competes with the tasks already ready on that key.
    """

    def __init__(self, settings: Optional[Settings] = None):
        self.settings = settings or get_settings()

    def build(
        self,
        tasks: list[TaskItem],
        config: WorkingHoursConfig,
        tz: tzinfo = UTC,
    ) -> list[SchedulableUnit]:
        """
        Build the unit queue for a run.

        Args:
            tasks: Tasks in caller order (never mutated)
            config: Session cap and minimum session length
            tz: Timezone assumed for naive due dates

        Returns:
            list[SchedulableUnit]: Units in scheduling order

        Raises:
            ScheduleInputError: If two tasks share an id
            CyclicDependencyError: If the dependency graph has a cycle
        """
        task_map: dict[str, TaskItem] = {}
        input_index: dict[str, int] = {}
        for index, task in enumerate(tasks):
            if task.id in task_map:
                raise ScheduleInputError(f"Duplicate task id: {task.id}", details={"task_id": task.id})
            task_map[task.id] = task
            input_index[task.id] = index

        validator = DependencyValidator({task.id: task.depends_on for task in tasks})
        for task_id, missing in validator.missing.items():
            logger.debug(f"Task {task_id} depends on tasks outside this run, treated as done: {missing}")

        def sort_key(task_id: str) -> tuple:
            task = task_map[task_id]
            due = ensure_aware(task.due_by, tz).timestamp() if task.due_by else 0.0
            return (task.priority_rank, task.due_by is None, due, input_index[task_id], task_id)

        ordered_ids = validator.topological_order(sort_key)

        units: list[SchedulableUnit] = []
        for task_id in ordered_ids:
            minutes = self.effective_minutes(task_map[task_id])
            for session_index, session_minutes in enumerate(self.split_minutes(minutes, config), start=1):
                units.append(
                    SchedulableUnit(task_id=task_id, session_index=session_index, minutes=session_minutes)
                )

        logger.debug(f"Task queue built: {len(tasks)} tasks -> {len(units)} units")
        return units

    def effective_minutes(self, task: TaskItem) -> int:
        """Estimated minutes, falling back to the priority default."""
        if task.estimated_minutes:
            return task.estimated_minutes
        return self.settings.default_estimate_minutes(task.priority)

    @staticmethod
    def split_minutes(total_minutes: int, config: WorkingHoursConfig) -> list[int]:
        """
        Split work into sessions of at most ``max_session_minutes``.

        A remainder shorter than ``min_session_minutes`` is folded into the
        previous session rather than left as a tiny trailing session.
        """
        cap = config.max_session_minutes
        full, remainder = divmod(total_minutes, cap)
        sessions = [cap] * full
        if remainder:
            if sessions and remainder < config.min_session_minutes:
                sessions[-1] += remainder
            else:
                sessions.append(remainder)
        return sessions

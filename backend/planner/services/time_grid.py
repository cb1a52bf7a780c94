"""
Working-hour windows over a planning horizon.
"""

from datetime import date, timedelta, tzinfo
from typing import Optional

from planner.core.config import get_settings
from planner.core.exceptions import InvalidConfigurationError
from planner.models.schedule import PlanningWindow, WorkingHoursConfig, WorkWindow
from planner.utils.datetime_utils import local_midnight

SATURDAY = 5
SUNDAY = 6


class TimeGrid:
    """Enumerates the working windows of a planning window."""

    def __init__(self, max_plan_days: Optional[int] = None):
        self.max_plan_days = max_plan_days or get_settings().MAX_PLAN_DAYS

    def windows_for(
        self,
        planning_window: PlanningWindow,
        config: WorkingHoursConfig,
        tz: tzinfo,
    ) -> list[WorkWindow]:
        """
        Build one window per eligible day in ``planning_window``.

        Args:
            planning_window: Closed date range to enumerate
            config: Working hours and weekend flags
            tz: Fixed offset of the user's local clock

        Returns:
            list[WorkWindow]: Windows in chronological order

        Raises:
            InvalidConfigurationError: If the hours or the date range are inconsistent
        """
        self.check(planning_window, config)

        windows: list[WorkWindow] = []
        day = planning_window.start
        while day <= planning_window.end:
            if self.is_working_day(day, config):
                midnight = local_midnight(day, tz)
                windows.append(
                    WorkWindow(
                        date=day,
                        start=midnight + timedelta(minutes=config.start_minutes),
                        end=midnight + timedelta(minutes=config.end_minutes),
                    )
                )
            day += timedelta(days=1)
        return windows

    def check(self, planning_window: PlanningWindow, config: WorkingHoursConfig) -> None:
        if config.start_minutes >= config.end_minutes:
            raise InvalidConfigurationError(
                "Working hours must start before they end",
                details={"start_minutes": config.start_minutes, "end_minutes": config.end_minutes},
            )
        if planning_window.start > planning_window.end:
            raise InvalidConfigurationError(
                "Planning window starts after it ends",
                details={
                    "start": planning_window.start.isoformat(),
                    "end": planning_window.end.isoformat(),
                },
            )
        days = (planning_window.end - planning_window.start).days + 1
        if days > self.max_plan_days:
            raise InvalidConfigurationError(
                f"Planning window of {days} days exceeds the {self.max_plan_days}-day limit",
                details={"days": days, "max_plan_days": self.max_plan_days},
            )

    @staticmethod
    def is_working_day(day: date, config: WorkingHoursConfig) -> bool:
        weekday = day.weekday()
        if weekday == SATURDAY:
            return config.include_saturday
        if weekday == SUNDAY:
            return config.include_sunday
        return True

"""
Dependency injection for API endpoints.

This module provides FastAPI dependencies for the scheduling services.
"""

from typing import Annotated

from fastapi import Depends

from planner.core.config import Settings, get_settings
from planner.services.distribution_service import DistributionService
from planner.services.schedule_validator import ScheduleValidator
from planner.services.scheduler_service import SchedulerService


def get_scheduler_service(
    settings: Annotated[Settings, Depends(get_settings)],
) -> SchedulerService:
    """Get SchedulerService instance."""
    return SchedulerService(settings)


def get_schedule_validator(
    settings: Annotated[Settings, Depends(get_settings)],
) -> ScheduleValidator:
    """Get ScheduleValidator instance."""
    return ScheduleValidator(settings)


def get_distribution_service(
    scheduler_service: Annotated[SchedulerService, Depends(get_scheduler_service)],
    settings: Annotated[Settings, Depends(get_settings)],
) -> DistributionService:
    """Get DistributionService instance."""
    return DistributionService(scheduler_service=scheduler_service, settings=settings)


# ===========================================
# Type aliases for dependency injection
# ===========================================

SchedulerServiceDep = Annotated[SchedulerService, Depends(get_scheduler_service)]
ScheduleValidatorDep = Annotated[ScheduleValidator, Depends(get_schedule_validator)]
DistributionServiceDep = Annotated[DistributionService, Depends(get_distribution_service)]

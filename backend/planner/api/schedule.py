"""
Scheduling API endpoints.
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from planner.api.deps import DistributionServiceDep, ScheduleValidatorDep, SchedulerServiceDep
from planner.core.exceptions import (
    CyclicDependencyError,
    PlannerError,
    ScheduleInputError,
    ScheduleIntegrityError,
)
from planner.models.distribution import TaskDistributionRequest, TaskDistributionResponse
from planner.models.schedule import (
    ScheduleRequest,
    ScheduleResult,
    ScheduleValidationRequest,
    ValidationReport,
)

router = APIRouter()


def to_http_exception(exc: PlannerError) -> HTTPException:
    """Map a fatal scheduling error to an HTTP error."""
    if isinstance(exc, ScheduleInputError):
        return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))
    if isinstance(exc, CyclicDependencyError):
        return HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc))
    if isinstance(exc, ScheduleIntegrityError):
        return HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail={"message": str(exc), "violations": exc.violations},
        )
    return HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc))


@router.post("/schedule", response_model=ScheduleResult)
async def create_schedule(
    payload: ScheduleRequest,
    scheduler_service: SchedulerServiceDep,
):
    """Place tasks into free working time around the calendar."""
    try:
        return scheduler_service.build_schedule(payload)
    except PlannerError as exc:
        raise to_http_exception(exc) from exc


@router.post("/schedule/validate", response_model=ValidationReport)
async def validate_schedule(
    payload: ScheduleValidationRequest,
    validator: ScheduleValidatorDep,
):
    """Check a schedule against the request it was built for."""
    return validator.validate(payload.request, payload.result)


@router.post("/schedule/distribute", response_model=TaskDistributionResponse)
async def distribute_tasks(
    payload: TaskDistributionRequest,
    distribution_service: DistributionServiceDep,
):
    """Distribute project tasks over the user's calendar."""
    try:
        return distribution_service.distribute(payload)
    except PlannerError as exc:
        raise to_http_exception(exc) from exc

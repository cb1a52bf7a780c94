"""
Custom exceptions for the application.
"""

from typing import Any, Iterable, Optional


class PlannerError(Exception):
    """Base exception for Planner B."""

    def __init__(self, message: str, details: Optional[Any] = None):
        self.message = message
        self.details = details
        super().__init__(message)


class ValidationError(PlannerError):
    """Validation error."""

    pass


class ScheduleInputError(ValidationError):
    """Scheduling request is malformed and cannot be planned at all."""

    pass


class InvalidConfigurationError(ScheduleInputError):
    """Working-hours configuration or planning window is self-contradictory."""

    pass


class BusinessLogicError(PlannerError):
    """Business logic constraint violation."""

    pass


class CyclicDependencyError(BusinessLogicError):
    """Task dependency graph is not a DAG."""

    def __init__(self, task_ids: Iterable[str]):
        self.task_ids = sorted(set(task_ids))
        super().__init__(
            f"Cyclic task dependency detected between: {', '.join(self.task_ids)}",
            details={"task_ids": self.task_ids},
        )


class InfrastructureError(PlannerError):
    """Infrastructure-related error (engine internals, external services, etc.)."""

    pass


class ScheduleIntegrityError(InfrastructureError):
    """The scheduler produced a result that breaks a schedule invariant."""

    def __init__(self, violations: list[str]):
        self.violations = list(violations)
        super().__init__(
            f"Schedule failed validation with {len(self.violations)} violation(s)",
            details={"violations": self.violations},
        )

"""
Enum definitions for the application.

These enums are used across models and provide type-safe priority/reason values.
"""

from enum import Enum


class Priority(str, Enum):
    """Task priority, most pressing first."""

    URGENT = "URGENT"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """0 for URGENT through 3 for LOW."""
        return _PRIORITY_RANKS[self]

    @classmethod
    def from_rank(cls, rank: int) -> "Priority":
        for priority, value in _PRIORITY_RANKS.items():
            if value == rank:
                return priority
        raise ValueError(f"Unknown priority rank: {rank}")

    @classmethod
    def parse(cls, value: str | None) -> "Priority":
        """Lenient parse used for external payloads; unknown values become MEDIUM."""
        if not value:
            return cls.MEDIUM
        try:
            return cls(value.strip().upper())
        except ValueError:
            return cls.MEDIUM


_PRIORITY_RANKS = {
    Priority.URGENT: 0,
    Priority.HIGH: 1,
    Priority.MEDIUM: 2,
    Priority.LOW: 3,
}


class UnscheduledReason(str, Enum):
    """Why a schedulable unit did not get a slot."""

    NO_AVAILABLE_SLOT = "no_available_slot"
    DEPENDENCY_UNSCHEDULED = "dependency_unscheduled"

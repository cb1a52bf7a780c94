"""
Merged set of booked calendar time used for conflict testing.
"""

from __future__ import annotations

from bisect import bisect_left
from datetime import datetime, timedelta, tzinfo
from typing import Iterable, Optional

from planner.core.logger import setup_logger
from planner.models.schedule import BusyInterval
from planner.utils.datetime_utils import UTC, ensure_aware, minutes_between

logger = setup_logger(__name__)


class BusyIntervalSet:
    """
    Sorted, pairwise-disjoint busy intervals.

    Intervals that overlap or touch are always merged, so no two stored
    intervals satisfy ``a.end >= b.start``.
    """

    def __init__(self) -> None:
        self._starts: list[datetime] = []
        self._ends: list[datetime] = []
        self.conflicts: list[str] = []

    @classmethod
    def build(cls, raw_intervals: Iterable[BusyInterval], tz: tzinfo = UTC) -> BusyIntervalSet:
        """
        Normalize raw calendar intervals.

        Zero or negative length intervals are dropped and reported in
        ``conflicts``; they never fail the build.

        Args:
            raw_intervals: Intervals in any order, possibly overlapping
            tz: Timezone assumed for naive timestamps

        Returns:
            BusyIntervalSet with merged intervals
        """
        busy = cls()
        valid: list[tuple[datetime, datetime]] = []
        for interval in raw_intervals:
            start = ensure_aware(interval.start, tz)
            end = ensure_aware(interval.end, tz)
            if end <= start:
                message = (
                    f"Ignored malformed busy interval {start.isoformat()} - {end.isoformat()}"
                )
                logger.warning(message)
                busy.conflicts.append(message)
                continue
            valid.append((start, end))

        valid.sort()
        for start, end in valid:
            if busy._ends and start <= busy._ends[-1]:
                busy._ends[-1] = max(busy._ends[-1], end)
            else:
                busy._starts.append(start)
                busy._ends.append(end)

        logger.debug(f"Busy set built: {len(valid)} raw -> {len(busy._starts)} merged intervals")
        return busy

    @property
    def intervals(self) -> list[BusyInterval]:
        return [BusyInterval(start=start, end=end) for start, end in zip(self._starts, self._ends)]

    def __len__(self) -> int:
        return len(self._starts)

    def copy(self) -> BusyIntervalSet:
        clone = BusyIntervalSet()
        clone._starts = list(self._starts)
        clone._ends = list(self._ends)
        clone.conflicts = list(self.conflicts)
        return clone

    def first_conflict(
        self,
        start: datetime,
        end: datetime,
        buffer_minutes: int = 0,
    ) -> Optional[BusyInterval]:
        """
        Find the interval blocking ``[start, end)`` widened by the buffer.

        When several intervals block the candidate, the one ending last is
        returned, so a caller can resume its search right after it.
        """
        buffer = timedelta(minutes=buffer_minutes)
        padded_start = start - buffer
        padded_end = end + buffer
        idx = bisect_left(self._starts, padded_end)
        # Ends are sorted too, so the last interval starting before padded_end
        # is the only one that needs checking.
        if idx > 0 and self._ends[idx - 1] > padded_start:
            return BusyInterval(start=self._starts[idx - 1], end=self._ends[idx - 1])
        return None

    def is_free(self, start: datetime, end: datetime, buffer_minutes: int = 0) -> bool:
        return self.first_conflict(start, end, buffer_minutes) is None

    def add(self, start: datetime, end: datetime) -> None:
        """Insert ``[start, end)`` and merge it with any interval it touches."""
        if end <= start:
            return
        idx = bisect_left(self._starts, start)
        new_start, new_end = start, end
        if idx > 0 and self._ends[idx - 1] >= new_start:
            idx -= 1
            new_start = self._starts[idx]
            new_end = max(new_end, self._ends[idx])
        stop = idx
        while stop < len(self._starts) and self._starts[stop] <= new_end:
            new_end = max(new_end, self._ends[stop])
            stop += 1
        self._starts[idx:stop] = [new_start]
        self._ends[idx:stop] = [new_end]

    def overlap_minutes(self, start: datetime, end: datetime) -> int:
        """Busy minutes inside ``[start, end)``."""
        total = 0
        idx = max(0, bisect_left(self._starts, start) - 1)
        while idx < len(self._starts) and self._starts[idx] < end:
            overlap_start = max(start, self._starts[idx])
            overlap_end = min(end, self._ends[idx])
            if overlap_end > overlap_start:
                total += minutes_between(overlap_start, overlap_end)
            idx += 1
        return total

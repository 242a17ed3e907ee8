"""Index of occupied time built from the owner's task set."""

from __future__ import annotations

import bisect
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from planmyday.logger import debug_enabled, get_logger

if TYPE_CHECKING:
    from planmyday.models import Task

    from .timezones import TimezoneProjector
    from .windows import DayWindow

logger = get_logger()


@dataclass(frozen=True)
class BusyInterval:
    """Time occupied by one scheduled task."""

    start: datetime
    end: datetime
    task_id: str
    priority: int
    movable: bool

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end

    def displaceable_by(self, priority: int) -> bool:
        """True if a task of the given priority may push this one out of the way."""
        return self.movable and self.priority > priority


class ConflictIndex:
    """Busy intervals sorted by start time.

    Intervals may overlap each other (the calendar allows double-booking by
    hand), so they are kept individually with their owning task's identity;
    free_gaps() merges them when computing availability. The index is never
    mutated after construction; without() and with_interval() return new
    indexes for what-if placement during shuffles.
    """

    def __init__(self, intervals: Iterable[BusyInterval] = ()) -> None:
        self.intervals: list[BusyInterval] = sorted(
            intervals, key=lambda i: (i.start, i.end, i.task_id)
        )
        self._starts = [interval.start for interval in self.intervals]
        self._longest = max(
            (interval.end - interval.start for interval in self.intervals),
            default=timedelta(0),
        )

    @classmethod
    def from_tasks(cls, tasks: Iterable[Task], *, exclude_ids: Iterable[str] = ()) -> ConflictIndex:
        """Build the index from every active, scheduled task not excluded.

        Completed and cancelled tasks no longer occupy time.
        """
        excluded = set(exclude_ids)
        intervals: list[BusyInterval] = []
        for task in tasks:
            if task.id in excluded or not task.is_active:
                continue
            if task.scheduled_start is None or task.scheduled_end is None:
                continue
            if task.scheduled_end <= task.scheduled_start:
                continue
            intervals.append(
                BusyInterval(
                    start=task.scheduled_start,
                    end=task.scheduled_end,
                    task_id=task.id,
                    priority=task.priority,
                    movable=task.movable,
                )
            )
        return cls(intervals)

    def __len__(self) -> int:
        return len(self.intervals)

    def get(self, task_id: str) -> BusyInterval | None:
        for interval in self.intervals:
            if interval.task_id == task_id:
                return interval
        return None

    def overlapping(self, start: datetime, end: datetime) -> list[BusyInterval]:
        """All intervals intersecting [start, end), in start order."""
        if not self.intervals or end <= start:
            return []
        # Nothing starting earlier than start - longest can still reach start
        lo = bisect.bisect_left(self._starts, start - self._longest)
        hi = bisect.bisect_left(self._starts, end)
        return [interval for interval in self.intervals[lo:hi] if interval.overlaps(start, end)]

    def for_window(self, window: DayWindow) -> list[BusyInterval]:
        return self.overlapping(window.start, window.end)

    def for_day(self, day: date, projector: TimezoneProjector) -> list[BusyInterval]:
        """Intervals falling, even partially, on a civil day."""
        return self.overlapping(
            projector.start_of_day(day), projector.start_of_day(day + timedelta(days=1))
        )

    def free_gaps(self, start: datetime, end: datetime) -> list[tuple[datetime, datetime]]:
        """Unoccupied sub-intervals of [start, end), in order."""
        gaps: list[tuple[datetime, datetime]] = []
        cursor = start
        for interval in self.overlapping(start, end):
            if interval.start > cursor:
                gaps.append((cursor, interval.start))
            cursor = max(cursor, interval.end)
        if cursor < end:
            gaps.append((cursor, end))

        if debug_enabled():
            logger.debug(
                f"    free gaps in {start.isoformat()}..{end.isoformat()}: "
                + ", ".join(f"{s.isoformat()}..{e.isoformat()}" for s, e in gaps)
            )
        return gaps

    def without(self, task_ids: Iterable[str]) -> ConflictIndex:
        removed = set(task_ids)
        return ConflictIndex(i for i in self.intervals if i.task_id not in removed)

    def with_interval(self, interval: BusyInterval) -> ConflictIndex:
        return ConflictIndex([*self.intervals, interval])

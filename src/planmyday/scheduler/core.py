"""Core dataclasses for the scheduling engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from planmyday.models import DependencyMap, SchedulingMode, Task, TaskGroup, WeeklyHours


class ErrorKind(str, Enum):
    """Structured failure categories reported in a SchedulingResult."""

    INVALID_TASK = "InvalidTask"
    NO_SLOT_FOUND = "NoSlotFound"
    DEPENDENCY_UNRESOLVED = "DependencyUnresolved"
    DEPENDENCY_CYCLE = "DependencyCycle"
    SHUFFLE_INFEASIBLE = "ShuffleInfeasible"
    TIMEZONE_ERROR = "TimezoneError"


@dataclass(frozen=True)
class TimeSlot:
    """An absolute [start, end) interval in UTC."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start

    def overlaps(self, start: datetime, end: datetime) -> bool:
        return self.start < end and start < self.end


@dataclass(frozen=True)
class ShuffledTask:
    """A task the engine moved to make room; the caller persists new_slot."""

    task_id: str
    new_slot: TimeSlot


def _default_feedback() -> list[str]:
    return []


def _default_shuffled() -> list[ShuffledTask]:
    return []


@dataclass
class SchedulingRequest:
    """Everything one engine invocation needs, as an in-memory snapshot."""

    mode: SchedulingMode
    task: Task
    all_tasks: list[Task]
    task_group: TaskGroup | None = None
    all_groups: list[TaskGroup] = field(default_factory=lambda: [])
    awake_hours: WeeklyHours | None = None
    timezone: str | None = None  # None means the configured default (UTC)
    dependency_map: DependencyMap | None = None
    now: datetime | None = None  # None means the current instant
    start_from: datetime | None = None  # Optional floor for the placement start


@dataclass
class SchedulingResult:
    """Outcome of a scheduling request. Errors are values, never raised."""

    slot: TimeSlot | None
    error: str | None = None
    error_kind: ErrorKind | None = None
    feedback: list[str] = field(default_factory=_default_feedback)
    shuffled_tasks: list[ShuffledTask] = field(default_factory=_default_shuffled)

    @property
    def ok(self) -> bool:
        return self.slot is not None

"""Data models for planmyday.

These are the scheduling-relevant views of the application's tasks, groups and
user profile. They are frozen: the engine reads them and never mutates them.
"""

from __future__ import annotations

import re
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

MINUTES_PER_DAY = 24 * 60
MIN_PRIORITY = 1  # Most urgent
MAX_PRIORITY = 5  # Least urgent

WEEKDAY_NAMES = ("monday", "tuesday", "wednesday", "thursday", "friday", "saturday", "sunday")


class TaskStatus(str, Enum):
    """Lifecycle state of a task."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"


# Tasks in these states no longer occupy time and never block dependents
INACTIVE_STATUSES = frozenset({TaskStatus.COMPLETED, TaskStatus.CANCELLED})


class SchedulingMode(str, Enum):
    """Where on the calendar a placement should be searched for."""

    NOW = "now"
    TODAY = "today"
    TOMORROW = "tomorrow"
    NEXT_WEEK = "next-week"
    NEXT_MONTH = "next-month"
    ASAP = "asap"


def as_utc(value: datetime | None) -> datetime | None:
    """Interpret naive datetimes as UTC and normalize aware ones to UTC."""
    if value is None:
        return None
    return to_utc(value)


def to_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def parse_clock(value: Any) -> int:
    """Parse a civil time of day into minutes after midnight.

    Accepts "HH:MM" strings (including "24:00"), numeric hours (9, 17.5) and
    integer hours as used by stored group schedules.
    """
    if isinstance(value, bool):
        raise ValueError(f"Invalid time of day: {value!r}")
    if isinstance(value, (int, float)):
        minutes = round(float(value) * 60)
    elif isinstance(value, str):
        match = re.match(r"^\s*(\d{1,2}):(\d{2})\s*$", value)
        if not match:
            raise ValueError(f"Invalid time of day: {value!r} (expected HH:MM)")
        hours, mins = int(match.group(1)), int(match.group(2))
        if mins >= 60:
            raise ValueError(f"Invalid time of day: {value!r}")
        minutes = hours * 60 + mins
    else:
        raise ValueError(f"Invalid time of day: {value!r}")

    if minutes < 0 or minutes > MINUTES_PER_DAY:
        raise ValueError(f"Time of day out of range: {value!r}")
    return minutes


class DayHours(BaseModel):
    """A civil start/end pair for one weekday, in minutes after midnight."""

    model_config = ConfigDict(frozen=True)

    start_minute: int = Field(ge=0, lt=MINUTES_PER_DAY)
    end_minute: int = Field(gt=0, le=MINUTES_PER_DAY)

    @model_validator(mode="before")
    @classmethod
    def parse_start_end(cls, data: Any) -> Any:
        """Accept {start, end} mappings with clock strings or numeric hours."""
        if isinstance(data, dict) and ("start" in data or "end" in data):
            return {
                "start_minute": parse_clock(data.get("start")),
                "end_minute": parse_clock(data.get("end")),
            }
        return data

    @model_validator(mode="after")
    def validate_range(self) -> DayHours:
        if self.end_minute <= self.start_minute:
            raise ValueError("end must be later than start")
        return self

    @classmethod
    def full_day(cls) -> DayHours:
        return cls(start_minute=0, end_minute=MINUTES_PER_DAY)

    def __str__(self) -> str:
        return f"{_format_minute(self.start_minute)}-{_format_minute(self.end_minute)}"


def _format_minute(minute: int) -> str:
    return f"{minute // 60:02d}:{minute % 60:02d}"


class WeeklyHours(BaseModel):
    """Per-weekday hours (0 = Monday .. 6 = Sunday).

    Days that are missing or None are unavailable. Day names ("monday") are
    accepted as keys as well as integers.
    """

    model_config = ConfigDict(frozen=True)

    days: dict[int, DayHours | None] = Field(default_factory=dict)

    @model_validator(mode="before")
    @classmethod
    def parse_day_keys(cls, data: Any) -> Any:
        if not isinstance(data, dict) or "days" in data:
            return data
        days: dict[int, Any] = {}
        for key, value in data.items():
            days[_parse_weekday(key)] = value
        return {"days": days}

    @field_validator("days")
    @classmethod
    def validate_weekdays(cls, value: dict[int, DayHours | None]) -> dict[int, DayHours | None]:
        for weekday in value:
            if not 0 <= weekday <= 6:  # noqa: PLR2004
                raise ValueError(f"weekday must be 0-6, got {weekday}")
        return value

    def for_weekday(self, weekday: int) -> DayHours | None:
        return self.days.get(weekday)

    def is_empty(self) -> bool:
        return not self.days

    @classmethod
    def full_week(cls) -> WeeklyHours:
        return cls(days=dict.fromkeys(range(7), DayHours.full_day()))


def _parse_weekday(key: Any) -> int:
    if isinstance(key, int):
        return key
    text = str(key).strip().lower()
    if text.isdigit():
        return int(text)
    if text in WEEKDAY_NAMES:
        return WEEKDAY_NAMES.index(text)
    raise ValueError(f"Unknown weekday: {key!r}")


class Task(BaseModel):
    """The scheduling-relevant subset of a task."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    title: str = ""
    duration: int | None = None  # minutes
    priority: int = Field(default=3, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    energy_level_required: int = Field(default=3, ge=1, le=5)  # informational only
    status: TaskStatus = TaskStatus.PENDING
    scheduled_start: datetime | None = None
    scheduled_end: datetime | None = None
    due_date: datetime | None = None
    locked: bool = False
    group_id: str | None = None
    depends_on: frozenset[str] = frozenset()

    @field_validator("scheduled_start", "scheduled_end", "due_date")
    @classmethod
    def normalize_instant(cls, value: datetime | None) -> datetime | None:
        return as_utc(value)

    @model_validator(mode="after")
    def validate_schedule(self) -> Task:
        if (self.scheduled_start is None) != (self.scheduled_end is None):
            raise ValueError("scheduled_start and scheduled_end must be set together")
        if (
            self.scheduled_start is not None
            and self.scheduled_end is not None
            and self.scheduled_end < self.scheduled_start
        ):
            raise ValueError("scheduled_end must not be before scheduled_start")
        return self

    @property
    def label(self) -> str:
        """Human-readable name for feedback messages."""
        return self.title or self.id

    @property
    def is_scheduled(self) -> bool:
        return self.scheduled_start is not None and self.scheduled_end is not None

    @property
    def is_active(self) -> bool:
        return self.status not in INACTIVE_STATUSES

    @property
    def movable(self) -> bool:
        return not self.locked

    @property
    def duration_delta(self) -> timedelta:
        return timedelta(minutes=self.duration or 0)


class TaskGroup(BaseModel):
    """A task group, optionally overriding the hours its tasks may use."""

    model_config = ConfigDict(frozen=True)

    id: str = Field(min_length=1)
    name: str = ""
    auto_schedule_enabled: bool = False
    auto_schedule_hours: WeeklyHours | None = None
    priority: int | None = Field(default=None, ge=MIN_PRIORITY, le=MAX_PRIORITY)
    parent_group_id: str | None = None
    is_parent_group: bool = False

    def override_hours(self) -> WeeklyHours | None:
        """Hours replacing the user's awake hours, if this group overrides them."""
        if self.auto_schedule_enabled and self.auto_schedule_hours is not None:
            return self.auto_schedule_hours
        return None


DependencyMap = dict[str, set[str]]

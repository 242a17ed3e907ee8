"""Pytest configuration and fixtures for planmyday tests."""

from __future__ import annotations

from collections.abc import Iterator
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from planmyday import context
from planmyday.logger import reset_logger
from planmyday.models import SchedulingMode, Task, TaskGroup, WeeklyHours
from planmyday.scheduler import SchedulingRequest, SchedulingResult

UTC = timezone.utc

# 2025-01-06 is a Monday
MONDAY = datetime(2025, 1, 6, tzinfo=UTC)
WEEKDAYS = range(5)


@pytest.fixture(autouse=True)
def clean_global_state() -> Iterator[None]:
    """Reset the logger and CLI context between tests for isolation."""
    reset_logger()
    context.set_config_path(None)
    yield
    reset_logger()
    context.set_config_path(None)


def utc(year: int, month: int, day: int, hour: int = 0, minute: int = 0) -> datetime:
    """Shorthand for an aware UTC datetime."""
    return datetime(year, month, day, hour, minute, tzinfo=UTC)


def monday_at(hour: int, minute: int = 0, *, days: int = 0) -> datetime:
    """An instant on the reference Monday (or `days` later), in UTC."""
    return MONDAY + timedelta(days=days, hours=hour, minutes=minute)


def hours(
    start: str = "09:00", end: str = "17:00", days: Any = WEEKDAYS
) -> WeeklyHours:
    """Weekly hours with the same start/end on each of the given weekdays.

    Example:
        hours("09:00", "10:00", days=[0])  # Mondays only
    """
    return WeeklyHours.model_validate({day: {"start": start, "end": end} for day in days})


def make_task(  # noqa: PLR0913 - test builder mirrors Task fields
    task_id: str,
    duration: int | None = 60,
    *,
    priority: int = 3,
    start: datetime | None = None,
    locked: bool = False,
    **kwargs: Any,
) -> Task:
    """Build a Task; passing start schedules it for its duration.

    Example:
        make_task("b", priority=4, start=monday_at(9))  # 09:00-10:00 Monday
    """
    end = None
    if start is not None:
        end = start + timedelta(minutes=duration or 0)
    return Task(
        id=task_id,
        title=kwargs.pop("title", task_id.replace("-", " ").title()),
        duration=duration,
        priority=priority,
        scheduled_start=start,
        scheduled_end=end,
        locked=locked,
        **kwargs,
    )


def make_request(  # noqa: PLR0913
    target: Task,
    others: list[Task] | None = None,
    *,
    mode: SchedulingMode = SchedulingMode.NOW,
    now: datetime | None = None,
    awake_hours: WeeklyHours | None = None,
    groups: list[TaskGroup] | None = None,
    **kwargs: Any,
) -> SchedulingRequest:
    """Build a SchedulingRequest with a fixed clock (Monday 08:00 UTC by default).

    The target task is included in all_tasks; others are the rest of the calendar.
    """
    return SchedulingRequest(
        mode=mode,
        task=target,
        all_tasks=[target, *(others or [])],
        all_groups=groups or [],
        awake_hours=awake_hours if awake_hours is not None else hours(),
        timezone=kwargs.pop("timezone", "UTC"),
        now=now or monday_at(8),
        **kwargs,
    )


def moved_to(result: SchedulingResult) -> dict[str, tuple[datetime, datetime]]:
    """Map of displaced task id -> (new start, new end)."""
    return {m.task_id: (m.new_slot.start, m.new_slot.end) for m in result.shuffled_tasks}


def assert_no_double_booking(result: SchedulingResult, tasks: list[Task], target_id: str) -> None:
    """Assert the calendar after applying a result has no overlapping active tasks."""
    placements: dict[str, tuple[datetime, datetime]] = {}
    for t in tasks:
        if t.is_active and t.scheduled_start and t.scheduled_end and t.id != target_id:
            placements[t.id] = (t.scheduled_start, t.scheduled_end)
    placements.update(moved_to(result))
    if result.slot is not None:
        placements[target_id] = (result.slot.start, result.slot.end)

    ordered = sorted(placements.items(), key=lambda item: item[1][0])
    for (first_id, first), (second_id, second) in zip(ordered, ordered[1:], strict=False):
        assert first[1] <= second[0], (
            f"{first_id} ({first[0]}-{first[1]}) overlaps {second_id} ({second[0]}-{second[1]})"
        )

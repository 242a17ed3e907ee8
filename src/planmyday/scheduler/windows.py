"""Candidate day windows for each scheduling mode."""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from planmyday.logger import get_logger
from planmyday.models import DayHours, SchedulingMode, TaskGroup, WeeklyHours

from .config import SchedulingConfig
from .timezones import TimezoneProjector

logger = get_logger()

DAYS_PER_WEEK = 7
DECEMBER = 12

# Modes that only ever look at a single calendar day
SINGLE_DAY_MODES = frozenset({SchedulingMode.TODAY, SchedulingMode.TOMORROW})


@dataclass(frozen=True)
class DayWindow:
    """One day's searchable window, in civil minutes and absolute instants."""

    day: date
    start_minute: int
    end_minute: int
    start: datetime
    end: datetime

    @property
    def length(self) -> timedelta:
        return self.end - self.start


@dataclass(frozen=True)
class WindowPlan:
    """Where a mode starts searching and how far it may go.

    closed_reason is set when the mode cannot produce any window at all
    (e.g. "today" requested after today's hours have ended).
    """

    mode: SchedulingMode
    origin: datetime | None
    first_day: date
    max_days: int
    not_before: datetime | None = None
    closed_reason: str | None = None

    @property
    def last_day(self) -> date:
        return self.first_day + timedelta(days=self.max_days - 1)


class AvailabilityWindowResolver:
    """Produces the ordered sequence of per-day windows to search.

    The weekly schedule is the task group's auto-schedule hours when the group
    has them enabled, otherwise the user's awake hours, otherwise the whole day.
    """

    def __init__(
        self,
        projector: TimezoneProjector,
        awake_hours: WeeklyHours | None = None,
        group: TaskGroup | None = None,
        config: SchedulingConfig | None = None,
    ):
        self.projector = projector
        self.config = config or SchedulingConfig()

        override = group.override_hours() if group is not None else None
        self.uses_group_hours = override is not None
        if override is not None:
            self.hours = override
        elif awake_hours is not None and not awake_hours.is_empty():
            self.hours = awake_hours
        else:
            # No schedule configured: never fail silently, use the full day
            self.hours = WeeklyHours.full_week()

    def hours_for(self, day: date) -> DayHours | None:
        return self.hours.for_weekday(day.weekday())

    def window_for(self, day: date, *, not_before: datetime | None = None) -> DayWindow | None:
        """Build the window for a civil day, clipped so it never starts before not_before.

        Returns None when the day has no hours or nothing is left after clipping.
        """
        hours = self.hours_for(day)
        if hours is None:
            return None

        start = self.projector.at(day, hours.start_minute)
        end = self.projector.at(day, hours.end_minute)
        if not_before is not None and not_before > start:
            start = self.projector.round_up(not_before, self.config.slot_granularity_minutes)
        if start >= end:
            return None

        start_civil = self.projector.instant_to_civil(start)
        start_minute = start_civil.minute_of_day if start_civil.date == day else hours.start_minute
        return DayWindow(
            day=day,
            start_minute=start_minute,
            end_minute=hours.end_minute,
            start=start,
            end=end,
        )

    def first_day_with_hours(self, day: date, max_days: int) -> date | None:
        """Nearest day on or after `day` (within max_days) that has any hours."""
        for offset in range(max_days):
            candidate = day + timedelta(days=offset)
            if self.hours_for(candidate) is not None:
                return candidate
        return None

    def plan(  # noqa: PLR0911 - one branch per mode
        self,
        mode: SchedulingMode,
        now: datetime,
        *,
        start_from: datetime | None = None,
    ) -> WindowPlan:
        """Compute the origin and day range searched by a mode."""
        horizon = self.config.horizon_days
        today = self.projector.local_date(now)
        floor = _latest(now, start_from)

        if mode in (SchedulingMode.NOW, SchedulingMode.ASAP):
            return WindowPlan(mode, origin=floor, first_day=today, max_days=horizon, not_before=floor)

        if mode == SchedulingMode.TODAY:
            window = self.window_for(today, not_before=floor)
            if window is None:
                reason = (
                    "no available hours are configured for today"
                    if self.hours_for(today) is None
                    else "today's available hours have already ended"
                )
                return WindowPlan(mode, None, today, 1, floor, closed_reason=reason)
            origin = self.projector.at(today, self._hours(today).start_minute)
            return WindowPlan(mode, origin=origin, first_day=today, max_days=1, not_before=floor)

        if mode == SchedulingMode.TOMORROW:
            tomorrow = today + timedelta(days=1)
            if self.hours_for(tomorrow) is None:
                return WindowPlan(
                    mode,
                    None,
                    tomorrow,
                    1,
                    start_from,
                    closed_reason="no available hours are configured for tomorrow",
                )
            origin = self.projector.at(tomorrow, self._hours(tomorrow).start_minute)
            return WindowPlan(mode, origin, tomorrow, 1, not_before=start_from)

        if mode == SchedulingMode.NEXT_WEEK:
            anchor = today + timedelta(days=DAYS_PER_WEEK - today.weekday())
        elif mode == SchedulingMode.NEXT_MONTH:
            anchor = _first_of_next_month(today)
        else:
            raise ValueError(f"Unknown scheduling mode: {mode}")

        first_day = self.first_day_with_hours(anchor, horizon)
        if first_day is None:
            return WindowPlan(
                mode,
                None,
                anchor,
                horizon,
                start_from,
                closed_reason=f"no available hours within {horizon} days of {anchor.isoformat()}",
            )
        origin = self.projector.at(first_day, self._hours(first_day).start_minute)
        return WindowPlan(mode, origin, first_day, horizon, not_before=start_from)

    def plan_from(self, instant: datetime, max_days: int) -> WindowPlan:
        """A now-style plan anchored at an arbitrary instant."""
        return WindowPlan(
            SchedulingMode.NOW,
            origin=instant,
            first_day=self.projector.local_date(instant),
            max_days=max_days,
            not_before=instant,
        )

    def windows(self, plan: WindowPlan) -> Iterator[DayWindow]:
        """Lazily yield each day's window in order, skipping days without hours."""
        if plan.closed_reason is not None:
            return
        for offset in range(plan.max_days):
            day = plan.first_day + timedelta(days=offset)
            window = self.window_for(day, not_before=plan.not_before)
            if window is None:
                logger.window(day, "no available hours, skipping")
                continue
            yield window

    def windows_from(self, instant: datetime, max_days: int) -> Iterator[DayWindow]:
        """Windows starting at the civil day of an instant, clipped to it."""
        return self.windows(self.plan_from(instant, max_days))

    def _hours(self, day: date) -> DayHours:
        hours = self.hours_for(day)
        if hours is None:
            raise ValueError(f"No available hours on {day.isoformat()}")
        return hours


def _latest(first: datetime, second: datetime | None) -> datetime:
    if second is None:
        return first
    return max(first, second)


def _first_of_next_month(day: date) -> date:
    if day.month == DECEMBER:
        return date(day.year + 1, 1, 1)
    return date(day.year, day.month + 1, 1)

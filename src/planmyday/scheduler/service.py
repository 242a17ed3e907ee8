"""High-level scheduling service."""

from __future__ import annotations

import itertools
from collections.abc import Iterator
from datetime import date, datetime, timezone

from planmyday.exceptions import (
    DependencyCycleError,
    DependencyUnresolvedError,
    InvalidTaskError,
    NoSlotFoundError,
    PlanMyDayError,
    ShuffleInfeasibleError,
    TimezoneError,
)
from planmyday.logger import get_logger
from planmyday.models import SchedulingMode, Task, WeeklyHours, as_utc, to_utc

from .config import SchedulingConfig
from .conflicts import ConflictIndex
from .core import ErrorKind, SchedulingRequest, SchedulingResult, TimeSlot
from .dependencies import build_dependency_map, check_circular_dependencies
from .search import SearchContext, SlotSearchEngine
from .shuffle import ShuffleResolver
from .timezones import TimezoneProjector
from .windows import AvailabilityWindowResolver, DayWindow, WindowPlan

logger = get_logger()

SHUFFLE_FAILED = "cannot free required slot"

# Checked in order; subclasses before their bases
_ERROR_KINDS: list[tuple[type[PlanMyDayError], ErrorKind]] = [
    (InvalidTaskError, ErrorKind.INVALID_TASK),
    (DependencyCycleError, ErrorKind.DEPENDENCY_CYCLE),
    (DependencyUnresolvedError, ErrorKind.DEPENDENCY_UNRESOLVED),
    (ShuffleInfeasibleError, ErrorKind.SHUFFLE_INFEASIBLE),
    (TimezoneError, ErrorKind.TIMEZONE_ERROR),
    (NoSlotFoundError, ErrorKind.NO_SLOT_FOUND),
]


def error_kind_for(error: PlanMyDayError) -> ErrorKind | None:
    for error_type, kind in _ERROR_KINDS:
        if isinstance(error, error_type):
            return kind
    return None


class UnifiedScheduler:
    """Single entry point for placing one task on the calendar.

    This service coordinates:
    - AvailabilityWindowResolver (candidate windows for the requested mode)
    - ConflictIndex (time already taken by other tasks)
    - SlotSearchEngine (first fit honoring dependencies and due date)
    - ShuffleResolver (displacing lower-priority tasks, asap mode only)

    Requests are snapshots; the scheduler never mutates them and holds no
    state between calls.
    """

    def __init__(self, config: SchedulingConfig | None = None):
        self.config = config or SchedulingConfig()
        self.engine = SlotSearchEngine(self.config)
        self.shuffler = ShuffleResolver(self.engine, self.config)

    def schedule(self, request: SchedulingRequest) -> SchedulingResult:
        """Find a slot for request.task.

        Returns:
            SchedulingResult with a slot, or with error and error_kind set.
            Feedback is never empty.
        """
        feedback: list[str] = []
        try:
            return self._schedule(request, feedback)
        except PlanMyDayError as e:
            kind = error_kind_for(e)
            if kind is None:
                raise
            if kind == ErrorKind.SHUFFLE_INFEASIBLE:
                error = SHUFFLE_FAILED
                feedback.append(f"Could not make room for {_quoted(request.task)}: {e}")
            else:
                error = str(e)
                feedback.append(f"Could not schedule {_quoted(request.task)}: {e}")
            logger.changes(f"Failed to schedule {request.task.label}: {error}")
            return SchedulingResult(slot=None, error=error, error_kind=kind, feedback=feedback)

    def _schedule(self, request: SchedulingRequest, feedback: list[str]) -> SchedulingResult:
        task = request.task
        if task.duration is None or task.duration <= 0:
            raise InvalidTaskError("Task must have a positive duration to be scheduled")

        projector = TimezoneProjector(request.timezone or self.config.default_timezone)
        now = _utc_now(request.now)
        start_from = as_utc(request.start_from)

        # Tasks' own depends_on sets are merged so self-references count as cycles
        all_tasks = [t for t in request.all_tasks if t.id != task.id] + [task]
        dependency_map = build_dependency_map(tasks=all_tasks)
        for task_id, prerequisites in (request.dependency_map or {}).items():
            dependency_map.setdefault(task_id, set()).update(prerequisites)
        check_circular_dependencies(task.id, dependency_map)

        context = SearchContext(
            projector=projector,
            tasks_by_id={t.id: t for t in all_tasks},
            groups_by_id={g.id: g for g in request.all_groups},
            dependency_map=dependency_map,
            awake_hours=request.awake_hours,
            now=now,
            config=self.config,
        )
        group = request.task_group or context.group_of(task)
        resolver = context.resolver_for(task, group)
        if resolver.uses_group_hours and group is not None:
            logger.checks(f"Using hours of group {group.name or group.id} for {task.label}")

        plan = resolver.plan(request.mode, now, start_from=start_from)
        if plan.closed_reason is not None:
            raise NoSlotFoundError(f"Cannot schedule {request.mode.value}: {plan.closed_reason}")

        conflicts = ConflictIndex.from_tasks(request.all_tasks, exclude_ids=[task.id])
        displace_below = task.priority if request.mode == SchedulingMode.ASAP else None
        result = self.engine.search(
            task, resolver, plan, context, conflicts, displace_below=displace_below
        )
        feedback.extend(result.notes)

        if result.slot is not None:
            slot = result.slot
            feedback.insert(0, _scheduled_message(task, slot, projector))
            logger.changes(f"Scheduled {task.label} at {slot.start.isoformat()}")
            return SchedulingResult(slot=slot, feedback=feedback)

        if result.blockage is not None:
            shuffle = self.shuffler.resolve(task, result.blockage, context, conflicts)
            slot = shuffle.slot
            feedback.insert(0, _scheduled_message(task, slot, projector))
            feedback.append(f"Moved {len(shuffle.moves)} lower-priority task(s) to make room")
            feedback.extend(shuffle.feedback)
            logger.changes(
                f"Scheduled {task.label} at {slot.start.isoformat()} "
                f"displacing {', '.join(m.task_id for m in shuffle.moves)}"
            )
            return SchedulingResult(slot=slot, feedback=feedback, shuffled_tasks=shuffle.moves)

        raise NoSlotFoundError(
            f"No available slot within {plan.max_days} day(s) from {plan.first_day.isoformat()}: "
            f"{result.diagnostics.describe(task.duration)}"
        )

    def find_nearest_slot(  # noqa: PLR0913 - mirrors the calendar helper's parameters
        self,
        task: Task,
        all_tasks: list[Task],
        search_start: datetime | None = None,
        working_hours: WeeklyHours | None = None,
        max_days: int | None = None,
        timezone_name: str | None = None,
        *,
        now: datetime | None = None,
    ) -> TimeSlot | None:
        """Earliest free slot from search_start, ignoring dependencies and due dates.

        This is the conservative finder used when dropping a task onto the
        calendar: it never moves other tasks. If today's working window has
        already ended, today's evening (up to config.after_hours_end_minute)
        is still tried before later days.

        Args:
            task: Task to place (needs a positive duration)
            all_tasks: Every task of the owner
            search_start: Earliest start wanted (never earlier than now)
            working_hours: Weekly hours to search within (None means the whole day)
            max_days: Days to search (defaults to config.nearest_max_days)
            timezone_name: IANA timezone of the working hours
            now: Current instant (defaults to the system clock)

        Returns:
            TimeSlot, or None if the task has no duration or nothing fits

        Raises:
            TimezoneError: If the timezone is not recognized
        """
        if task.duration is None or task.duration <= 0:
            return None

        projector = TimezoneProjector(timezone_name or self.config.default_timezone)
        now = _utc_now(now)
        start = max(as_utc(search_start) or now, now)
        days = max_days if max_days is not None else self.config.nearest_max_days

        resolver = AvailabilityWindowResolver(projector, awake_hours=working_hours, config=self.config)
        plan = resolver.plan_from(start, days)
        conflicts = ConflictIndex.from_tasks(all_tasks, exclude_ids=[task.id])

        logger.checks(f"Nearest slot for {task.label} from {start.isoformat()} ({days} days)")
        windows = self._nearest_windows(resolver, plan, projector.local_date(now))
        outcome = self.engine.first_fit(task.duration_delta, windows, conflicts)
        if outcome.slot is not None:
            logger.changes(f"Nearest slot for {task.label}: {outcome.slot.start.isoformat()}")
        return outcome.slot

    def _nearest_windows(
        self, resolver: AvailabilityWindowResolver, plan: WindowPlan, today: date
    ) -> Iterator[DayWindow]:
        """Regular windows, preceded by today's evening once today's hours are over."""
        windows = resolver.windows(plan)
        evening = self._after_hours_window(resolver, plan, today)
        if evening is None:
            return windows
        return itertools.chain([evening], windows)

    def _after_hours_window(
        self, resolver: AvailabilityWindowResolver, plan: WindowPlan, today: date
    ) -> DayWindow | None:
        limit = self.config.after_hours_end_minute
        hours = resolver.hours_for(today)
        if limit is None or hours is None or plan.first_day != today or plan.not_before is None:
            return None

        regular_end = resolver.projector.at(today, hours.end_minute)
        if plan.not_before < regular_end or limit <= hours.end_minute:
            return None

        start = resolver.projector.round_up(plan.not_before, self.config.slot_granularity_minutes)
        end = resolver.projector.at(today, limit)
        if start >= end:
            return None
        logger.window(today, "working hours over, trying the evening")
        return DayWindow(
            day=today,
            start_minute=resolver.projector.instant_to_civil(start).minute_of_day,
            end_minute=limit,
            start=start,
            end=end,
        )


def _quoted(task: Task) -> str:
    return f'"{task.label}"'


def _scheduled_message(task: Task, slot: TimeSlot, projector: TimezoneProjector) -> str:
    return f"Scheduled {_quoted(task)} for {projector.format_range(slot.start, slot.end)}"


def _utc_now(now: datetime | None) -> datetime:
    if now is None:
        return datetime.now(timezone.utc)
    return to_utc(now)


def schedule(request: SchedulingRequest, config: SchedulingConfig | None = None) -> SchedulingResult:
    """Schedule one task with a fresh UnifiedScheduler."""
    return UnifiedScheduler(config).schedule(request)


def find_nearest_slot(  # noqa: PLR0913
    task: Task,
    all_tasks: list[Task],
    search_start: datetime | None = None,
    working_hours: WeeklyHours | None = None,
    max_days: int | None = None,
    timezone_name: str | None = None,
    *,
    now: datetime | None = None,
    config: SchedulingConfig | None = None,
) -> TimeSlot | None:
    """Find the nearest free slot with a fresh UnifiedScheduler."""
    return UnifiedScheduler(config).find_nearest_slot(
        task, all_tasks, search_start, working_hours, max_days, timezone_name, now=now
    )

"""First-fit slot search over candidate windows."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace
from datetime import datetime, timedelta

from planmyday.exceptions import DependencyCycleError, DependencyUnresolvedError
from planmyday.logger import checks_enabled, get_logger
from planmyday.models import DependencyMap, Task, TaskGroup, WeeklyHours

from .config import SchedulingConfig
from .conflicts import BusyInterval, ConflictIndex
from .core import TimeSlot
from .dependencies import prerequisites_of
from .timezones import TimezoneProjector
from .windows import AvailabilityWindowResolver, DayWindow, WindowPlan

logger = get_logger()

PAST_DUE_NOTE = "scheduled past due date"


@dataclass(frozen=True)
class Blockage:
    """The earliest fitting position, occupied only by displaceable tasks."""

    slot: TimeSlot
    blockers: tuple[BusyInterval, ...]


@dataclass
class SearchDiagnostics:
    """Counts of why candidate windows were rejected."""

    windows_checked: int = 0
    windows_too_short: int = 0  # Working hours shorter than the task
    windows_full: int = 0  # Long enough, but existing tasks leave no gap
    gated_by_dependencies: int = 0  # Nothing left after the dependency floor
    rejected_by_due_date: int = 0

    def describe(self, duration_minutes: int) -> str:
        """Name the constraint that limited the search most."""
        if self.windows_checked == 0:
            return "no available hours in the search horizon"
        if self.gated_by_dependencies and not self.windows_full:
            return "prerequisites finish too late for any available window"
        if self.windows_too_short > self.windows_full:
            return f"available hours are too short for a {duration_minutes}-minute task"
        return "existing tasks fill every available window"


@dataclass
class SearchOutcome:
    """Result of one pass over a window sequence."""

    slot: TimeSlot | None = None
    blockage: Blockage | None = None
    deadline_hit: bool = False
    diagnostics: SearchDiagnostics = field(default_factory=SearchDiagnostics)

    @property
    def found(self) -> bool:
        return self.slot is not None or self.blockage is not None


@dataclass
class SearchResult:
    """Result of a full search, including the due-date retry."""

    slot: TimeSlot | None
    blockage: Blockage | None
    past_due: bool
    notes: list[str]
    diagnostics: SearchDiagnostics


@dataclass(frozen=True)
class SearchContext:
    """Request-wide state shared by every search in one invocation."""

    projector: TimezoneProjector
    tasks_by_id: dict[str, Task]
    groups_by_id: dict[str, TaskGroup]
    dependency_map: DependencyMap
    awake_hours: WeeklyHours | None
    now: datetime
    config: SchedulingConfig

    def group_of(self, task: Task) -> TaskGroup | None:
        if task.group_id is None:
            return None
        return self.groups_by_id.get(task.group_id)

    def resolver_for(self, task: Task, group: TaskGroup | None = None) -> AvailabilityWindowResolver:
        """Window resolver honoring the task's own group hours."""
        return AvailabilityWindowResolver(
            self.projector,
            awake_hours=self.awake_hours,
            group=group if group is not None else self.group_of(task),
            config=self.config,
        )

    def with_placement(self, task_id: str, slot: TimeSlot) -> SearchContext:
        """Context in which a task has (hypothetically) moved to a new slot."""
        tasks_by_id = dict(self.tasks_by_id)
        task = tasks_by_id.get(task_id)
        if task is not None:
            tasks_by_id[task_id] = task.model_copy(
                update={"scheduled_start": slot.start, "scheduled_end": slot.end}
            )
        return replace(self, tasks_by_id=tasks_by_id)


class SlotSearchEngine:
    """Walks candidate windows and returns the first gap that fits.

    A candidate must also start after every incomplete prerequisite finishes
    and, on the first pass, end by the task's due date.
    """

    def __init__(self, config: SchedulingConfig | None = None):
        self.config = config or SchedulingConfig()

    def first_fit(  # noqa: PLR0913 - keyword-only search knobs
        self,
        duration: timedelta,
        windows: Iterable[DayWindow],
        conflicts: ConflictIndex,
        *,
        earliest_start: datetime | None = None,
        deadline: datetime | None = None,
        displace_below: int | None = None,
    ) -> SearchOutcome:
        """Return the first free gap of at least `duration` across windows.

        Args:
            duration: Length of the slot needed
            windows: Candidate windows in search order
            conflicts: Occupied time
            earliest_start: Slots may not start before this (dependency gate)
            deadline: Slots may not end after this (due-date ceiling)
            displace_below: If set, a window with no free gap reports the
                earliest position blocked only by movable tasks whose priority
                number is greater than this, instead of moving on

        Returns:
            SearchOutcome with a slot, a blockage, or neither
        """
        outcome = SearchOutcome()
        diagnostics = outcome.diagnostics

        for window in windows:
            diagnostics.windows_checked += 1
            start = window.start if earliest_start is None else max(window.start, earliest_start)

            if window.length < duration:
                diagnostics.windows_too_short += 1
                logger.window(window.day, "window shorter than task, skipping")
                continue
            if window.end - start < duration:
                diagnostics.gated_by_dependencies += 1
                logger.window(window.day, "no room after prerequisites finish")
                continue
            if deadline is not None and start + duration > deadline:
                # Windows only get later from here on
                diagnostics.rejected_by_due_date += 1
                outcome.deadline_hit = True
                logger.window(window.day, "would end after due date, stopping")
                break

            for gap_start, gap_end in conflicts.free_gaps(start, window.end):
                if gap_end - gap_start < duration:
                    continue
                slot = TimeSlot(gap_start, gap_start + duration)
                if deadline is not None and slot.end > deadline:
                    diagnostics.rejected_by_due_date += 1
                    outcome.deadline_hit = True
                    logger.window(window.day, "first gap ends after due date")
                    break
                logger.window(window.day, f"fits at {slot.start.isoformat()}")
                outcome.slot = slot
                return outcome
            else:
                diagnostics.windows_full += 1
                logger.window(window.day, f"no free gap of {duration}")

            if displace_below is not None:
                blockage = self.blocked_position(
                    duration, start, window.end, conflicts, displace_below, deadline
                )
                if blockage is not None:
                    outcome.blockage = blockage
                    return outcome

            if outcome.deadline_hit:
                break

        return outcome

    def blocked_position(  # noqa: PLR0913
        self,
        duration: timedelta,
        start: datetime,
        end: datetime,
        conflicts: ConflictIndex,
        displace_below: int,
        deadline: datetime | None = None,
    ) -> Blockage | None:
        """Earliest position in [start, end) blocked only by displaceable tasks."""
        busy = conflicts.overlapping(start, end)
        candidates = sorted(
            {start}
            | {
                interval.end
                for interval in busy
                if not interval.displaceable_by(displace_below) and start < interval.end < end
            }
        )
        for candidate in candidates:
            slot = TimeSlot(candidate, candidate + duration)
            if slot.end > end or (deadline is not None and slot.end > deadline):
                break
            blockers = conflicts.overlapping(slot.start, slot.end)
            if blockers and all(b.displaceable_by(displace_below) for b in blockers):
                if checks_enabled():
                    ids = ", ".join(b.task_id for b in blockers)
                    logger.checks(f"  {slot.start.isoformat()}: blocked only by movable {ids}")
                return Blockage(slot=slot, blockers=tuple(blockers))
        return None

    def search(  # noqa: PLR0913
        self,
        task: Task,
        resolver: AvailabilityWindowResolver,
        plan: WindowPlan,
        context: SearchContext,
        conflicts: ConflictIndex,
        *,
        duration: timedelta | None = None,
        displace_below: int | None = None,
    ) -> SearchResult:
        """Search a plan's windows for a task, honoring dependencies and due date.

        If nothing fits before the due date, the same horizon is searched once
        more without the ceiling.

        Raises:
            DependencyUnresolvedError: A prerequisite is incomplete and cannot be placed
            DependencyCycleError: Projecting prerequisites leads back to one already projected
        """
        needed = duration if duration is not None else task.duration_delta
        floor, notes = self.dependency_floor(task, plan, context, conflicts)
        logger.checks(f"Searching for {task.label} ({needed}) from {plan.first_day.isoformat()}")

        def run(deadline: datetime | None) -> SearchOutcome:
            return self.first_fit(
                needed,
                resolver.windows(plan),
                conflicts,
                earliest_start=floor,
                deadline=deadline,
                displace_below=displace_below,
            )

        outcome = run(task.due_date)
        past_due = False
        if not outcome.found and task.due_date is not None:
            logger.checks(f"Nothing fits {task.label} before its due date, retrying without it")
            retry = run(None)
            if retry.found:
                past_due = True
                notes.append(f'"{task.label}" {PAST_DUE_NOTE}')
            outcome = retry

        return SearchResult(
            slot=outcome.slot,
            blockage=outcome.blockage,
            past_due=past_due,
            notes=notes,
            diagnostics=outcome.diagnostics,
        )

    def dependency_floor(
        self,
        task: Task,
        plan: WindowPlan,
        context: SearchContext,
        conflicts: ConflictIndex,
        chain: tuple[str, ...] = (),
    ) -> tuple[datetime | None, list[str]]:
        """Earliest start allowed by the task's prerequisites.

        Completed and cancelled prerequisites impose nothing. A scheduled one
        gates on its scheduled end. An unscheduled one pushes the start to the
        day after the plan's first day, and further to its own projected
        finish when it has a duration.

        chain holds the tasks whose projection led here, so prerequisites of
        displaced tasks cannot recurse forever.

        Raises:
            DependencyUnresolvedError: An unscheduled prerequisite has no feasible placement
            DependencyCycleError: An unscheduled prerequisite is already in chain
        """
        chain = (*chain, task.id)
        floor: datetime | None = None
        notes: list[str] = []

        for prereq_id in sorted(prerequisites_of(task, context.dependency_map)):
            prereq = context.tasks_by_id.get(prereq_id)
            if prereq is None:
                logger.warning(f"Unknown prerequisite {prereq_id!r} of {task.label}, ignoring")
                continue
            if not prereq.is_active:
                continue
            if prereq.scheduled_end is not None:
                floor = _later(floor, prereq.scheduled_end)
                continue

            next_day = context.projector.start_of_day(plan.first_day + timedelta(days=1))
            floor = _later(floor, next_day)
            if not prereq.duration or prereq.duration <= 0:
                notes.append(
                    f'Prerequisite "{prereq.label}" is not scheduled; '
                    f"starting no earlier than {next_day.astimezone(context.projector.zone):%a %Y-%m-%d}"
                )
                continue

            if prereq.id in chain:
                cycle = [*chain[chain.index(prereq.id) :], prereq.id]
                raise DependencyCycleError(f"Circular dependency detected: {' -> '.join(cycle)}")
            projected = self.project(prereq, context, conflicts, chain)
            if projected is None:
                raise DependencyUnresolvedError(
                    f'Prerequisite "{prereq.label}" is not complete and has no feasible placement'
                )
            floor = _later(floor, projected.end)
            notes.append(
                f'Prerequisite "{prereq.label}" is not scheduled; '
                f"allowing for it to finish by {context.projector.format_instant(projected.end)}"
            )

        return floor, notes

    def project(
        self,
        task: Task,
        context: SearchContext,
        conflicts: ConflictIndex,
        chain: tuple[str, ...] = (),
    ) -> TimeSlot | None:
        """Earliest placement an unscheduled task could get, without moving anything."""
        resolver = context.resolver_for(task)
        plan = resolver.plan_from(context.now, self.config.horizon_days)
        floor, _ = self.dependency_floor(task, plan, context, conflicts, chain)
        outcome = self.first_fit(
            task.duration_delta,
            resolver.windows(plan),
            conflicts.without([task.id]),
            earliest_start=floor,
        )
        return outcome.slot


def _later(current: datetime | None, candidate: datetime) -> datetime:
    if current is None:
        return candidate
    return max(current, candidate)

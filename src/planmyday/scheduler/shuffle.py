"""Displacement of lower-priority tasks to make room for a requester."""

from __future__ import annotations

from dataclasses import dataclass, field

from planmyday.exceptions import PlanMyDayError, ShuffleInfeasibleError
from planmyday.logger import get_logger
from planmyday.models import Task

from .config import SchedulingConfig
from .conflicts import BusyInterval, ConflictIndex
from .core import ShuffledTask, TimeSlot
from .search import Blockage, SearchContext, SlotSearchEngine

logger = get_logger()


@dataclass
class ShufflePlan:
    """Moves that together free the requester's slot."""

    slot: TimeSlot
    moves: list[ShuffledTask] = field(default_factory=lambda: [])
    feedback: list[str] = field(default_factory=lambda: [])


class ShuffleResolver:
    """Places a requester over movable tasks and finds new homes for them.

    Every displaced task is searched again from its own original end time,
    within its own group hours, dependencies and due date. A displaced task
    may in turn displace tasks of strictly lower priority than itself. A task
    moved once is pinned for the rest of the request, and nothing is ever
    moved unless it is unlocked and strictly lower priority than the original
    requester. The outcome is all-or-nothing.
    """

    def __init__(self, engine: SlotSearchEngine | None = None, config: SchedulingConfig | None = None):
        self.config = config or (engine.config if engine is not None else SchedulingConfig())
        self.engine = engine or SlotSearchEngine(self.config)

    def resolve(
        self,
        task: Task,
        blockage: Blockage,
        context: SearchContext,
        conflicts: ConflictIndex,
    ) -> ShufflePlan:
        """Free blockage.slot for task by moving every blocker.

        Raises:
            ShuffleInfeasibleError: Some displaced task has no valid new slot
        """
        for blocker in blockage.blockers:
            if not blocker.displaceable_by(task.priority):
                raise ShuffleInfeasibleError(
                    f"{blocker.task_id} is locked or not lower priority than {task.label}"
                )

        plan = ShufflePlan(slot=blockage.slot)
        index = conflicts.without(b.task_id for b in blockage.blockers).with_interval(
            _pinned(blockage.slot, task.id, task.priority)
        )
        context = context.with_placement(task.id, blockage.slot)

        logger.checks(
            f"Shuffling {len(blockage.blockers)} task(s) to place {task.label} "
            f"at {context.projector.format_range(blockage.slot.start, blockage.slot.end)}"
        )
        self._displace(blockage.blockers, index, context, plan, depth=1)

        for move in plan.moves:
            logger.changes(
                f"  Moved {context.tasks_by_id[move.task_id].label} to "
                f"{context.projector.format_range(move.new_slot.start, move.new_slot.end)}"
            )
        return plan

    def _displace(
        self,
        blockers: tuple[BusyInterval, ...],
        index: ConflictIndex,
        context: SearchContext,
        plan: ShufflePlan,
        depth: int,
    ) -> tuple[ConflictIndex, SearchContext]:
        """Re-place each blocker in start order, recursing into sub-displacements."""
        if depth > len(context.tasks_by_id):
            raise ShuffleInfeasibleError("displacement chain is deeper than the task list")

        for blocker in sorted(blockers, key=lambda b: (b.start, b.task_id)):
            displaced = context.tasks_by_id.get(blocker.task_id)
            if displaced is None:
                raise ShuffleInfeasibleError(f"{blocker.task_id} is not in the task list")

            resolver = context.resolver_for(displaced)
            window_plan = resolver.plan_from(blocker.end, self.config.horizon_days)
            try:
                result = self.engine.search(
                    displaced,
                    resolver,
                    window_plan,
                    context,
                    index,
                    duration=blocker.end - blocker.start,
                    displace_below=displaced.priority,
                )
            except PlanMyDayError as e:
                raise ShuffleInfeasibleError(
                    f'"{displaced.label}" cannot be rescheduled: {e}'
                ) from e

            sub_blockers: tuple[BusyInterval, ...] = ()
            if result.slot is not None:
                slot = result.slot
            elif result.blockage is not None:
                slot = result.blockage.slot
                sub_blockers = result.blockage.blockers
                index = index.without(b.task_id for b in sub_blockers)
            else:
                raise ShuffleInfeasibleError(
                    f'"{displaced.label}" has no room within {self.config.horizon_days} days '
                    f"after {context.projector.format_instant(blocker.end)}"
                )

            index = index.with_interval(_pinned(slot, displaced.id, displaced.priority))
            context = context.with_placement(displaced.id, slot)
            plan.moves.append(ShuffledTask(task_id=displaced.id, new_slot=slot))
            plan.feedback.append(
                f'Moved "{displaced.label}" to {context.projector.format_range(slot.start, slot.end)}'
            )
            plan.feedback.extend(result.notes)
            logger.checks(f"  {displaced.label} -> {slot.start.isoformat()} (depth {depth})")

            if sub_blockers:
                index, context = self._displace(sub_blockers, index, context, plan, depth + 1)

        return index, context


def _pinned(slot: TimeSlot, task_id: str, priority: int) -> BusyInterval:
    """Busy interval for a placement made during this request; never moved again."""
    return BusyInterval(
        start=slot.start, end=slot.end, task_id=task_id, priority=priority, movable=False
    )

"""Dependency map construction and cycle checking."""

from __future__ import annotations

from collections.abc import Iterable

from planmyday.exceptions import DependencyCycleError
from planmyday.models import DependencyMap, Task


def build_dependency_map(
    rows: Iterable[tuple[str, str]] = (),
    tasks: Iterable[Task] = (),
) -> DependencyMap:
    """Build task -> prerequisites from join-table rows and tasks' own depends_on.

    Args:
        rows: (task_id, depends_on_task_id) pairs from the dependency join table
        tasks: Tasks whose depends_on sets are merged in

    Returns:
        Mapping of task id to the set of prerequisite task ids
    """
    dependency_map: DependencyMap = {}
    for task_id, depends_on_id in rows:
        dependency_map.setdefault(task_id, set()).add(depends_on_id)
    for task in tasks:
        if task.depends_on:
            dependency_map.setdefault(task.id, set()).update(task.depends_on)
    return dependency_map


def prerequisites_of(task: Task, dependency_map: DependencyMap | None) -> set[str]:
    """Prerequisite ids of a task from the map plus the task's own depends_on."""
    prerequisites = set(task.depends_on)
    if dependency_map:
        prerequisites.update(dependency_map.get(task.id, set()))
    prerequisites.discard(task.id)
    return prerequisites


def check_circular_dependencies(start_id: str, dependency_map: DependencyMap) -> None:
    """Raise DependencyCycleError if any cycle is reachable from start_id.

    A task listing itself as a prerequisite counts as a cycle.
    """
    visited: set[str] = set()
    path: list[str] = []
    cycle = _find_cycle(start_id, dependency_map, visited, path)
    if cycle:
        raise DependencyCycleError(f"Circular dependency detected: {' -> '.join(cycle)}")


def _find_cycle(
    task_id: str,
    dependency_map: DependencyMap,
    visited: set[str],
    path: list[str],
) -> list[str] | None:
    """Depth-first search returning the cycle (closed path) if one is found."""
    if task_id in path:
        return [*path[path.index(task_id) :], task_id]

    if task_id in visited:
        return None

    visited.add(task_id)
    path.append(task_id)

    for dep_id in sorted(dependency_map.get(task_id, set())):
        cycle = _find_cycle(dep_id, dependency_map, visited, path)
        if cycle:
            return cycle

    path.pop()
    return None

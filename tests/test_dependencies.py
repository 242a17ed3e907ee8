"""Tests for dependency map construction and cycle detection."""

import pytest

from planmyday.exceptions import DependencyCycleError
from planmyday.scheduler.dependencies import (
    build_dependency_map,
    check_circular_dependencies,
    prerequisites_of,
)
from tests.conftest import make_task


class TestBuildDependencyMap:
    """Tests for merging join-table rows with tasks' own depends_on."""

    def test_rows_only(self):
        dependency_map = build_dependency_map(rows=[("b", "a"), ("c", "a"), ("c", "b")])

        assert dependency_map == {"b": {"a"}, "c": {"a", "b"}}

    def test_merges_task_depends_on(self):
        dependency_map = build_dependency_map(
            rows=[("c", "a")],
            tasks=[make_task("c", depends_on=frozenset({"b"})), make_task("a")],
        )

        assert dependency_map == {"c": {"a", "b"}}

    def test_prerequisites_of_ignores_self(self):
        target = make_task("a", depends_on=frozenset({"a", "b"}))

        assert prerequisites_of(target, {"a": {"c"}}) == {"b", "c"}


class TestCircularDependencies:
    """Tests for up-front cycle detection."""

    def test_two_task_cycle(self):
        with pytest.raises(DependencyCycleError, match="a -> b -> a"):
            check_circular_dependencies("a", {"a": {"b"}, "b": {"a"}})

    def test_self_dependency_is_a_cycle(self):
        with pytest.raises(DependencyCycleError, match="a -> a"):
            check_circular_dependencies("a", {"a": {"a"}})

    def test_cycle_reachable_from_prerequisite(self):
        dependency_map = {"a": {"b"}, "b": {"c"}, "c": {"d"}, "d": {"c"}}

        with pytest.raises(DependencyCycleError, match="c -> d -> c"):
            check_circular_dependencies("a", dependency_map)

    def test_diamond_is_not_a_cycle(self):
        dependency_map = {"d": {"b", "c"}, "b": {"a"}, "c": {"a"}}

        check_circular_dependencies("d", dependency_map)

    def test_unrelated_cycle_is_ignored(self):
        dependency_map = {"a": {"b"}, "x": {"y"}, "y": {"x"}}

        check_circular_dependencies("a", dependency_map)

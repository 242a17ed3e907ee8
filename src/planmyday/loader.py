"""Loading calendar snapshots from YAML.

A snapshot is everything the engine needs for one user: their timezone,
awake hours, task groups, tasks and dependency rows. It is what the CLI
feeds to the scheduler.

Example:

    timezone: America/New_York
    awake_hours:
      monday: {start: "09:00", end: "17:00"}
    groups:
      - id: deep-work
        auto_schedule_enabled: true
        auto_schedule_hours:
          monday: {start: 9, end: 12}
    tasks:
      - id: write-report
        duration: 60
        priority: 2
        group_id: deep-work
    dependencies:
      - [write-report, gather-data]
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .exceptions import ParseError
from .models import Task, TaskGroup, WeeklyHours
from .scheduler.dependencies import build_dependency_map

DEPENDENCY_ROW_LENGTH = 2


class Snapshot(BaseModel):
    """One user's calendar state."""

    model_config = ConfigDict(frozen=True)

    timezone: str | None = None
    awake_hours: WeeklyHours | None = None
    tasks: list[Task] = Field(default_factory=list[Task])
    groups: list[TaskGroup] = Field(default_factory=list[TaskGroup])
    dependencies: list[tuple[str, str]] = Field(default_factory=list[tuple[str, str]])

    @field_validator("dependencies", mode="before")
    @classmethod
    def parse_dependency_rows(cls, value: Any) -> Any:
        """Accept [task, prerequisite] pairs or {task_id, depends_on_task_id} rows."""
        if value is None:
            return []
        rows: list[Any] = []
        for row in value:
            if isinstance(row, dict):
                rows.append((row.get("task_id"), row.get("depends_on_task_id")))
            else:
                rows.append(row)
        return rows

    def dependency_map(self) -> dict[str, set[str]]:
        return build_dependency_map(rows=self.dependencies, tasks=self.tasks)

    def get_task(self, task_id: str) -> Task:
        for task in self.tasks:
            if task.id == task_id:
                return task
        raise ParseError(f"Task '{task_id}' not found in snapshot")

    def get_group(self, group_id: str | None) -> TaskGroup | None:
        if group_id is None:
            return None
        for group in self.groups:
            if group.id == group_id:
                return group
        return None


def load_snapshot(path: Path | str) -> Snapshot:
    """Parse a snapshot YAML file.

    Raises:
        ParseError: If the file is missing, is not valid YAML or fails validation
    """
    path = Path(path)
    if not path.exists():
        raise ParseError(f"File not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("YAML must contain a dictionary at the root level")

    return parse_snapshot(data)  # type: ignore[arg-type]


def parse_snapshot(data: dict[str, Any]) -> Snapshot:
    """Validate already-loaded snapshot data."""
    try:
        snapshot = Snapshot.model_validate(data)
    except PydanticValidationError as e:
        raise ParseError(f"Invalid snapshot structure: {e}") from e

    seen: set[str] = set()
    for task in snapshot.tasks:
        if task.id in seen:
            raise ParseError(f"Duplicate task id: '{task.id}'")
        seen.add(task.id)
    for row in snapshot.dependencies:
        if len(row) != DEPENDENCY_ROW_LENGTH or not all(row):
            raise ParseError(f"Invalid dependency row: {row!r}")

    return snapshot

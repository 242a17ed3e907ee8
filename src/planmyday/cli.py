"""Command-line interface for planmyday."""

from __future__ import annotations

from datetime import datetime
from pathlib import Path
from typing import Annotated, Any

import typer
import yaml

from . import context
from .config import PlanMyDayConfig, discover_config
from .exceptions import ConfigError, ParseError, TimezoneError
from .loader import Snapshot, load_snapshot
from .logger import setup_logger
from .models import SchedulingMode, Task
from .scheduler import SchedulingRequest, SchedulingResult, TimeSlot, UnifiedScheduler
from .scheduler.timezones import TimezoneProjector

app = typer.Typer(
    name="planmyday",
    help="Plan My Day - find a slot on your calendar for a task",
    add_completion=False,
)


@app.callback()
def main_callback(
    verbose: Annotated[
        int,
        typer.Option(
            "--verbose",
            "-v",
            help="Verbosity level: 0=silent (default), 1=show changes, 2=show all checks, 3=debug",
            min=0,
            max=3,
        ),
    ] = 0,
    config: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to config file (default: planmyday_config.yaml)",
        ),
    ] = None,
) -> None:
    """Global options for planmyday commands."""
    setup_logger(verbose)
    context.set_config_path(config)


@app.command()
def schedule(
    task_id: Annotated[str, typer.Argument(help="ID of the task to place")],
    *,
    mode: Annotated[
        SchedulingMode, typer.Option("--mode", "-m", help="Where to look for a slot")
    ] = SchedulingMode.ASAP,
    snapshot: Annotated[
        Path, typer.Option("--snapshot", "-s", help="Path to the calendar snapshot YAML file")
    ] = Path("snapshot.yaml"),
    now: Annotated[
        str | None,
        typer.Option(
            "--now",
            help="Current time (ISO 8601). Naive times are in the snapshot's timezone. "
            "Defaults to the system clock",
        ),
    ] = None,
) -> None:
    """Schedule one task and print the result as YAML."""
    data, config = _load(snapshot)
    task = _get_task(data, task_id)
    timezone_name = data.timezone or config.scheduler.default_timezone

    request = SchedulingRequest(
        mode=mode,
        task=task,
        all_tasks=list(data.tasks),
        task_group=data.get_group(task.group_id),
        all_groups=list(data.groups),
        awake_hours=data.awake_hours,
        timezone=timezone_name,
        dependency_map=data.dependency_map(),
        now=_parse_instant(now, "now", timezone_name),
    )
    result = UnifiedScheduler(config.scheduler).schedule(request)

    typer.echo(_dump(_result_to_dict(task_id, result)), nl=False)
    if not result.ok:
        raise typer.Exit(1)


@app.command()
def nearest(
    task_id: Annotated[str, typer.Argument(help="ID of the task to place")],
    *,
    snapshot: Annotated[
        Path, typer.Option("--snapshot", "-s", help="Path to the calendar snapshot YAML file")
    ] = Path("snapshot.yaml"),
    start: Annotated[
        str | None,
        typer.Option("--start", help="Search start (ISO 8601). Defaults to now"),
    ] = None,
    max_days: Annotated[
        int | None,
        typer.Option("--max-days", help="Days to search (default from config: 7)", min=1),
    ] = None,
    now: Annotated[
        str | None,
        typer.Option("--now", help="Current time (ISO 8601). Defaults to the system clock"),
    ] = None,
) -> None:
    """Find the nearest free slot without moving anything."""
    data, config = _load(snapshot)
    task = _get_task(data, task_id)
    timezone_name = data.timezone or config.scheduler.default_timezone

    scheduler = UnifiedScheduler(config.scheduler)
    try:
        slot = scheduler.find_nearest_slot(
            task,
            list(data.tasks),
            _parse_instant(start, "start", timezone_name),
            data.awake_hours,
            max_days,
            timezone_name,
            now=_parse_instant(now, "now", timezone_name),
        )
    except TimezoneError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None

    if slot is None:
        typer.echo(_dump({"task_id": task_id, "slot": None}), nl=False)
        raise typer.Exit(1)
    typer.echo(_dump({"task_id": task_id, "slot": _slot_to_dict(slot)}), nl=False)


def _load(snapshot: Path) -> tuple[Snapshot, PlanMyDayConfig]:
    try:
        return load_snapshot(snapshot), discover_config(snapshot)
    except (ParseError, ConfigError) as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _get_task(data: Snapshot, task_id: str) -> Task:
    try:
        return data.get_task(task_id)
    except ParseError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None


def _parse_instant(value: str | None, option_name: str, timezone_name: str) -> datetime | None:
    """Parse an ISO 8601 CLI option; naive values are wall-clock times in timezone_name."""
    if value is None:
        return None

    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        typer.echo(
            f"Error: Invalid --{option_name} '{value}'. Use ISO 8601, e.g. 2025-01-06T09:30",
            err=True,
        )
        raise typer.Exit(1) from None

    if parsed.tzinfo is not None:
        return parsed
    try:
        projector = TimezoneProjector(timezone_name)
    except TimezoneError as e:
        typer.echo(f"Error: {e}", err=True)
        raise typer.Exit(1) from None
    return projector.civil_to_instant(
        parsed.year, parsed.month, parsed.day, parsed.hour, parsed.minute
    )


def _slot_to_dict(slot: TimeSlot) -> dict[str, str]:
    return {"start": slot.start.isoformat(), "end": slot.end.isoformat()}


def _result_to_dict(task_id: str, result: SchedulingResult) -> dict[str, Any]:
    data: dict[str, Any] = {
        "task_id": task_id,
        "slot": _slot_to_dict(result.slot) if result.slot else None,
    }
    if result.error is not None:
        data["error"] = result.error
        data["error_kind"] = result.error_kind.value if result.error_kind else None
    data["feedback"] = list(result.feedback)
    if result.shuffled_tasks:
        data["shuffled_tasks"] = [
            {"task_id": moved.task_id, **_slot_to_dict(moved.new_slot)}
            for moved in result.shuffled_tasks
        ]
    return data


def _dump(data: dict[str, Any]) -> str:
    return yaml.safe_dump(data, sort_keys=False, allow_unicode=True)


def main() -> int:
    """Main entry point."""
    # Typer handles sys.exit() internally
    app()
    return 0


if __name__ == "__main__":
    main()

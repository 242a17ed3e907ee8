"""Tests for CLI commands."""

from pathlib import Path
from typing import Any

import yaml
from typer.testing import CliRunner

from planmyday.cli import app
from planmyday.config import CONFIG_FILENAME

runner = CliRunner()

WEEKDAY_HOURS = {
    day: {"start": "09:00", "end": "17:00"}
    for day in ("monday", "tuesday", "wednesday", "thursday", "friday")
}


def write_snapshot(tmp_path: Path, tasks: list[dict[str, Any]], **extra: Any) -> Path:
    data: dict[str, Any] = {"timezone": "UTC", "awake_hours": WEEKDAY_HOURS, "tasks": tasks}
    data.update(extra)
    path = tmp_path / "snapshot.yaml"
    path.write_text(yaml.safe_dump(data))
    return path


class TestScheduleCommand:
    """Test the schedule CLI command."""

    def test_schedule_basic(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(tmp_path, [{"id": "write-report", "duration": 60}])

        result = runner.invoke(
            app, ["schedule", "write-report", "-s", str(snapshot), "--now", "2025-01-06T08:00"]
        )

        assert result.exit_code == 0
        output = yaml.safe_load(result.stdout)
        assert output["task_id"] == "write-report"
        assert output["slot"] == {
            "start": "2025-01-06T09:00:00+00:00",
            "end": "2025-01-06T10:00:00+00:00",
        }
        assert "error" not in output
        assert output["feedback"][0].startswith('Scheduled "write-report"')

    def test_schedule_naive_now_uses_snapshot_timezone(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(
            tmp_path, [{"id": "a", "duration": 60}], timezone="America/New_York"
        )

        result = runner.invoke(
            app, ["schedule", "a", "-s", str(snapshot), "--now", "2025-01-06T10:10"]
        )

        assert result.exit_code == 0
        output = yaml.safe_load(result.stdout)
        # 10:10 New York rounds up to 10:15 local, which is 15:15 UTC
        assert output["slot"]["start"] == "2025-01-06T15:15:00+00:00"

    def test_today_after_hours_fails(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(tmp_path, [{"id": "a", "duration": 60}])

        result = runner.invoke(
            app,
            ["schedule", "a", "-s", str(snapshot), "--mode", "today", "--now", "2025-01-06T18:00"],
        )

        assert result.exit_code == 1
        output = yaml.safe_load(result.stdout)
        assert output["slot"] is None
        assert output["error_kind"] == "NoSlotFound"
        assert "already ended" in output["error"]

    def test_schedule_reports_shuffled_tasks(self, tmp_path: Path) -> None:
        one_hour = {day: {"start": "09:00", "end": "10:00"} for day in WEEKDAY_HOURS}
        snapshot = write_snapshot(
            tmp_path,
            [
                {"id": "urgent", "duration": 60, "priority": 1},
                {
                    "id": "low",
                    "duration": 60,
                    "priority": 4,
                    "scheduled_start": "2025-01-06T09:00:00Z",
                    "scheduled_end": "2025-01-06T10:00:00Z",
                },
            ],
            awake_hours=one_hour,
        )

        result = runner.invoke(
            app, ["schedule", "urgent", "-s", str(snapshot), "--now", "2025-01-06T08:00"]
        )

        assert result.exit_code == 0
        output = yaml.safe_load(result.stdout)
        assert output["slot"]["start"] == "2025-01-06T09:00:00+00:00"
        assert output["shuffled_tasks"] == [
            {
                "task_id": "low",
                "start": "2025-01-07T09:00:00+00:00",
                "end": "2025-01-07T10:00:00+00:00",
            }
        ]

    def test_missing_task(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(tmp_path, [{"id": "a", "duration": 60}])

        result = runner.invoke(app, ["schedule", "nope", "-s", str(snapshot)])

        assert result.exit_code == 1
        assert "not found" in result.output

    def test_missing_snapshot(self, tmp_path: Path) -> None:
        result = runner.invoke(app, ["schedule", "a", "-s", str(tmp_path / "missing.yaml")])

        assert result.exit_code == 1
        assert "File not found" in result.output

    def test_invalid_now(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(tmp_path, [{"id": "a", "duration": 60}])

        result = runner.invoke(app, ["schedule", "a", "-s", str(snapshot), "--now", "tomorrow"])

        assert result.exit_code == 1
        assert "Invalid --now" in result.output


class TestGlobalOptions:
    """Test options given before the subcommand."""

    def test_config_option_limits_horizon(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(
            tmp_path,
            [
                {"id": "a", "duration": 60},
                {
                    "id": "busy",
                    "duration": 480,
                    "locked": True,
                    "scheduled_start": "2025-01-06T09:00:00Z",
                    "scheduled_end": "2025-01-06T17:00:00Z",
                },
            ],
        )
        config_dir = tmp_path / "settings"
        config_dir.mkdir()
        config_file = config_dir / CONFIG_FILENAME
        config_file.write_text("scheduler:\n  horizon_days: 1\n")

        result = runner.invoke(
            app,
            [
                "--config",
                str(config_file),
                "schedule",
                "a",
                "-s",
                str(snapshot),
                "--now",
                "2025-01-06T08:00",
            ],
        )

        assert result.exit_code == 1
        output = yaml.safe_load(result.stdout)
        assert output["error_kind"] == "NoSlotFound"

    def test_verbose_reports_placement(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(tmp_path, [{"id": "a", "duration": 60}])

        result = runner.invoke(
            app, ["-v", "1", "schedule", "a", "-s", str(snapshot), "--now", "2025-01-06T08:00"]
        )

        assert result.exit_code == 0
        assert "Scheduled a at 2025-01-06T09:00:00+00:00" in result.output


class TestNearestCommand:
    """Test the nearest CLI command."""

    def test_nearest_basic(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(
            tmp_path,
            [
                {"id": "a", "duration": 30},
                {
                    "id": "standup",
                    "duration": 60,
                    "scheduled_start": "2025-01-06T09:00:00Z",
                    "scheduled_end": "2025-01-06T10:00:00Z",
                },
            ],
        )

        result = runner.invoke(
            app, ["nearest", "a", "-s", str(snapshot), "--now", "2025-01-06T08:00"]
        )

        assert result.exit_code == 0
        output = yaml.safe_load(result.stdout)
        assert output == {
            "task_id": "a",
            "slot": {"start": "2025-01-06T10:00:00+00:00", "end": "2025-01-06T10:30:00+00:00"},
        }

    def test_nearest_with_start(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(tmp_path, [{"id": "a", "duration": 30}])

        result = runner.invoke(
            app,
            [
                "nearest",
                "a",
                "-s",
                str(snapshot),
                "--now",
                "2025-01-06T08:00",
                "--start",
                "2025-01-08T13:00",
            ],
        )

        assert result.exit_code == 0
        assert yaml.safe_load(result.stdout)["slot"]["start"] == "2025-01-08T13:00:00+00:00"

    def test_nearest_without_duration(self, tmp_path: Path) -> None:
        snapshot = write_snapshot(tmp_path, [{"id": "a"}])

        result = runner.invoke(
            app, ["nearest", "a", "-s", str(snapshot), "--now", "2025-01-06T08:00"]
        )

        assert result.exit_code == 1
        assert yaml.safe_load(result.stdout) == {"task_id": "a", "slot": None}

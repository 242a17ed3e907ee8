"""Tests for configuration file loading and discovery."""

from pathlib import Path

import pytest

from planmyday import context
from planmyday.config import CONFIG_FILENAME, discover_config, load_config
from planmyday.exceptions import ConfigError


class TestLoadConfig:
    """Tests for load_config."""

    def test_scheduler_section(self, tmp_path: Path):
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text(
            "scheduler:\n"
            "  horizon_days: 14\n"
            "  slot_granularity_minutes: 5\n"
            "  after_hours_end_minute: null\n"
            "  default_timezone: Europe/Berlin\n"
        )

        config = load_config(config_file)

        assert config.scheduler.horizon_days == 14
        assert config.scheduler.slot_granularity_minutes == 5
        assert config.scheduler.after_hours_end_minute is None
        assert config.scheduler.default_timezone == "Europe/Berlin"
        # Unspecified values keep their defaults
        assert config.scheduler.nearest_max_days == 7

    def test_empty_file_gives_defaults(self, tmp_path: Path):
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("")

        config = load_config(config_file)

        assert config.scheduler.horizon_days == 30

    def test_missing_file(self, tmp_path: Path):
        with pytest.raises(ConfigError, match="Config file not found"):
            load_config(tmp_path / "nope.yaml")

    def test_invalid_value(self, tmp_path: Path):
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("scheduler:\n  horizon_days: 0\n")

        with pytest.raises(ConfigError, match="Invalid configuration"):
            load_config(config_file)

    def test_invalid_yaml(self, tmp_path: Path):
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("scheduler: [unclosed\n")

        with pytest.raises(ConfigError, match="Failed to parse"):
            load_config(config_file)

    def test_root_must_be_mapping(self, tmp_path: Path):
        config_file = tmp_path / CONFIG_FILENAME
        config_file.write_text("- just\n- a list\n")

        with pytest.raises(ConfigError, match="dictionary"):
            load_config(config_file)


class TestDiscoverConfig:
    """Tests for the config search order."""

    def write(self, directory: Path, horizon: int) -> Path:
        path = directory / CONFIG_FILENAME
        path.write_text(f"scheduler:\n  horizon_days: {horizon}\n")
        return path

    def test_explicit_path_wins(self, tmp_path: Path):
        explicit = self.write(tmp_path, 5)
        other = tmp_path / "other"
        other.mkdir()
        context.set_config_path(self.write(other, 6))

        assert discover_config(config_path=explicit).scheduler.horizon_days == 5

    def test_context_path(self, tmp_path: Path):
        context.set_config_path(self.write(tmp_path, 6))

        assert discover_config().scheduler.horizon_days == 6

    def test_snapshot_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        snapshot_dir = tmp_path / "calendar"
        snapshot_dir.mkdir()
        self.write(snapshot_dir, 8)
        monkeypatch.chdir(tmp_path)

        config = discover_config(snapshot_path=snapshot_dir / "snapshot.yaml")

        assert config.scheduler.horizon_days == 8

    def test_current_directory(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        self.write(tmp_path, 9)
        monkeypatch.chdir(tmp_path)

        assert discover_config().scheduler.horizon_days == 9

    def test_defaults_when_nothing_found(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch):
        monkeypatch.chdir(tmp_path)

        assert discover_config().scheduler.horizon_days == 30

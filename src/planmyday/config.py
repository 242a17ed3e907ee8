"""Configuration file loading for planmyday.

Settings live in a single YAML file (planmyday_config.yaml) whose
`scheduler:` section maps onto SchedulingConfig.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any

import yaml
from pydantic import BaseModel, Field
from pydantic import ValidationError as PydanticValidationError

from . import context
from .exceptions import ConfigError
from .scheduler import SchedulingConfig

CONFIG_FILENAME = "planmyday_config.yaml"


class PlanMyDayConfig(BaseModel):
    """Top-level configuration file contents."""

    scheduler: SchedulingConfig = Field(default_factory=SchedulingConfig)


def load_config(config_path: Path | str) -> PlanMyDayConfig:
    """Load configuration from a YAML file.

    Args:
        config_path: Path to planmyday_config.yaml

    Returns:
        PlanMyDayConfig (an empty file yields the defaults)

    Raises:
        ConfigError: If the file is missing, unreadable or invalid
    """
    config_path = Path(config_path)

    if not config_path.exists():
        raise ConfigError(f"Config file not found: {config_path}")

    try:
        with config_path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ConfigError(f"Failed to parse config YAML: {e}") from e

    if data is None:
        return PlanMyDayConfig()
    if not isinstance(data, dict):
        raise ConfigError("Config must contain a dictionary at the root level")

    try:
        return PlanMyDayConfig.model_validate(data)
    except PydanticValidationError as e:
        raise ConfigError(f"Invalid configuration in {config_path}: {e}") from e


def discover_config(
    snapshot_path: Path | None = None,
    config_path: Path | None = None,
) -> PlanMyDayConfig:
    """Find and load the configuration, falling back to defaults.

    Search order:
    1. Explicit config_path argument
    2. Global context (set via CLI --config)
    3. snapshot directory / planmyday_config.yaml
    4. Current directory / planmyday_config.yaml
    """
    # 1. Explicit argument (must exist if given)
    if config_path is not None:
        return load_config(config_path)

    # 2. Global context
    ctx_config = context.get_config_path()
    if ctx_config is not None:
        return load_config(ctx_config)

    # 3. Snapshot directory
    if snapshot_path is not None:
        dir_config = Path(snapshot_path).parent / CONFIG_FILENAME
        if dir_config.exists():
            return load_config(dir_config)

    # 4. Current directory
    cwd_config = Path(CONFIG_FILENAME)
    if cwd_config.exists():
        return load_config(cwd_config)

    return PlanMyDayConfig()

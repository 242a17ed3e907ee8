"""Configuration classes for the scheduling engine."""

from pydantic import BaseModel, Field

DEFAULT_TIMEZONE = "UTC"


class SchedulingConfig(BaseModel):
    """Tunable limits and defaults for the scheduling engine."""

    # Search horizon: days forward from the mode's origin before giving up
    horizon_days: int = Field(default=30, ge=1, le=366)
    # Default day count for the conservative nearest-slot finder
    nearest_max_days: int = Field(default=7, ge=1, le=366)
    # Window starts clipped to "now" are rounded up to this many minutes
    slot_granularity_minutes: int = Field(default=15, ge=1, le=60)
    # Nearest-slot finder may use today's evening up to this minute after the
    # working window has closed (None disables after-hours placement)
    after_hours_end_minute: int | None = Field(default=23 * 60, ge=0, le=24 * 60)
    # Timezone used when a caller supplies none
    default_timezone: str = DEFAULT_TIMEZONE

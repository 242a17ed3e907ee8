"""Conversion between civil wall-clock time and absolute instants.

All absolute instants handled by the engine are timezone-aware UTC datetimes.
Civil times are (date, hour, minute) as a person in the user's timezone would
read them off a wall clock. Daylight-saving transitions are resolved forward:
a wall-clock time skipped by a spring-forward gap maps to the first instant
after the gap, and a time repeated by a fall-back overlap maps to its first
occurrence.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, timedelta, timezone
from functools import lru_cache
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from planmyday.exceptions import TimezoneError

UTC = timezone.utc
MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24


@dataclass(frozen=True)
class CivilTime:
    """A wall-clock reading in some timezone (weekday: 0 = Monday)."""

    year: int
    month: int
    day: int
    hour: int
    minute: int
    weekday: int

    @property
    def date(self) -> date:
        return date(self.year, self.month, self.day)

    @property
    def minute_of_day(self) -> int:
        return self.hour * MINUTES_PER_HOUR + self.minute


@lru_cache(maxsize=64)
def load_zone(name: str) -> ZoneInfo:
    """Load an IANA timezone, raising TimezoneError if it is not recognized."""
    if not name:
        raise TimezoneError("Timezone identifier is empty")
    try:
        return ZoneInfo(name)
    except (ZoneInfoNotFoundError, ValueError, OSError) as e:
        raise TimezoneError(f"Unrecognized timezone: {name!r}") from e


def _wall_clock(instant: datetime, zone: ZoneInfo) -> datetime:
    return instant.astimezone(zone).replace(tzinfo=None, fold=0)


class TimezoneProjector:
    """Projects civil times in one timezone onto absolute instants and back."""

    def __init__(self, timezone_name: str):
        self.name = timezone_name
        self.zone = load_zone(timezone_name)

    def civil_to_instant(self, year: int, month: int, day: int, hour: int, minute: int) -> datetime:
        """Convert a wall-clock time to a UTC instant.

        hour=24, minute=0 denotes midnight at the end of the given day.
        """
        civil_day = date(year, month, day)
        if hour == HOURS_PER_DAY and minute == 0:
            civil_day += timedelta(days=1)
            hour = 0
        naive = datetime(civil_day.year, civil_day.month, civil_day.day, hour, minute)

        # fold=0 picks the first occurrence of an ambiguous wall-clock time
        first = naive.replace(tzinfo=self.zone, fold=0).astimezone(UTC)
        if _wall_clock(first, self.zone) == naive:
            return first

        # The wall-clock time falls in a gap: walk forward to the transition
        other = naive.replace(tzinfo=self.zone, fold=1).astimezone(UTC)
        candidate, limit = min(first, other), max(first, other)
        while candidate < limit and _wall_clock(candidate, self.zone) < naive:
            candidate += timedelta(minutes=1)
        return candidate

    def instant_to_civil(self, instant: datetime) -> CivilTime:
        """Read the wall clock at an instant (naive instants are taken as UTC)."""
        if instant.tzinfo is None:
            instant = instant.replace(tzinfo=UTC)
        local = instant.astimezone(self.zone)
        return CivilTime(
            year=local.year,
            month=local.month,
            day=local.day,
            hour=local.hour,
            minute=local.minute,
            weekday=local.weekday(),
        )

    def at(self, day: date, minute_of_day: int) -> datetime:
        """Instant for a minute-after-midnight on a civil day (1440 = next midnight)."""
        hour, minute = divmod(minute_of_day, MINUTES_PER_HOUR)
        return self.civil_to_instant(day.year, day.month, day.day, hour, minute)

    def local_date(self, instant: datetime) -> date:
        return self.instant_to_civil(instant).date

    def start_of_day(self, day: date) -> datetime:
        return self.at(day, 0)

    def round_up(self, instant: datetime, granularity_minutes: int) -> datetime:
        """Round an instant forward to the next multiple of granularity on the civil clock."""
        local = instant.astimezone(self.zone)
        remainder = timedelta(
            minutes=local.minute % granularity_minutes,
            seconds=local.second,
            microseconds=local.microsecond,
        )
        if not remainder:
            return instant
        return instant + timedelta(minutes=granularity_minutes) - remainder

    def format_instant(self, instant: datetime) -> str:
        """Human-readable local time, e.g. 'Mon 2025-01-06 09:00'."""
        return instant.astimezone(self.zone).strftime("%a %Y-%m-%d %H:%M")

    def format_range(self, start: datetime, end: datetime) -> str:
        """Human-readable local range, e.g. 'Mon 2025-01-06 09:00-10:00'."""
        local_end = end.astimezone(self.zone)
        if local_end.date() == start.astimezone(self.zone).date():
            return f"{self.format_instant(start)}-{local_end:%H:%M}"
        return f"{self.format_instant(start)} - {self.format_instant(end)}"


def civil_to_instant(
    year: int, month: int, day: int, hour: int, minute: int, timezone_name: str
) -> datetime:
    """Convert a wall-clock time in the named timezone to a UTC instant."""
    return TimezoneProjector(timezone_name).civil_to_instant(year, month, day, hour, minute)


def instant_to_civil(instant: datetime, timezone_name: str) -> CivilTime:
    """Read the wall clock in the named timezone at an instant."""
    return TimezoneProjector(timezone_name).instant_to_civil(instant)

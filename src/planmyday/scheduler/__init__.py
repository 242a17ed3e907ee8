"""Scheduler package - single-task placement on a personal calendar.

This package provides the unified scheduling engine with:
- Mode-driven candidate windows (now, today, tomorrow, next-week, next-month, asap)
- Conflict-aware first-fit search with a dependency gate and due-date ceiling
- All-or-nothing shuffling of lower-priority tasks in asap mode

Main entry points:
- UnifiedScheduler: Facade for schedule() and find_nearest_slot()
- schedule / find_nearest_slot: Module-level shortcuts using a default config

Configuration:
- SchedulingConfig: Horizon, granularity and after-hours limits
"""

# Configuration
from .config import SchedulingConfig

# Conflict tracking
from .conflicts import BusyInterval, ConflictIndex

# Core dataclasses
from .core import (
    ErrorKind,
    SchedulingRequest,
    SchedulingResult,
    ShuffledTask,
    TimeSlot,
)

# Dependency helpers
from .dependencies import build_dependency_map, check_circular_dependencies

# Search and displacement
from .search import SlotSearchEngine
from .service import UnifiedScheduler, find_nearest_slot, schedule
from .shuffle import ShuffleResolver

# Timezone projection
from .timezones import CivilTime, TimezoneProjector, civil_to_instant, instant_to_civil

# Candidate windows
from .windows import AvailabilityWindowResolver, DayWindow

__all__ = [
    # Core dataclasses
    "ErrorKind",
    "TimeSlot",
    "ShuffledTask",
    "SchedulingRequest",
    "SchedulingResult",
    # Configuration
    "SchedulingConfig",
    # High-level service
    "UnifiedScheduler",
    "schedule",
    "find_nearest_slot",
    # Components
    "AvailabilityWindowResolver",
    "DayWindow",
    "ConflictIndex",
    "BusyInterval",
    "SlotSearchEngine",
    "ShuffleResolver",
    # Timezone projection
    "TimezoneProjector",
    "CivilTime",
    "civil_to_instant",
    "instant_to_civil",
    # Dependency helpers
    "build_dependency_map",
    "check_circular_dependencies",
]

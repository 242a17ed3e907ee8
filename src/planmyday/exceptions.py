"""Custom exceptions for planmyday."""


class PlanMyDayError(Exception):
    """Base exception for all planmyday errors."""

    pass


class InvalidTaskError(PlanMyDayError):
    """Raised when a task cannot be scheduled as given (e.g. missing duration)."""

    pass


class NoSlotFoundError(PlanMyDayError):
    """Raised when the search horizon is exhausted without a valid placement."""

    pass


class DependencyUnresolvedError(PlanMyDayError):
    """Raised when a prerequisite is incomplete and has no feasible placement."""

    pass


class DependencyCycleError(PlanMyDayError):
    """Raised when a circular dependency is detected."""

    pass


class ShuffleInfeasibleError(PlanMyDayError):
    """Raised when displaced tasks cannot all be placed again."""

    pass


class TimezoneError(PlanMyDayError):
    """Raised when a timezone identifier is not recognized."""

    pass


class ConfigError(PlanMyDayError):
    """Raised when a configuration file is invalid."""

    pass


class ParseError(PlanMyDayError):
    """Raised when snapshot YAML parsing fails."""

    pass

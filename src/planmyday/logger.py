"""Logging configuration for planmyday with custom verbosity levels."""

from __future__ import annotations

import logging
import sys
from datetime import date
from typing import Any, TextIO

# Custom levels between standard logging levels
CHANGES_LEVEL = 25  # Between INFO (20) and WARNING (30) - placements and moves
CHECKS_LEVEL = 15  # Between DEBUG (10) and INFO (20) - windows and candidates considered

logging.addLevelName(CHANGES_LEVEL, "CHANGES")
logging.addLevelName(CHECKS_LEVEL, "CHECKS")

VERBOSITY_SILENT = 0  # Only errors
VERBOSITY_CHANGES = 1  # Show placements and displacements
VERBOSITY_CHECKS = 2  # Show every window and candidate checked
VERBOSITY_DEBUG = 3  # Full gap arithmetic

LOGGER_NAME = "planmyday"


class PlanMyDayLogger(logging.Logger):
    """Logger with semantic verbosity methods.

    - changes(): verbosity level 1 - slots chosen, tasks displaced
    - checks(): verbosity level 2 - windows walked, candidates rejected
    - window(): checks about one day's window, as "  YYYY-MM-DD: ..."
    - debug(): verbosity level 3 - busy intervals and gap arithmetic
    """

    def changes(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log changes (verbosity level 1)."""
        if self.isEnabledFor(CHANGES_LEVEL):
            self._log(CHANGES_LEVEL, msg, args, **kwargs)

    def checks(self, msg: str, *args: Any, **kwargs: Any) -> None:
        """Log checks (verbosity level 2)."""
        if self.isEnabledFor(CHECKS_LEVEL):
            self._log(CHECKS_LEVEL, msg, args, **kwargs)

    def window(self, day: date, msg: str) -> None:
        """Log a check on one civil day's window, indented under its search."""
        self.checks(f"  {day.isoformat()}: {msg}")


def get_logger() -> PlanMyDayLogger:
    """Get the planmyday logger instance (singleton).

    Use setup_logger() to configure it before first use.
    """
    logging.setLoggerClass(PlanMyDayLogger)
    logger = logging.getLogger(LOGGER_NAME)
    logging.setLoggerClass(logging.Logger)
    assert isinstance(logger, PlanMyDayLogger)
    return logger


def setup_logger(verbosity: int, stream: TextIO | None = None) -> None:
    """Configure the planmyday logger with a verbosity level.

    Can be called multiple times to reconfigure the logger.

    Args:
        verbosity: 0=silent (errors only), 1=changes, 2=checks, 3=debug
        stream: Optional output stream (defaults to sys.stderr, useful for testing)
    """
    logger = get_logger()
    logger.handlers.clear()

    level_map = {
        VERBOSITY_SILENT: logging.ERROR,
        VERBOSITY_CHANGES: CHANGES_LEVEL,
        VERBOSITY_CHECKS: CHECKS_LEVEL,
        VERBOSITY_DEBUG: logging.DEBUG,
    }
    logger.setLevel(level_map.get(verbosity, logging.ERROR))

    handler = logging.StreamHandler(stream if stream is not None else sys.stderr)
    handler.setFormatter(logging.Formatter("%(message)s"))
    logger.addHandler(handler)
    logger.propagate = False


def reset_logger() -> None:
    """Reset the logger to a clean state (used between tests)."""
    logger = get_logger()
    logger.handlers.clear()
    logger.setLevel(logging.ERROR)


def checks_enabled() -> bool:
    """Check if checks-level logging is enabled (verbosity >= 2)."""
    return get_logger().isEnabledFor(CHECKS_LEVEL)


def debug_enabled() -> bool:
    """Check if debug-level logging is enabled (verbosity >= 3)."""
    return get_logger().isEnabledFor(logging.DEBUG)

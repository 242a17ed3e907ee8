"""Tests for scheduler output at different verbosity levels."""

from datetime import date
from io import StringIO

from planmyday.logger import get_logger, reset_logger, setup_logger
from planmyday.models import SchedulingMode
from planmyday.scheduler import schedule
from tests.conftest import hours, make_request, make_task, monday_at


def run_with_verbosity(verbosity: int, req) -> str:
    output_stream = StringIO()
    setup_logger(verbosity, stream=output_stream)
    try:
        schedule(req)
        return output_stream.getvalue()
    finally:
        reset_logger()


def test_verbosity_0_silent():
    """Test that verbosity 0 produces no output."""
    output = run_with_verbosity(0, make_request(make_task("a")))

    assert output == ""


def test_verbosity_1_shows_placements():
    """Test that verbosity 1 shows the chosen slot but not the windows walked."""
    output = run_with_verbosity(1, make_request(make_task("a")))

    assert "Scheduled A at 2025-01-06T09:00:00+00:00" in output
    assert "fits at" not in output


def test_verbosity_1_shows_displacements():
    """Test that moved tasks are reported at the changes level."""
    target = make_task("urgent", priority=1)
    low = make_task("low", priority=4, start=monday_at(9))
    req = make_request(
        target, [low], mode=SchedulingMode.ASAP, awake_hours=hours("09:00", "10:00")
    )

    output = run_with_verbosity(1, req)

    assert "Moved Low to Tue 2025-01-07 09:00-10:00" in output
    assert "displacing low" in output


def test_verbosity_2_shows_window_checks():
    """Test that verbosity 2 shows each window considered."""
    busy = make_task("busy", duration=8 * 60, start=monday_at(9), locked=True)

    output = run_with_verbosity(2, make_request(make_task("a"), [busy]))

    assert "2025-01-06: no free gap" in output
    assert "2025-01-07: fits at 2025-01-07T09:00:00+00:00" in output
    assert "free gaps" not in output


def test_verbosity_3_shows_gap_arithmetic():
    """Test that verbosity 3 adds the free-gap computation."""
    output = run_with_verbosity(3, make_request(make_task("a")))

    assert "free gaps in" in output


def test_failures_are_reported_at_changes_level():
    output = run_with_verbosity(1, make_request(make_task("a", duration=None)))

    assert "Failed to schedule A" in output


def test_get_logger_is_singleton():
    assert get_logger() is get_logger()


def test_window_checks_are_prefixed_with_the_day():
    output_stream = StringIO()
    setup_logger(2, stream=output_stream)

    get_logger().window(date(2025, 1, 6), "no available hours, skipping")

    assert output_stream.getvalue() == "  2025-01-06: no available hours, skipping\n"


def test_window_checks_hidden_at_changes_level():
    output_stream = StringIO()
    setup_logger(1, stream=output_stream)

    get_logger().window(date(2025, 1, 6), "no available hours, skipping")

    assert output_stream.getvalue() == ""

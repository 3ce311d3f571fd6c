"""
Pytest Configuration and Fixtures.

Shared fixtures for all tests: a pinned clock, a fresh document and a
helper that builds local-time timestamps around a fixed day.
"""
import sys
from datetime import date, datetime, time, timedelta
from pathlib import Path

import pytest

# Add project root to path
PROJECT_ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(PROJECT_ROOT))

from tracker.clock import FixedClock  # noqa: E402
from tracker.schemas import default_document  # noqa: E402
from tracker.time_utils import from_local  # noqa: E402

TODAY = date(2026, 10, 19)


def pytest_configure(config):
    """Configure pytest markers."""
    config.addinivalue_line("markers", "unit: Unit tests")
    config.addinivalue_line("markers", "integration: Integration tests (SQLite file, controller wiring)")
    config.addinivalue_line("markers", "smoke: Smoke tests for CLI commands")


@pytest.fixture
def ts():
    """
    Build a local timestamp on the test day.

    ts("08:15") -> today 08:15, ts("23:00", days=-1) -> yesterday 23:00
    """
    def _ts(hhmm: str, days: int = 0) -> int:
        hour, minute = (int(part) for part in hhmm.split(":"))
        return from_local(datetime.combine(TODAY + timedelta(days=days), time(hour, minute)))
    return _ts


@pytest.fixture
def now(ts):
    """Noon on the test day."""
    return ts("12:00")


@pytest.fixture
def clock(now):
    return FixedClock(now)


@pytest.fixture
def document():
    """Fresh default document (Sit and Down commands, default settings)."""
    return default_document()

"""
Time helpers for millisecond epoch timestamps.

All calendar logic (day boundaries, meal times, display) uses the local
time zone of the process, like the phone the tracker runs on.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime, time, timedelta
from typing import Any, Optional

from tracker.constants import DAY_MS


_HHMM_RE = re.compile(r"^(\d{1,2}):(\d{2})$")

# Year 2 through year 9998, leaving a day of slack for any local offset
MIN_TIMESTAMP_MS = -62_104_060_800_000
MAX_TIMESTAMP_MS = 253_370_764_800_000


def is_finite_ts(value: Any) -> bool:
    """
    True for real (non-bool) numbers usable as a calendar timestamp.

    NaN, infinities and values outside the years datetime can represent
    are rejected.
    """
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    return math.isfinite(value) and MIN_TIMESTAMP_MS <= value <= MAX_TIMESTAMP_MS


def to_local(ts: float) -> datetime:
    """Convert a ms epoch timestamp to a naive local datetime."""
    return datetime.fromtimestamp(ts / 1000)


def from_local(dt: datetime) -> int:
    """Convert a naive local datetime to a ms epoch timestamp."""
    return int(round(dt.timestamp() * 1000))


def start_of_local_day(day: date) -> int:
    return from_local(datetime.combine(day, time.min))


def start_of_previous_day(ts: float) -> int:
    """Timestamp of local midnight for the day before the one containing ts."""
    return start_of_local_day(to_local(ts).date() - timedelta(days=1))


def previous_day_window(ts: float) -> tuple[int, int]:
    """
    Inclusive bounds of the full previous calendar day.

    Returns:
        (startOfYesterday, startOfYesterday + 24h - 1ms)
    """
    start = start_of_previous_day(ts)
    return start, start + DAY_MS - 1


def same_day(a: Any, b: Any) -> bool:
    """True when both timestamps are finite and fall on the same local day."""
    if not is_finite_ts(a) or not is_finite_ts(b):
        return False
    return to_local(a).date() == to_local(b).date()


def parse_hhmm(value: str) -> Optional[tuple[int, int]]:
    """
    Parse a 24h "HH:MM" string.

    Returns:
        (hour, minute), or None if the value is malformed or out of range
    """
    if not isinstance(value, str):
        return None
    match = _HHMM_RE.match(value.strip())
    if not match:
        return None
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        return None
    return hour, minute


def hhmm_on_day(value: str, day_ts: float) -> Optional[int]:
    """Timestamp of HH:MM local time on the day containing day_ts."""
    parsed = parse_hhmm(value)
    if parsed is None:
        return None
    hour, minute = parsed
    day = to_local(day_ts).date()
    return from_local(datetime.combine(day, time(hour, minute)))


# ---- Display ----

_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def _twelve_hour(dt: datetime) -> str:
    hour = dt.hour % 12 or 12
    suffix = "AM" if dt.hour < 12 else "PM"
    return f"{hour}:{dt.minute:02d} {suffix}"


def fmt_time(ts: float) -> str:
    """Friendly 12h time, e.g. "8:05 AM"."""
    return _twelve_hour(to_local(ts))


def fmt_date(ts: float) -> str:
    """Short numeric date, e.g. "10/19/2026"."""
    dt = to_local(ts)
    return f"{dt.month}/{dt.day}/{dt.year}"


def fmt_datetime(ts: float) -> str:
    """Date and time, e.g. "Oct 19, 2026, 8:05 AM"."""
    dt = to_local(ts)
    return f"{_MONTHS[dt.month - 1]} {dt.day}, {dt.year}, {_twelve_hour(dt)}"


def hhmm_to_12h_label(value: str) -> Optional[str]:
    """Convert "HH:MM" (24h) to a 12h label."""
    parsed = parse_hhmm(value)
    if parsed is None:
        return None
    hour, minute = parsed
    return _twelve_hour(datetime.combine(date.today(), time(hour, minute)))


def fmt_duration(seconds: int) -> str:
    """Timer display, e.g. "02:05"."""
    seconds = max(0, int(seconds))
    return f"{seconds // 60:02d}:{seconds % 60:02d}"


def parse_local_input(value: str, fallback: int) -> int:
    """
    Parse a "YYYY-MM-DD HH:MM" (or ISO "T"-separated) local time.

    Unparseable input falls back to the given timestamp.
    """
    try:
        return from_local(datetime.fromisoformat((value or "").strip()))
    except ValueError:
        return fallback

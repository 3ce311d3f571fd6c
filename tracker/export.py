"""
Daily text export.

Format (UTF-8):
    Rue — Daily Log Export
    <date>
    <blank>
    <time> — <icon> <label>     (one line per event that day, oldest first)
"""

from __future__ import annotations

from typing import Iterable

from tracker.constants import EXPORT_HEADER, TYPE_ICON, TYPE_LABEL
from tracker.schemas import Event
from tracker.time_utils import fmt_date, fmt_time, is_finite_ts, same_day


def format_event_line(event: Event) -> str:
    return f"{fmt_time(event.at)} — {TYPE_ICON[event.type]} {TYPE_LABEL[event.type]}"


def build_export_text(events: Iterable[Event], target_ts: int) -> str:
    """Export the events on the calendar day containing target_ts."""
    day_events = sorted(
        (e for e in events if e is not None and is_finite_ts(e.at) and same_day(e.at, target_ts)),
        key=lambda e: e.at,
    )
    lines = [EXPORT_HEADER, fmt_date(target_ts), ""]
    lines.extend(format_event_line(e) for e in day_events)
    return "\n".join(lines)

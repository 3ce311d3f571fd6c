"""
Derivation Engine

Pure functions computing suggestions and schedule entries from the event
log and current settings. Nothing is cached: views call these on every
read, so results always reflect the latest document.
"""

from __future__ import annotations

import math
import statistics
from dataclasses import dataclass
from typing import Literal, Optional

from tracker.constants import EventType, SuggestionMethod
from tracker.event_log import events_of_type
from tracker.scheduler import pending_attempts
from tracker.schemas import Document
from tracker.time_utils import hhmm_on_day, is_finite_ts, previous_day_window, same_day


ScheduleKind = Literal["meal", "pee"]


@dataclass(frozen=True)
class ScheduleItem:
    """One row of today's combined schedule."""
    id: str
    at: int
    kind: ScheduleKind


# ---- Central tendency ----

def central_value(values: list[float], method: SuggestionMethod) -> Optional[float]:
    """
    Reduce values with the configured method.

    Median averages the two middle values on an even count.

    Returns:
        The reduced value, or None if there is nothing finite to reduce
    """
    finite = [v for v in values if is_finite_ts(v)]
    if not finite:
        return None
    if method == SuggestionMethod.MEAN:
        result = statistics.fmean(finite)
    else:
        result = statistics.median(finite)
    return result if math.isfinite(result) else None


def intervals(timestamps: list[int]) -> list[int]:
    """Successive differences of ascending timestamps."""
    return [b - a for a, b in zip(timestamps, timestamps[1:])]


# ---- Pee suggestion ----

def suggest_next_pee(document: Document, now: int) -> Optional[int]:
    """
    Suggest the next pee time from yesterday's rhythm.

    Takes the central interval between yesterday's pees and adds it to
    the latest pee today (or to now, if there has been none yet today).
    Advisory only; never drives scheduling.

    Returns:
        Suggested timestamp, or None with fewer than 2 pees yesterday
    """
    if not is_finite_ts(now):
        return None

    start, end = previous_day_window(now)
    pees = events_of_type(document, EventType.PEE)
    yesterday = sorted(e.at for e in pees if start <= e.at <= end)
    if len(yesterday) < 2:
        return None

    central = central_value(intervals(yesterday), document.settings.pee_suggestion_method)
    if central is None:
        return None

    todays = [e.at for e in pees if same_day(e.at, now)]
    anchor = max(todays) if todays else now
    return int(round(anchor + central))


# ---- Meals ----

def todays_meal_times(document: Document, now: int) -> list[int]:
    """Today's scheduled meal timestamps, earliest first."""
    times = (hhmm_on_day(t, now) for t in document.settings.meal_schedule.times)
    return sorted(ts for ts in times if ts is not None)


def meals_eaten_today(document: Document, now: int) -> int:
    return sum(1 for e in events_of_type(document, EventType.FOOD) if same_day(e.at, now))


def remaining_meals_today(document: Document, now: int) -> list[int]:
    """
    Scheduled meals not yet covered by a logged meal today.

    Earliest-first consumption: the Nth meal logged today satisfies the
    Nth scheduled time, whatever time it was actually eaten.
    """
    if not is_finite_ts(now):
        return []
    return todays_meal_times(document, now)[meals_eaten_today(document, now):]


# ---- Combined schedule ----

def build_today_schedule(document: Document, now: int) -> list[ScheduleItem]:
    """Remaining meals plus pending out attempts, ascending by time."""
    items = [
        ScheduleItem(id=f"meal-{ts}-{idx}", at=ts, kind="meal")
        for idx, ts in enumerate(remaining_meals_today(document, now))
    ]
    items.extend(
        ScheduleItem(id=a.id, at=a.at, kind="pee")
        for a in pending_attempts(document)
    )
    return sorted(items, key=lambda item: item.at)

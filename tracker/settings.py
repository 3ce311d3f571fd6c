"""
Settings save action.

Settings change only through save_settings(), which clamps every value
to a safe range instead of rejecting input.
"""

from __future__ import annotations

import math
import re
from typing import Any, Optional

from tracker.constants import (
    DEFAULT_LEARNED_WINDOW,
    DEFAULT_WATER_TO_OUT_MINUTES,
    SuggestionMethod,
)
from tracker.schemas import CloudSettings, Document, Settings
from tracker.time_utils import parse_hhmm


def _positive_int(value: Any, default: int) -> int:
    try:
        number = int(str(value).strip())
    except (TypeError, ValueError):
        return default
    return max(1, number) if number else default


def _threshold(value: Any, current: float) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        return current
    if not math.isfinite(number):
        return current
    return min(1.0, max(0.0, number))


def parse_meal_times(text: str) -> list[str]:
    """Split comma/newline separated HH:MM entries, dropping blanks and junk."""
    times: list[str] = []
    for part in re.split(r"[,\n]", text or ""):
        part = part.strip()
        if part and parse_hhmm(part) is not None and part not in times:
            times.append(part)
    return times


def save_settings(
    document: Document,
    *,
    water_to_out_minutes: Any = None,
    pee_suggestion_method: Any = None,
    learned_threshold: Any = None,
    learned_window: Any = None,
    meal_times: Optional[str | list[str]] = None,
) -> Settings:
    """
    Apply a settings form to the document (modified in place).

    Omitted values keep their current setting.

    Returns:
        The updated settings
    """
    settings = document.settings

    if water_to_out_minutes is not None:
        settings.water_to_out_minutes = _positive_int(water_to_out_minutes, DEFAULT_WATER_TO_OUT_MINUTES)
    if pee_suggestion_method is not None:
        try:
            settings.pee_suggestion_method = SuggestionMethod(pee_suggestion_method)
        except ValueError:
            settings.pee_suggestion_method = SuggestionMethod.MEDIAN
    if learned_threshold is not None:
        settings.learned_threshold = _threshold(learned_threshold, settings.learned_threshold)
    if learned_window is not None:
        settings.learned_window = _positive_int(learned_window, DEFAULT_LEARNED_WINDOW)
    if meal_times is not None:
        text = meal_times if isinstance(meal_times, str) else "\n".join(meal_times)
        settings.meal_schedule.times = parse_meal_times(text)

    return settings


def save_cloud_settings(document: Document, enabled: bool, url: str, family_id: str) -> CloudSettings:
    """Store remote replica credentials (local-only)."""
    document.settings.cloud = CloudSettings(
        enabled=bool(enabled),
        url=(url or "").strip(),
        family_id=(family_id or "").strip(),
    )
    return document.settings.cloud

"""
Out-Attempt Scheduler

Maintains at most one pending pee reminder per unresolved "drank water
since the last pee" condition.

Rule:
1. A water event is logged
2. Find the most recent pee strictly before now (none = -infinity)
3. If a non-done pee reminder is already due after that pee, do nothing
4. Otherwise schedule a reminder 80 minutes after this water

Only the first water after the last pee schedules a reminder, so logging
water repeatedly never spams reminders. This is the only place pending pee
reminders are created; acknowledgement and deletion live alongside it.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from tracker.clock import new_id
from tracker.constants import PEE_ATTEMPT_DELAY_MS, AttemptReason, EventType
from tracker.event_log import append_event, events_of_type
from tracker.schemas import Document, Event, OutAttempt
from tracker.time_utils import is_finite_ts


def last_pee_before(document: Document, now: Optional[int] = None) -> float:
    """
    Timestamp of the most recent pee strictly before now.

    Returns:
        The timestamp, or -infinity when there is none
    """
    pees = events_of_type(document, EventType.PEE)
    times = [e.at for e in pees if now is None or e.at < now]
    return max(times, default=float("-inf"))


def has_pending_pee_attempt(document: Document, after: float) -> bool:
    """True if a non-done pee reminder is due after the given time."""
    return any(
        not a.done
        and a.reason == AttemptReason.PEE
        and is_finite_ts(a.at)
        and a.at > after
        for a in document.out_attempts
    )


def ensure_pee_attempt_after_water(
    document: Document,
    water_event: Event,
    now: Optional[int] = None
) -> Optional[OutAttempt]:
    """
    Schedule a pee reminder for a water event unless one is already pending.

    Args:
        document: Document to update (modified in place)
        water_event: The water event just logged
        now: Current time; pees at or after it are ignored (None = consider all)

    Returns:
        The new OutAttempt, or None if nothing was scheduled
    """
    if water_event is None or not is_finite_ts(water_event.at):
        return None

    last_pee_at = last_pee_before(document, now)
    if has_pending_pee_attempt(document, last_pee_at):
        logger.debug("Pee attempt already pending, water {} not rescheduling", water_event.id)
        return None

    at = water_event.at + PEE_ATTEMPT_DELAY_MS
    if not is_finite_ts(at):
        return None

    attempt = OutAttempt(
        id=f"out-{water_event.id}",
        at=at,
        reason=AttemptReason.PEE,
        source_event_id=water_event.id,
        done=False,
    )
    document.out_attempts.append(attempt)
    logger.debug("Scheduled pee attempt {} at {}", attempt.id, at)
    return attempt


def find_attempt(document: Document, attempt_id: str) -> Optional[OutAttempt]:
    return next((a for a in document.out_attempts if a.id == attempt_id), None)


def pending_attempts(document: Document) -> list[OutAttempt]:
    """Non-done attempts, earliest first."""
    return sorted(
        (a for a in document.out_attempts if not a.done and is_finite_ts(a.at)),
        key=lambda a: a.at,
    )


def mark_attempt_done(
    document: Document,
    attempt_id: str,
    now: int,
    event_id: Optional[str] = None
) -> Optional[Event]:
    """
    Acknowledge an out attempt.

    Acknowledging a pee reminder logs a `pee_attempt` event at now.
    Already-done or unknown attempts are left alone.

    Returns:
        The logged pee_attempt event, if any
    """
    attempt = find_attempt(document, attempt_id)
    if attempt is None or attempt.done:
        return None

    attempt.done = True
    if attempt.reason != AttemptReason.PEE:
        return None

    event = Event(id=event_id or new_id("ev"), type=EventType.PEE_ATTEMPT, at=now)
    return append_event(document, event)


def delete_attempt(document: Document, attempt_id: str) -> Optional[OutAttempt]:
    """Explicitly remove an out attempt."""
    attempt = find_attempt(document, attempt_id)
    if attempt is None:
        return None
    document.out_attempts = [a for a in document.out_attempts if a.id != attempt_id]
    return attempt

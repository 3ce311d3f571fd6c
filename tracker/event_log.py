"""
Event Log - append, remove, correct and query occurrences.

The log is append-only apart from explicit user deletes and time
corrections. Two engine-level side effects are applied here because the
store has no foreign-key awareness:

- appending a `pee` event resolves every pending pee reminder
- removing a `water` event removes the reminders it scheduled

All functions modify the document in place.
"""

from __future__ import annotations

from typing import Callable, Iterator, Optional

from loguru import logger

from tracker.constants import AttemptReason, EventType
from tracker.schemas import Document, Event, OutAttempt
from tracker.time_utils import is_finite_ts


EventPredicate = Callable[[Event], bool]

MUTABLE_EVENT_FIELDS = {"at"}


class EventQuery:
    """
    Lazy, restartable view over the events matching a predicate.

    Iterating twice walks the log twice; no ordering is promised beyond
    the document's storage order, callers sort on `at` when they need to.
    """

    def __init__(self, document: Document, predicate: Optional[EventPredicate] = None):
        self._document = document
        self._predicate = predicate

    def __iter__(self) -> Iterator[Event]:
        for event in self._document.events:
            if self._predicate is None or self._predicate(event):
                yield event

    def sorted(self, reverse: bool = False) -> list[Event]:
        """Matching events ordered by `at` (stable for ties)."""
        return sorted(self, key=lambda e: e.at, reverse=reverse)

    def latest(self) -> Optional[Event]:
        return max(self, key=lambda e: e.at, default=None)

    def count(self) -> int:
        return sum(1 for _ in self)


def query_events(document: Document, predicate: Optional[EventPredicate] = None) -> EventQuery:
    return EventQuery(document, predicate)


def events_of_type(document: Document, event_type: EventType) -> EventQuery:
    """Events of one type with a usable timestamp."""
    return EventQuery(document, lambda e: e.type == event_type and is_finite_ts(e.at))


def find_event(document: Document, event_id: str) -> Optional[Event]:
    return next((e for e in document.events if e.id == event_id), None)


def clear_pending_pee_attempts(document: Document) -> list[OutAttempt]:
    """
    Drop every non-done pee reminder.

    Returns:
        The removed attempts
    """
    removed = [a for a in document.out_attempts if a.reason == AttemptReason.PEE and not a.done]
    if removed:
        document.out_attempts = [
            a for a in document.out_attempts
            if not (a.reason == AttemptReason.PEE and not a.done)
        ]
        logger.debug("Pee logged, cleared {} pending pee attempt(s)", len(removed))
    return removed


def append_event(document: Document, event: Event) -> Event:
    """
    Append an event to the log.

    A real pee resolves any outstanding pee reminder without explicit
    acknowledgement.
    """
    document.events.append(event)
    if event.type == EventType.PEE:
        clear_pending_pee_attempts(document)
    return event


def remove_event(document: Document, event_id: str) -> Optional[Event]:
    """
    Remove an event by id.

    Removing a water event cascades to the out attempts whose
    sourceEventId references it, and only those.

    Returns:
        The removed event, or None if no event had that id
    """
    event = find_event(document, event_id)
    if event is None:
        return None

    document.events = [e for e in document.events if e.id != event_id]

    if event.type == EventType.WATER:
        before = len(document.out_attempts)
        document.out_attempts = [
            a for a in document.out_attempts if a.source_event_id != event_id
        ]
        dropped = before - len(document.out_attempts)
        if dropped:
            logger.debug("Removed {} out attempt(s) linked to water {}", dropped, event_id)

    return event


def update_event(document: Document, event_id: str, patch: dict) -> Optional[Event]:
    """
    Apply a correction to an event.

    Only `at` may change; other keys and non-finite timestamps are ignored.

    Returns:
        The updated event, or None if no event had that id
    """
    event = find_event(document, event_id)
    if event is None:
        return None

    for key, value in patch.items():
        if key not in MUTABLE_EVENT_FIELDS:
            logger.debug("Ignoring immutable event field {}", key)
            continue
        if not is_finite_ts(value):
            logger.debug("Ignoring non-finite time {!r} for event {}", value, event_id)
            continue
        event.at = int(round(value))

    return event

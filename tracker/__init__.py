"""
Rue Tracker core.

Records timestamped events and derives forward-looking artifacts from them:
pee reminders after water, a suggested next pee time, the remaining meal
schedule, and a rolling "learned" classification for trained commands.

Quick start:
    from tracker import schemas, event_log, scheduler, derivation

    document = schemas.default_document()

    # Log water; a pee attempt is scheduled 80 minutes later
    water = schemas.Event(id="ev-1", type="water", at=now)
    event_log.append_event(document, water)
    scheduler.ensure_pee_attempt_after_water(document, water, now)

    # Re-derive on every read
    derivation.build_today_schedule(document, now)
"""

# Document model
from tracker.schemas import (
    ActiveSession,
    Document,
    Event,
    OutAttempt,
    Settings,
    TrainingCommand,
    TrainingSession,
    default_document,
    document_from_dict,
    document_to_dict,
)

# Constants
from tracker.constants import (
    AttemptReason,
    EventType,
    SuggestionMethod,
    PEE_ATTEMPT_DELAY_MS,
)

# Operations
from tracker.event_log import (
    append_event,
    query_events,
    remove_event,
    update_event,
)
from tracker.scheduler import (
    delete_attempt,
    ensure_pee_attempt_after_water,
    mark_attempt_done,
)
from tracker.derivation import (
    build_today_schedule,
    remaining_meals_today,
    suggest_next_pee,
)
from tracker.training import (
    SessionState,
    TrainingError,
    TrainingSessionMachine,
    compute_learned,
)
from tracker.export import build_export_text


__all__ = [
    # Document model
    "ActiveSession",
    "Document",
    "Event",
    "OutAttempt",
    "Settings",
    "TrainingCommand",
    "TrainingSession",
    "default_document",
    "document_from_dict",
    "document_to_dict",

    # Enums and constants
    "AttemptReason",
    "EventType",
    "SuggestionMethod",
    "PEE_ATTEMPT_DELAY_MS",

    # Event log
    "append_event",
    "query_events",
    "remove_event",
    "update_event",

    # Scheduler
    "delete_attempt",
    "ensure_pee_attempt_after_water",
    "mark_attempt_done",

    # Derivation
    "build_today_schedule",
    "remaining_meals_today",
    "suggest_next_pee",

    # Training
    "SessionState",
    "TrainingError",
    "TrainingSessionMachine",
    "compute_learned",

    # Export
    "build_export_text",
]

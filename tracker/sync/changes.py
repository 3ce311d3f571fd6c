"""
Entity-level change tracking for the remote replica.

The replica stores one row per entity in four tables. Local mutations are
applied to the whole document, so the rows to push are found by diffing
the document before and after a commit.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

from tracker.schemas import (
    Document,
    Event,
    OutAttempt,
    TrainingCommand,
    TrainingSession,
    keep_valid,
)


ChangeOp = Literal["insert", "update", "delete"]

EVENTS = "events"
OUT_ATTEMPTS = "out_attempts"
TRAINING_COMMANDS = "training_commands"
TRAINING_SESSIONS = "training_sessions"

# Referenced tables first; deletes run in reverse
TABLES = [EVENTS, OUT_ATTEMPTS, TRAINING_COMMANDS, TRAINING_SESSIONS]


@dataclass(frozen=True)
class EntityChange:
    op: ChangeOp
    table: str
    entity_id: str
    record: Optional[dict] = None


# ---- Row mapping ----

def event_row(event: Event) -> dict:
    return {"id": event.id, "type": event.type.value, "at": event.at, "note": event.note}


def attempt_row(attempt: OutAttempt) -> dict:
    return {
        "id": attempt.id,
        "at": attempt.at,
        "reason": attempt.reason.value,
        "source_event_id": attempt.source_event_id,
        "done": bool(attempt.done),
    }


def command_row(command: TrainingCommand, position: int) -> dict:
    return {
        "id": command.id,
        "name": command.name,
        "total_seconds": command.total_seconds or 0,
        "learned": bool(command.learned),
        "position": position,
    }


def session_row(session: TrainingSession) -> dict:
    return {
        "id": session.id,
        "command_id": session.command_id,
        "started_at": session.started_at,
        "ended_at": session.ended_at,
        "seconds": session.seconds or 0,
        "attempts": session.attempts or 0,
        "successes": session.successes or 0,
        "success_rate": session.success_rate or 0.0,
    }


def document_rows(document: Document) -> dict[str, dict[str, dict]]:
    """All replicated rows of a document, keyed by table then id."""
    sessions = [s for c in document.training_commands for s in c.session_history]
    return {
        EVENTS: {e.id: event_row(e) for e in document.events},
        OUT_ATTEMPTS: {a.id: attempt_row(a) for a in document.out_attempts},
        TRAINING_COMMANDS: {
            c.id: command_row(c, idx) for idx, c in enumerate(document.training_commands)
        },
        TRAINING_SESSIONS: {s.id: session_row(s) for s in sessions},
    }


def diff_documents(before: Document, after: Document) -> list[EntityChange]:
    """
    Rows to insert, update and delete to turn `before` into `after`.

    Inserts and updates come in table order, deletes in reverse table
    order, so references always point at existing rows.
    """
    old, new = document_rows(before), document_rows(after)
    upserts: list[EntityChange] = []
    deletes: list[EntityChange] = []

    for table in TABLES:
        for entity_id, record in new[table].items():
            previous = old[table].get(entity_id)
            if previous is None:
                upserts.append(EntityChange("insert", table, entity_id, record))
            elif previous != record:
                upserts.append(EntityChange("update", table, entity_id, record))

    for table in reversed(TABLES):
        for entity_id in old[table]:
            if entity_id not in new[table]:
                deletes.append(EntityChange("delete", table, entity_id))

    return upserts + deletes


# ---- Remote snapshot ----

@dataclass
class RemoteSnapshot:
    """The replicated part of a document as fetched from the replica."""
    events: list[Event] = field(default_factory=list)
    out_attempts: list[OutAttempt] = field(default_factory=list)
    training_commands: list[TrainingCommand] = field(default_factory=list)


def snapshot_from_rows(
    events: list[dict],
    attempts: list[dict],
    commands: list[dict],
    sessions: list[dict]
) -> RemoteSnapshot:
    """Rebuild models from replica rows; malformed rows are dropped."""
    by_command: dict[str, list[dict]] = {}
    for row in sessions:
        by_command.setdefault(row.get("command_id"), []).append(row)

    command_dicts = [
        {
            "id": row.get("id"),
            "name": row.get("name"),
            "total_seconds": row.get("total_seconds") or 0,
            "learned": bool(row.get("learned")),
            "session_history": by_command.get(row.get("id"), []),
        }
        for row in commands
    ]
    return RemoteSnapshot(
        events=keep_valid(events, Event),
        out_attempts=keep_valid(attempts, OutAttempt),
        training_commands=keep_valid(command_dicts, TrainingCommand),
    )


def apply_remote_snapshot(document: Document, snapshot: RemoteSnapshot) -> Document:
    """
    Replace the replicated collections wholesale (last fetch wins).

    Settings and the active session are local-only and kept.
    """
    document.events = list(snapshot.events)
    document.out_attempts = list(snapshot.out_attempts)
    document.training_commands = list(snapshot.training_commands)
    return document

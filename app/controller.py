"""
Tracker controller - applies user actions to the document.

Control flow for every action:
1. Copy the in-memory document
2. Apply the mutation to the copy (all-or-nothing)
3. Swap the copy in and persist it
4. Push the changed entities to the remote replica in the background

Views re-derive suggestions and schedules from the latest document on
every call. Persistence and replica failures are logged and never block
or undo the local change.
"""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Any, Callable, Optional, TypeVar

from loguru import logger

from tracker import derivation, event_log, scheduler, training
from tracker import settings as settings_actions
from tracker.clock import SystemClock, new_id
from tracker.constants import EventType
from tracker.export import build_export_text
from tracker.schemas import (
    ActiveSession,
    CloudSettings,
    Document,
    Event,
    Settings,
    TrainingCommand,
    TrainingSession,
    default_document,
)
from tracker.storage import DocumentStore
from tracker.sync import (
    EntityChange,
    SyncBackend,
    apply_remote_snapshot,
    diff_documents,
    get_sync_backend,
)


T = TypeVar("T")


class TrackerController:
    """
    Owns the in-memory document for one family/unit.

    Args:
        store: Persistence collaborator (system of record when local-only)
        sync: Replica backend; selected from the stored cloud settings if omitted
        clock: Clock collaborator, SystemClock by default
        background_sync: Push replica writes on a worker thread
    """

    def __init__(
        self,
        store: DocumentStore,
        sync: Optional[SyncBackend] = None,
        clock=None,
        background_sync: bool = True
    ):
        self.store = store
        self.clock = clock or SystemClock()
        self._lock = threading.RLock()
        self._background_sync = background_sync
        self._executor: Optional[ThreadPoolExecutor] = None
        self._unsubscribe: Optional[Callable[[], None]] = None

        self.document: Document = store.load()
        self.sync = sync if sync is not None else get_sync_backend(self.document.settings.cloud)

        self.training = training.TrainingSessionMachine(self.clock)
        self.training.restore(self.document)

    # ---- Lifecycle ----

    def start_sync(self) -> None:
        """Pull the replica once and follow its change notifications."""
        if not self.sync.enabled:
            return
        self.refresh_from_remote()
        self._unsubscribe = self.sync.subscribe(lambda _change: self.refresh_from_remote())

    def stop_sync(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None

    def wait_for_sync(self) -> None:
        """Block until queued replica writes have been attempted."""
        if self._executor is not None:
            self._executor.submit(lambda: None).result()

    def close(self) -> None:
        self.stop_sync()
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        self.sync.close()

    def __enter__(self) -> "TrackerController":
        return self

    def __exit__(self, *exc) -> None:
        self.close()

    # ---- Commit pipeline ----

    def commit(self, mutator: Callable[[Document], T]) -> T:
        """
        Apply a mutation atomically.

        The mutator runs on a deep copy; if it raises, the current document
        is left untouched and the error propagates.
        """
        with self._lock:
            before = self.document
            working = before.model_copy(deep=True)
            result = mutator(working)
            self.document = working
            self._persist()
            self._push(diff_documents(before, working))
        return result

    def _persist(self) -> None:
        try:
            if not self.store.save(self.document):
                logger.warning("Document save failed, continuing with in-memory state")
        except Exception as exc:
            logger.warning("Document save raised, continuing with in-memory state: {}", exc)

    def _push(self, changes: list[EntityChange]) -> None:
        if not self.sync.enabled or not changes:
            return
        if not self._background_sync:
            self._apply_remote(changes)
            return
        if self._executor is None:
            self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="replica-push")
        self._executor.submit(self._apply_remote, changes)

    def _apply_remote(self, changes: list[EntityChange]) -> None:
        try:
            self.sync.apply(changes)
        except Exception as exc:
            logger.warning("Replica write failed ({} change(s)): {}", len(changes), exc)

    def refresh_from_remote(self) -> bool:
        """
        Replace the replicated collections with the replica's (last fetch wins).

        Returns:
            True if a snapshot was applied
        """
        try:
            snapshot = self.sync.fetch_all()
        except Exception as exc:
            logger.warning("Replica fetch raised: {}", exc)
            return False
        if snapshot is None:
            return False

        with self._lock:
            working = self.document.model_copy(deep=True)
            self.document = apply_remote_snapshot(working, snapshot)
            self._persist()
        return True

    # ---- Event log ----

    def log_event(
        self,
        event_type: EventType | str,
        at: Optional[int] = None,
        note: Optional[str] = None
    ) -> Event:
        """
        Log an event (now by default).

        Water schedules a pee attempt unless one is pending; pee resolves
        pending attempts.
        """
        now = self.clock.now()
        event = Event(id=new_id("ev"), type=EventType(event_type), at=now if at is None else at, note=note)

        def _mutate(doc: Document) -> Event:
            event_log.append_event(doc, event)
            if event.type == EventType.WATER:
                scheduler.ensure_pee_attempt_after_water(doc, event, now)
            return event

        return self.commit(_mutate)

    def log_meal_now(self) -> Event:
        return self.log_event(EventType.FOOD)

    def delete_event(self, event_id: str) -> Optional[Event]:
        return self.commit(lambda doc: event_log.remove_event(doc, event_id))

    def edit_event_time(self, event_id: str, at: int) -> Optional[Event]:
        return self.commit(lambda doc: event_log.update_event(doc, event_id, {"at": at}))

    def events_ascending(self) -> list[Event]:
        return event_log.query_events(self.document).sorted()

    # ---- Out attempts ----

    def mark_attempt_done(self, attempt_id: str) -> Optional[Event]:
        now = self.clock.now()
        return self.commit(lambda doc: scheduler.mark_attempt_done(doc, attempt_id, now))

    def delete_attempt(self, attempt_id: str):
        return self.commit(lambda doc: scheduler.delete_attempt(doc, attempt_id))

    # ---- Derived views ----

    def suggested_next_pee(self) -> Optional[int]:
        return derivation.suggest_next_pee(self.document, self.clock.now())

    def remaining_meals(self) -> list[int]:
        return derivation.remaining_meals_today(self.document, self.clock.now())

    def today_schedule(self) -> list[derivation.ScheduleItem]:
        return derivation.build_today_schedule(self.document, self.clock.now())

    def export_text(self, target_ts: Optional[int] = None) -> str:
        target = self.clock.now() if target_ts is None else target_ts
        return build_export_text(self.document.events, target)

    def command_summaries(self) -> list[training.CommandSummary]:
        return [training.summarize_command(c) for c in self.document.training_commands]

    # ---- Training ----

    def add_command(self, name: str) -> Optional[TrainingCommand]:
        return self.commit(lambda doc: training.add_command(doc, name))

    def move_command_up(self, command_id: str) -> bool:
        return self.commit(lambda doc: training.move_up(doc, command_id))

    def move_command_down(self, command_id: str) -> bool:
        return self.commit(lambda doc: training.move_down(doc, command_id))

    def start_session(self, command_id: str) -> ActiveSession:
        """Raises training.TrainingError if a session is already active."""
        return self.commit(lambda doc: self.training.start(doc, command_id))

    def pause_session(self) -> None:
        self.training.pause()

    def resume_session(self) -> None:
        self.training.resume()

    def end_session(self) -> training.PendingResult:
        return self.commit(self.training.end)

    def confirm_results(self, attempts: Any, successes: Any) -> Optional[TrainingSession]:
        return self.commit(lambda doc: self.training.confirm(doc, attempts, successes))

    def cancel_results(self) -> None:
        self.training.cancel()

    # ---- Settings ----

    def save_settings(self, **values: Any) -> Settings:
        return self.commit(lambda doc: settings_actions.save_settings(doc, **values))

    def save_cloud_settings(self, enabled: bool, url: str, family_id: str) -> CloudSettings:
        """Store replica credentials and switch to the matching backend."""
        cloud = self.commit(
            lambda doc: settings_actions.save_cloud_settings(doc, enabled, url, family_id)
        )
        self.stop_sync()
        self.wait_for_sync()
        self.sync.close()
        self.sync = get_sync_backend(cloud)
        return cloud

    def reset_all(self) -> Document:
        """
        DANGEROUS: clear all data and restore defaults (local only).

        Replica sync is torn down first; the default settings leave it
        disabled, so nothing logged afterwards is pushed.
        """
        self.stop_sync()
        self.wait_for_sync()
        with self._lock:
            self.document = default_document()
            self.training = training.TrainingSessionMachine(self.clock)
            self._persist()
        self.sync.close()
        self.sync = get_sync_backend(self.document.settings.cloud)
        return self.document

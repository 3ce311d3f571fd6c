"""
Remote replica interface.

A backend is chosen by configuration (see get_sync_backend), never by
probing objects at runtime. With the null backend the tracker behaves
exactly as in local-only mode.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Callable, Optional

from tracker.sync.changes import EntityChange, RemoteSnapshot


ChangeCallback = Callable[[Any], None]
Unsubscribe = Callable[[], None]


class SyncBackend(ABC):
    """Remote replica of the replicated document collections."""

    enabled = True

    @abstractmethod
    def fetch_all(self) -> Optional[RemoteSnapshot]:
        """Fetch every replicated entity, or None if unavailable."""

    @abstractmethod
    def insert(self, table: str, record: dict) -> None: ...

    @abstractmethod
    def update(self, table: str, record: dict) -> None: ...

    @abstractmethod
    def delete(self, table: str, entity_id: str) -> None: ...

    @abstractmethod
    def subscribe(self, on_change: ChangeCallback) -> Unsubscribe:
        """Call on_change whenever the replica changes; returns an unsubscribe function."""

    def ping(self) -> bool:
        return True

    def apply(self, changes: list[EntityChange]) -> None:
        """Push entity changes in order. Errors propagate to the caller."""
        for change in changes:
            if change.op == "insert":
                self.insert(change.table, change.record)
            elif change.op == "update":
                self.update(change.table, change.record)
            else:
                self.delete(change.table, change.entity_id)

    def close(self) -> None:
        pass


class NullSyncBackend(SyncBackend):
    """Disabled replica: every operation is a no-op."""

    enabled = False

    def fetch_all(self) -> Optional[RemoteSnapshot]:
        return None

    def insert(self, table: str, record: dict) -> None:
        pass

    def update(self, table: str, record: dict) -> None:
        pass

    def delete(self, table: str, entity_id: str) -> None:
        pass

    def subscribe(self, on_change: ChangeCallback) -> Unsubscribe:
        return lambda: None

    def apply(self, changes: list[EntityChange]) -> None:
        pass

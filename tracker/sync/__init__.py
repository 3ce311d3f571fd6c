"""
Remote replica collaborator.

    from tracker.sync import get_sync_backend

    backend = get_sync_backend(document.settings.cloud)
    snapshot = backend.fetch_all()

The backend is selected from the cloud settings: Mongo when enabled and
fully configured, otherwise the no-op backend.
"""

from tracker.schemas import CloudSettings
from tracker.sync.base import NullSyncBackend, SyncBackend
from tracker.sync.changes import (
    EntityChange,
    RemoteSnapshot,
    apply_remote_snapshot,
    diff_documents,
)
from tracker.sync.mongo_backend import MongoSyncBackend


def get_sync_backend(cloud: CloudSettings) -> SyncBackend:
    """Pick the replica backend for the given cloud settings."""
    if cloud.enabled and cloud.url and cloud.family_id:
        return MongoSyncBackend(cloud.url, cloud.family_id)
    return NullSyncBackend()


__all__ = [
    "EntityChange",
    "MongoSyncBackend",
    "NullSyncBackend",
    "RemoteSnapshot",
    "SyncBackend",
    "apply_remote_snapshot",
    "diff_documents",
    "get_sync_backend",
]

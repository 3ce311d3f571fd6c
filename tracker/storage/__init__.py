"""
Persistence collaborator.

    from tracker.storage import SqlDocumentStore

    store = SqlDocumentStore()
    document = store.load()
    store.save(document)

Stores never raise into the core: load() falls back to defaults and
save() reports failure by returning False.
"""

from tracker.storage.base import DocumentStore
from tracker.storage.memory import MemoryDocumentStore
from tracker.storage.database import SqlDocumentStore

__all__ = [
    "DocumentStore",
    "MemoryDocumentStore",
    "SqlDocumentStore",
]

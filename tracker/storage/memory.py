"""
In-memory document store.

Used when no durable storage is available, and in tests. Holds the
serialized JSON so loads always return an independent copy.
"""

from __future__ import annotations

from typing import Optional

from loguru import logger

from tracker.schemas import Document, default_document, document_from_json, document_to_json
from tracker.storage.base import DocumentStore


class MemoryDocumentStore(DocumentStore):

    def __init__(self, raw: Optional[str] = None):
        self.raw = raw

    def load(self) -> Document:
        if not self.raw:
            document = default_document()
            self.save(document)
            return document
        return document_from_json(self.raw)

    def save(self, document: Document) -> bool:
        try:
            self.raw = document_to_json(document)
        except (TypeError, ValueError) as exc:
            logger.warning("Could not serialize document: {}", exc)
            return False
        return True

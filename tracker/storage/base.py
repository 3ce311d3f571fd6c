"""
Document store interface.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from tracker.schemas import Document, default_document


class DocumentStore(ABC):
    """System of record for the document when no remote replica is configured."""

    @abstractmethod
    def load(self) -> Document:
        """Return the stored document, or defaults when missing or unreadable."""

    @abstractmethod
    def save(self, document: Document) -> bool:
        """Persist the document. Returns False on failure, never raises."""

    def reset(self) -> Document:
        """
        DANGEROUS: replace the stored document with defaults.

        All events, reminders and training history are lost!
        """
        document = default_document()
        self.save(document)
        return document

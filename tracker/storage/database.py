"""
Database - document store on SQLAlchemy

Persists the document as a JSON payload in a single table. Works with
SQLite (default) or Postgres via the TRACKER_DATABASE_URL setting.

Every method catches database errors: a failed read resets to defaults and
a failed write returns False, so the core keeps working in memory.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from loguru import logger
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from tracker import config
from tracker.schemas import Document, default_document, document_from_json, document_to_json
from tracker.storage.base import DocumentStore
from tracker.storage.models import Base, StoredDocument


def get_engine(db_url: str) -> Engine:
    """
    Create a SQLAlchemy engine.

    Server databases get a small connection pool; SQLite uses the defaults.
    """
    if db_url.startswith("sqlite"):
        return create_engine(db_url, echo=False)
    return create_engine(
        db_url,
        pool_size=5,           # Keep 5 connections open
        max_overflow=10,       # Allow up to 10 extra connections
        pool_pre_ping=True,    # Verify connections before use
        echo=False
    )


class SqlDocumentStore(DocumentStore):
    """Document store backed by a SQL table."""

    def __init__(self, db_url: Optional[str] = None, key: Optional[str] = None):
        self.db_url = db_url or config.get_database_url()
        self.key = key or config.get_document_key()
        self._engine: Optional[Engine] = None
        self._session_factory: Optional[sessionmaker] = None

    def _session(self) -> Session:
        if self._session_factory is None:
            self._engine = get_engine(self.db_url)
            Base.metadata.create_all(self._engine)
            self._session_factory = sessionmaker(bind=self._engine, expire_on_commit=False)
        return self._session_factory()

    def load(self) -> Document:
        """
        Load the document, seeding defaults on first use.

        Unreadable payloads are replaced by defaults rather than failing.
        """
        try:
            session = self._session()
        except SQLAlchemyError as exc:
            logger.warning("Document store unavailable, using defaults: {}", exc)
            return default_document()

        try:
            row = session.get(StoredDocument, self.key)
            payload = row.payload if row is not None else None
        except SQLAlchemyError as exc:
            logger.warning("Could not read document {}: {}", self.key, exc)
            return default_document()
        finally:
            session.close()

        document = document_from_json(payload)
        if payload is None:
            self.save(document)
        return document

    def save(self, document: Document) -> bool:
        """Insert or update the stored payload."""
        try:
            payload = document_to_json(document)
            session = self._session()
        except (SQLAlchemyError, TypeError, ValueError) as exc:
            logger.warning("Could not save document {}: {}", self.key, exc)
            return False

        try:
            row = session.get(StoredDocument, self.key)
            now = datetime.now(timezone.utc)
            if row is None:
                session.add(StoredDocument(key=self.key, payload=payload, updated_at=now))
            else:
                row.payload = payload
                row.updated_at = now
            session.commit()
            return True
        except SQLAlchemyError as exc:
            session.rollback()
            logger.warning("Could not save document {}: {}", self.key, exc)
            return False
        finally:
            session.close()


"""
SQLAlchemy ORM model for the stored document.

The whole document is one JSON payload keyed by family/unit, mirroring
how the tracker treats it as a single unit.
"""

from sqlalchemy import Column, DateTime, String, Text
from sqlalchemy.orm import declarative_base

Base = declarative_base()


class StoredDocument(Base):
    """Serialized tracker document for one family/unit."""
    __tablename__ = 'tracker_documents'

    key = Column(String(255), primary_key=True, nullable=False)
    payload = Column(Text, nullable=False)  # JSON document
    updated_at = Column(DateTime(timezone=True), nullable=False)

    def __repr__(self):
        return f"<StoredDocument({self.key}, updated_at={self.updated_at})>"

"""
Stored document model

Every collection of the admin back-office lives in one table: a row per
document, keyed by (collection, id), with the payload in a JSON column.
Schema evolves by adding optional keys to the payload, never by migration.
"""
from datetime import datetime, timezone

from sqlalchemy import Column, String, DateTime, JSON, Index, PrimaryKeyConstraint

from otrocoro_admin.core.database import Base


class StoredDocument(Base):
    """One document of one collection."""
    __tablename__ = "documents"

    collection = Column(String(100), nullable=False)
    id = Column(String(64), nullable=False)

    data = Column(JSON, nullable=False, default=lambda: {})  # use lambda to avoid mutable default

    # Timestamps
    created_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc))
    updated_at = Column(DateTime(timezone=True), default=lambda: datetime.now(timezone.utc),
                        onupdate=lambda: datetime.now(timezone.utc))

    __table_args__ = (
        PrimaryKeyConstraint("collection", "id", name="pk_documents"),
        Index("ix_documents_collection_created", "collection", "created_at"),
    )

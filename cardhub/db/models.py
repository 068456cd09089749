"""SQLAlchemy model backing the document store collections."""
from __future__ import annotations

from sqlalchemy import Column, DateTime, JSON, String, func

from .session import Base


class StoredDocument(Base):
    """One document of one collection (cards, users, cardStats, cardViews, system_config)."""

    __tablename__ = "documents"

    collection = Column(String(64), primary_key=True)
    id = Column(String(128), primary_key=True)
    data = Column(JSON, nullable=False, default=dict)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now(), nullable=False)

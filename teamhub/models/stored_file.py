from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, Integer, String

from teamhub.database import Base


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class StoredFile(Base):
    """Bookkeeping for one blob; the bytes live in the storage backend."""

    __tablename__ = "stored_files"

    id = Column(Integer, primary_key=True)
    storage_id = Column(String(64), nullable=False, unique=True, index=True)
    storage_backend = Column(String(32), nullable=False)
    storage_path = Column(String(512), nullable=False)
    filename = Column(String(255), nullable=True)
    content_type = Column(String(128), nullable=True)
    filesize = Column(Integer, nullable=True)
    uploaded_by = Column(Integer, ForeignKey("users.id"), nullable=False)
    is_uploaded = Column(Boolean, nullable=False, default=False)
    created_at = Column(DateTime(timezone=True), nullable=False, default=utcnow)

"""Database models for the docmapper durable store.

The durable store is a plain key to JSON blob map with last-write-wins
semantics; the failed-file ledger and session snapshots live in it.
"""

from sqlalchemy import Column, DateTime, String, Text, func
from sqlalchemy.orm import declarative_base

__all__ = ["Base", "StoredBlob"]

Base = declarative_base()


class StoredBlob(Base):
    """SQLAlchemy model for one key/value entry of the durable store.

    Attributes:
        key: Store key, e.g. "failed_files"
        value: JSON document serialized as text
        updated_at: Timestamp of the last write
    """
    __tablename__ = "stored_blobs"

    key: str = Column(String(255), primary_key=True)
    value: str = Column(Text, nullable=False)
    updated_at = Column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

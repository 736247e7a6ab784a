"""Data models for the docmapper pipeline.

This module contains the SQLAlchemy model backing the durable store and
the in-memory records for files, queue items, schemas, mappings and
failed-file ledger entries.
"""

from .tables import Base, StoredBlob
from .schema import PropertyType, Schema, SchemaProperty
from .records import (
    Analyzed,
    Analyzing,
    Errored,
    FailedFileEntry,
    FileRecord,
    FileState,
    FileStatus,
    Mapped,
    MappedData,
    Pending,
    PropertyMapping,
    QueueItem,
    QueueStatus,
    utcnow,
)

__all__ = [
    "Base",
    "StoredBlob",
    "PropertyType",
    "Schema",
    "SchemaProperty",
    "Analyzed",
    "Analyzing",
    "Errored",
    "FailedFileEntry",
    "FileRecord",
    "FileState",
    "FileStatus",
    "Mapped",
    "MappedData",
    "Pending",
    "PropertyMapping",
    "QueueItem",
    "QueueStatus",
    "utcnow",
]

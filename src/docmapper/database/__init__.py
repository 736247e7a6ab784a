"""Database module for the docmapper pipeline.

This module contains database management classes including connection
management, the key/value blob store, the failed-file ledger and session
snapshots built on top of it.
"""

from .database_manager import DatabaseManager
from .blob_store import BlobStore
from .failed_file_ledger import FailedFileLedger
from .session_snapshots import SessionSnapshotRepository

__all__ = ["DatabaseManager", "BlobStore", "FailedFileLedger", "SessionSnapshotRepository"]

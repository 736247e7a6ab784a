"""Failed-file ledger for the docmapper pipeline.

This module contains the FailedFileLedger class, the durable record of
files that reached a terminal error. Entries survive restarts and carry
enough payload to resubmit a file without the original upload.
"""

import logging
import uuid
from typing import List, Optional

from ..config import Config
from ..models import FailedFileEntry, FileRecord, Pending, utcnow
from .blob_store import BlobStore

__all__ = ["FailedFileLedger"]

logger = logging.getLogger(__name__)


class FailedFileLedger:
    """Durable list of failed files, one entry per logical path.

    Every mutation writes the full list back to the store.

    Attributes:
        store: Blob store the ledger persists into
        key: Store key holding the ledger
    """

    def __init__(self, store: BlobStore, key: str = Config.FAILED_FILES_KEY) -> None:
        self.store: BlobStore = store
        self.key: str = key
        self._entries: List[FailedFileEntry] = []

    def load(self) -> List[FailedFileEntry]:
        """Read the ledger back from the store.

        Raises:
            DatabaseError: If the store cannot be read
        """
        raw = self.store.get(self.key, default=[]) or []
        self._entries = [FailedFileEntry.from_dict(item) for item in raw]
        logger.info("Loaded %d failed files from storage", len(self._entries))
        return self.entries()

    def entries(self) -> List[FailedFileEntry]:
        return list(self._entries)

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, entry_id: str) -> Optional[FailedFileEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def find_by_path(self, path: str) -> Optional[FailedFileEntry]:
        for entry in self._entries:
            if entry.path == path:
                return entry
        return None

    def record(self, file: FileRecord, error: str) -> FailedFileEntry:
        """Record a failure, replacing any earlier entry for the same path.

        Args:
            file: File that failed
            error: Error message to keep

        Returns:
            The new ledger entry

        Raises:
            DatabaseError: If the ledger cannot be saved
        """
        previous = self.find_by_path(file.logical_path)
        entry = FailedFileEntry(
            id=str(uuid.uuid4()),
            file_id=file.id,
            path=file.logical_path,
            name=file.name,
            error_message=error,
            failed_at=utcnow(),
            retry_count=previous.retry_count + 1 if previous else 0,
            size=file.size,
            media_type=file.media_type,
            content=file.content,
            data_url=file.data_url,
        )
        self._entries = [e for e in self._entries if e.path != entry.path] + [entry]
        self._save()
        return entry

    def retry(self, entry: FailedFileEntry) -> FileRecord:
        """Remove an entry and rebuild its file as pending.

        Args:
            entry: Ledger entry to resubmit

        Returns:
            Pending FileRecord rebuilt from the preserved payload
        """
        self._remove(entry.id)
        return FileRecord(
            id=entry.file_id,
            name=entry.name,
            size=entry.size,
            media_type=entry.media_type,
            path=entry.path if entry.path != entry.name else None,
            content=entry.content,
            data_url=entry.data_url,
            state=Pending(),
        )

    def dismiss(self, entry: FailedFileEntry) -> None:
        """Drop an entry without retrying it."""
        self._remove(entry.id)

    def clear_all(self) -> List[FailedFileEntry]:
        """Drop every entry.

        Returns:
            The entries that were removed
        """
        removed = self._entries
        self._entries = []
        self._save()
        return removed

    def _remove(self, entry_id: str) -> None:
        self._entries = [e for e in self._entries if e.id != entry_id]
        self._save()

    def _save(self) -> None:
        self.store.put(self.key, [e.to_dict() for e in self._entries])

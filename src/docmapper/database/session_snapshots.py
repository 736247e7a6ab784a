"""Session snapshots for resuming work after a restart."""

import logging
from typing import Iterable, List

from ..config import Config
from ..models import FileRecord
from .blob_store import BlobStore

__all__ = ["SessionSnapshotRepository"]

logger = logging.getLogger(__name__)


class SessionSnapshotRepository:
    """Saves and restores the file list, including mapped results.

    Attributes:
        store: Blob store holding the snapshot
        key: Store key of the snapshot
    """

    def __init__(self, store: BlobStore, key: str = Config.SESSION_SNAPSHOT_KEY) -> None:
        self.store: BlobStore = store
        self.key: str = key

    def save(self, files: Iterable[FileRecord]) -> int:
        """Persist a snapshot of ``files``.

        Returns:
            Number of files saved

        Raises:
            DatabaseError: If the snapshot cannot be written
        """
        payload = [f.to_dict() for f in files]
        self.store.put(self.key, payload)
        return len(payload)

    def load(self) -> List[FileRecord]:
        """Restore the last snapshot, empty if none was saved."""
        raw = self.store.get(self.key, default=[]) or []
        files = [FileRecord.from_dict(item) for item in raw]
        logger.info("Restored %d files from session snapshot", len(files))
        return files

    def clear(self) -> None:
        self.store.delete(self.key)

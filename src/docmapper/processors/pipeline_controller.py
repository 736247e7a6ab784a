"""Pipeline controller for the docmapper pipeline.

This module contains the PipelineController class, the single entry
point a presentation layer talks to. It owns the file store, the
processing queue, the failed-file ledger and the batch processor, and
exposes read accessors plus the user commands (run, retry, dismiss,
requeue, clear).
"""

import logging
from typing import Iterable, List, Optional, Sequence

from ..config import Config
from ..database import FailedFileLedger, SessionSnapshotRepository
from ..exceptions import DatabaseError, ValidationError
from ..models import FailedFileEntry, FileRecord, FileStatus, QueueItem, Schema
from ..state import FileStore, ProcessingQueue
from .batch_processor import AsyncBatchProcessor, BatchResult, PipelineStatus

__all__ = ["PipelineController"]

logger = logging.getLogger(__name__)


class PipelineController:
    """Facade over the pipeline's state and workers.

    Attributes:
        batch_processor: Orchestrator running the worker batches
        file_store: Arena of file records
        queue: Processing queue of the current run
        ledger: Durable failed-file ledger
        snapshots: Optional session snapshot repository
    """

    def __init__(
        self,
        batch_processor: AsyncBatchProcessor,
        ledger: FailedFileLedger,
        snapshots: Optional[SessionSnapshotRepository] = None
    ) -> None:
        """Initialize the controller.

        The batch processor's store and queue become the controller's; the
        ledger is attached to the batch processor so failures are recorded.

        Args:
            batch_processor: Configured AsyncBatchProcessor
            ledger: Failed-file ledger, loaded from storage on construction
            snapshots: Repository for session snapshots, optional
        """
        self.batch_processor: AsyncBatchProcessor = batch_processor
        self.file_store: FileStore = batch_processor.file_store
        self.queue: ProcessingQueue = batch_processor.queue
        self.ledger: FailedFileLedger = ledger
        self.snapshots: Optional[SessionSnapshotRepository] = snapshots
        batch_processor.ledger = ledger

        try:
            ledger.load()
        except DatabaseError as e:
            logger.error("Error loading failed files: %s", e)

    # Reads

    def files(self) -> List[FileRecord]:
        return self.file_store.list()

    def queue_items(self) -> List[QueueItem]:
        """Current queue items, with expired completed items pruned."""
        self.queue.prune_completed()
        return self.queue.items()

    def failed_files(self) -> List[FailedFileEntry]:
        return self.ledger.entries()

    def status(self) -> PipelineStatus:
        return self.batch_processor.status()

    # Commands

    def add_files(self, files: Iterable[FileRecord]) -> None:
        self.file_store.add(files)

    async def run(self, schema: Optional[Schema] = None) -> List[BatchResult]:
        """Process every pending file, mapping inline when a schema is given."""
        return await self.batch_processor.run(schema=schema)

    async def map_analyzed_files(self, schema: Schema) -> List[BatchResult]:
        """Map already analyzed files onto a newly selected schema."""
        return await self.batch_processor.map_analyzed_files(schema)

    def resume(self) -> None:
        self.batch_processor.resume()

    def retry_file(self, entry_id: str) -> FileRecord:
        """Resubmit one failed file as pending.

        The ledger entry is removed and the file replaces any record at the
        same logical path. The credit halt is cleared since retrying is the
        user's signal that the problem was resolved.

        Raises:
            ValidationError: If the entry does not exist
        """
        entry = self.ledger.get(entry_id)
        if entry is None:
            raise ValidationError(f"Unknown failed file: {entry_id}")

        record = self.ledger.retry(entry)
        self.file_store.remove_paths([entry.path])
        self.file_store.add([record])
        self.batch_processor.resume()
        logger.info("Retrying failed file: %s", entry.name)
        return record

    def retry_all(self) -> List[FileRecord]:
        return [self.retry_file(entry.id) for entry in self.ledger.entries()]

    def dismiss_failed(self, entry_id: str) -> None:
        """Drop a ledger entry without retrying it."""
        entry = self.ledger.get(entry_id)
        if entry is None:
            raise ValidationError(f"Unknown failed file: {entry_id}")
        self.ledger.dismiss(entry)

    def clear_failed(self) -> int:
        """Drop every ledger entry and remove the matching files.

        Returns:
            Number of files removed from the store
        """
        removed = self.ledger.clear_all()
        count = self.file_store.remove_paths(entry.path for entry in removed)
        logger.info("Cleared %d failed files", len(removed))
        return count

    def requeue(self, file_ids: Sequence[str]) -> List[FileRecord]:
        """Reset analyzed, mapped or failed files to pending for a fresh run.

        Failed files also leave the failed-file ledger.
        """
        records = [self.file_store.get(file_id) for file_id in file_ids]
        failed_paths = [r.logical_path for r in records if r.status == FileStatus.ERROR]
        requeued = self.file_store.requeue(file_ids)

        for path in failed_paths:
            entry = self.ledger.find_by_path(path)
            if entry is not None:
                self.ledger.dismiss(entry)

        logger.info("Requeued %d files", len(requeued))
        return requeued

    def unmap(self, file_ids: Sequence[str]) -> List[FileRecord]:
        """Discard mapped results, keeping the analysis."""
        return self.file_store.unmap(file_ids)

    def remove_file(self, file_id: str) -> Optional[FileRecord]:
        return self.file_store.remove(file_id)

    def remove_from_queue(self, queue_id: str) -> Optional[QueueItem]:
        return self.queue.remove(queue_id)

    def clear_completed(self) -> None:
        self.queue.clear_completed()

    def reset(self) -> None:
        """Forget every file and queue item and clear the halt flag.

        The failed-file ledger is durable and is left untouched.
        """
        self.file_store.clear()
        self.queue.clear()
        self.batch_processor.resume()
        self.batch_processor.average_processing_time = Config.DEFAULT_PROCESSING_TIME

    def save_session(self) -> int:
        """Persist the current file list.

        Raises:
            ValidationError: If no snapshot repository is configured
        """
        if self.snapshots is None:
            raise ValidationError("Session snapshots are not configured")
        return self.snapshots.save(self.file_store.list())

    def restore_session(self) -> List[FileRecord]:
        """Load the last saved file list into the store."""
        if self.snapshots is None:
            raise ValidationError("Session snapshots are not configured")
        files = self.snapshots.load()
        self.file_store.add(files)
        return files

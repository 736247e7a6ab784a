"""Asynchronous batch processor for the docmapper pipeline.

This module contains the AsyncBatchProcessor class that drives a fixed
number of concurrent workers over the pending files, keeps the file
store and processing queue in step, records failures in the ledger, and
halts the pipeline when the service reports exhausted credits.
"""

import asyncio
import contextlib
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, List, Optional, Protocol, Sequence

from langfuse import observe

from ..config import Config
from ..database import FailedFileLedger
from ..exceptions import DatabaseError, StateTransitionError, is_credit_exhausted
from ..models import Analyzed, FileRecord, FileStatus, MappedData, Schema
from ..state import FileStore, ProcessingQueue
from ..validators import FileValidator
from .document_processor import AsyncDocumentProcessor

__all__ = [
    "AsyncBatchProcessor",
    "BatchResult",
    "PipelineStatus",
    "ProgressEvent",
    "ProgressCallback",
    "ProgressEventType",
    "CREDITS_EXHAUSTED_NOTE"
]

logger = logging.getLogger(__name__)

CREDITS_EXHAUSTED_NOTE = "Credits exhausted"


class ProgressEventType(Enum):
    """Types of progress events."""
    RUN_STARTED = "run_started"
    BATCH_STARTED = "batch_started"
    FILE_STARTED = "file_started"
    FILE_ANALYZED = "file_analyzed"
    FILE_COMPLETED = "file_completed"
    FILE_FAILED = "file_failed"
    MAPPING_FAILED = "mapping_failed"
    BATCH_COMPLETED = "batch_completed"
    PIPELINE_HALTED = "pipeline_halted"
    RUN_COMPLETED = "run_completed"


@dataclass
class ProgressEvent:
    """Progress event data structure."""
    event_type: ProgressEventType
    file_name: Optional[str] = None
    file_id: Optional[str] = None
    batch_number: int = 0
    current_file: int = 0
    total_files: int = 0
    message: str = ""
    error: Optional[str] = None


@dataclass
class BatchResult:
    """Result of processing one file."""
    file_id: str
    file_name: str
    success: bool
    status: FileStatus
    mapped_data: Optional[MappedData] = None
    error: Optional[str] = None


@dataclass
class PipelineStatus:
    """Aggregate pipeline status exposed for display."""
    is_running: bool
    credits_exhausted: bool
    message: str = ""


class ProgressCallback(Protocol):
    """Protocol for progress callback functions."""
    def __call__(self, event: ProgressEvent) -> None:
        """Handle progress event."""
        ...


class AsyncBatchProcessor:
    """Processes pending files in fixed-size concurrent batches.

    Each batch runs one worker per file and must finish completely before
    the next batch starts. Failures stay with their file; only a credit
    exhaustion signal stops further batches.

    Attributes:
        document_processor: Processor doing one file's analysis and mapping
        file_store: Arena of file records
        queue: Processing queue kept in step with the file store
        ledger: Durable failed-file ledger, optional
        max_concurrent: Files per batch
        progress_callback: Optional callback for progress updates
        average_processing_time: Moving average of analysis time in seconds
        credits_exhausted: Pipeline-wide halt flag
        halt_message: Original error text of the halting failure
    """

    def __init__(
        self,
        document_processor: AsyncDocumentProcessor,
        file_store: FileStore,
        queue: Optional[ProcessingQueue] = None,
        ledger: Optional[FailedFileLedger] = None,
        max_concurrent: int = Config.MAX_CONCURRENT,
        progress_callback: Optional[ProgressCallback] = None,
        progress_tick: float = Config.PROGRESS_TICK,
        clock: Callable[[], float] = time.monotonic
    ) -> None:
        """Initialize async batch processor.

        Args:
            document_processor: Processor for single files
            file_store: File store holding the files to process
            queue: Processing queue, a new one when omitted
            ledger: Failed-file ledger, failures are not persisted when omitted
            max_concurrent: Files per batch (default: 4)
            progress_callback: Optional callback for progress updates
            progress_tick: Seconds between progress estimate updates
            clock: Monotonic clock returning seconds
        """
        if max_concurrent < 1:
            raise ValueError("max_concurrent must be at least 1")

        self.document_processor: AsyncDocumentProcessor = document_processor
        self.file_store: FileStore = file_store
        self.queue: ProcessingQueue = queue or ProcessingQueue(clock=clock)
        self.ledger: Optional[FailedFileLedger] = ledger
        self.max_concurrent: int = max_concurrent
        self.progress_callback: Optional[ProgressCallback] = progress_callback
        self.progress_tick: float = progress_tick
        self._clock = clock

        self.average_processing_time: float = Config.DEFAULT_PROCESSING_TIME
        self.is_running: bool = False
        self.credits_exhausted: bool = False
        self.halt_message: str = ""

    def status(self) -> PipelineStatus:
        return PipelineStatus(
            is_running=self.is_running,
            credits_exhausted=self.credits_exhausted,
            message=self.halt_message,
        )

    def resume(self) -> None:
        """Clear the halt flag once the credit problem has been resolved."""
        if self.credits_exhausted:
            logger.info("Pipeline resumed after credit exhaustion")
        self.credits_exhausted = False
        self.halt_message = ""

    def _emit_progress(self, event: ProgressEvent) -> None:
        """Emit progress event to callback if available."""
        if self.progress_callback:
            self.progress_callback(event)

    def _update_average(self, duration: float) -> None:
        """Fold a completed file's duration into the moving average."""
        self.average_processing_time = (
            self.average_processing_time * Config.AVERAGE_DECAY
            + duration * Config.AVERAGE_WEIGHT
        )

    @staticmethod
    def partition(files: Sequence[FileRecord], size: int) -> List[List[FileRecord]]:
        """Split files into consecutive batches of at most ``size``."""
        return [list(files[i:i + size]) for i in range(0, len(files), size)]

    def _eligible(self, files: Optional[Sequence[FileRecord]]) -> List[FileRecord]:
        """Resolve the files a run should process.

        Files unknown to the store are added first; the store's copy is
        authoritative for files it already holds.
        """
        if files is None:
            return self.file_store.pending_processable()

        self.file_store.add(f for f in files if f.id not in self.file_store)
        eligible: List[FileRecord] = []
        for file in files:
            current = self.file_store.get(file.id)
            if current.status == FileStatus.PENDING and FileValidator.is_processable(current):
                eligible.append(current)
        return eligible

    async def _progress_loop(self) -> None:
        while True:
            await asyncio.sleep(self.progress_tick)
            self.queue.tick(self.average_processing_time)

    async def _process_single_file(
        self,
        file: FileRecord,
        schema: Optional[Schema],
        file_index: int,
        total_files: int
    ) -> BatchResult:
        """Process one file: analyze, then map if a schema is selected.

        Args:
            file: Pending file to process
            schema: Selected schema, if any
            file_index: Position of the file in this run
            total_files: Number of files in this run

        Returns:
            BatchResult describing the outcome
        """
        try:
            self.file_store.mark_analyzing(file.id)
        except StateTransitionError as e:
            # The file was removed or reset while it waited for its batch
            logger.warning("Skipping %s: %s", file.name, e)
            self.queue.mark_error(file.id, str(e))
            return BatchResult(file.id, file.name, False, file.status, error=str(e))

        self.queue.mark_processing(file.id)
        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.FILE_STARTED,
            file_name=file.name,
            file_id=file.id,
            current_file=file_index + 1,
            total_files=total_files,
            message=f"Starting processing of {file.name}"
        ))

        start_time = self._clock()
        try:
            analysis = await self.document_processor.analyze(file, schema)
        except Exception as e:
            return self._handle_failure(file, e, file_index, total_files)

        processing_time = self._clock() - start_time
        self._update_average(processing_time)
        logger.info("Completed: %s in %.0fms", file.name, processing_time * 1000)

        record = self.file_store.mark_analyzed(file.id, analysis)
        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.FILE_ANALYZED,
            file_name=file.name,
            file_id=file.id,
            current_file=file_index + 1,
            total_files=total_files,
            message=f"Analyzed {file.name}"
        ))

        if schema is not None:
            record = await self._map_inline(record, analysis, schema)

        self.queue.mark_completed(file.id)
        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.FILE_COMPLETED,
            file_name=file.name,
            file_id=file.id,
            current_file=file_index + 1,
            total_files=total_files,
            message=f"Successfully processed {file.name}"
        ))
        return BatchResult(
            file_id=file.id,
            file_name=file.name,
            success=True,
            status=record.status,
            mapped_data=record.mapped_data
        )

    async def _map_inline(self, record: FileRecord, analysis: str, schema: Schema) -> FileRecord:
        """Map a freshly analyzed file; failure leaves it analyzed."""
        try:
            mapped_data = await self.document_processor.map_file(record, analysis, schema)
            mapped = self.file_store.mark_mapped(record.id, mapped_data)
            logger.info("File mapped and visible in results: %s", record.name)
            return mapped
        except Exception as e:
            logger.error("Inline mapping failed for %s: %s", record.name, e)
            self._emit_progress(ProgressEvent(
                event_type=ProgressEventType.MAPPING_FAILED,
                file_name=record.name,
                file_id=record.id,
                message=f"Mapping failed for {record.name}",
                error=str(e)
            ))
            return self.file_store.get(record.id)

    def _handle_failure(
        self,
        file: FileRecord,
        error: Exception,
        file_index: int,
        total_files: int
    ) -> BatchResult:
        """Record a terminal analysis failure and classify it."""
        message = str(error) or error.__class__.__name__
        logger.error("Analysis failed: %s: %s", file.name, message)

        if is_credit_exhausted(error):
            logger.warning("Credit exhaustion detected, halting pipeline")
            self.credits_exhausted = True
            self.halt_message = message
            self.queue.mark_error(file.id, CREDITS_EXHAUSTED_NOTE)
        else:
            self.queue.mark_error(file.id, message)

        record = self.file_store.mark_error(file.id, message)
        if self.ledger is not None:
            try:
                self.ledger.record(record, message)
            except DatabaseError as e:
                logger.error("Could not persist failed file %s: %s", file.name, e)

        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.FILE_FAILED,
            file_name=file.name,
            file_id=file.id,
            current_file=file_index + 1,
            total_files=total_files,
            message=f"Failed to process {file.name}",
            error=message
        ))
        return BatchResult(file.id, file.name, False, FileStatus.ERROR, error=message)

    @observe(name="async_batch_processing")
    async def run(
        self,
        files: Optional[Sequence[FileRecord]] = None,
        schema: Optional[Schema] = None
    ) -> List[BatchResult]:
        """Process every pending, processable file in fixed-size batches.

        Args:
            files: Files to consider; every file in the store when None
            schema: Selected schema; files are mapped inline when given

        Returns:
            One BatchResult per file that was started
        """
        if self.credits_exhausted:
            logger.warning("Pipeline halted for exhausted credits; call resume() first")
            return []
        if self.is_running:
            logger.warning("A run is already in progress")
            return []

        eligible = self._eligible(files)
        if not eligible:
            return []

        total_files = len(eligible)
        batches = self.partition(eligible, self.max_concurrent)
        logger.info("Processing %d files with %d workers", total_files, self.max_concurrent)

        self.queue.initialize(eligible, self.average_processing_time)
        self.is_running = True
        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.RUN_STARTED,
            total_files=total_files,
            message=f"Starting processing of {total_files} files"
        ))

        results: List[BatchResult] = []
        offset = 0
        ticker = asyncio.create_task(self._progress_loop())
        try:
            for batch_number, batch in enumerate(batches, start=1):
                if self.credits_exhausted:
                    break

                self._emit_progress(ProgressEvent(
                    event_type=ProgressEventType.BATCH_STARTED,
                    batch_number=batch_number,
                    total_files=len(batch),
                    message=f"Starting batch {batch_number} of {len(batches)}"
                ))

                tasks = [
                    self._process_single_file(file, schema, offset + i, total_files)
                    for i, file in enumerate(batch)
                ]
                batch_results = await asyncio.gather(*tasks, return_exceptions=True)

                for file, result in zip(batch, batch_results):
                    if isinstance(result, Exception):
                        logger.error("Worker for %s raised: %s", file.name, result)
                        result = BatchResult(file.id, file.name, False, file.status, error=str(result))
                    results.append(result)

                offset += len(batch)
                self._emit_progress(ProgressEvent(
                    event_type=ProgressEventType.BATCH_COMPLETED,
                    batch_number=batch_number,
                    total_files=len(batch),
                    message=f"Batch {batch_number} of {len(batches)} completed"
                ))

            if self.credits_exhausted:
                cancelled = self.queue.cancel_queued(CREDITS_EXHAUSTED_NOTE)
                self._emit_progress(ProgressEvent(
                    event_type=ProgressEventType.PIPELINE_HALTED,
                    total_files=total_files,
                    message=f"Processing halted - credits exhausted. {cancelled} files not started",
                    error=self.halt_message
                ))
        finally:
            ticker.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await ticker
            self.is_running = False

        successful_count = sum(1 for r in results if r.success)
        failed_count = len(results) - successful_count
        self._emit_progress(ProgressEvent(
            event_type=ProgressEventType.RUN_COMPLETED,
            total_files=total_files,
            message=f"Processing completed. {successful_count} successful, {failed_count} failed"
        ))
        return results

    @observe(name="map_analyzed_files")
    async def map_analyzed_files(self, schema: Schema) -> List[BatchResult]:
        """Map every analyzed file onto a schema without re-extracting.

        Files are mapped one at a time; a failure leaves that file analyzed.

        Args:
            schema: Target schema

        Returns:
            One BatchResult per analyzed file
        """
        analyzed = [f for f in self.file_store.list() if isinstance(f.state, Analyzed)]
        results: List[BatchResult] = []
        for file in analyzed:
            record = await self._map_inline(file, file.state.analysis_result, schema)
            results.append(BatchResult(
                file_id=record.id,
                file_name=record.name,
                success=record.status == FileStatus.MAPPED,
                status=record.status,
                mapped_data=record.mapped_data,
                error=None if record.status == FileStatus.MAPPED else "Mapping failed"
            ))
        return results

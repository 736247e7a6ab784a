"""Processing queue for the docmapper pipeline.

This module contains the ProcessingQueue class, the ledger of queue
items shown while a run is in progress. It is kept in step with the file
store by the batch processor but holds its own status per item.
"""

import logging
import math
import threading
import time
import uuid
from dataclasses import replace
from typing import Callable, Dict, List, Optional, Sequence

from ..config import Config
from ..models import FileRecord, QueueItem, QueueStatus

__all__ = ["ProcessingQueue", "estimate_progress", "format_duration"]

logger = logging.getLogger(__name__)

PROGRESS_CAP = 95
PROGRESS_SCALE = 80


def estimate_progress(elapsed: float, average_time: float) -> int:
    """Asymptotic progress estimate for an in-flight item.

    Capped below 100 so an item never shows complete before its result
    has arrived.
    """
    if average_time <= 0:
        return PROGRESS_CAP
    return min(PROGRESS_CAP, math.floor(elapsed / average_time * PROGRESS_SCALE))


def format_duration(seconds: float) -> str:
    """Format a duration as "<1s", "42s" or "3m 5s"."""
    if seconds < 1:
        return "<1s"
    whole = int(seconds)
    if whole < 60:
        return f"{whole}s"
    minutes, remaining = divmod(whole, 60)
    return f"{minutes}m {remaining}s"


class ProcessingQueue:
    """Queue items keyed by id, updated by replace-by-id under a lock.

    Attributes:
        completed_display_delay: Seconds a completed item stays visible
    """

    def __init__(
        self,
        clock: Callable[[], float] = time.monotonic,
        completed_display_delay: float = Config.COMPLETED_DISPLAY_DELAY
    ) -> None:
        self._items: Dict[str, QueueItem] = {}
        self._lock = threading.RLock()
        self._clock = clock
        self.completed_display_delay: float = completed_display_delay

    def initialize(self, files: Sequence[FileRecord], average_time: float) -> List[QueueItem]:
        """Replace the queue with one queued item per file.

        Args:
            files: Files about to be processed, in scheduling order
            average_time: Current average processing time in seconds

        Returns:
            The new queue items
        """
        run_id = uuid.uuid4().hex[:8]
        items = [
            QueueItem(
                id=f"queue-{run_id}-{index}",
                file_id=file.id,
                name=file.name,
                size=file.size,
                estimated_time=average_time * (index + 1),
            )
            for index, file in enumerate(files)
        ]
        with self._lock:
            self._items = {item.id: item for item in items}
        return items

    def items(self) -> List[QueueItem]:
        with self._lock:
            return list(self._items.values())

    def get_by_file(self, file_id: str) -> Optional[QueueItem]:
        with self._lock:
            for item in self._items.values():
                if item.file_id == file_id:
                    return item
        return None

    def _update_by_file(self, file_id: str, **changes) -> Optional[QueueItem]:
        with self._lock:
            item = self.get_by_file(file_id)
            if item is None:
                return None
            updated = replace(item, **changes)
            self._items[item.id] = updated
            return updated

    def mark_processing(self, file_id: str) -> Optional[QueueItem]:
        return self._update_by_file(
            file_id,
            status=QueueStatus.PROCESSING,
            start_time=self._clock(),
            error_message=None
        )

    def mark_completed(self, file_id: str) -> Optional[QueueItem]:
        return self._update_by_file(
            file_id,
            status=QueueStatus.COMPLETED,
            progress=100,
            end_time=self._clock()
        )

    def mark_error(self, file_id: str, message: str) -> Optional[QueueItem]:
        return self._update_by_file(
            file_id,
            status=QueueStatus.ERROR,
            end_time=self._clock(),
            error_message=message
        )

    def cancel_queued(self, message: str) -> int:
        """Mark every still-queued item as failed with ``message``."""
        with self._lock:
            queued = [i for i in self._items.values() if i.status == QueueStatus.QUEUED]
            for item in queued:
                self._items[item.id] = replace(
                    item, status=QueueStatus.ERROR, error_message=message
                )
        return len(queued)

    def tick(self, average_time: float) -> None:
        """Advance progress of processing items and drop expired ones."""
        now = self._clock()
        with self._lock:
            for item in list(self._items.values()):
                if item.status != QueueStatus.PROCESSING or item.start_time is None:
                    continue
                progress = estimate_progress(now - item.start_time, average_time)
                if progress > item.progress:
                    self._items[item.id] = replace(item, progress=progress)
        self.prune_completed()

    def prune_completed(self) -> int:
        """Remove completed items shown for longer than the display delay."""
        now = self._clock()
        with self._lock:
            expired = [
                item.id for item in self._items.values()
                if item.status == QueueStatus.COMPLETED
                and item.end_time is not None
                and now - item.end_time >= self.completed_display_delay
            ]
            for item_id in expired:
                del self._items[item_id]
        return len(expired)

    def clear_completed(self) -> None:
        with self._lock:
            self._items = {
                k: v for k, v in self._items.items() if v.status != QueueStatus.COMPLETED
            }

    def remove(self, queue_id: str) -> Optional[QueueItem]:
        with self._lock:
            item = self._items.pop(queue_id, None)
        if item:
            logger.info("Removed from queue: %s", item.name)
        return item

    def clear(self) -> None:
        with self._lock:
            self._items.clear()

    def time_remaining(self, item: QueueItem, average_time: float) -> str:
        """Human-readable time remaining for an item."""
        if item.status == QueueStatus.COMPLETED:
            return "Done"
        if item.status == QueueStatus.ERROR:
            return "Failed"
        if item.status == QueueStatus.PROCESSING and item.start_time is not None:
            elapsed = self._clock() - item.start_time
            return format_duration(max(0.0, average_time - elapsed))
        if item.estimated_time:
            return "~" + format_duration(item.estimated_time)
        return "Waiting..."

    def queue_position(self, item: QueueItem) -> str:
        """Position among queued items, e.g. "#2 in queue"."""
        queued = [i.id for i in self.items() if i.status == QueueStatus.QUEUED]
        if item.id not in queued:
            return ""
        return f"#{queued.index(item.id) + 1} in queue"

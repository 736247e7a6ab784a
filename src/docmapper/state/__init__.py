"""State module for the docmapper pipeline.

This module contains the file store that enforces each file's lifecycle
and the processing queue that tracks in-flight progress.
"""

from .file_store import FileStore
from .processing_queue import ProcessingQueue, estimate_progress, format_duration

__all__ = ["FileStore", "ProcessingQueue", "estimate_progress", "format_duration"]

"""Processors module for the docmapper pipeline.

This module contains processing classes that orchestrate the complete
workflow: single-file analysis and mapping, the fixed-size worker batches
with progress tracking and the credit-exhaustion halt, and the controller
facade a presentation layer drives.
"""

from .document_processor import AsyncDocumentProcessor
from .batch_processor import (
    AsyncBatchProcessor,
    BatchResult,
    PipelineStatus,
    ProgressEvent,
    ProgressCallback,
    ProgressEventType,
    CREDITS_EXHAUSTED_NOTE
)
from .pipeline_controller import PipelineController

__all__ = [
    "AsyncDocumentProcessor",
    "AsyncBatchProcessor",
    "BatchResult",
    "PipelineStatus",
    "ProgressEvent",
    "ProgressCallback",
    "ProgressEventType",
    "CREDITS_EXHAUSTED_NOTE",
    "PipelineController"
]

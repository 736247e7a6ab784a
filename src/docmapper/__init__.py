"""Docmapper - concurrent document extraction and schema mapping.

This package analyzes uploaded documents with a language model and maps
the analysis onto user-selected schemas, running a bounded pool of
workers behind a shared rate-limited client.

The package is organized into the following modules:
- config: Application configuration and settings
- exceptions: Custom exception classes and error classification
- models: Schemas, file records, queue items and the durable store table
- database: Database management, blob store, failed-file ledger
- validators: File classification utilities
- clients: Rate-limited request client and OpenAI transport
- extractors: Analysis and mapping requests, PDF page rendering
- parsers: Schema-driven result parser
- state: File state machine and processing queue
- processors: Worker pool orchestration and the controller facade
"""

__version__ = "1.0.0"
__author__ = "Docmapper Team"
__description__ = "Concurrent document extraction and schema mapping pipeline"

from .config import Config
from .exceptions import (
    TransportError,
    RateLimitExceeded,
    DataExtractionError,
    DocumentRenderError,
    StateTransitionError,
    DatabaseError,
    ValidationError,
    is_credit_exhausted
)
from .models import (
    Base,
    StoredBlob,
    Schema,
    SchemaProperty,
    PropertyType,
    FileRecord,
    FileStatus,
    MappedData,
    PropertyMapping,
    QueueItem,
    QueueStatus,
    FailedFileEntry
)
from .database import DatabaseManager, BlobStore, FailedFileLedger, SessionSnapshotRepository
from .validators import FileValidator
from .clients import ChatRequest, RateLimitedClient, TransportResponse, OpenAITransport
from .extractors import DocumentExtractor, AIExtractor, PageRenderer
from .parsers import ResultParser
from .state import FileStore, ProcessingQueue
from .processors import AsyncDocumentProcessor, AsyncBatchProcessor, PipelineController

__all__ = [
    # Configuration
    "Config",
    # Exceptions
    "TransportError",
    "RateLimitExceeded",
    "DataExtractionError",
    "DocumentRenderError",
    "StateTransitionError",
    "DatabaseError",
    "ValidationError",
    "is_credit_exhausted",
    # Models
    "Base",
    "StoredBlob",
    "Schema",
    "SchemaProperty",
    "PropertyType",
    "FileRecord",
    "FileStatus",
    "MappedData",
    "PropertyMapping",
    "QueueItem",
    "QueueStatus",
    "FailedFileEntry",
    # Database
    "DatabaseManager",
    "BlobStore",
    "FailedFileLedger",
    "SessionSnapshotRepository",
    # Validators
    "FileValidator",
    # Clients
    "ChatRequest",
    "RateLimitedClient",
    "TransportResponse",
    "OpenAITransport",
    # Extractors
    "DocumentExtractor",
    "AIExtractor",
    "PageRenderer",
    # Parsers
    "ResultParser",
    # State
    "FileStore",
    "ProcessingQueue",
    # Processors
    "AsyncDocumentProcessor",
    "AsyncBatchProcessor",
    "PipelineController"
]

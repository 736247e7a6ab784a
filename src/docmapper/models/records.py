"""In-memory records tracked by the pipeline.

A file's lifecycle state is a tagged union: each state class carries
exactly the artifacts valid for it, so a pending file cannot hold mapped
data and a mapped file always has its analysis.
"""

from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Union

__all__ = [
    "FileStatus",
    "Pending",
    "Analyzing",
    "Analyzed",
    "Mapped",
    "Errored",
    "FileState",
    "PropertyMapping",
    "MappedData",
    "FileRecord",
    "QueueStatus",
    "QueueItem",
    "FailedFileEntry",
    "utcnow",
]


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


class FileStatus(str, Enum):
    """Lifecycle status of an uploaded file."""
    PENDING = "pending"
    ANALYZING = "analyzing"
    ANALYZED = "analyzed"
    MAPPED = "mapped"
    ERROR = "error"


@dataclass(frozen=True)
class PropertyMapping:
    """One extracted schema field."""
    property_name: str
    extracted_value: Any = None
    confidence: int = 0
    source: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "propertyName": self.property_name,
            "extractedValue": self.extracted_value,
            "confidence": self.confidence,
            "source": self.source,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PropertyMapping":
        return cls(
            property_name=data["propertyName"],
            extracted_value=data.get("extractedValue"),
            confidence=data.get("confidence", 0),
            source=data.get("source", ""),
        )


@dataclass(frozen=True)
class MappedData:
    """Result of mapping one document onto a schema.

    Attributes:
        schema_id: Identifier of the schema mapped onto
        source_file: Name of the mapped file
        mappings: One entry per schema property, in schema order
        parsed_document: Full decoded model output, kept for display
        confidence: Rounded mean of the mapping confidences
        timestamp: When the mapping was produced
    """
    schema_id: str
    source_file: str
    mappings: List[PropertyMapping]
    parsed_document: Optional[Dict[str, Any]] = None
    confidence: int = 0
    timestamp: datetime = field(default_factory=utcnow)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "schemaId": self.schema_id,
            "sourceFile": self.source_file,
            "mappings": [m.to_dict() for m in self.mappings],
            "parsedDocument": self.parsed_document,
            "confidence": self.confidence,
            "timestamp": self.timestamp.isoformat(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MappedData":
        return cls(
            schema_id=data["schemaId"],
            source_file=data["sourceFile"],
            mappings=[PropertyMapping.from_dict(m) for m in data.get("mappings", [])],
            parsed_document=data.get("parsedDocument"),
            confidence=data.get("confidence", 0),
            timestamp=datetime.fromisoformat(data["timestamp"]),
        )


@dataclass(frozen=True)
class Pending:
    status = FileStatus.PENDING


@dataclass(frozen=True)
class Analyzing:
    status = FileStatus.ANALYZING


@dataclass(frozen=True)
class Analyzed:
    analysis_result: str
    status = FileStatus.ANALYZED


@dataclass(frozen=True)
class Mapped:
    analysis_result: str
    mapped_data: MappedData
    status = FileStatus.MAPPED


@dataclass(frozen=True)
class Errored:
    message: str
    status = FileStatus.ERROR


FileState = Union[Pending, Analyzing, Analyzed, Mapped, Errored]


@dataclass(frozen=True)
class FileRecord:
    """One uploaded document.

    Attributes:
        id: Opaque identifier, unique per upload
        name: Display name
        size: Size in bytes
        media_type: Declared media type, e.g. "application/pdf"
        path: Logical path for archive or folder uploads
        content: Inline text content for text-bearing files
        data_url: Encoded binary payload ("data:<type>;base64,...")
        page_images: Pre-rendered page images as data URLs
        state: Current lifecycle state
    """
    id: str
    name: str
    size: int
    media_type: str = ""
    path: Optional[str] = None
    content: Optional[str] = None
    data_url: Optional[str] = None
    page_images: List[str] = field(default_factory=list)
    state: FileState = field(default_factory=Pending)

    @property
    def status(self) -> FileStatus:
        return self.state.status

    @property
    def logical_path(self) -> str:
        return self.path or self.name

    @property
    def analysis_result(self) -> Optional[str]:
        return getattr(self.state, "analysis_result", None)

    @property
    def mapped_data(self) -> Optional[MappedData]:
        return getattr(self.state, "mapped_data", None)

    @property
    def error_message(self) -> Optional[str]:
        if isinstance(self.state, Errored):
            return self.state.message
        return None

    def with_state(self, state: FileState) -> "FileRecord":
        return replace(self, state=state)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "size": self.size,
            "type": self.media_type,
            "path": self.path,
            "content": self.content,
            "dataUrl": self.data_url,
            "pageImages": list(self.page_images),
            "status": self.status.value,
        }
        if self.analysis_result is not None:
            data["analysisResult"] = self.analysis_result
        if self.mapped_data is not None:
            data["mappedData"] = self.mapped_data.to_dict()
        if self.error_message is not None:
            data["errorMessage"] = self.error_message
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileRecord":
        """Restore a record from its snapshot form.

        Files caught mid-analysis are restored as pending so they are
        picked up by the next run.
        """
        status = FileStatus(data.get("status", FileStatus.PENDING.value))
        state: FileState
        if status == FileStatus.ANALYZED:
            state = Analyzed(data.get("analysisResult", ""))
        elif status == FileStatus.MAPPED:
            state = Mapped(
                data.get("analysisResult", ""),
                MappedData.from_dict(data["mappedData"]),
            )
        elif status == FileStatus.ERROR:
            state = Errored(data.get("errorMessage", ""))
        else:
            state = Pending()

        return cls(
            id=data["id"],
            name=data["name"],
            size=data.get("size", 0),
            media_type=data.get("type", ""),
            path=data.get("path"),
            content=data.get("content"),
            data_url=data.get("dataUrl"),
            page_images=list(data.get("pageImages") or []),
            state=state,
        )


class QueueStatus(str, Enum):
    """Status of a processing queue item."""
    QUEUED = "queued"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"


@dataclass(frozen=True)
class QueueItem:
    """Tracking record for one file's position and progress.

    Timestamps are monotonic clock readings in seconds.
    """
    id: str
    file_id: str
    name: str
    size: int
    status: QueueStatus = QueueStatus.QUEUED
    progress: int = 0
    start_time: Optional[float] = None
    end_time: Optional[float] = None
    estimated_time: Optional[float] = None
    error_message: Optional[str] = None


@dataclass(frozen=True)
class FailedFileEntry:
    """Durable record of a file that reached a terminal error.

    Carries the payload needed to resubmit the file without the original
    upload.
    """
    id: str
    file_id: str
    path: str
    name: str
    error_message: str
    failed_at: datetime = field(default_factory=utcnow)
    retry_count: int = 0
    size: int = 0
    media_type: str = ""
    content: Optional[str] = None
    data_url: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "fileId": self.file_id,
            "path": self.path,
            "name": self.name,
            "errorMessage": self.error_message,
            "failedAt": self.failed_at.isoformat(),
            "retryCount": self.retry_count,
            "size": self.size,
            "type": self.media_type,
            "content": self.content,
            "dataUrl": self.data_url,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FailedFileEntry":
        return cls(
            id=data["id"],
            file_id=data.get("fileId") or data["path"],
            path=data["path"],
            name=data["name"],
            error_message=data.get("errorMessage", ""),
            failed_at=datetime.fromisoformat(data["failedAt"]),
            retry_count=data.get("retryCount", 0),
            size=data.get("size", 0),
            media_type=data.get("type", ""),
            content=data.get("content"),
            data_url=data.get("dataUrl"),
        )

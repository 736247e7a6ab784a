"""Pytest configuration and fixtures for the docmapper test suite.

This module provides shared fixtures and test configuration for all test modules.
"""

import asyncio
import os
from typing import Any, Callable, Dict, Iterator, List, Optional, Sequence

# Tracing stays off for the whole suite; set before langfuse is imported.
os.environ.setdefault("LANGFUSE_TRACING_ENABLED", "false")

import pytest

from docmapper import (
    BlobStore,
    DatabaseManager,
    FailedFileLedger,
    FileRecord,
    Schema,
    SessionSnapshotRepository,
)
from docmapper.clients import ChatRequest, TransportResponse
from docmapper.extractors import DocumentExtractor


class FakeClock:
    """Manually advanced monotonic clock with a matching async sleep."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds
        await asyncio.sleep(0)


class ScriptedTransport:
    """Transport returning scripted responses and recording dispatch times."""

    def __init__(self, responses: Sequence[TransportResponse], clock: Optional[FakeClock] = None) -> None:
        self.responses = list(responses)
        self.clock = clock
        self.requests: List[ChatRequest] = []
        self.dispatch_times: List[float] = []

    async def send(self, request: ChatRequest) -> TransportResponse:
        self.requests.append(request)
        if self.clock is not None:
            self.dispatch_times.append(self.clock())
        if len(self.responses) > 1:
            return self.responses.pop(0)
        return self.responses[0]


class FakeExtractor(DocumentExtractor):
    """Extractor driven by per-file callables, recording call order."""

    def __init__(
        self,
        analysis: Optional[Callable[[FileRecord], Any]] = None,
        mapping: Optional[Callable[[FileRecord], Any]] = None,
        delay: float = 0.0
    ) -> None:
        self.analysis = analysis or (lambda f: f"Analysis of {f.name}")
        self.mapping = mapping or (lambda f: '{"invoice_number": "INV-1", "total": null}')
        self.delay = delay
        self.log: List[tuple] = []
        self.active = 0
        self.max_active = 0

    async def analyze(self, file: FileRecord, schema: Optional[Schema] = None) -> str:
        self.log.append(("start", file.name))
        self.active += 1
        self.max_active = max(self.max_active, self.active)
        try:
            await asyncio.sleep(self.delay)
            result = self.analysis(file)
            if isinstance(result, Exception):
                raise result
            return result
        finally:
            self.active -= 1
            self.log.append(("end", file.name))

    async def map_to_schema(self, file: FileRecord, analysis: str, schema: Schema) -> str:
        result = self.mapping(file)
        if isinstance(result, Exception):
            raise result
        return result


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def invoice_schema() -> Schema:
    """Two-property schema: one required, one optional."""
    return Schema.from_dict({
        "id": "schema-invoice",
        "name": "Invoice Schema",
        "properties": [
            {"name": "invoice_number", "type": "string", "required": True, "description": "Invoice ID"},
            {"name": "total", "type": "number"},
        ],
    })


@pytest.fixture
def make_file() -> Callable[..., FileRecord]:
    """Factory for pending text files."""

    def _make(name: str = "invoice.txt", **kwargs: Any) -> FileRecord:
        defaults: Dict[str, Any] = {
            "id": f"file-{name}",
            "name": name,
            "size": 128,
            "media_type": "text/plain",
            "content": f"Contents of {name}",
        }
        defaults.update(kwargs)
        return FileRecord(**defaults)

    return _make


@pytest.fixture
def temp_db_url(tmp_path) -> str:
    """SQLite URL for a database file unique to the test."""
    return f"sqlite:///{tmp_path / 'docmapper-test.db'}"


@pytest.fixture
def test_db_manager(temp_db_url: str) -> DatabaseManager:
    """Create a DatabaseManager instance with a temporary database."""
    return DatabaseManager(database_url=temp_db_url)


@pytest.fixture
def blob_store(test_db_manager: DatabaseManager) -> BlobStore:
    return BlobStore(test_db_manager)


@pytest.fixture
def ledger(blob_store: BlobStore) -> FailedFileLedger:
    return FailedFileLedger(blob_store)


@pytest.fixture
def snapshots(blob_store: BlobStore) -> SessionSnapshotRepository:
    return SessionSnapshotRepository(blob_store)


@pytest.fixture
def progress_events():
    """Create a list to collect progress events."""
    events = []

    def progress_callback(event):
        events.append(event)

    return events, progress_callback


@pytest.fixture(autouse=True)
def setup_test_environment() -> Iterator[None]:
    """Set up test environment variables."""
    original_openai_key = os.environ.get("OPENAI_API_KEY")
    os.environ["OPENAI_API_KEY"] = "test-key-123"

    yield

    if original_openai_key is not None:
        os.environ["OPENAI_API_KEY"] = original_openai_key
    else:
        os.environ.pop("OPENAI_API_KEY", None)

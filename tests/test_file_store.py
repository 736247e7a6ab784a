"""Tests for the file state machine."""

import pytest

from docmapper.exceptions import StateTransitionError, ValidationError
from docmapper.models import FileStatus, MappedData, PropertyMapping
from docmapper.state import FileStore


@pytest.fixture
def mapped_data() -> MappedData:
    return MappedData(
        schema_id="schema-invoice",
        source_file="a.txt",
        mappings=[PropertyMapping("invoice_number", "INV-1", 85, "Extracted from document")],
        confidence=85,
    )


@pytest.fixture
def store(make_file) -> FileStore:
    return FileStore([make_file("a.txt"), make_file("b.txt")])


class TestLifecycle:
    """Test cases for allowed and rejected transitions."""

    def test_full_lifecycle(self, store, mapped_data):
        """Test Pending -> Analyzing -> Analyzed -> Mapped."""
        store.mark_analyzing("file-a.txt")
        analyzed = store.mark_analyzed("file-a.txt", "the analysis")
        assert analyzed.status == FileStatus.ANALYZED
        assert analyzed.analysis_result == "the analysis"

        mapped = store.mark_mapped("file-a.txt", mapped_data)
        assert mapped.status == FileStatus.MAPPED
        assert mapped.analysis_result == "the analysis"
        assert mapped.mapped_data == mapped_data

    def test_error_from_analyzing(self, store):
        """Test that a failed analysis records the message."""
        store.mark_analyzing("file-a.txt")
        failed = store.mark_error("file-a.txt", "boom")
        assert failed.status == FileStatus.ERROR
        assert failed.error_message == "boom"
        assert failed.analysis_result is None

    def test_cannot_analyze_twice(self, store):
        """Test that a file in flight cannot be picked up again."""
        store.mark_analyzing("file-a.txt")
        with pytest.raises(StateTransitionError) as exc_info:
            store.mark_analyzing("file-a.txt")
        assert exc_info.value.file_id == "file-a.txt"

    def test_cannot_map_pending_file(self, store, mapped_data):
        """Test that mapped data requires an analysis."""
        with pytest.raises(StateTransitionError):
            store.mark_mapped("file-a.txt", mapped_data)

    def test_unknown_file(self, store):
        """Test that unknown ids are rejected."""
        with pytest.raises(ValidationError, match="Unknown file id"):
            store.get("missing")

    def test_updates_do_not_clobber_other_files(self, store):
        """Test that each update replaces only its own record."""
        store.mark_analyzing("file-a.txt")
        store.mark_analyzing("file-b.txt")
        store.mark_analyzed("file-a.txt", "A")
        store.mark_error("file-b.txt", "B failed")

        assert store.get("file-a.txt").analysis_result == "A"
        assert store.get("file-b.txt").error_message == "B failed"


class TestResets:
    """Test cases for retry, requeue and unmap."""

    def test_retry_clears_error(self, store):
        """Test that retry returns a failed file to pending."""
        store.mark_analyzing("file-a.txt")
        store.mark_error("file-a.txt", "boom")

        retried = store.retry("file-a.txt")

        assert retried.status == FileStatus.PENDING
        assert retried.error_message is None

    def test_requeue_discards_results(self, store, mapped_data):
        """Test that requeue clears analysis and mapped data."""
        store.mark_analyzing("file-a.txt")
        store.mark_analyzed("file-a.txt", "analysis")
        store.mark_mapped("file-a.txt", mapped_data)

        requeued = store.requeue(["file-a.txt", "file-b.txt"])

        assert [f.id for f in requeued] == ["file-a.txt"]
        record = store.get("file-a.txt")
        assert record.status == FileStatus.PENDING
        assert record.analysis_result is None
        assert record.mapped_data is None

    def test_requeue_rejects_file_in_flight(self, store):
        """Test that a file being analyzed cannot be requeued."""
        store.mark_analyzing("file-a.txt")
        with pytest.raises(StateTransitionError):
            store.requeue(["file-a.txt"])

    def test_rejected_requeue_changes_nothing(self, store, mapped_data):
        """Test that a bulk requeue is not partly applied."""
        store.mark_analyzing("file-a.txt")
        store.mark_analyzed("file-a.txt", "analysis")
        store.mark_mapped("file-a.txt", mapped_data)
        store.mark_analyzing("file-b.txt")

        with pytest.raises(StateTransitionError):
            store.requeue(["file-a.txt", "file-b.txt"])

        assert store.get("file-a.txt").status == FileStatus.MAPPED
        assert store.get("file-a.txt").mapped_data == mapped_data
        assert store.get("file-b.txt").status == FileStatus.ANALYZING

    def test_unmap_keeps_analysis(self, store, mapped_data):
        """Test that unmapping returns a file to analyzed."""
        store.mark_analyzing("file-a.txt")
        store.mark_analyzed("file-a.txt", "analysis")
        store.mark_mapped("file-a.txt", mapped_data)

        store.unmap(["file-a.txt", "file-b.txt"])

        record = store.get("file-a.txt")
        assert record.status == FileStatus.ANALYZED
        assert record.analysis_result == "analysis"
        assert record.mapped_data is None
        assert store.get("file-b.txt").status == FileStatus.PENDING


class TestQueries:
    """Test cases for lookups and removal."""

    def test_pending_processable_skips_containers_and_empty(self, make_file):
        """Test that archives and empty files are never scheduled."""
        store = FileStore([
            make_file("a.txt"),
            make_file("bundle.zip", media_type="application/zip"),
            make_file("empty.txt", size=0),
            make_file("b.txt"),
        ])
        assert [f.name for f in store.pending_processable()] == ["a.txt", "b.txt"]

    def test_find_and_remove_by_path(self, make_file):
        """Test lookups and removal by logical path."""
        store = FileStore([
            make_file("a.txt", path="folder/a.txt"),
            make_file("b.txt"),
        ])

        assert store.find_by_path("folder/a.txt").name == "a.txt"
        assert store.find_by_path("b.txt").name == "b.txt"
        assert store.remove_paths(["folder/a.txt", "nowhere"]) == 1
        assert len(store) == 1

    def test_add_replaces_same_id(self, store, make_file):
        """Test that adding an existing id replaces the record."""
        store.add([make_file("a.txt", size=999)])
        assert len(store) == 2
        assert store.get("file-a.txt").size == 999

"""File state machine for the docmapper pipeline.

This module contains the FileStore class, an arena of FileRecord objects
keyed by file id. Every update replaces the record with the given id
under a lock, so concurrent workers finishing at the same time never
overwrite each other's results.
"""

import logging
import threading
from typing import Dict, Iterable, List, Optional, Sequence, Tuple, Type

from ..exceptions import StateTransitionError, ValidationError
from ..models import (
    Analyzed,
    Analyzing,
    Errored,
    FileRecord,
    FileState,
    Mapped,
    MappedData,
    Pending,
)
from ..validators import FileValidator

__all__ = ["FileStore"]

logger = logging.getLogger(__name__)

RESETTABLE_STATES: Tuple[Type, ...] = (Analyzed, Mapped, Errored)


class FileStore:
    """Holds uploaded files and enforces their lifecycle transitions.

    Pending -> Analyzing -> Analyzed -> Mapped, with Errored reachable from
    Analyzing. Errored files return to Pending through retry; analyzed,
    mapped or failed files return to Pending through requeue.
    """

    def __init__(self, files: Optional[Iterable[FileRecord]] = None) -> None:
        self._files: Dict[str, FileRecord] = {}
        self._lock = threading.RLock()
        if files:
            self.add(files)

    def __len__(self) -> int:
        with self._lock:
            return len(self._files)

    def __contains__(self, file_id: object) -> bool:
        with self._lock:
            return file_id in self._files

    def add(self, files: Iterable[FileRecord]) -> None:
        """Insert files, replacing any existing record with the same id."""
        with self._lock:
            for file in files:
                self._files[file.id] = file

    def get(self, file_id: str) -> FileRecord:
        """Return the record with the given id.

        Raises:
            ValidationError: If no such file exists
        """
        with self._lock:
            try:
                return self._files[file_id]
            except KeyError:
                raise ValidationError(f"Unknown file id: {file_id}")

    def find_by_path(self, path: str) -> Optional[FileRecord]:
        with self._lock:
            for file in self._files.values():
                if file.logical_path == path:
                    return file
        return None

    def list(self) -> List[FileRecord]:
        with self._lock:
            return list(self._files.values())

    def pending_processable(self) -> List[FileRecord]:
        """Return pending files eligible for scheduling, in upload order."""
        return [
            f for f in self.list()
            if isinstance(f.state, Pending) and FileValidator.is_processable(f)
        ]

    def _transition(
        self,
        file_id: str,
        allowed: Tuple[Type, ...],
        new_state: FileState
    ) -> FileRecord:
        with self._lock:
            current = self.get(file_id)
            if not isinstance(current.state, allowed):
                raise StateTransitionError(
                    f"Cannot move {current.name} from {current.status.value} "
                    f"to {new_state.status.value}",
                    file_id=file_id
                )
            updated = current.with_state(new_state)
            self._files[file_id] = updated
            return updated

    def mark_analyzing(self, file_id: str) -> FileRecord:
        return self._transition(file_id, (Pending,), Analyzing())

    def mark_analyzed(self, file_id: str, analysis_result: str) -> FileRecord:
        return self._transition(file_id, (Analyzing,), Analyzed(analysis_result))

    def mark_mapped(self, file_id: str, mapped_data: MappedData) -> FileRecord:
        """Attach mapped data to an analyzed file, keeping its analysis."""
        with self._lock:
            current = self.get(file_id)
            analysis = current.analysis_result or ""
            return self._transition(file_id, (Analyzed,), Mapped(analysis, mapped_data))

    def mark_error(self, file_id: str, message: str) -> FileRecord:
        return self._transition(file_id, (Analyzing,), Errored(message))

    def retry(self, file_id: str) -> FileRecord:
        """Reset a failed file to pending, clearing its error."""
        return self._transition(file_id, (Errored,), Pending())

    def requeue(self, file_ids: Sequence[str]) -> List[FileRecord]:
        """Reset files to pending, discarding analysis and mapped data.

        Files that are already pending are left untouched. Every file is
        checked before any is reset, so a rejected call changes nothing.

        Raises:
            StateTransitionError: If a file is currently being analyzed
        """
        with self._lock:
            targets: List[FileRecord] = []
            for file_id in file_ids:
                current = self.get(file_id)
                if isinstance(current.state, Pending):
                    continue
                if not isinstance(current.state, RESETTABLE_STATES):
                    raise StateTransitionError(
                        f"Cannot requeue {current.name} while {current.status.value}",
                        file_id=file_id
                    )
                targets.append(current)

            requeued: List[FileRecord] = []
            for current in targets:
                updated = current.with_state(Pending())
                self._files[current.id] = updated
                requeued.append(updated)
        return requeued

    def unmap(self, file_ids: Sequence[str]) -> List[FileRecord]:
        """Drop mapped data from mapped files, returning them to analyzed."""
        unmapped: List[FileRecord] = []
        with self._lock:
            for file_id in file_ids:
                current = self.get(file_id)
                if isinstance(current.state, Mapped):
                    updated = current.with_state(Analyzed(current.state.analysis_result))
                    self._files[file_id] = updated
                    unmapped.append(updated)
        return unmapped

    def remove(self, file_id: str) -> Optional[FileRecord]:
        with self._lock:
            return self._files.pop(file_id, None)

    def remove_paths(self, paths: Iterable[str]) -> int:
        """Remove every file whose logical path is in ``paths``."""
        targets = set(paths)
        with self._lock:
            doomed = [fid for fid, f in self._files.items() if f.logical_path in targets]
            for file_id in doomed:
                del self._files[file_id]
        return len(doomed)

    def clear(self) -> None:
        with self._lock:
            self._files.clear()
        logger.info("File store cleared")

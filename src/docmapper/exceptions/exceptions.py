"""Custom exceptions for the docmapper pipeline.

This module contains all custom exception classes used throughout
the extraction, mapping, persistence and scheduling code.
"""

from typing import Optional

__all__ = [
    "TransportError",
    "RateLimitExceeded",
    "DataExtractionError",
    "DocumentRenderError",
    "StateTransitionError",
    "DatabaseError",
    "ValidationError"
]


class TransportError(Exception):
    """Exception raised for non-retryable transport failures.

    This exception is raised when the extraction service cannot be
    reached at all, e.g. DNS failures or connections dropped before a
    status code was received.
    """
    pass


class RateLimitExceeded(Exception):
    """Exception raised when throttled requests exhaust their retries.

    Attributes:
        status_code: Status of the last throttled attempt
        body: Response body of the last throttled attempt
        attempts: Total number of dispatches made
    """

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        body: str = "",
        attempts: int = 0
    ) -> None:
        super().__init__(message)
        self.status_code = status_code
        self.body = body
        self.attempts = attempts


class DataExtractionError(Exception):
    """Exception raised during document analysis or schema mapping.

    This exception is raised when the extraction service returns an
    error status, an empty completion, or the request cannot be built.
    """
    pass


class DocumentRenderError(Exception):
    """Exception raised when a PDF cannot be rendered to page images."""
    pass


class StateTransitionError(Exception):
    """Exception raised for a file lifecycle transition that is not allowed.

    Attributes:
        file_id: Identifier of the file whose transition was rejected
    """

    def __init__(self, message: str, file_id: str = "") -> None:
        super().__init__(message)
        self.file_id = file_id


class DatabaseError(Exception):
    """Exception raised during database operations.

    This exception is raised when there are issues with database
    connectivity, queries, or data persistence.
    """
    pass


class ValidationError(Exception):
    """Exception raised during data validation.

    This exception is raised when input data fails validation checks
    such as malformed schemas or unknown file records.
    """
    pass

"""Custom exceptions for the docmapper pipeline.

This module contains all custom exception classes used throughout
the extraction, mapping, persistence and scheduling code.
"""

from .exceptions import (
    TransportError,
    RateLimitExceeded,
    DataExtractionError,
    DocumentRenderError,
    StateTransitionError,
    DatabaseError,
    ValidationError
)
from .classifier import is_credit_exhausted

__all__ = [
    "TransportError",
    "RateLimitExceeded",
    "DataExtractionError",
    "DocumentRenderError",
    "StateTransitionError",
    "DatabaseError",
    "ValidationError",
    "is_credit_exhausted"
]

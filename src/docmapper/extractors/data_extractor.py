"""Document extractor base class for the docmapper pipeline.

This module contains the abstract DocumentExtractor base class that
defines the interface the document processor drives.
"""

from abc import ABC, abstractmethod
from typing import Optional

from ..models import FileRecord, Schema

__all__ = ["DocumentExtractor"]


class DocumentExtractor(ABC):
    """Abstract base class for document extraction implementations.

    This abstract class defines the interface that all extractors must
    implement. It follows the Strategy pattern so the pipeline can be run
    against the live service or a stand-in.
    """

    @abstractmethod
    async def analyze(self, file: FileRecord, schema: Optional[Schema] = None) -> str:
        """Produce the free-text extraction narrative for a file.

        Args:
            file: File to analyze
            schema: Selected schema, used to steer the analysis

        Returns:
            Analysis text

        Raises:
            DataExtractionError: If the service rejects the request
            RateLimitExceeded: If throttling outlasts the retry budget
            TransportError: If the service cannot be reached
        """
        pass

    @abstractmethod
    async def map_to_schema(self, file: FileRecord, analysis: str, schema: Schema) -> str:
        """Ask for a document matching the schema verbatim.

        Args:
            file: File being mapped
            analysis: Analysis text previously produced for the file
            schema: Target schema

        Returns:
            Raw completion, expected to contain a JSON object
        """
        pass

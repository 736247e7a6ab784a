"""Asynchronous document processor for the docmapper pipeline.

This module contains the AsyncDocumentProcessor class that runs the two
steps of one file's work: analysis through the extractor, and mapping of
the analysis onto the selected schema.
"""

import logging
from typing import Optional

from ..extractors import DocumentExtractor
from ..models import FileRecord, MappedData, Schema
from ..parsers import ResultParser

__all__ = ["AsyncDocumentProcessor"]

logger = logging.getLogger(__name__)


class AsyncDocumentProcessor:
    """Service class for single-file analysis and mapping.

    Attributes:
        extractor: Extraction strategy talking to the service
        parser: Parser turning mapping completions into property mappings
    """

    def __init__(self, extractor: DocumentExtractor, parser: Optional[ResultParser] = None) -> None:
        """Initialize the processor with its dependencies.

        Args:
            extractor: Extraction strategy to use
            parser: Result parser, a default one when omitted
        """
        self.extractor: DocumentExtractor = extractor
        self.parser: ResultParser = parser or ResultParser()

    async def analyze(self, file: FileRecord, schema: Optional[Schema] = None) -> str:
        """Produce the analysis narrative for a file.

        Args:
            file: File to analyze
            schema: Selected schema, if any

        Returns:
            Analysis text

        Raises:
            DataExtractionError: If the service rejects the request
            RateLimitExceeded: If throttling outlasts the retry budget
            TransportError: If the service cannot be reached
        """
        return await self.extractor.analyze(file, schema)

    async def map_file(self, file: FileRecord, analysis: str, schema: Schema) -> MappedData:
        """Map an analyzed file onto a schema.

        Malformed model output does not raise; it yields zero-confidence
        mappings instead.

        Args:
            file: Analyzed file
            analysis: Analysis text for the file
            schema: Target schema

        Returns:
            MappedData for the file
        """
        raw = await self.extractor.map_to_schema(file, analysis, schema)
        result = self.parser.parse(raw, schema)
        logger.info(
            "Mapped %s onto %s with %d%% confidence",
            file.name, schema.name, result.confidence
        )
        return MappedData(
            schema_id=schema.id,
            source_file=file.name,
            mappings=result.mappings,
            parsed_document=result.parsed_document,
            confidence=result.confidence,
        )

"""AI extractor for the docmapper pipeline.

This module contains the AIExtractor class that builds analysis, vision
and mapping prompts and sends them through the shared rate-limited
client.
"""

import asyncio
import json
import logging
from typing import Any, Dict, List, Optional, Tuple

from langfuse import observe

from ..clients import ChatRequest, RateLimitedClient, TransportResponse
from ..config import Config
from ..exceptions import (
    DataExtractionError,
    DocumentRenderError,
    RateLimitExceeded,
    TransportError,
)
from ..models import FileRecord, Schema
from ..validators import FileValidator
from .conversation import Conversation
from .data_extractor import DocumentExtractor
from .page_renderer import PageRenderer, decode_data_url

__all__ = ["AIExtractor", "DOCUMENT_ANALYSIS_PROMPT"]

logger = logging.getLogger(__name__)

DOCUMENT_ANALYSIS_PROMPT = """You are a document analysis assistant. Your job is to:
1. Analyze uploaded documents and extract structured information
2. Identify key entities, dates, amounts, and relationships
3. Map extracted data to user-defined schemas
4. Provide confidence scores for your extractions

Be thorough but concise. When mapping to schemas, try to match data types appropriately.
If information is not found, indicate this clearly rather than making assumptions."""


class AIExtractor(DocumentExtractor):
    """AI-powered extractor using OpenAI chat and vision models.

    Text requests share one conversation whose history is trimmed before
    every request; vision requests are single-turn.

    Attributes:
        client: Rate-limited client shared with every other worker
        conversation: Conversation used for text analysis and mapping
        renderer: Renderer for PDFs without pre-rendered pages
        model: Model for text requests
        vision_model: Model for requests with image attachments
    """

    def __init__(
        self,
        client: RateLimitedClient,
        model: str = Config.OPENAI_MODEL,
        vision_model: str = Config.OPENAI_VISION_MODEL,
        renderer: Optional[PageRenderer] = None,
        system_prompt: str = DOCUMENT_ANALYSIS_PROMPT
    ) -> None:
        self.client: RateLimitedClient = client
        self.model: str = model
        self.vision_model: str = vision_model
        self.renderer: PageRenderer = renderer or PageRenderer()
        self.conversation: Conversation = Conversation(system_prompt=system_prompt)

    async def analyze(self, file: FileRecord, schema: Optional[Schema] = None) -> str:
        """Analyze a file through the vision or the text path."""
        if FileValidator.needs_vision(file):
            logger.info("Using vision path for %s", file.name)
            return await self.analyze_with_vision(file, schema)
        return await self.analyze_text(file, schema)

    @observe(name="analyze_text")
    async def analyze_text(self, file: FileRecord, schema: Optional[Schema] = None) -> str:
        """Analyze a text-bearing file.

        Raises:
            DataExtractionError: If the service rejects the request
        """
        prompt = self._build_analysis_prompt(file, schema)
        return await self._converse(prompt)

    @observe(name="analyze_with_vision")
    async def analyze_with_vision(self, file: FileRecord, schema: Optional[Schema] = None) -> str:
        """Analyze an image or PDF by attaching page images.

        PDFs are limited to the first MAX_PDF_PAGES pages; the prompt
        notes when pages were left out.

        Raises:
            DataExtractionError: If no image can be attached or the service
                rejects the request
        """
        prompt = self._build_vision_prompt(file, schema)
        images, total_pages = await self._collect_images(file)

        if total_pages > len(images):
            prompt += (
                f"\n\n[Note: This PDF has {total_pages} pages but only the first "
                f"{len(images)} are shown. Focus on extracting all data from the visible pages.]"
            )

        content: List[Dict[str, Any]] = [{"type": "text", "text": prompt}]
        for url in images:
            content.append({"type": "image_url", "image_url": {"url": url, "detail": "high"}})

        request = ChatRequest(
            messages=[{"role": "user", "content": content}],
            model=self.vision_model,
            max_tokens=Config.OPENAI_VISION_MAX_TOKENS,
        )
        result = await self._complete(request, "Vision analysis failed")
        logger.info("Vision analysis complete for %s, response length: %d", file.name, len(result))
        return result

    @observe(name="map_to_schema")
    async def map_to_schema(self, file: FileRecord, analysis: str, schema: Schema) -> str:
        """Request a JSON document matching the schema for a file."""
        prompt = self._build_mapping_prompt(file, analysis, schema)
        return await self._converse(prompt)

    async def _converse(self, prompt: str) -> str:
        """Send a streamed text request within the shared conversation."""
        request = ChatRequest(
            messages=self.conversation.request_messages(prompt),
            model=self.model,
            temperature=Config.OPENAI_TEMPERATURE,
            max_tokens=Config.OPENAI_MAX_TOKENS,
            stream=True,
        )
        result = await self._complete(request, "API error")
        self.conversation.record(prompt, result)
        return result

    async def _complete(self, request: ChatRequest, failure: str) -> str:
        """Dispatch a request and return its completion text.

        Throttling and transport errors propagate unchanged so the caller
        can classify them.
        """
        try:
            response: TransportResponse = await self.client.send(request)
            if not response.ok:
                raise DataExtractionError(f"{failure}: {response.status_code} - {response.text}")
            return await response.read_text()
        except (DataExtractionError, RateLimitExceeded, TransportError):
            raise
        except Exception as e:
            raise DataExtractionError(f"Unexpected error during AI call: {str(e)}")

    async def _collect_images(self, file: FileRecord) -> Tuple[List[str], int]:
        """Return the page images to attach and the document's page count."""
        limit = Config.MAX_PDF_PAGES
        if file.page_images:
            return file.page_images[:limit], len(file.page_images)

        if not file.data_url:
            raise DataExtractionError(f"No image payload available for {file.name}")

        if FileValidator.is_pdf(file):
            try:
                _, pdf_bytes = decode_data_url(file.data_url)
                return await asyncio.to_thread(self.renderer.render_pdf, pdf_bytes, limit)
            except DocumentRenderError as e:
                raise DataExtractionError(f"Could not render {file.name}: {str(e)}")

        return [file.data_url], 1

    def _build_analysis_prompt(self, file: FileRecord, schema: Optional[Schema]) -> str:
        """Build the analysis prompt for a text-bearing file."""
        prompt = "Analyze the following document and extract key information.\n\n"
        prompt += self._schema_hint(schema, Config.TEXT_PROMPT_FIELD_LIMIT, "Expected fields to extract:")

        prompt += f"File: {file.name}\n"
        prompt += f"Type: {file.media_type}\n\n"

        if file.content:
            prompt += f"Document Content:\n{file.content[:Config.ANALYSIS_CONTENT_LIMIT]}\n\n"
        else:
            prompt += "[No text content available for this file type]\n\n"

        prompt += (
            "Please extract and identify:\n"
            "1. Document type confirmation (is this an invoice/contract/etc.?)\n"
            "2. All key entities (names, organizations, addresses, dates, amounts, IDs)\n"
            "3. Line items or list data if present\n"
            "4. Any structured data (tables, key-value pairs)\n\n"
            "Format your response as a structured analysis with clear sections."
        )
        logger.debug("Analysis prompt for %s: %d characters", file.name, len(prompt))
        return prompt

    def _build_vision_prompt(self, file: FileRecord, schema: Optional[Schema]) -> str:
        """Build the analysis prompt for an image or PDF."""
        prompt = "Analyze this document image and extract all relevant information.\n\n"
        prompt += self._schema_hint(schema, Config.VISION_PROMPT_FIELD_LIMIT, "Look for these specific fields:")
        prompt += f"File: {file.name}\n\n"
        prompt += (
            "Please carefully examine the document and extract:\n"
            "1. Document type (invoice, purchase order, contract, receipt, etc.)\n"
            "2. All text content you can read from the document\n"
            "3. Key entities: names, organizations, addresses, dates, amounts, IDs, reference numbers\n"
            "4. Line items with descriptions, quantities, prices, and totals\n"
            "5. Any tables, headers, or structured data\n"
            "6. Totals, subtotals, taxes, and payment information\n\n"
            "Format your response as a structured analysis with clear sections. "
            "Be thorough and extract all visible text."
        )
        return prompt

    @staticmethod
    def _schema_hint(schema: Optional[Schema], limit: int, heading: str) -> str:
        """List the first ``limit`` schema fields for the analysis prompts."""
        if schema is None:
            return ""
        hint = f"IMPORTANT: This document is expected to be a {schema.document_kind}.\n{heading}\n"
        for prop in schema.properties[:limit]:
            hint += f"- {prop.name}: {prop.description or prop.type.value}\n"
        if len(schema.properties) > limit:
            hint += f"- ... and {len(schema.properties) - limit} more fields\n"
        return hint + "\n"

    def _build_mapping_prompt(self, file: FileRecord, analysis: str, schema: Schema) -> str:
        """Build the prompt asking for a document that matches the schema."""
        schema_json = json.dumps(schema.to_json_schema(), indent=2)

        prompt = (
            "Extract data from the document and output a JSON object that EXACTLY "
            "matches the following JSON Schema structure.\n\n"
            f"=== TARGET JSON SCHEMA ===\n{schema_json}\n\n"
            "=== CRITICAL RULES ===\n"
            "1. Your output MUST be a valid JSON object matching the schema structure EXACTLY\n"
            "2. Use the EXACT property names from the schema (case-sensitive)\n"
            "3. For arrays, output an array of objects with EXACTLY the properties defined for the items\n"
            "4. Numbers must be numeric values (e.g., 1330.68), NOT strings with currency symbols\n"
            "5. Dates must be in ISO format: \"YYYY-MM-DD\"\n"
            "6. For nested objects, preserve the full structure\n"
            "7. Use null for properties that cannot be found in the document\n"
            "8. DO NOT invent property names - only use property names from the schema\n\n"
            "=== DOCUMENT TO EXTRACT DATA FROM ===\n"
            f"Filename: {file.name}\n\n"
        )

        if file.content:
            prompt += f"Document Content:\n{file.content[:Config.MAPPING_CONTENT_LIMIT]}\n\n"
        if analysis:
            prompt += f"Previous Analysis:\n{analysis[:Config.MAPPING_ANALYSIS_LIMIT]}\n\n"

        prompt += (
            "=== OUTPUT FORMAT ===\n"
            "Respond with ONLY a valid JSON object. No markdown code blocks, no explanations. "
            "Just the JSON.\nThe JSON must match the schema structure exactly.\n"
        )
        return prompt

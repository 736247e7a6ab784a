"""Extractors module for the docmapper pipeline.

This module contains the extractor interface, the OpenAI-backed
extractor with its prompt builders and conversation context, and the
PDF page renderer used by the vision path.
"""

from .data_extractor import DocumentExtractor
from .ai_extractor import AIExtractor, DOCUMENT_ANALYSIS_PROMPT
from .conversation import Conversation, trim_history
from .page_renderer import PageRenderer, decode_data_url, encode_data_url

__all__ = [
    "DocumentExtractor",
    "AIExtractor",
    "DOCUMENT_ANALYSIS_PROMPT",
    "Conversation",
    "trim_history",
    "PageRenderer",
    "decode_data_url",
    "encode_data_url"
]

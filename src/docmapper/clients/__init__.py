"""Clients module for the docmapper pipeline.

This module contains the rate-limited request client shared by all
workers and the OpenAI transport it dispatches through.
"""

from .rate_limited_client import ChatRequest, RateLimitedClient, Transport, TransportResponse
from .openai_transport import OpenAITransport

__all__ = [
    "ChatRequest",
    "RateLimitedClient",
    "Transport",
    "TransportResponse",
    "OpenAITransport"
]

"""OpenAI transport for the rate-limited client.

Adapts the asynchronous OpenAI SDK to the status-code contract the
RateLimitedClient retries on. The SDK's own retries are disabled so that
backoff is applied in exactly one place.
"""

import logging
from typing import Any, AsyncIterator, Optional

from langfuse import observe
from openai import APIConnectionError, APIStatusError, AsyncOpenAI

from ..exceptions import DataExtractionError, TransportError
from .rate_limited_client import ChatRequest, TransportResponse

__all__ = ["OpenAITransport"]

logger = logging.getLogger(__name__)


class OpenAITransport:
    """Dispatches chat completion requests through the OpenAI SDK.

    Attributes:
        cli: AsyncOpenAI client instance for API communication
    """

    def __init__(self, api_key: str, client: Optional[AsyncOpenAI] = None) -> None:
        """Initialize the transport with an OpenAI API key.

        Args:
            api_key: OpenAI API key for authentication
            client: Preconfigured client, mainly for tests

        Raises:
            DataExtractionError: If API key is missing or client creation fails
        """
        if not api_key:
            raise DataExtractionError("OpenAI API key not configured")

        try:
            self.cli: AsyncOpenAI = client or AsyncOpenAI(api_key=api_key, max_retries=0)
        except Exception as e:
            raise DataExtractionError(f"OpenAI client initialization error: {str(e)}")

    @observe(name="openai_chat_completion", as_type="generation")
    async def send(self, request: ChatRequest) -> TransportResponse:
        """Dispatch one request.

        Args:
            request: Request to dispatch

        Returns:
            TransportResponse carrying the completion or the error status

        Raises:
            TransportError: If the service could not be reached
        """
        try:
            if request.stream:
                stream = await self.cli.chat.completions.create(
                    **request.to_payload(), stream=True
                )
                return TransportResponse(status_code=200, chunks=self._iter_chunks(stream))

            completion = await self.cli.chat.completions.create(**request.to_payload())
            text = ""
            if completion.choices and completion.choices[0].message.content:
                text = completion.choices[0].message.content
            return TransportResponse(status_code=200, text=text)

        except APIStatusError as e:
            logger.debug("OpenAI returned status %d: %s", e.status_code, e.message)
            return TransportResponse(status_code=e.status_code, text=e.message)
        except APIConnectionError as e:
            raise TransportError(f"Connection to extraction service failed: {str(e)}")

    @staticmethod
    async def _iter_chunks(stream: Any) -> AsyncIterator[str]:
        """Yield the text deltas of a streamed completion."""
        async for chunk in stream:
            if not chunk.choices:
                continue
            content = chunk.choices[0].delta.content
            if content:
                yield content

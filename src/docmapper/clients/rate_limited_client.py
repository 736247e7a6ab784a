"""Rate-limited request client for the extraction service.

This module contains the RateLimitedClient class that spaces outbound
requests by a minimum interval across every concurrent worker and retries
throttled (429) and server-failed (5xx) requests with exponential backoff
and jitter.
"""

import asyncio
import logging
import random
import time
from dataclasses import dataclass, field
from typing import Any, AsyncIterator, Awaitable, Callable, Dict, List, Optional, Protocol

from ..config import Config
from ..exceptions import RateLimitExceeded

__all__ = ["ChatRequest", "TransportResponse", "Transport", "RateLimitedClient"]

logger = logging.getLogger(__name__)


@dataclass
class ChatRequest:
    """One chat completion request.

    Attributes:
        messages: Role/content messages, content may be a list of parts
        model: Model name
        temperature: Sampling temperature, omitted when None
        max_tokens: Completion token cap, omitted when None
        stream: Whether to stream the completion
    """
    messages: List[Dict[str, Any]]
    model: str = Config.OPENAI_MODEL
    temperature: Optional[float] = None
    max_tokens: Optional[int] = None
    stream: bool = False

    def to_payload(self) -> Dict[str, Any]:
        payload: Dict[str, Any] = {"model": self.model, "messages": self.messages}
        if self.temperature is not None:
            payload["temperature"] = self.temperature
        if self.max_tokens is not None:
            payload["max_tokens"] = self.max_tokens
        return payload


@dataclass
class TransportResponse:
    """Response returned by a transport.

    Attributes:
        status_code: HTTP status of the response
        text: Completion text on success, error body otherwise
        chunks: Incremental completion text for streamed responses
    """
    status_code: int
    text: str = ""
    chunks: Optional[AsyncIterator[str]] = field(default=None, repr=False)

    @property
    def ok(self) -> bool:
        return 200 <= self.status_code < 300

    async def read_text(self, on_chunk: Optional[Callable[[str], None]] = None) -> str:
        """Return the full completion text, draining the stream if any.

        Args:
            on_chunk: Optional callback invoked with every streamed chunk

        Returns:
            Complete completion text
        """
        if self.chunks is None:
            return self.text

        parts: List[str] = []
        async for chunk in self.chunks:
            parts.append(chunk)
            if on_chunk:
                on_chunk(chunk)
        self.text = "".join(parts)
        self.chunks = None
        return self.text


class Transport(Protocol):
    """Protocol for objects that dispatch a request to the service."""

    async def send(self, request: ChatRequest) -> TransportResponse:
        """Dispatch a request and return its response."""
        ...


class RateLimitedClient:
    """Serializes dispatches and retries transient failures.

    A single instance is shared by all workers. The minimum-interval check
    and the recording of the dispatch time happen under one lock, so
    concurrent callers never observe a stale last-dispatch time.

    Attributes:
        transport: Transport used for the actual dispatch
        min_interval: Minimum spacing between dispatches in seconds
        max_retries: Retries allowed for throttled or server-failed requests
        base_delay: First backoff delay in seconds
        max_jitter: Upper bound of the random jitter in seconds
        max_delay: Backoff delay cap in seconds
    """

    def __init__(
        self,
        transport: Transport,
        min_interval: float = Config.MIN_REQUEST_INTERVAL,
        max_retries: int = Config.MAX_RETRIES,
        base_delay: float = Config.BASE_DELAY,
        max_jitter: float = Config.MAX_JITTER,
        max_delay: float = Config.MAX_DELAY,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        jitter_source: Callable[[], float] = random.random
    ) -> None:
        """Initialize the client.

        Args:
            transport: Transport used for the actual dispatch
            min_interval: Minimum spacing between dispatches in seconds
            max_retries: Retries allowed before RateLimitExceeded
            base_delay: First backoff delay in seconds
            max_jitter: Upper bound of the random jitter in seconds
            max_delay: Backoff delay cap in seconds
            clock: Monotonic clock returning seconds
            sleep: Coroutine function used to suspend the caller
            jitter_source: Returns a float in [0, 1)
        """
        self.transport: Transport = transport
        self.min_interval: float = min_interval
        self.max_retries: int = max_retries
        self.base_delay: float = base_delay
        self.max_jitter: float = max_jitter
        self.max_delay: float = max_delay
        self._clock = clock
        self._sleep = sleep
        self._jitter_source = jitter_source
        self._last_request_time: Optional[float] = None
        self._lock: asyncio.Lock = asyncio.Lock()

    def backoff_delay(self, retry_count: int) -> float:
        """Calculate the delay before retry number ``retry_count + 1``.

        Args:
            retry_count: Number of retries already made

        Returns:
            Delay in seconds, capped at max_delay
        """
        base = self.base_delay * (2 ** retry_count)
        jitter = self._jitter_source() * self.max_jitter
        return min(base + jitter, self.max_delay)

    async def _wait_for_rate_limit(self) -> None:
        """Wait out the minimum interval and claim the next dispatch slot."""
        async with self._lock:
            if self._last_request_time is not None:
                elapsed = self._clock() - self._last_request_time
                if elapsed < self.min_interval:
                    await self._sleep(self.min_interval - elapsed)
            self._last_request_time = self._clock()

    async def send(self, request: ChatRequest) -> TransportResponse:
        """Send a request, retrying throttled and server-failed responses.

        Args:
            request: Request to dispatch

        Returns:
            First response that is neither 429 nor 5xx

        Raises:
            RateLimitExceeded: If every allowed attempt was throttled or failed
            TransportError: If the transport cannot reach the service
        """
        retry_count = 0
        while True:
            await self._wait_for_rate_limit()
            response = await self.transport.send(request)

            if not Config.is_retryable_status(response.status_code):
                return response

            if retry_count >= self.max_retries:
                logger.error(
                    "Max retries (%d) exceeded for status %d",
                    self.max_retries, response.status_code
                )
                raise RateLimitExceeded(
                    f"API rate limit exceeded after {self.max_retries} retries",
                    status_code=response.status_code,
                    body=response.text,
                    attempts=retry_count + 1
                )

            delay = self.backoff_delay(retry_count)
            logger.warning(
                "Rate limited (%d), retry %d/%d after %.0fms",
                response.status_code, retry_count + 1, self.max_retries, delay * 1000
            )
            await self._sleep(delay)
            retry_count += 1

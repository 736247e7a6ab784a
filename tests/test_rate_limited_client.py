"""Tests for the rate-limited request client.

This module contains test cases for request spacing across concurrent
callers, retry with exponential backoff on throttling and server errors,
and the terminal RateLimitExceeded error.
"""

import asyncio

import pytest

from docmapper.clients import ChatRequest, RateLimitedClient, TransportResponse
from docmapper.exceptions import RateLimitExceeded
from tests.conftest import FakeClock, ScriptedTransport


def make_client(transport, clock: FakeClock, jitter: float = 0.0, **kwargs) -> RateLimitedClient:
    return RateLimitedClient(
        transport,
        clock=clock,
        sleep=clock.sleep,
        jitter_source=lambda: jitter,
        **kwargs
    )


@pytest.fixture
def request_message() -> ChatRequest:
    return ChatRequest(messages=[{"role": "user", "content": "hello"}])


class TestBackoffDelay:
    """Test cases for the backoff delay calculation."""

    def test_exponential_growth_without_jitter(self, fake_clock):
        """Test that delays double from the base delay."""
        client = make_client(ScriptedTransport([TransportResponse(200)]), fake_clock)
        assert [client.backoff_delay(n) for n in range(4)] == [1.0, 2.0, 4.0, 8.0]

    def test_jitter_is_added(self, fake_clock):
        """Test that jitter is added on top of the exponential delay."""
        client = make_client(ScriptedTransport([TransportResponse(200)]), fake_clock, jitter=0.5)
        assert client.backoff_delay(1) == pytest.approx(2.5)

    def test_delay_is_capped(self, fake_clock):
        """Test that the delay never exceeds the maximum."""
        client = make_client(ScriptedTransport([TransportResponse(200)]), fake_clock, jitter=0.99)
        assert client.backoff_delay(10) == 60.0


class TestRequestSpacing:
    """Test cases for the minimum request interval."""

    @pytest.mark.asyncio
    async def test_first_request_is_not_delayed(self, fake_clock, request_message):
        """Test that the first request dispatches immediately."""
        transport = ScriptedTransport([TransportResponse(200, "ok")], fake_clock)
        client = make_client(transport, fake_clock)

        response = await client.send(request_message)

        assert response.text == "ok"
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_sequential_requests_are_spaced(self, fake_clock, request_message):
        """Test that back-to-back requests wait out the interval."""
        transport = ScriptedTransport([TransportResponse(200)], fake_clock)
        client = make_client(transport, fake_clock)

        await client.send(request_message)
        fake_clock.advance(0.2)
        await client.send(request_message)

        assert fake_clock.sleeps == [pytest.approx(0.3)]
        assert transport.dispatch_times[1] - transport.dispatch_times[0] == pytest.approx(0.5)

    @pytest.mark.asyncio
    async def test_concurrent_callers_are_serialized(self, fake_clock, request_message):
        """Test that concurrent callers never dispatch within the interval."""
        transport = ScriptedTransport([TransportResponse(200)], fake_clock)
        client = make_client(transport, fake_clock)

        await asyncio.gather(*(client.send(request_message) for _ in range(4)))

        times = transport.dispatch_times
        assert len(times) == 4
        gaps = [b - a for a, b in zip(times, times[1:])]
        assert all(gap >= 0.5 - 1e-9 for gap in gaps)

    @pytest.mark.asyncio
    async def test_no_wait_after_interval_elapsed(self, fake_clock, request_message):
        """Test that no wait happens once the interval has passed."""
        transport = ScriptedTransport([TransportResponse(200)], fake_clock)
        client = make_client(transport, fake_clock)

        await client.send(request_message)
        fake_clock.advance(2.0)
        await client.send(request_message)

        assert fake_clock.sleeps == []


class TestRetries:
    """Test cases for retrying throttled and failed requests."""

    @pytest.mark.asyncio
    async def test_throttled_then_success(self, fake_clock, request_message):
        """Test four 429 responses followed by success."""
        responses = [TransportResponse(429, "slow down")] * 4 + [TransportResponse(200, "done")]
        transport = ScriptedTransport(responses, fake_clock)
        client = make_client(transport, fake_clock)
        start = fake_clock()

        response = await client.send(request_message)

        assert response.status_code == 200
        assert response.text == "done"
        assert len(transport.requests) == 5
        assert fake_clock.sleeps == [1.0, 2.0, 4.0, 8.0]
        assert fake_clock() - start >= 1 + 2 + 4 + 8

    @pytest.mark.asyncio
    async def test_retries_exhausted(self, fake_clock, request_message):
        """Test that six throttled attempts raise RateLimitExceeded."""
        transport = ScriptedTransport([TransportResponse(429, "quota body")], fake_clock)
        client = make_client(transport, fake_clock)

        with pytest.raises(RateLimitExceeded, match="after 5 retries") as exc_info:
            await client.send(request_message)

        assert len(transport.requests) == 6
        assert exc_info.value.attempts == 6
        assert exc_info.value.status_code == 429
        assert exc_info.value.body == "quota body"

    @pytest.mark.asyncio
    async def test_server_error_is_retried(self, fake_clock, request_message):
        """Test that a 5xx response is retried like throttling."""
        transport = ScriptedTransport(
            [TransportResponse(503, "unavailable"), TransportResponse(200, "ok")],
            fake_clock
        )
        client = make_client(transport, fake_clock)

        response = await client.send(request_message)

        assert response.ok
        assert len(transport.requests) == 2
        assert fake_clock.sleeps == [1.0]

    @pytest.mark.asyncio
    async def test_client_error_is_returned(self, fake_clock, request_message):
        """Test that a 4xx other than 429 is returned without retry."""
        transport = ScriptedTransport([TransportResponse(400, "bad request")], fake_clock)
        client = make_client(transport, fake_clock)

        response = await client.send(request_message)

        assert response.status_code == 400
        assert not response.ok
        assert len(transport.requests) == 1
        assert fake_clock.sleeps == []

    @pytest.mark.asyncio
    async def test_custom_retry_budget(self, fake_clock, request_message):
        """Test that max_retries bounds the number of attempts."""
        transport = ScriptedTransport([TransportResponse(500)], fake_clock)
        client = make_client(transport, fake_clock, max_retries=1)

        with pytest.raises(RateLimitExceeded):
            await client.send(request_message)

        assert len(transport.requests) == 2


class TestTransportResponse:
    """Test cases for reading streamed responses."""

    @pytest.mark.asyncio
    async def test_read_text_drains_stream(self):
        """Test that streamed chunks are concatenated and reported."""
        async def chunks():
            for part in ["Hel", "lo", "!"]:
                yield part

        seen = []
        response = TransportResponse(200, chunks=chunks())

        text = await response.read_text(on_chunk=seen.append)

        assert text == "Hello!"
        assert seen == ["Hel", "lo", "!"]
        assert await response.read_text() == "Hello!"

    def test_payload_omits_unset_options(self):
        """Test that None options are left out of the payload."""
        request = ChatRequest(messages=[], model="gpt-4o", max_tokens=10)
        assert request.to_payload() == {"model": "gpt-4o", "messages": [], "max_tokens": 10}

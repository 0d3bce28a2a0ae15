"""Pytest configuration and shared fixtures.

Usage Guide:
- For dispatcher and client tests: use the `fake_transport` fixture and
  script its responses with `ok(...)` / `failure(...)`
- For HTTP-level tests: build an `HttpTransport` over `httpx.MockTransport`
- For canned API bodies: import from tests.fixtures
- For log assertions: use the `log_records` fixture
"""

import asyncio
import time
from collections import deque
from collections.abc import Callable, Generator
from typing import Any

import pytest
from loguru import logger

from yugipedia_fetch.config import Settings, WikiConfig
from yugipedia_fetch.wiki.dispatch import RequestDispatcher
from yugipedia_fetch.wiki.transport import TransportResult

TEST_USER_AGENT = "yugipedia-fetch-tests/0.0 (tests@example.com)"


# -----------------------------------------------------------------------------
# Transport Helpers
# -----------------------------------------------------------------------------
def ok(body: str, status_code: int = 200) -> TransportResult:
    """A successful transmission carrying ``body``."""
    return TransportResult(success=True, status_code=status_code, body=body)


def failure(status_code: int | None = 503, error: str = "Service Unavailable") -> TransportResult:
    """A failed transmission (HTTP error status or network error)."""
    return TransportResult(success=False, status_code=status_code, error=error)


ScriptedResponse = TransportResult | str | Callable[[str], TransportResult | str]


class FakeTransport:
    """Scripted transport recording every call.

    Responses are consumed in order; once the script runs out the
    ``default`` response is returned. A response may be a
    TransportResult, a body string (sent as a 200), or a callable
    receiving the URL.
    """

    def __init__(
        self,
        responses: list[ScriptedResponse] | None = None,
        *,
        default: ScriptedResponse | None = None,
        delay: float = 0.0,
    ) -> None:
        self.responses: deque[ScriptedResponse] = deque(responses or [])
        self.default = default if default is not None else ok("{}")
        self.delay = delay
        self.calls: list[str] = []
        self.headers: list[dict[str, str]] = []
        self.timeouts: list[float] = []
        self.sent_at: list[float] = []
        self.in_flight = 0
        self.max_in_flight = 0
        self.cancelled_sends = 0
        self.closed = False

    async def send(
        self,
        url: str,
        *,
        headers: dict[str, str],
        timeout: float,
    ) -> TransportResult:
        self.calls.append(url)
        self.headers.append(headers)
        self.timeouts.append(timeout)
        self.sent_at.append(time.monotonic())
        self.in_flight += 1
        self.max_in_flight = max(self.max_in_flight, self.in_flight)
        try:
            if self.delay:
                await asyncio.sleep(self.delay)
            response = self.responses.popleft() if self.responses else self.default
            if callable(response):
                response = response(url)
            if isinstance(response, str):
                response = ok(response)
            return response
        except asyncio.CancelledError:
            self.cancelled_sends += 1
            raise
        finally:
            self.in_flight -= 1

    async def aclose(self) -> None:
        self.closed = True


async def wait_for_calls(transport: FakeTransport, count: int, timeout: float = 2.0) -> None:
    """Wait until the transport has been called ``count`` times."""

    async def _poll() -> None:
        while len(transport.calls) < count:
            await asyncio.sleep(0.001)

    await asyncio.wait_for(_poll(), timeout=timeout)


# -----------------------------------------------------------------------------
# Configuration Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def wiki_config() -> WikiConfig:
    """Wiki configuration without politeness delay and with tiny backoff."""
    return WikiConfig(request_interval_ms=0, retry_delay_ms=1)


@pytest.fixture
def settings(wiki_config: WikiConfig) -> Settings:
    """Settings isolated from the environment and .env files."""
    return Settings(_env_file=None, wiki=wiki_config, contact_email="tests@example.com")


# -----------------------------------------------------------------------------
# Dispatcher Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def fake_transport() -> FakeTransport:
    """Transport returning ``{}`` until responses are scripted."""
    return FakeTransport()


@pytest.fixture
async def dispatcher(fake_transport: FakeTransport, wiki_config: WikiConfig):
    """Dispatcher over the fake transport, closed after the test."""
    dispatcher = RequestDispatcher(fake_transport, wiki_config, user_agent=TEST_USER_AGENT)
    yield dispatcher
    await dispatcher.close()


# -----------------------------------------------------------------------------
# Logging Fixtures
# -----------------------------------------------------------------------------
@pytest.fixture
def log_records() -> Generator[list[dict[str, Any]], None, None]:
    """Capture loguru records emitted during the test."""
    records: list[dict[str, Any]] = []
    handler_id = logger.add(lambda message: records.append(message.record), level="DEBUG")
    yield records
    logger.remove(handler_id)


def messages_at(records: list[dict[str, Any]], level: str) -> list[str]:
    """Messages of captured records at exactly ``level``."""
    return [r["message"] for r in records if r["level"].name == level]

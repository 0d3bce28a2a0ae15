"""HTTP transport for the wiki API.

The dispatcher talks to the network only through the ``Transport``
protocol. ``HttpTransport`` implements it with ``httpx.AsyncClient``.
A transmission is aborted mid-flight by cancelling the task running
``send``; httpx closes the connection when that happens.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Protocol

import httpx

from yugipedia_fetch.logging import get_logger

logger = get_logger(__name__)


@dataclass(frozen=True)
class TransportResult:
    """Outcome of one transmission."""

    success: bool
    status_code: int | None = None
    body: str = ""
    error: str | None = None

    @property
    def status_info(self) -> str:
        """Short status description for log lines."""
        status = str(self.status_code) if self.status_code is not None else "no response"
        if self.error:
            return f"{status}: {self.error}"
        return status


class Transport(Protocol):
    """Anything that can send a GET request and report the outcome."""

    async def send(
        self,
        url: str,
        *,
        headers: dict[str, str],
        timeout: float,
    ) -> TransportResult: ...

    async def aclose(self) -> None: ...


class HttpTransport:
    """``Transport`` backed by ``httpx.AsyncClient``.

    Usage:
        async with HttpTransport() as transport:
            result = await transport.send(url, headers=headers, timeout=30)
            if result.success:
                print(result.body)
    """

    def __init__(self, client: httpx.AsyncClient | None = None) -> None:
        """Initialize the transport.

        Args:
            client: Optional preconfigured client (e.g. with a mock transport).
                    A client passed in is not closed by ``aclose()``.
        """
        self._client = client
        self._owns_client = client is None

    @property
    def _http(self) -> httpx.AsyncClient:
        """Get or create the httpx client instance."""
        if self._client is None:
            self._client = httpx.AsyncClient(follow_redirects=True)
        return self._client

    async def send(
        self,
        url: str,
        *,
        headers: dict[str, str],
        timeout: float,
    ) -> TransportResult:
        """Send one GET request.

        Network errors and non-2xx statuses are reported through the
        result, never raised.
        """
        logger.debug("GET {}", url)
        try:
            response = await self._http.get(url, headers=headers, timeout=timeout)
        except httpx.TimeoutException as e:
            return TransportResult(success=False, error=f"timed out ({type(e).__name__})")
        except httpx.HTTPError as e:
            return TransportResult(success=False, error=f"{type(e).__name__}: {e}")

        if not response.is_success:
            return TransportResult(
                success=False,
                status_code=response.status_code,
                body=response.text,
                error=response.reason_phrase,
            )
        return TransportResult(success=True, status_code=response.status_code, body=response.text)

    async def aclose(self) -> None:
        """Close the underlying HTTP client if this transport created it."""
        if self._client is not None and self._owns_client:
            await self._client.aclose()
        self._client = None

    async def __aenter__(self) -> HttpTransport:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.aclose()

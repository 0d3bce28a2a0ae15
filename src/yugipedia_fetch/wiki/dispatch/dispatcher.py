"""Serialized, throttled request dispatcher.

This module provides the single-worker engine every wiki call goes
through. It guarantees:

- At most one transport call in flight per dispatcher
- FIFO service order
- A politeness delay before every transmitted request
- Bounded retries with exponential backoff
- Cooperative cancellation of the in-flight call and the whole queue
"""

from __future__ import annotations

import asyncio
import uuid
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import IntEnum

from yugipedia_fetch.config import WikiConfig, get_settings
from yugipedia_fetch.logging import get_logger
from yugipedia_fetch.wiki.transport import HttpTransport, Transport, TransportResult

from .cancellation import CancellationToken
from .retry import RetryPolicy

logger = get_logger(__name__)

ResponseHandler = Callable[[str], str | None]
"""Decodes and validates a response body.

Returns a retry reason, or None (or "") when the response was accepted.
"""


class RequestState(IntEnum):
    """State of a queued request."""

    PENDING = 1
    IN_FLIGHT = 2
    COMPLETED = 3
    FAILED = 4  # Retries exhausted
    CANCELLED = 5


@dataclass(eq=False)
class QueuedRequest:
    """A logical request waiting to be serviced."""

    endpoint: str
    handler: ResponseHandler
    token: CancellationToken
    future: asyncio.Future[RequestState]
    id: str = field(default_factory=lambda: str(uuid.uuid4()))
    state: RequestState = RequestState.PENDING
    created_at: datetime = field(default_factory=lambda: datetime.now(UTC))
    started_at: datetime | None = None
    completed_at: datetime | None = None
    aborted: bool = False
    unregister_cancel: Callable[[], None] | None = field(default=None, repr=False)

    @property
    def is_cancelled(self) -> bool:
        """Whether this request must stop without further attempts."""
        return self.aborted or self.token.is_cancelled or self.future.done()

    def resolve(self, state: RequestState) -> None:
        """Record the final state and resolve the caller's future."""
        self.state = state
        self.completed_at = datetime.now(UTC)
        if self.unregister_cancel is not None:
            self.unregister_cancel()
            self.unregister_cancel = None
        if not self.future.done():
            self.future.set_result(state)


class RequestDispatcher:
    """Single-flight FIFO dispatcher for wiki API requests.

    Usage:
        async with RequestDispatcher() as dispatcher:
            token = CancellationToken()

            def handler(body: str) -> str | None:
                ...  # decode; return a reason to retry, None when done

            state = await dispatcher.submit(endpoint, handler, token)

            # Or enqueue and await the future later
            future = dispatcher.enqueue(endpoint, handler, token)

            # Cancel everything
            dispatcher.abort(token)
    """

    def __init__(
        self,
        transport: Transport | None = None,
        config: WikiConfig | None = None,
        *,
        user_agent: str | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            transport: Transport used to send requests. An ``HttpTransport``
                       is created (and closed by ``close()``) when omitted.
            config: Wiki configuration (uses settings if not provided)
            user_agent: User-Agent header (uses settings if not provided)
        """
        self._config = config or get_settings().wiki
        self._transport: Transport = transport or HttpTransport()
        self._owns_transport = transport is None
        self._headers = {
            "User-Agent": user_agent or get_settings().user_agent,
            "Accept": "application/json",
            "Accept-Encoding": "gzip",
        }

        self._queue: deque[QueuedRequest] = deque()
        self._servicing = False
        self._worker_task: asyncio.Task[None] | None = None
        self._current: QueuedRequest | None = None
        self._in_flight: asyncio.Task[TransportResult] | None = None
        self._backoff: asyncio.Future[bool] | None = None
        self._closed = False

        # Statistics
        self._total_submitted = 0
        self._total_completed = 0
        self._total_failed = 0
        self._total_cancelled = 0
        self._total_transmissions = 0

    @property
    def config(self) -> WikiConfig:
        """Get the wiki configuration."""
        return self._config

    @property
    def headers(self) -> dict[str, str]:
        """Headers sent with every request."""
        return dict(self._headers)

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------
    async def close(self) -> None:
        """Abort outstanding work, stop the worker and release the transport."""
        if self._closed:
            return
        self._closed = True

        self.abort()

        if self._worker_task is not None:
            self._worker_task.cancel()
            try:
                await self._worker_task
            except asyncio.CancelledError:
                pass
            self._worker_task = None

        if self._owns_transport:
            await self._transport.aclose()

        logger.debug(
            "Request dispatcher closed (completed={}, failed={}, cancelled={})",
            self._total_completed,
            self._total_failed,
            self._total_cancelled,
        )

    async def __aenter__(self) -> RequestDispatcher:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    @property
    def is_closed(self) -> bool:
        return self._closed

    @property
    def is_servicing(self) -> bool:
        """Whether the worker is currently servicing the queue."""
        return self._servicing

    # -------------------------------------------------------------------------
    # Request Submission
    # -------------------------------------------------------------------------
    def enqueue(
        self,
        endpoint: str,
        handler: ResponseHandler,
        token: CancellationToken,
    ) -> asyncio.Future[RequestState]:
        """Add a request to the queue and start the worker if it is idle.

        Args:
            endpoint: Endpoint relative to the configured base URL
            handler: Decodes the body and returns a retry reason or None
            token: Cancellation token of the owning operation

        Returns:
            Future resolving to COMPLETED, FAILED or CANCELLED
        """
        future: asyncio.Future[RequestState] = asyncio.get_running_loop().create_future()
        request = QueuedRequest(endpoint=endpoint, handler=handler, token=token, future=future)
        self._total_submitted += 1

        if self._closed:
            logger.warning("Dispatcher is closed, cancelling request for {}", endpoint)
            self._finish(request, RequestState.CANCELLED)
            return future

        if token.is_cancelled:
            self._finish(request, RequestState.CANCELLED)
            return future

        self._queue.append(request)
        request.unregister_cancel = token.register(lambda: self._cancel_queued(request))
        logger.debug(
            "Enqueued request {} for {} (queue_size={})",
            request.id[:8],
            endpoint,
            len(self._queue),
        )

        if self._worker_task is None or self._worker_task.done():
            self._worker_task = asyncio.create_task(self._worker_loop())

        return future

    async def submit(
        self,
        endpoint: str,
        handler: ResponseHandler,
        token: CancellationToken,
    ) -> RequestState:
        """Enqueue a request and wait for its outcome.

        Never raises for request failures; the outcome is the return value.
        """
        return await self.enqueue(endpoint, handler, token)

    def abort(self, token: CancellationToken | None = None) -> int:
        """Drain the queue, cancel the token and stop the in-flight call or retry wait.

        Args:
            token: Token of the operation being aborted

        Returns:
            Number of queued requests resolved as cancelled
        """
        drained = 0
        while self._queue:
            self._finish(self._queue.popleft(), RequestState.CANCELLED)
            drained += 1

        if token is not None:
            token.cancel()

        if self._current is not None:
            self._current.aborted = True
        for waiter in (self._in_flight, self._backoff):
            if waiter is not None and not waiter.done():
                waiter.cancel()

        if drained:
            logger.info("Aborted: cancelled {} queued request(s)", drained)
        return drained

    # -------------------------------------------------------------------------
    # Worker Loop
    # -------------------------------------------------------------------------
    async def _worker_loop(self) -> None:
        """Service the queue one request at a time until it is empty."""
        self._servicing = True
        try:
            while self._queue:
                head = self._queue[0]
                if head.is_cancelled:
                    self._queue.popleft()
                    self._finish(head, RequestState.CANCELLED)
                    continue

                # The wiki doesn't allow more than one request per second
                if self._config.request_interval_ms > 0:
                    await asyncio.sleep(self._config.request_interval_ms / 1000)

                if not self._queue:
                    continue
                request = self._queue.popleft()
                if request.is_cancelled:
                    self._finish(request, RequestState.CANCELLED)
                    continue

                self._current = request
                try:
                    state = await self._execute_request(request)
                except asyncio.CancelledError:
                    self._finish(request, RequestState.CANCELLED)
                    raise
                finally:
                    self._current = None
                self._finish(request, state)
        finally:
            self._servicing = False

    async def _execute_request(self, request: QueuedRequest) -> RequestState:
        """Run the retry loop of one request."""
        url = self._config.url_for(request.endpoint)
        policy = RetryPolicy(
            max_attempts=self._config.max_attempts,
            base_delay_ms=self._config.retry_delay_ms,
        )
        request.state = RequestState.IN_FLIGHT
        request.started_at = datetime.now(UTC)

        try:
            while True:
                if request.is_cancelled:
                    return RequestState.CANCELLED

                result = await self._transmit(url, request.token)
                if result is None or request.is_cancelled:
                    return RequestState.CANCELLED

                reason: str | None = None
                if result.success:
                    # The API reports success even when the body carries an
                    # error, so the handler decides whether to retry.
                    reason = request.handler(result.body)
                    if not reason:
                        return RequestState.COMPLETED
                    logger.warning(
                        "Attempt {}/{} for {} will be retried: {}",
                        policy.attempt,
                        policy.max_attempts,
                        url,
                        reason,
                    )
                else:
                    logger.warning(
                        "Attempt {}/{} [{}] failed for {}",
                        policy.attempt,
                        policy.max_attempts,
                        result.status_info,
                        url,
                    )

                if not policy.record_failure(reason):
                    suffix = f": {policy.last_retry_message}" if policy.last_retry_message else "."
                    logger.error("Download for [{}] failed{}", url, suffix)
                    return RequestState.FAILED

                if not await self._wait_backoff(request.token, policy.next_delay()):
                    return RequestState.CANCELLED
        except Exception:
            logger.exception("Unexpected error while handling {}", url)
            return RequestState.FAILED

    async def _transmit(self, url: str, token: CancellationToken) -> TransportResult | None:
        """Send one attempt; return None if it was aborted mid-flight."""
        task = asyncio.create_task(
            self._transport.send(
                url,
                headers=self._headers,
                timeout=self._config.timeout_seconds,
            )
        )
        self._in_flight = task
        self._total_transmissions += 1
        unregister = token.register(task.cancel)
        try:
            await asyncio.wait({task})
        finally:
            unregister()
            self._in_flight = None
            if not task.done():
                task.cancel()

        if task.cancelled():
            return None
        return task.result()

    async def _wait_backoff(self, token: CancellationToken, seconds: float) -> bool:
        """Wait between attempts; False if the token or an abort cut it short."""
        wait = asyncio.ensure_future(token.sleep(seconds))
        self._backoff = wait
        try:
            await asyncio.wait({wait})
        finally:
            self._backoff = None
            if not wait.done():
                wait.cancel()

        return not wait.cancelled() and wait.result()

    def _cancel_queued(self, request: QueuedRequest) -> None:
        """Resolve a queued request as soon as its token is cancelled."""
        try:
            self._queue.remove(request)
        except ValueError:
            return  # Already dequeued
        self._finish(request, RequestState.CANCELLED)

    def _finish(self, request: QueuedRequest, state: RequestState) -> None:
        request.resolve(state)
        if state == RequestState.COMPLETED:
            self._total_completed += 1
        elif state == RequestState.FAILED:
            self._total_failed += 1
        else:
            self._total_cancelled += 1

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    @property
    def queue_size(self) -> int:
        """Number of requests waiting to be serviced."""
        return len(self._queue)

    @property
    def is_idle(self) -> bool:
        """True if nothing is queued or being serviced."""
        return not self._queue and not self._servicing

    def get_stats(self) -> dict[str, int | bool]:
        """Get dispatcher statistics.

        Returns:
            Dict with queue_size, total_submitted, total_completed, etc.
        """
        return {
            "queue_size": len(self._queue),
            "is_servicing": self._servicing,
            "is_closed": self._closed,
            "total_submitted": self._total_submitted,
            "total_completed": self._total_completed,
            "total_failed": self._total_failed,
            "total_cancelled": self._total_cancelled,
            "total_transmissions": self._total_transmissions,
        }

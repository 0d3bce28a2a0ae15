"""Cooperative cancellation signal.

One token is shared by every request of a logical operation (for example
one pagination run). Cancelling it stops waits, aborts the in-flight
transmission through registered callbacks, and makes queued requests
resolve as cancelled.
"""

from __future__ import annotations

import asyncio
from collections.abc import Callable

from yugipedia_fetch.logging import get_logger

logger = get_logger(__name__)


class CancellationToken:
    """Signal shared between a caller and the dispatcher.

    Usage:
        token = CancellationToken()
        state = await dispatcher.submit(endpoint, handler, token)

        # From another coroutine (or a signal handler)
        token.cancel()
    """

    def __init__(self) -> None:
        self._event = asyncio.Event()
        self._callbacks: list[Callable[[], object]] = []

    @property
    def is_cancelled(self) -> bool:
        """Whether cancellation has been requested."""
        return self._event.is_set()

    def cancel(self) -> None:
        """Request cancellation and run registered callbacks once."""
        if self._event.is_set():
            return
        self._event.set()

        callbacks, self._callbacks = self._callbacks, []
        for callback in callbacks:
            try:
                callback()
            except Exception as e:
                logger.warning("Cancellation callback error: {}", e)

    def register(self, callback: Callable[[], object]) -> Callable[[], None]:
        """Run ``callback`` when the token is cancelled.

        Runs immediately if the token is already cancelled.

        Returns:
            A function that unregisters the callback
        """
        if self._event.is_set():
            callback()
            return lambda: None

        self._callbacks.append(callback)

        def unregister() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return unregister

    async def wait(self) -> None:
        """Wait until the token is cancelled."""
        await self._event.wait()

    async def sleep(self, seconds: float) -> bool:
        """Sleep unless cancelled first.

        Args:
            seconds: Time to wait

        Returns:
            True if the full delay elapsed, False if cancellation cut it short
        """
        if self._event.is_set():
            return False
        try:
            await asyncio.wait_for(self._event.wait(), timeout=seconds)
        except TimeoutError:
            return True
        return False

"""Retry bookkeeping for a single logical request."""

from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class RetryPolicy:
    """Attempt counter and exponential backoff for one logical request.

    The wait before attempt ``k + 1`` is ``base_delay_ms * 2 ** (k - 1)``.

    Usage:
        policy = RetryPolicy(max_attempts=3, base_delay_ms=500)
        while True:
            ...  # attempt policy.attempt
            if not policy.record_failure(reason):
                break  # exhausted
            await token.sleep(policy.next_delay())
    """

    max_attempts: int = 3
    base_delay_ms: int = 500
    attempt: int = 1
    wait_ms: int = field(init=False)
    last_retry_message: str = ""

    def __post_init__(self) -> None:
        self.wait_ms = self.base_delay_ms

    @property
    def exhausted(self) -> bool:
        """True once every allowed attempt has been used."""
        return self.attempt > self.max_attempts

    def record_failure(self, reason: str | None = None) -> bool:
        """Count a failed attempt.

        Args:
            reason: Optional retry reason reported for this attempt

        Returns:
            True if another attempt is allowed
        """
        if reason:
            self.last_retry_message = reason
        self.attempt += 1
        return not self.exhausted

    def next_delay(self) -> float:
        """Return the current backoff in seconds and double it for the next failure."""
        delay = self.wait_ms / 1000
        self.wait_ms *= 2
        return delay

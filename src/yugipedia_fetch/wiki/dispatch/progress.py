"""Progress tracking for paginated fetches.

This module provides observable progress tracking for long-running
wiki operations like walking every member of a category.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime
from enum import StrEnum

logger = logging.getLogger(__name__)


class ProgressState(StrEnum):
    """State of a tracked operation."""

    PENDING = "pending"
    IN_PROGRESS = "in_progress"
    STOPPED = "stopped"
    CANCELLED = "cancelled"


@dataclass
class ProgressUpdate:
    """A progress update event."""

    title: str
    total: int
    current: int
    state: ProgressState
    started_at: datetime | None = None
    last_update: datetime | None = None
    elapsed_seconds: float = 0.0

    @property
    def remaining(self) -> int:
        """Number of steps remaining."""
        return max(0, self.total - self.current)

    @property
    def progress_percent(self) -> float:
        """Completion percentage (0-100)."""
        if self.total == 0:
            return 100.0
        return (self.current / self.total) * 100


ProgressCallback = Callable[[ProgressUpdate], None]


class ProgressTracker:
    """Observable current/total counter pair with a growing total.

    ``current`` only ever increases. Whenever it overtakes ``total`` the
    total is bumped to ``current + 1``, so an estimate that was too small
    never produces a value above 100%. ``stop()`` clamps the total to the
    current count.

    Counters are plain ints mutated on the event loop thread; a UI polling
    from another thread reads them without taking a lock.

    Usage:
        tracker = ProgressTracker("Get All Pages", total=3)
        tracker.on_progress(lambda update: print(f"{update.progress_percent}%"))

        tracker.start()
        for page in pages:
            fetch(page)
            tracker.tick()
        tracker.stop()
    """

    def __init__(self, title: str = "operation", total: int = 0) -> None:
        """Initialize the progress tracker.

        Args:
            title: Title shown by progress consumers
            total: Estimated number of steps
        """
        self._title = title
        self._total = max(0, total)
        self._current = 0
        self._state = ProgressState.PENDING
        self._started_at: datetime | None = None
        self._last_update: datetime | None = None
        self._start_time: float | None = None
        self._callbacks: list[ProgressCallback] = []

    # -------------------------------------------------------------------------
    # Properties
    # -------------------------------------------------------------------------
    @property
    def title(self) -> str:
        return self._title

    @property
    def total(self) -> int:
        return self._total

    @property
    def current(self) -> int:
        return self._current

    @property
    def state(self) -> ProgressState:
        return self._state

    @property
    def started_at(self) -> datetime | None:
        return self._started_at

    @property
    def last_update(self) -> datetime | None:
        return self._last_update

    @property
    def progress(self) -> float:
        """Completed fraction (0.0-1.0)."""
        total = self._total
        if total == 0:
            return 1.0
        return self._current / total

    @property
    def is_running(self) -> bool:
        """Whether the operation is currently in progress."""
        return self._state == ProgressState.IN_PROGRESS

    @property
    def is_done(self) -> bool:
        """Whether the operation has been stopped or cancelled."""
        return self._state in (ProgressState.STOPPED, ProgressState.CANCELLED)

    @property
    def elapsed_seconds(self) -> float:
        """Elapsed time since start in seconds."""
        if self._start_time is None:
            return 0.0
        return time.monotonic() - self._start_time

    # -------------------------------------------------------------------------
    # Callbacks
    # -------------------------------------------------------------------------
    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a progress callback.

        Callback receives ProgressUpdate on every change.

        Args:
            callback: Function to call on progress updates
        """
        self._callbacks.append(callback)

    def _notify(self) -> None:
        """Notify all registered callbacks."""
        update = self.get_update()
        for callback in self._callbacks:
            try:
                callback(update)
            except Exception as e:
                logger.warning("Progress callback error: %s", e)

    # -------------------------------------------------------------------------
    # State Management
    # -------------------------------------------------------------------------
    def start(self) -> None:
        """Mark operation as started."""
        self._state = ProgressState.IN_PROGRESS
        self._started_at = datetime.now(UTC)
        self._last_update = self._started_at
        self._start_time = time.monotonic()
        logger.info("Started %s (total=%d)", self._title, self._total)
        self._notify()

    def stop(self) -> None:
        """Mark operation as finished and clamp total to current."""
        self._finish(ProgressState.STOPPED)
        logger.info(
            "Stopped %s at %d steps in %.1fs",
            self._title,
            self._current,
            self.elapsed_seconds,
        )
        self._notify()

    def cancel(self) -> None:
        """Mark operation as cancelled and clamp total to current."""
        self._finish(ProgressState.CANCELLED)
        logger.info("Cancelled %s at %d steps", self._title, self._current)
        self._notify()

    def _finish(self, state: ProgressState) -> None:
        if not self._title.endswith(" Stopped"):
            self._title = f"{self._title} Stopped"
        self._state = state
        self._total = self._current
        self._last_update = datetime.now(UTC)

    # -------------------------------------------------------------------------
    # Progress Updates
    # -------------------------------------------------------------------------
    def tick(self, count: int = 1) -> None:
        """Advance the current count, growing the total if it was overtaken.

        Args:
            count: Number of steps completed (default 1)
        """
        self._current += count
        self._last_update = datetime.now(UTC)
        if self._current > self._total:
            self._total = self._current + 1
        logger.debug(
            "%s progress: %d/%d (%.1f%%)",
            self._title,
            self._current,
            self._total,
            self.get_update().progress_percent,
        )
        self._notify()

    def add_total(self, count: int = 1) -> None:
        """Add to total count (for dynamic totals).

        Args:
            count: Number of steps to add to total
        """
        self._total += count
        self._notify()

    # -------------------------------------------------------------------------
    # Query Methods
    # -------------------------------------------------------------------------
    def get_update(self) -> ProgressUpdate:
        """Get current progress as an update object."""
        return ProgressUpdate(
            title=self._title,
            total=self._total,
            current=self._current,
            state=self._state,
            started_at=self._started_at,
            last_update=self._last_update,
            elapsed_seconds=self.elapsed_seconds,
        )

"""Request dispatching for the wiki API.

This module serializes every wiki call behind one polite worker.

Components:
- RequestDispatcher: Single-flight FIFO queue with politeness delay
- RetryPolicy: Attempt counter and exponential backoff
- CancellationToken: Cooperative cancellation shared by one operation
- ProgressTracker: Observable progress reporting
"""

from .cancellation import CancellationToken
from .dispatcher import QueuedRequest, RequestDispatcher, RequestState, ResponseHandler
from .progress import ProgressCallback, ProgressState, ProgressTracker, ProgressUpdate
from .retry import RetryPolicy

__all__ = [
    # Cancellation
    "CancellationToken",
    # Dispatching
    "QueuedRequest",
    "RequestDispatcher",
    "RequestState",
    "ResponseHandler",
    # Retry
    "RetryPolicy",
    # Progress tracking
    "ProgressCallback",
    "ProgressState",
    "ProgressTracker",
    "ProgressUpdate",
]

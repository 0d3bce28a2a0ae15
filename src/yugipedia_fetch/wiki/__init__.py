"""Yugipedia API client module.

This module provides:
- WikiClient: Async client for category listings and page content
- Request dispatching: RequestDispatcher, CancellationToken, RetryPolicy
- Progress tracking: ProgressTracker, ProgressUpdate
- Pagination: PaginationDriver over category members
- Response documents: CategoryInfoResponse, CategoryMembersResponse, ParseResponse
"""

from .client import WikiClient
from .dispatch import (
    CancellationToken,
    ProgressCallback,
    ProgressState,
    ProgressTracker,
    ProgressUpdate,
    RequestDispatcher,
    RequestState,
    ResponseHandler,
    RetryPolicy,
)
from .exceptions import InvalidEndpointError, ResponseDecodeError, WikiClientError
from .pagination import UNLIMITED_PAGES, PaginationDriver, estimate_total_pages
from .responses import (
    CategoryInfoResponse,
    CategoryMember,
    CategoryMembersResponse,
    ParseResponse,
    ResponseEnvelope,
)
from .transport import HttpTransport, Transport, TransportResult
from .validation import check_response, is_rate_limited

__all__ = [
    # Client
    "WikiClient",
    # Exceptions
    "InvalidEndpointError",
    "ResponseDecodeError",
    "WikiClientError",
    # Dispatching
    "CancellationToken",
    "RequestDispatcher",
    "RequestState",
    "ResponseHandler",
    "RetryPolicy",
    # Progress tracking
    "ProgressCallback",
    "ProgressState",
    "ProgressTracker",
    "ProgressUpdate",
    # Pagination
    "UNLIMITED_PAGES",
    "PaginationDriver",
    "estimate_total_pages",
    # Responses
    "CategoryInfoResponse",
    "CategoryMember",
    "CategoryMembersResponse",
    "ParseResponse",
    "ResponseEnvelope",
    "check_response",
    "is_rate_limited",
    # Transport
    "HttpTransport",
    "Transport",
    "TransportResult",
]

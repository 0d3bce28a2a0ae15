"""Cursor-based pagination over category listings.

The driver walks ``list=categorymembers`` through the dispatcher,
following the server's ``cmcontinue`` cursor until it runs out or the
page budget is spent, and reports progress per page request.
"""

from __future__ import annotations

import math
import sys
from dataclasses import dataclass
from pathlib import Path

from yugipedia_fetch.logging import bind_operation, get_logger

from . import endpoints
from .dispatch import (
    CancellationToken,
    ProgressCallback,
    ProgressTracker,
    RequestDispatcher,
    RequestState,
    ResponseHandler,
)
from .exceptions import InvalidEndpointError
from .responses import (
    CategoryInfoResponse,
    CategoryMember,
    CategoryMembersResponse,
    try_decode_response,
)
from .validation import check_response

logger = get_logger(__name__)

# No practical limit; one below the max so that "+ 1" for the first request stays in range
UNLIMITED_PAGES = sys.maxsize - 1

PROGRESS_TITLE = "Get All Pages"


@dataclass
class PageCursor:
    """Continuation state of one pagination run.

    ``continuation_token`` always comes from the server; an empty token
    means there are no more pages to request.
    """

    continuation_token: str = ""
    pages_remaining: int = 0

    @property
    def exhausted(self) -> bool:
        return not self.continuation_token


def require_category(endpoint: str) -> None:
    """Raise InvalidEndpointError unless the endpoint names a category."""
    if not endpoints.is_category(endpoint):
        raise InvalidEndpointError(
            f"The endpoint [{endpoint}] doesn't start with [{endpoints.CATEGORY_PREFIX}], "
            f"only endpoints that start with [{endpoints.CATEGORY_PREFIX}] are allowed."
        )


def estimate_total_pages(item_count: int, max_additional_pages: int, page_size: int) -> int:
    """Estimate how many listing requests a category needs.

    Args:
        item_count: Members reported by the metadata query (-1 if unknown)
        max_additional_pages: Page budget after the first request
        page_size: Members per listing request

    Returns:
        ``min(max_additional_pages + 1, ceil(item_count / page_size))``, at least 0
    """
    pages_needed = math.ceil(item_count / page_size) if item_count > 0 else 0
    return max(0, min(max_additional_pages + 1, pages_needed))


class PaginationDriver:
    """Fetches every member of a category through a RequestDispatcher.

    Usage:
        driver = PaginationDriver(dispatcher)
        driver.on_progress(lambda update: print(update.current, update.total))

        token = CancellationToken()
        members = await driver.get_all_pages("Category:OCG_cards", token)
        if members is None:
            ...  # invalid endpoint or cancelled
    """

    def __init__(
        self,
        dispatcher: RequestDispatcher,
        *,
        raw_response_path: str | Path | None = None,
    ) -> None:
        """Initialize the driver.

        Args:
            dispatcher: Dispatcher that sends every request
            raw_response_path: Optional debug sink for raw response bodies
        """
        self._dispatcher = dispatcher
        self._api_path = dispatcher.config.api_path
        self._page_size = dispatcher.config.page_size
        self._raw_response_path = raw_response_path
        self._progress_callbacks: list[ProgressCallback] = []

    def on_progress(self, callback: ProgressCallback) -> None:
        """Register a callback attached to the tracker of every future run."""
        self._progress_callbacks.append(callback)

    # -------------------------------------------------------------------------
    # Metadata
    # -------------------------------------------------------------------------
    async def get_page_count(self, endpoint: str, token: CancellationToken) -> int:
        """Get the number of members of a category.

        Returns:
            The member count, or -1 if it could not be retrieved
        """
        try:
            require_category(endpoint)
        except InvalidEndpointError as e:
            logger.error("{}", e)
            return -1

        count = -1
        request_endpoint = endpoints.category_info(endpoint, self._api_path)

        def handle(body: str) -> str | None:
            nonlocal count
            response = try_decode_response(
                CategoryInfoResponse,
                endpoint,
                body,
                raw_response_path=self._raw_response_path,
            )
            if response is None:
                return None
            if reason := check_response(response):
                return reason
            info = response.category_info
            if info is None:
                logger.error(
                    "The response content was null. {}",
                    self._dispatcher.config.page_url(endpoint),
                )
                return None
            count = info.pages
            return None

        await self._dispatcher.submit(request_endpoint, handle, token)
        return count

    # -------------------------------------------------------------------------
    # Listing
    # -------------------------------------------------------------------------
    async def get_all_pages(
        self,
        endpoint: str,
        token: CancellationToken,
        max_additional_pages: int = UNLIMITED_PAGES,
    ) -> list[CategoryMember] | None:
        """Fetch every member of a category, page by page.

        Args:
            endpoint: Category title, e.g. ``Category:OCG_cards``
            token: Cancellation token shared by every request of this run
            max_additional_pages: Pages to request after the first one

        Returns:
            Members in server order (duplicates kept), or None if the
            endpoint is not a category or the run was cancelled
        """
        log = bind_operation("get_all_pages", endpoint)
        try:
            require_category(endpoint)
        except InvalidEndpointError as e:
            log.error("{}", e)
            return None

        item_count = await self.get_page_count(endpoint, token)
        progress = ProgressTracker(
            PROGRESS_TITLE,
            total=estimate_total_pages(item_count, max_additional_pages, self._page_size),
        )
        for callback in self._progress_callbacks:
            progress.on_progress(callback)
        progress.start()

        members: list[CategoryMember] = []
        cursor = PageCursor(pages_remaining=max_additional_pages)
        while True:
            request_endpoint = endpoints.category_members(
                endpoint, cursor.continuation_token, self._api_path
            )
            # Only a successfully handled page may set the next cursor
            cursor.continuation_token = ""
            state = await self._dispatcher.submit(
                request_endpoint,
                self._listing_handler(endpoint, members, cursor),
                token,
            )
            progress.tick()

            if state == RequestState.CANCELLED:
                progress.cancel()
                log.info("Cancelled after {} member(s)", len(members))
                return None
            if cursor.exhausted:
                break

        progress.stop()
        log.info("Fetched {} member(s) of {}", len(members), endpoint)
        return members

    def _listing_handler(
        self,
        endpoint: str,
        members: list[CategoryMember],
        cursor: PageCursor,
    ) -> ResponseHandler:
        def handle(body: str) -> str | None:
            cursor.continuation_token = ""
            response = try_decode_response(
                CategoryMembersResponse,
                endpoint,
                body,
                raw_response_path=self._raw_response_path,
            )
            if response is None:
                return None
            if reason := check_response(response):
                return reason
            page = response.members
            if page is None:
                return f"Could not retrieve the [{endpoints.CATEGORY_MEMBERS}] from the response."
            members.extend(page)
            if cursor.pages_remaining > 0:
                cursor.pages_remaining -= 1
                cursor.continuation_token = response.continuation_token
            return None

        return handle

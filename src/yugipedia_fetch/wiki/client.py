"""Async Yugipedia API client.

This module provides the public operations of the package on top of
one RequestDispatcher: category size, category listing, and page
content as wikitext or rendered HTML.
"""

from __future__ import annotations

from yugipedia_fetch.config import Settings, get_settings
from yugipedia_fetch.logging import bind_endpoint

from . import endpoints
from .dispatch import CancellationToken, ProgressCallback, RequestDispatcher
from .pagination import UNLIMITED_PAGES, PaginationDriver
from .responses import CategoryMember, ParseResponse, try_decode_response
from .transport import Transport
from .validation import check_response


class WikiClient:
    """Async client for the Yugipedia MediaWiki API.

    Every call goes through one dispatcher, so at most one request is
    in flight and requests are spaced by the politeness delay.

    Usage:
        async with WikiClient() as client:
            token = CancellationToken()
            members = await client.get_all_pages("Category:OCG_cards", token)
            wikitext = await client.get_wikitext("Dark_Magician", token)

    Or without context manager:
        client = WikiClient()
        count = await client.get_page_count("Category:TCG_cards", token)
        await client.close()
    """

    def __init__(
        self,
        transport: Transport | None = None,
        settings: Settings | None = None,
        *,
        dispatcher: RequestDispatcher | None = None,
    ) -> None:
        """Initialize the client.

        Args:
            transport: Optional transport (an httpx transport is created if omitted)
            settings: Optional settings (uses cached settings if omitted)
            dispatcher: Optional existing dispatcher to share with other clients.
                        A shared dispatcher is not closed by ``close()``.
        """
        self._settings = settings or get_settings()
        self._owns_dispatcher = dispatcher is None
        self._dispatcher = dispatcher or RequestDispatcher(
            transport,
            self._settings.wiki,
            user_agent=self._settings.user_agent,
        )
        self._raw_response_path = self._settings.raw_response_path
        self._pagination = PaginationDriver(
            self._dispatcher,
            raw_response_path=self._raw_response_path,
        )

    @property
    def dispatcher(self) -> RequestDispatcher:
        """Access the underlying dispatcher."""
        return self._dispatcher

    @property
    def base_url(self) -> str:
        return self._dispatcher.config.base_url

    def endpoint_from_url(self, value: str) -> str:
        """Strip the wiki address from a full URL, leaving the endpoint."""
        return endpoints.endpoint_from_url(value, self.base_url)

    def on_progress(self, callback: ProgressCallback) -> None:
        """Receive progress updates of every paginated fetch."""
        self._pagination.on_progress(callback)

    def abort(self, token: CancellationToken) -> int:
        """Cancel ``token``, abort the in-flight request and drain the queue."""
        return self._dispatcher.abort(token)

    async def close(self) -> None:
        """Close the dispatcher if this client created it."""
        if self._owns_dispatcher:
            await self._dispatcher.close()

    async def __aenter__(self) -> WikiClient:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: object,
    ) -> None:
        await self.close()

    # -------------------------------------------------------------------------
    # Categories
    # -------------------------------------------------------------------------
    async def get_page_count(self, endpoint: str, token: CancellationToken) -> int:
        """Get the number of members in a category.

        Returns:
            Member count, or -1 if the endpoint is not a category or the
            request did not produce a count
        """
        return await self._pagination.get_page_count(endpoint, token)

    async def get_all_pages(
        self,
        endpoint: str,
        token: CancellationToken,
        max_additional_pages: int = UNLIMITED_PAGES,
    ) -> list[CategoryMember] | None:
        """Get all members of a category.

        See ``PaginationDriver.get_all_pages``.
        """
        return await self._pagination.get_all_pages(endpoint, token, max_additional_pages)

    # -------------------------------------------------------------------------
    # Page Content
    # -------------------------------------------------------------------------
    async def get_wikitext(self, endpoint: str, token: CancellationToken) -> str | None:
        """Get the source wikitext of a page (card data).

        Returns:
            The wikitext, or None if it could not be retrieved
        """
        return await self._get_parsed(
            endpoint,
            endpoints.parse_wikitext(endpoint, self._dispatcher.config.api_path),
            "wikitext",
            token,
        )

    async def get_html(self, endpoint: str, token: CancellationToken) -> str | None:
        """Get the rendered HTML of a page (set data).

        Returns:
            The HTML, or None if it could not be retrieved
        """
        return await self._get_parsed(
            endpoint,
            endpoints.parse_text(endpoint, self._dispatcher.config.api_path),
            "text",
            token,
        )

    async def _get_parsed(
        self,
        endpoint: str,
        request_endpoint: str,
        attribute: str,
        token: CancellationToken,
    ) -> str | None:
        content: str | None = None

        def handle(body: str) -> str | None:
            nonlocal content
            response = try_decode_response(
                ParseResponse,
                endpoint,
                body,
                raw_response_path=self._raw_response_path,
            )
            if response is None:
                return None
            if reason := check_response(response):
                return reason
            value = getattr(response.parse, attribute, None) if response.parse else None
            if value is None:
                bind_endpoint(endpoint).error(
                    "The response content was null. {}",
                    self._dispatcher.config.page_url(endpoint),
                )
                return None
            content = value
            return None

        await self._dispatcher.submit(request_endpoint, handle, token)
        return content

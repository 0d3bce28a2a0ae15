"""Endpoint construction for the MediaWiki API.

Every builder returns a path relative to the configured base URL,
e.g. ``api.php?action=query&list=categorymembers&...``.
"""

from __future__ import annotations

from urllib.parse import unquote, urlencode

CATEGORY_PREFIX = "Category:"
CATEGORY_MEMBERS = "categorymembers"

_FORMAT = {"format": "json", "formatversion": "2"}


def is_category(endpoint: str) -> bool:
    """Whether an endpoint names a category."""
    return endpoint.startswith(CATEGORY_PREFIX)


def endpoint_from_url(value: str, base_url: str) -> str:
    """Turn a full wiki URL (or a bare title) into an endpoint.

    ``https://yugipedia.com/wiki/Category:OCG_cards`` becomes
    ``Category:OCG_cards``.
    """
    value = value.strip()
    root = base_url.rstrip("/") + "/"
    for prefix in (root + "wiki/", root):
        if value.startswith(prefix):
            return unquote(value[len(prefix) :])
    return value


def _build(api_path: str, params: dict[str, str]) -> str:
    return f"{api_path}?{urlencode({**params, **_FORMAT})}"


def category_info(title: str, api_path: str = "api.php") -> str:
    """Metadata query returning the member count of a category."""
    return _build(api_path, {"action": "query", "prop": "categoryinfo", "titles": title})


def category_members(title: str, cursor: str = "", api_path: str = "api.php") -> str:
    """Listing query for one page of category members."""
    params = {
        "action": "query",
        "list": CATEGORY_MEMBERS,
        "cmlimit": "max",
        "cmtitle": title,
    }
    if cursor:
        params["cmcontinue"] = cursor
    return _build(api_path, params)


def parse_wikitext(page: str, api_path: str = "api.php") -> str:
    """Content query returning the source wikitext of a page."""
    return _build(api_path, {"action": "parse", "prop": "wikitext", "page": page})


def parse_text(page: str, api_path: str = "api.php") -> str:
    """Content query returning the rendered HTML of a page."""
    return _build(api_path, {"action": "parse", "prop": "text", "page": page})

"""Canned wiki API payloads for tests."""

from .wiki_responses import (
    CATEGORY_INFO_MISSING,
    ERROR_MISSING_TITLE,
    RATE_LIMITED,
    RATE_LIMITED_KEY,
    category_info,
    category_members,
    parse_html,
    parse_wikitext,
)

__all__ = [
    "CATEGORY_INFO_MISSING",
    "ERROR_MISSING_TITLE",
    "RATE_LIMITED",
    "RATE_LIMITED_KEY",
    "category_info",
    "category_members",
    "parse_html",
    "parse_wikitext",
]

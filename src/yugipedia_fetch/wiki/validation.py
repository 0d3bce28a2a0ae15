"""Checks for errors and warnings embedded in successful responses."""

from __future__ import annotations

from typing import Any

from yugipedia_fetch.logging import get_logger

from .responses import ResponseEnvelope

logger = get_logger(__name__)

RATE_LIMITED_ERROR = "ratelimited"
RATE_LIMITED_MESSAGE = "API rate limit reached."


def is_rate_limited(error: dict[str, Any]) -> bool:
    """Whether an error map reports rate limiting.

    Accepts the key itself or MediaWiki's ``{"code": "ratelimited"}`` form.
    """
    return RATE_LIMITED_ERROR in error or error.get("code") == RATE_LIMITED_ERROR


def _format_map(values: dict[str, Any]) -> str:
    return "\n".join(f"{key}: {value}" for key, value in values.items())


def check_response(response: ResponseEnvelope) -> str | None:
    """Decide whether a decoded response should be retried.

    Only rate limiting triggers a retry. Other errors and all warnings
    are logged and left to the caller.

    Returns:
        The retry reason, or None if no retry is needed
    """
    if is_rate_limited(response.error):
        return RATE_LIMITED_MESSAGE
    if response.error:
        logger.error("{}", _format_map(response.error))
    if response.warnings:
        logger.warning("{}", _format_map(response.warnings))
    return None

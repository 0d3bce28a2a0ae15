"""Pydantic schemas for parsing wiki API responses.

These schemas map to MediaWiki API responses requested with
``format=json&formatversion=2``.
See: https://www.mediawiki.org/wiki/API:Main_page

All three documents share the ``error``/``warnings`` maps of
``ResponseEnvelope``; the validator only ever looks at those.
"""

from __future__ import annotations

from pathlib import Path
from typing import Any, TypeVar

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from yugipedia_fetch.logging import get_logger

from .exceptions import ResponseDecodeError

logger = get_logger(__name__)


class ResponseEnvelope(BaseModel):
    """Error and warning maps present on every API response."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    error: dict[str, Any] = Field(default_factory=dict, description="API error map")
    warnings: dict[str, Any] = Field(default_factory=dict, description="API warnings map")


# -----------------------------------------------------------------------------
# prop=categoryinfo
# -----------------------------------------------------------------------------
class CategoryInfo(BaseModel):
    """Category statistics."""

    pages: int = Field(default=0, description="Number of member pages")


class CategoryInfoPage(BaseModel):
    """Page entry of a categoryinfo query."""

    title: str = Field(default="", description="Category title")
    categoryinfo: CategoryInfo | None = Field(default=None, description="Category statistics")


class CategoryInfoQuery(BaseModel):
    pages: list[CategoryInfoPage] = Field(default_factory=list)


class CategoryInfoResponse(ResponseEnvelope):
    """Response of ``action=query&prop=categoryinfo``."""

    query: CategoryInfoQuery | None = None

    @property
    def category_info(self) -> CategoryInfo | None:
        """Statistics of the first (only) requested category."""
        if self.query is None or not self.query.pages:
            return None
        return self.query.pages[0].categoryinfo


# -----------------------------------------------------------------------------
# list=categorymembers
# -----------------------------------------------------------------------------
class CategoryMember(BaseModel):
    """One member of a category listing."""

    title: str = Field(default="", description="Page title")


class CategoryMembersQuery(BaseModel):
    categorymembers: list[CategoryMember] | None = None


class Continuation(BaseModel):
    """Continuation cursor of a listing."""

    cmcontinue: str = Field(default="", description="Opaque cursor for the next page")


class CategoryMembersResponse(ResponseEnvelope):
    """Response of ``action=query&list=categorymembers``."""

    batchcomplete: bool = False
    continuation: Continuation | None = Field(default=None, alias="continue")
    limits: dict[str, Any] = Field(default_factory=dict)
    query: CategoryMembersQuery | None = None

    @property
    def members(self) -> list[CategoryMember] | None:
        """Listed members, or None if the response carried no listing."""
        if self.query is None:
            return None
        return self.query.categorymembers

    @property
    def continuation_token(self) -> str:
        """Server cursor for the next page ("" when exhausted)."""
        if self.continuation is None:
            return ""
        return self.continuation.cmcontinue


# -----------------------------------------------------------------------------
# action=parse
# -----------------------------------------------------------------------------
class ParsedPage(BaseModel):
    title: str = ""
    wikitext: str | None = Field(default=None, description="Source text (prop=wikitext)")
    text: str | None = Field(default=None, description="Rendered HTML (prop=text)")


class ParseResponse(ResponseEnvelope):
    """Response of ``action=parse``."""

    parse: ParsedPage | None = None


# -----------------------------------------------------------------------------
# Decoding
# -----------------------------------------------------------------------------
EnvelopeT = TypeVar("EnvelopeT", bound=ResponseEnvelope)


def write_raw_response(path: str | Path | None, body: str) -> None:
    """Write a raw response body to the debug sink, ignoring failures."""
    if not path:
        return
    try:
        Path(path).write_text(body, encoding="utf-8")
    except OSError as e:
        logger.warning("Could not write raw response to {}: {}", path, e)


def decode_response(model: type[EnvelopeT], endpoint: str, body: str) -> EnvelopeT:
    """Decode a response body into its document model.

    Args:
        model: Envelope subclass to validate against
        endpoint: Endpoint the body came from (for error reporting)
        body: Raw JSON text

    Raises:
        ResponseDecodeError: If the body is not valid JSON for ``model``
    """
    try:
        return model.model_validate_json(body)
    except ValidationError as e:
        raise ResponseDecodeError(
            f"Could not parse the response of {endpoint}: {e.error_count()} error(s)",
            endpoint=endpoint,
        ) from e


def try_decode_response(
    model: type[EnvelopeT],
    endpoint: str,
    body: str,
    *,
    raw_response_path: str | Path | None = None,
) -> EnvelopeT | None:
    """Decode a response body, logging and returning None on failure."""
    write_raw_response(raw_response_path, body)
    try:
        return decode_response(model, endpoint, body)
    except ResponseDecodeError as e:
        logger.error("{}", e)
        return None

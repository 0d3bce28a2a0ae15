"""Common CLI option factories and helpers.

This module centralizes reusable CLI options to reduce duplication
and consolidate noqa comments for Typer's required function call pattern.

It also provides:
- `run_async_command`: Unified async execution with error handling for CLI commands
- Endpoint argument type aliases and validation for wiki titles and URLs
"""

from __future__ import annotations

import asyncio
from collections.abc import Coroutine
from enum import Enum
from pathlib import Path
from typing import Annotated, TypeVar

import typer
from rich.console import Console

from yugipedia_fetch.wiki.endpoints import CATEGORY_PREFIX, endpoint_from_url, is_category

# Shared console instance for CLI output
console = Console()

T = TypeVar("T")


class OutputFormat(str, Enum):
    """Output format for CLI commands."""

    TEXT = "text"
    """Human-readable text output."""

    JSON = "json"
    """Machine-readable JSON output."""


def run_async_command(
    coro: Coroutine[object, object, T],
    *,
    error_prefix: str = "Error",
) -> T:
    """Execute async code from synchronous CLI command with unified error handling.

    Uses asyncio.run() for clean event loop management. Catches exceptions,
    prints user-friendly error messages, and exits with code 1.

    Args:
        coro: Async coroutine to execute
        error_prefix: Prefix for error messages (default: "Error")

    Returns:
        Result from the coroutine

    Raises:
        typer.Exit: Re-raised from deliberate exits, or raised with code 1 on error

    Example:
        async def _count() -> int:
            async with WikiClient() as client:
                return await client.get_page_count("Category:OCG_cards", token)

        result = run_async_command(_count(), error_prefix="Count failed")
    """
    try:
        return asyncio.run(coro)
    except typer.Exit:
        # Re-raise deliberate exits (e.g., from validation helpers)
        raise
    except Exception as e:
        console.print(f"[red]{error_prefix}:[/red] {e}")
        raise typer.Exit(1) from None


# Typer requires function calls as default arguments, which triggers B008.
# Using Annotated with a centralized type alias keeps the noqa in one place.

OutputFormatOption = Annotated[
    OutputFormat,
    typer.Option(
        "--format",
        "-f",
        help="Output format",
    ),
]
"""Output format option type for CLI commands.

Usage:
    def command(output_format: OutputFormatOption = OutputFormat.TEXT):
"""

OutputFileOption = Annotated[
    Path | None,
    typer.Option(
        "--output",
        "-o",
        help="Write the result to this file instead of the terminal",
        dir_okay=False,
    ),
]
"""Optional output file option.

Usage:
    def command(output: OutputFileOption = None):
"""

MaxPagesOption = Annotated[
    int | None,
    typer.Option(
        "--max-pages",
        "-m",
        min=0,
        help="Listing requests allowed after the first one (default: no limit)",
    ),
]
"""Page budget option for category listings.

Usage:
    def pages(max_pages: MaxPagesOption = None) -> None:
"""

# -----------------------------------------------------------------------------
# Endpoint Argument Factories
# -----------------------------------------------------------------------------

CategoryArgument = Annotated[
    str,
    typer.Argument(
        help="Category title or URL (e.g., Category:OCG_cards)",
    ),
]
"""Required positional category argument.

Usage:
    def count(category: CategoryArgument) -> None:
"""

CategoriesArgument = Annotated[
    list[str],
    typer.Argument(
        help="One or more category titles or URLs",
    ),
]
"""One or more categories, merged into a single listing."""

PageArgument = Annotated[
    str,
    typer.Argument(
        help="Page title or URL (e.g., Dark_Magician)",
    ),
]
"""Required positional page argument."""


# -----------------------------------------------------------------------------
# Endpoint Validation Helpers
# -----------------------------------------------------------------------------


def validate_endpoint(value: str, base_url: str) -> str:
    """Turn a title or full wiki URL into an endpoint.

    Args:
        value: Title, or URL under the configured wiki address
        base_url: Configured wiki address to strip

    Returns:
        The endpoint

    Raises:
        typer.Exit(1): If the resulting endpoint is empty
    """
    endpoint = endpoint_from_url(value, base_url)
    if not endpoint:
        console.print("[red]Error:[/red] You must enter an endpoint")
        raise typer.Exit(1)
    return endpoint


def validate_category(value: str, base_url: str) -> str:
    """Like ``validate_endpoint``, but also require a ``Category:`` title.

    Raises:
        typer.Exit(1): If the endpoint is empty or not a category
    """
    endpoint = validate_endpoint(value, base_url)
    if not is_category(endpoint):
        console.print(
            f"[red]Error:[/red] '{endpoint}' must start with [bold]{CATEGORY_PREFIX}[/bold]"
        )
        raise typer.Exit(1)
    return endpoint

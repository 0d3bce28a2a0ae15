"""Wiki fetch commands.

Each command runs one operation through a WikiClient. Ctrl-C aborts the
operation: the in-flight request is cancelled and the queue is drained.
"""

import asyncio
import json
import signal
import time
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any

import typer
from rich.progress import BarColumn, MofNCompleteColumn, Progress, TextColumn, TimeElapsedColumn

from yugipedia_fetch.cli.common import (
    CategoriesArgument,
    CategoryArgument,
    MaxPagesOption,
    OutputFileOption,
    OutputFormat,
    OutputFormatOption,
    PageArgument,
    console,
    run_async_command,
    validate_category,
    validate_endpoint,
)
from yugipedia_fetch.config import get_settings
from yugipedia_fetch.wiki import (
    UNLIMITED_PAGES,
    CancellationToken,
    ProgressUpdate,
    WikiClient,
)

ABORTED_EXIT_CODE = 130


@asynccontextmanager
async def abort_on_interrupt(client: WikiClient) -> AsyncIterator[CancellationToken]:
    """Yield a token that Ctrl-C cancels through ``client.abort``."""
    token = CancellationToken()
    loop = asyncio.get_running_loop()
    try:
        loop.add_signal_handler(signal.SIGINT, client.abort, token)
        installed = True
    except (NotImplementedError, RuntimeError, ValueError):
        # No signal support on this loop (e.g. Windows, or not the main thread)
        installed = False
    try:
        yield token
    finally:
        if installed:
            loop.remove_signal_handler(signal.SIGINT)


def _exit_if_aborted(token: CancellationToken) -> None:
    if token.is_cancelled:
        console.print("[yellow]Aborted.[/yellow]")
        raise typer.Exit(ABORTED_EXIT_CODE)


def _report_elapsed(started: float) -> None:
    console.print(f"[dim]Elapsed: {time.monotonic() - started:.2f}s[/dim]")


def _emit(text: str, output: Path | None) -> None:
    """Write command output to a file, or to stdout when no file is given."""
    if output is None:
        typer.echo(text)
        return
    output.write_text(text, encoding="utf-8")
    console.print(f"[green]Wrote[/green] {output}")


# -----------------------------------------------------------------------------
# Categories
# -----------------------------------------------------------------------------
def count(category: CategoryArgument) -> None:
    """Show the number of members in a category.

    Examples:
        ygofetch count Category:OCG_cards
        ygofetch count https://yugipedia.com/wiki/Category:TCG_cards
    """
    settings = get_settings()
    endpoint = validate_category(category, settings.wiki.base_url)

    async def _count() -> tuple[int, CancellationToken]:
        async with WikiClient(settings=settings) as client:
            async with abort_on_interrupt(client) as token:
                return await client.get_page_count(endpoint, token), token

    started = time.monotonic()
    result, token = run_async_command(_count(), error_prefix="Count failed")
    _exit_if_aborted(token)

    if result < 0:
        console.print(f"[red]Error:[/red] Could not retrieve the member count of {endpoint}")
        raise typer.Exit(1)

    console.print(f"[bold]{endpoint}[/bold]: {result} member(s)")
    _report_elapsed(started)


def pages(
    categories: CategoriesArgument,
    max_pages: MaxPagesOption = None,
    output_format: OutputFormatOption = OutputFormat.TEXT,
    output: OutputFileOption = None,
) -> None:
    """List the titles of every member of one or more categories.

    Titles of several categories are merged in first-seen order without
    duplicates.

    Examples:
        ygofetch pages Category:OCG_cards
        ygofetch pages Category:OCG_cards Category:TCG_cards --format json
        ygofetch pages Category:Duel_Monsters_cards --max-pages 2 -o cards.txt
    """
    settings = get_settings()
    endpoints = [validate_category(c, settings.wiki.base_url) for c in categories]
    budget = UNLIMITED_PAGES if max_pages is None else max_pages

    async def _pages() -> tuple[list[str], CancellationToken]:
        titles: dict[str, None] = {}
        async with WikiClient(settings=settings) as client:
            with Progress(
                TextColumn("[bold]{task.description}"),
                BarColumn(),
                MofNCompleteColumn(),
                TimeElapsedColumn(),
                console=console,
                transient=True,
                disable=output_format == OutputFormat.JSON,
            ) as progress:
                task = progress.add_task("", total=None)

                def on_update(update: ProgressUpdate) -> None:
                    progress.update(
                        task,
                        description=update.title,
                        total=update.total or None,
                        completed=update.current,
                    )

                client.on_progress(on_update)
                async with abort_on_interrupt(client) as token:
                    for endpoint in endpoints:
                        members = await client.get_all_pages(endpoint, token, budget)
                        if members is None:
                            break
                        # Callers dedupe; the listing itself keeps server duplicates
                        titles.update((m.title, None) for m in members)
        return list(titles), token

    if output_format == OutputFormat.TEXT:
        console.print(f"[dim]Listing {', '.join(endpoints)}...[/dim]")

    started = time.monotonic()
    titles, token = run_async_command(_pages(), error_prefix="Listing failed")
    _exit_if_aborted(token)

    if output_format == OutputFormat.JSON:
        result: dict[str, Any] = {
            "categories": endpoints,
            "count": len(titles),
            "titles": titles,
        }
        if output is None:
            console.print_json(json.dumps(result))
        else:
            _emit(json.dumps(result, indent=2), output)
        return

    _emit("\n".join(titles), output)
    console.print(f"[green]{len(titles)} title(s)[/green]")
    _report_elapsed(started)


# -----------------------------------------------------------------------------
# Page Content
# -----------------------------------------------------------------------------
def _fetch_content(page: str, output: Path | None, *, html: bool) -> None:
    settings = get_settings()
    endpoint = validate_endpoint(page, settings.wiki.base_url)

    async def _fetch() -> tuple[str | None, CancellationToken]:
        async with WikiClient(settings=settings) as client:
            async with abort_on_interrupt(client) as token:
                if html:
                    return await client.get_html(endpoint, token), token
                return await client.get_wikitext(endpoint, token), token

    started = time.monotonic()
    content, token = run_async_command(_fetch(), error_prefix="Download failed")
    _exit_if_aborted(token)

    if content is None:
        console.print(f"[red]Error:[/red] Could not retrieve the content of {endpoint}")
        raise typer.Exit(1)

    _emit(content, output)
    _report_elapsed(started)


def wikitext(page: PageArgument, output: OutputFileOption = None) -> None:
    """Download the source wikitext of a page (card data).

    Examples:
        ygofetch wikitext Dark_Magician
        ygofetch wikitext https://yugipedia.com/wiki/Blue-Eyes_White_Dragon -o bewd.txt
    """
    _fetch_content(page, output, html=False)


def html(page: PageArgument, output: OutputFileOption = None) -> None:
    """Download the rendered HTML of a page (set data).

    Examples:
        ygofetch html Legend_of_Blue_Eyes_White_Dragon
    """
    _fetch_content(page, output, html=True)


def register(app: typer.Typer) -> None:
    """Add the fetch commands to the top-level application."""
    app.command("count")(count)
    app.command("pages")(pages)
    app.command("wikitext")(wikitext)
    app.command("html")(html)

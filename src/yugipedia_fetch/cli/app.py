"""Main CLI application for yugipedia-fetch."""

from typing import Annotated

import typer
from rich.console import Console

from yugipedia_fetch import __version__
from yugipedia_fetch.cli import fetch as fetch_cmd
from yugipedia_fetch.config import get_settings
from yugipedia_fetch.logging import setup_logging

app = typer.Typer(
    name="ygofetch",
    help="Polite, serialized downloads from the Yugipedia API.",
    add_completion=False,
)
console = Console()


def version_callback(value: bool) -> None:
    """Print version and exit."""
    if value:
        console.print(f"ygofetch version {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            help="Show version and exit.",
            callback=version_callback,
            is_eager=True,
        ),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option(
            "--verbose",
            "-v",
            help="Enable debug logging.",
        ),
    ] = False,
    quiet: Annotated[
        bool,
        typer.Option(
            "--quiet",
            "-q",
            help="Suppress non-error output (WARNING level).",
        ),
    ] = False,
) -> None:
    """Yugipedia Fetch - Download category listings and card pages."""
    settings = get_settings()
    setup_logging(settings.log_level, verbose=verbose, quiet=quiet, config=settings.logging)


# Register commands
fetch_cmd.register(app)


if __name__ == "__main__":
    app()

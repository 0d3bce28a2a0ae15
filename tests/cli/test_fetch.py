"""CLI tests for the fetch commands.

These tests run the Typer app end to end with the HTTP layer replaced
by ``httpx.MockTransport``.
"""

import json
from collections.abc import Callable, Generator

import httpx
import pytest
from typer.testing import CliRunner

from tests.fixtures import (
    ERROR_MISSING_TITLE,
    category_info,
    category_members,
    parse_html,
    parse_wikitext,
)
from yugipedia_fetch import __version__
from yugipedia_fetch.cli.app import app
from yugipedia_fetch.config import Settings, WikiConfig
from yugipedia_fetch.logging import reset_logging
from yugipedia_fetch.wiki import WikiClient
from yugipedia_fetch.wiki.transport import HttpTransport

runner = CliRunner()

Router = Callable[[httpx.Request], httpx.Response]


def wiki_api(
    *,
    counts: dict[str, int] | None = None,
    listings: dict[tuple[str, str], str] | None = None,
    pages: dict[str, str] | None = None,
) -> Router:
    """Route MediaWiki queries to canned bodies.

    Args:
        counts: Member count per category title
        listings: Listing body per (category title, cursor)
        pages: Parse body per page title
    """
    counts = counts or {}
    listings = listings or {}
    pages = pages or {}

    def handler(request: httpx.Request) -> httpx.Response:
        params = request.url.params
        if params.get("prop") == "categoryinfo":
            title = params["titles"]
            return httpx.Response(200, text=category_info(counts[title], title))
        if params.get("list") == "categorymembers":
            key = (params["cmtitle"], params.get("cmcontinue", ""))
            return httpx.Response(200, text=listings[key])
        if params.get("action") == "parse":
            return httpx.Response(200, text=pages.get(params["page"], ERROR_MISSING_TITLE))
        return httpx.Response(404)

    return handler


@pytest.fixture(autouse=True)
def _reset_logging_state() -> Generator[None, None, None]:
    """Drop the stderr handlers the CLI installs on the runner's streams."""
    yield
    reset_logging()


@pytest.fixture
def cli_settings(monkeypatch: pytest.MonkeyPatch) -> Settings:
    """Settings without politeness delay, used by every command."""
    settings = Settings(
        _env_file=None,
        wiki=WikiConfig(request_interval_ms=0, retry_delay_ms=1),
    )
    monkeypatch.setattr("yugipedia_fetch.cli.app.get_settings", lambda: settings)
    monkeypatch.setattr("yugipedia_fetch.cli.fetch.get_settings", lambda: settings)
    return settings


@pytest.fixture
def use_api(monkeypatch: pytest.MonkeyPatch, cli_settings: Settings):
    """Install a mock wiki API for the commands."""

    def install(router: Router) -> None:
        monkeypatch.setattr(
            "yugipedia_fetch.wiki.dispatch.dispatcher.HttpTransport",
            lambda: HttpTransport(httpx.AsyncClient(transport=httpx.MockTransport(router))),
        )

    return install


class TestAppOptions:
    """Tests for global options."""

    def test_version(self) -> None:
        """--version prints the version and exits."""
        result = runner.invoke(app, ["--version"])

        assert result.exit_code == 0
        assert f"ygofetch version {__version__}" in result.output

    def test_help_lists_commands(self, cli_settings: Settings) -> None:
        """All fetch commands are registered."""
        result = runner.invoke(app, ["--help"])

        assert result.exit_code == 0
        for command in ("count", "pages", "wikitext", "html"):
            assert command in result.output


class TestCountCommand:
    """Tests for `ygofetch count`."""

    def test_count(self, use_api) -> None:
        """Prints the member count of a category."""
        use_api(wiki_api(counts={"Category:OCG_cards": 1200}))

        result = runner.invoke(app, ["-q", "count", "Category:OCG_cards"])

        assert result.exit_code == 0
        assert "1200 member(s)" in result.output

    def test_count_from_url(self, use_api) -> None:
        """A full wiki URL is accepted."""
        use_api(wiki_api(counts={"Category:TCG_cards": 7}))

        result = runner.invoke(
            app, ["-q", "count", "https://yugipedia.com/wiki/Category:TCG_cards"]
        )

        assert result.exit_code == 0
        assert "7 member(s)" in result.output

    def test_count_rejects_page(self, use_api) -> None:
        """A page title is rejected before any request."""
        use_api(wiki_api())

        result = runner.invoke(app, ["-q", "count", "Dark_Magician"])

        assert result.exit_code == 1
        assert "must start with" in result.output

    def test_count_rejects_empty(self, use_api) -> None:
        """An empty endpoint is rejected."""
        use_api(wiki_api())

        result = runner.invoke(app, ["-q", "count", ""])

        assert result.exit_code == 1
        assert "You must enter an endpoint" in result.output

    def test_count_aborted(self, use_api, monkeypatch: pytest.MonkeyPatch) -> None:
        """An aborted run reports it and exits with the interrupt code."""
        use_api(wiki_api())

        async def aborting(self: WikiClient, endpoint, token) -> int:
            self.abort(token)
            return -1

        monkeypatch.setattr(WikiClient, "get_page_count", aborting)

        result = runner.invoke(app, ["-q", "count", "Category:OCG_cards"])

        assert result.exit_code == 130
        assert "Aborted." in result.output


class TestPagesCommand:
    """Tests for `ygofetch pages`."""

    @pytest.fixture
    def two_categories(self, use_api) -> None:
        use_api(
            wiki_api(
                counts={"Category:OCG_cards": 3, "Category:TCG_cards": 2},
                listings={
                    ("Category:OCG_cards", ""): category_members(
                        ["Dark Magician", "Kuriboh"], "page|2"
                    ),
                    ("Category:OCG_cards", "page|2"): category_members(["Sangan"]),
                    ("Category:TCG_cards", ""): category_members(["Kuriboh", "Jinzo"]),
                },
            )
        )

    def test_pages_merges_without_duplicates(self, two_categories) -> None:
        """Titles of all categories are merged in first-seen order."""
        result = runner.invoke(
            app, ["-q", "pages", "Category:OCG_cards", "Category:TCG_cards"]
        )

        assert result.exit_code == 0
        lines = result.stdout.splitlines()
        titles = [line for line in lines if line in {"Dark Magician", "Kuriboh", "Sangan", "Jinzo"}]
        assert titles == ["Dark Magician", "Kuriboh", "Sangan", "Jinzo"]
        assert "4 title(s)" in result.output

    def test_pages_json(self, two_categories) -> None:
        """JSON output lists the merged titles."""
        result = runner.invoke(
            app,
            ["-q", "pages", "Category:OCG_cards", "Category:TCG_cards", "--format", "json"],
        )

        assert result.exit_code == 0
        payload = json.loads(result.stdout)
        assert payload["categories"] == ["Category:OCG_cards", "Category:TCG_cards"]
        assert payload["count"] == 4
        assert payload["titles"] == ["Dark Magician", "Kuriboh", "Sangan", "Jinzo"]

    def test_pages_max_pages(self, two_categories) -> None:
        """--max-pages 0 fetches only the first page."""
        result = runner.invoke(
            app, ["-q", "pages", "Category:OCG_cards", "--max-pages", "0", "-f", "json"]
        )

        assert result.exit_code == 0
        assert json.loads(result.stdout)["titles"] == ["Dark Magician", "Kuriboh"]

    def test_pages_output_file(self, two_categories, tmp_path) -> None:
        """--output writes one title per line."""
        output = tmp_path / "cards.txt"

        result = runner.invoke(
            app, ["-q", "pages", "Category:TCG_cards", "--output", str(output)]
        )

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8") == "Kuriboh\nJinzo"

    def test_pages_rejects_page(self, two_categories) -> None:
        """Every argument must be a category."""
        result = runner.invoke(app, ["-q", "pages", "Category:OCG_cards", "Kuriboh"])

        assert result.exit_code == 1
        assert "must start with" in result.output


class TestContentCommands:
    """Tests for `ygofetch wikitext` and `ygofetch html`."""

    def test_wikitext(self, use_api) -> None:
        """Prints the wikitext of a page."""
        body = parse_wikitext("Dark Magician", "{{CardTable2}}")
        use_api(wiki_api(pages={"Dark_Magician": body}))

        result = runner.invoke(app, ["-q", "wikitext", "Dark_Magician"])

        assert result.exit_code == 0
        assert "{{CardTable2}}" in result.stdout

    def test_wikitext_from_url(self, use_api) -> None:
        """A full page URL is accepted."""
        use_api(wiki_api(pages={"Kuriboh": parse_wikitext("Kuriboh", "{{Kuriboh}}")}))

        result = runner.invoke(app, ["-q", "wikitext", "https://yugipedia.com/wiki/Kuriboh"])

        assert result.exit_code == 0
        assert "{{Kuriboh}}" in result.stdout

    def test_html_to_file(self, use_api, tmp_path) -> None:
        """--output writes the rendered HTML."""
        use_api(wiki_api(pages={"LOB": parse_html("LOB", "<table>LOB-001</table>")}))
        output = tmp_path / "lob.html"

        result = runner.invoke(app, ["-q", "html", "LOB", "-o", str(output)])

        assert result.exit_code == 0
        assert output.read_text(encoding="utf-8") == "<table>LOB-001</table>"

    def test_missing_page(self, use_api) -> None:
        """A page the wiki does not know exits with an error."""
        use_api(wiki_api())

        result = runner.invoke(app, ["-q", "wikitext", "No_Such_Card"])

        assert result.exit_code == 1
        assert "Could not retrieve" in result.output

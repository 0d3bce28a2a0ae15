"""Tests for endpoint construction."""

from urllib.parse import parse_qs, urlsplit

import pytest

from yugipedia_fetch.wiki import endpoints


def params_of(endpoint: str) -> dict[str, list[str]]:
    return parse_qs(urlsplit(endpoint).query)


class TestIsCategory:
    """Tests for category detection."""

    def test_category(self) -> None:
        assert endpoints.is_category("Category:OCG_cards") is True

    def test_page(self) -> None:
        assert endpoints.is_category("Dark_Magician") is False

    def test_prefix_is_case_sensitive(self) -> None:
        """Only the canonical prefix counts."""
        assert endpoints.is_category("category:OCG_cards") is False


class TestEndpointFromUrl:
    """Tests for URL normalization."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("https://yugipedia.com/wiki/Category:OCG_cards", "Category:OCG_cards"),
            ("https://yugipedia.com/Dark_Magician", "Dark_Magician"),
            (
                "https://yugipedia.com/wiki/Blue-Eyes_White_Dragon_(Duel_Links)",
                "Blue-Eyes_White_Dragon_(Duel_Links)",
            ),
            ("https://yugipedia.com/wiki/Kuriboh%27s_Friend", "Kuriboh's_Friend"),
            ("  Category:TCG_cards  ", "Category:TCG_cards"),
            ("Dark_Magician", "Dark_Magician"),
            ("", ""),
        ],
    )
    def test_normalization(self, value: str, expected: str) -> None:
        """The wiki address is stripped and the rest unquoted."""
        assert endpoints.endpoint_from_url(value, "https://yugipedia.com/") == expected

    def test_base_without_trailing_slash(self) -> None:
        """The base address may be configured without a trailing slash."""
        result = endpoints.endpoint_from_url(
            "https://yugipedia.com/wiki/Dark_Magician", "https://yugipedia.com"
        )
        assert result == "Dark_Magician"

    def test_other_host_untouched(self) -> None:
        """URLs of other hosts are left alone."""
        value = "https://example.com/wiki/Dark_Magician"
        assert endpoints.endpoint_from_url(value, "https://yugipedia.com/") == value


class TestBuilders:
    """Tests for the MediaWiki query builders."""

    def test_category_info(self) -> None:
        endpoint = endpoints.category_info("Category:OCG cards")

        assert endpoint.startswith("api.php?")
        assert params_of(endpoint) == {
            "action": ["query"],
            "prop": ["categoryinfo"],
            "titles": ["Category:OCG cards"],
            "format": ["json"],
            "formatversion": ["2"],
        }

    def test_category_members_first_page(self) -> None:
        """The first listing request carries no cursor."""
        params = params_of(endpoints.category_members("Category:OCG cards"))

        assert params["list"] == ["categorymembers"]
        assert params["cmlimit"] == ["max"]
        assert params["cmtitle"] == ["Category:OCG cards"]
        assert "cmcontinue" not in params

    def test_category_members_with_cursor(self) -> None:
        """The cursor is passed back verbatim."""
        params = params_of(endpoints.category_members("Category:A", "page|4b55524942|99"))

        assert params["cmcontinue"] == ["page|4b55524942|99"]

    def test_parse_wikitext(self) -> None:
        params = params_of(endpoints.parse_wikitext("Dark Magician"))

        assert params["action"] == ["parse"]
        assert params["prop"] == ["wikitext"]
        assert params["page"] == ["Dark Magician"]

    def test_parse_text(self) -> None:
        params = params_of(endpoints.parse_text("Legend of Blue Eyes White Dragon"))

        assert params["prop"] == ["text"]
        assert params["page"] == ["Legend of Blue Eyes White Dragon"]

    def test_custom_api_path(self) -> None:
        """Builders honour a custom API path."""
        assert endpoints.parse_text("A", api_path="w/api.php").startswith("w/api.php?")

    def test_special_characters_encoded(self) -> None:
        """Titles with reserved characters survive the round trip."""
        title = "Category:Cards & Things?"
        params = params_of(endpoints.category_members(title))

        assert params["cmtitle"] == [title]

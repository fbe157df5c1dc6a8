"""Tests for the OpenLibrary Read API client."""

from unittest.mock import MagicMock

import httpx
import pytest

from mediaset.config.settings import OpenLibrarySettings
from mediaset.domain.entities import IdentifierType
from mediaset.domain.exceptions import ValidationException
from mediaset.infrastructure.integrations.openlibrary_client import (
    OpenLibraryClient,
    map_read_api_response,
)

DUNE_PAYLOAD = {
    "records": {
        "/books/OL26242482M": {
            "publishDates": ["2005"],
            "data": {
                "title": "Dune",
                "subtitle": "Deluxe Edition",
                "authors": [{"name": "Frank Herbert"}],
                "number_of_pages": 528,
                "publishers": [{"name": "Ace Books"}],
                "publish_date": "August 2, 2005",
                "subjects": [
                    {"name": "Science Fiction"},
                    {"name": "science-fiction"},
                    {"name": "Sciénce  Fiction"},
                    {"name": "Arrakis"},
                    {"name": ""},
                ],
                "cover": {"large": "https://covers.openlibrary.org/b/id/999-L.jpg"},
            },
            "details": {
                "details": {"physical_format": "mass market paperback", "covers": [12345]}
            },
        }
    }
}


@pytest.fixture
def openlibrary_client() -> OpenLibraryClient:
    return OpenLibraryClient(OpenLibrarySettings(_env_file=None))


class TestMapReadApiResponse:
    """Tests for map_read_api_response()."""

    def test_maps_record(self) -> None:
        book = map_read_api_response(DUNE_PAYLOAD)

        assert book is not None
        assert book.title == "Dune"
        assert book.subtitle == "Deluxe Edition"
        assert book.authors == ["Frank Herbert"]
        assert book.number_of_pages == 528
        assert book.publishers == ["Ace Books"]
        assert book.publication_date == "2005"
        assert book.format == "Mass Market Paperback"
        assert book.image_url == "https://covers.openlibrary.org/b/id/12345-L.jpg"

    def test_near_duplicate_subjects_collapse(self) -> None:
        book = map_read_api_response(DUNE_PAYLOAD)

        assert book is not None
        assert book.subjects == ["Science Fiction", "Arrakis"]

    def test_falls_back_to_data_cover(self) -> None:
        record = DUNE_PAYLOAD["records"]["/books/OL26242482M"]
        payload = {"records": {"/books/X": {**record, "details": {"details": {"covers": [-1]}}}}}

        book = map_read_api_response(payload)

        assert book is not None
        assert book.image_url == "https://covers.openlibrary.org/b/id/999-L.jpg"
        assert book.format == ""

    @pytest.mark.parametrize("payload", [[], {}, {"records": {}}])
    def test_not_found_shapes(self, payload: object) -> None:
        assert map_read_api_response(payload) is None


class TestOpenLibraryClient:
    """Tests for get_book()."""

    async def test_isbn_lookup_url(
        self, openlibrary_client: OpenLibraryClient, mocker: MagicMock
    ) -> None:
        request = mocker.patch.object(
            openlibrary_client,
            "_rate_limited_request",
            return_value=httpx.Response(200, json=DUNE_PAYLOAD),
        )

        book = await openlibrary_client.get_book(IdentifierType.ISBN, "9780441013593")

        assert book is not None
        assert book.title == "Dune"
        request.assert_awaited_once_with("api/volumes/brief/isbn/9780441013593.json")

    async def test_unknown_identifier_returns_none(
        self, openlibrary_client: OpenLibraryClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            openlibrary_client,
            "_rate_limited_request",
            return_value=httpx.Response(200, json=[]),
        )

        assert await openlibrary_client.get_book(IdentifierType.OLID, "OL1M") is None

    async def test_barcode_identifiers_are_rejected(
        self, openlibrary_client: OpenLibraryClient
    ) -> None:
        with pytest.raises(ValidationException):
            await openlibrary_client.get_book(IdentifierType.UPC, "070999123456")

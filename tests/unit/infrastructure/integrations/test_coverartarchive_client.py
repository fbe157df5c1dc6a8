"""Tests for the Cover Art Archive client."""

from unittest.mock import MagicMock

import httpx
import pytest

from mediaset.domain.exceptions import ExternalServiceError
from mediaset.infrastructure.integrations.coverartarchive_client import (
    CoverArtArchiveClient,
)


@pytest.fixture
def cover_art_client() -> CoverArtArchiveClient:
    return CoverArtArchiveClient()


class TestFrontCoverUrl:
    """Tests for get_front_cover_url()."""

    @pytest.mark.parametrize("status_code", [302, 307])
    async def test_redirect_location_is_the_image(
        self,
        cover_art_client: CoverArtArchiveClient,
        mocker: MagicMock,
        status_code: int,
    ) -> None:
        request = mocker.patch.object(
            cover_art_client,
            "_rate_limited_request",
            return_value=httpx.Response(
                status_code,
                headers={"Location": "https://archive.org/download/mbid-1/front.jpg"},
            ),
        )

        url = await cover_art_client.get_front_cover_url("mbid-1")

        assert url == "https://archive.org/download/mbid-1/front.jpg"
        request.assert_awaited_once_with(
            "HEAD", "/release/mbid-1/front", follow_redirects=False
        )

    async def test_no_artwork(
        self, cover_art_client: CoverArtArchiveClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            cover_art_client,
            "_rate_limited_request",
            return_value=httpx.Response(404),
        )

        assert await cover_art_client.get_front_cover_url("mbid-1") is None

    async def test_server_error(
        self, cover_art_client: CoverArtArchiveClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            cover_art_client,
            "_rate_limited_request",
            return_value=httpx.Response(502),
        )

        with pytest.raises(ExternalServiceError):
            await cover_art_client.get_front_cover_url("mbid-1")

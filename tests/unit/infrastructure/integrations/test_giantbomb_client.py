"""Tests for the GiantBomb client."""

from unittest.mock import MagicMock

import httpx
import pytest

from mediaset.config.settings import GiantBombSettings
from mediaset.domain.entities import PlatformRef
from mediaset.domain.exceptions import ExternalServiceError, RateLimitExceededError
from mediaset.infrastructure.integrations.giantbomb_client import (
    GiantBombClient,
    map_game_details,
    normalize_detail_path,
)


@pytest.fixture
def giantbomb_client() -> GiantBombClient:
    return GiantBombClient(GiantBombSettings(_env_file=None, api_key="test-key"))


def _body(results: object, status_code: int = 1, error: str = "OK") -> httpx.Response:
    return httpx.Response(
        200, json={"status_code": status_code, "error": error, "results": results}
    )


class TestNormalizeDetailPath:
    @pytest.mark.parametrize(
        ("reference", "expected"),
        [
            ("https://www.giantbomb.com/api/game/3030-82063/", "game/3030-82063/"),
            ("game/3030-82063", "game/3030-82063/"),
            ("3030-82063", "game/3030-82063/"),
            (" 3030-82063/ ", "game/3030-82063/"),
        ],
    )
    def test_forms(self, reference: str, expected: str) -> None:
        assert normalize_detail_path(reference) == expected


class TestGiantBombSearch:
    """Tests for search_games()."""

    async def test_maps_hits(
        self, giantbomb_client: GiantBombClient, mocker: MagicMock
    ) -> None:
        request = mocker.patch.object(
            giantbomb_client,
            "_rate_limited_request",
            return_value=_body(
                [
                    {
                        "guid": "3030-82063",
                        "name": "Halo Infinite",
                        "original_release_date": "2021-12-08",
                        "api_detail_url": "https://www.giantbomb.com/api/game/3030-82063/",
                    }
                ]
            ),
        )

        results = await giantbomb_client.search_games("Halo Infinite")

        assert results is not None
        assert results[0].id == "3030-82063"
        assert results[0].name == "Halo Infinite"
        assert results[0].detail_reference.endswith("/game/3030-82063/")
        request.assert_awaited_once_with(
            "search/", {"resources": "game", "query": "Halo Infinite"}
        )

    async def test_status_not_found(
        self, giantbomb_client: GiantBombClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            giantbomb_client,
            "_rate_limited_request",
            return_value=_body([], status_code=101, error="Object Not Found"),
        )

        assert await giantbomb_client.search_games("Nothing") is None

    async def test_status_rate_limited(
        self, giantbomb_client: GiantBombClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            giantbomb_client,
            "_rate_limited_request",
            return_value=_body([], status_code=107, error="Rate limit exceeded"),
        )

        with pytest.raises(RateLimitExceededError):
            await giantbomb_client.search_games("Halo")

    async def test_invalid_api_key(
        self, giantbomb_client: GiantBombClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            giantbomb_client,
            "_rate_limited_request",
            return_value=_body([], status_code=100, error="Invalid API Key"),
        )

        with pytest.raises(ExternalServiceError, match="Invalid API Key"):
            await giantbomb_client.search_games("Halo")

    async def test_velocity_status_420(
        self, giantbomb_client: GiantBombClient, mocker: MagicMock
    ) -> None:
        http = MagicMock()
        http.get = mocker.AsyncMock(return_value=httpx.Response(420))
        mocker.patch.object(
            giantbomb_client, "_get_client", mocker.AsyncMock(return_value=http)
        )

        with pytest.raises(RateLimitExceededError):
            await giantbomb_client.search_games("Halo")
        sent = http.get.await_args.kwargs["params"]
        assert sent["api_key"] == "test-key"
        assert sent["format"] == "json"


class TestGiantBombDetails:
    """Tests for get_game_details() and the payload mapping."""

    async def test_requests_normalized_path(
        self, giantbomb_client: GiantBombClient, mocker: MagicMock
    ) -> None:
        request = mocker.patch.object(
            giantbomb_client,
            "_rate_limited_request",
            return_value=_body({"name": "Halo Infinite"}),
        )

        details = await giantbomb_client.get_game_details(
            "https://www.giantbomb.com/api/game/3030-82063/"
        )

        assert details is not None
        assert details.name == "Halo Infinite"
        assert request.await_args.args[0] == "game/3030-82063/"

    async def test_empty_results(
        self, giantbomb_client: GiantBombClient, mocker: MagicMock
    ) -> None:
        mocker.patch.object(
            giantbomb_client, "_rate_limited_request", return_value=_body([])
        )

        assert await giantbomb_client.get_game_details("3030-1") is None

    def test_map_game_details(self) -> None:
        details = map_game_details(
            {
                "name": "Halo Infinite",
                "genres": [{"name": "First-Person Shooter"}],
                "developers": [{"name": "343 Industries"}],
                "publishers": [{"name": "Xbox Game Studios"}],
                "platforms": [
                    {"name": "Xbox Series X|S", "abbreviation": "XBSX"},
                    {"name": "PC", "abbreviation": "PC"},
                ],
                "original_release_date": "2021-12-08",
                "description": "<p>Master Chief returns</p>",
                "deck": "Master Chief returns.",
                "original_game_rating": [{"name": "ESRB: T"}, {"name": "PEGI: 16"}],
                "image": {"medium_url": "https://gb/medium.jpg", "super_url": None},
            }
        )

        assert details.platforms[0] == PlatformRef("Xbox Series X|S", "XBSX")
        assert details.ratings == ("ESRB: T", "PEGI: 16")
        assert details.developers == ("343 Industries",)
        assert details.image_url == "https://gb/medium.jpg"

    def test_map_game_details_without_image(self) -> None:
        details = map_game_details({"name": "Bare", "image": None})

        assert details.image_url is None
        assert details.platforms == ()

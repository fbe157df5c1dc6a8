"""Tests for the per-media-type lookup strategies."""

from unittest.mock import AsyncMock

import pytest

from mediaset.application.services.lookup import (
    BookLookupStrategy,
    GameLookupStrategy,
    MovieLookupStrategy,
    MusicLookupStrategy,
)
from mediaset.application.services.lookup.game_strategy import (
    map_game_response,
    pick_rating,
    plain_text,
)
from mediaset.application.services.lookup.movie_strategy import format_vote
from mediaset.application.services.lookup.music_strategy import (
    capitalize_genre,
    format_track_length,
    join_artist_credit,
    map_release,
)
from mediaset.domain.entities import (
    BarcodeItem,
    BarcodeLookupResponse,
    BookResponse,
    CandidateResult,
    DiscTrack,
    GameDetails,
    IdentifierType,
    MediaType,
    MovieDetails,
    PlatformRef,
)
from mediaset.domain.exceptions import ExternalServiceError
from mediaset.domain.ports import (
    IBarcodeLookupClient,
    IBookMetadataClient,
    ICoverArtClient,
    IGameMetadataClient,
    IMovieMetadataClient,
    IMusicMetadataClient,
)

# Hey future me - every provider here is an AsyncMock with the port as spec, so a typo in
# a method name fails loudly instead of returning a MagicMock.


def _barcode_response(title: str, **kwargs: str) -> BarcodeLookupResponse:
    return BarcodeLookupResponse(items=(BarcodeItem(title=title, **kwargs),))


@pytest.fixture
def barcode_client() -> AsyncMock:
    return AsyncMock(spec=IBarcodeLookupClient)


@pytest.fixture
def book_client() -> AsyncMock:
    return AsyncMock(spec=IBookMetadataClient)


@pytest.fixture
def movie_client() -> AsyncMock:
    return AsyncMock(spec=IMovieMetadataClient)


@pytest.fixture
def game_client() -> AsyncMock:
    return AsyncMock(spec=IGameMetadataClient)


@pytest.fixture
def music_client() -> AsyncMock:
    return AsyncMock(spec=IMusicMetadataClient)


@pytest.fixture
def cover_art_client() -> AsyncMock:
    return AsyncMock(spec=ICoverArtClient)


class TestCanHandle:
    """Each strategy serves exactly one media type and a fixed set of identifiers."""

    @pytest.mark.parametrize("media_type", list(MediaType))
    @pytest.mark.parametrize("identifier_type", list(IdentifierType))
    def test_book(
        self,
        media_type: MediaType,
        identifier_type: IdentifierType,
        book_client: AsyncMock,
        barcode_client: AsyncMock,
    ) -> None:
        strategy = BookLookupStrategy(book_client, barcode_client)

        assert strategy.can_handle(media_type, identifier_type) == (
            media_type is MediaType.BOOK
        )

    @pytest.mark.parametrize(
        ("strategy_factory", "media_type"),
        [
            (lambda c: MovieLookupStrategy(c["barcode"], c["movie"]), MediaType.MOVIE),
            (lambda c: GameLookupStrategy(c["barcode"], c["game"]), MediaType.GAME),
            (lambda c: MusicLookupStrategy(c["music"], c["cover"]), MediaType.MUSIC),
        ],
    )
    @pytest.mark.parametrize("identifier_type", list(IdentifierType))
    def test_barcode_only_strategies(
        self,
        strategy_factory,
        media_type: MediaType,
        identifier_type: IdentifierType,
        barcode_client: AsyncMock,
        movie_client: AsyncMock,
        game_client: AsyncMock,
        music_client: AsyncMock,
        cover_art_client: AsyncMock,
    ) -> None:
        strategy = strategy_factory(
            {
                "barcode": barcode_client,
                "movie": movie_client,
                "game": game_client,
                "music": music_client,
                "cover": cover_art_client,
            }
        )
        is_barcode = identifier_type in (IdentifierType.UPC, IdentifierType.EAN)

        for candidate_type in MediaType:
            assert strategy.can_handle(candidate_type, identifier_type) == (
                candidate_type is media_type and is_barcode
            )


class TestBookLookupStrategy:
    """Tests for BookLookupStrategy."""

    async def test_isbn_goes_straight_to_openlibrary(
        self, book_client: AsyncMock, barcode_client: AsyncMock
    ) -> None:
        book = BookResponse(title="Dune", image_url="https://covers/1-L.jpg")
        book_client.get_book.return_value = book
        strategy = BookLookupStrategy(book_client, barcode_client)

        result = await strategy.lookup(IdentifierType.ISBN, "9780441013593")

        assert result is book
        book_client.get_book.assert_awaited_once_with(IdentifierType.ISBN, "9780441013593")
        barcode_client.get_by_code.assert_not_called()

    async def test_barcode_resolves_isbn_first(
        self, book_client: AsyncMock, barcode_client: AsyncMock
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response(
            "Dune Paperback", isbn=" 9780441013593 "
        )
        book_client.get_book.return_value = BookResponse(title="Dune")
        strategy = BookLookupStrategy(book_client, barcode_client)

        result = await strategy.lookup(IdentifierType.UPC, "070999123456")

        assert result is not None
        book_client.get_book.assert_awaited_once_with(IdentifierType.ISBN, "9780441013593")

    async def test_barcode_without_isbn(
        self, book_client: AsyncMock, barcode_client: AsyncMock
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response("Some Book")
        strategy = BookLookupStrategy(book_client, barcode_client)

        assert await strategy.lookup(IdentifierType.EAN, "9780441013593") is None
        book_client.get_book.assert_not_called()

    async def test_unknown_barcode(
        self, book_client: AsyncMock, barcode_client: AsyncMock
    ) -> None:
        barcode_client.get_by_code.return_value = None
        strategy = BookLookupStrategy(book_client, barcode_client)

        assert await strategy.lookup(IdentifierType.UPC, "000000000000") is None


class TestMovieLookupStrategy:
    """Tests for MovieLookupStrategy."""

    @pytest.fixture
    def strategy(
        self, barcode_client: AsyncMock, movie_client: AsyncMock
    ) -> MovieLookupStrategy:
        return MovieLookupStrategy(barcode_client, movie_client)

    async def test_full_flow(
        self,
        strategy: MovieLookupStrategy,
        barcode_client: AsyncMock,
        movie_client: AsyncMock,
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response(
            "The Matrix (Widescreen) [2-Disc Special Edition] - Blu-ray NEW"
        )
        movie_client.search_movies.return_value = [
            CandidateResult(id="603", name="The Matrix", detail_reference="603"),
            CandidateResult(id="604", name="The Matrix Reloaded", detail_reference="604"),
        ]
        movie_client.get_movie_details.return_value = MovieDetails(
            title="The Matrix",
            genres=("Action", "Science Fiction"),
            studios=("Warner Bros.",),
            release_date="1999-03-30",
            overview="A hacker learns the truth.",
            runtime=136,
            vote_average=8.217,
            poster_url="https://image.tmdb.org/t/p/w500/matrix.jpg",
        )

        result = await strategy.lookup(IdentifierType.UPC, "085391163121")

        assert result is not None
        movie_client.search_movies.assert_awaited_once_with("The Matrix")
        movie_client.get_movie_details.assert_awaited_once_with("603")
        assert result.title == "The Matrix"
        assert result.format == "Blu-ray"
        assert result.rating == "8.2/10"
        assert result.runtime == 136
        assert result.plot == "A hacker learns the truth."
        assert result.genres == ["Action", "Science Fiction"]
        assert result.image_url == "https://image.tmdb.org/t/p/w500/matrix.jpg"

    async def test_blank_product_title(
        self,
        strategy: MovieLookupStrategy,
        barcode_client: AsyncMock,
        movie_client: AsyncMock,
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response("   ")

        assert await strategy.lookup(IdentifierType.UPC, "1") is None
        movie_client.search_movies.assert_not_called()

    async def test_no_search_hits(
        self,
        strategy: MovieLookupStrategy,
        barcode_client: AsyncMock,
        movie_client: AsyncMock,
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response("Obscure Film DVD")
        movie_client.search_movies.return_value = []

        assert await strategy.lookup(IdentifierType.UPC, "1") is None
        movie_client.get_movie_details.assert_not_called()

    async def test_missing_details(
        self,
        strategy: MovieLookupStrategy,
        barcode_client: AsyncMock,
        movie_client: AsyncMock,
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response("Heat")
        movie_client.search_movies.return_value = [
            CandidateResult(id="949", name="Heat", detail_reference="949")
        ]
        movie_client.get_movie_details.return_value = None

        assert await strategy.lookup(IdentifierType.UPC, "1") is None

    async def test_provider_errors_propagate(
        self,
        strategy: MovieLookupStrategy,
        barcode_client: AsyncMock,
    ) -> None:
        barcode_client.get_by_code.side_effect = ExternalServiceError(
            "upcitemdb", "unexpected HTTP 500", status_code=500
        )

        with pytest.raises(ExternalServiceError):
            await strategy.lookup(IdentifierType.UPC, "1")

    @pytest.mark.parametrize(
        ("vote", "expected"),
        [(7.94, "7.9/10"), (10, "10.0/10"), (0, ""), (None, "")],
    )
    def test_format_vote(self, vote: float | None, expected: str) -> None:
        assert format_vote(vote) == expected


class TestGameLookupStrategy:
    """Tests for GameLookupStrategy."""

    async def test_halo_infinite_end_to_end(
        self, barcode_client: AsyncMock, game_client: AsyncMock
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response(
            "Halo Infinite - Xbox Series X", category="Video Games"
        )
        game_client.search_games.return_value = [
            CandidateResult(id="1", name="Halo Wars", detail_reference="game/3030-1/"),
            CandidateResult(id="2", name="Halo Infinite", detail_reference="game/3030-2/"),
        ]
        game_client.get_game_details.return_value = GameDetails(
            name="Halo Infinite",
            genres=("First-Person Shooter",),
            developers=("343 Industries",),
            publishers=("Xbox Game Studios",),
            platforms=(PlatformRef("PC"), PlatformRef("Xbox Series X|S", "XBSX")),
            release_date="2021-12-08",
            description="<p>Master Chief &amp; friends</p>",
            deck="Short blurb",
            ratings=("PEGI: 16+", "ESRB: T"),
            image_url="https://www.giantbomb.com/a/uploads/halo.jpg",
        )
        strategy = GameLookupStrategy(barcode_client, game_client)

        result = await strategy.lookup(IdentifierType.UPC, "889842640816")

        assert result is not None
        game_client.search_games.assert_awaited_once_with("Halo Infinite")
        game_client.get_game_details.assert_awaited_once_with("game/3030-2/")
        assert result.title == "Halo Infinite"
        assert result.platform == "Xbox Series X|S"
        assert result.format == "Blu-ray Disc"
        assert result.rating == "ESRB: T"
        assert result.description == "Master Chief & friends"
        assert result.image_url == "https://www.giantbomb.com/a/uploads/halo.jpg"

    async def test_explicit_format_beats_platform_derivation(
        self, barcode_client: AsyncMock, game_client: AsyncMock
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response(
            "Zelda Breath of the Wild (Cartridge) Switch"
        )
        game_client.search_games.return_value = [
            CandidateResult(id="1", name="The Legend of Zelda: Breath of the Wild")
        ]
        game_client.get_game_details.return_value = GameDetails(
            name="The Legend of Zelda: Breath of the Wild",
            platforms=(PlatformRef("Wii U"),),
        )
        strategy = GameLookupStrategy(barcode_client, game_client)

        result = await strategy.lookup(IdentifierType.UPC, "045496590420")

        assert result is not None
        assert result.format == "Cartridge"
        assert result.platform == "Nintendo Switch"

    async def test_no_search_hits(
        self, barcode_client: AsyncMock, game_client: AsyncMock
    ) -> None:
        barcode_client.get_by_code.return_value = _barcode_response("Unknown Game PS4")
        game_client.search_games.return_value = None
        strategy = GameLookupStrategy(barcode_client, game_client)

        assert await strategy.lookup(IdentifierType.UPC, "1") is None
        game_client.get_game_details.assert_not_called()

    def test_edition_is_appended_and_platform_falls_back(self) -> None:
        details = GameDetails(
            name="Cyberpunk 2077",
            platforms=(PlatformRef("PC"),),
            deck="Open world RPG",
        )

        response = map_game_response(details, "Disc", "", "Deluxe")

        assert response.title == "Cyberpunk 2077 (Deluxe)"
        assert response.platform == "PC"
        assert response.description == "Open world RPG"
        assert response.rating == ""

    @pytest.mark.parametrize(
        ("ratings", "expected"),
        [
            (("PEGI: 16+", "ESRB: M"), "ESRB: M"),
            (("PEGI: 16+",), "PEGI: 16+"),
            ((), ""),
        ],
    )
    def test_pick_rating(self, ratings: tuple[str, ...], expected: str) -> None:
        assert pick_rating(ratings) == expected

    def test_plain_text(self) -> None:
        assert plain_text("<h2>Overview</h2><p>Fight &lt;aliens&gt;</p>") == (
            "Overview Fight <aliens>"
        )


class TestMusicLookupStrategy:
    """Tests for MusicLookupStrategy and the release mapping."""

    RELEASE = {
        "id": "mbid-1",
        "title": "Abbey Road",
        "date": "1969-09-26",
        "artist-credit": [{"name": "The Beatles", "joinphrase": ""}],
        "label-info": [{"label": {"name": "Apple Records"}}],
        "tags": [
            {"name": "rock", "count": 10},
            {"name": "pop-rock", "count": 12},
            {"name": "psychedelic", "count": 1},
        ],
        "media": [
            {
                "format": "CD",
                "track-count": 2,
                "tracks": [
                    {"number": "1", "title": "Come Together", "length": 259000},
                    {
                        "number": "2",
                        "title": "Something",
                        "recording": {"length": 182000},
                    },
                ],
            }
        ],
    }

    def test_map_release(self) -> None:
        response = map_release(self.RELEASE)

        assert response.title == "Abbey Road"
        assert response.artist == "The Beatles"
        assert response.release_date == "1969-09-26"
        assert response.genres == ["Pop Rock", "Rock", "Psychedelic"]
        assert response.label == "Apple Records"
        assert response.tracks == 2
        assert response.discs == 1
        assert response.duration == 441
        assert response.format == "CD"
        assert response.disc_list == [
            DiscTrack(track_number=1, title="Come Together", duration="4:19"),
            DiscTrack(track_number=2, title="Something", duration="3:02"),
        ]

    def test_map_release_without_media(self) -> None:
        response = map_release({"title": "Bare"})

        assert response.duration is None
        assert response.tracks is None
        assert response.discs is None
        assert response.format == ""

    async def test_cover_comes_from_cover_art_archive(
        self, music_client: AsyncMock, cover_art_client: AsyncMock
    ) -> None:
        music_client.search_releases_by_barcode.return_value = [
            CandidateResult(id="mbid-1", name="Abbey Road", detail_reference="mbid-1")
        ]
        music_client.get_release.return_value = self.RELEASE
        cover_art_client.get_front_cover_url.return_value = "https://archive.org/front.jpg"
        strategy = MusicLookupStrategy(music_client, cover_art_client)

        result = await strategy.lookup(IdentifierType.EAN, "0077774644228")

        assert result is not None
        assert result.image_url == "https://archive.org/front.jpg"
        music_client.get_release.assert_awaited_once_with("mbid-1")
        cover_art_client.get_front_cover_url.assert_awaited_once_with("mbid-1")

    async def test_release_without_cover(
        self, music_client: AsyncMock, cover_art_client: AsyncMock
    ) -> None:
        music_client.search_releases_by_barcode.return_value = [
            CandidateResult(id="mbid-1", name="Abbey Road")
        ]
        music_client.get_release.return_value = self.RELEASE
        cover_art_client.get_front_cover_url.return_value = None
        strategy = MusicLookupStrategy(music_client, cover_art_client)

        result = await strategy.lookup(IdentifierType.UPC, "077774644228")

        assert result is not None
        assert result.title == "Abbey Road"
        assert result.image_url is None

    async def test_no_releases(
        self, music_client: AsyncMock, cover_art_client: AsyncMock
    ) -> None:
        music_client.search_releases_by_barcode.return_value = []
        strategy = MusicLookupStrategy(music_client, cover_art_client)

        assert await strategy.lookup(IdentifierType.UPC, "1") is None
        cover_art_client.get_front_cover_url.assert_not_called()

    @pytest.mark.parametrize(
        ("tag", "expected"),
        [("progressive-rock", "Progressive Rock"), ("HIP HOP", "Hip Hop"), ("", "")],
    )
    def test_capitalize_genre(self, tag: str, expected: str) -> None:
        assert capitalize_genre(tag) == expected

    def test_format_track_length(self) -> None:
        assert format_track_length(65000) == "1:05"
        assert format_track_length(None) == ""

    def test_join_artist_credit(self) -> None:
        credits = [
            {"name": "Simon", "joinphrase": " & "},
            {"artist": {"name": "Garfunkel"}},
        ]

        assert join_artist_credit(credits) == "Simon & Garfunkel"

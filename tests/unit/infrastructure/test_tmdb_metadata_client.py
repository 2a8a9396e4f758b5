"""Tests for HttpxTmdbClient (TMDB API adapter)."""

from __future__ import annotations

from unittest.mock import AsyncMock

import httpx
import pytest
import respx

from hellarr.domain.entities.media import EpisodeInfo, MediaKind, TitleInfo
from hellarr.infrastructure.tmdb.client import HttpxTmdbClient

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

_API_KEY = "test-api-key-123"
_BASE = "https://api.themoviedb.org/3"


@pytest.fixture()
def cache() -> AsyncMock:
    mock = AsyncMock()
    mock.get.return_value = None  # default: cache miss
    return mock


@pytest.fixture()
def client(cache: AsyncMock) -> HttpxTmdbClient:
    return HttpxTmdbClient(
        api_key=_API_KEY, http_client=httpx.AsyncClient(), cache=cache
    )


# ---------------------------------------------------------------------------
# TMDB JSON response fixtures
# ---------------------------------------------------------------------------

_FIND_MOVIE_RESPONSE = {
    "movie_results": [
        {
            "id": 603,
            "title": "Matrix",
            "original_title": "The Matrix",
            "release_date": "1999-03-31",
        }
    ],
    "tv_results": [
        {"id": 1, "name": "Should Not Win", "first_air_date": "2001-01-01"}
    ],
}

_FIND_TV_RESPONSE = {
    "movie_results": [],
    "tv_results": [
        {
            "id": 209867,
            "name": "Frieren: Beyond Journey's End",
            "original_name": "葬送のフリーレン",
            "first_air_date": "2023-09-29",
        }
    ],
}

_FIND_EMPTY_RESPONSE = {"movie_results": [], "tv_results": []}


# ---------------------------------------------------------------------------
# find_by_external_id
# ---------------------------------------------------------------------------


class TestFindByExternalId:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_movie_wins_over_tv(
        self, client: HttpxTmdbClient, cache: AsyncMock
    ) -> None:
        route = respx.get(f"{_BASE}/find/tt0133093").respond(json=_FIND_MOVIE_RESPONSE)

        info = await client.find_by_external_id("tt0133093")

        assert info == TitleInfo(
            localized_title="Matrix",
            original_language_title="The Matrix",
            original_title="The Matrix",
            year=1999,
            kind=MediaKind.MOVIE,
            external_metadata_id=603,
        )
        params = route.calls.last.request.url.params
        assert params["external_source"] == "imdb_id"
        assert params["api_key"] == _API_KEY
        assert params["language"] == "cs-CZ"
        cache.set.assert_awaited_once()
        assert cache.set.call_args[0][0] == "tmdb:find:tt0133093"

    @respx.mock
    @pytest.mark.asyncio()
    async def test_tv_result(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt22248376").respond(json=_FIND_TV_RESPONSE)

        info = await client.find_by_external_id("tt22248376")

        assert info is not None
        assert info.kind is MediaKind.SERIES
        assert info.display_title == "Frieren: Beyond Journey's End"
        assert info.original_title == "葬送のフリーレン"
        assert info.year == 2023
        assert info.external_metadata_id == 209867

    @respx.mock
    @pytest.mark.asyncio()
    async def test_not_found_returns_none(
        self, client: HttpxTmdbClient, cache: AsyncMock
    ) -> None:
        respx.get(f"{_BASE}/find/tt0000000").respond(json=_FIND_EMPTY_RESPONSE)

        assert await client.find_by_external_id("tt0000000") is None
        cache.set.assert_not_awaited()

    @respx.mock
    @pytest.mark.asyncio()
    async def test_cache_hit_skips_request(
        self, client: HttpxTmdbClient, cache: AsyncMock
    ) -> None:
        cached = TitleInfo(localized_title="Cached")
        cache.get.return_value = cached
        route = respx.get(f"{_BASE}/find/tt0133093")

        assert await client.find_by_external_id("tt0133093") == cached
        assert not route.called

    @respx.mock
    @pytest.mark.asyncio()
    async def test_401_returns_none(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt0133093").respond(
            status_code=401, json={"status_message": "Invalid API key"}
        )
        assert await client.find_by_external_id("tt0133093") is None

    @respx.mock
    @pytest.mark.asyncio()
    async def test_server_error_returns_none(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt0133093").respond(status_code=500)
        assert await client.find_by_external_id("tt0133093") is None

    @respx.mock
    @pytest.mark.asyncio()
    async def test_network_error_returns_none(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/find/tt0133093").mock(
            side_effect=httpx.ConnectError("refused")
        )
        assert await client.find_by_external_id("tt0133093") is None


# ---------------------------------------------------------------------------
# episode_info
# ---------------------------------------------------------------------------


class TestEpisodeInfo:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_episode_found(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/tv/209867/season/1/episode/4").respond(
            json={
                "name": "The Land Where Souls Rest",
                "season_number": 1,
                "episode_number": 4,
                "air_date": "2023-10-06",
            }
        )

        info = await client.episode_info(209867, 1, 4)

        assert info == EpisodeInfo(
            name="The Land Where Souls Rest",
            season=1,
            number=4,
            air_date="2023-10-06",
        )

    @respx.mock
    @pytest.mark.asyncio()
    async def test_episode_missing(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/tv/1/season/9/episode/9").respond(status_code=404)
        assert await client.episode_info(1, 9, 9) is None


# ---------------------------------------------------------------------------
# alternative_titles
# ---------------------------------------------------------------------------


class TestAlternativeTitles:
    @respx.mock
    @pytest.mark.asyncio()
    async def test_tv_alternative_titles(
        self, client: HttpxTmdbClient, cache: AsyncMock
    ) -> None:
        respx.get(f"{_BASE}/search/tv").respond(
            json={
                "results": [
                    {
                        "id": 209867,
                        "name": "Frieren",
                        "original_name": "葬送のフリーレン",
                    }
                ]
            }
        )
        respx.get(f"{_BASE}/tv/209867/alternative_titles").respond(
            json={
                "results": [
                    {"title": "Sousou no Frieren"},
                    {"title": "Frieren"},
                ]
            }
        )

        titles = await client.alternative_titles("Frieren", MediaKind.SERIES)

        assert titles == ["Frieren", "葬送のフリーレン", "Sousou no Frieren"]
        assert cache.set.call_args[0][0] == "tmdb:alt:tv:Frieren"

    @respx.mock
    @pytest.mark.asyncio()
    async def test_movie_alternative_titles_use_titles_key(
        self, client: HttpxTmdbClient
    ) -> None:
        respx.get(f"{_BASE}/search/movie").respond(
            json={"results": [{"id": 129, "title": "Cesta do fantazie"}]}
        )
        respx.get(f"{_BASE}/movie/129/alternative_titles").respond(
            json={"titles": [{"title": "Spirited Away"}]}
        )

        titles = await client.alternative_titles("Cesta do fantazie", MediaKind.MOVIE)

        assert titles == ["Cesta do fantazie", "Spirited Away"]

    @respx.mock
    @pytest.mark.asyncio()
    async def test_no_search_results(self, client: HttpxTmdbClient) -> None:
        respx.get(f"{_BASE}/search/movie").respond(json={"results": []})
        assert await client.alternative_titles("Nope", MediaKind.MOVIE) == []

    @pytest.mark.asyncio()
    async def test_empty_name(self, client: HttpxTmdbClient) -> None:
        assert await client.alternative_titles("", MediaKind.MOVIE) == []

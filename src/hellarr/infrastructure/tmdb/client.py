"""TMDB API client: async httpx implementation with caching."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from hellarr.domain.entities.media import EpisodeInfo, MediaKind, TitleInfo
from hellarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_BASE_URL = "https://api.themoviedb.org/3"


def _year_from(date_str: str | None) -> int | None:
    if date_str and len(date_str) >= 4 and date_str[:4].isdigit():
        return int(date_str[:4])
    return None


class HttpxTmdbClient:
    """Async TMDB client using httpx + CachePort.

    Implements ``PrimaryMetadataPort`` from domain.ports.metadata.
    Errors are logged and reported as ``None`` / empty results.
    """

    def __init__(
        self,
        *,
        api_key: str,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        language: str = "cs-CZ",
        base_url: str = _BASE_URL,
    ) -> None:
        self._api_key = api_key
        self._http = http_client
        self._cache = cache
        self._language = language
        self._base_url = base_url.rstrip("/")

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    def _params(self, **extra: Any) -> dict[str, Any]:
        """Build query params with api_key and configured locale."""
        return {"api_key": self._api_key, "language": self._language, **extra}

    async def _get(self, path: str, **extra: Any) -> dict[str, Any] | None:
        """GET request with error handling. Returns parsed JSON or None."""
        url = f"{self._base_url}{path}"
        try:
            resp = await self._http.get(url, params=self._params(**extra))
            if resp.status_code == 401:
                log.error("tmdb_api_key_invalid", status=401)
                return None
            if resp.status_code == 404:
                log.debug("tmdb_resource_not_found", path=path)
                return None
            resp.raise_for_status()
            return resp.json()
        except httpx.HTTPStatusError:
            log.warning("tmdb_http_error", path=path, exc_info=True)
            return None
        except httpx.HTTPError:
            log.warning("tmdb_network_error", path=path, exc_info=True)
            return None
        except ValueError:
            log.warning("tmdb_invalid_json", path=path)
            return None

    @staticmethod
    def _movie_to_title(movie: dict[str, Any]) -> TitleInfo:
        original = movie.get("original_title") or None
        return TitleInfo(
            localized_title=movie.get("title") or None,
            original_language_title=original,
            original_title=original,
            year=_year_from(movie.get("release_date")),
            kind=MediaKind.MOVIE,
            external_metadata_id=movie.get("id"),
        )

    @staticmethod
    def _tv_to_title(show: dict[str, Any]) -> TitleInfo:
        original = show.get("original_name") or None
        return TitleInfo(
            localized_title=show.get("name") or None,
            original_language_title=original,
            original_title=original,
            year=_year_from(show.get("first_air_date")),
            kind=MediaKind.SERIES,
            external_metadata_id=show.get("id"),
        )

    # ------------------------------------------------------------------
    # Public API (PrimaryMetadataPort)
    # ------------------------------------------------------------------

    async def find_by_external_id(self, external_id: str) -> TitleInfo | None:
        """Lookup by IMDb ID. Movies win over TV results."""
        cache_key = f"tmdb:find:{external_id}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._get(f"/find/{external_id}", external_source="imdb_id")
        if data is None:
            return None

        movies = data.get("movie_results") or []
        shows = data.get("tv_results") or []
        if movies:
            info = self._movie_to_title(movies[0])
        elif shows:
            info = self._tv_to_title(shows[0])
        else:
            log.info("tmdb_no_results", external_id=external_id)
            return None

        log.info(
            "tmdb_title_resolved",
            external_id=external_id,
            title=info.localized_title,
            kind=info.kind.value if info.kind else None,
            year=info.year,
        )
        await self._cache.set(cache_key, info)
        return info

    async def episode_info(
        self, tmdb_id: int, season: int, episode: int
    ) -> EpisodeInfo | None:
        """Lookup episode name and air date for a TV show."""
        cache_key = f"tmdb:episode:{tmdb_id}:{season}:{episode}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._get(f"/tv/{tmdb_id}/season/{season}/episode/{episode}")
        if not data or not data.get("name"):
            return None

        info = EpisodeInfo(
            name=data["name"],
            season=data.get("season_number") or season,
            number=data.get("episode_number") or episode,
            air_date=data.get("air_date") or None,
        )
        await self._cache.set(cache_key, info)
        return info

    async def alternative_titles(self, name: str, kind: MediaKind) -> list[str]:
        """Search *name*, then collect the first hit's alternative titles.

        Returns titles in discovery order (main, original, alternatives).
        """
        if not name:
            return []

        endpoint = "tv" if kind is MediaKind.SERIES else "movie"
        cache_key = f"tmdb:alt:{endpoint}:{name}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        search = await self._get(f"/search/{endpoint}", query=name)
        results = (search or {}).get("results") or []
        if not results:
            log.debug("tmdb_alt_titles_no_match", name=name, endpoint=endpoint)
            return []

        item = results[0]
        if endpoint == "tv":
            titles = [item.get("name"), item.get("original_name")]
        else:
            titles = [item.get("title"), item.get("original_title")]

        alt = await self._get(f"/{endpoint}/{item.get('id')}/alternative_titles") or {}
        # Movies list under "titles", TV shows under "results".
        for entry in alt.get("titles") or alt.get("results") or []:
            titles.append(entry.get("title"))

        unique = list(dict.fromkeys(t for t in titles if t))
        log.info("tmdb_alt_titles", name=name, count=len(unique))
        await self._cache.set(cache_key, unique)
        return unique

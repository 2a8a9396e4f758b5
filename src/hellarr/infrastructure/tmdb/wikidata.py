"""Wikidata SPARQL fallback: title resolution without an API key.

Queries the public SPARQL endpoint by IMDb ID (property P345) twice in
parallel: once with the localized label language and once in English.
"""

from __future__ import annotations

import asyncio
import re
from typing import Any

import httpx
import structlog

from hellarr.domain.entities.media import MediaKind, TitleInfo
from hellarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

_SPARQL_URL = "https://query.wikidata.org/sparql"
_HEADERS = {"Accept": "application/sparql-results+json"}

# Labels that are bare entity ids carry no title.
_ENTITY_ID_RE = re.compile(r"^Q\d+$")

_SERIES_MARKERS = ("series", "seriál", "show")
_MOVIE_MARKERS = ("film", "movie")

_QUERY_TEMPLATE = """
SELECT ?film ?filmLabel ?originalTitle ?publicationDate ?instanceLabel WHERE {{
  ?film wdt:P345 "{imdb_id}".
  OPTIONAL {{ ?film wdt:P1476 ?originalTitle. }}
  OPTIONAL {{ ?film wdt:P577 ?publicationDate. }}
  OPTIONAL {{ ?film wdt:P31 ?instance. }}
  SERVICE wikibase:label {{ bd:serviceParam wikibase:language "{language}". }}
}}
"""

_IMDB_ID_RE = re.compile(r"^tt\d+$")


def build_query(imdb_id: str, language: str) -> str:
    """Render the SPARQL query for *imdb_id* with *language* labels."""
    return _QUERY_TEMPLATE.format(imdb_id=imdb_id, language=language)


def _value(binding: dict[str, Any], name: str) -> str | None:
    cell = binding.get(name)
    if not isinstance(cell, dict):
        return None
    value = cell.get("value")
    return value or None


def _clean_label(label: str | None) -> str | None:
    if label and _ENTITY_ID_RE.match(label):
        return None
    return label


def kind_from_instance(label: str | None) -> MediaKind | None:
    """Map an instance-of label (any language) to a MediaKind."""
    if not label:
        return None
    lowered = label.lower()
    if any(marker in lowered for marker in _SERIES_MARKERS):
        return MediaKind.SERIES
    if any(marker in lowered for marker in _MOVIE_MARKERS):
        return MediaKind.MOVIE
    return None


class WikidataClient:
    """Title resolver using the free Wikidata SPARQL endpoint.

    Implements ``FallbackMetadataPort`` from domain.ports.metadata.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        language: str = "cs",
        endpoint: str = _SPARQL_URL,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._language = language
        self._endpoint = endpoint

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _first_binding(self, imdb_id: str, language: str) -> dict[str, Any]:
        """Run the query and return the first result row ({} on failure)."""
        try:
            resp = await self._http.get(
                self._endpoint,
                params={"query": build_query(imdb_id, language)},
                headers=_HEADERS,
            )
            resp.raise_for_status()
            data = resp.json()
        except (httpx.HTTPError, ValueError):
            log.warning(
                "wikidata_query_failed",
                imdb_id=imdb_id,
                language=language,
                exc_info=True,
            )
            return {}

        bindings = (data.get("results") or {}).get("bindings") or []
        return bindings[0] if bindings else {}

    # ------------------------------------------------------------------
    # FallbackMetadataPort implementation
    # ------------------------------------------------------------------

    async def find_by_external_id(self, external_id: str) -> TitleInfo | None:
        """Resolve localized + English titles, year and kind for an IMDb ID."""
        if not _IMDB_ID_RE.match(external_id):
            log.debug("wikidata_unsupported_id", external_id=external_id)
            return None

        cache_key = f"wikidata:{self._language}:{external_id}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        localized, english = await asyncio.gather(
            self._first_binding(external_id, self._language),
            self._first_binding(external_id, "en"),
        )

        localized_title = _clean_label(_value(localized, "filmLabel"))
        english_title = _clean_label(_value(english, "filmLabel"))
        original_title = _value(localized, "originalTitle") or _value(
            english, "originalTitle"
        )
        date = _value(localized, "publicationDate") or _value(
            english, "publicationDate"
        )
        instance = _value(localized, "instanceLabel") or _value(
            english, "instanceLabel"
        )

        info = TitleInfo(
            localized_title=localized_title,
            original_language_title=english_title,
            original_title=original_title,
            year=int(date[:4]) if date and date[:4].isdigit() else None,
            kind=kind_from_instance(instance) or kind_from_instance(
                _value(english, "instanceLabel")
            ),
        )
        if info.display_title is None:
            log.info("wikidata_no_title", imdb_id=external_id)
            return None

        log.info(
            "wikidata_title_resolved",
            imdb_id=external_id,
            localized=localized_title,
            english=english_title,
            year=info.year,
        )
        await self._cache.set(cache_key, info)
        return info

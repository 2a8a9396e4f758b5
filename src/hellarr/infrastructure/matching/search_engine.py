"""Search & match engine: query escalation, fallbacks and ranking.

Queries are tried strictly one at a time; a later query is only sent when
every earlier one produced nothing usable.
"""

from __future__ import annotations

from typing import Protocol, Sequence

import structlog

from hellarr.domain.entities.media import (
    EpisodeInfo,
    EpisodeRef,
    MediaKind,
    MediaRequest,
    ProviderError,
    SearchResultItem,
    TitleInfo,
)
from hellarr.domain.ports.content_search import ContentSearchPort
from hellarr.domain.ports.metadata import TitleVariationSourcePort
from hellarr.infrastructure.matching import query_generator
from hellarr.infrastructure.matching.episode_patterns import (
    all_patterns,
    filter_by_patterns,
    tier_patterns,
)
from hellarr.infrastructure.matching.ranking import filter_and_rank

log = structlog.get_logger(__name__)


class _TitleLookup(Protocol):
    """What the engine needs to find an alternate title."""

    async def resolve(self, external_id: str) -> TitleInfo | None: ...

    async def episode_info(
        self, title: TitleInfo, episode: EpisodeRef
    ) -> EpisodeInfo | None: ...


def _unique_items(items: list[SearchResultItem]) -> list[SearchResultItem]:
    """Drop repeats of the same (id, hash) pair, keeping first-seen order."""
    seen: set[tuple[str, str]] = set()
    result: list[SearchResultItem] = []
    for item in items:
        key = (item.search_provider_id, item.file_hash)
        if key in seen:
            continue
        seen.add(key)
        result.append(item)
    return result


class SearchMatchEngine:
    """Finds the best search results for a movie or episode request.

    Args:
        provider: Content-search provider (cached + gateway-backed).
        resolver: Title lookup used for the alternate-title retry.
        variations: Source of alias titles, optional.
        max_results: Cap on candidates handed to the stream fetcher.
        max_queries: Cap on provider searches per escalation step.
    """

    def __init__(
        self,
        *,
        provider: ContentSearchPort,
        resolver: _TitleLookup | None = None,
        variations: TitleVariationSourcePort | None = None,
        max_results: int = 10,
        max_queries: int = 24,
    ) -> None:
        self._provider = provider
        self._resolver = resolver
        self._variations = variations
        self._max_results = max_results
        self._max_queries = max_queries

    # ------------------------------------------------------------------
    # Primitive search
    # ------------------------------------------------------------------

    async def search(self, query: str) -> list[SearchResultItem]:
        """Provider search; provider failures count as no results."""
        try:
            return await self._provider.search(query)
        except ProviderError as exc:
            log.warning("search_failed", query=query, error=str(exc))
            return []

    # ------------------------------------------------------------------
    # Escalation strategies
    # ------------------------------------------------------------------

    async def search_series_with_pattern(
        self, queries: Sequence[str], episode: EpisodeRef
    ) -> list[SearchResultItem]:
        """Try queries in order; return the first tier that matches.

        For each query the tiers are tested from strict to loose and the
        first non-empty tier wins.  When no query matches, the pooled
        results of every query are filtered once with all patterns.
        """
        tiers = tier_patterns(episode)
        pooled: list[SearchResultItem] = []

        for query in self._bounded(queries):
            results = await self.search(query)
            pooled.extend(results)
            for tier_no, patterns in enumerate(tiers, start=1):
                matched = filter_by_patterns(results, patterns)
                if matched:
                    log.info(
                        "series_tier_match",
                        query=query,
                        tier=tier_no,
                        count=len(matched),
                    )
                    return matched

        matched = filter_by_patterns(_unique_items(pooled), all_patterns(episode))
        if matched:
            log.info("series_pooled_match", pooled=len(pooled), count=len(matched))
        return matched

    async def generic_search(
        self, queries: Sequence[str], episode: EpisodeRef
    ) -> list[SearchResultItem]:
        """Episode-less queries; stop at the first hit, then filter."""
        pooled: list[SearchResultItem] = []
        for query in self._bounded(queries):
            results = await self.search(query)
            pooled.extend(results)
            if results:
                log.info("generic_search_hit", query=query, count=len(results))
                break
        return filter_by_patterns(_unique_items(pooled), all_patterns(episode))

    async def first_non_empty(self, queries: Sequence[str]) -> list[SearchResultItem]:
        """Return the results of the first query that yields any."""
        for query in self._bounded(queries):
            results = await self.search(query)
            if results:
                log.info("search_hit", query=query, count=len(results))
                return results
        return []

    def _bounded(self, queries: Sequence[str]) -> list[str]:
        unique = query_generator.dedupe_queries(queries)
        if len(unique) > self._max_queries:
            log.info(
                "search_queries_truncated",
                generated=len(unique),
                kept=self._max_queries,
                first_dropped=unique[self._max_queries],
            )
        return unique[: self._max_queries]

    def filter_and_rank(
        self, items: list[SearchResultItem], request: MediaRequest
    ) -> list[SearchResultItem]:
        """Apply movie/series filtering and ranking, capped."""
        return filter_and_rank(
            _unique_items(items),
            request.episode,
            exclude_episodes=request.kind is not MediaKind.SERIES,
            limit=self._max_results,
        )

    # ------------------------------------------------------------------
    # Full flow
    # ------------------------------------------------------------------

    async def find_candidates(
        self, request: MediaRequest, title: str
    ) -> list[SearchResultItem]:
        """Run the whole escalation for *title* and return ranked items."""
        kind = request.kind
        if kind is MediaKind.UNKNOWN:
            kind = MediaKind.SERIES if request.episode else MediaKind.MOVIE
        variations = await self._title_variations(title, kind)

        if request.episode is not None:
            results = await self._find_episode(
                request, title, request.episode, variations
            )
        elif kind is MediaKind.SERIES:
            results = await self.first_non_empty(
                query_generator.generic_queries(title, variations)
            )
        else:
            results = await self._find_movie(request, title, variations)

        ranked = self.filter_and_rank(results, request)
        log.info(
            "search_candidates",
            external_id=request.external_id,
            title=title,
            found=len(results),
            ranked=len(ranked),
        )
        return ranked

    async def _find_episode(
        self,
        request: MediaRequest,
        title: str,
        episode: EpisodeRef,
        variations: list[str],
    ) -> list[SearchResultItem]:
        queries = query_generator.generate(title, episode, variations=variations)
        results = await self.search_series_with_pattern(queries, episode)
        if results:
            return results

        alternate, info = await self._alternate_title(request, title)
        if alternate is not None:
            episode_name: str | None = None
            if info is not None and self._resolver is not None:
                episode_info = await self._resolver.episode_info(info, episode)
                episode_name = episode_info.name if episode_info else None
            log.info(
                "alternate_title_retry",
                title=title,
                alternate=alternate,
                episode_name=episode_name,
            )
            alt_queries = [
                *query_generator.generate(alternate, episode),
                *query_generator.episode_title_queries(alternate, episode_name),
            ]
            results = await self.search_series_with_pattern(alt_queries, episode)
            if results:
                return results

        log.info("generic_search_fallback", title=title)
        return await self.generic_search(
            query_generator.generic_queries(title, variations), episode
        )

    async def _find_movie(
        self, request: MediaRequest, title: str, variations: list[str]
    ) -> list[SearchResultItem]:
        queries = query_generator.generate(
            title, year=request.year, variations=variations
        )
        results = await self.first_non_empty(queries)
        if results:
            return results

        alternate, _ = await self._alternate_title(request, title)
        if alternate is None:
            return []
        log.info("alternate_title_retry", title=title, alternate=alternate)
        return await self.first_non_empty(
            query_generator.generate(alternate, year=request.year)
        )

    async def _alternate_title(
        self, request: MediaRequest, used_title: str
    ) -> tuple[str | None, TitleInfo | None]:
        """English/original title differing from the one already tried."""
        if self._resolver is None:
            return None, None
        info = await self._resolver.resolve(request.external_id)
        if info is None:
            return None, None
        alternate = info.original_language_title
        if not alternate or alternate.casefold() == used_title.casefold():
            return None, info
        return alternate, info

    async def _title_variations(self, title: str, kind: MediaKind) -> list[str]:
        if self._variations is None:
            return []
        return await self._variations.variations(title, kind)

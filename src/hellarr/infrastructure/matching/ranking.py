"""Final filtering and ranking of search results.

Pure transformation logic without I/O or framework dependencies.
"""

from __future__ import annotations

from hellarr.domain.entities.media import EpisodeRef, SearchResultItem
from hellarr.infrastructure.matching.episode_patterns import (
    all_patterns,
    anime_suffix,
    ends_with_anime_suffix,
    filter_by_patterns,
    is_likely_episode,
)


def filter_movie_results(items: list[SearchResultItem]) -> list[SearchResultItem]:
    """Drop results whose title looks like a TV episode."""
    return [item for item in items if not is_likely_episode(item.title)]


def filter_series_results(
    items: list[SearchResultItem], episode: EpisodeRef
) -> list[SearchResultItem]:
    """Keep exact anime-style matches if any exist, else any pattern match."""
    exact = [item for item in items if ends_with_anime_suffix(item.title, episode)]
    if exact:
        return exact
    return filter_by_patterns(items, all_patterns(episode))


def rank_series_results(
    items: list[SearchResultItem], episode: EpisodeRef
) -> list[SearchResultItem]:
    """Anime-style ``" - NN"`` titles first, then larger files first.

    Single-candidate lists are returned unchanged.
    """
    if len(items) <= 1:
        return list(items)
    marker = anime_suffix(episode)
    return sorted(
        items,
        key=lambda item: (marker not in item.title, -item.size_bytes),
    )


def filter_and_rank(
    items: list[SearchResultItem],
    episode: EpisodeRef | None,
    *,
    exclude_episodes: bool = True,
    limit: int = 10,
) -> list[SearchResultItem]:
    """Apply the movie or series filter, rank series, and cap the list.

    Without an *episode*, episode-like titles are dropped unless
    *exclude_episodes* is false (series requested without an episode).
    """
    if episode is None:
        survivors = filter_movie_results(items) if exclude_episodes else list(items)
    else:
        survivors = rank_series_results(
            filter_series_results(items, episode), episode
        )
    return survivors[: max(0, limit)]

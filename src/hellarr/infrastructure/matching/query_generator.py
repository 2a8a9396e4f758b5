"""Search-query generation for movies and series episodes.

Pure transformation logic without I/O or framework dependencies.
The returned order is the search priority: earlier queries are tried first.
"""

from __future__ import annotations

import re
from typing import Iterable, Sequence

from hellarr.domain.entities.media import EpisodeRef

# Characters dropped from the "clean" title used for bare-number queries.
_CLEAN_RE = re.compile(r"[:&]")
_WS_RE = re.compile(r"\s+")


def dedupe_queries(queries: Iterable[str | None]) -> list[str]:
    """Drop empty and case-insensitive duplicate queries, keeping order."""
    seen: set[str] = set()
    result: list[str] = []
    for query in queries:
        if not query:
            continue
        query = query.strip()
        key = query.casefold()
        if not query or key in seen:
            continue
        seen.add(key)
        result.append(query)
    return result


def simplify_title(title: str) -> str:
    """Cut a title at its first colon (drops the subtitle)."""
    if ":" not in title:
        return title.strip()
    return title.split(":", 1)[0].strip()


def clean_title(title: str) -> str:
    """Remove ``:`` / ``&`` and collapse whitespace."""
    return _WS_RE.sub(" ", _CLEAN_RE.sub("", title)).strip()


def first_words(title: str, count: int = 2) -> str:
    return " ".join(title.split()[:count])


def _episode_queries(title: str, episode: EpisodeRef) -> list[str]:
    ss, ee, n = episode.season_padded, episode.number_padded, episode.number
    return [
        f"{title} S{ss}E{ee}",
        f"{title} {ss}x{ee}",
        f"{title} - {ee}",
        f"{title} - {n}",
        f"{title} #{ee}",
        f"{title} #{n}",
        f"{clean_title(title)} {ee}",
    ]


def _japanese_queries(title: str, episode: EpisodeRef) -> list[str]:
    return [
        f"{title} 第{episode.number}話",
        f"{title} 第{episode.number}集",
    ]


def _movie_queries(title: str, year: int | None) -> list[str]:
    if year:
        return [f"{title} {year}", title]
    return [title]


def _base_titles(title: str, variations: Sequence[str]) -> list[str]:
    return dedupe_queries([title, simplify_title(title), *variations])


def generate(
    title: str,
    episode: EpisodeRef | None = None,
    *,
    year: int | None = None,
    variations: Sequence[str] = (),
) -> list[str]:
    """Build the ordered candidate queries for a title.

    Args:
        title: Resolved display title.
        episode: Requested episode; ``None`` produces movie queries.
        year: Release year, used for movie queries only.
        variations: Alternate names fanned out through the same templates.

    Returns:
        Case-insensitively deduplicated queries, highest priority first.
    """
    title = title.strip()
    if not title:
        return []

    titles = _base_titles(title, variations)
    if episode is None:
        return dedupe_queries(q for t in titles for q in _movie_queries(t, year))

    queries: list[str] = []
    for t in titles:
        queries.extend(_episode_queries(t, episode))
    for t in dedupe_queries([title, simplify_title(title)]):
        queries.extend(_japanese_queries(t, episode))
    return dedupe_queries(queries)


def generic_queries(title: str, variations: Sequence[str] = ()) -> list[str]:
    """Episode-less queries for the generic-search fallback."""
    simplified = simplify_title(title)
    return dedupe_queries(
        [
            title,
            simplified,
            first_words(title),
            first_words(simplified),
            *variations,
        ]
    )


def episode_title_queries(title: str, episode_name: str | None) -> list[str]:
    """Queries built around a known episode name."""
    if not episode_name:
        return []
    simplified = simplify_title(title)
    return dedupe_queries(
        [
            f"{title} {episode_name}",
            episode_name,
            f"{simplified} {episode_name}" if simplified != title else None,
        ]
    )

"""Episode pattern table and matchers for free-text release titles.

Pure transformation logic without I/O or framework dependencies.
Tiers are data: supporting a new naming convention means adding a template
here, not adding control flow to the search engine.
"""

from __future__ import annotations

import re
from typing import Iterable

from hellarr.domain.entities.media import EpisodeRef, SearchResultItem

# Template placeholders: {ss} zero-padded season, {ee} zero-padded episode,
# {n} unpadded episode.
EPISODE_TIERS: tuple[tuple[str, ...], ...] = (
    # Tier 1: standard TV notation
    ("S{ss}E{ee}", "{ss}x{ee}"),
    # Tier 2: anime-style suffix
    (" - {ee}", " - {n}"),
    # Tier 3: loose numeric / keyword forms
    (
        "#{ee}",
        "#{n}",
        "Ep. {ee}",
        "Ep {ee}",
        "Episode {ee}",
        "Episode {n}",
        " {ee} ",
        " {n} ",
        "[{ee}]",
        "[{n}]",
        "第{n}話",
        "第{n}集",
    ),
)

# Titles that look like a single TV episode (used to clean movie results).
_LIKELY_EPISODE_RES: tuple[re.Pattern[str], ...] = (
    re.compile(r"\bS\d{1,2}E\d{1,2}\b", re.IGNORECASE),
    re.compile(r"\b\d{1,2}x\d{1,2}\b", re.IGNORECASE),
    re.compile(r"\s-\s\d{1,2}\b"),
    re.compile(r"\s#\d{1,2}\b"),
    re.compile(r"\[\s?\d{1,2}\s?\]"),
    re.compile(r"第\d{1,2}[話集]"),
    re.compile(r"\bEP\.?\s\d{1,2}\b", re.IGNORECASE),
    re.compile(r"\bEPISODE\s\d{1,2}\b", re.IGNORECASE),
)


def render_tier(templates: Iterable[str], episode: EpisodeRef) -> list[str]:
    """Fill tier templates with the episode's season/number."""
    return [
        t.format(
            ss=episode.season_padded,
            ee=episode.number_padded,
            n=episode.number,
        )
        for t in templates
    ]


def tier_patterns(episode: EpisodeRef) -> list[list[str]]:
    """Rendered patterns per tier, highest priority first."""
    return [render_tier(tier, episode) for tier in EPISODE_TIERS]


def all_patterns(episode: EpisodeRef) -> list[str]:
    """Every rendered pattern across all tiers, in priority order."""
    return [p for tier in tier_patterns(episode) for p in tier]


def matches_any(title: str, patterns: Iterable[str]) -> bool:
    """Case-insensitive substring match against any pattern."""
    if not title:
        return False
    folded = title.casefold()
    return any(p.casefold() in folded for p in patterns)


def filter_by_patterns(
    items: Iterable[SearchResultItem], patterns: list[str]
) -> list[SearchResultItem]:
    return [item for item in items if matches_any(item.title, patterns)]


def anime_suffix(episode: EpisodeRef) -> str:
    """The ``" - NN"`` marker used for anime-style ranking."""
    return f" - {episode.number_padded}"


def ends_with_anime_suffix(title: str, episode: EpisodeRef) -> bool:
    """True when *title* ends exactly with ``" - NN"`` (case-insensitive)."""
    return title.casefold().endswith(anime_suffix(episode).casefold())


def is_likely_episode(title: str) -> bool:
    """Heuristic: does a free-text title look like a TV episode release?"""
    if not title:
        return False
    return any(rx.search(title) for rx in _LIKELY_EPISODE_RES)

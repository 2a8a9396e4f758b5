"""Alternate title sources: static anime alias table plus TMDB lookups."""

from __future__ import annotations

from typing import Protocol

import structlog
from unidecode import unidecode as _unidecode

from hellarr.domain.entities.media import MediaKind

log = structlog.get_logger(__name__)

# Known aliases for titles that are often released under another name.
ANIME_ALIASES: dict[str, tuple[str, ...]] = {
    "Sósó no Frieren": (
        "Frieren",
        "Frieren Beyond Journeys End",
        "Sousou no Frieren",
        "Frieren: Beyond Journey's End",
    ),
    "葬送のフリーレン": (
        "Frieren",
        "Frieren Beyond Journeys End",
        "Sousou no Frieren",
        "Frieren: Beyond Journey's End",
    ),
    "Sousou no Frieren": (
        "Frieren",
        "Frieren Beyond Journeys End",
        "Frieren: Beyond Journey's End",
    ),
    "Frieren: Beyond Journey's End": ("Frieren", "Sousou no Frieren"),
    "Spy×Family": ("Spy Family", "SpyFamily", "Spy x Family"),
    "Jujutsu Kaisen": ("JJK",),
    "Boku no Hero Academia": ("My Hero Academia", "MHA"),
    "Shingeki no Kyojin": ("Attack on Titan", "AOT"),
    "Kimetsu no Yaiba": ("Demon Slayer",),
    "One Piece": ("ワンピース", "Wan Pīsu"),
    "Naruto": ("ナルト",),
    "Dragon Ball": ("ドラゴンボール", "Doragon Bōru"),
    "Bleach": ("ブリーチ", "Burīchi"),
    "Hunter x Hunter": ("Hunter × Hunter", "HxH", "ハンターハンター"),
    "Fullmetal Alchemist": (
        "Fullmetal Alchemist: Brotherhood",
        "FMA",
        "FMA:B",
        "鋼の錬金術師",
    ),
    "Death Note": ("デスノート", "Desu Nōto"),
    "Tokyo Ghoul": ("東京喰種", "Tōkyō Gūru"),
    "Attack on Titan": ("Shingeki no Kyojin", "AOT", "進撃の巨人"),
    "Demon Slayer": ("Kimetsu no Yaiba", "鬼滅の刃"),
    "My Hero Academia": ("Boku no Hero Academia", "MHA", "僕のヒーローアカデミア"),
    "One Punch Man": ("ワンパンマン", "Wanpanman"),
    "Vinland Saga": ("ヴィンランド・サガ",),
    "Chainsaw Man": ("チェンソーマン", "Chensō Man"),
    "Bocchi the Rock!": ("ぼっち・ざ・ろっく!",),
    "Solo Leveling": ("나 혼자만 레벨업", "Na Honjaman Level Up", "I Level Up Alone"),
    "Oshi no Ko": ("【推しの子】", "My Star"),
    "Jigokuraku": ("Hell's Paradise", "地獄楽"),
}

# Shorter shared words are too common to identify a title.
_MIN_WORD_LENGTH = 4


def _fold(text: str) -> str:
    """Lowercase and transliterate to ASCII."""
    return _unidecode(text).lower().strip()


def _words(text: str) -> set[str]:
    return {_fold(w) for w in text.split() if len(w) >= _MIN_WORD_LENGTH}


def _contains(haystack: str, needle: str) -> bool:
    if needle.lower() in haystack.lower():
        return True
    folded = _fold(needle)
    return bool(folded) and folded in _fold(haystack)


def static_variations(title: str) -> list[str]:
    """Aliases from the static table for *title* (excluding *title*)."""
    if not title:
        return []

    found: list[str] = []
    title_words = _words(title)

    for key, aliases in ANIME_ALIASES.items():
        direct = _contains(title, key) or any(_contains(title, a) for a in aliases)
        if direct or title_words & _words(key):
            found.extend(aliases)
            found.append(key)

    return _unique_excluding(found, title)


def _unique_excluding(titles: list[str], exclude: str) -> list[str]:
    seen = {exclude.casefold()}
    result: list[str] = []
    for t in titles:
        if t and t.casefold() not in seen:
            seen.add(t.casefold())
            result.append(t)
    return result


class _AlternativeTitleLookup(Protocol):
    async def alternative_titles(self, name: str, kind: MediaKind) -> list[str]: ...


class TitleVariationSource:
    """Implements ``TitleVariationSourcePort``.

    Static aliases come first; TMDB alternative titles follow when a
    lookup client is configured.  At most *max_variations* are returned.
    """

    def __init__(
        self,
        *,
        tmdb: _AlternativeTitleLookup | None = None,
        max_variations: int = 5,
    ) -> None:
        self._tmdb = tmdb
        self._max_variations = max_variations

    async def variations(self, title: str, kind: MediaKind) -> list[str]:
        found = static_variations(title)
        if self._tmdb is not None and title:
            try:
                found.extend(await self._tmdb.alternative_titles(title, kind))
            except Exception:  # noqa: BLE001
                log.warning("title_variations_lookup_failed", title=title, exc_info=True)
        variations = _unique_excluding(found, title)
        if len(variations) > self._max_variations:
            log.debug(
                "title_variations_truncated",
                title=title,
                found=len(variations),
                kept=self._max_variations,
            )
            variations = variations[: self._max_variations]
        if variations:
            log.debug("title_variations", title=title, count=len(variations))
        return variations

"""Ports for title metadata lookups."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hellarr.domain.entities.media import EpisodeInfo, MediaKind, TitleInfo


@runtime_checkable
class PrimaryMetadataPort(Protocol):
    """Keyed metadata source (TMDB)."""

    async def find_by_external_id(self, external_id: str) -> TitleInfo | None:
        """Lookup title metadata by IMDb ID. None if not found."""
        ...

    async def episode_info(
        self, tmdb_id: int, season: int, episode: int
    ) -> EpisodeInfo | None:
        """Lookup a single episode's metadata. None if not found."""
        ...


@runtime_checkable
class FallbackMetadataPort(Protocol):
    """Keyless metadata source (Wikidata)."""

    async def find_by_external_id(self, external_id: str) -> TitleInfo | None:
        """Lookup title metadata by IMDb ID. None if not found."""
        ...


@runtime_checkable
class TitleVariationSourcePort(Protocol):
    """Source of alternative spellings for a title."""

    async def variations(self, title: str, kind: MediaKind) -> list[str]:
        """Return alternative titles, excluding *title* itself."""
        ...

"""Port for the content-search provider."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from hellarr.domain.entities.media import SearchResultItem, VideoDetail


@runtime_checkable
class ContentSearchPort(Protocol):
    """Async interface for free-text video search and detail lookup.

    Implementations raise ``ProviderError`` subclasses on failure.
    """

    async def search(self, text: str) -> list[SearchResultItem]:
        """Search videos by free text (video items only)."""
        ...

    async def get_detail(self, provider_id: str, file_hash: str) -> VideoDetail:
        """Fetch qualities and direct link for one search result."""
        ...

"""Expand ranked search results into playable stream descriptors."""

from __future__ import annotations

import asyncio

import structlog

from hellarr.domain.entities.media import (
    SearchResultItem,
    StreamDescriptor,
    VideoDetail,
)
from hellarr.domain.ports.content_search import ContentSearchPort

log = structlog.get_logger(__name__)

ORIGINAL_QUALITY = "original"


def descriptors_from_detail(
    item: SearchResultItem, detail: VideoDetail
) -> list[StreamDescriptor]:
    """One descriptor per encoded quality, else one for the direct link."""
    source_title = item.title or detail.title
    if detail.qualities:
        return [
            StreamDescriptor(
                url=url,
                quality_label=f"{quality}p",
                source_title=source_title,
                size_bytes=item.size_bytes,
            )
            for quality, url in detail.qualities.items()
        ]
    if detail.direct_url:
        return [
            StreamDescriptor(
                url=detail.direct_url,
                quality_label=ORIGINAL_QUALITY,
                source_title=source_title,
                size_bytes=item.size_bytes,
            )
        ]
    return []


class StreamFetcher:
    """Resolves search results into StreamDescriptors via the provider.

    Args:
        provider: Content-search provider used for detail lookups.
        max_concurrent: Parallel detail lookups.
    """

    def __init__(
        self,
        *,
        provider: ContentSearchPort,
        max_concurrent: int = 4,
    ) -> None:
        self._provider = provider
        self._max_concurrent = max(1, max_concurrent)

    async def fetch_streams(self, item: SearchResultItem) -> list[StreamDescriptor]:
        """Descriptors for one item. Provider errors propagate."""
        if not item.search_provider_id or not item.file_hash:
            log.warning(
                "stream_fetch_skipped_incomplete_item",
                title=item.title,
                provider_id=item.search_provider_id or None,
                file_hash=item.file_hash or None,
            )
            return []

        detail = await self._provider.get_detail(
            item.search_provider_id, item.file_hash
        )
        streams = descriptors_from_detail(item, detail)
        log.debug(
            "stream_fetch_item",
            title=item.title,
            qualities=[s.quality_label for s in streams],
        )
        return streams

    async def fetch_all(self, items: list[SearchResultItem]) -> list[StreamDescriptor]:
        """Fetch every item with bounded parallelism, settling all.

        Failed items contribute nothing; input order is preserved.
        """
        if not items:
            return []

        semaphore = asyncio.Semaphore(self._max_concurrent)

        async def _fetch_one(item: SearchResultItem) -> list[StreamDescriptor]:
            async with semaphore:
                return await self.fetch_streams(item)

        results = await asyncio.gather(
            *(_fetch_one(item) for item in items), return_exceptions=True
        )

        streams: list[StreamDescriptor] = []
        failed = 0
        for item, result in zip(items, results):
            if isinstance(result, BaseException):
                if isinstance(result, asyncio.CancelledError):
                    raise result
                failed += 1
                log.warning(
                    "stream_fetch_failed",
                    title=item.title,
                    error=str(result),
                    error_type=type(result).__name__,
                )
                continue
            streams.extend(result)

        log.info(
            "stream_fetch_complete",
            items=len(items),
            failed=failed,
            streams=len(streams),
        )
        return streams

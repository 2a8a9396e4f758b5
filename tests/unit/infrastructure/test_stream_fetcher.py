"""Tests for StreamFetcher and descriptor expansion."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from hellarr.domain.entities.media import (
    ProviderUnavailableError,
    SearchResultItem,
    StreamDescriptor,
    VideoDetail,
)
from hellarr.infrastructure.hellspy.stream_fetcher import (
    ORIGINAL_QUALITY,
    StreamFetcher,
    descriptors_from_detail,
)


def _make_item(
    title: str, *, provider_id: str = "1", file_hash: str = "h", size: int = 0
) -> SearchResultItem:
    return SearchResultItem(
        search_provider_id=provider_id,
        file_hash=file_hash,
        title=title,
        size_bytes=size,
    )


def _make_provider(details: dict[str, VideoDetail | Exception]) -> AsyncMock:
    """Provider whose get_detail answers per provider id."""

    async def _get_detail(provider_id: str, file_hash: str) -> VideoDetail:
        result = details[provider_id]
        if isinstance(result, Exception):
            raise result
        return result

    provider = AsyncMock()
    provider.get_detail = AsyncMock(side_effect=_get_detail)
    return provider


class TestDescriptorsFromDetail:
    def test_one_descriptor_per_quality(self) -> None:
        item = _make_item("Demo Show - 04", size=2048)
        detail = VideoDetail(
            title="ignored",
            qualities={"720": "https://cdn/720", "480": "https://cdn/480"},
            direct_url="https://cdn/original",
        )

        streams = descriptors_from_detail(item, detail)

        assert streams == [
            StreamDescriptor("https://cdn/720", "720p", "Demo Show - 04", 2048),
            StreamDescriptor("https://cdn/480", "480p", "Demo Show - 04", 2048),
        ]

    def test_original_fallback_without_conversions(self) -> None:
        item = _make_item("Raw Upload")
        detail = VideoDetail(title="Raw", direct_url="https://cdn/original")

        streams = descriptors_from_detail(item, detail)

        assert len(streams) == 1
        assert streams[0].quality_label == ORIGINAL_QUALITY
        assert streams[0].url == "https://cdn/original"

    def test_nothing_playable(self) -> None:
        assert descriptors_from_detail(_make_item("X"), VideoDetail(title="X")) == []

    def test_detail_title_used_when_item_has_none(self) -> None:
        detail = VideoDetail(title="From Detail", direct_url="https://cdn/o")
        streams = descriptors_from_detail(_make_item(""), detail)
        assert streams[0].source_title == "From Detail"


class TestStreamFetcher:
    @pytest.mark.asyncio()
    async def test_skips_item_without_hash(self) -> None:
        provider = _make_provider({})
        fetcher = StreamFetcher(provider=provider)

        streams = await fetcher.fetch_streams(_make_item("Broken", file_hash=""))

        assert streams == []
        provider.get_detail.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_fetch_all_settles_every_item_in_order(self) -> None:
        provider = _make_provider(
            {
                "a": VideoDetail(title="A", qualities={"720": "https://cdn/a720"}),
                "b": ProviderUnavailableError("hellspy", "timeout"),
                "c": VideoDetail(title="C", direct_url="https://cdn/c"),
            }
        )
        fetcher = StreamFetcher(provider=provider, max_concurrent=2)
        items = [
            _make_item("A", provider_id="a"),
            _make_item("B", provider_id="b"),
            _make_item("C", provider_id="c"),
        ]

        streams = await fetcher.fetch_all(items)

        assert [s.url for s in streams] == ["https://cdn/a720", "https://cdn/c"]
        assert provider.get_detail.await_count == 3

    @pytest.mark.asyncio()
    async def test_fetch_all_empty(self) -> None:
        fetcher = StreamFetcher(provider=_make_provider({}))
        assert await fetcher.fetch_all([]) == []

    @pytest.mark.asyncio()
    async def test_concurrency_is_bounded(self) -> None:
        running = 0
        peak = 0

        async def _get_detail(provider_id: str, file_hash: str) -> VideoDetail:
            nonlocal running, peak
            running += 1
            peak = max(peak, running)
            await asyncio.sleep(0)
            running -= 1
            return VideoDetail(title=provider_id, direct_url=f"https://cdn/{provider_id}")

        provider = AsyncMock()
        provider.get_detail = AsyncMock(side_effect=_get_detail)
        fetcher = StreamFetcher(provider=provider, max_concurrent=2)

        streams = await fetcher.fetch_all(
            [_make_item(str(i), provider_id=str(i)) for i in range(6)]
        )

        assert len(streams) == 6
        assert peak <= 2

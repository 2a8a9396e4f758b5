"""Tests for ResolveStreamsUseCase."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest

from hellarr.application.use_cases import ResolveStreamsUseCase
from hellarr.domain.entities.media import (
    Admission,
    EpisodeRef,
    MediaKind,
    MediaRequest,
    SearchResultItem,
    StreamDescriptor,
    TitleInfo,
)

_ITEM = SearchResultItem(search_provider_id="1", file_hash="h", title="Matrix 1999")
_STREAM = StreamDescriptor("https://cdn/720", "720p", "Matrix 1999", 1024)


def _make_use_case(
    *,
    title: TitleInfo | None = None,
    candidates: list[SearchResultItem] | None = None,
    streams: list[StreamDescriptor] | None = None,
    queue: AsyncMock | None = None,
) -> tuple[ResolveStreamsUseCase, AsyncMock, AsyncMock, AsyncMock]:
    resolver = AsyncMock()
    resolver.resolve.return_value = title
    finder = AsyncMock()
    finder.find_candidates.return_value = (
        [_ITEM] if candidates is None else candidates
    )
    fetcher = AsyncMock()
    fetcher.fetch_all.return_value = [_STREAM] if streams is None else streams
    uc = ResolveStreamsUseCase(
        resolver=resolver,
        finder=finder,
        fetcher=fetcher,
        queue=queue,
        queue_wait_seconds=5.0,
    )
    return uc, resolver, finder, fetcher


class TestExecute:
    @pytest.mark.asyncio()
    async def test_happy_path(self, movie_request: MediaRequest) -> None:
        uc, resolver, finder, fetcher = _make_use_case(
            title=TitleInfo(localized_title="Matrix", year=1999, kind=MediaKind.MOVIE)
        )

        assert await uc.execute(movie_request) == [_STREAM]
        resolver.resolve.assert_awaited_once_with("tt0133093")
        request, title = finder.find_candidates.await_args.args
        assert title == "Matrix"
        assert request.display_name == "Matrix"
        fetcher.fetch_all.assert_awaited_once_with([_ITEM])

    @pytest.mark.asyncio()
    async def test_display_name_skips_resolution(self) -> None:
        uc, resolver, finder, _ = _make_use_case()
        request = MediaRequest(
            external_id="tt0133093", kind=MediaKind.MOVIE, display_name="Matrix"
        )

        await uc.execute(request)

        resolver.resolve.assert_not_awaited()
        assert finder.find_candidates.await_args.args == (request, "Matrix")

    @pytest.mark.asyncio()
    async def test_unresolved_title_returns_empty(
        self, movie_request: MediaRequest
    ) -> None:
        uc, _, finder, _ = _make_use_case(title=None)

        assert await uc.execute(movie_request) == []
        finder.find_candidates.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_no_candidates_skips_fetch(self, movie_request: MediaRequest) -> None:
        uc, _, _, fetcher = _make_use_case(
            title=TitleInfo(localized_title="Matrix"), candidates=[]
        )

        assert await uc.execute(movie_request) == []
        fetcher.fetch_all.assert_not_awaited()

    @pytest.mark.asyncio()
    async def test_failure_returns_empty(self, movie_request: MediaRequest) -> None:
        uc, _, finder, _ = _make_use_case(title=TitleInfo(localized_title="Matrix"))
        finder.find_candidates.side_effect = RuntimeError("boom")

        assert await uc.execute(movie_request) == []

    @pytest.mark.asyncio()
    async def test_metadata_fills_year(self) -> None:
        uc, _, finder, _ = _make_use_case(
            title=TitleInfo(localized_title="Matrix", year=1999, kind=MediaKind.MOVIE)
        )

        await uc.execute(MediaRequest(external_id="tt0133093"))

        request = finder.find_candidates.await_args.args[0]
        assert request.year == 1999
        assert request.kind is MediaKind.MOVIE

    @pytest.mark.asyncio()
    async def test_episode_forces_series(self) -> None:
        uc, _, finder, _ = _make_use_case(
            title=TitleInfo(localized_title="Demo Show", kind=MediaKind.MOVIE)
        )
        request = MediaRequest.from_compound_id("tt1234567:1:4", kind=MediaKind.MOVIE)

        await uc.execute(request)

        forwarded = finder.find_candidates.await_args.args[0]
        assert forwarded.kind is MediaKind.SERIES
        assert forwarded.episode == EpisodeRef(season=1, number=4)


class TestExecuteFor:
    @pytest.mark.asyncio()
    async def test_without_queue(self, movie_request: MediaRequest) -> None:
        uc, *_ = _make_use_case(title=TitleInfo(localized_title="Matrix"))

        admission, streams = await uc.execute_for("rid", movie_request)

        assert admission.admitted
        assert streams == [_STREAM]

    @pytest.mark.asyncio()
    async def test_admitted_requester_is_released(
        self, movie_request: MediaRequest
    ) -> None:
        queue = AsyncMock()
        queue.wait_for_turn.return_value = Admission(admitted=True)
        uc, *_ = _make_use_case(title=TitleInfo(localized_title="Matrix"), queue=queue)

        admission, streams = await uc.execute_for("rid", movie_request)

        assert admission.admitted
        assert streams == [_STREAM]
        queue.wait_for_turn.assert_awaited_once_with("rid", timeout=5.0)
        queue.release.assert_awaited_once_with("rid")

    @pytest.mark.asyncio()
    async def test_queued_requester_gets_no_streams(
        self, movie_request: MediaRequest
    ) -> None:
        queue = AsyncMock()
        queue.wait_for_turn.return_value = Admission(
            admitted=False, queue_position=2, eta_seconds=20.0
        )
        uc, resolver, *_ = _make_use_case(queue=queue)

        admission, streams = await uc.execute_for("rid", movie_request)

        assert admission.queue_position == 2
        assert streams == []
        resolver.resolve.assert_not_awaited()
        queue.release.assert_not_awaited()

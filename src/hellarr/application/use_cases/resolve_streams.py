"""Stream resolution use case.

External ID -> title (TMDB / Wikidata) -> query escalation on Hellspy
-> ranked candidates -> stream descriptors.
"""

from __future__ import annotations

import time
from typing import Protocol

import structlog

from hellarr.domain.entities.media import (
    Admission,
    MediaKind,
    MediaRequest,
    SearchResultItem,
    StreamDescriptor,
    TitleInfo,
)

# ---------------------------------------------------------------------------
# Protocols: define what this use case needs from its dependencies.
# Infrastructure components satisfy these via structural subtyping.
# ---------------------------------------------------------------------------


class _TitleResolver(Protocol):
    async def resolve(self, external_id: str) -> TitleInfo | None: ...


class _CandidateFinder(Protocol):
    async def find_candidates(
        self, request: MediaRequest, title: str
    ) -> list[SearchResultItem]: ...


class _StreamFetcher(Protocol):
    async def fetch_all(
        self, items: list[SearchResultItem]
    ) -> list[StreamDescriptor]: ...


class _AdmissionQueue(Protocol):
    async def wait_for_turn(self, requester_id: str, timeout: float) -> Admission: ...

    async def release(self, requester_id: str) -> None: ...


log = structlog.get_logger(__name__)


class ResolveStreamsUseCase:
    """Resolve a MediaRequest into playable StreamDescriptors.

    Flow:
        1. Resolve the external ID to a title (unless the caller named it).
        2. Generate queries and escalate through the search tiers.
        3. Filter, rank and cap the candidates.
        4. Fetch stream URLs for the candidates in parallel.

    ``execute`` never raises: every failure ends in an empty list.
    """

    def __init__(
        self,
        *,
        resolver: _TitleResolver,
        finder: _CandidateFinder,
        fetcher: _StreamFetcher,
        queue: _AdmissionQueue | None = None,
        queue_wait_seconds: float = 60.0,
    ) -> None:
        self._resolver = resolver
        self._finder = finder
        self._fetcher = fetcher
        self._queue = queue
        self._queue_wait_seconds = queue_wait_seconds

    async def execute(self, request: MediaRequest) -> list[StreamDescriptor]:
        """Resolve streams for *request*.

        Returns:
            Descriptors in ranking order; empty if the title is unknown,
            nothing matched, or anything failed.
        """
        started = time.perf_counter()
        try:
            streams = await self._run(request)
        except Exception:  # noqa: BLE001
            log.warning(
                "resolve_streams_failed",
                external_id=request.external_id,
                exc_info=True,
            )
            return []

        log.info(
            "resolve_streams_complete",
            external_id=request.external_id,
            stream_count=len(streams),
            duration_ms=round((time.perf_counter() - started) * 1000),
        )
        return streams

    async def execute_for(
        self, requester_id: str, request: MediaRequest
    ) -> tuple[Admission, list[StreamDescriptor]]:
        """Run :meth:`execute` once *requester_id* is admitted.

        Without a queue every request is admitted immediately.  A
        requester still queued after the wait budget gets its admission
        back with no streams.
        """
        if self._queue is None:
            return Admission(admitted=True), await self.execute(request)

        admission = await self._queue.wait_for_turn(
            requester_id, timeout=self._queue_wait_seconds
        )
        if not admission.admitted:
            return admission, []
        try:
            return admission, await self.execute(request)
        finally:
            await self._queue.release(requester_id)

    async def _run(self, request: MediaRequest) -> list[StreamDescriptor]:
        request, title = await self._resolve_title(request)
        if not title:
            log.warning("resolve_streams_title_not_found", external_id=request.external_id)
            return []

        log.info(
            "resolve_streams_start",
            external_id=request.external_id,
            title=title,
            kind=request.kind.value,
            season=request.episode.season if request.episode else None,
            episode=request.episode.number if request.episode else None,
        )

        candidates = await self._finder.find_candidates(request, title)
        if not candidates:
            log.info(
                "resolve_streams_no_candidates",
                external_id=request.external_id,
                title=title,
            )
            return []

        return await self._fetcher.fetch_all(candidates)

    async def _resolve_title(
        self, request: MediaRequest
    ) -> tuple[MediaRequest, str | None]:
        """Fill in display name, year and kind from metadata if missing."""
        if request.display_name:
            return request, request.display_name

        info = await self._resolver.resolve(request.external_id)
        if info is None:
            return request, None

        caller = TitleInfo(
            localized_title=request.display_name,
            year=request.year,
            kind=request.kind if request.kind is not MediaKind.UNKNOWN else None,
        )
        merged = caller.merged_with(info)
        kind = merged.kind or MediaKind.UNKNOWN
        if request.episode is not None and kind is MediaKind.MOVIE:
            # An episode suffix wins over a movie classification.
            kind = MediaKind.SERIES

        resolved = MediaRequest(
            external_id=request.external_id,
            kind=kind,
            display_name=merged.display_title,
            episode=request.episode,
            year=merged.year,
        )
        return resolved, merged.display_title

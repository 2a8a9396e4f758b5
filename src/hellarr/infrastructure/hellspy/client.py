"""Hellspy API client: async httpx implementation with caching."""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from hellarr.domain.entities.media import (
    SEARCH_VIDEO_KIND,
    ProviderResponseError,
    ProviderThrottledError,
    ProviderUnavailableError,
    SearchResultItem,
    VideoDetail,
)
from hellarr.domain.ports.cache import CachePort

log = structlog.get_logger(__name__)

PROVIDER = "hellspy"

_BASE_URL = "https://api.hellspy.to/gw"
_SEARCH_LIMIT = 64


class HttpxHellspyClient:
    """Async Hellspy client using httpx + CachePort.

    Implements ``ContentSearchPort`` from domain.ports.content_search.
    Failures raise ``ProviderError`` subclasses; only successful lookups
    are cached.
    """

    def __init__(
        self,
        *,
        http_client: httpx.AsyncClient,
        cache: CachePort,
        base_url: str = _BASE_URL,
        cache_ttl: int | None = None,
    ) -> None:
        self._http = http_client
        self._cache = cache
        self._base_url = base_url.rstrip("/")
        self._cache_ttl = cache_ttl

    # ------------------------------------------------------------------
    # Private helpers
    # ------------------------------------------------------------------

    async def _get(self, path: str, **params: Any) -> dict[str, Any]:
        """GET request returning the parsed JSON object."""
        url = f"{self._base_url}{path}"
        try:
            resp = await self._http.get(url, params=params or None)
        except httpx.HTTPError as exc:
            raise ProviderUnavailableError(
                PROVIDER, f"{type(exc).__name__} on {path}"
            ) from exc

        if resp.status_code == 429:
            raise ProviderThrottledError(
                PROVIDER, f"throttled on {path}", status_code=429
            )
        if resp.is_error:
            raise ProviderResponseError(
                PROVIDER,
                f"HTTP {resp.status_code} on {path}",
                status_code=resp.status_code,
            )
        try:
            data = resp.json()
        except ValueError as exc:
            raise ProviderResponseError(PROVIDER, f"invalid JSON on {path}") from exc
        if not isinstance(data, dict):
            raise ProviderResponseError(PROVIDER, f"unexpected body on {path}")
        return data

    @staticmethod
    def _to_item(raw: dict[str, Any]) -> SearchResultItem:
        size = raw.get("size") or 0
        return SearchResultItem(
            search_provider_id=str(raw.get("id") or ""),
            file_hash=str(raw.get("fileHash") or ""),
            title=str(raw.get("title") or ""),
            size_bytes=int(size) if isinstance(size, (int, float)) else 0,
            item_kind=str(raw.get("objectType") or ""),
        )

    @staticmethod
    def _to_detail(data: dict[str, Any]) -> VideoDetail:
        conversions = data.get("conversions")
        if not isinstance(conversions, dict):
            conversions = {}
        qualities = {str(q): str(url) for q, url in conversions.items() if url}
        return VideoDetail(
            title=str(data.get("title") or ""),
            duration_seconds=int(data.get("duration") or 0),
            qualities=qualities,
            direct_url=data.get("download") or None,
        )

    # ------------------------------------------------------------------
    # Public API (ContentSearchPort)
    # ------------------------------------------------------------------

    async def search(self, text: str) -> list[SearchResultItem]:
        """Search videos by free text. Non-video items are discarded."""
        cache_key = f"hellspy:search:{text}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._get(
            "/search", query=text, offset=0, limit=_SEARCH_LIMIT
        )
        raw_items = data.get("items") or []
        items = [
            self._to_item(raw)
            for raw in raw_items
            if isinstance(raw, dict) and raw.get("objectType") == SEARCH_VIDEO_KIND
        ]
        log.info("hellspy_search", query=text, total=len(raw_items), videos=len(items))
        await self._cache.set(cache_key, items, ttl=self._cache_ttl)
        return items

    async def get_detail(self, provider_id: str, file_hash: str) -> VideoDetail:
        """Fetch conversions and direct download for one video."""
        cache_key = f"hellspy:video:{provider_id}:{file_hash}"
        cached = await self._cache.get(cache_key)
        if cached is not None:
            return cached

        data = await self._get(f"/video/{provider_id}/{file_hash}")
        detail = self._to_detail(data)
        log.debug(
            "hellspy_video_detail",
            provider_id=provider_id,
            title=detail.title,
            duration=detail.duration_seconds,
            qualities=sorted(detail.qualities),
        )
        await self._cache.set(cache_key, detail, ttl=self._cache_ttl)
        return detail

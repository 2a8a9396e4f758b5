"""Stremio addon API endpoints (manifest, stream)."""

from __future__ import annotations

import hashlib
from typing import Any, cast

import structlog
from fastapi import APIRouter, Request
from fastapi.responses import JSONResponse

from hellarr.domain.entities.media import (
    Admission,
    MediaKind,
    MediaRequest,
    StreamDescriptor,
)
from hellarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)

router = APIRouter(tags=["stremio"])

_ADDON_ID = "org.stremio.hellspy"
_ADDON_VERSION = "0.1.0"

_CORS_HEADERS = {
    "Access-Control-Allow-Origin": "*",
    "Access-Control-Allow-Headers": "*",
}

_KINDS: dict[str, MediaKind] = {
    "movie": MediaKind.MOVIE,
    "series": MediaKind.SERIES,
}


def _build_manifest(tmdb_enabled: bool) -> dict[str, Any]:
    """Build the Stremio addon manifest."""
    return {
        "id": _ADDON_ID,
        "version": _ADDON_VERSION,
        "name": "Hellspy with TMDb" if tmdb_enabled else "Hellspy",
        "description": (
            "Hellspy.to addon for Stremio with enhanced TMDb metadata"
            if tmdb_enabled
            else "Hellspy.to addon for Stremio (TMDb metadata disabled)"
        ),
        "resources": ["stream"],
        "types": ["movie", "series"],
        "idPrefixes": ["tt", "kitsu"],
        "catalogs": [],
    }


def requester_id(request: Request) -> str:
    """Stable requester identity from client address and User-Agent."""
    host = request.client.host if request.client else "unknown"
    agent = request.headers.get("user-agent", "")
    return hashlib.sha256(f"{host}|{agent}".encode()).hexdigest()[:16]


def parse_stream_request(content_type: str, raw_id: str) -> MediaRequest | None:
    """Parse a Stremio stream ID into a MediaRequest.

    Movies: "tt1234567"
    Series: "tt1234567:1:5" (season 1, episode 5)
    """
    kind = _KINDS.get(content_type)
    if kind is None or not raw_id:
        return None
    try:
        return MediaRequest.from_compound_id(raw_id, kind=kind)
    except ValueError:
        return None


def format_size(size_bytes: int) -> str:
    if not size_bytes:
        return "Unknown size"
    return f"{size_bytes / 1024 / 1024 / 1024:.2f} GB"


def format_stream(stream: StreamDescriptor) -> dict[str, str]:
    """Convert a StreamDescriptor to Stremio JSON format."""
    return {
        "url": stream.url,
        "name": f"Hellspy - {stream.quality_label}",
        "title": (
            f"{stream.source_title}\n"
            f"{stream.quality_label} | {format_size(stream.size_bytes)}"
        ),
        "quality": stream.quality_label,
    }


def format_queue_notice(admission: Admission) -> dict[str, str]:
    """Informational entry shown while the requester is still queued."""
    return {
        "name": "Hellspy - queue",
        "title": (
            f"Waiting in queue: position {admission.queue_position}\n"
            f"Estimated wait: {admission.eta_seconds:.0f} s, try again shortly"
        ),
        "externalUrl": "https://hellspy.to",
    }


@router.get("/manifest.json")
async def stremio_manifest(request: Request) -> JSONResponse:
    """Serve the Stremio addon manifest."""
    state = cast(AppState, request.app.state)
    tmdb_enabled = getattr(state, "tmdb_client", None) is not None
    return JSONResponse(content=_build_manifest(tmdb_enabled), headers=_CORS_HEADERS)


@router.get("/stream/{content_type}/{stream_id}.json")
async def stremio_stream(
    request: Request,
    content_type: str,
    stream_id: str,
) -> JSONResponse:
    """Resolve streams for a movie or episode; never fails with a 5xx."""
    state = cast(AppState, request.app.state)

    media_request = parse_stream_request(content_type, stream_id)
    if media_request is None:
        log.info(
            "stremio_stream_invalid_id",
            content_type=content_type,
            stream_id=stream_id,
        )
        return JSONResponse(content={"streams": []}, headers=_CORS_HEADERS)

    rid = requester_id(request)
    try:
        admission, streams = await state.resolve_streams_uc.execute_for(
            rid, media_request
        )
    except Exception:
        log.error(
            "stremio_stream_failed",
            stream_id=stream_id,
            requester=rid,
            exc_info=True,
        )
        return JSONResponse(content={"streams": []}, headers=_CORS_HEADERS)

    if not admission.admitted:
        log.info(
            "stremio_stream_queued",
            stream_id=stream_id,
            requester=rid,
            position=admission.queue_position,
            eta_seconds=admission.eta_seconds,
        )
        return JSONResponse(
            content={"streams": [format_queue_notice(admission)]},
            headers=_CORS_HEADERS,
        )

    return JSONResponse(
        content={"streams": [format_stream(s) for s in streams]},
        headers=_CORS_HEADERS,
    )

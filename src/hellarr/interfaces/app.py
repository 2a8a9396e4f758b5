"""FastAPI application factory (create_app)."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable

import structlog
from fastapi import FastAPI, Request
from starlette.responses import Response

from hellarr.infrastructure.config import AppConfig
from hellarr.interfaces.api.stremio.router import router as stremio_router
from hellarr.interfaces.app_state import AppState
from hellarr.interfaces.composition import lifespan

log = structlog.get_logger(__name__)


def create_app(config: AppConfig) -> FastAPI:
    """Create FastAPI app: configuration ONLY, NO resource initialization.

    Resources (gateway, HTTP client, cache, pipeline) are created in lifespan().
    """
    app = FastAPI(
        title="Hellarr",
        description="Stremio stream addon for Hellspy",
        version="0.1.0",
        lifespan=lifespan,
    )

    app.state = AppState()
    app.state.config = config

    app.include_router(stremio_router)

    @app.get("/healthz")
    async def healthz() -> dict[str, object]:
        """Liveness check with a glimpse at the fairness queue."""
        queue = getattr(app.state, "fairness_queue", None)
        return {
            "status": "ok",
            "processing": queue.processing_count if queue else 0,
            "queued": queue.queued_count if queue else 0,
        }

    @app.middleware("http")
    async def log_requests(
        request: Request, call_next: Callable[[Request], Awaitable[Response]]
    ):
        start = time.perf_counter()
        response: Response | None = None
        try:
            response = await call_next(request)
            return response
        finally:
            duration_ms = (time.perf_counter() - start) * 1000.0
            log.info(
                "http_request",
                method=request.method,
                path=request.url.path,
                status_code=response.status_code if response is not None else 500,
                duration_ms=round(duration_ms, 2),
                client_host=(request.client.host if request.client else None),
            )

    return app

"""Composition root: dependency injection via FastAPI lifespan."""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator, cast

import httpx
import structlog
from fastapi import FastAPI

from hellarr.application.use_cases import ResolveStreamsUseCase
from hellarr.infrastructure.cache.cache_factory import create_cache
from hellarr.infrastructure.common import GatewayTransport, RequestGateway
from hellarr.infrastructure.config.schema import AppConfig
from hellarr.infrastructure.fairness import FairnessQueue
from hellarr.infrastructure.hellspy.client import HttpxHellspyClient
from hellarr.infrastructure.hellspy.stream_fetcher import StreamFetcher
from hellarr.infrastructure.matching.search_engine import SearchMatchEngine
from hellarr.infrastructure.matching.title_variations import TitleVariationSource
from hellarr.infrastructure.tmdb.client import HttpxTmdbClient
from hellarr.infrastructure.tmdb.title_resolver import TitleResolver
from hellarr.infrastructure.tmdb.wikidata import WikidataClient
from hellarr.interfaces.app_state import AppState

log = structlog.get_logger(__name__)


def build_http_client(config: AppConfig, gateway: RequestGateway) -> httpx.AsyncClient:
    """HTTP client whose every request passes through the gateway."""
    transport = GatewayTransport(
        wrapped=httpx.AsyncHTTPTransport(),
        gateway=gateway,
    )
    return httpx.AsyncClient(
        transport=transport,
        timeout=httpx.Timeout(config.http_timeout_seconds),
        headers={"User-Agent": config.http_user_agent},
        follow_redirects=config.http_follow_redirects,
    )


def wire_pipeline(state: AppState, config: AppConfig) -> None:
    """Build providers, pipeline stages and the use case on *state*.

    Expects ``state.cache`` and ``state.http_client`` to exist already.
    """
    state.hellspy_client = HttpxHellspyClient(
        http_client=state.http_client,
        cache=state.cache,
        base_url=config.resolver.hellspy_base_url,
    )

    # TMDB is optional; Wikidata alone still resolves most titles.
    if config.metadata.tmdb_api_key:
        state.tmdb_client = HttpxTmdbClient(
            api_key=config.metadata.tmdb_api_key,
            http_client=state.http_client,
            cache=state.cache,
            language=config.metadata.tmdb_language,
        )
        log.info("tmdb_client_initialized", language=config.metadata.tmdb_language)
    else:
        state.tmdb_client = None
        log.info("tmdb_client_disabled", reason="no API key, using Wikidata only")

    state.wikidata_client = WikidataClient(
        http_client=state.http_client,
        cache=state.cache,
        language=config.metadata.wikidata_language,
    )

    state.title_resolver = TitleResolver(
        primary=state.tmdb_client,
        fallback=state.wikidata_client,
    )
    state.title_variations = TitleVariationSource(
        tmdb=(
            state.tmdb_client
            if config.resolver.use_tmdb_alternative_titles
            else None
        ),
        max_variations=config.resolver.max_title_variations,
    )
    state.search_engine = SearchMatchEngine(
        provider=state.hellspy_client,
        resolver=state.title_resolver,
        variations=state.title_variations,
        max_results=config.resolver.max_results,
        max_queries=config.resolver.max_queries,
    )
    state.stream_fetcher = StreamFetcher(
        provider=state.hellspy_client,
        max_concurrent=config.resolver.fetch_concurrency,
    )
    state.fairness_queue = FairnessQueue(
        max_concurrent=config.fairness.max_concurrent,
        promote_delay=config.fairness.promote_delay_seconds,
        idle_timeout=config.fairness.idle_timeout_seconds,
        default_duration=config.fairness.default_duration_seconds,
    )
    state.resolve_streams_uc = ResolveStreamsUseCase(
        resolver=state.title_resolver,
        finder=state.search_engine,
        fetcher=state.stream_fetcher,
        queue=state.fairness_queue,
        queue_wait_seconds=config.fairness.wait_seconds,
    )
    log.info(
        "pipeline_initialized",
        max_results=config.resolver.max_results,
        fetch_concurrency=config.resolver.fetch_concurrency,
        fairness_max_concurrent=config.fairness.max_concurrent,
    )


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan Hook: Initialize and cleanup all resources (DI Composition Root).

    Order matters:
        1. Cache (required by every provider client)
        2. Gateway + HTTP client (shared by every provider client)
        3. Providers, pipeline stages, fairness queue and use case
    """
    state = cast(AppState, app.state)
    config = state.config

    # 1) Cache
    cache = create_cache(
        backend=config.cache_backend,
        ttl_seconds=config.cache_ttl_seconds,
    )
    await cache.__aenter__()
    state.cache = cache
    log.info("cache_initialized", backend=config.cache_backend)

    # 2) Gateway-backed HTTP client
    state.gateway = RequestGateway(
        min_interval=config.gateway.min_interval_seconds,
        max_retries=config.gateway.max_retries,
        backoff_base=config.gateway.backoff_base_seconds,
    )
    state.http_client = build_http_client(config, state.gateway)
    log.info(
        "http_client_initialized",
        min_interval=config.gateway.min_interval_seconds,
        max_retries=config.gateway.max_retries,
    )

    # 3) Pipeline
    wire_pipeline(state, config)

    log.info("app_startup_complete")

    try:
        yield
    finally:
        await state.http_client.aclose()
        log.info("http_client_closed")

        await state.gateway.aclose()
        log.info("gateway_closed")

        await state.cache.aclose()
        log.info("cache_closed")

        log.info("app_shutdown_complete")

"""Application state container for FastAPI dependency injection."""

from __future__ import annotations

from typing import TYPE_CHECKING

import httpx
from starlette.datastructures import State

from hellarr.infrastructure.config import AppConfig

if TYPE_CHECKING:
    from hellarr.application.use_cases import ResolveStreamsUseCase
    from hellarr.domain.ports import CachePort
    from hellarr.infrastructure.common import RequestGateway
    from hellarr.infrastructure.fairness import FairnessQueue
    from hellarr.infrastructure.hellspy.client import HttpxHellspyClient
    from hellarr.infrastructure.hellspy.stream_fetcher import StreamFetcher
    from hellarr.infrastructure.matching.search_engine import SearchMatchEngine
    from hellarr.infrastructure.matching.title_variations import (
        TitleVariationSource,
    )
    from hellarr.infrastructure.tmdb.client import HttpxTmdbClient
    from hellarr.infrastructure.tmdb.title_resolver import TitleResolver
    from hellarr.infrastructure.tmdb.wikidata import WikidataClient


class AppState(State):
    """FastAPI application state with all DI resources.

    Lifecycle managed by composition.py::lifespan().
    """

    # Configuration
    config: AppConfig

    # Infrastructure
    cache: CachePort
    gateway: RequestGateway
    http_client: httpx.AsyncClient

    # Providers (TMDB is optional, requires an API key)
    hellspy_client: HttpxHellspyClient
    tmdb_client: HttpxTmdbClient | None
    wikidata_client: WikidataClient

    # Pipeline stages
    title_resolver: TitleResolver
    title_variations: TitleVariationSource
    search_engine: SearchMatchEngine
    stream_fetcher: StreamFetcher
    fairness_queue: FairnessQueue

    # Application Services
    resolve_streams_uc: ResolveStreamsUseCase

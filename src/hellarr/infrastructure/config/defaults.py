"""Hardcoded default configuration values."""

from __future__ import annotations

from typing import Any

DEFAULT_CONFIG: dict[str, Any] = {
    "app_name": "hellarr",
    "environment": "dev",
    "http": {
        "timeout_seconds": 10.0,
        "follow_redirects": True,
        "user_agent": "Hellarr/0.1.0",
    },
    "logging": {
        "level": "INFO",
        "format": None,  # Derived from environment in schema.py
    },
    "cache": {
        "backend": "memory",
        "ttl_seconds": 3600,
    },
    "gateway": {
        "min_interval_seconds": 1.0,
        "max_retries": 3,
        "backoff_base_seconds": 2.0,
    },
    "metadata": {
        "tmdb_language": "cs-CZ",
        "wikidata_language": "cs",
    },
    "resolver": {
        "max_results": 10,
        "fetch_concurrency": 4,
        "max_queries": 24,
        "max_title_variations": 5,
        "use_tmdb_alternative_titles": False,
    },
    "fairness": {
        "max_concurrent": 1,
        "promote_delay_seconds": 0.5,
        "idle_timeout_seconds": 300.0,
        "wait_seconds": 60.0,
    },
}

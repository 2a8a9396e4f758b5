"""Layered configuration loading: defaults < YAML < environment < CLI."""

from __future__ import annotations

from copy import deepcopy
from pathlib import Path
from typing import Any, Iterator, Mapping

import yaml
from dotenv import load_dotenv

from .defaults import DEFAULT_CONFIG
from .schema import AppConfig, EnvOverrides

_TOP_LEVEL_KEYS: tuple[str, ...] = ("app_name", "environment")

_SECTIONS: tuple[str, ...] = (
    "http",
    "logging",
    "cache",
    "gateway",
    "metadata",
    "resolver",
    "fairness",
)

# Flat key (ENV / CLI) -> (section, key inside section)
_FLAT_MAP: dict[str, tuple[str, str]] = {
    "http_timeout_seconds": ("http", "timeout_seconds"),
    "http_follow_redirects": ("http", "follow_redirects"),
    "http_user_agent": ("http", "user_agent"),
    "log_level": ("logging", "level"),
    "log_format": ("logging", "format"),
    "cache_backend": ("cache", "backend"),
    "cache_ttl_seconds": ("cache", "ttl_seconds"),
    "gateway_min_interval_seconds": ("gateway", "min_interval_seconds"),
    "gateway_max_retries": ("gateway", "max_retries"),
    "gateway_backoff_base_seconds": ("gateway", "backoff_base_seconds"),
    "tmdb_api_key": ("metadata", "tmdb_api_key"),
    "tmdb_language": ("metadata", "tmdb_language"),
    "wikidata_language": ("metadata", "wikidata_language"),
    "resolver_max_results": ("resolver", "max_results"),
    "resolver_fetch_concurrency": ("resolver", "fetch_concurrency"),
    "resolver_max_queries": ("resolver", "max_queries"),
    "resolver_use_tmdb_alternative_titles": (
        "resolver",
        "use_tmdb_alternative_titles",
    ),
    "fairness_max_concurrent": ("fairness", "max_concurrent"),
    "fairness_wait_seconds": ("fairness", "wait_seconds"),
}


def _merge_into(target: dict[str, Any], layer: Mapping[str, Any]) -> None:
    """Nested mappings merge key by key; any other value replaces."""
    for key, value in layer.items():
        current = target.get(key)
        if isinstance(current, dict) and isinstance(value, Mapping):
            _merge_into(current, value)
        else:
            target[key] = value


def _sectioned(layer: Mapping[str, Any]) -> dict[str, Any]:
    """Nest a layer by section; flat keys such as ``log_level`` are moved
    into the section they belong to."""
    out: dict[str, Any] = {k: layer[k] for k in _TOP_LEVEL_KEYS if k in layer}
    for section in _SECTIONS:
        block = layer.get(section)
        if isinstance(block, Mapping):
            out[section] = dict(block)
    for flat_key, (section, key) in _FLAT_MAP.items():
        if flat_key in layer:
            out.setdefault(section, {})[key] = layer[flat_key]
    return out


def _existing(path: Path) -> Path:
    if not path.exists():
        raise FileNotFoundError(path)
    return path


def _yaml_layer(path: Path) -> dict[str, Any]:
    parsed = yaml.safe_load(_existing(path).read_text(encoding="utf-8"))
    if parsed is None:
        return {}
    if not isinstance(parsed, dict):
        raise ValueError(
            f"Config YAML must be a mapping, got {type(parsed).__name__}"
        )
    return parsed


def _layers(
    config_path: Path | None, cli_overrides: Mapping[str, Any]
) -> Iterator[Mapping[str, Any]]:
    yield deepcopy(DEFAULT_CONFIG)
    if config_path is not None:
        yield _yaml_layer(config_path)
    yield EnvOverrides().to_update_dict()
    yield cli_overrides


def load_config(
    *,
    config_path: Path | None = None,
    dotenv_path: Path | None = None,
    cli_overrides: dict[str, Any] | None = None,
) -> AppConfig:
    """Build the validated application config.

    Later layers win: built-in defaults, the YAML file, ``HELLARR_*``
    environment variables, then CLI overrides.  A ``.env`` file feeds the
    environment layer without replacing variables that are already set.
    Nothing is written to disk.

    Raises:
        FileNotFoundError: If *config_path* or *dotenv_path* does not exist.
        ValueError: If the YAML document is not a mapping.
        pydantic.ValidationError: If the merged values are invalid.
    """
    if dotenv_path is not None:
        load_dotenv(_existing(dotenv_path), override=False)

    merged: dict[str, Any] = {}
    for layer in _layers(config_path, cli_overrides or {}):
        _merge_into(merged, _sectioned(layer))
    return AppConfig.model_validate(merged)

"""``hellarr`` console entrypoint: parse flags, load config, serve."""

from __future__ import annotations

import argparse
import os
import sys
from collections.abc import Iterable
from pathlib import Path
from typing import Any

import structlog
import uvicorn

from hellarr.infrastructure.config import load_config
from hellarr.infrastructure.logging.setup import configure_logging
from hellarr.interfaces.app import create_app

log = structlog.get_logger(__name__)

DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 7000

# argparse dest -> flat config key
_OVERRIDE_FLAGS: dict[str, str] = {
    "tmdb_api_key": "tmdb_api_key",
    "log_level": "log_level",
    "log_format": "log_format",
}


def _parse_args(argv: Iterable[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="hellarr",
        description="Stremio addon resolving IMDb IDs to Hellspy streams.",
    )

    server = parser.add_argument_group("server")
    server.add_argument("--host", help=f"Bind host (env HOST, default {DEFAULT_HOST}).")
    server.add_argument(
        "--port", type=int, help=f"Bind port (env PORT, default {DEFAULT_PORT})."
    )

    config = parser.add_argument_group("configuration")
    config.add_argument("--config", type=Path, help="YAML config file.")
    config.add_argument("--dotenv", type=Path, help=".env file to load first.")
    config.add_argument("--tmdb-api-key", help="TMDB key; wins over TMDB_API_KEY.")
    config.add_argument(
        "--log-level", choices=["DEBUG", "INFO", "WARNING", "ERROR"]
    )
    config.add_argument("--log-format", choices=["json", "console"])

    return parser.parse_args(argv)


def build_cli_overrides(args: argparse.Namespace) -> dict[str, Any]:
    """Flat config overrides for the flags that were actually given."""
    return {
        key: getattr(args, dest)
        for dest, key in _OVERRIDE_FLAGS.items()
        if getattr(args, dest)
    }


def _bind_address(args: argparse.Namespace) -> tuple[str, int]:
    host = args.host or os.getenv("HOST", DEFAULT_HOST)
    port = args.port or int(os.getenv("PORT", str(DEFAULT_PORT)))
    return host, port


def start(argv: Iterable[str] | None = None) -> None:
    """Load the config once, configure logging and run uvicorn."""
    args = _parse_args(sys.argv[1:] if argv is None else argv)
    host, port = _bind_address(args)

    config = load_config(
        config_path=args.config,
        dotenv_path=args.dotenv,
        cli_overrides=build_cli_overrides(args),
    )
    log_config = configure_logging(config)
    log.info(
        "hellarr_starting",
        host=host,
        port=port,
        tmdb_enabled=bool(config.metadata.tmdb_api_key),
    )

    uvicorn.run(create_app(config), host=host, port=port, log_config=log_config)


if __name__ == "__main__":
    raise SystemExit(start())

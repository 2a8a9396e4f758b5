"""Integration tests for configuration loading with layered precedence.

Exercises the real load_config() with YAML files, environment variables
and CLI overrides: defaults < YAML < ENV < CLI.
"""

from __future__ import annotations

import os
from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from hellarr.infrastructure.config.load import load_config

pytestmark = pytest.mark.integration


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("TMDB_API_KEY", "HELLARR_TMDB_API_KEY", "HELLARR_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture()
def yaml_config(tmp_path: Path) -> Path:
    """Write a minimal YAML config and return its path."""
    config = {
        "app_name": "hellarr-test",
        "environment": "test",
        "http": {"timeout_seconds": 15.0, "user_agent": "TestAgent/1.0"},
        "logging": {"level": "DEBUG"},
        "gateway": {"min_interval_seconds": 0.5},
        "metadata": {"tmdb_api_key": "yaml-key"},
        "fairness": {"max_concurrent": 2},
    }
    path = tmp_path / "config.yaml"
    path.write_text(yaml.dump(config), encoding="utf-8")
    return path


class TestDefaultsOnly:
    def test_defaults_produce_valid_config(self) -> None:
        config = load_config()

        assert config.app_name == "hellarr"
        assert config.environment == "dev"
        assert config.log_format == "console"
        assert config.cache_backend == "memory"
        assert config.cache_ttl_seconds == 3600
        assert config.gateway.min_interval_seconds == 1.0
        assert config.gateway.max_retries == 3
        assert config.gateway.backoff_base_seconds == 2.0
        assert config.metadata.tmdb_api_key is None
        assert config.resolver.max_results == 10
        assert config.resolver.max_queries == 24
        assert config.resolver.max_title_variations == 5
        assert config.resolver.use_tmdb_alternative_titles is False
        assert config.fairness.max_concurrent == 1

    def test_prod_defaults_to_json_logs(self) -> None:
        assert load_config(cli_overrides={"environment": "prod"}).log_format == "json"


class TestYamlOverrides:
    def test_yaml_overrides_defaults(self, yaml_config: Path) -> None:
        config = load_config(config_path=yaml_config)

        assert config.app_name == "hellarr-test"
        assert config.http_timeout_seconds == 15.0
        assert config.http_user_agent == "TestAgent/1.0"
        assert config.log_level == "DEBUG"
        assert config.gateway.min_interval_seconds == 0.5
        assert config.gateway.max_retries == 3
        assert config.metadata.tmdb_api_key == "yaml-key"
        assert config.metadata.tmdb_language == "cs-CZ"
        assert config.fairness.max_concurrent == 2

    def test_missing_yaml_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(config_path=tmp_path / "nonexistent.yaml")

    def test_non_mapping_yaml_raises(self, tmp_path: Path) -> None:
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(ValueError, match="mapping"):
            load_config(config_path=path)

    def test_empty_yaml_keeps_defaults(self, tmp_path: Path) -> None:
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(config_path=path).app_name == "hellarr"


class TestEnvOverrides:
    def test_env_overrides_yaml(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HELLARR_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("HELLARR_GATEWAY_MIN_INTERVAL_SECONDS", "2.5")

        config = load_config(config_path=yaml_config)

        assert config.log_level == "WARNING"
        assert config.gateway.min_interval_seconds == 2.5
        assert config.http_timeout_seconds == 15.0

    def test_plain_tmdb_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("TMDB_API_KEY", "env-key")
        assert load_config().metadata.tmdb_api_key == "env-key"

    def test_prefixed_tmdb_api_key(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HELLARR_TMDB_API_KEY", "prefixed-key")
        assert load_config().metadata.tmdb_api_key == "prefixed-key"

    def test_dotenv_file(
        self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        # load_dotenv writes into os.environ; keep that inside this test.
        monkeypatch.setattr(os, "environ", os.environ.copy())
        dotenv = tmp_path / ".env"
        dotenv.write_text("TMDB_API_KEY=dotenv-key\n", encoding="utf-8")

        config = load_config(dotenv_path=dotenv)

        assert config.metadata.tmdb_api_key == "dotenv-key"

    def test_missing_dotenv_raises(self, tmp_path: Path) -> None:
        with pytest.raises(FileNotFoundError):
            load_config(dotenv_path=tmp_path / "missing.env")


class TestCliOverrides:
    def test_cli_overrides_yaml_and_env(
        self, yaml_config: Path, monkeypatch: pytest.MonkeyPatch
    ) -> None:
        monkeypatch.setenv("HELLARR_LOG_LEVEL", "WARNING")
        monkeypatch.setenv("TMDB_API_KEY", "env-key")

        config = load_config(
            config_path=yaml_config,
            cli_overrides={"log_level": "ERROR", "tmdb_api_key": "cli-key"},
        )

        assert config.log_level == "ERROR"
        assert config.metadata.tmdb_api_key == "cli-key"

    def test_sectioned_cli_overrides(self) -> None:
        config = load_config(cli_overrides={"fairness": {"wait_seconds": 5.0}})
        assert config.fairness.wait_seconds == 5.0
        assert config.fairness.max_concurrent == 1


class TestValidation:
    def test_blank_tmdb_key_disables_tmdb(self) -> None:
        config = load_config(cli_overrides={"tmdb_api_key": "   "})
        assert config.metadata.tmdb_api_key is None

    def test_api_key_is_masked_in_dump(self) -> None:
        config = load_config(cli_overrides={"tmdb_api_key": "secret"})
        assert config.to_sectioned_dict()["metadata"]["tmdb_api_key"] == "***"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"http": {"timeout_seconds": 0}},
            {"cache": {"ttl_seconds": 0}},
            {"gateway": {"min_interval_seconds": -1.0}},
            {"fairness": {"max_concurrent": 0}},
            {"resolver": {"max_results": 0}},
            {"resolver": {"max_queries": 0}},
            {"resolver": {"max_title_variations": -1}},
            {"environment": "staging"},
        ],
    )
    def test_invalid_values_raise(self, overrides: dict) -> None:
        with pytest.raises(ValidationError):
            load_config(cli_overrides=overrides)

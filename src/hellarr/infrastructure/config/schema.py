"""Pydantic configuration models with validation."""

from __future__ import annotations

from typing import Any, Literal, Optional

from pydantic import (
    AliasChoices,
    AliasPath,
    BaseModel,
    Field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

Environment = Literal["dev", "test", "prod"]
LogLevel = Literal["DEBUG", "INFO", "WARNING", "ERROR"]
LogFormat = Literal["json", "console"]
CacheBackend = Literal["memory"]


class GatewayConfig(BaseModel):
    """Outbound request spacing and 429 retry policy."""

    min_interval_seconds: float = Field(
        default=1.0,
        description="Minimum delay between two outbound requests (global).",
    )
    max_retries: int = Field(
        default=3,
        description="Retries after an HTTP 429 before giving up.",
    )
    backoff_base_seconds: float = Field(
        default=2.0,
        description="Base of the exponential backoff (base * 2^attempt).",
    )

    @field_validator("min_interval_seconds", "backoff_base_seconds")
    @classmethod
    def _validate_non_negative(cls, v: float) -> float:
        if v < 0:
            raise ValueError("gateway delays must be >= 0")
        return v

    @field_validator("max_retries")
    @classmethod
    def _validate_retries(cls, v: int) -> int:
        if v < 0:
            raise ValueError("max_retries must be >= 0")
        return v


class MetadataConfig(BaseModel):
    """Title metadata sources."""

    tmdb_api_key: Optional[str] = Field(
        default=None,
        description="TMDB API key. Without it only Wikidata is used.",
    )
    tmdb_language: str = Field(
        default="cs-CZ",
        description="Locale for TMDB titles and episode names.",
    )
    wikidata_language: str = Field(
        default="cs",
        description="Language of the localized Wikidata label.",
    )

    @field_validator("tmdb_api_key")
    @classmethod
    def _blank_key_is_none(cls, v: Optional[str]) -> Optional[str]:
        if v is not None and not v.strip():
            return None
        return v


class ResolverConfig(BaseModel):
    """Search, ranking and stream fetching."""

    hellspy_base_url: str = Field(
        default="https://api.hellspy.to/gw",
        description="Base URL of the Hellspy gateway API.",
    )
    max_results: int = Field(
        default=10,
        description="Ranked candidates passed on to the stream fetcher.",
    )
    fetch_concurrency: int = Field(
        default=4,
        description="Parallel detail lookups in the stream fetcher.",
    )
    max_queries: int = Field(
        default=24,
        description="Provider searches allowed per escalation step.",
    )
    max_title_variations: int = Field(
        default=5,
        description="Alias titles fanned out through the query templates.",
    )
    use_tmdb_alternative_titles: bool = Field(
        default=False,
        description="Add TMDB alternative titles to the alias table lookups.",
    )

    @field_validator("max_results", "fetch_concurrency", "max_queries")
    @classmethod
    def _validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("must be >= 1")
        return v

    @field_validator("max_title_variations")
    @classmethod
    def _validate_non_negative(cls, v: int) -> int:
        if v < 0:
            raise ValueError("must be >= 0")
        return v


class FairnessConfig(BaseModel):
    """Admission control across requesters."""

    max_concurrent: int = Field(
        default=1,
        description="Requesters processed at the same time.",
    )
    promote_delay_seconds: float = Field(
        default=0.5,
        description="Debounce before the next queued requester is promoted.",
    )
    idle_timeout_seconds: float = Field(
        default=300.0,
        description="Requesters without activity for this long are dropped.",
    )
    default_duration_seconds: float = Field(
        default=10.0,
        description="Initial processing-time estimate used for the ETA.",
    )
    wait_seconds: float = Field(
        default=60.0,
        description="How long a stream request waits for its turn.",
    )

    @field_validator("max_concurrent")
    @classmethod
    def _validate_concurrency(cls, v: int) -> int:
        if v < 1:
            raise ValueError("max_concurrent must be >= 1")
        return v

    @field_validator("idle_timeout_seconds", "wait_seconds")
    @classmethod
    def _validate_positive(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("must be > 0")
        return v


class AppConfig(BaseModel):
    """
    Canonical application configuration (validated, final).

    Note:
    - YAML is expected to be sectioned
      (http/logging/cache/gateway/metadata/resolver/fairness).
    - Environment variables are handled by EnvOverrides(BaseSettings) to allow strict
      precedence control (defaults < YAML < ENV < CLI) in load.py.
    """

    # General
    app_name: str = Field(default="hellarr", description="Application name.")
    environment: Environment = Field(
        default="dev",
        description="Runtime environment (affects defaults like log format).",
    )

    # HTTP client (YAML section: http.*)
    http_timeout_seconds: float = Field(
        default=10.0,
        validation_alias=AliasChoices(
            "http_timeout_seconds",
            AliasPath("http", "timeout_seconds"),
        ),
        description="Per-request timeout for provider calls.",
    )
    http_follow_redirects: bool = Field(
        default=True,
        validation_alias=AliasChoices(
            "http_follow_redirects",
            AliasPath("http", "follow_redirects"),
        ),
        description="Whether HTTP client follows redirects.",
    )
    http_user_agent: str = Field(
        default="Hellarr/0.1.0",
        validation_alias=AliasChoices(
            "http_user_agent",
            AliasPath("http", "user_agent"),
        ),
        description="User-Agent for outgoing HTTP requests.",
    )

    # Logging (YAML section: logging.*)
    log_level: LogLevel = Field(
        default="INFO",
        validation_alias=AliasChoices(
            "log_level",
            AliasPath("logging", "level"),
        ),
        description="Log level.",
    )
    log_format: Optional[LogFormat] = Field(
        default=None,
        validation_alias=AliasChoices(
            "log_format",
            AliasPath("logging", "format"),
        ),
        description=(
            "Log renderer format (console/json). If unset, derived from environment."
        ),
    )

    # Cache (YAML section: cache.*)
    cache_backend: CacheBackend = Field(
        default="memory",
        validation_alias=AliasChoices(
            "cache_backend",
            AliasPath("cache", "backend"),
        ),
        description="Cache backend.",
    )
    cache_ttl_seconds: int = Field(
        default=3600,
        validation_alias=AliasChoices(
            "cache_ttl_seconds",
            AliasPath("cache", "ttl_seconds"),
        ),
        description="Cache TTL in seconds.",
    )

    gateway: GatewayConfig = Field(default_factory=GatewayConfig)
    metadata: MetadataConfig = Field(default_factory=MetadataConfig)
    resolver: ResolverConfig = Field(default_factory=ResolverConfig)
    fairness: FairnessConfig = Field(default_factory=FairnessConfig)

    @field_validator("http_timeout_seconds")
    @classmethod
    def _validate_http_timeout(cls, v: float) -> float:
        if v <= 0:
            raise ValueError("http_timeout_seconds must be > 0")
        return v

    @field_validator("cache_ttl_seconds")
    @classmethod
    def _validate_cache_ttl(cls, v: int) -> int:
        if v <= 0:
            raise ValueError("cache_ttl_seconds must be > 0")
        return v

    @model_validator(mode="after")
    def _derive_defaults(self) -> "AppConfig":
        # Default log format: console in dev/test, json in prod.
        if self.log_format is None:
            self.log_format = "json" if self.environment == "prod" else "console"
        return self

    def to_sectioned_dict(self) -> dict[str, Any]:
        """
        Dump configuration in the sectioned shape used by config.yaml/docs.
        """
        metadata = self.metadata.model_dump()
        if metadata.get("tmdb_api_key"):
            metadata["tmdb_api_key"] = "***"
        return {
            "app_name": self.app_name,
            "environment": self.environment,
            "http": {
                "timeout_seconds": self.http_timeout_seconds,
                "follow_redirects": self.http_follow_redirects,
                "user_agent": self.http_user_agent,
            },
            "logging": {"level": self.log_level, "format": self.log_format},
            "cache": {
                "backend": self.cache_backend,
                "ttl_seconds": self.cache_ttl_seconds,
            },
            "gateway": self.gateway.model_dump(),
            "metadata": metadata,
            "resolver": self.resolver.model_dump(),
            "fairness": self.fairness.model_dump(),
        }


class EnvOverrides(BaseSettings):
    """
    Environment-variable overrides (all optional).

    Intended usage:
    - load.py creates EnvOverrides() to read HELLARR_* variables,
      converts to dict of set values, merges into YAML/defaults,
      then validates AppConfig.

    Supported env var examples (flat, explicit):
    - HELLARR_HTTP_TIMEOUT_SECONDS
    - HELLARR_GATEWAY_MIN_INTERVAL_SECONDS
    - HELLARR_FAIRNESS_MAX_CONCURRENT
    - HELLARR_LOG_LEVEL
    - TMDB_API_KEY (or HELLARR_TMDB_API_KEY)
    """

    model_config = SettingsConfigDict(
        env_prefix="HELLARR_",
        extra="ignore",
        case_sensitive=False,
    )

    app_name: Optional[str] = None
    environment: Optional[Environment] = None

    http_timeout_seconds: Optional[float] = None
    http_follow_redirects: Optional[bool] = None
    http_user_agent: Optional[str] = None

    log_level: Optional[LogLevel] = None
    log_format: Optional[LogFormat] = None

    cache_ttl_seconds: Optional[int] = None

    gateway_min_interval_seconds: Optional[float] = None
    gateway_max_retries: Optional[int] = None
    gateway_backoff_base_seconds: Optional[float] = None

    tmdb_api_key: Optional[str] = Field(
        default=None,
        validation_alias=AliasChoices("HELLARR_TMDB_API_KEY", "TMDB_API_KEY"),
    )
    tmdb_language: Optional[str] = None
    wikidata_language: Optional[str] = None

    resolver_max_results: Optional[int] = None
    resolver_fetch_concurrency: Optional[int] = None
    resolver_max_queries: Optional[int] = None
    resolver_use_tmdb_alternative_titles: Optional[bool] = None

    fairness_max_concurrent: Optional[int] = None
    fairness_wait_seconds: Optional[float] = None

    def to_update_dict(self) -> dict[str, Any]:
        """
        Return only values that were actually provided (non-None), for merging.
        """
        return self.model_dump(exclude_none=True)

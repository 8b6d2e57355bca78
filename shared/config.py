"""
Shared configuration management for the Market Dashboard Gateway.
"""

from typing import Optional

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env(*names: str) -> AliasChoices:
    return AliasChoices(*names)


class BaseConfig(BaseSettings):
    """Base configuration class with common settings."""

    model_config = SettingsConfigDict(
        env_file=".env",
        case_sensitive=False,
        extra="ignore",
        populate_by_name=True,
    )

    # Environment
    env: str = Field(default="local", validation_alias=_env("GATEWAY_ENV", "env"))
    log_level: str = Field(default="info", validation_alias=_env("LOG_LEVEL", "log_level"))

    # Upstream credentials
    cmc_api_key: str = Field(default="", validation_alias=_env("CMC_API_KEY", "cmc_api_key"))
    fx_api_key: str = Field(
        default="",
        validation_alias=_env("FREE_CURRENCY_API_KEY", "FCA_API_KEY", "fx_api_key"),
    )
    news_api_key: str = Field(default="", validation_alias=_env("MARKETAUX_API_KEY", "news_api_key"))
    finnhub_api_key: str = Field(default="", validation_alias=_env("FINNHUB_API_KEY", "finnhub_api_key"))
    gemini_api_key: str = Field(default="", validation_alias=_env("GEMINI_API_KEY", "gemini_api_key"))
    gemini_model: str = Field(default="gemini-2.5-flash", validation_alias=_env("GEMINI_MODEL", "gemini_model"))

    # Upstream endpoints
    cmc_base_url: str = Field(
        default="https://pro-api.coinmarketcap.com",
        validation_alias=_env("CMC_BASE_URL", "cmc_base_url"),
    )
    fx_base_url: str = Field(
        default="https://api.freecurrencyapi.com/v1",
        validation_alias=_env("FX_BASE_URL", "fx_base_url"),
    )
    news_base_url: str = Field(
        default="https://api.marketaux.com/v1",
        validation_alias=_env("NEWS_BASE_URL", "news_base_url"),
    )
    finnhub_base_url: str = Field(
        default="https://finnhub.io/api/v1",
        validation_alias=_env("FINNHUB_BASE_URL", "finnhub_base_url"),
    )
    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com",
        validation_alias=_env("GEMINI_BASE_URL", "gemini_base_url"),
    )
    upstream_timeout_seconds: float = Field(
        default=15.0, gt=0, validation_alias=_env("UPSTREAM_TIMEOUT_SECONDS", "upstream_timeout_seconds")
    )
    upstream_retry_attempts: int = Field(
        default=2, ge=1, validation_alias=_env("UPSTREAM_RETRY_ATTEMPTS", "upstream_retry_attempts")
    )

    # Display
    default_currency: str = Field(default="INR", validation_alias=_env("DEFAULT_CURRENCY", "default_currency"))

    # Rate limiting
    rate_limit: int = Field(default=1000, gt=0, validation_alias=_env("RATE_LIMIT", "rate_limit"))
    rate_limit_window_ms: int = Field(
        default=24 * 60 * 60 * 1000, gt=0, validation_alias=_env("RATE_LIMIT_WINDOW_MS", "rate_limit_window_ms")
    )
    rate_limit_max_clients: int = Field(
        default=10000, gt=0, validation_alias=_env("RATE_LIMIT_MAX_CLIENTS", "rate_limit_max_clients")
    )
    trust_forwarded_for: bool = Field(
        default=False, validation_alias=_env("TRUST_FORWARDED_FOR", "trust_forwarded_for")
    )

    # Response cache
    cache_ttl_seconds: float = Field(
        default=24 * 60 * 60, gt=0, validation_alias=_env("CACHE_TTL_SECONDS", "cache_ttl_seconds")
    )
    maintenance_interval_seconds: float = Field(
        default=300, gt=0, validation_alias=_env("MAINTENANCE_INTERVAL_SECONDS", "maintenance_interval_seconds")
    )

    # Portfolio storage
    mongodb_uri: Optional[str] = Field(default=None, validation_alias=_env("MONGODB_URI", "mongodb_uri"))
    mongodb_db: str = Field(default="crypto", validation_alias=_env("MONGODB_DB", "mongodb_db"))
    mongodb_collection: str = Field(
        default="portfolio", validation_alias=_env("MONGODB_COLLECTION", "mongodb_collection")
    )
    mongodb_stock_collection: str = Field(
        default="stock_portfolio", validation_alias=_env("MONGODB_STOCK_COLLECTION", "mongodb_stock_collection")
    )

    # Static SPA bundle
    static_dir: str = Field(default="frontend", validation_alias=_env("STATIC_DIR", "static_dir"))


class ServiceConfig(BaseConfig):
    """Service-specific configuration."""

    service_name: str
    port: int = Field(default=3000, validation_alias=_env("PORT", "port"))
    host: str = Field(default="0.0.0.0", validation_alias=_env("HOST", "host"))


def get_config(service_name: str, default_port: int, **overrides) -> ServiceConfig:
    """Get configuration for a specific service.

    ``default_port`` is only the fallback: a ``PORT`` environment variable or
    an explicit ``port`` override wins.
    """
    config = ServiceConfig(service_name=service_name, **overrides)
    if "port" not in config.model_fields_set:
        config.port = default_port
    return config

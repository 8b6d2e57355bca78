"""
Unit tests for shared configuration.
"""

import pytest

from shared.config import ServiceConfig, get_config


ENV_NAMES = [
    "PORT",
    "RATE_LIMIT",
    "RATE_LIMIT_WINDOW_MS",
    "MONGODB_URI",
    "FREE_CURRENCY_API_KEY",
    "FCA_API_KEY",
    "CMC_API_KEY",
    "DEFAULT_CURRENCY",
    "TRUST_FORWARDED_FOR",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_NAMES:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestServiceConfig:
    """Test cases for ServiceConfig."""

    def test_defaults(self, clean_env):
        config = ServiceConfig(service_name="gateway", _env_file=None)

        assert config.port == 3000
        assert config.rate_limit == 1000
        assert config.rate_limit_window_ms == 86_400_000
        assert config.cache_ttl_seconds == 86_400
        assert config.mongodb_uri is None
        assert config.mongodb_db == "crypto"
        assert config.mongodb_collection == "portfolio"
        assert config.mongodb_stock_collection == "stock_portfolio"
        assert config.gemini_model == "gemini-2.5-flash"
        assert config.default_currency == "INR"
        assert config.trust_forwarded_for is False

    def test_environment_overrides(self, clean_env):
        clean_env.setenv("RATE_LIMIT", "2")
        clean_env.setenv("CMC_API_KEY", "from-env")
        clean_env.setenv("MONGODB_URI", "mongodb://db:27017")
        clean_env.setenv("TRUST_FORWARDED_FOR", "true")

        config = ServiceConfig(service_name="gateway", _env_file=None)

        assert config.rate_limit == 2
        assert config.cmc_api_key == "from-env"
        assert config.mongodb_uri == "mongodb://db:27017"
        assert config.trust_forwarded_for is True

    def test_legacy_fx_key_name(self, clean_env):
        clean_env.setenv("FCA_API_KEY", "legacy")

        assert ServiceConfig(service_name="gateway", _env_file=None).fx_api_key == "legacy"

    def test_rate_limit_must_be_positive(self, clean_env):
        clean_env.setenv("RATE_LIMIT", "0")

        with pytest.raises(ValueError):
            ServiceConfig(service_name="gateway", _env_file=None)


class TestGetConfig:
    """Test cases for get_config."""

    def test_port_fallback(self, clean_env):
        assert get_config("gateway", 8080, _env_file=None).port == 8080

    def test_port_from_environment_wins(self, clean_env):
        clean_env.setenv("PORT", "9000")

        assert get_config("gateway", 8080, _env_file=None).port == 9000

    def test_explicit_override(self, clean_env):
        assert get_config("gateway", 8080, port=7000, _env_file=None).port == 7000

    def test_explicit_override_beats_environment(self, clean_env):
        clean_env.setenv("PORT", "9000")

        assert get_config("gateway", 8080, port=7000, _env_file=None).port == 7000

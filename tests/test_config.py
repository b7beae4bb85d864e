"""Tests for configuration module."""

import os
from dataclasses import fields
from unittest.mock import patch

import pytest

from basalt.config import BasaltConfig


class TestBasaltConfig:
    """Test configuration functionality."""

    def test_defaults(self):
        """Defaults match the documented values."""
        config = BasaltConfig(api_key="sk-test")

        assert config.base_url == "https://api.getbasalt.ai"
        assert config.cache_enabled is True
        assert config.cache_ttl == 300.0
        assert config.prompt_fallback_requires_cache is True
        assert config.dataset_fallback_requires_cache is False
        assert config.instrument == ()

    def test_only_settings_are_fields(self):
        """Every dataclass field is a constructor setting."""
        assert all(f.init and not f.name.startswith("_") for f in fields(BasaltConfig))
        assert BasaltConfig(api_key="sk-test") == BasaltConfig(api_key="sk-test")

    def test_config_from_env(self):
        """Test configuration from environment variables."""
        with patch.dict(os.environ, {
            "BASALT_API_KEY": "sk-env-key",
            "BASALT_BASE_URL": "https://test.example.com",
            "BASALT_ENVIRONMENT": "staging",
            "BASALT_CACHE_ENABLED": "no",
            "BASALT_CACHE_TTL": "60",
            "BASALT_INSTRUMENT": "openai, anthropic",
            "BASALT_DEBUG": "on",
        }):
            config = BasaltConfig.from_env()

        assert config.api_key == "sk-env-key"
        assert config.base_url == "https://test.example.com"
        assert config.environment == "staging"
        assert config.cache_enabled is False
        assert config.cache_ttl == 60.0
        assert config.instrument == ("openai", "anthropic")
        assert config.debug is True

    def test_overrides_win_over_env(self):
        """Explicit overrides take precedence over environment variables."""
        with patch.dict(os.environ, {"BASALT_API_KEY": "sk-env", "BASALT_CACHE_ENABLED": "true"}):
            config = BasaltConfig.from_env(
                api_key="sk-explicit",
                cache_enabled=False,
                dataset_fallback_requires_cache=True,
            )

        assert config.api_key == "sk-explicit"
        assert config.cache_enabled is False
        assert config.dataset_fallback_requires_cache is True

    def test_from_env_requires_api_key(self):
        """Missing API key raises a helpful error."""
        with patch.dict(os.environ, {}, clear=True):
            with pytest.raises(ValueError, match="BASALT_API_KEY"):
                BasaltConfig.from_env()

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"api_key": " "}, "api_key is required"),
            ({"base_url": "ftp://x"}, "base_url must start with"),
            ({"sample_rate": 1.5}, "sample_rate must be between"),
            ({"max_retries": -1}, "max_retries cannot be negative"),
            ({"cache_ttl": 0}, "cache_ttl must be positive"),
            ({"flush_at": 0}, "flush_at must be between"),
            ({"instrument": ("openai", "cohere")}, "unsupported providers: cohere"),
        ],
    )
    def test_validation(self, overrides, message):
        """Invalid values raise ValueError naming the field."""
        params = {"api_key": "sk-test", **overrides}
        with pytest.raises(ValueError, match=message):
            BasaltConfig(**params)

    def test_get_headers(self):
        """Headers carry bearer auth and SDK identification."""
        config = BasaltConfig(api_key="sk-test", environment="production")
        headers = config.get_headers()

        assert headers["Authorization"] == "Bearer sk-test"
        assert headers["X-BASALT-SDK-TYPE"] == "python"
        assert headers["X-BASALT-ENVIRONMENT"] == "production"

    def test_default_environment_header_omitted(self):
        """The default environment is not sent."""
        headers = BasaltConfig(api_key="sk-test").get_headers()
        assert "X-BASALT-ENVIRONMENT" not in headers

    def test_otlp_endpoint(self):
        """OTLP endpoint is derived from the base URL."""
        config = BasaltConfig(api_key="sk-test", base_url="https://api.example.com/")
        assert config.get_otlp_endpoint() == "https://api.example.com/v1/traces"

    def test_repr_masks_api_key(self):
        """The API key never appears in full."""
        config = BasaltConfig(api_key="sk-very-secret-key-1234")
        assert "sk-very-secret-key-1234" not in repr(config)
        assert "1234" in repr(config)

"""Tests for configuration module."""

import pytest
from idx_listings.config import (
    DEFAULT_BASE_URL,
    IDX_CONFIG,
    IDXSettings,
    RetryConfig,
    get_idx_settings,
    load_idx_config,
)


IDX_ENV_VARS = [
    "IDX_API_KEY",
    "IDX_API_URL",
    "IDX_DEFAULT_LIMIT",
    "IDX_MEDIA_BATCH_SIZE",
    "IDX_REQUEST_TIMEOUT_SECONDS",
    "IDX_MAX_RETRIES",
    "IDX_RETRY_BASE_DELAY_MS",
    "IDX_RETRY_MAX_DELAY_MS",
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in IDX_ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


def test_idx_config_exists():
    """Test that IDX_CONFIG dictionary is properly defined."""
    assert isinstance(IDX_CONFIG, dict)
    assert "api_key" in IDX_CONFIG
    assert "base_url" in IDX_CONFIG
    assert "default_limit" in IDX_CONFIG
    assert "media_batch_size" in IDX_CONFIG
    assert "request_timeout_seconds" in IDX_CONFIG
    assert "retry_config" in IDX_CONFIG


def test_config_defaults(clean_env):
    """Test that an empty environment yields the documented defaults."""
    config = load_idx_config()

    assert config["api_key"] == ""
    assert config["base_url"] == DEFAULT_BASE_URL
    assert config["default_limit"] == 50
    assert config["media_batch_size"] == 20
    assert config["retry_config"]["max_retries"] == 3
    assert config["retry_config"]["base_delay_ms"] == 1000
    assert config["retry_config"]["max_delay_ms"] == 10000


def test_get_idx_settings(clean_env):
    """Test that get_idx_settings returns proper IDXSettings object."""
    settings = get_idx_settings()

    assert isinstance(settings, IDXSettings)
    assert settings.api_key == ""
    assert settings.base_url == "https://query.ampre.ca/odata"
    assert settings.request_timeout_seconds == 30.0

    assert isinstance(settings.retry_config, RetryConfig)
    assert settings.retry_config.max_retries == 3
    assert settings.retry_config.jitter_ratio == 0.3


def test_get_idx_settings_reads_environment(clean_env):
    """Test that settings follow the environment at call time."""
    clean_env.setenv("IDX_API_KEY", "secret-token")
    clean_env.setenv("IDX_API_URL", "https://idx.example.com/odata")
    clean_env.setenv("IDX_MEDIA_BATCH_SIZE", "10")
    clean_env.setenv("IDX_MAX_RETRIES", "5")
    clean_env.setenv("IDX_RETRY_BASE_DELAY_MS", "250")

    settings = get_idx_settings()

    assert settings.api_key == "secret-token"
    assert settings.base_url == "https://idx.example.com/odata"
    assert settings.media_batch_size == 10
    assert settings.retry_config.max_retries == 5
    assert settings.retry_config.base_delay_ms == 250


def test_idx_settings_with_custom_values():
    """Test that IDXSettings can be created with custom values."""
    custom_retry = RetryConfig(max_retries=1, base_delay_ms=10)

    settings = IDXSettings(api_key="k", default_limit=12, retry_config=custom_retry)

    assert settings.api_key == "k"
    assert settings.default_limit == 12
    assert settings.retry_config.max_retries == 1
    assert settings.retry_config.base_delay_ms == 10


def test_idx_settings_default_retry_config():
    """Test that nested retry config is initialized when not provided."""
    settings = IDXSettings()

    assert isinstance(settings.retry_config, RetryConfig)
    assert settings.retry_config.max_delay_ms == 10000
    assert settings.media_page_size == 500

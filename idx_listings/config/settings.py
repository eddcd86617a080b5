"""IDX client configuration settings."""

from dataclasses import dataclass
import os

from idx_listings.error_handling.retry_fetcher import RetryConfig


DEFAULT_BASE_URL = "https://query.ampre.ca/odata"


@dataclass
class IDXSettings:
    """Main IDX client configuration settings."""
    api_key: str = ""
    base_url: str = DEFAULT_BASE_URL
    default_limit: int = 50
    media_batch_size: int = 20
    media_page_size: int = 500
    request_timeout_seconds: float = 30.0
    retry_config: RetryConfig = None

    def __post_init__(self):
        """Initialize nested configs if not provided."""
        if self.retry_config is None:
            self.retry_config = RetryConfig()


def load_idx_config() -> dict:
    """Read the IDX configuration from environment variables."""
    return {
        "api_key": os.getenv("IDX_API_KEY", ""),
        "base_url": os.getenv("IDX_API_URL", DEFAULT_BASE_URL),
        "default_limit": int(os.getenv("IDX_DEFAULT_LIMIT", "50")),
        "media_batch_size": int(os.getenv("IDX_MEDIA_BATCH_SIZE", "20")),
        "request_timeout_seconds": float(os.getenv("IDX_REQUEST_TIMEOUT_SECONDS", "30")),
        "retry_config": {
            "max_retries": int(os.getenv("IDX_MAX_RETRIES", "3")),
            "base_delay_ms": int(os.getenv("IDX_RETRY_BASE_DELAY_MS", "1000")),
            "max_delay_ms": int(os.getenv("IDX_RETRY_MAX_DELAY_MS", "10000")),
        },
    }


# Default IDX configuration, read at import time
IDX_CONFIG = load_idx_config()


def get_idx_settings() -> IDXSettings:
    """Get IDX settings from the current environment."""
    config = load_idx_config()
    return IDXSettings(
        api_key=config["api_key"],
        base_url=config["base_url"],
        default_limit=config["default_limit"],
        media_batch_size=config["media_batch_size"],
        request_timeout_seconds=config["request_timeout_seconds"],
        retry_config=RetryConfig(**config["retry_config"]),
    )

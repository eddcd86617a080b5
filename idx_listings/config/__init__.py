"""Configuration module for the IDX listing integration."""

from .settings import (
    DEFAULT_BASE_URL,
    IDX_CONFIG,
    IDXSettings,
    RetryConfig,
    get_idx_settings,
    load_idx_config,
)

__all__ = [
    'DEFAULT_BASE_URL',
    'IDX_CONFIG',
    'IDXSettings',
    'RetryConfig',
    'get_idx_settings',
    'load_idx_config',
]

"""
Error handling module for the IDX integration.

Provides retry logic, backoff, and transient-failure classification.
"""

from .retry_fetcher import (
    AiohttpTransport,
    FetchResponse,
    ResilientFetcher,
    RetryConfig,
    fetch_with_retry,
    is_retryable_error,
    is_retryable_status,
)

__all__ = [
    'AiohttpTransport',
    'FetchResponse',
    'ResilientFetcher',
    'RetryConfig',
    'fetch_with_retry',
    'is_retryable_error',
    'is_retryable_status',
]

"""
Resilient HTTP fetching for the IDX integration.

Implements exponential backoff with jitter and transient-failure
classification around a single outbound HTTP call.
"""

import asyncio
import json
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Mapping, Optional, Protocol

import aiohttp
from yarl import URL


# Configure logging
logger = logging.getLogger(__name__)


# Substrings of normalized error text that mark a transient network failure
RETRYABLE_ERROR_MARKERS = (
    'econnreset',
    'connection reset',
    'econnrefused',
    'connection refused',
    'etimedout',
    'timeout',
    'timed out',
    'fetch failed',
    'network',
    'socket',
    'server disconnected',
)


@dataclass
class RetryConfig:
    """
    Configuration for retry behavior with exponential backoff.

    Attributes:
        max_retries: Retry attempts allowed after the first request
        base_delay_ms: Backoff base in milliseconds
        max_delay_ms: Upper bound for any single delay in milliseconds
        jitter_ratio: Maximum jitter as a fraction of the exponential term
    """
    max_retries: int = 3
    base_delay_ms: int = 1000
    max_delay_ms: int = 10000
    jitter_ratio: float = 0.3

    def get_backoff_delay(self, attempt: int, rng: Optional[random.Random] = None) -> float:
        """
        Calculate backoff delay before a retry attempt.

        delay = min(base_delay_ms * 2^attempt + jitter, max_delay_ms), where
        jitter is uniform in [0, jitter_ratio * base_delay_ms * 2^attempt].

        Args:
            attempt: The retry attempt number (0-indexed)
            rng: Random source for the jitter

        Returns:
            Delay in milliseconds before the retry attempt
        """
        rng = rng or random
        exponential = self.base_delay_ms * (2 ** attempt)
        jitter = rng.uniform(0, self.jitter_ratio * exponential)
        return min(exponential + jitter, self.max_delay_ms)


@dataclass
class FetchResponse:
    """
    Fully read HTTP response.

    Attributes:
        status: HTTP status code
        reason: HTTP reason phrase
        body: Raw response body
        headers: Response headers
    """
    status: int
    reason: str = ""
    body: bytes = b""
    headers: Dict[str, str] = field(default_factory=dict)

    @property
    def ok(self) -> bool:
        return 200 <= self.status < 300

    def text(self) -> str:
        return self.body.decode('utf-8', errors='replace')

    def json(self) -> Any:
        return json.loads(self.text())


class Transport(Protocol):
    """Async callable performing exactly one HTTP request."""

    def __call__(
        self,
        url: str,
        method: str = 'GET',
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> Awaitable[FetchResponse]:
        ...


def is_retryable_status(status: int) -> bool:
    """Server errors and rate limiting are transient; other statuses are final."""
    return status >= 500 or status == 429


def normalize_error_message(error: BaseException) -> str:
    """Render an exception as lowercase "TypeName: message" text."""
    return f"{type(error).__name__}: {error}".lower()


def is_retryable_error(error: BaseException) -> bool:
    """
    Classify a raised error as a transient network failure.

    Matches known substrings against the normalized error text, so that
    a bare asyncio.TimeoutError (empty message) is still recognised.

    Args:
        error: The exception raised by the transport

    Returns:
        True if the request should be retried
    """
    message = normalize_error_message(error)
    return any(marker in message for marker in RETRYABLE_ERROR_MARKERS)


class AiohttpTransport:
    """
    Transport backed by a shared aiohttp ClientSession.

    The session is opened lazily and reused until close() is called.
    """

    def __init__(self, session: Optional[aiohttp.ClientSession] = None):
        self._session = session

    async def _ensure_session(self) -> aiohttp.ClientSession:
        """Ensure we have an open session"""
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession()
        return self._session

    async def __call__(
        self,
        url: str,
        method: str = 'GET',
        headers: Optional[Mapping[str, str]] = None,
        timeout: Optional[float] = None,
    ) -> FetchResponse:
        session = await self._ensure_session()
        request_kwargs: Dict[str, Any] = {'headers': dict(headers or {})}
        if timeout:
            request_kwargs['timeout'] = aiohttp.ClientTimeout(total=timeout)

        # URLs are already percent-encoded by the query builder
        async with session.request(method, URL(url, encoded=True), **request_kwargs) as response:
            body = await response.read()
            return FetchResponse(
                status=response.status,
                reason=response.reason or "",
                body=body,
                headers=dict(response.headers),
            )

    async def close(self) -> None:
        """Explicitly close the session when done"""
        if self._session and not self._session.closed:
            await self._session.close()
        self._session = None


class ResilientFetcher:
    """
    Generic retrying HTTP primitive used for every outbound IDX call.

    Retries 5xx and 429 responses and transient network errors with
    exponential backoff. Other responses are returned and other errors
    re-raised immediately.

    Attributes:
        transport: Async callable performing one request
        retry_config: Default retry configuration
    """

    def __init__(
        self,
        transport: Optional[Transport] = None,
        retry_config: Optional[RetryConfig] = None,
        sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
        rng: Optional[random.Random] = None
    ):
        """
        Initialize the fetcher.

        Args:
            transport: Transport to use (default: AiohttpTransport)
            retry_config: Default retry configuration (default: RetryConfig())
            sleep: Coroutine function used for backoff, receives seconds
            rng: Random source for backoff jitter
        """
        self.transport = transport or AiohttpTransport()
        self.retry_config = retry_config or RetryConfig()
        self._sleep = sleep
        self._rng = rng or random.Random()

    async def fetch_with_retry(
        self,
        url: str,
        options: Optional[Mapping[str, Any]] = None,
        retry_config: Optional[RetryConfig] = None
    ) -> FetchResponse:
        """
        Execute one HTTP request with retry and backoff.

        Args:
            url: Fully encoded request URL
            options: Transport keyword arguments (method, headers, timeout)
            retry_config: Overrides the fetcher's default configuration

        Returns:
            The first OK or non-retryable response, or the last failing
            response once retries are exhausted

        Raises:
            Exception: A non-retryable transport error, or the last retryable
                error once retries are exhausted
        """
        config = retry_config or self.retry_config
        options = dict(options or {})

        for attempt in range(config.max_retries + 1):
            is_last_attempt = attempt == config.max_retries

            try:
                response = await self.transport(url, **options)
            except Exception as e:
                if not is_retryable_error(e):
                    logger.error(f"[IDX RETRY] Non-retryable error for {url}: {type(e).__name__}: {e}")
                    raise
                if is_last_attempt:
                    logger.error(
                        f"[IDX RETRY] Giving up after {attempt + 1} attempts: {type(e).__name__}: {e}"
                    )
                    raise
                await self._backoff(config, attempt, f"{type(e).__name__}: {e}")
                continue

            if response.ok or not is_retryable_status(response.status):
                return response
            if is_last_attempt:
                logger.error(
                    f"[IDX RETRY] Giving up after {attempt + 1} attempts: HTTP {response.status}"
                )
                return response
            await self._backoff(config, attempt, f"HTTP {response.status} {response.reason}")

        # Unreachable: the final attempt always returns or raises
        raise RuntimeError("Retry loop exited without a result")

    async def close(self) -> None:
        close = getattr(self.transport, 'close', None)
        if close is not None:
            await close()

    async def _backoff(self, config: RetryConfig, attempt: int, reason: str) -> None:
        delay_ms = config.get_backoff_delay(attempt, self._rng)
        logger.warning(
            f"[IDX RETRY] Attempt {attempt + 1}/{config.max_retries + 1} failed ({reason}); "
            f"retrying in {delay_ms / 1000:.2f}s"
        )
        await self._sleep(delay_ms / 1000)


async def fetch_with_retry(
    url: str,
    options: Optional[Mapping[str, Any]] = None,
    retry_config: Optional[RetryConfig] = None,
    transport: Optional[Transport] = None
) -> FetchResponse:
    """
    One-shot helper: fetch a URL with retry using a throwaway fetcher.

    Args:
        url: Fully encoded request URL
        options: Transport keyword arguments (method, headers, timeout)
        retry_config: Retry configuration (default: RetryConfig())
        transport: Transport to use; an AiohttpTransport is created and
            closed when omitted

    Returns:
        The final FetchResponse
    """
    fetcher = ResilientFetcher(transport=transport, retry_config=retry_config)
    try:
        return await fetcher.fetch_with_retry(url, options)
    finally:
        if transport is None:
            await fetcher.close()

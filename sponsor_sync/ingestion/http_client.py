"""
HTTP infrastructure layer with retry logic.

Provides:
- RetryConfig: Exponential backoff configuration
- HTTPClient: Async HTTP client with automatic retry and line streaming

This layer separates HTTP concerns (retries, backoff, streaming) from
domain logic (link discovery, CSV parsing) in the locator and loader.
"""

import asyncio
import logging
import random
from collections.abc import AsyncIterator
from dataclasses import dataclass
from typing import Any

import httpx

from sponsor_sync.errors import FetchError

logger = logging.getLogger(__name__)

RETRYABLE_EXCEPTIONS = (
    httpx.TimeoutException,
    httpx.ConnectError,
    httpx.ReadError,
)


@dataclass
class RetryConfig:
    """
    Exponential backoff configuration for HTTP retries.

    Implements exponential backoff with jitter to prevent thundering herd
    problems when multiple clients retry simultaneously.

    Formula: min(max_backoff, base_delay * 2^attempt) * (1 + random(0, jitter_factor))
    """

    max_retries: int = 3
    max_backoff_seconds: float = 60.0
    base_delay: float = 1.0
    jitter_factor: float = 0.1

    def calculate_backoff(self, attempt: int) -> float:
        """
        Calculate backoff duration for a given retry attempt.

        Args:
            attempt: The retry attempt number (0-indexed)

        Returns:
            Backoff duration in seconds with jitter applied
        """
        delay = self.base_delay * (2**attempt)
        delay = min(delay, self.max_backoff_seconds)

        jitter = delay * self.jitter_factor * random.random()
        return delay + jitter

    def is_retryable_status(self, status_code: int) -> bool:
        """
        Check if an HTTP status code should trigger a retry.

        Retryable status codes: 429 and the 5xx gateway/server family
        (500, 502, 503, 504).
        """
        return status_code in {429, 500, 502, 503, 504}

    def is_retryable_exception(self, exc: Exception) -> bool:
        """Check if a transport exception should trigger a retry."""
        return isinstance(exc, RETRYABLE_EXCEPTIONS)


class HTTPClientError(FetchError):
    """Raised when a request fails for good (non-retryable or retries exhausted)."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.response_body = response_body


class HTTPClient:
    """
    Async HTTP client with retry logic.

    Features:
    - Exponential backoff with jitter on retryable errors
    - Automatic retry on 429, 5xx status codes
    - Automatic retry on timeout/connection errors
    - Line streaming for large bodies (the register CSV)
    - Context manager for proper resource cleanup

    Example:
        async with HTTPClient(RetryConfig(max_retries=3)) as client:
            response = await client.get("https://www.gov.uk/...")
            async for line in client.stream_lines(csv_url):
                ...
    """

    def __init__(
        self,
        retry_config: RetryConfig | None = None,
        timeout: float = 30.0,
        headers: dict[str, str] | None = None,
    ):
        """
        Initialize HTTP client.

        Args:
            retry_config: Configuration for retry behavior. Uses defaults if None.
            timeout: Request timeout in seconds.
            headers: Default headers sent with every request.
        """
        self.retry_config = retry_config or RetryConfig()
        self.timeout = timeout
        self._headers = headers or {"User-Agent": "sponsor-sync/0.1.0"}
        self._client: httpx.AsyncClient | None = None

    async def __aenter__(self) -> "HTTPClient":
        """Enter async context manager, create client."""
        self._client = httpx.AsyncClient(
            timeout=self.timeout,
            headers=self._headers,
            follow_redirects=True,
        )
        return self

    async def __aexit__(self, exc_type: Any, exc_val: Any, exc_tb: Any) -> None:
        """Exit async context manager, close client."""
        await self.close()

    async def close(self) -> None:
        """Close the underlying client. Safe to call more than once."""
        if self._client:
            await self._client.aclose()
            self._client = None

    def _require_client(self) -> httpx.AsyncClient:
        if not self._client:
            raise RuntimeError("HTTPClient must be used as async context manager")
        return self._client

    async def get(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """
        Perform GET request with retry logic.

        Args:
            url: Request URL
            params: Query parameters
            headers: Extra request headers

        Returns:
            httpx.Response on success

        Raises:
            HTTPClientError: On non-retryable errors or after retries exhausted
        """
        client = self._require_client()
        last_status_code: int | None = None
        last_response_body: str | None = None
        max_attempts = self.retry_config.max_retries + 1

        for attempt in range(max_attempts):
            try:
                response = await client.get(url, params=params, headers=headers)

                if self.retry_config.is_retryable_status(response.status_code):
                    last_status_code = response.status_code
                    last_response_body = response.text

                    if attempt < self.retry_config.max_retries:
                        await self._backoff(url, f"status {response.status_code}", attempt)
                        continue

                    raise HTTPClientError(
                        f"Request failed with status {response.status_code} after {attempt + 1} attempts",
                        status_code=response.status_code,
                        response_body=last_response_body,
                    )

                if response.status_code >= 400:
                    raise HTTPClientError(
                        f"Request failed with status {response.status_code}",
                        status_code=response.status_code,
                        response_body=response.text,
                    )

                return response

            except RETRYABLE_EXCEPTIONS as e:
                if attempt < self.retry_config.max_retries:
                    await self._backoff(url, type(e).__name__, attempt)
                    continue

                raise HTTPClientError(
                    f"Request failed after {attempt + 1} attempts: {e}",
                    status_code=last_status_code,
                ) from e

            except httpx.HTTPError as e:
                raise HTTPClientError(f"Request to {url} failed: {e}") from e

        raise HTTPClientError(
            f"Request failed after {max_attempts} attempts",
            status_code=last_status_code,
            response_body=last_response_body,
        )

    async def stream_lines(self, url: str) -> AsyncIterator[str]:
        """
        Stream a GET response body line by line.

        Only the connection attempt is retried. Once lines have been
        yielded a transport error is final, since the consumer already
        holds part of the body.

        Args:
            url: Request URL

        Yields:
            Decoded lines without their line terminators

        Raises:
            HTTPClientError: On HTTP error status or transport failure
        """
        client = self._require_client()
        max_attempts = self.retry_config.max_retries + 1

        for attempt in range(max_attempts):
            started = False
            try:
                async with client.stream("GET", url) as response:
                    if self.retry_config.is_retryable_status(response.status_code):
                        if attempt < self.retry_config.max_retries:
                            await self._backoff(url, f"status {response.status_code}", attempt)
                            continue
                        raise HTTPClientError(
                            f"Stream failed with status {response.status_code} after {attempt + 1} attempts",
                            status_code=response.status_code,
                        )

                    if response.status_code >= 400:
                        raise HTTPClientError(
                            f"Stream failed with status {response.status_code}",
                            status_code=response.status_code,
                        )

                    started = True
                    async for line in response.aiter_lines():
                        yield line
                    return

            except RETRYABLE_EXCEPTIONS as e:
                if not started and attempt < self.retry_config.max_retries:
                    await self._backoff(url, type(e).__name__, attempt)
                    continue
                raise HTTPClientError(f"Stream from {url} failed: {e}") from e

            except httpx.HTTPError as e:
                raise HTTPClientError(f"Stream from {url} failed: {e}") from e

    async def _backoff(self, url: str, reason: str, attempt: int) -> None:
        backoff = self.retry_config.calculate_backoff(attempt)
        logger.warning(
            f"Retryable {reason} from {url}, "
            f"attempt {attempt + 1}/{self.retry_config.max_retries + 1}, "
            f"backing off {backoff:.2f}s"
        )
        await asyncio.sleep(backoff)

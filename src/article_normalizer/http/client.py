"""Async HTTP page fetcher with retry logic."""

from __future__ import annotations

import asyncio
import logging
import random
from types import TracebackType
from typing import Optional

import aiohttp
from charset_normalizer import from_bytes as detect_encoding

from ..errors import FetchError
from ..models.config import MOBILE_USER_AGENTS, NetworkConfig

logger = logging.getLogger(__name__)


class AsyncHttpClient:
    """
    Async page fetcher implementing :class:`PageFetcher`.

    Features:
    - Exponential backoff retry for transient failures
    - Mobile User-Agent rotation, since many article sites only paginate
      their mobile layout
    - Content size limits to prevent memory exhaustion
    - Encoding detection for pages that lie about their charset

    Example:
        async with AsyncHttpClient.from_config(config.network) as client:
            html = await client.fetch("https://example.com/archives/1.html")
    """

    MAX_CONTENT_SIZE = 10 * 1024 * 1024  # 10 MB

    # Status codes that warrant a retry
    RETRYABLE_STATUS_CODES = frozenset({429, 500, 502, 503, 504})

    # Exceptions that warrant a retry
    RETRYABLE_EXCEPTIONS = (
        aiohttp.ClientError,
        asyncio.TimeoutError,
        ConnectionError,
    )

    def __init__(
        self,
        max_retries: int = 3,
        retry_base_delay: float = 1.0,
        max_content_size: int = MAX_CONTENT_SIZE,
        user_agents: tuple[str, ...] = MOBILE_USER_AGENTS,
        accept_language: str = "ja-JP,ja;q=0.9",
        proxy: Optional[str] = None,
        default_timeout: float = 20.0,
    ) -> None:
        """
        Initialize the HTTP client.

        Args:
            max_retries: Maximum retry attempts for failed requests
            retry_base_delay: Base delay for exponential backoff (seconds)
            max_content_size: Maximum response size in bytes
            user_agents: User-Agent strings, one picked per request
            accept_language: Accept-Language header value
            proxy: Proxy URL
            default_timeout: Default request timeout in seconds
        """
        if not user_agents:
            raise ValueError("At least one User-Agent is required")
        self._max_retries = max_retries
        self._retry_base_delay = retry_base_delay
        self._max_content_size = max_content_size
        self._user_agents = tuple(user_agents)
        self._accept_language = accept_language
        self._proxy = proxy
        self._default_timeout = default_timeout

        self._session: Optional[aiohttp.ClientSession] = None

    @classmethod
    def from_config(cls, config: NetworkConfig) -> AsyncHttpClient:
        return cls(
            max_retries=config.max_retries,
            user_agents=config.user_agents,
            accept_language=config.accept_language,
            proxy=config.proxy,
            default_timeout=config.timeout,
        )

    async def __aenter__(self) -> AsyncHttpClient:
        """Enter async context and create session."""
        connector = aiohttp.TCPConnector(
            limit=100,  # Total connection limit
            limit_per_host=10,  # Per-host connection limit
            ttl_dns_cache=300,  # DNS cache TTL
        )
        self._session = aiohttp.ClientSession(
            connector=connector,
            headers={"Accept-Language": self._accept_language},
        )
        return self

    async def __aexit__(
        self,
        exc_type: Optional[type[BaseException]],
        exc_val: Optional[BaseException],
        exc_tb: Optional[TracebackType],
    ) -> None:
        """Exit async context and close session."""
        if self._session:
            await self._session.close()
            self._session = None

    def _calculate_retry_delay(self, attempt: int) -> float:
        """
        Calculate delay for exponential backoff with jitter.

        Args:
            attempt: Current attempt number (0-indexed)

        Returns:
            Delay in seconds
        """
        delay: float = self._retry_base_delay * (2**attempt)
        jitter: float = random.uniform(0, 1)
        return delay + jitter

    def _pick_user_agent(self) -> str:
        return random.choice(self._user_agents)

    @staticmethod
    def decode_content(content: bytes, content_type: str) -> str:
        """
        Decode content with encoding detection.

        Fallback chain:
        1. Content-Type header charset
        2. charset-normalizer detection
        3. UTF-8 with replacement

        Args:
            content: Raw bytes content
            content_type: Content-Type header value

        Returns:
            Decoded string
        """
        encoding = None
        if content_type:
            for part in content_type.split(";"):
                part = part.strip()
                if part.lower().startswith("charset="):
                    encoding = part.split("=", 1)[1].strip().strip("\"'")
                    break

        if encoding:
            try:
                return content.decode(encoding)
            except (UnicodeDecodeError, LookupError):
                logger.debug(f"Failed to decode with declared encoding: {encoding}")

        best_match = detect_encoding(content).best()
        if best_match is not None:
            logger.debug(f"Detected encoding: {best_match.encoding}")
            return str(best_match)

        return content.decode("utf-8", errors="replace")

    async def _read_limited(self, response: aiohttp.ClientResponse) -> bytes:
        content_length = response.headers.get("Content-Length")
        if content_length and content_length.isdigit() and int(content_length) > self._max_content_size:
            raise FetchError(str(response.url), f"content too large: {content_length} bytes")

        content = b""
        async for chunk in response.content.iter_chunked(8192):
            content += chunk
            if len(content) > self._max_content_size:
                raise FetchError(str(response.url), f"content size limit exceeded: >{self._max_content_size} bytes")
        return content

    async def fetch(self, url: str, *, timeout: Optional[float] = None) -> str:
        """
        Fetch a page with retry logic.

        Args:
            url: The URL to fetch
            timeout: Request timeout in seconds (uses default if None)

        Returns:
            Decoded page body

        Raises:
            FetchError: On bad status, oversized content, or network errors
                after retries are exhausted
        """
        if self._session is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")

        timeout_val = timeout or self._default_timeout

        for attempt in range(self._max_retries + 1):
            try:
                async with self._session.get(
                    url,
                    timeout=aiohttp.ClientTimeout(total=timeout_val),
                    headers={"User-Agent": self._pick_user_agent()},
                    proxy=self._proxy,
                    allow_redirects=True,
                ) as response:
                    if response.status in self.RETRYABLE_STATUS_CODES and attempt < self._max_retries:
                        delay = self._calculate_retry_delay(attempt)
                        logger.warning(
                            f"Got {response.status} for {url}, retrying in {delay:.1f}s "
                            f"(attempt {attempt + 1}/{self._max_retries + 1})"
                        )
                        await asyncio.sleep(delay)
                        continue
                    if response.status >= 400:
                        raise FetchError(url, f"HTTP {response.status}")

                    content = await self._read_limited(response)
                    return self.decode_content(content, response.headers.get("Content-Type", ""))

            except self.RETRYABLE_EXCEPTIONS as e:
                if attempt < self._max_retries:
                    delay = self._calculate_retry_delay(attempt)
                    logger.warning(
                        f"Error fetching {url}: {e}, retrying in {delay:.1f}s "
                        f"(attempt {attempt + 1}/{self._max_retries + 1})"
                    )
                    await asyncio.sleep(delay)
                else:
                    logger.error(f"HTTP fetch error for {url} after {self._max_retries + 1} attempts: {e}")
                    raise FetchError(url, str(e) or type(e).__name__) from e

        raise FetchError(url, f"gave up after {self._max_retries + 1} attempts")

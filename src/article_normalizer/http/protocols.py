"""Protocol definitions for page fetching."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class PageFetcher(Protocol):
    """
    Protocol for anything that can fetch a page as text.

    This abstraction allows for:
    - Mock implementations in tests
    - Different backends (aiohttp, a cache, a headless browser)
    - Keeping network policy (retries, user agents, proxies) out of the engine
    """

    async def fetch(self, url: str, *, timeout: float = 20.0) -> str:
        """
        Fetch a page and return its decoded body.

        Args:
            url: The URL to fetch
            timeout: Request timeout in seconds

        Returns:
            Decoded HTML

        Raises:
            FetchError: On network errors, bad status or timeout
        """
        ...

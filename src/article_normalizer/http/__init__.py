"""HTTP page fetching."""

from .client import AsyncHttpClient
from .protocols import PageFetcher

__all__ = [
    "AsyncHttpClient",
    "PageFetcher",
]

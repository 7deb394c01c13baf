"""Tests for the aiohttp page fetcher."""

import pytest
from article_normalizer.http import AsyncHttpClient, PageFetcher
from article_normalizer.models.config import NetworkConfig


class TestAsyncHttpClient:
    """Client configuration and helpers."""

    def test_satisfies_protocol(self):
        assert isinstance(AsyncHttpClient(), PageFetcher)

    def test_from_config(self):
        client = AsyncHttpClient.from_config(NetworkConfig(timeout=5, max_retries=1, user_agents=["UA"]))
        assert client._default_timeout == 5
        assert client._max_retries == 1
        assert client._pick_user_agent() == "UA"

    def test_requires_user_agent(self):
        with pytest.raises(ValueError):
            AsyncHttpClient(user_agents=())

    def test_retry_delay_grows(self):
        client = AsyncHttpClient(retry_base_delay=1.0)
        assert 1.0 <= client._calculate_retry_delay(0) <= 2.0
        assert 4.0 <= client._calculate_retry_delay(2) <= 5.0

    def test_decode_declared_charset(self):
        content = "日本語".encode("shift_jis")
        assert AsyncHttpClient.decode_content(content, "text/html; charset=Shift_JIS") == "日本語"

    def test_decode_bad_declared_charset_falls_back(self):
        content = "<p>hello</p>".encode()
        assert AsyncHttpClient.decode_content(content, "text/html; charset=bogus") == "<p>hello</p>"

    def test_decode_without_header(self):
        assert AsyncHttpClient.decode_content("<p>hello world</p>".encode(), "") == "<p>hello world</p>"

    @pytest.mark.asyncio
    async def test_fetch_requires_context(self):
        client = AsyncHttpClient()
        with pytest.raises(RuntimeError, match="async with"):
            await client.fetch("https://example.com/")

    @pytest.mark.asyncio
    async def test_context_manages_session(self):
        client = AsyncHttpClient()
        async with client:
            assert client._session is not None
        assert client._session is None

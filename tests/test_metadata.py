"""
Tests for link metadata extraction.
"""

import asyncio
import pytest
import aiohttp
from unittest.mock import AsyncMock, patch

from syncscript.services.metadata_service import MetadataFetcher, PageMetadata, parse_html


class TestParseHtml:

    def test_title_and_description(self):
        html = """
        <html><head>
          <title> Example Domain </title>
          <meta name="description" content="An example page">
        </head><body></body></html>
        """
        assert parse_html(html) == PageMetadata(title="Example Domain", description="An example page")

    def test_open_graph_fallbacks(self):
        html = """
        <html><head>
          <meta property="og:title" content="OG title">
          <meta property="og:description" content="OG description">
        </head></html>
        """
        assert parse_html(html) == PageMetadata(title="OG title", description="OG description")

    def test_page_without_metadata(self):
        assert parse_html("<html><body><p>hello</p></body></html>") == PageMetadata()

    def test_blank_values_are_ignored(self):
        html = '<html><head><title>   </title><meta name="description" content=""></head></html>'
        assert parse_html(html) == PageMetadata()


class TestMetadataFetcher:

    @pytest.mark.asyncio
    async def test_fetch_parses_downloaded_page(self):
        fetcher = MetadataFetcher(timeout=1.0)
        with patch.object(fetcher, "_download", AsyncMock(return_value="<title>Hi</title>")):
            assert await fetcher.fetch("https://example.com") == PageMetadata(title="Hi")

    @pytest.mark.asyncio
    async def test_timeout_degrades_to_none(self):
        fetcher = MetadataFetcher(timeout=0.01)
        with patch.object(fetcher, "_download", AsyncMock(side_effect=asyncio.TimeoutError())):
            assert await fetcher.fetch("https://example.com") is None

    @pytest.mark.asyncio
    async def test_http_error_degrades_to_none(self):
        fetcher = MetadataFetcher()
        with patch.object(fetcher, "_download", AsyncMock(side_effect=aiohttp.ClientConnectionError("refused"))):
            assert await fetcher.fetch("https://example.com") is None

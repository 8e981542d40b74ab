"""
Best-effort title/description extraction for web links.
"""

import asyncio
from dataclasses import dataclass
from typing import Optional

import aiohttp
from bs4 import BeautifulSoup
from loguru import logger

MAX_HTML_BYTES = 2 * 1024 * 1024


@dataclass
class PageMetadata:
    title: Optional[str] = None
    description: Optional[str] = None


def _meta_content(soup: BeautifulSoup, **attrs) -> Optional[str]:
    tag = soup.find("meta", attrs=attrs)
    if tag is None:
        return None
    content = (tag.get("content") or "").strip()
    return content or None


def parse_html(html: str) -> PageMetadata:
    """Pull the page title and description out of an HTML document."""
    soup = BeautifulSoup(html, "lxml")
    
    title = None
    if soup.head is not None and soup.head.title is not None:
        title = soup.head.title.get_text(strip=True) or None
    if title is None:
        title = _meta_content(soup, property="og:title")
    
    description = _meta_content(soup, name="description") or _meta_content(soup, property="og:description")
    return PageMetadata(title=title, description=description)


class MetadataFetcher:
    """GETs a page with a bounded timeout; returns None instead of raising."""
    
    def __init__(self, timeout: float = 5.0, user_agent: str = "SyncScriptBot/1.0"):
        self.timeout = timeout
        self.user_agent = user_agent
    
    async def _download(self, url: str) -> str:
        timeout = aiohttp.ClientTimeout(total=self.timeout)
        headers = {"User-Agent": self.user_agent, "Accept": "text/html,application/xhtml+xml"}
        async with aiohttp.ClientSession(timeout=timeout, headers=headers) as session:
            async with session.get(url, allow_redirects=True) as response:
                response.raise_for_status()
                body = await response.content.read(MAX_HTML_BYTES)
                return body.decode(response.charset or "utf-8", errors="replace")
    
    async def fetch(self, url: str) -> Optional[PageMetadata]:
        try:
            html = await self._download(url)
            return parse_html(html)
        except asyncio.TimeoutError:
            logger.warning(f"Metadata fetch timed out after {self.timeout}s: {url}")
        except (aiohttp.ClientError, UnicodeDecodeError, LookupError, ValueError) as e:
            logger.warning(f"Failed to fetch metadata for {url}: {e}")
        return None

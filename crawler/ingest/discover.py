"""Sitemap-driven URL discovery."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

from bs4 import BeautifulSoup

from crawler.errors import ParseError, UpstreamFetchError
from crawler.ingest.fetcher import PoliteFetcher
from crawler.ingest.models import DiscoverResult

logger = logging.getLogger(__name__)

MAX_DEPTH = 3
PRODUCT_URL_RE = re.compile(r"/products?/", re.IGNORECASE)
CATEGORY_URL_RE = re.compile(r"/(?:category|categories|men|women)/", re.IGNORECASE)


def is_product_url(url: str) -> bool:
    return bool(PRODUCT_URL_RE.search(url))


def is_category_url(url: str) -> bool:
    return bool(CATEGORY_URL_RE.search(url))


def parse_sitemap(content: bytes | str) -> tuple[list[str], list[str]]:
    """Split a sitemap document into (child sitemaps, page URLs)."""
    try:
        soup = BeautifulSoup(content, "xml")
    except Exception as exc:  # lxml surfaces several parser error types
        raise ParseError(f"Invalid sitemap XML: {exc}") from exc
    index = soup.find("sitemapindex")
    if index is not None:
        return _locs(index.find_all("sitemap")), []
    urlset = soup.find("urlset")
    if urlset is not None:
        return [], _locs(urlset.find_all("url"))
    raise ParseError("Document is neither a sitemap index nor a URL set")


def _locs(entries) -> list[str]:
    locs = []
    for entry in entries:
        loc = entry.find("loc")
        if loc is not None and loc.get_text(strip=True):
            locs.append(loc.get_text(strip=True))
    return locs


class SitemapDiscoverer:
    def __init__(self, fetcher: PoliteFetcher, *, max_depth: int = MAX_DEPTH) -> None:
        self.fetcher = fetcher
        self.max_depth = max_depth

    async def discover(self, start_url: str, *, rate: float | None = None) -> DiscoverResult:
        if not urlparse(start_url).path.endswith(".xml"):
            logger.info("%s is not a sitemap; nothing to discover", start_url)
            return DiscoverResult()
        categories: dict[str, None] = {}
        products: dict[str, None] = {}
        await self._walk(start_url, 0, rate, set(), categories, products)
        logger.info("Discovered %s product and %s category URLs", len(products), len(categories))
        return DiscoverResult(category_urls=list(categories), product_urls=list(products))

    async def _walk(
        self,
        url: str,
        depth: int,
        rate: float | None,
        visited: set[str],
        categories: dict[str, None],
        products: dict[str, None],
    ) -> None:
        if depth > self.max_depth or url in visited:
            return
        visited.add(url)
        try:
            children, pages = await self._load(url, rate)
        except (UpstreamFetchError, ParseError) as exc:
            logger.warning("Skipping sitemap %s: %s", url, exc)
            return
        for child in children:
            await self._walk(child, depth + 1, rate, visited, categories, products)
        for page in pages:
            if is_product_url(page):
                products.setdefault(page, None)
            if is_category_url(page):
                categories.setdefault(page, None)

    async def _load(self, url: str, rate: float | None) -> tuple[list[str], list[str]]:
        response = await self.fetcher.fetch(url, rate=rate)
        if not response.is_success:
            logger.info("Sitemap %s returned %s", url, response.status_code)
            return [], []
        return parse_sitemap(response.content)

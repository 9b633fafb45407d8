"""Product page extraction into canonical records.

Structured data (JSON-LD ``Product`` objects) is preferred for every field;
HTML heuristics fill whatever the structured data leaves out. A page that
cannot be fetched or parsed yields ``None`` so one bad page never stops a run.
"""

from __future__ import annotations

import json
import logging
import math
import re
from typing import Any

from bs4 import BeautifulSoup

from crawler.errors import UpstreamFetchError
from crawler.ingest import load_sites, site_for_url
from crawler.ingest.fetcher import PoliteFetcher
from crawler.ingest.models import (
    MAX_CATEGORIES,
    MAX_IMAGES,
    CanonicalProduct,
    ProductImage,
    ProductVariant,
    Site,
)
from crawler.ingest.snapshots import SnapshotLog
from crawler.ingest.variants import VariantStrategy, size_tokens
from crawler.utils.dates import utc_now

logger = logging.getLogger(__name__)

DEFAULT_CURRENCY = "INR"
DESCRIPTION_WORDS = 25
ABSOLUTE_URL_RE = re.compile(r"^https?://", re.IGNORECASE)
PRICE_CHARS_RE = re.compile(r"[^0-9.]")


class ProductExtractor:
    def __init__(
        self,
        fetcher: PoliteFetcher,
        *,
        sites: list[Site] | None = None,
        variant_strategy: VariantStrategy = size_tokens,
        snapshots: SnapshotLog | None = None,
    ) -> None:
        self.fetcher = fetcher
        self.sites = load_sites() if sites is None else sites
        self.variant_strategy = variant_strategy
        self.snapshots = snapshots or SnapshotLog()

    async def extract(self, url: str) -> CanonicalProduct | None:
        try:
            response = await self.fetcher.fetch(url)
        except UpstreamFetchError as exc:
            logger.warning("Fetch failed for %s: %s", url, exc)
            return None
        if not response.is_success:
            logger.warning("Product page %s returned %s", url, response.status_code)
            return None
        html = response.text
        try:
            product = self.build(url, html, raw_length=len(response.content))
        except Exception as exc:  # one broken page must not abort the batch
            logger.warning("Extraction failed for %s: %s: %s", url, type(exc).__name__, exc)
            return None
        self.snapshots.write(url=url, source_hash=product.source_hash, title=product.title, html=html)
        return product

    def build(self, url: str, html: str, *, raw_length: int | None = None) -> CanonicalProduct:
        soup = BeautifulSoup(html, "lxml")
        site = site_for_url(url, self.sites)
        ld = find_product_ld(json_ld_objects(soup)) or {}

        offer = _first_offer(ld.get("offers"))
        price = parse_price(
            offer.get("price")
            or offer.get("lowPrice")
            or _meta(soup, "itemprop", "price")
            or _meta(soup, "property", "product:price:amount")
        )
        currency = (
            offer.get("priceCurrency")
            or _meta(soup, "itemprop", "priceCurrency")
            or _meta(soup, "property", "product:price:currency")
            or site.currency
            or DEFAULT_CURRENCY
        )
        rating = ld.get("aggregateRating") if isinstance(ld.get("aggregateRating"), dict) else {}

        product = CanonicalProduct(
            source_site=site.name,
            source_product_url=url,
            source_product_id=_text(ld.get("sku") or ld.get("productID")),
            title=_title(ld, soup),
            brand=_brand(ld.get("brand")) or site.brand,
            categories=_categories(ld, soup),
            description_short=_description(ld, soup),
            price=price,
            currency=str(currency),
            variants=[
                ProductVariant(attributes={"size": token}, price=price, available=True)
                for token in self.variant_strategy(soup)
            ],
            images=_images(ld, soup),
            ratings=_to_float(rating.get("ratingValue")),
            reviews_count=_to_int(rating.get("reviewCount") or rating.get("ratingCount")),
            last_synced_at=utc_now(),
            meta={"snapshot": {"length": raw_length if raw_length is not None else len(html.encode())}},
        )
        return product.seal()


def json_ld_objects(soup: BeautifulSoup) -> list[dict[str, Any]]:
    objects: list[dict[str, Any]] = []
    for tag in soup.find_all("script", type="application/ld+json"):
        try:
            data = json.loads(tag.string or tag.get_text() or "null")
        except json.JSONDecodeError:
            continue
        items = data if isinstance(data, list) else [data]
        for item in items:
            if not isinstance(item, dict):
                continue
            objects.append(item)
            graph = item.get("@graph")
            if isinstance(graph, list):
                objects.extend(node for node in graph if isinstance(node, dict))
    return objects


def find_product_ld(objects: list[dict[str, Any]]) -> dict[str, Any] | None:
    for obj in objects:
        kind = obj.get("@type")
        if kind == "Product" or (isinstance(kind, list) and "Product" in kind):
            return obj
    return None


def parse_price(value: Any) -> float:
    cleaned = PRICE_CHARS_RE.sub("", str(value or ""))
    try:
        return float(cleaned)
    except ValueError:
        return 0.0


def truncate_words(text: str, limit: int = DESCRIPTION_WORDS) -> str:
    return " ".join(text.split()[:limit])


def _first_offer(offers: Any) -> dict[str, Any]:
    if isinstance(offers, list):
        offers = offers[0] if offers else None
    return offers if isinstance(offers, dict) else {}


def _meta(soup: BeautifulSoup, attr: str, value: str) -> str | None:
    tag = soup.find("meta", attrs={attr: value})
    return tag.get("content") if tag else None


def _text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)


def _title(ld: dict[str, Any], soup: BeautifulSoup) -> str:
    if isinstance(ld.get("name"), str) and ld["name"].strip():
        return ld["name"].strip()
    h1 = soup.find("h1")
    if h1 and h1.get_text(strip=True):
        return h1.get_text(strip=True)
    return _meta(soup, "property", "og:title") or ""


def _brand(value: Any) -> str | None:
    if isinstance(value, dict):
        value = value.get("name")
    return value.strip() if isinstance(value, str) and value.strip() else None


def _description(ld: dict[str, Any], soup: BeautifulSoup) -> str | None:
    text = ld.get("description") if isinstance(ld.get("description"), str) else None
    if not text:
        text = _meta(soup, "name", "description")
    if not text:
        text = " ".join(p.get_text(" ", strip=True) for p in soup.find_all("p")[:3])
    return truncate_words(text) or None


def _categories(ld: dict[str, Any], soup: BeautifulSoup) -> list[str]:
    names: dict[str, None] = {}
    for link in soup.select("nav a, .breadcrumb a"):
        text = link.get_text(strip=True)
        if text and "home" not in text.lower():
            names.setdefault(text, None)
    structured = ld.get("category")
    if isinstance(structured, str):
        structured = [structured]
    if isinstance(structured, list):
        for entry in structured:
            if isinstance(entry, str) and entry.strip():
                names.setdefault(entry.strip(), None)
    return list(names)[:MAX_CATEGORIES]


def _images(ld: dict[str, Any], soup: BeautifulSoup) -> list[ProductImage]:
    found: dict[str, str | None] = {}
    structured = ld.get("image")
    for entry in structured if isinstance(structured, list) else [structured]:
        if isinstance(entry, dict):
            entry = entry.get("url") or entry.get("contentUrl")
        if isinstance(entry, str) and entry:
            found.setdefault(entry, None)
    for img in soup.find_all("img"):
        src = img.get("src") or img.get("data-src")
        if src and ABSOLUTE_URL_RE.match(src) and src not in found:
            found[src] = img.get("alt") or None
    return [ProductImage(source_image_url=src, alt_text=alt) for src, alt in list(found.items())[:MAX_IMAGES]]


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def _to_int(value: Any) -> int | None:
    number = _to_float(value)
    return int(number) if number is not None else None

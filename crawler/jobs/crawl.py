"""Crawl job: robots gate, sitemap discovery, extraction, persistence, artifacts."""

from __future__ import annotations

import argparse
import asyncio
import logging
import os
import pathlib
import sys
from dataclasses import dataclass

from dotenv import load_dotenv
from sqlalchemy.engine import Engine

from crawler.db.migrate import ensure_schema
from crawler.db.session import create_engine_from_env
from crawler.db.store import CatalogStore
from crawler.errors import ConfigurationError, PersistenceError, PolicyViolation
from crawler.ingest.discover import SitemapDiscoverer
from crawler.ingest.extract import ProductExtractor
from crawler.ingest.fetcher import DEFAULT_TIMEOUT, PoliteFetcher
from crawler.ingest.models import CanonicalProduct, Site
from crawler.ingest.robots import RobotsPolicy
from crawler.ingest.snapshots import SnapshotLog
from crawler.logic.artifacts import write_products, write_report, write_urls

logger = logging.getLogger(__name__)

DEFAULT_START_URL = "https://www.thesouledstore.com/sitemap.xml"
DEFAULT_OUTPUT = "products.json"


@dataclass(slots=True)
class CrawlSummary:
    discovered: int
    processed: int
    saved: int
    upserted: int
    snapshot_failures: int
    products: list[CanonicalProduct]


async def run_crawl(
    start_url: str,
    output: str | pathlib.Path = DEFAULT_OUTPUT,
    *,
    rate: float = 1.0,
    upsert: bool = False,
    limit: int | None = None,
    prune_stale_children: bool = False,
    fetcher: PoliteFetcher | None = None,
    engine: Engine | None = None,
    snapshots: SnapshotLog | None = None,
    sites: list[Site] | None = None,
) -> CrawlSummary:
    output = pathlib.Path(output)
    store: CatalogStore | None = None
    if upsert:
        engine = engine or create_engine_from_env()
        ensure_schema(engine)
        store = CatalogStore(engine, prune_stale_children=prune_stale_children)

    owns_fetcher = fetcher is None
    fetcher = fetcher or PoliteFetcher(
        rate=rate, timeout=float(os.environ.get("CRAWLER_TIMEOUT", DEFAULT_TIMEOUT))
    )
    snapshots = snapshots or SnapshotLog()
    try:
        if not await RobotsPolicy(fetcher).is_allowed(start_url):
            raise PolicyViolation(f"robots.txt disallows crawling {start_url}")

        discovered = await SitemapDiscoverer(fetcher).discover(start_url, rate=rate)
        urls_path = write_urls(output, discovered)
        logger.info("Saved discovered URLs to %s", urls_path)

        extractor = ProductExtractor(fetcher, sites=sites, snapshots=snapshots)
        queue = discovered.product_urls if limit is None else discovered.product_urls[:limit]
        products: list[CanonicalProduct] = []
        upserted = 0
        loop = asyncio.get_running_loop()
        for url in queue:
            product = await extractor.extract(url)
            if product is None:
                continue
            products.append(product)
            if store is not None:
                await loop.run_in_executor(None, store.upsert_product, product)
                upserted += 1
    finally:
        if owns_fetcher:
            await fetcher.close()

    write_products(output, products)
    report_path = write_report(output, products)
    logger.info(
        "Processed %s product URLs, saved %s products to %s (report %s)%s",
        len(queue),
        len(products),
        output,
        report_path,
        " and upserted to the catalog" if store is not None else "",
    )
    if snapshots.failures:
        logger.warning("%s snapshot writes failed", snapshots.failures)
    return CrawlSummary(
        discovered=len(discovered.product_urls),
        processed=len(queue),
        saved=len(products),
        upserted=upserted,
        snapshot_failures=snapshots.failures,
        products=products,
    )


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Crawl product pages listed in a sitemap.")
    parser.add_argument("--start-url", default=os.environ.get("CRAWLER_START_URL", DEFAULT_START_URL))
    parser.add_argument("--output", default=DEFAULT_OUTPUT, help="Product list path; sibling .urls.json and .report.json are written next to it")
    parser.add_argument("--rate", type=float, default=float(os.environ.get("CRAWLER_RATE", "1")), help="Requests per second")
    parser.add_argument("--upsert", action="store_true", help="Write products to the catalog at DATABASE_URL")
    parser.add_argument("--limit", type=int, default=None, help="Maximum number of product pages to fetch")
    parser.add_argument("--prune-children", action="store_true", help="Delete image and variant rows missing from a re-crawl")
    return parser


def main(argv: list[str] | None = None) -> int:
    load_dotenv()
    logging.basicConfig(level=logging.INFO, format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
    args = build_parser().parse_args(argv)
    try:
        asyncio.run(
            run_crawl(
                args.start_url,
                args.output,
                rate=args.rate,
                upsert=args.upsert,
                limit=args.limit,
                prune_stale_children=args.prune_children,
            )
        )
    except (PolicyViolation, ConfigurationError) as exc:
        logger.error("Crawler error: %s", exc)
        return 1
    except PersistenceError as exc:
        logger.error("Catalog write failed: %s", exc)
        return 2
    except Exception:
        logger.exception("Crawl failed")
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())

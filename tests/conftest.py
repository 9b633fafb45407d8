from datetime import datetime, timezone
from pathlib import Path

import pytest
from sqlalchemy import create_engine

from crawler.db.migrate import ensure_schema
from crawler.ingest.models import CanonicalProduct, ProductImage, ProductVariant, Site
from crawler.ingest.snapshots import SnapshotLog

FIXTURES = Path(__file__).parent / "fixtures" / "http"

SITES = [Site(host="example.test", name="example.test", brand="Example Store", currency="INR")]


def load_fixture(path: str) -> str:
    return (FIXTURES / path).read_text(encoding="utf-8")


def make_product(**overrides) -> CanonicalProduct:
    fields = {
        "source_site": "example.test",
        "source_product_url": "https://example.test/products/shirt-1",
        "title": "Shirt",
        "price": 19.99,
        "currency": "USD",
        "last_synced_at": datetime(2026, 10, 1, 12, 0, tzinfo=timezone.utc),
        "categories": ["Men", "Shirts"],
        "images": [ProductImage(source_image_url="https://cdn.example.test/shirt-1-front.jpg", image_id="img-1")],
        "variants": [ProductVariant(attributes={"size": "M"}, price=19.99, variant_id="var-1")],
        "meta": {"snapshot": {"length": 2048}},
        "product_id": "prod-1",
    }
    fields.update(overrides)
    return CanonicalProduct(**fields).seal()


@pytest.fixture()
def engine(tmp_path):
    engine = create_engine(f"sqlite:///{tmp_path / 'catalog.db'}", future=True)
    ensure_schema(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def snapshots(tmp_path):
    return SnapshotLog(tmp_path / "snapshots.txt")

import hashlib
import json

from conftest import make_product
from crawler.ingest.models import DiscoverResult, Licensing, ProductImage
from crawler.logic.artifacts import artifact_path, licensing_report


def test_hash_is_deterministic():
    assert make_product().source_hash == make_product().source_hash


def test_hash_changes_with_any_field():
    base = make_product()
    assert make_product(price=20.0).source_hash != base.source_hash
    assert make_product(title="Shirt 2").source_hash != base.source_hash


def test_hash_uses_sorted_compact_serialization():
    product = make_product()
    payload = product.as_dict()
    payload.pop("source_hash")
    expected = hashlib.sha256(json.dumps(payload, sort_keys=True, separators=(",", ":")).encode()).hexdigest()
    assert product.source_hash == expected
    assert len(product.source_hash) == 64


def test_as_dict_is_json_ready():
    data = json.loads(json.dumps(make_product().as_dict()))
    assert data["last_synced_at"] == "2026-10-01T12:00:00+00:00"
    assert data["images"][0]["licensed_for_use"] == "unknown"
    assert data["variants"][0]["attributes"] == {"size": "M"}


def test_discover_result_serialization():
    result = DiscoverResult(category_urls=["https://example.test/men/"], product_urls=["https://example.test/products/a"])
    assert result.as_dict() == {
        "categoryUrls": ["https://example.test/men/"],
        "productUrls": ["https://example.test/products/a"],
    }


def test_licensing_report_counts_unconfirmed_images():
    product = make_product(
        images=[
            ProductImage(source_image_url="https://cdn.example.test/a.jpg"),
            ProductImage(source_image_url="https://cdn.example.test/b.jpg", licensed_for_use=Licensing.PERMISSION_GRANTED),
            ProductImage(source_image_url="https://cdn.example.test/c.jpg", licensed_for_use=Licensing.PENDING_REVIEW),
        ]
    )
    assert licensing_report([product]) == [
        {
            "source_product_url": "https://example.test/products/shirt-1",
            "title": "Shirt",
            "images_flagged": 2,
            "description_long_present": False,
        }
    ]


def test_artifact_paths(tmp_path):
    assert artifact_path(tmp_path / "products.json", "urls") == tmp_path / "products.urls.json"
    assert artifact_path(tmp_path / "run", "report") == tmp_path / "run.report.json"

"""Run artifact files: product list, discovered URLs, licensing report."""

from __future__ import annotations

import json
import pathlib
from typing import Any, Iterable

from crawler.ingest.models import CanonicalProduct, DiscoverResult, Licensing


def artifact_path(output: pathlib.Path, kind: str) -> pathlib.Path:
    """``products.json`` -> ``products.<kind>.json``."""
    stem = output.name[: -len(".json")] if output.name.endswith(".json") else output.name
    return output.with_name(f"{stem}.{kind}.json")


def licensing_report(products: Iterable[CanonicalProduct]) -> list[dict[str, Any]]:
    return [
        {
            "source_product_url": product.source_product_url,
            "title": product.title,
            "images_flagged": sum(
                1 for image in product.images if image.licensed_for_use is not Licensing.PERMISSION_GRANTED
            ),
            "description_long_present": bool(product.description_long),
        }
        for product in products
    ]


def write_urls(output: pathlib.Path, discovered: DiscoverResult) -> pathlib.Path:
    path = artifact_path(output, "urls")
    _write_json(path, discovered.as_dict())
    return path


def write_products(output: pathlib.Path, products: list[CanonicalProduct]) -> pathlib.Path:
    _write_json(output, [product.as_dict() for product in products])
    return output


def write_report(output: pathlib.Path, products: list[CanonicalProduct]) -> pathlib.Path:
    path = artifact_path(output, "report")
    _write_json(path, licensing_report(products))
    return path


def _write_json(path: pathlib.Path, payload: Any) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")

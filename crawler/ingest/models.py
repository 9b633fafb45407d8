"""Ingestion data models."""

from __future__ import annotations

import enum
import hashlib
import json
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Any

from crawler.utils.dates import format_timestamp

MAX_IMAGES = 8
MAX_CATEGORIES = 6


def new_id() -> str:
    return str(uuid.uuid4())


class Licensing(str, enum.Enum):
    UNKNOWN = "unknown"
    PERMISSION_GRANTED = "permission_granted"
    PERMISSION_DENIED = "permission_denied"
    PENDING_REVIEW = "pending_review"


@dataclass(slots=True)
class Site:
    host: str
    name: str
    brand: str | None = None
    currency: str = "INR"


@dataclass(slots=True)
class ProductImage:
    source_image_url: str
    alt_text: str | None = None
    licensed_for_use: Licensing = Licensing.UNKNOWN
    width: int | None = None
    height: int | None = None
    cdn_url: str | None = None
    image_id: str = field(default_factory=new_id)

    def as_dict(self) -> dict[str, Any]:
        return {
            "image_id": self.image_id,
            "source_image_url": self.source_image_url,
            "alt_text": self.alt_text,
            "licensed_for_use": self.licensed_for_use.value,
            "width": self.width,
            "height": self.height,
            "cdn_url": self.cdn_url,
        }


@dataclass(slots=True)
class ProductVariant:
    attributes: dict[str, str]
    price: float
    sku: str | None = None
    available: bool | None = True
    inventory_count: int | None = None
    image_ids: list[str] = field(default_factory=list)
    variant_id: str = field(default_factory=new_id)

    def as_dict(self) -> dict[str, Any]:
        return {
            "variant_id": self.variant_id,
            "sku": self.sku,
            "attributes": dict(self.attributes),
            "price": self.price,
            "available": self.available,
            "inventory_count": self.inventory_count,
            "image_ids": list(self.image_ids),
        }


@dataclass(slots=True)
class CanonicalProduct:
    source_site: str
    source_product_url: str
    title: str
    price: float
    currency: str
    last_synced_at: datetime
    source_product_id: str | None = None
    brand: str | None = None
    categories: list[str] = field(default_factory=list)
    tags: list[str] = field(default_factory=list)
    description_short: str | None = None
    description_long: str | None = None
    compare_at_price: float | None = None
    is_on_sale: bool = False
    variants: list[ProductVariant] = field(default_factory=list)
    images: list[ProductImage] = field(default_factory=list)
    ratings: float | None = None
    reviews_count: int | None = None
    meta: dict[str, Any] = field(default_factory=dict)
    product_id: str = field(default_factory=new_id)
    source_hash: str = ""

    def as_dict(self, *, include_hash: bool = True) -> dict[str, Any]:
        data = {
            "product_id": self.product_id,
            "source_site": self.source_site,
            "source_product_url": self.source_product_url,
            "source_product_id": self.source_product_id,
            "title": self.title,
            "brand": self.brand,
            "categories": list(self.categories),
            "tags": list(self.tags),
            "description_short": self.description_short,
            "description_long": self.description_long,
            "price": self.price,
            "currency": self.currency,
            "compare_at_price": self.compare_at_price,
            "is_on_sale": self.is_on_sale,
            "variants": [variant.as_dict() for variant in self.variants],
            "images": [image.as_dict() for image in self.images],
            "ratings": self.ratings,
            "reviews_count": self.reviews_count,
            "last_synced_at": format_timestamp(self.last_synced_at),
            "meta": self.meta,
        }
        if include_hash:
            data["source_hash"] = self.source_hash
        return data

    def compute_hash(self) -> str:
        """SHA-256 of every field but ``source_hash``, sorted keys, no whitespace."""
        payload = json.dumps(self.as_dict(include_hash=False), sort_keys=True, separators=(",", ":"))
        return hashlib.sha256(payload.encode("utf-8")).hexdigest()

    def seal(self) -> CanonicalProduct:
        self.source_hash = self.compute_hash()
        return self


@dataclass(slots=True)
class DiscoverResult:
    category_urls: list[str] = field(default_factory=list)
    product_urls: list[str] = field(default_factory=list)

    def as_dict(self) -> dict[str, list[str]]:
        return {"categoryUrls": list(self.category_urls), "productUrls": list(self.product_urls)}

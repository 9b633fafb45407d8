"""Catalog persistence with row-level upserts."""

from __future__ import annotations

import logging
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import SQLAlchemyError

from crawler.db.schema import product_images, product_variants, products
from crawler.errors import PersistenceError
from crawler.ingest.models import CanonicalProduct

logger = logging.getLogger(__name__)

INSERTS = {"postgresql": postgresql.insert, "sqlite": sqlite.insert}

PRODUCT_UPDATE_COLUMNS = (
    "source_product_id",
    "title",
    "brand",
    "categories",
    "description_short",
    "description_long",
    "price",
    "currency",
    "compare_at_price",
    "is_on_sale",
    "ratings",
    "reviews_count",
    "last_synced_at",
    "source_hash",
    "meta",
)


class CatalogStore:
    """Writes canonical products and their images and variants.

    Re-crawls of a URL already in the catalog are written onto the existing
    product row, whatever ``product_id`` the new record carries. The stored
    ``source_hash`` is the record's own, computed over the incoming
    ``product_id`` rather than the id of the row it lands on, so it cannot be
    recomputed from the stored row alone. Image and variant rows absent from a
    newer record are left in place unless ``prune_stale_children`` is set.
    """

    def __init__(self, engine: Engine, *, prune_stale_children: bool = False) -> None:
        self.engine = engine
        self.prune_stale_children = prune_stale_children

    def upsert_product(self, product: CanonicalProduct) -> str:
        """Insert or update ``product``; returns the product_id the row is stored under."""
        try:
            with self.engine.begin() as conn:
                return self._upsert(conn, product)
        except SQLAlchemyError as exc:
            raise PersistenceError(f"Upsert failed for {product.source_product_url}: {exc}") from exc

    def _upsert(self, conn: Connection, product: CanonicalProduct) -> str:
        insert = INSERTS.get(conn.dialect.name)
        if insert is None:
            raise PersistenceError(f"Unsupported database dialect: {conn.dialect.name}")
        product_id = self._resolve_product_id(conn, product)

        stmt = insert(products).values(_product_row(product, product_id))
        conn.execute(
            stmt.on_conflict_do_update(
                index_elements=[products.c.product_id],
                set_={name: stmt.excluded[name] for name in PRODUCT_UPDATE_COLUMNS},
            )
        )
        for image in product.images:
            row = {**image.as_dict(), "product_id": product_id}
            stmt = insert(product_images).values(row)
            conn.execute(
                stmt.on_conflict_do_update(
                    index_elements=[product_images.c.image_id],
                    set_={name: stmt.excluded[name] for name in row if name != "image_id"},
                )
            )
        for variant in product.variants:
            row = {**variant.as_dict(), "product_id": product_id}
            stmt = insert(product_variants).values(row)
            conn.execute(
                stmt.on_conflict_do_update(
                    index_elements=[product_variants.c.variant_id],
                    set_={name: stmt.excluded[name] for name in row if name != "variant_id"},
                )
            )
        if self.prune_stale_children:
            self._prune(conn, product, product_id)
        return product_id

    def _resolve_product_id(self, conn: Connection, product: CanonicalProduct) -> str:
        existing = conn.execute(
            select(products.c.product_id)
            .where(products.c.source_product_url == product.source_product_url)
            .order_by(products.c.last_synced_at)
        ).scalars().all()
        if not existing or product.product_id in existing:
            return product.product_id
        logger.info(
            "Matched %s to existing product %s (incoming %s)",
            product.source_product_url,
            existing[0],
            product.product_id,
        )
        return existing[0]

    def _prune(self, conn: Connection, product: CanonicalProduct, product_id: str) -> None:
        image_ids = [image.image_id for image in product.images]
        variant_ids = [variant.variant_id for variant in product.variants]
        removed_images = conn.execute(
            delete(product_images).where(
                product_images.c.product_id == product_id,
                product_images.c.image_id.not_in(image_ids),
            )
        ).rowcount
        removed_variants = conn.execute(
            delete(product_variants).where(
                product_variants.c.product_id == product_id,
                product_variants.c.variant_id.not_in(variant_ids),
            )
        ).rowcount
        if removed_images or removed_variants:
            logger.info(
                "Pruned %s images and %s variants from %s", removed_images, removed_variants, product_id
            )


def _product_row(product: CanonicalProduct, product_id: str) -> dict[str, Any]:
    return {
        "product_id": product_id,
        "source_site": product.source_site,
        "source_product_id": product.source_product_id,
        "source_product_url": product.source_product_url,
        "title": product.title,
        "brand": product.brand,
        "categories": list(product.categories),
        "description_short": product.description_short,
        "description_long": product.description_long,
        "price": product.price,
        "currency": product.currency,
        "compare_at_price": product.compare_at_price,
        "is_on_sale": product.is_on_sale,
        "ratings": product.ratings,
        "reviews_count": product.reviews_count,
        "last_synced_at": product.last_synced_at,
        "source_hash": product.source_hash,
        "meta": product.meta,
    }

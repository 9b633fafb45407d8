"""Catalog tables owned by the crawler."""

from __future__ import annotations

from sqlalchemy import JSON, Boolean, Column, DateTime, ForeignKey, Index, Integer, MetaData, Numeric, String, Table, Text
from sqlalchemy.dialects.postgresql import JSONB

metadata = MetaData()

JSONType = JSON().with_variant(JSONB(), "postgresql")
Money = Numeric(12, 2, asdecimal=False)

products = Table(
    "products",
    metadata,
    Column("product_id", String(36), primary_key=True),
    Column("source_site", Text),
    Column("source_product_id", Text),
    Column("source_product_url", Text, nullable=False),
    Column("title", Text),
    Column("brand", Text),
    Column("categories", JSONType),
    Column("description_short", Text),
    Column("description_long", Text),
    Column("price", Money),
    Column("currency", String(8)),
    Column("compare_at_price", Money),
    Column("is_on_sale", Boolean, default=False),
    Column("ratings", Numeric(asdecimal=False)),
    Column("reviews_count", Integer),
    Column("last_synced_at", DateTime(timezone=True)),
    Column("source_hash", Text),
    Column("meta", JSONType),
    Index("ix_products_source_product_url", "source_product_url"),
)

product_images = Table(
    "product_images",
    metadata,
    Column("image_id", String(36), primary_key=True),
    Column("product_id", String(36), ForeignKey("products.product_id"), nullable=False),
    Column("source_image_url", Text),
    Column("alt_text", Text),
    Column("width", Integer),
    Column("height", Integer),
    Column("licensed_for_use", String(50), default="unknown"),
    Column("cdn_url", Text),
)

product_variants = Table(
    "product_variants",
    metadata,
    Column("variant_id", String(36), primary_key=True),
    Column("product_id", String(36), ForeignKey("products.product_id"), nullable=False),
    Column("sku", Text),
    Column("attributes", JSONType),
    Column("price", Money),
    Column("available", Boolean),
    Column("inventory_count", Integer),
    Column("image_ids", JSONType),
)

"""Database session helpers."""

from __future__ import annotations

import os

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine

from crawler.errors import ConfigurationError


def create_engine_from_env() -> Engine:
    """Create an engine using the DATABASE_URL environment variable."""
    url = os.environ.get("DATABASE_URL")
    if not url:
        raise ConfigurationError(
            "DATABASE_URL is not set. Upserting requires a database connection string "
            "in the environment or a .env file."
        )
    return create_engine(url, pool_pre_ping=True, future=True)

"""Catalog schema creation."""

from __future__ import annotations

import sys

from dotenv import load_dotenv
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from crawler.db.schema import metadata
from crawler.db.session import create_engine_from_env
from crawler.errors import ConfigurationError, PersistenceError


def ensure_schema(engine: Engine) -> None:
    """Create the catalog tables if they do not exist yet."""
    try:
        metadata.create_all(engine, checkfirst=True)
    except SQLAlchemyError as exc:
        raise PersistenceError(f"Schema creation failed: {exc}") from exc


def main() -> None:
    load_dotenv()
    try:
        engine = create_engine_from_env()
    except ConfigurationError as exc:
        print(exc, file=sys.stderr)
        sys.exit(1)
    try:
        ensure_schema(engine)
    except PersistenceError as exc:
        print(f"Migration failed: {exc}", file=sys.stderr)
        sys.exit(2)


if __name__ == "__main__":
    main()

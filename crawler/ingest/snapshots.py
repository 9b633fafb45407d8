"""Append-only debug log of raw product pages."""

from __future__ import annotations

import logging
import os
import pathlib

logger = logging.getLogger(__name__)

DEFAULT_PATH = pathlib.Path("snapshots.txt")
SNAPSHOT_CHARS = 10_000


class SnapshotLog:
    """Best-effort sink: write failures are counted, never raised."""

    def __init__(self, path: pathlib.Path | str | None = None) -> None:
        self.path = pathlib.Path(path or os.environ.get("CRAWLER_SNAPSHOT_PATH") or DEFAULT_PATH)
        self.failures = 0

    def write(self, *, url: str, source_hash: str, title: str, html: str) -> None:
        entry = f"\nURL: {url}\nHASH: {source_hash}\nTITLE: {title}\n---\n{html[:SNAPSHOT_CHARS]}\n====\n"
        try:
            with self.path.open("a", encoding="utf-8") as handle:
                handle.write(entry)
        except OSError as exc:
            self.failures += 1
            logger.debug("Snapshot write to %s failed: %s", self.path, exc)

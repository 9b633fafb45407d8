"""Minimum-interval rate limiting for outbound requests."""

from __future__ import annotations

import asyncio
import time
from collections import defaultdict
from contextlib import asynccontextmanager
from typing import AsyncIterator

GLOBAL_KEY = "*"


class RateLimiter:
    """Spaces requests at least ``1 / max(rate, 1)`` seconds apart.

    The interval is measured from the completion of the previous request to the
    start of the next one, so two request starts are never closer than the
    interval. One budget is shared across hosts unless ``per_host`` is set.
    """

    def __init__(self, *, per_host: bool = False) -> None:
        self.per_host = per_host
        self._locks: dict[str, asyncio.Lock] = defaultdict(asyncio.Lock)
        self._last_request: dict[str, float] = defaultdict(lambda: 0.0)

    @staticmethod
    def min_interval(rate: float) -> float:
        return 1.0 / max(rate, 1.0)

    @asynccontextmanager
    async def slot(self, rate: float, *, host: str = "") -> AsyncIterator[None]:
        key = host if self.per_host and host else GLOBAL_KEY
        async with self._locks[key]:
            elapsed = time.monotonic() - self._last_request[key]
            min_interval = self.min_interval(rate)
            if elapsed < min_interval:
                await asyncio.sleep(min_interval - elapsed)
            try:
                yield
            finally:
                self._last_request[key] = time.monotonic()

"""Best-effort robots.txt gate for crawl roots."""

from __future__ import annotations

import logging
import re
from urllib.parse import urlparse

from crawler.errors import UpstreamFetchError
from crawler.ingest.fetcher import PoliteFetcher

logger = logging.getLogger(__name__)

USER_AGENT_ANY_RE = re.compile(r"^user-agent:\s*\*", re.IGNORECASE)
USER_AGENT_RE = re.compile(r"^user-agent:", re.IGNORECASE)
DISALLOW_RE = re.compile(r"^disallow:", re.IGNORECASE)


def parse_disallows(text: str) -> list[str]:
    """Collect ``Disallow`` prefixes from ``User-agent: *`` blocks."""
    active = False
    disallows: list[str] = []
    for line in text.splitlines():
        stripped = line.strip()
        if USER_AGENT_ANY_RE.match(stripped):
            active = True
        elif USER_AGENT_RE.match(stripped):
            active = False
        elif active and DISALLOW_RE.match(stripped):
            path = stripped.split(":", 1)[1].split("#", 1)[0].strip()
            if path:
                disallows.append(path)
    return disallows


class RobotsPolicy:
    def __init__(self, fetcher: PoliteFetcher) -> None:
        self.fetcher = fetcher
        self._cache: dict[str, list[str]] = {}

    async def is_allowed(self, url: str) -> bool:
        parsed = urlparse(url)
        origin = f"{parsed.scheme}://{parsed.netloc}"
        disallows = self._cache.get(origin)
        if disallows is None:
            disallows = await self._load(origin)
            self._cache[origin] = disallows
        path = parsed.path or "/"
        return not any(path.startswith(prefix) for prefix in disallows)

    async def _load(self, origin: str) -> list[str]:
        robots_url = f"{origin}/robots.txt"
        try:
            response = await self.fetcher.fetch(robots_url)
        except UpstreamFetchError as exc:
            logger.info("robots.txt unavailable for %s (%s); allowing", origin, exc)
            return []
        if not response.is_success:
            logger.info("robots.txt returned %s for %s; allowing", response.status_code, origin)
            return []
        return parse_disallows(response.text)

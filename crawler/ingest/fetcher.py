"""Polite HTTP fetching: identification headers, rate limiting and retries."""

from __future__ import annotations

import logging
import os
from urllib.parse import urlparse

import httpx

from crawler.errors import UpstreamFetchError
from crawler.utils.rate_limit import RateLimiter
from crawler.utils.retry import retry_async

logger = logging.getLogger(__name__)

DEFAULT_RATE = 1.0
DEFAULT_TIMEOUT = 20.0
DEFAULT_CONTACT = "ops@crawler.example"
ACCEPT = "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8"
RETRY_ATTEMPTS = 3


class RetryableStatus(Exception):
    def __init__(self, status_code: int) -> None:
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


def is_retryable_status(status_code: int) -> bool:
    return status_code == 429 or status_code >= 500


class PoliteFetcher:
    def __init__(
        self,
        *,
        session: httpx.AsyncClient | None = None,
        rate_limiter: RateLimiter | None = None,
        rate: float = DEFAULT_RATE,
        timeout: float = DEFAULT_TIMEOUT,
        contact: str | None = None,
        backoff: float = 0.5,
    ) -> None:
        self._owns_session = session is None
        self._session = session or httpx.AsyncClient(timeout=timeout, follow_redirects=True)
        self._rate_limiter = rate_limiter or RateLimiter()
        self.rate = rate
        self.timeout = timeout
        self.contact = contact or os.environ.get("CRAWLER_CONTACT", DEFAULT_CONTACT)
        self.backoff = backoff

    async def close(self) -> None:
        if self._owns_session:
            await self._session.aclose()

    def user_agent(self, url: str) -> str:
        parsed = urlparse(url)
        return f"ProductCrawler/0.1 (+contact: {self.contact}; {parsed.scheme}://{parsed.netloc})"

    async def fetch(
        self,
        url: str,
        *,
        rate: float | None = None,
        headers: dict[str, str] | None = None,
    ) -> httpx.Response:
        """GET ``url``; 429 and 5xx responses are retried, anything else is returned as-is.

        URLs that cannot be turned into a request (bad port, broken IPv6 host,
        control characters) fail at once as ``UpstreamFetchError``.
        """
        attempt = retry_async(
            attempts=RETRY_ATTEMPTS,
            base_delay=self.backoff,
            exceptions=(RetryableStatus, httpx.TransportError),
        )(self._attempt)
        try:
            request_headers = {"User-Agent": self.user_agent(url), "Accept": ACCEPT}
            request_headers.update(headers or {})
            return await attempt(url, request_headers, rate or self.rate)
        except RetryableStatus as exc:
            raise UpstreamFetchError(url, str(exc), status_code=exc.status_code) from exc
        except httpx.TransportError as exc:
            raise UpstreamFetchError(url, f"{type(exc).__name__}: {exc}") from exc
        except (httpx.InvalidURL, ValueError) as exc:
            raise UpstreamFetchError(url, f"Invalid URL: {exc}") from exc

    async def _attempt(self, url: str, headers: dict[str, str], rate: float) -> httpx.Response:
        host = urlparse(url).netloc
        async with self._rate_limiter.slot(rate, host=host):
            response = await self._session.get(
                url, headers=headers, timeout=self.timeout, follow_redirects=True
            )
        if is_retryable_status(response.status_code):
            logger.info("HTTP %s from %s", response.status_code, url)
            raise RetryableStatus(response.status_code)
        return response

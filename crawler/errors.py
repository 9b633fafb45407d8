"""Crawler error taxonomy."""

from __future__ import annotations


class CrawlerError(Exception):
    """Base class for errors raised by the crawler."""


class PolicyViolation(CrawlerError, PermissionError):
    """robots.txt disallows the start URL."""


class UpstreamFetchError(CrawlerError):
    def __init__(self, url: str, message: str, *, status_code: int | None = None) -> None:
        super().__init__(f"{message} for {url}")
        self.url = url
        self.status_code = status_code


class ParseError(CrawlerError):
    """A sitemap or product page could not be parsed."""


class PersistenceError(CrawlerError):
    """Schema creation or a row write failed."""


class ConfigurationError(CrawlerError):
    """Required configuration is missing."""

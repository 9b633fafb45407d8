"""Ingestion helpers."""

from __future__ import annotations

import pathlib
from urllib.parse import urlparse

import yaml

from crawler.ingest.models import Site

SITES_PATH = pathlib.Path(__file__).with_name("sites.yml")


def load_sites(path: pathlib.Path = SITES_PATH) -> list[Site]:
    data = yaml.safe_load(path.read_text()) or []
    return [Site(**item) for item in data]


def site_for_url(url: str, sites: list[Site]) -> Site:
    """Match a URL's host against known sites; unknown hosts get a bare entry."""
    host = (urlparse(url).hostname or "").lower()
    for site in sites:
        if host == site.host or host.endswith(f".{site.host}"):
            return site
    return Site(host=host, name=host.removeprefix("www."))

"""Variant token strategies.

A strategy maps a parsed product page to the option tokens it offers. The
extractor builds one variant per distinct token.
"""

from __future__ import annotations

import re
from collections.abc import Callable

from bs4 import BeautifulSoup

VariantStrategy = Callable[[BeautifulSoup], list[str]]

SIZE_SELECTORS = '[name*="size"], .size, .size-selector button, .size-chart .size'
SIZE_TOKEN_RE = re.compile(r"^[A-Z0-9]{1,3}$")


def size_tokens(soup: BeautifulSoup) -> list[str]:
    """Short uppercase tokens (S, M, XL, 42) from size-selector-like elements."""
    tokens: dict[str, None] = {}
    for element in soup.select(SIZE_SELECTORS):
        text = element.get_text(strip=True)
        if text and SIZE_TOKEN_RE.match(text):
            tokens.setdefault(text, None)
    return list(tokens)


def no_variants(soup: BeautifulSoup) -> list[str]:
    return []

"""
Sitemap parsing: candidate item URLs from a sitemap document.
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from typing import Iterable, List
from urllib.parse import urlparse

from .errors import SitemapError
from .fetcher import RetryingFetcher

logger = logging.getLogger(__name__)

# Item pages sit at least six slashes deep, e.g.
# https://host/dane-techniczne/<make>/<model>/<generation>/...
# anything shallower is a category listing.
DEFAULT_MIN_SLASHES = 6


def parse_sitemap(xml_text: str) -> List[str]:
    """Return every ``<loc>`` value in document order, whatever the namespace."""
    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise SitemapError(f"invalid sitemap XML: {exc}") from exc
    links = []
    for el in root.iter():
        if el.tag.rsplit("}", 1)[-1] == "loc" and el.text and el.text.strip():
            links.append(el.text.strip())
    return links


def is_well_formed(url: str) -> bool:
    parsed = urlparse(url)
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def filter_item_links(links: Iterable[str], min_slashes: int = DEFAULT_MIN_SLASHES) -> List[str]:
    """Drop malformed URLs and category pages (fewer than ``min_slashes`` slashes)."""
    kept = []
    for link in links:
        if not is_well_formed(link):
            logger.warning("Skipping malformed sitemap entry: %r", link)
            continue
        if link.count("/") < min_slashes:
            continue
        kept.append(link)
    return kept


def fetch_item_links(fetcher: RetryingFetcher, sitemap_url: str, min_slashes: int = DEFAULT_MIN_SLASHES) -> List[str]:
    body = fetcher.fetch(sitemap_url)
    links = parse_sitemap(body)
    items = filter_item_links(links, min_slashes)
    logger.info("Sitemap %s: %d links, %d item pages", sitemap_url, len(links), len(items))
    return items

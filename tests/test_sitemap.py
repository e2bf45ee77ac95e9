"""Tests for sitemap parsing and link filtering."""

import unittest

from harvester.errors import SitemapError
from harvester.sitemap import fetch_item_links, filter_item_links, parse_sitemap

SITEMAP = """<?xml version="1.0" encoding="UTF-8"?>
<urlset xmlns="http://www.sitemaps.org/schemas/sitemap/0.9">
  <url><loc>https://www.example.pl/dane-techniczne/</loc></url>
  <url><loc>https://www.example.pl/dane-techniczne/fiat/</loc></url>
  <url><loc>https://www.example.pl/dane-techniczne/fiat/panda/ii/</loc></url>
  <url><loc> https://www.example.pl/dane-techniczne/fiat/panda/ii/hatchback/ </loc></url>
</urlset>
"""


class StubFetcher:
    def __init__(self, body):
        self.body = body
        self.urls = []

    def fetch(self, url):
        self.urls.append(url)
        return self.body


class TestParseSitemap(unittest.TestCase):
    """Verify <loc> extraction."""

    def test_extracts_all_locs_ignoring_namespace(self):
        """Every <loc> is returned, stripped, in document order."""
        links = parse_sitemap(SITEMAP)
        self.assertEqual(len(links), 4)
        self.assertEqual(links[-1], "https://www.example.pl/dane-techniczne/fiat/panda/ii/hatchback/")

    def test_plain_sitemap_without_namespace(self):
        """Namespace-free documents work too."""
        self.assertEqual(parse_sitemap("<urlset><url><loc>https://a/b</loc></url></urlset>"), ["https://a/b"])

    def test_invalid_xml_raises(self):
        """Broken XML raises SitemapError."""
        with self.assertRaises(SitemapError):
            parse_sitemap("<urlset><url>")


class TestFilterItemLinks(unittest.TestCase):
    """Verify shallow and malformed links are dropped."""

    def test_drops_shallow_links(self):
        """Links with fewer than six slashes are category pages."""
        kept = filter_item_links(parse_sitemap(SITEMAP))
        self.assertEqual(
            kept,
            [
                "https://www.example.pl/dane-techniczne/fiat/panda/ii/",
                "https://www.example.pl/dane-techniczne/fiat/panda/ii/hatchback/",
            ],
        )

    def test_threshold_is_configurable(self):
        """A lower threshold keeps shallower links."""
        kept = filter_item_links(["https://a/b/c", "https://a/b"], min_slashes=4)
        self.assertEqual(kept, ["https://a/b/c"])

    def test_drops_malformed_links(self):
        """Entries without an http(s) scheme and host are skipped."""
        kept = filter_item_links(["ftp://a/b/c/d/e/f", "/a/b/c/d/e/f/g", "https://a/b/c/d/e/f"])
        self.assertEqual(kept, ["https://a/b/c/d/e/f"])


class TestFetchItemLinks(unittest.TestCase):
    """Verify the sitemap is fetched through the fetcher."""

    def test_fetches_and_filters(self):
        """The sitemap URL is fetched once and filtered."""
        fetcher = StubFetcher(SITEMAP)
        links = fetch_item_links(fetcher, "https://www.example.pl/sitemap.xml")
        self.assertEqual(fetcher.urls, ["https://www.example.pl/sitemap.xml"])
        self.assertEqual(len(links), 2)


if __name__ == "__main__":
    unittest.main()

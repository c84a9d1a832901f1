# tests/test_identity.py

"""Tests for product identity derivation."""

import hashlib
import unittest

from pricewatch.storage.identity import (
    canonical_url,
    product_id,
    product_url_parts,
)


class TestCanonicalUrl(unittest.TestCase):
    """Tests for URL canonicalisation."""

    def test_strips_query_and_fragment(self) -> None:
        """Tracking params and anchors are dropped."""
        raw = "https://item.example.co.jp/shop/item/?scid=af_pc&iasid=x#review"
        self.assertEqual(
            canonical_url(raw), "https://item.example.co.jp/shop/item/",
        )

    def test_plain_url_unchanged(self) -> None:
        url = "https://item.example.co.jp/shop/item/"
        self.assertEqual(canonical_url(url), url)


class TestProductId(unittest.TestCase):
    """Tests for the shop/item identity and its hashed fallback."""

    def test_shop_item_identity(self) -> None:
        """Product URLs map to <shop>_<item>."""
        self.assertEqual(
            product_id("https://item.example.co.jp/shop123/item456/"),
            "shop123_item456",
        )

    def test_query_does_not_change_identity(self) -> None:
        """The same product reached with tracking params is one identity."""
        plain = product_id("https://item.example.co.jp/shop123/item456/")
        tagged = product_id(
            "https://item.example.co.jp/shop123/item456/?s-id=top#reviews"
        )
        self.assertEqual(plain, tagged)

    def test_without_trailing_slash(self) -> None:
        self.assertEqual(
            product_id("https://item.example.co.jp/shop123/item456"),
            "shop123_item456",
        )

    def test_fallback_is_sha256_prefix(self) -> None:
        """Other addresses hash their canonical form."""
        url = "https://www.example.com/p/123"
        expected = hashlib.sha256(url.encode("utf-8")).hexdigest()[:16]
        self.assertEqual(product_id(url), expected)

    def test_fallback_is_deterministic(self) -> None:
        url = "https://www.example.com/p/123?ref=abc"
        self.assertEqual(product_id(url), product_id(url))
        self.assertEqual(
            product_id(url), product_id("https://www.example.com/p/123"),
        )

    def test_shop_only_path_falls_back(self) -> None:
        """A shop page without an item segment is not a shop/item id."""
        pid = product_id("https://item.example.co.jp/shop123/")
        self.assertEqual(len(pid), 16)
        self.assertNotIn("_", pid)

    def test_embedded_product_address_falls_back(self) -> None:
        """Only the host itself can make a shop/item identity."""
        url = "https://x.com/?u=item.foo.com/a/b"
        self.assertIsNone(product_url_parts(url))
        expected = hashlib.sha256(b"https://x.com/").hexdigest()[:16]
        self.assertEqual(product_id(url), expected)
        self.assertIsNone(product_url_parts("https://x.com/item.foo.com/a/b"))

    def test_distinct_products_distinct_ids(self) -> None:
        a = product_id("https://item.example.co.jp/shop/a/")
        b = product_id("https://item.example.co.jp/shop/b/")
        self.assertNotEqual(a, b)


if __name__ == "__main__":
    unittest.main()

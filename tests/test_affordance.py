# tests/test_affordance.py

"""Tests for the injected track control."""

import asyncio
import unittest
from unittest.mock import AsyncMock

from pricewatch.detector.affordance import (
    FAB_ID,
    INVALID_COLOR,
    VALID_COLOR,
    TrackingAffordance,
    TrackingState,
    format_price,
)
from pricewatch.models.product import ProductDraft
from pricewatch.pages.document import SoupDocument

URL = "https://item.example.co.jp/shop/item/"


def _valid_draft(title: str = "Wireless Earbuds") -> ProductDraft:
    return ProductDraft(URL, title=title, price=12345)


class TestFormatPrice(unittest.TestCase):

    def test_grouped_yen(self) -> None:
        self.assertEqual(format_price(12345), "¥12,345")

    def test_zero(self) -> None:
        self.assertEqual(format_price(0), "Price not detected")


class TestTrackingAffordance(unittest.IsolatedAsyncioTestCase):
    """TrackingAffordance behaviour."""

    def setUp(self) -> None:
        self.doc = SoupDocument("<p>page</p>", URL)
        self.on_track = AsyncMock(return_value=True)
        self.affordance = TrackingAffordance(
            self.doc, self.on_track, dismiss_delay=0.02,
        )

    async def asyncTearDown(self) -> None:
        self.affordance.cancel_dismiss()

    def _text(self, selector: str) -> str:
        element = self.doc.select_one(selector)
        assert element is not None
        return element.get_text()

    async def test_inject_valid(self) -> None:
        self.affordance.inject(_valid_draft())
        button = self.doc.select_one("[data-rpt-button]")
        assert button is not None
        self.assertEqual(button["data-has-valid-data"], "true")
        self.assertEqual(button["data-default-color"], VALID_COLOR)
        self.assertEqual(button["data-tracking-state"], "idle")
        self.assertEqual(self._text(".rpt-button-text"), "Track price")
        self.assertEqual(self._text(".rpt-product-price"), "¥12,345")
        self.assertFalse(self.affordance.status_visible)

    async def test_inject_twice_keeps_one(self) -> None:
        self.affordance.inject(_valid_draft())
        self.affordance.inject(_valid_draft("Second"))
        self.assertEqual(len(self.doc.select(f"#{FAB_ID}")), 1)
        self.assertEqual(self._text(".rpt-product-title"), "Second")

    async def test_long_title_preview(self) -> None:
        title = "A" * 45
        self.affordance.inject(_valid_draft(title))
        element = self.doc.select_one(".rpt-product-title")
        assert element is not None
        self.assertEqual(element.get_text(), "A" * 30 + "...")
        self.assertEqual(element["title"], title)

    async def test_inject_invalid(self) -> None:
        self.affordance.inject(ProductDraft(URL, title="", price=0))
        button = self.doc.select_one("[data-rpt-button]")
        assert button is not None
        self.assertEqual(button["data-has-valid-data"], "false")
        self.assertEqual(button["data-default-color"], INVALID_COLOR)
        self.assertEqual(self._text(".rpt-button-text"), "⚠️ Detection Issue")
        self.assertEqual(
            self._text(".rpt-product-title"), "Product not detected",
        )
        self.assertEqual(
            self._text(".rpt-product-price"), "Price not detected",
        )

    async def test_click_invalid_shows_error(self) -> None:
        self.affordance.inject(None)
        await self.affordance.click()
        self.on_track.assert_not_awaited()
        self.assertTrue(self.affordance.status_visible)
        self.assertEqual(
            self._text("[data-rpt-status]"),
            "Cannot track: Product data not detected",
        )

    async def test_click_valid_calls_handler(self) -> None:
        self.affordance.inject(_valid_draft())
        await self.affordance.click()
        self.on_track.assert_awaited_once()

    async def test_state_transitions(self) -> None:
        self.affordance.inject(_valid_draft())
        self.affordance.set_state(TrackingState.TRACKING)
        button = self.doc.select_one("[data-rpt-button]")
        assert button is not None
        self.assertEqual(button["data-tracking-state"], "tracking")
        self.assertEqual(self._text(".rpt-button-text"), "✓ Tracking")

        self.affordance.set_state(TrackingState.AUTO_TRACKED)
        self.assertEqual(button["data-tracking-state"], "auto-tracked")
        self.assertEqual(self._text(".rpt-button-text"), "⚡ Auto-tracked")

    async def test_no_return_to_idle(self) -> None:
        self.affordance.inject(_valid_draft())
        self.affordance.set_state(TrackingState.TRACKING)
        with self.assertRaises(ValueError):
            self.affordance.set_state(TrackingState.IDLE)
        self.assertEqual(self.affordance.state, TrackingState.TRACKING)

    async def test_status_auto_dismiss(self) -> None:
        self.affordance.inject(_valid_draft())
        self.affordance.show_status("Tracking started", "success")
        self.assertTrue(self.affordance.status_visible)
        await asyncio.sleep(0.1)
        self.assertFalse(self.affordance.status_visible)
        self.assertEqual(self._text("[data-rpt-status]"), "")

    async def test_cancel_dismiss_keeps_status(self) -> None:
        self.affordance.inject(_valid_draft())
        self.affordance.show_status("Auto-tracked!", "success")
        self.affordance.cancel_dismiss()
        await asyncio.sleep(0.05)
        self.assertTrue(self.affordance.status_visible)

    async def test_status_before_inject_is_noop(self) -> None:
        self.affordance.show_status("x", "error")
        self.assertFalse(self.affordance.status_visible)


if __name__ == "__main__":
    unittest.main()

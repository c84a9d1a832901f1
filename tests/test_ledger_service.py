# tests/test_ledger_service.py

"""Tests for the ledger's action-protocol front end."""

import json
import tempfile
import unittest
from pathlib import Path
from typing import Any

from pricewatch.services.channel import LocalChannel
from pricewatch.services.ledger_service import LedgerService
from pricewatch.storage.kv_store import SqliteKVStore
from pricewatch.storage.ledger import Ledger

URL = "https://item.example.co.jp/testshop/itemcode123/"
PID = "testshop_itemcode123"

DRAFT: dict[str, Any] = {
    "url": URL,
    "title": "ワイヤレスイヤホン",
    "price": 12345,
    "shopId": "testshop",
    "itemCode": "itemcode123",
    "availability": "available",
    "seller": "テストショップ",
    "timestamp": 0,
}


class TestLedgerService(unittest.IsolatedAsyncioTestCase):
    """Every action through LedgerService.handle."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.ledger = Ledger(SqliteKVStore(Path(self.tmp_dir) / "svc.db"))
        self.service = LedgerService(self.ledger)

    def tearDown(self) -> None:
        self.ledger.close()

    async def _track(self) -> dict[str, Any]:
        return await self.service.handle(
            {"action": "TRACK_PRODUCT", "data": DRAFT}
        )

    # ── Catalog actions ──────────────────────────────────

    async def test_track_product(self) -> None:
        response = await self._track()
        self.assertEqual(
            response, {"success": True, "data": {"id": PID, "isNew": True}},
        )
        again = await self._track()
        self.assertFalse(again["data"]["isNew"])

    async def test_track_without_url(self) -> None:
        response = await self.service.handle(
            {"action": "TRACK_PRODUCT", "data": {"title": "x"}}
        )
        self.assertFalse(response["success"])
        self.assertIn("url", response["error"])

    async def test_get_products(self) -> None:
        await self._track()
        response = await self.service.handle({"action": "GET_PRODUCTS"})
        self.assertTrue(response["success"])
        product = response["data"][PID]
        self.assertEqual(product["title"], "ワイヤレスイヤホン")
        self.assertEqual(product["shopId"], "testshop")
        self.assertEqual(product["alerts"]["type"], "both")

    async def test_get_products_empty(self) -> None:
        response = await self.service.handle({"action": "GET_PRODUCTS"})
        self.assertEqual(response, {"success": True, "data": {}})

    async def test_update_product(self) -> None:
        await self._track()
        response = await self.service.handle({
            "action": "UPDATE_PRODUCT",
            "productId": PID,
            "updates": {"alerts": {"enabled": True, "threshold": 0.2}},
        })
        self.assertTrue(response["success"])
        self.assertEqual(
            response["data"]["alerts"],
            {"enabled": True, "threshold": 0.2, "type": "both"},
        )

    async def test_update_unknown_product(self) -> None:
        response = await self.service.handle({
            "action": "UPDATE_PRODUCT",
            "productId": "ghost",
            "updates": {"title": "x"},
        })
        self.assertEqual(
            response, {"success": False, "error": "Product ghost not found"},
        )

    async def test_delete_product(self) -> None:
        await self._track()
        response = await self.service.handle(
            {"action": "DELETE_PRODUCT", "productId": PID}
        )
        self.assertEqual(response, {"success": True})
        self.assertIsNone(self.ledger.get_product(PID))

    async def test_delete_unknown_product(self) -> None:
        response = await self.service.handle(
            {"action": "DELETE_PRODUCT", "productId": "ghost"}
        )
        self.assertFalse(response["success"])
        self.assertEqual(response["error"], "Product ghost not found")

    # ── Price history actions ────────────────────────────

    async def test_price_history(self) -> None:
        await self._track()
        response = await self.service.handle(
            {"action": "GET_PRICE_HISTORY", "productId": PID}
        )
        self.assertTrue(response["success"])
        self.assertEqual(len(response["data"]), 1)
        self.assertEqual(response["data"][0]["price"], 12345)

    async def test_check_and_store_price(self) -> None:
        first = await self.service.handle({
            "action": "CHECK_AND_STORE_PRICE",
            "productId": PID,
            "price": 11000,
        })
        second = await self.service.handle({
            "action": "CHECK_AND_STORE_PRICE",
            "productId": PID,
            "price": 10000,
        })
        self.assertEqual(first, {"success": True, "priceAdded": True})
        self.assertEqual(second, {"success": True, "priceAdded": False})

    async def test_check_and_store_negative_price(self) -> None:
        response = await self.service.handle({
            "action": "CHECK_AND_STORE_PRICE",
            "productId": PID,
            "price": -1,
        })
        self.assertFalse(response["success"])

    async def test_price_summary(self) -> None:
        await self._track()
        response = await self.service.handle(
            {"action": "GET_PRICE_SUMMARY", "productId": PID}
        )
        self.assertEqual(response["data"]["latest"], 12345)
        self.assertEqual(response["data"]["count"], 1)

    async def test_price_summary_unknown(self) -> None:
        response = await self.service.handle(
            {"action": "GET_PRICE_SUMMARY", "productId": "ghost"}
        )
        self.assertEqual(response, {"success": True, "data": None})

    async def test_tracking_status(self) -> None:
        message = {"action": "GET_TRACKING_STATUS", "url": URL + "?x=1"}
        before = await self.service.handle(message)
        await self._track()
        after = await self.service.handle(message)
        self.assertEqual(before["data"], {"id": PID, "tracked": False})
        self.assertEqual(after["data"], {"id": PID, "tracked": True})

    # ── Export / import ──────────────────────────────────

    async def test_export_import(self) -> None:
        await self._track()
        exported = await self.service.handle({"action": "EXPORT_DATA"})
        self.assertTrue(exported["success"])
        envelope = exported["data"]
        self.assertEqual(
            set(envelope),
            {"version", "exportDate", "products", "priceHistory"},
        )

        other = LedgerService(
            Ledger(SqliteKVStore(Path(self.tmp_dir) / "other.db"))
        )
        try:
            imported = await other.handle(
                {"action": "IMPORT_DATA", "data": json.dumps(envelope)}
            )
            self.assertEqual(imported, {"success": True, "count": 1})
            self.assertIsNotNone(other.ledger.get_product(PID))
        finally:
            other.ledger.close()

    async def test_import_invalid(self) -> None:
        response = await self.service.handle(
            {"action": "IMPORT_DATA", "data": {"products": "nope"}}
        )
        self.assertEqual(
            response, {"success": False, "error": "Invalid import format"},
        )

    # ── Errors ───────────────────────────────────────────

    async def test_unknown_action(self) -> None:
        response = await self.service.handle({"action": "SHOW_BADGE"})
        self.assertEqual(
            response, {"success": False, "error": "Unknown action"},
        )

    async def test_missing_field(self) -> None:
        response = await self.service.handle({"action": "GET_PRICE_HISTORY"})
        self.assertEqual(
            response,
            {
                "success": False,
                "error": "GET_PRICE_HISTORY requires 'productId'",
            },
        )


class TestLocalChannel(unittest.IsolatedAsyncioTestCase):
    """Channel isolation between sender and service."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.ledger = Ledger(SqliteKVStore(Path(self.tmp_dir) / "ch.db"))
        self.channel = LocalChannel(LedgerService(self.ledger))

    def tearDown(self) -> None:
        self.ledger.close()

    async def test_message_is_copied(self) -> None:
        data = dict(DRAFT)
        message = {"action": "TRACK_PRODUCT", "data": data}
        response = await self.channel.send(message)
        self.assertTrue(response["success"])
        data["title"] = "mutated after send"
        record = self.ledger.get_product(PID)
        assert record is not None
        self.assertEqual(record.title, "ワイヤレスイヤホン")


if __name__ == "__main__":
    unittest.main()

# pricewatch/services/ledger_service.py

"""Action-protocol front end of the ledger."""

import asyncio
import logging
from typing import Any

from pricewatch.models.product import ProductDraft
from pricewatch.services.protocol import (
    CheckAndStorePrice,
    DeleteProduct,
    ExportData,
    GetPriceHistory,
    GetPriceSummary,
    GetProducts,
    GetTrackingStatus,
    ImportData,
    Request,
    TrackProduct,
    UnknownActionError,
    UpdateProduct,
    error,
    ok,
    parse_request,
)
from pricewatch.storage.ledger import Ledger

logger = logging.getLogger("pricewatch.service")


class LedgerService:
    """Turns protocol messages into ledger calls.

    No exception escapes :meth:`handle`: every failure becomes
    ``{"success": False, "error": <message>}``.
    """

    def __init__(self, ledger: Ledger | None = None) -> None:
        self.ledger = ledger or Ledger()

    async def handle(self, message: dict[str, Any]) -> dict[str, Any]:
        """Answer one request message."""
        action = message.get("action") if isinstance(message, dict) else None
        logger.debug("Received %s", action)
        try:
            request = parse_request(message)
            response = await asyncio.to_thread(self.dispatch, request)
        except UnknownActionError:
            logger.warning("Unknown action %r", action)
            return error("Unknown action")
        except Exception as exc:
            logger.error(
                "Failed to handle %s: %s", action, exc, exc_info=True,
            )
            return error(str(exc) or type(exc).__name__)
        logger.debug("Answered %s (success=%s)", action, response["success"])
        return response

    def dispatch(self, request: Request) -> dict[str, Any]:
        """Run one typed request against the ledger (blocking)."""
        ledger = self.ledger
        match request:
            case TrackProduct(data=data):
                result = ledger.add_product(ProductDraft.from_dict(data))
                return ok(result.to_dict())
            case GetProducts():
                products = ledger.get_all_products()
                return ok({
                    pid: record.to_dict()
                    for pid, record in products.items()
                })
            case UpdateProduct(product_id=pid, updates=updates):
                return ok(ledger.update_product(pid, updates).to_dict())
            case DeleteProduct(product_id=pid):
                ledger.delete_product(pid)
                return ok()
            case GetPriceHistory(product_id=pid):
                return ok([
                    point.to_dict()
                    for point in ledger.get_price_history(pid)
                ])
            case ExportData():
                return ok(ledger.export_data())
            case ImportData(payload=payload):
                return ledger.import_data(payload).to_dict()
            case CheckAndStorePrice(product_id=pid, price=price):
                added = ledger.add_price_point_if_new(pid, price)
                return ok(priceAdded=added)
            case GetPriceSummary(product_id=pid):
                return {
                    "success": True,
                    "data": ledger.get_price_summary(pid),
                }
            case GetTrackingStatus(url=url):
                pid = ledger.generate_product_id(url)
                return ok({"id": pid, "tracked": ledger.is_tracked(url)})
        raise UnknownActionError(type(request).__name__)

# pricewatch/services/protocol.py

"""Typed requests of the detector ↔ ledger action protocol.

On the wire every request is a dict with an ``action`` tag plus its
payload keys, and every response is ``{"success": bool, ...}``.  Inside
the process each action is a frozen dataclass so the dispatcher can
``match`` on the closed set of request types.
"""

from dataclasses import dataclass
from typing import Any


class UnknownActionError(ValueError):
    """The ``action`` tag names no known request."""

    def __init__(self, action: object) -> None:
        super().__init__("Unknown action")
        self.action = action


@dataclass(frozen=True)
class TrackProduct:
    data: dict[str, Any]


@dataclass(frozen=True)
class GetProducts:
    pass


@dataclass(frozen=True)
class UpdateProduct:
    product_id: str
    updates: dict[str, Any]


@dataclass(frozen=True)
class DeleteProduct:
    product_id: str


@dataclass(frozen=True)
class GetPriceHistory:
    product_id: str


@dataclass(frozen=True)
class ExportData:
    pass


@dataclass(frozen=True)
class ImportData:
    payload: str | dict[str, Any]


@dataclass(frozen=True)
class CheckAndStorePrice:
    product_id: str
    price: int


@dataclass(frozen=True)
class GetPriceSummary:
    product_id: str


@dataclass(frozen=True)
class GetTrackingStatus:
    url: str


Request = (
    TrackProduct
    | GetProducts
    | UpdateProduct
    | DeleteProduct
    | GetPriceHistory
    | ExportData
    | ImportData
    | CheckAndStorePrice
    | GetPriceSummary
    | GetTrackingStatus
)


def _required(message: dict[str, Any], key: str) -> Any:
    value = message.get(key)
    if value is None:
        msg = f"{message.get('action')} requires '{key}'"
        raise ValueError(msg)
    return value


def parse_request(message: dict[str, Any]) -> Request:
    """Turn a wire message into its typed request.

    Raises :class:`UnknownActionError` for an unrecognised tag and
    ``ValueError`` when a required field is missing.
    """
    action = message.get("action")
    match action:
        case "TRACK_PRODUCT":
            return TrackProduct(data=_required(message, "data"))
        case "GET_PRODUCTS":
            return GetProducts()
        case "UPDATE_PRODUCT":
            return UpdateProduct(
                product_id=_required(message, "productId"),
                updates=message.get("updates") or {},
            )
        case "DELETE_PRODUCT":
            return DeleteProduct(product_id=_required(message, "productId"))
        case "GET_PRICE_HISTORY":
            return GetPriceHistory(
                product_id=_required(message, "productId"),
            )
        case "EXPORT_DATA":
            return ExportData()
        case "IMPORT_DATA":
            return ImportData(payload=_required(message, "data"))
        case "CHECK_AND_STORE_PRICE":
            return CheckAndStorePrice(
                product_id=_required(message, "productId"),
                price=_required(message, "price"),
            )
        case "GET_PRICE_SUMMARY":
            return GetPriceSummary(
                product_id=_required(message, "productId"),
            )
        case "GET_TRACKING_STATUS":
            return GetTrackingStatus(url=_required(message, "url"))
        case _:
            raise UnknownActionError(action)


def to_message(request: Request) -> dict[str, Any]:
    """Serialise a typed request back into its wire form."""
    match request:
        case TrackProduct(data=data):
            return {"action": "TRACK_PRODUCT", "data": data}
        case GetProducts():
            return {"action": "GET_PRODUCTS"}
        case UpdateProduct(product_id=pid, updates=updates):
            return {
                "action": "UPDATE_PRODUCT",
                "productId": pid,
                "updates": updates,
            }
        case DeleteProduct(product_id=pid):
            return {"action": "DELETE_PRODUCT", "productId": pid}
        case GetPriceHistory(product_id=pid):
            return {"action": "GET_PRICE_HISTORY", "productId": pid}
        case ExportData():
            return {"action": "EXPORT_DATA"}
        case ImportData(payload=payload):
            return {"action": "IMPORT_DATA", "data": payload}
        case CheckAndStorePrice(product_id=pid, price=price):
            return {
                "action": "CHECK_AND_STORE_PRICE",
                "productId": pid,
                "price": price,
            }
        case GetPriceSummary(product_id=pid):
            return {"action": "GET_PRICE_SUMMARY", "productId": pid}
        case GetTrackingStatus(url=url):
            return {"action": "GET_TRACKING_STATUS", "url": url}
    raise TypeError(f"Not a protocol request: {request!r}")


def ok(data: Any = None, **extra: Any) -> dict[str, Any]:
    """Build a success response."""
    response: dict[str, Any] = {"success": True}
    if data is not None:
        response["data"] = data
    response.update(extra)
    return response


def error(message: str) -> dict[str, Any]:
    """Build a failure response."""
    return {"success": False, "error": message}

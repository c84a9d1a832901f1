# pricewatch/models/product.py

"""Product data models shared by the detector and the ledger."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from pricewatch.config.settings import Settings
from pricewatch.models.price_point import PricePoint


class Availability(str, Enum):
    """Closed set of stock states a product page can report."""

    AVAILABLE = "available"
    OUT_OF_STOCK = "out_of_stock"
    BACKORDER = "backorder"
    UNKNOWN = "unknown"


class AlertType(str, Enum):
    """Which price movements an alert would fire on."""

    BOTH = "both"
    INCREASE = "increase"
    DECREASE = "decrease"


def _coerce_price(value: Any) -> int:
    """Return *value* as a non-negative int or raise ``ValueError``."""
    if isinstance(value, bool):
        msg = f"price must be a non-negative integer, got {value!r}"
        raise ValueError(msg)
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if not isinstance(value, int) or value < 0:
        msg = f"price must be a non-negative integer, got {value!r}"
        raise ValueError(msg)
    return value


@dataclass
class AlertConfig:
    """Persisted alert settings (stored, never evaluated here)."""

    enabled: bool = False
    threshold: float = Settings.DEFAULT_ALERT_THRESHOLD
    type: AlertType = AlertType.BOTH

    def __post_init__(self) -> None:
        self.type = AlertType(self.type)
        if not 0 < self.threshold <= 1:
            msg = (
                "alert threshold must be in (0, 1], "
                f"got {self.threshold!r}"
            )
            raise ValueError(msg)

    def to_dict(self) -> dict[str, Any]:
        return {
            "enabled": self.enabled,
            "threshold": self.threshold,
            "type": self.type.value,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any] | None) -> "AlertConfig":
        if not data:
            return cls()
        return cls(
            enabled=bool(data.get("enabled", False)),
            threshold=float(
                data.get("threshold", Settings.DEFAULT_ALERT_THRESHOLD)
            ),
            type=AlertType(
                data.get("type", Settings.DEFAULT_ALERT_TYPE)
            ),
        )


@dataclass
class ProductDraft:
    """Fields extracted from a product page, before the ledger owns them.

    Missing fields carry typed defaults instead of failing the whole
    extraction: empty strings, a zero price and ``unknown`` stock.
    """

    url: str
    title: str = ""
    price: int = 0
    shop_id: str = ""
    item_code: str = ""
    availability: Availability = Availability.UNKNOWN
    seller: str | None = None
    timestamp: int = 0

    @property
    def is_trackable(self) -> bool:
        """A draft is worth submitting only with a title and a price."""
        return bool(self.title) and self.price > 0

    def to_dict(self) -> dict[str, Any]:
        """Serialise using the wire field names of the action protocol."""
        data: dict[str, Any] = {
            "url": self.url,
            "title": self.title,
            "price": self.price,
            "shopId": self.shop_id,
            "itemCode": self.item_code,
            "availability": self.availability.value,
            "timestamp": self.timestamp,
        }
        if self.seller:
            data["seller"] = self.seller
        return data

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductDraft":
        """Parse a wire-format draft; ``url`` is the only required key."""
        if not data.get("url"):
            msg = "product data must include a url"
            raise ValueError(msg)
        return cls(
            url=str(data["url"]),
            title=str(data.get("title") or ""),
            price=_coerce_price(data.get("price") or 0),
            shop_id=str(data.get("shopId") or ""),
            item_code=str(data.get("itemCode") or ""),
            availability=Availability(
                data.get("availability") or Availability.UNKNOWN
            ),
            seller=data.get("seller") or None,
            timestamp=int(data.get("timestamp") or 0),
        )


@dataclass
class ProductRecord:
    """A tracked product as persisted by the ledger."""

    id: str
    url: str
    title: str
    price: int
    shop_id: str = ""
    item_code: str = ""
    availability: Availability = Availability.UNKNOWN
    seller: str | None = None
    created_at: int = 0
    updated_at: int = 0
    alerts: AlertConfig = field(default_factory=AlertConfig)
    latest_price_point: PricePoint | None = None

    def __post_init__(self) -> None:
        self.price = _coerce_price(self.price)
        self.availability = Availability(self.availability)

    @classmethod
    def from_draft(
        cls, product_id: str, draft: ProductDraft, now: int,
    ) -> "ProductRecord":
        """Create a fresh record stamped with *now*."""
        return cls(
            id=product_id,
            url=draft.url,
            title=draft.title,
            price=draft.price,
            shop_id=draft.shop_id,
            item_code=draft.item_code,
            availability=draft.availability,
            seller=draft.seller,
            created_at=now,
            updated_at=now,
            alerts=AlertConfig(),
            latest_price_point=PricePoint(draft.price, now),
        )

    def to_dict(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "url": self.url,
            "title": self.title,
            "price": self.price,
            "shopId": self.shop_id,
            "itemCode": self.item_code,
            "availability": self.availability.value,
            "seller": self.seller,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
            "alerts": self.alerts.to_dict(),
            "latestPricePoint": (
                self.latest_price_point.to_dict()
                if self.latest_price_point
                else None
            ),
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "ProductRecord":
        """Parse a persisted record, tolerating absent optional keys."""
        latest = data.get("latestPricePoint")
        return cls(
            id=str(data["id"]),
            url=str(data.get("url", "")),
            title=str(data.get("title", "")),
            price=data.get("price", 0),
            shop_id=str(data.get("shopId") or ""),
            item_code=str(data.get("itemCode") or ""),
            availability=Availability(
                data.get("availability") or Availability.UNKNOWN
            ),
            seller=data.get("seller") or None,
            created_at=int(data.get("createdAt") or 0),
            updated_at=int(data.get("updatedAt") or 0),
            alerts=AlertConfig.from_dict(data.get("alerts")),
            latest_price_point=(
                PricePoint.from_dict(latest) if latest else None
            ),
        )

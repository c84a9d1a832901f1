# pricewatch/models/price_point.py

"""Single price observation for a tracked product."""

from dataclasses import dataclass
from typing import Any


@dataclass(frozen=True)
class PricePoint:
    """A price (smallest currency unit) observed at an epoch-ms instant."""

    price: int
    timestamp: int

    def __post_init__(self) -> None:
        if isinstance(self.price, bool) or not isinstance(self.price, int):
            msg = f"price must be an integer, got {self.price!r}"
            raise ValueError(msg)
        if self.price < 0:
            msg = f"price must be non-negative, got {self.price}"
            raise ValueError(msg)

    def to_dict(self) -> dict[str, int]:
        """Serialise to the persisted ``{price, timestamp}`` shape."""
        return {"price": self.price, "timestamp": self.timestamp}

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "PricePoint":
        """Build a point from its persisted dict form."""
        return cls(
            price=int(data["price"]),
            timestamp=int(data["timestamp"]),
        )

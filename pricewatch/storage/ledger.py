# pricewatch/storage/ledger.py

"""Product catalog and daily price-history ledger."""

import json
import logging
import threading
import time
from collections.abc import Callable
from dataclasses import dataclass
from datetime import datetime, timezone
from datetime import time as dt_time
from typing import Any

from pricewatch.config.settings import Settings
from pricewatch.models.price_point import PricePoint
from pricewatch.models.product import ProductDraft, ProductRecord
from pricewatch.storage.identity import product_id
from pricewatch.storage.kv_store import SqliteKVStore
from pricewatch.storage.record_cache import RecordCache

logger = logging.getLogger("pricewatch.ledger")

MS_PER_DAY = 24 * 60 * 60 * 1000


def now_ms() -> int:
    """Current wall-clock time in epoch milliseconds."""
    return int(time.time() * 1000)


def local_day_bounds(timestamp_ms: int) -> tuple[int, int]:
    """Return the first and last millisecond of the local calendar day."""
    day = datetime.fromtimestamp(timestamp_ms / 1000).date()
    start = datetime.combine(day, dt_time.min).timestamp()
    end = datetime.combine(day, dt_time.max).timestamp()
    return int(start * 1000), int(end * 1000)


class ProductNotFoundError(LookupError):
    """Raised when an update or delete names an untracked identity."""

    def __init__(self, product_id: str) -> None:
        super().__init__(f"Product {product_id} not found")
        self.product_id = product_id


@dataclass
class AddProductResult:
    """Outcome of an upsert: the identity and whether it was created."""

    id: str
    is_new: bool

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "isNew": self.is_new}


@dataclass
class ImportResult:
    """Outcome of a bulk import; failures carry a message, not a raise."""

    success: bool
    count: int | None = None
    error: str | None = None

    def to_dict(self) -> dict[str, Any]:
        data: dict[str, Any] = {"success": self.success}
        if self.count is not None:
            data["count"] = self.count
        if self.error is not None:
            data["error"] = self.error
        return data


class Ledger:
    """Sole owner of tracked products and their price histories.

    Every mutation is a read-modify-write of a whole namespace in the
    backing store.  Operations on one ``Ledger`` instance are serialised
    by an instance lock; separate instances sharing a database are not
    coordinated and the last writer wins.
    """

    def __init__(
        self,
        store: SqliteKVStore | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.settings = Settings()
        self._store = store or SqliteKVStore()
        self._clock = clock or now_ms
        self._lock = threading.RLock()
        self.cache = RecordCache()

    def close(self) -> None:
        """Close the underlying store."""
        self._store.close()

    # ── Raw namespace access ─────────────────────────────

    def _load_products(self) -> dict[str, dict[str, Any]]:
        key = self.settings.PRODUCTS_KEY
        products: dict[str, dict[str, Any]] = (
            self._store.get(key).get(key) or {}
        )
        return products

    def _load_history(self) -> dict[str, list[dict[str, Any]]]:
        key = self.settings.HISTORY_KEY
        history: dict[str, list[dict[str, Any]]] = (
            self._store.get(key).get(key) or {}
        )
        return history

    @staticmethod
    def _parse_record(
        pid: str, raw: dict[str, Any],
    ) -> ProductRecord:
        return ProductRecord.from_dict({"id": pid, **raw})

    @staticmethod
    def generate_product_id(url: str) -> str:
        """Derive the ledger identity for a product URL."""
        return product_id(url)

    # ── Catalog ──────────────────────────────────────────

    def add_product(self, draft: ProductDraft) -> AddProductResult:
        """Create a record for *draft* unless its identity is tracked.

        A new record gets creation/update stamps of now and default alert
        settings.  The draft's price becomes today's history point unless
        one was already recorded for this identity.
        """
        with self._lock:
            products = self._load_products()
            pid = self.generate_product_id(draft.url)
            if pid in products:
                logger.debug("Product %s already tracked", pid)
                return AddProductResult(id=pid, is_new=False)

            now = self._clock()
            record = ProductRecord.from_draft(pid, draft, now)
            products[pid] = record.to_dict()
            history = self._load_history()
            series = history.get(pid, [])
            start, end = local_day_bounds(now)
            if not any(start <= p["timestamp"] <= end for p in series):
                series = self._append_point(
                    series, PricePoint(draft.price, now), pid,
                )
            history[pid] = series
            self._store.set({
                self.settings.PRODUCTS_KEY: products,
                self.settings.HISTORY_KEY: history,
            })
            self.cache.invalidate(pid)

        logger.info(
            "Tracking new product %s (%s) at %d",
            pid,
            draft.title[:50],
            draft.price,
        )
        return AddProductResult(id=pid, is_new=True)

    def get_all_products(self) -> dict[str, ProductRecord]:
        """Return every tracked product keyed by identity."""
        with self._lock:
            records = {
                pid: self._parse_record(pid, raw)
                for pid, raw in self._load_products().items()
            }
            for record in records.values():
                self.cache.store(record)
        return records

    def get_product(self, pid: str) -> ProductRecord | None:
        """Return one product, reading through the record cache."""
        with self._lock:
            cached = self.cache.get(pid)
            if cached is not None:
                return cached
            raw = self._load_products().get(pid)
            if raw is None:
                return None
            record = self._parse_record(pid, raw)
            self.cache.store(record)
        return record

    def is_tracked(self, url: str) -> bool:
        """Return True when the product behind *url* is in the catalog."""
        return self.get_product(self.generate_product_id(url)) is not None

    def update_product(
        self, pid: str, updates: dict[str, Any],
    ) -> ProductRecord:
        """Merge *updates* over a stored record and refresh ``updatedAt``.

        ``id`` and ``createdAt`` are never overwritten; an ``alerts``
        mapping is merged key by key.  Raises
        :class:`ProductNotFoundError` for an unknown identity and
        ``ValueError`` when the merged record breaks an invariant.
        """
        with self._lock:
            products = self._load_products()
            if pid not in products:
                raise ProductNotFoundError(pid)

            existing = products[pid]
            merged: dict[str, Any] = {**existing, **updates}
            if isinstance(updates.get("alerts"), dict):
                merged["alerts"] = {
                    **(existing.get("alerts") or {}),
                    **updates["alerts"],
                }
            merged["id"] = pid
            merged["createdAt"] = existing.get("createdAt", 0)
            merged["updatedAt"] = self._clock()

            record = self._parse_record(pid, merged)
            products[pid] = record.to_dict()
            self._store.set({self.settings.PRODUCTS_KEY: products})
            self.cache.invalidate(pid)

        logger.info(
            "Updated product %s (fields: %s)", pid, sorted(updates),
        )
        return record

    def delete_product(self, pid: str) -> None:
        """Remove a record, its price history and its cache entry."""
        with self._lock:
            products = self._load_products()
            if pid not in products:
                raise ProductNotFoundError(pid)

            history = self._load_history()
            del products[pid]
            history.pop(pid, None)
            self._store.set({
                self.settings.PRODUCTS_KEY: products,
                self.settings.HISTORY_KEY: history,
            })
            self.cache.invalidate(pid)

        logger.info("Deleted product %s and its price history", pid)

    # ── Price history ────────────────────────────────────

    def get_price_history(self, pid: str) -> list[PricePoint]:
        """Return the stored price points for *pid*, oldest first."""
        with self._lock:
            raw_points = self._load_history().get(pid, [])
        return [PricePoint.from_dict(p) for p in raw_points]

    def add_price_point(self, pid: str, price: int) -> PricePoint:
        """Append a point stamped now and prune points past retention.

        When *pid* is tracked, its record's price, latest point and
        update stamp follow the new observation.
        """
        with self._lock:
            now = self._clock()
            point = PricePoint(price, now)

            history = self._load_history()
            history[pid] = self._append_point(
                history.get(pid, []), point, pid,
            )
            items: dict[str, Any] = {self.settings.HISTORY_KEY: history}

            products = self._load_products()
            if pid in products:
                products[pid] = {
                    **products[pid],
                    "price": price,
                    "latestPricePoint": point.to_dict(),
                    "updatedAt": now,
                }
                items[self.settings.PRODUCTS_KEY] = products

            self._store.set(items)
            self.cache.invalidate(pid)

        logger.debug("Recorded price %d for %s at %d", price, pid, now)
        return point

    def _append_point(
        self,
        series: list[dict[str, Any]],
        point: PricePoint,
        pid: str,
    ) -> list[dict[str, Any]]:
        """Return *series* plus *point*, minus points past retention."""
        cutoff = (
            point.timestamp
            - self.settings.PRICE_RETENTION_DAYS * MS_PER_DAY
        )
        appended = [*series, point.to_dict()]
        kept = [p for p in appended if p["timestamp"] > cutoff]
        pruned = len(appended) - len(kept)
        if pruned:
            logger.debug(
                "Pruned %d expired price points for %s", pruned, pid,
            )
        return kept

    def has_todays_price(self, pid: str) -> bool:
        """Return True if a stored point falls on today's local date."""
        start, end = local_day_bounds(self._clock())
        return any(
            start <= p.timestamp <= end
            for p in self.get_price_history(pid)
        )

    def add_price_point_if_new(self, pid: str, price: int) -> bool:
        """Append *price* unless today already has a point.

        Returns True when a point was added.
        """
        with self._lock:
            if self.has_todays_price(pid):
                logger.debug(
                    "Price for %s already recorded today", pid,
                )
                return False
            self.add_price_point(pid, price)
            return True

    def get_price_summary(self, pid: str) -> dict[str, Any] | None:
        """Compute min / max / avg / latest price for a product."""
        history = self.get_price_history(pid)
        if not history:
            return None
        prices = [p.price for p in history]
        return {
            "min": min(prices),
            "max": max(prices),
            "avg": round(sum(prices) / len(prices), 2),
            "count": len(prices),
            "latest": prices[-1],
        }

    # ── Export / import ──────────────────────────────────

    def export_data(self) -> dict[str, Any]:
        """Snapshot the full catalog and history in a versioned envelope."""
        exported_at = datetime.fromtimestamp(
            self._clock() / 1000, tz=timezone.utc,
        )
        with self._lock:
            products = self._load_products()
            history = self._load_history()
        logger.info("Exported %d products", len(products))
        return {
            "version": self.settings.EXPORT_FORMAT_VERSION,
            "exportDate": exported_at.isoformat(
                timespec="milliseconds"
            ).replace("+00:00", "Z"),
            "products": products,
            "priceHistory": history,
        }

    def import_data(self, payload: str | dict[str, Any]) -> ImportResult:
        """Replace the catalog and history with an exported envelope.

        Malformed input is reported through the result and leaves the
        stored state untouched.
        """
        if isinstance(payload, (str, bytes)):
            try:
                data = json.loads(payload)
            except json.JSONDecodeError as exc:
                logger.warning("Import payload is not JSON: %s", exc)
                return ImportResult(
                    success=False, error=f"Invalid JSON: {exc.msg}",
                )
        else:
            data = payload

        if (
            not isinstance(data, dict)
            or not isinstance(data.get("products"), dict)
            or not data.get("version")
            or not isinstance(data.get("priceHistory", {}), dict)
        ):
            logger.warning("Rejected import with invalid envelope")
            return ImportResult(
                success=False, error="Invalid import format",
            )

        # Every record and point must survive the same parsing reads use
        try:
            products = {
                pid: self._parse_record(pid, raw).to_dict()
                for pid, raw in data["products"].items()
            }
            history: dict[str, list[dict[str, int]]] = {}
            for pid, points in (data.get("priceHistory") or {}).items():
                if not isinstance(points, list):
                    msg = f"price history for {pid} is not a list"
                    raise TypeError(msg)
                history[pid] = [PricePoint.from_dict(p).to_dict() for p in points]
        except (ValueError, KeyError, TypeError) as exc:
            logger.warning("Rejected import with invalid entry: %s", exc)
            return ImportResult(
                success=False, error=f"Invalid import format: {exc}",
            )

        with self._lock:
            self._store.set({
                self.settings.PRODUCTS_KEY: products,
                self.settings.HISTORY_KEY: history,
            })
            self.cache.clear()

        logger.info(
            "Imported %d products (format %s)",
            len(products),
            data["version"],
        )
        return ImportResult(success=True, count=len(products))

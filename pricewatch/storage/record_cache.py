# pricewatch/storage/record_cache.py

"""Per-ledger read-through cache of product records."""

import logging

from pricewatch.models.product import ProductRecord

logger = logging.getLogger("pricewatch.cache")


class RecordCache:
    """In-memory map of identity → record owned by one ledger instance.

    Entries are filled on read and dropped on update or delete, never on
    read.  The store stays authoritative; a miss always falls through to
    it.
    """

    def __init__(self) -> None:
        self._entries: dict[str, ProductRecord] = {}

    def __contains__(self, product_id: object) -> bool:
        return product_id in self._entries

    def __len__(self) -> int:
        return len(self._entries)

    def get(self, product_id: str) -> ProductRecord | None:
        """Return the cached record or ``None`` on miss."""
        record = self._entries.get(product_id)
        if record is not None:
            logger.debug("Cache hit for %s", product_id)
        return record

    def store(self, record: ProductRecord) -> None:
        """Remember *record* under its identity."""
        self._entries[record.id] = record

    def invalidate(self, product_id: str) -> None:
        """Forget one identity, if cached."""
        if self._entries.pop(product_id, None) is not None:
            logger.debug("Invalidated cache entry %s", product_id)

    def clear(self) -> int:
        """Purge all cached entries.

        Returns the number of entries that were removed.
        """
        count = len(self._entries)
        self._entries.clear()
        if count:
            logger.info("Record cache purged (%d entries removed)", count)
        return count

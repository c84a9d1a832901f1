# pricewatch/detector/extractor.py

"""Field extraction for classified product pages."""

import logging
import re
import time
from collections.abc import Callable
from typing import Any

from pricewatch.detector.selectors import element_text, load_selectors
from pricewatch.models.product import Availability, ProductDraft
from pricewatch.pages.document import DocumentQuery

logger = logging.getLogger("pricewatch.extractor")

# First digit run, thousands separators allowed ("¥12,345", "1,234円")
_PRICE_RE = re.compile(r"\d[\d,]*")

_SHOP_ITEM_PATH_RE = re.compile(r"^/([^/]+)/([^/]+)(?:/|$)")


def parse_price(text: str | None) -> int | None:
    """Parse the first digit run of *text* as an integer price."""
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if not match:
        return None
    return int(match.group(0).replace(",", ""))


class FieldExtractor:
    """Extract each product field independently from a document.

    A field that cannot be located yields ``None`` here and a typed
    default in :meth:`extract_product_data`; one missing field never
    aborts the others.
    """

    def __init__(
        self,
        document: DocumentQuery,
        selectors: dict[str, Any] | None = None,
        clock: Callable[[], int] | None = None,
    ) -> None:
        self.document = document
        self.selectors = selectors or load_selectors()
        self._clock = clock or (lambda: int(time.time() * 1000))

    def _first_text(self, selectors: list[str]) -> str | None:
        for selector in selectors:
            element = self.document.select_one(selector)
            if element is None:
                continue
            text = element_text(element)
            if text:
                logger.debug(
                    "Matched %r: %s", selector, text[:50],
                )
                return text
        return None

    def get_product_title(self) -> str | None:
        title = self._first_text(self.selectors["title"])
        if title is None:
            logger.info("No product title found on %s", self.document.url)
        return title

    def get_product_price(self) -> int | None:
        """Return the first price found across the price selectors.

        The wrapping price containers hold secondary text; for those the
        nested number element is preferred over the outer text.
        """
        nested: list[str] = self.selectors["price_nested"]
        nested_child: str = self.selectors["price_nested_child"]
        for selector in self.selectors["price"]:
            element = self.document.select_one(selector)
            if element is None:
                continue
            text = element.get_text()
            if selector in nested:
                number = element.select_one(nested_child)
                if number is not None:
                    text = number.get_text()
            price = parse_price(text)
            if price is not None:
                logger.debug("Price %d via %r", price, selector)
                return price
        logger.warning("No price found on %s", self.document.url)
        return None

    def get_availability(self) -> Availability:
        """Walk the availability signals from strongest to weakest."""
        rules: dict[str, Any] = self.selectors["availability"]
        phrases: dict[str, list[str]] = self.selectors[
            "availability_phrases"
        ]
        doc = self.document

        if (
            doc.select_one(rules["add_to_cart_enabled"]) is not None
            and doc.select_one(rules["checkout_enabled"]) is not None
        ):
            logger.debug("Enabled purchase controls: available")
            return Availability.AVAILABLE

        delivery = doc.select_one(rules["delivery_estimate"])
        if delivery is not None and rules["delivery_phrase"] in delivery.get_text():
            logger.debug("Delivery estimate present: available")
            return Availability.AVAILABLE

        quantity = doc.select_one(rules["quantity_input"])
        if quantity is not None and not quantity.has_attr("disabled"):
            logger.debug("Enabled quantity input: available")
            return Availability.AVAILABLE

        ordered = (
            (Availability.OUT_OF_STOCK, phrases["out_of_stock"]),
            (Availability.BACKORDER, phrases["backorder"]),
            (Availability.AVAILABLE, phrases["available"]),
        )
        for selector in rules["status"]:
            for element in doc.select(selector):
                text = element.get_text().lower()
                for state, patterns in ordered:
                    if any(p in text for p in patterns):
                        logger.debug(
                            "Status text %r in %s: %s",
                            text[:50],
                            selector,
                            state.value,
                        )
                        return state

        if (
            doc.select_one(rules["add_to_cart_disabled"]) is not None
            or doc.select_one(rules["checkout_disabled"]) is not None
        ):
            logger.debug("Disabled purchase controls: out_of_stock")
            return Availability.OUT_OF_STOCK

        return Availability.UNKNOWN

    def _path_segments(self) -> tuple[str, str] | None:
        match = _SHOP_ITEM_PATH_RE.match(self.document.pathname)
        if not match:
            return None
        return match.group(1), match.group(2)

    def extract_shop_id(self) -> str | None:
        segments = self._path_segments()
        return segments[0] if segments else None

    def extract_item_code(self) -> str | None:
        segments = self._path_segments()
        return segments[1] if segments else None

    def get_seller(self) -> str | None:
        """Seller display name, falling back to the shop id in the path."""
        seller = self._first_text(self.selectors["seller"])
        if seller:
            return seller
        return self.extract_shop_id()

    def extract_product_data(self) -> ProductDraft:
        """Build a draft, substituting defaults for every missing field."""
        draft = ProductDraft(
            url=self.document.url,
            title=self.get_product_title() or "",
            price=self.get_product_price() or 0,
            shop_id=self.extract_shop_id() or "",
            item_code=self.extract_item_code() or "",
            availability=self.get_availability(),
            seller=self.get_seller(),
            timestamp=self._clock(),
        )
        logger.info(
            "Extracted %s: title=%r price=%d availability=%s",
            draft.url,
            draft.title[:50],
            draft.price,
            draft.availability.value,
        )
        return draft

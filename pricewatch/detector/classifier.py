# pricewatch/detector/classifier.py

"""Decide whether a document is a trackable product page."""

import logging
from typing import Any

from pricewatch.detector.selectors import element_text, load_selectors
from pricewatch.pages.document import DocumentQuery
from pricewatch.storage.identity import product_url_parts

logger = logging.getLogger("pricewatch.classifier")


class PageClassifier:
    """Pure predicate over the page address and its title elements.

    The address must have the ``<host>/<shop>/<item>`` shape AND one of
    the title selectors must match an element carrying text.  Neither
    signal alone is enough: other pages share the address shape, and
    generic headings exist everywhere.
    """

    def __init__(
        self,
        document: DocumentQuery,
        selectors: dict[str, Any] | None = None,
    ) -> None:
        self.document = document
        catalog = selectors or load_selectors()
        self.title_selectors: list[str] = catalog["classification"]

    def url_matches(self) -> bool:
        return product_url_parts(self.document.url) is not None

    def has_product_element(self) -> bool:
        for selector in self.title_selectors:
            for element in self.document.select(selector):
                if element_text(element):
                    return True
        return False

    def is_product_page(self) -> bool:
        url_ok = self.url_matches()
        element_ok = url_ok and self.has_product_element()
        logger.debug(
            "Classified %s: url_match=%s product_element=%s",
            self.document.url,
            url_ok,
            element_ok,
        )
        return element_ok

# pricewatch/detector/product_detector.py

"""Page-side tracker: classify, extract, show the control, report."""

import asyncio
import logging
from dataclasses import dataclass
from typing import Any

from pricewatch.config.settings import Settings, TrackerPreferences
from pricewatch.detector.affordance import TrackingAffordance, TrackingState
from pricewatch.detector.classifier import PageClassifier
from pricewatch.detector.escalation import detect_product_page
from pricewatch.detector.extractor import FieldExtractor
from pricewatch.detector.selectors import load_selectors
from pricewatch.models.product import ProductDraft
from pricewatch.pages.document import SoupDocument
from pricewatch.services.channel import MessageChannel
from pricewatch.services.protocol import (
    CheckAndStorePrice,
    TrackProduct,
    to_message,
)
from pricewatch.storage.identity import product_id

logger = logging.getLogger("pricewatch.detector")


@dataclass
class DetectionResult:
    """What one visit to a page produced."""

    url: str
    is_product: bool = False
    draft: ProductDraft | None = None
    product_id: str | None = None
    tracked: bool = False
    price_added: bool = False


class ProductDetector:
    """Runs inside one page for the lifetime of that page.

    Tearing the document down cancels a detection still in progress.
    """

    def __init__(
        self,
        document: SoupDocument,
        channel: MessageChannel,
        preferences: TrackerPreferences | None = None,
        selectors: dict[str, Any] | None = None,
    ) -> None:
        self.settings = Settings()
        self.document = document
        self.channel = channel
        self.preferences = preferences or TrackerPreferences.from_env()
        catalog = selectors or load_selectors()
        self.classifier = PageClassifier(document, catalog)
        self.extractor = FieldExtractor(document, catalog)
        self.affordance = TrackingAffordance(
            document,
            self.track_product,
            self.settings.STATUS_DISMISS_DELAY,
        )
        self.product_data: ProductDraft | None = None
        self._task: asyncio.Task[DetectionResult] | None = None
        document.on_teardown(self.cancel)

    # ── Detection ────────────────────────────────────────

    def is_product_page(self) -> bool:
        return self.classifier.is_product_page()

    async def detect(self) -> bool:
        """Classify the page, waiting for late-rendered markup."""
        return await detect_product_page(
            self.is_product_page,
            self.document,
            attempts=self.settings.DETECTION_RETRY_ATTEMPTS,
            delay=self.settings.DETECTION_RETRY_DELAY,
            timeout=self.settings.MUTATION_WAIT_TIMEOUT,
        )

    def extract_product_data(self) -> ProductDraft:
        self.product_data = self.extractor.extract_product_data()
        return self.product_data

    # ── Lifecycle ────────────────────────────────────────

    def start(self) -> "asyncio.Task[DetectionResult]":
        """Schedule :meth:`run` as a task owned by this page."""
        self._task = asyncio.create_task(self.run())
        return self._task

    def cancel(self) -> None:
        """Abort detection and pending timers (page navigated away)."""
        if self._task is not None and not self._task.done():
            logger.info("Cancelling detection for %s", self.document.url)
            self._task.cancel()
        self.affordance.cancel_dismiss()

    async def run(self) -> DetectionResult:
        """Full page visit: detect, extract, inject, auto-track, record."""
        prefs = self.preferences
        result = DetectionResult(url=self.document.url)
        if not prefs.tracking_enabled and not prefs.debug_mode:
            logger.info("Tracking disabled, ignoring %s", result.url)
            return result

        result.is_product = await self.detect()
        if not result.is_product and not prefs.debug_mode:
            return result

        draft = self.extract_product_data()
        result.draft = draft
        result.product_id = product_id(draft.url)
        self.affordance.inject(draft)

        if prefs.debug_mode:
            logger.info("Debug mode: extraction only for %s", result.url)
            return result
        if not draft.is_trackable:
            logger.warning(
                "Incomplete product data on %s, nothing submitted",
                result.url,
            )
            return result

        if prefs.auto_track:
            result.tracked = await self.auto_track_product()
        result.price_added = await self.check_and_store_todays_price()
        return result

    # ── Ledger requests ──────────────────────────────────

    async def _send(self, message: dict[str, Any]) -> dict[str, Any] | None:
        """Send one request; None when it failed or timed out."""
        try:
            return await asyncio.wait_for(
                self.channel.send(message),
                self.settings.MESSAGE_TIMEOUT,
            )
        except asyncio.TimeoutError:
            logger.warning(
                "No response to %s within %.1fs",
                message["action"],
                self.settings.MESSAGE_TIMEOUT,
            )
        except Exception as exc:
            logger.error(
                "Failed to send %s: %s",
                message["action"],
                exc,
                exc_info=True,
            )
        return None

    async def _submit(self, state: TrackingState) -> bool:
        if self.product_data is None:
            return False
        response = await self._send(
            to_message(TrackProduct(data=self.product_data.to_dict()))
        )
        if response and response.get("success"):
            return True
        if response is not None:
            logger.warning(
                "Ledger refused %s: %s",
                state.value,
                response.get("error"),
            )
        return False

    async def track_product(self) -> bool:
        """Manual path, bound to the control's click."""
        if self.product_data is None:
            return False
        if await self._submit(TrackingState.TRACKING):
            self.affordance.set_state(TrackingState.TRACKING)
            self.affordance.show_status("Tracking started", "success")
            return True
        self.affordance.show_status("An error occurred", "error")
        return False

    async def auto_track_product(self) -> bool:
        if self.product_data is None:
            return False
        if await self._submit(TrackingState.AUTO_TRACKED):
            logger.info(
                "Auto-tracked %s", self.product_data.title[:50],
            )
            self.affordance.set_state(TrackingState.AUTO_TRACKED)
            self.affordance.show_status("Auto-tracked!", "success")
            return True
        self.affordance.show_status("Auto-track failed", "error")
        return False

    async def check_and_store_todays_price(self) -> bool:
        """Ask the ledger to record today's price if it has none yet."""
        if self.product_data is None:
            return False
        response = await self._send(to_message(CheckAndStorePrice(
            product_id=product_id(self.product_data.url),
            price=self.product_data.price,
        )))
        if response and response.get("success") and response.get("priceAdded"):
            logger.info(
                "Today's price stored for %s", self.product_data.title[:50],
            )
            return True
        return False

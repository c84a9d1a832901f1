# pricewatch/detector/affordance.py

"""Floating track control injected into a detected product page."""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from enum import Enum

from bs4 import Tag

from pricewatch.config.settings import Settings
from pricewatch.models.product import ProductDraft
from pricewatch.pages.document import SoupDocument

logger = logging.getLogger("pricewatch.affordance")

FAB_ID = "price-tracker-fab"

VALID_COLOR = "#3b82f6"
INVALID_COLOR = "#ef4444"

_STATUS_COLORS = {
    "success": ("#f0fdf4", "#166534"),
    "error": ("#fef2f2", "#dc2626"),
}
_STATUS_IDLE_COLORS = ("white", "#374151")

_TITLE_PREVIEW_CHARS = 30


class TrackingState(str, Enum):
    """Visual state of the track control."""

    IDLE = "idle"
    TRACKING = "tracking"
    AUTO_TRACKED = "auto-tracked"


_STATE_LOOK = {
    TrackingState.TRACKING: ("#10b981", "✓ Tracking"),
    TrackingState.AUTO_TRACKED: ("#8b5cf6", "⚡ Auto-tracked"),
}


def _css(**props: str) -> str:
    return "; ".join(
        f"{name.replace('_', '-')}: {value}" for name, value in props.items()
    )


def format_price(price: int) -> str:
    return f"¥{price:,}" if price else "Price not detected"


class TrackingAffordance:
    """The page's single track button plus its transient status line.

    ``idle`` moves to ``tracking`` after a manual click or to
    ``auto-tracked`` after automatic submission; nothing moves back to
    ``idle``.
    """

    def __init__(
        self,
        document: SoupDocument,
        on_track: Callable[[], Awaitable[object]],
        dismiss_delay: float | None = None,
    ) -> None:
        self.document = document
        self._on_track = on_track
        self._dismiss_delay = (
            Settings.STATUS_DISMISS_DELAY
            if dismiss_delay is None
            else dismiss_delay
        )
        self._dismiss_handle: asyncio.TimerHandle | None = None
        self.state = TrackingState.IDLE
        self.has_valid_data = False
        self.button: Tag | None = None
        self.status: Tag | None = None

    def inject(self, draft: ProductDraft | None) -> Tag:
        """Insert the control, replacing one injected earlier."""
        if self.document.remove(f"#{FAB_ID}"):
            logger.debug("Replaced previously injected track control")
        self.cancel_dismiss()
        self.state = TrackingState.IDLE
        self.has_valid_data = bool(draft and draft.is_trackable)

        color = VALID_COLOR if self.has_valid_data else INVALID_COLOR
        label = "Track price" if self.has_valid_data else "⚠️ Detection Issue"
        title = (draft.title if draft else "") or "Product not detected"
        preview = (
            title[:_TITLE_PREVIEW_CHARS] + "..."
            if len(title) > _TITLE_PREVIEW_CHARS
            else title
        )

        doc = self.document
        container = doc.new_tag("div", id=FAB_ID)
        container["style"] = _css(
            position="fixed", bottom="10px", left="20px", z_index="999999",
        )

        button = doc.new_tag("button")
        button["data-rpt-button"] = "track"
        button["data-tracking-state"] = TrackingState.IDLE.value
        button["data-has-valid-data"] = str(self.has_valid_data).lower()
        button["data-default-color"] = color
        button["style"] = _css(background=color, color="white")

        for css_class, text in (
            ("rpt-button-text", label),
            ("rpt-product-title", preview),
            ("rpt-product-price", format_price(draft.price if draft else 0)),
        ):
            part = doc.new_tag("div")
            part["class"] = css_class
            part.string = text
            if css_class == "rpt-product-title":
                part["title"] = title
            button.append(part)

        status = doc.new_tag("div")
        status["class"] = "rpt-status-indicator"
        status["data-rpt-status"] = "indicator"
        status["style"] = _css(
            background=_STATUS_IDLE_COLORS[0],
            color=_STATUS_IDLE_COLORS[1],
            display="none",
        )

        container.append(button)
        container.append(status)
        doc.append_element(container)
        self.button = button
        self.status = status
        logger.debug(
            "Injected track control (valid=%s)", self.has_valid_data,
        )
        return container

    async def click(self) -> None:
        """Submit the product, or explain why it cannot be tracked."""
        if not self.has_valid_data:
            self.show_status(
                "Cannot track: Product data not detected", "error",
            )
            return
        await self._on_track()

    def set_state(self, state: TrackingState) -> None:
        """Move to ``tracking`` or ``auto-tracked``."""
        if state is TrackingState.IDLE:
            msg = "The track control cannot return to idle"
            raise ValueError(msg)
        self.state = state
        if self.button is None:
            return
        color, label = _STATE_LOOK[state]
        self.button["data-tracking-state"] = state.value
        self.button["class"] = "tracking"
        self.button["style"] = _css(background=color, color="white")
        text = self.button.select_one(".rpt-button-text")
        if text is not None:
            text.string = label

    def show_status(self, message: str, kind: str) -> None:
        """Show *message* on the status line, hiding it after a delay."""
        if self.status is None:
            return
        background, color = _STATUS_COLORS[kind]
        self.status.string = message
        self.status["style"] = _css(
            background=background, color=color, display="block",
        )
        self.cancel_dismiss()
        loop = asyncio.get_running_loop()
        self._dismiss_handle = loop.call_later(
            self._dismiss_delay, self.hide_status,
        )

    def hide_status(self) -> None:
        self._dismiss_handle = None
        if self.status is None:
            return
        self.status.string = ""
        self.status["style"] = _css(
            background=_STATUS_IDLE_COLORS[0],
            color=_STATUS_IDLE_COLORS[1],
            display="none",
        )

    def cancel_dismiss(self) -> None:
        if self._dismiss_handle is not None:
            self._dismiss_handle.cancel()
            self._dismiss_handle = None

    @property
    def status_visible(self) -> bool:
        return self.status is not None and "display: block" in str(
            self.status.get("style", "")
        )

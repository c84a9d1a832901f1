# pricewatch/detector/selectors.py

"""Selector catalog loading and element text helpers."""

import json
from pathlib import Path
from typing import Any

from bs4 import Tag

from pricewatch.config.settings import Settings


def load_selectors(path: Path | None = None) -> dict[str, Any]:
    """Load the CSS selector catalog from selectors.json."""
    with open(path or Settings.SELECTORS_PATH, encoding="utf-8") as f:
        selectors: dict[str, Any] = json.load(f)
    return selectors


def element_text(element: Tag) -> str:
    """Stripped text of an element; ``<meta>`` tags yield their content."""
    if element.name == "meta":
        content = element.get("content")
        return content.strip() if isinstance(content, str) else ""
    return element.get_text().strip()

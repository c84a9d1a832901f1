# pricewatch/storage/identity.py

"""Deterministic product identities derived from product page URLs."""

import hashlib
import re
from urllib.parse import urlparse, urlunparse

from pricewatch.config.settings import Settings

# Anchored at the scheme so a product address inside a path or query
# string of another site never counts
_PRODUCT_URL_RE = re.compile(
    r"^[a-z][a-z0-9+.-]*://"
    + Settings.PRODUCT_HOST_PATTERN
    + r"/([^/?#]+)/([^/?#]+)",
    re.IGNORECASE,
)

_FALLBACK_ID_LENGTH = 16


def canonical_url(raw_url: str) -> str:
    """Drop the query string and fragment to get a stable product URL."""
    parsed = urlparse(raw_url)
    return urlunparse((
        parsed.scheme,
        parsed.netloc,
        parsed.path,
        parsed.params,
        "",
        "",
    ))


def product_url_parts(url: str) -> tuple[str, str] | None:
    """Return ``(shop, item)`` for a product page address, else None."""
    match = _PRODUCT_URL_RE.match(canonical_url(url))
    if not match:
        return None
    return match.group(1), match.group(2)


def product_id(url: str) -> str:
    """Return the ledger key for a product URL.

    ``https://item.<host>/<shop>/<item>/`` maps to ``<shop>_<item>``.
    Any other address maps to the first 16 hex characters of the SHA-256
    of its canonical form.
    """
    parts = product_url_parts(url)
    if parts:
        return f"{parts[0]}_{parts[1]}"
    digest = hashlib.sha256(canonical_url(url).encode("utf-8")).hexdigest()
    return digest[:_FALLBACK_ID_LENGTH]

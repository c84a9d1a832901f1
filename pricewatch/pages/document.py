# pricewatch/pages/document.py

"""Queryable, observable product page documents."""

import logging
from collections.abc import Callable
from dataclasses import dataclass
from typing import Protocol
from urllib.parse import urlparse

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger("pricewatch.document")


@dataclass(frozen=True)
class MutationRecord:
    """One structural change to the document tree."""

    type: str  # "childList" or "characterData"
    target: Tag


MutationCallback = Callable[[list[MutationRecord]], None]


class DocumentQuery(Protocol):
    """The narrow slice of a page the detector is allowed to touch."""

    @property
    def url(self) -> str: ...

    @property
    def pathname(self) -> str: ...

    def select_one(self, selector: str) -> Tag | None: ...

    def select(self, selector: str) -> list[Tag]: ...

    def observe(
        self,
        callback: MutationCallback,
        *,
        child_list: bool = True,
        character_data: bool = True,
        subtree: bool = True,
    ) -> Callable[[], None]: ...


@dataclass
class _Observer:
    callback: MutationCallback
    child_list: bool
    character_data: bool
    subtree: bool


class SoupDocument:
    """A page held as a BeautifulSoup tree that reports its own changes.

    Changes made through :meth:`append_html`, :meth:`append_element`,
    :meth:`set_text` and :meth:`remove` are delivered to observers the
    way a browser delivers body mutations.  :meth:`teardown` plays the
    part of navigating away from the page.
    """

    def __init__(self, html: str, url: str) -> None:
        self.soup = BeautifulSoup(html, "lxml")
        if self.soup.body is None:
            body = self.soup.new_tag("body")
            (self.soup.html or self.soup).append(body)
        self._url = url
        self._observers: list[_Observer] = []
        self._teardown_callbacks: list[Callable[[], None]] = []
        self.closed = False

    # ── DocumentQuery ────────────────────────────────────

    @property
    def url(self) -> str:
        return self._url

    @property
    def pathname(self) -> str:
        return urlparse(self._url).path

    @property
    def body(self) -> Tag:
        body = self.soup.body
        assert body is not None
        return body

    def select_one(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def select(self, selector: str) -> list[Tag]:
        return list(self.soup.select(selector))

    def observe(
        self,
        callback: MutationCallback,
        *,
        child_list: bool = True,
        character_data: bool = True,
        subtree: bool = True,
    ) -> Callable[[], None]:
        """Subscribe to body mutations; returns the unsubscribe function."""
        observer = _Observer(callback, child_list, character_data, subtree)
        self._observers.append(observer)

        def unsubscribe() -> None:
            if observer in self._observers:
                self._observers.remove(observer)

        return unsubscribe

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    # ── Mutations ────────────────────────────────────────

    def append_html(
        self, html: str, parent_selector: str = "body",
    ) -> list[Tag]:
        """Parse *html* and append its elements under the parent."""
        parent = self._require(parent_selector)
        fragment = BeautifulSoup(html, "html.parser")
        nodes = list(fragment.contents)
        for node in nodes:
            parent.append(node)
        self._notify(MutationRecord("childList", parent))
        return [n for n in nodes if isinstance(n, Tag)]

    def append_element(self, element: Tag, parent: Tag | None = None) -> None:
        """Append an already-built element (see :meth:`new_tag`)."""
        target = parent if parent is not None else self.body
        target.append(element)
        self._notify(MutationRecord("childList", target))

    def new_tag(self, name: str, **attrs: str) -> Tag:
        return self.soup.new_tag(name, attrs=attrs)

    def set_text(self, selector: str, text: str) -> None:
        """Replace the text content of the first match of *selector*."""
        element = self._require(selector)
        element.string = text
        self._notify(MutationRecord("characterData", element))

    def remove(self, selector: str) -> bool:
        """Remove the first match of *selector*; False if absent."""
        element = self.select_one(selector)
        if element is None:
            return False
        parent = element.parent
        element.decompose()
        if isinstance(parent, Tag):
            self._notify(MutationRecord("childList", parent))
        return True

    # ── Lifecycle ────────────────────────────────────────

    def on_teardown(self, callback: Callable[[], None]) -> None:
        """Run *callback* when the page is torn down."""
        self._teardown_callbacks.append(callback)

    def teardown(self) -> None:
        """Signal navigation away from the page."""
        if self.closed:
            return
        self.closed = True
        logger.debug("Tearing down document %s", self._url)
        for callback in list(self._teardown_callbacks):
            callback()
        self._teardown_callbacks.clear()

    def _require(self, selector: str) -> Tag:
        element = self.select_one(selector)
        if element is None:
            msg = f"No element matches {selector!r}"
            raise LookupError(msg)
        return element

    def _notify(self, record: MutationRecord) -> None:
        body = self.soup.body
        in_body = record.target is body or any(
            parent is body for parent in record.target.parents
        )
        if not in_body:
            return
        for observer in list(self._observers):
            if record.type == "childList" and not observer.child_list:
                continue
            if (
                record.type == "characterData"
                and not observer.character_data
            ):
                continue
            if not observer.subtree and record.target is not body:
                continue
            observer.callback([record])

# src/due_lens/dom/document.py

from __future__ import annotations

"""
A live HTML document with mutation observation.

LiveDocument wraps a parsed soup and plays the part of the host page: every mutation the
"host" performs goes through insert()/set_attribute()/remove_attribute(), which queue
MutationRecords. Records are delivered in batches to observers whose root contains the
mutated node:
- inside a running event loop, delivery is scheduled with loop.call_soon (one batch per
  loop turn, like a microtask checkpoint),
- without a loop, call deliver() explicitly.

Edits made directly on the soup (as the reconciler does for its markers) are not observed.
"""

import asyncio
import logging
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from enum import StrEnum

from bs4 import BeautifulSoup, PageElement, Tag

logger = logging.getLogger(__name__)


class MutationKind(StrEnum):
    CHILD_LIST = "childList"
    ATTRIBUTES = "attributes"


@dataclass(frozen=True, slots=True)
class MutationRecord:
    kind: MutationKind
    target: Tag
    added_nodes: tuple[PageElement, ...] = ()
    attribute_name: str | None = None


MutationCallback = Callable[[Sequence[MutationRecord]], None]


def contains(root: Tag, node: PageElement) -> bool:
    """Identity-based subtree test (Tag.__eq__ compares markup, not identity)."""
    if node is root:
        return True
    return any(parent is root for parent in node.parents)


@dataclass(slots=True, eq=False)
class _Registration:
    document: LiveDocument
    root: Tag
    callback: MutationCallback
    attribute_filter: frozenset[str] | None
    active: bool = True

    def wants(self, record: MutationRecord) -> bool:
        if not contains(self.root, record.target):
            return False
        if record.kind == MutationKind.ATTRIBUTES and self.attribute_filter is not None:
            return record.attribute_name in self.attribute_filter
        return True

    def disconnect(self) -> None:
        if not self.active:
            return
        self.active = False
        self.document._unregister(self)


class LiveDocument:
    def __init__(self, soup: BeautifulSoup) -> None:
        self.soup = soup
        self._observers: list[_Registration] = []
        self._pending: list[MutationRecord] = []
        self._delivery_scheduled = False

    @classmethod
    def from_html(cls, html: str, *, parser: str = "html.parser") -> LiveDocument:
        return cls(soup=BeautifulSoup(html, parser))

    @property
    def body(self) -> Tag:
        return self.soup.body or self.soup

    def select(self, selector: str) -> list[Tag]:
        return list(self.soup.select(selector))

    def select_one(self, selector: str) -> Tag | None:
        return self.soup.select_one(selector)

    def render(self) -> str:
        return str(self.soup)

    # ---- observation ----

    def observe(
            self,
            root: Tag,
            callback: MutationCallback,
            *,
            attribute_filter: Sequence[str] | None = None,
    ) -> _Registration:
        reg = _Registration(
            document=self,
            root=root,
            callback=callback,
            attribute_filter=None if attribute_filter is None else frozenset(attribute_filter),
        )
        self._observers.append(reg)
        return reg

    def _unregister(self, reg: _Registration) -> None:
        self._observers = [r for r in self._observers if r is not reg]

    @property
    def observer_count(self) -> int:
        return len(self._observers)

    @property
    def pending(self) -> int:
        return len(self._pending)

    def _queue(self, record: MutationRecord) -> None:
        self._pending.append(record)
        if self._delivery_scheduled:
            return
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            return
        self._delivery_scheduled = True
        loop.call_soon(self.deliver)

    def deliver(self) -> int:
        """Flush queued records to observers. Returns how many records were flushed."""
        batch, self._pending = self._pending, []
        self._delivery_scheduled = False
        if not batch:
            return 0

        for reg in list(self._observers):
            if not reg.active:
                continue
            records = [r for r in batch if reg.wants(r)]
            if not records:
                continue
            try:
                reg.callback(records)
            except Exception:
                # An observer failure must not break the page or other observers.
                logger.exception("Mutation observer callback failed")
        return len(batch)

    # ---- host-side mutations ----

    def insert(self, parent: Tag, content: str | Tag, *, position: int | None = None) -> list[PageElement]:
        """Insert markup (or an existing node) under parent and record a childList mutation."""
        if isinstance(content, str):
            fragment = BeautifulSoup(content, "html.parser")
            nodes: list[PageElement] = list(fragment.contents)
        else:
            nodes = [content]

        at = len(parent.contents) if position is None else position
        for offset, node in enumerate(nodes):
            parent.insert(at + offset, node)

        self._queue(MutationRecord(MutationKind.CHILD_LIST, parent, added_nodes=tuple(nodes)))
        return nodes

    def set_attribute(self, element: Tag, name: str, value: str) -> None:
        element[name] = value
        self._queue(MutationRecord(MutationKind.ATTRIBUTES, element, attribute_name=name))

    def remove_attribute(self, element: Tag, name: str) -> None:
        if name in element.attrs:
            del element[name]
        self._queue(MutationRecord(MutationKind.ATTRIBUTES, element, attribute_name=name))

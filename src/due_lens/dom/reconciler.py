# src/due_lens/dom/reconciler.py

from __future__ import annotations

"""
DOM reconciliation.

Matches rendered calendar elements to fetched task records and hangs a small
"days until due" marker on each match. Nothing here raises for odd markup: an element
that cannot be identified or matched is simply left alone.

Markup conventions of the host calendar:
- task elements carry data-event-id="task|<id>"
- the visible name sits in a ".overflow-hidden.text-ellipsis" span
- split tasks show a fraction in a <sup> (e.g. 1/2) and may not carry their own id
- ".fc-event-main" is the content container the marker goes into
"""

import logging
from collections.abc import Callable, Iterator, Sequence
from dataclasses import dataclass
from datetime import UTC, datetime

from bs4 import BeautifulSoup, Tag

from ..core.models import TaskRecord
from .badges import DueBadge, badge_for

logger = logging.getLogger(__name__)

TASK_ATTR = "data-event-id"
TASK_ID_PREFIX = "task"
TASK_SELECTOR = f'[{TASK_ATTR}^="{TASK_ID_PREFIX}|"]'
NAME_SELECTOR = ".overflow-hidden.text-ellipsis"
SPLIT_MARKER_SELECTOR = "sup"
CONTENT_SELECTOR = ".fc-event-main"
MARKER_ATTR = "data-days-until-due"

MARKER_STYLE = (
    "position: absolute; right: 6px; bottom: 3px; "
    "background: rgba(0, 0, 0, 0.04); color: {color}; "
    "padding: 2px 6px; border-radius: 3px; font-size: 11px; font-weight: 600; "
    "z-index: 1000; line-height: 13px; pointer-events: none; "
    "backdrop-filter: blur(2px); white-space: nowrap;"
)


@dataclass(frozen=True, slots=True)
class TaskIdentity:
    explicit_id: str | None
    display_name: str
    is_split: bool

    @property
    def is_empty(self) -> bool:
        return not self.explicit_id and not self.display_name


def is_task_element(node: object) -> bool:
    if not isinstance(node, Tag):
        return False
    raw = node.get(TASK_ATTR)
    return isinstance(raw, str) and raw.startswith(f"{TASK_ID_PREFIX}|")


def iter_task_elements(root: Tag) -> Iterator[Tag]:
    """root itself (when it is a task element) followed by every task element below it."""
    if is_task_element(root):
        yield root
    yield from root.select(TASK_SELECTOR)


def _set_style_property(tag: Tag, prop: str, value: str) -> None:
    """Set one declaration in the inline style, keeping the others."""
    decls: list[tuple[str, str]] = []
    raw = tag.get("style")
    for part in str(raw or "").split(";"):
        name, sep, val = part.partition(":")
        name = name.strip()
        if not sep or not name or name.lower() == prop:
            continue
        decls.append((name, val.strip()))
    decls.append((prop, value))
    tag["style"] = "; ".join(f"{n}: {v}" for n, v in decls) + ";"


def _new_tag(anchor: Tag, name: str) -> Tag:
    soup = next((p for p in anchor.parents if isinstance(p, BeautifulSoup)), None)
    if soup is None:
        # Detached element: any soup can mint the tag, append() re-parents it.
        soup = BeautifulSoup("", "html.parser")
    return soup.new_tag(name)


class DomReconciler:
    """
    extract -> match -> annotate for single elements and whole subtrees.

    `clock` returns the aware "now" used for due-day arithmetic.
    """

    def __init__(self, *, clock: Callable[[], datetime] | None = None) -> None:
        self._clock = clock or (lambda: datetime.now(UTC))

    @staticmethod
    def extract_identity(element: Tag) -> TaskIdentity:
        raw = element.get(TASK_ATTR)
        explicit_id: str | None = None
        if isinstance(raw, str):
            parts = raw.split("|")
            if len(parts) > 1 and parts[0] == TASK_ID_PREFIX and parts[1].strip():
                explicit_id = parts[1]

        name_el = element.select_one(NAME_SELECTOR)
        display_name = name_el.get_text().strip() if name_el is not None else ""

        is_split = element.select_one(SPLIT_MARKER_SELECTOR) is not None

        return TaskIdentity(explicit_id=explicit_id, display_name=display_name, is_split=is_split)

    @staticmethod
    def match(identity: TaskIdentity, records: Sequence[TaskRecord]) -> TaskRecord | None:
        if identity.explicit_id:
            for rec in records:
                if rec.id == identity.explicit_id:
                    logger.debug("Found direct match: %s", rec.id)
                    return rec

        # Split fragments share a name but not an id; ordinary elements never match by name.
        if identity.is_split and identity.display_name:
            wanted = identity.display_name.lower()
            for rec in records:
                if rec.name.lower() == wanted:
                    logger.debug("Found split task match by name: %s", rec.id)
                    return rec

        logger.debug("No match found for task: %s", identity)
        return None

    @staticmethod
    def clear_annotation(element: Tag) -> int:
        stale = element.select(f"[{MARKER_ATTR}]")
        for marker in stale:
            marker.decompose()
        return len(stale)

    def annotate(self, element: Tag, record: TaskRecord) -> DueBadge | None:
        """
        Replace the element's marker with one for `record`.

        Returns the badge that was attached, or None when the record has no due date
        (the element is then left without a marker).
        """
        self.clear_annotation(element)
        if record.due_date is None:
            return None

        badge = badge_for(record.due_date, self._clock())

        container = element.select_one(CONTENT_SELECTOR) or element
        marker = _new_tag(element, "div")
        marker[MARKER_ATTR] = "true"
        marker["style"] = MARKER_STYLE.format(color=badge.color.value)
        marker.string = badge.label

        _set_style_property(container, "position", "relative")
        container.append(marker)
        return badge

    def reconcile(self, element: Tag, records: Sequence[TaskRecord]) -> TaskRecord | None:
        """
        Bring one element's marker in line with its current identity.

        Returns the matched record (even when it has no due date) or None.
        """
        identity = self.extract_identity(element)
        if identity.is_empty:
            self.clear_annotation(element)
            return None

        record = self.match(identity, records)
        if record is None or record.due_date is None:
            # Identity may have changed since the last pass; drop an outdated marker.
            self.clear_annotation(element)
            return record

        self.annotate(element, record)
        return record

    def reconcile_all(self, root: Tag, records: Sequence[TaskRecord]) -> int:
        """Full pass over the subtree. Returns how many elements ended up annotated."""
        seen = 0
        annotated = 0
        for element in iter_task_elements(root):
            seen += 1
            rec = self.reconcile(element, records)
            if rec is not None and rec.due_date is not None:
                annotated += 1
        logger.info("Reconciled %d task elements, annotated %d", seen, annotated)
        return annotated

# tests/test_observer.py

from __future__ import annotations

import asyncio
from datetime import timedelta

import pytest

from due_lens.core.models import TaskRecord
from due_lens.dom.document import LiveDocument, MutationKind, MutationRecord
from due_lens.dom.observer import LoopState, ObservationLoop
from due_lens.dom.reconciler import MARKER_ATTR, DomReconciler

from .conftest import NOW

PAGE = """
<html><body>
  <div id="sidebar"></div>
  <div id="cal">
    <div id="existing" data-event-id="task|t1"><span class="overflow-hidden text-ellipsis">One</span></div>
  </div>
</body></html>
"""

RECORDS = [
    TaskRecord("t1", "One", NOW + timedelta(days=1)),
    TaskRecord("t2", "Two", NOW + timedelta(days=10)),
    TaskRecord("t3", "Three", NOW - timedelta(days=2)),
]


def _labels(doc: LiveDocument) -> list[str]:
    return [m.get_text() for m in doc.select(f"[{MARKER_ATTR}]")]


@pytest.fixture()
def doc() -> LiveDocument:
    return LiveDocument.from_html(PAGE)


@pytest.fixture()
def watching(doc: LiveDocument, reconciler: DomReconciler) -> ObservationLoop:
    obs = ObservationLoop(doc, reconciler)
    obs.start(doc.select_one("#cal"), RECORDS)
    return obs


def test_inserted_task_element_is_annotated(doc: LiveDocument, watching: ObservationLoop) -> None:
    cal = doc.select_one("#cal")
    doc.insert(cal, '<div data-event-id="task|t2"><span class="overflow-hidden text-ellipsis">Two</span></div>')

    assert _labels(doc) == []
    assert doc.deliver() == 1
    assert _labels(doc) == ["10d"]


def test_task_elements_inside_inserted_subtree_are_annotated(doc: LiveDocument, watching: ObservationLoop) -> None:
    cal = doc.select_one("#cal")
    doc.insert(
        cal,
        '<section><div data-event-id="task|t2"></div>'
        '<div><div data-event-id="task|t3"></div></div>'
        '<div data-event-id="note|t1"></div></section>'
        "plain text",
    )
    doc.deliver()

    assert _labels(doc) == ["10d", "Overdue"]


def test_attribute_change_reannotates_with_current_identity(doc: LiveDocument, watching: ObservationLoop) -> None:
    existing = doc.select_one("#existing")
    doc.set_attribute(existing, "data-event-id", "task|t3")
    doc.deliver()
    assert _labels(doc) == ["Overdue"]

    doc.set_attribute(existing, "data-event-id", "task|t2")
    doc.set_attribute(existing, "data-event-id", "task|t2")
    doc.deliver()
    assert _labels(doc) == ["10d"]


def test_attribute_removed_drops_marker(doc: LiveDocument, watching: ObservationLoop) -> None:
    existing = doc.select_one("#existing")
    doc.set_attribute(existing, "data-event-id", "task|t1")
    doc.deliver()
    assert _labels(doc) == ["Tomorrow"]

    doc.remove_attribute(existing, "data-event-id")
    doc.deliver()
    assert _labels(doc) == []


def test_unrelated_attributes_and_other_subtrees_are_ignored(doc: LiveDocument, watching: ObservationLoop) -> None:
    seen: list = []
    doc.observe(doc.select_one("#cal"), seen.append, attribute_filter=("data-event-id",))

    doc.set_attribute(doc.select_one("#existing"), "class", "moved")
    doc.insert(doc.select_one("#sidebar"), '<div data-event-id="task|t2"></div>')
    doc.deliver()

    assert seen == []
    assert _labels(doc) == []


def test_stop_detaches_and_is_idempotent(doc: LiveDocument, watching: ObservationLoop) -> None:
    assert watching.state is LoopState.OBSERVING
    assert doc.observer_count == 1

    watching.stop()
    watching.stop()

    assert watching.state is LoopState.STOPPED
    assert doc.observer_count == 0
    doc.insert(doc.select_one("#cal"), '<div data-event-id="task|t2"></div>')
    doc.deliver()
    assert _labels(doc) == []


def test_start_is_single_use(doc: LiveDocument, watching: ObservationLoop) -> None:
    with pytest.raises(RuntimeError):
        watching.start(doc.body, RECORDS)
    watching.stop()
    with pytest.raises(RuntimeError):
        watching.start(doc.body, RECORDS)


def test_context_manager_stops_on_exit(doc: LiveDocument, reconciler: DomReconciler) -> None:
    with ObservationLoop(doc, reconciler) as obs:
        obs.start(doc.body, RECORDS)
        assert obs.observing
    assert obs.state is LoopState.STOPPED
    assert doc.observer_count == 0


def test_handle_batch_is_a_plain_function_of_records(doc: LiveDocument, watching: ObservationLoop) -> None:
    existing = doc.select_one("#existing")

    touched = watching.handle_batch([MutationRecord(MutationKind.ATTRIBUTES, existing, attribute_name="data-event-id")])

    assert touched == 1
    assert _labels(doc) == ["Tomorrow"]


@pytest.mark.asyncio
async def test_mutations_are_delivered_on_the_running_loop(doc: LiveDocument, watching: ObservationLoop) -> None:
    doc.insert(doc.select_one("#cal"), '<div data-event-id="task|t2"></div>')
    doc.insert(doc.select_one("#cal"), '<div data-event-id="task|t3"></div>')
    assert doc.pending == 2

    await asyncio.sleep(0)

    assert doc.pending == 0
    assert _labels(doc) == ["10d", "Overdue"]


def test_marker_dropped_when_id_is_cleared_on_nameless_element(reconciler: DomReconciler) -> None:
    doc = LiveDocument.from_html('<div id="cal"><div id="e" data-event-id="task|t1"></div></div>')
    el = doc.select_one("#e")
    with ObservationLoop(doc, reconciler) as obs:
        obs.start(doc.select_one("#cal"), RECORDS)
        doc.set_attribute(el, "data-event-id", "task|t1")
        doc.deliver()
        assert _labels(doc) == ["Tomorrow"]

        doc.set_attribute(el, "data-event-id", "task|")
        doc.deliver()

    assert _labels(doc) == []

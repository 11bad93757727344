# src/due_lens/dom/observer.py

from __future__ import annotations

import logging
from collections.abc import Sequence
from enum import StrEnum

from bs4 import Tag

from ..core.models import TaskRecord
from ..core.ports import ElementWatch, Subscription
from .document import MutationKind, MutationRecord
from .reconciler import TASK_ATTR, TASK_SELECTOR, DomReconciler, is_task_element

logger = logging.getLogger(__name__)


class LoopState(StrEnum):
    IDLE = "idle"
    OBSERVING = "observing"
    STOPPED = "stopped"


class ObservationLoop:
    """
    Keeps annotating task elements the host renders after the initial pass.

    Lifecycle: idle -> observing (start) -> stopped (stop, terminal).
    stop() is idempotent; use the loop as a context manager to tie release to one
    teardown path.
    """

    def __init__(self, watch: ElementWatch, reconciler: DomReconciler) -> None:
        self._watch = watch
        self._reconciler = reconciler
        self._records: tuple[TaskRecord, ...] = ()
        self._subscription: Subscription | None = None
        self.state = LoopState.IDLE

    @property
    def observing(self) -> bool:
        return self.state == LoopState.OBSERVING

    def start(self, root: Tag, records: Sequence[TaskRecord]) -> None:
        if self.state != LoopState.IDLE:
            raise RuntimeError(f"ObservationLoop cannot start from state {self.state.value}")
        self._records = tuple(records)
        self._subscription = self._watch.observe(
            root,
            self.handle_batch,
            attribute_filter=(TASK_ATTR,),
        )
        self.state = LoopState.OBSERVING
        logger.info("Task observer setup complete (%d records)", len(self._records))

    def stop(self) -> None:
        if self.state == LoopState.STOPPED:
            return
        sub, self._subscription = self._subscription, None
        self.state = LoopState.STOPPED
        if sub is not None:
            sub.disconnect()
            logger.info("Task observer disconnected")

    def __enter__(self) -> ObservationLoop:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.stop()

    def handle_batch(self, mutations: Sequence[MutationRecord]) -> int:
        """Reconcile everything a batch touched. Returns the number of elements reconciled."""
        if self.state != LoopState.OBSERVING:
            return 0

        touched = 0
        for mutation in mutations:
            for node in mutation.added_nodes:
                if not isinstance(node, Tag):
                    continue
                if is_task_element(node):
                    logger.debug("Observer: found new task element directly")
                    self._reconciler.reconcile(node, self._records)
                    touched += 1
                    continue
                found = node.select(TASK_SELECTOR)
                if found:
                    logger.debug("Observer: found %d new tasks within element", len(found))
                for task_el in found:
                    self._reconciler.reconcile(task_el, self._records)
                    touched += 1

            if mutation.kind == MutationKind.ATTRIBUTES and mutation.attribute_name == TASK_ATTR:
                if is_task_element(mutation.target):
                    logger.debug("Observer: task attribute changed")
                    self._reconciler.reconcile(mutation.target, self._records)
                    touched += 1
                elif self._reconciler.clear_annotation(mutation.target):
                    logger.debug("Observer: element stopped being a task; marker removed")
        return touched

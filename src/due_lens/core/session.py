# src/due_lens/core/session.py

from __future__ import annotations

"""
Top-level orchestration.

API key -> workspaces -> tasks (sequential per workspace) -> one full reconciliation
pass -> observation loop for elements rendered later. The session is an async context
manager; leaving it is the single teardown path (observer detached, HTTP client closed).
"""

import asyncio
import logging
import time
from collections.abc import Callable
from datetime import datetime

import httpx
from bs4 import Tag

from ..api.errors import FetchError
from ..api.rate_limiter import Clock, Sleep
from ..config import Settings
from ..dom.document import LiveDocument
from ..dom.observer import ObservationLoop
from ..dom.reconciler import DomReconciler
from .models import TaskRecord
from .ports import CredentialProvider, ElementWatch
from .state import ApiState, create_api_state

logger = logging.getLogger(__name__)


async def fetch_task_set(state: ApiState) -> tuple[TaskRecord, ...]:
    """
    Fetch everything the key can see, degrading to an empty set when even the
    workspaces list is unavailable. Never raises FetchError.
    """
    try:
        return await state.repository.fetch_task_set()
    except FetchError:
        logger.exception("Error fetching task data; continuing without annotations")
        return ()


class AnnotationSession:
    def __init__(
            self,
            *,
            settings: Settings,
            credentials: CredentialProvider,
            watch: ElementWatch,
            root: Tag,
            http_client: httpx.AsyncClient | None = None,
            reconciler: DomReconciler | None = None,
            clock: Clock = time.monotonic,
            sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._settings = settings
        self._credentials = credentials
        self._watch = watch
        self._root = root
        self._http_client = http_client
        self._clock = clock
        self._sleep = sleep
        self.reconciler = reconciler or DomReconciler()

        self.records: tuple[TaskRecord, ...] = ()
        self.annotated = 0
        self.loop: ObservationLoop | None = None
        self._api: ApiState | None = None

    @property
    def started(self) -> bool:
        return self.loop is not None

    async def start(self) -> bool:
        """
        Run one refresh cycle and attach the observer.

        Returns False (after logging) when no API key is configured.
        """
        api_key = self._credentials.get_api_key()
        if not api_key:
            logger.warning("API key not found. Set DUELENS_API_KEY (or MOTION_API_KEY).")
            return False

        self._api = create_api_state(
            self._settings,
            api_key,
            http_client=self._http_client,
            clock=self._clock,
            sleep=self._sleep,
        )

        logger.info("Fetching workspaces and tasks...")
        self.records = await fetch_task_set(self._api)

        self.annotated = self.reconciler.reconcile_all(self._root, self.records)

        self.loop = ObservationLoop(self._watch, self.reconciler)
        self.loop.start(self._root, self.records)
        return True

    async def aclose(self) -> None:
        if self.loop is not None:
            self.loop.stop()
        if self._api is not None:
            api, self._api = self._api, None
            await api.aclose()

    async def __aenter__(self) -> AnnotationSession:
        try:
            await self.start()
        except BaseException:
            # __aexit__ will not run when entering fails.
            await self.aclose()
            raise
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()


async def annotate_snapshot(
        html: str,
        *,
        settings: Settings,
        credentials: CredentialProvider,
        http_client: httpx.AsyncClient | None = None,
        now: Callable[[], datetime] | None = None,
) -> str | None:
    """
    Annotate a saved calendar page. Returns the new markup, or None when no API key
    is configured.
    """
    document = LiveDocument.from_html(html)
    session = AnnotationSession(
        settings=settings,
        credentials=credentials,
        watch=document,
        root=document.body,
        http_client=http_client,
        reconciler=DomReconciler(clock=now),
    )
    async with session:
        if not session.started:
            return None
        return document.render()

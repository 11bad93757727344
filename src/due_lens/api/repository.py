# src/due_lens/api/repository.py

from __future__ import annotations

"""
Task repository.

Reads workspaces and their tasks from the remote API through a FetchGateway:
- workspaces come from a single request,
- tasks are paginated with an opaque cursor until the server stops returning one,
- transient failures are retried with a linear backoff, and an exhausted page ends
  pagination early with whatever was collected so far (best-effort, never raises).
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from typing import Any

from ..core.models import TaskRecord, WorkspaceRecord
from .errors import FetchError, MalformedPayload
from .gateway import FetchGateway

logger = logging.getLogger(__name__)

Sleep = Callable[[float], Awaitable[None]]

WORKSPACES_PATH = "workspaces"
TASKS_PATH = "tasks"


@dataclass(frozen=True, slots=True)
class RetryPolicy:
    """
    Linear backoff: the n-th retry waits n * backoff_seconds.

    max_retries counts retries after the first failure, so a page is requested at most
    max_retries + 1 times in a row.
    """

    max_retries: int = 3
    backoff_seconds: float = 5.0

    def __post_init__(self) -> None:
        if self.max_retries < 0:
            raise ValueError("max_retries must be >= 0")
        if self.backoff_seconds < 0:
            raise ValueError("backoff_seconds must be >= 0")

    def delay_for(self, attempt: int) -> float:
        return attempt * self.backoff_seconds


class TaskRepository:
    def __init__(
            self,
            gateway: FetchGateway,
            api_key: str,
            *,
            retry_policy: RetryPolicy | None = None,
            sleep: Sleep = asyncio.sleep,
    ) -> None:
        self._gateway = gateway
        self._api_key = api_key
        self._retry = retry_policy or RetryPolicy()
        self._sleep = sleep

    def _headers(self) -> dict[str, str]:
        return {"Accept": "application/json", "X-API-Key": self._api_key}

    async def _get_json(self, path: str, params: dict[str, Any] | None = None) -> dict[str, Any]:
        response = await self._gateway.request(path, headers=self._headers(), params=params)
        try:
            payload = response.json()
        except ValueError as exc:
            raise MalformedPayload(path, "body is not JSON") from exc
        if not isinstance(payload, dict):
            raise MalformedPayload(path, "expected a JSON object")
        return payload

    async def _backoff(self, attempt: int, what: str, err: FetchError) -> None:
        delay = self._retry.delay_for(attempt)
        logger.warning(
            "%s failed (%s). Retry %d/%d in %.1fs...",
            what,
            err,
            attempt,
            self._retry.max_retries,
            delay,
        )
        await self._sleep(delay)

    async def fetch_all_workspaces(self) -> list[WorkspaceRecord]:
        """
        Single request, retried on transient failures.

        Raises FetchError when the workspaces list cannot be obtained: without it there is
        nothing to paginate, so the caller decides how to degrade.
        """
        attempt = 0
        while True:
            try:
                payload = await self._get_json(WORKSPACES_PATH)
                break
            except FetchError as e:
                if not e.transient or attempt >= self._retry.max_retries:
                    raise
                attempt += 1
                await self._backoff(attempt, "Workspaces fetch", e)

        raw_list = payload.get("workspaces")
        if not isinstance(raw_list, list):
            raise MalformedPayload(WORKSPACES_PATH, "missing 'workspaces' list")

        out: list[WorkspaceRecord] = []
        for raw in raw_list:
            ws = WorkspaceRecord.from_api(raw)
            if ws is None:
                logger.debug("Skipping malformed workspace entry: %r", raw)
                continue
            out.append(ws)
        logger.info("Fetched %d workspaces", len(out))
        return out

    async def fetch_all_tasks(self, workspace_id: str) -> list[TaskRecord]:
        """
        Follow cursor pagination for one workspace.

        Pages are appended in cursor order. A page that still fails after the retry budget
        (or fails with a non-transient error) stops pagination and the tasks gathered so far
        are returned. A successful page resets the retry budget.
        """
        tasks: list[TaskRecord] = []
        cursor: str | None = None
        page = 1
        attempt = 0

        while True:
            params: dict[str, Any] = {"workspaceId": workspace_id}
            if cursor:
                params["cursor"] = cursor

            logger.info("Fetching page %d of tasks for workspace %s...", page, workspace_id)
            try:
                payload = await self._get_json(TASKS_PATH, params)
            except FetchError as e:
                if not e.transient:
                    logger.error("Failed to fetch tasks page %d: %s", page, e)
                    break
                if attempt >= self._retry.max_retries:
                    logger.error("Maximum retries reached on tasks page %d: %s", page, e)
                    break
                attempt += 1
                await self._backoff(attempt, f"Tasks page {page}", e)
                continue

            raw_tasks = payload.get("tasks")
            if not isinstance(raw_tasks, list):
                logger.error("Tasks page %d has no 'tasks' list; stopping", page)
                break
            for raw in raw_tasks:
                rec = TaskRecord.from_api(raw)
                if rec is None:
                    logger.debug("Skipping malformed task entry: %r", raw)
                    continue
                tasks.append(rec)

            attempt = 0
            meta = payload.get("meta")
            next_cursor = meta.get("nextCursor") if isinstance(meta, dict) else None
            if not next_cursor:
                break
            cursor = str(next_cursor)
            page += 1

        logger.info("Total tasks fetched for workspace %s: %d", workspace_id, len(tasks))
        return tasks

    async def fetch_task_set(self) -> tuple[TaskRecord, ...]:
        """
        All tasks of all workspaces, fetched one workspace at a time.

        The result is immutable; it is what one reconciliation cycle works against.
        """
        workspaces = await self.fetch_all_workspaces()

        collected: list[TaskRecord] = []
        for ws in workspaces:
            logger.info("Fetching ALL tasks for workspace: %s (%s)", ws.name, ws.id)
            collected.extend(await self.fetch_all_tasks(ws.id))

        logger.info("Fetched %d tasks across %d workspaces", len(collected), len(workspaces))
        return tuple(collected)

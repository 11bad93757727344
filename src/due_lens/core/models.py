# src/due_lens/core/models.py

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class WorkspaceRecord:
    """Workspace scope for task pagination; discarded once its tasks are fetched."""

    id: str
    name: str

    @classmethod
    def from_api(cls, raw: Any) -> WorkspaceRecord | None:
        if not isinstance(raw, dict):
            return None
        ws_id = raw.get("id")
        if ws_id is None or str(ws_id).strip() == "":
            return None
        return cls(id=str(ws_id), name=str(raw.get("name") or ""))


@dataclass(frozen=True, slots=True)
class TaskRecord:
    """
    One remote task as fetched.

    due_date is timezone-aware (UTC when the API sends a naive value) or None.
    """

    id: str
    name: str
    due_date: datetime | None = None

    @classmethod
    def from_api(cls, raw: Any) -> TaskRecord | None:
        if not isinstance(raw, dict):
            return None
        task_id = raw.get("id")
        if task_id is None or str(task_id).strip() == "":
            return None
        return cls(
            id=str(task_id),
            name=str(raw.get("name") or ""),
            due_date=parse_due_date(raw.get("dueDate")),
        )


def parse_due_date(raw: Any) -> datetime | None:
    """
    Parse an ISO-8601 timestamp from the API.

    Unparseable values are treated as "no due date" rather than an error.
    """
    if raw is None:
        return None
    if isinstance(raw, datetime):
        dt = raw
    else:
        s = str(raw).strip()
        if not s:
            return None
        try:
            dt = datetime.fromisoformat(s.replace("Z", "+00:00") if s.endswith("Z") else s)
        except ValueError:
            logger.debug("Unparseable dueDate %r, treating as absent", raw)
            return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=UTC)
    return dt

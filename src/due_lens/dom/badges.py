# src/due_lens/dom/badges.py

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import StrEnum


class BadgeColor(StrEnum):
    RED = "#ef4444"
    ORANGE = "#f97316"
    YELLOW = "#facc15"
    BLUE = "#60a5fa"
    GREEN = "#4ade80"


@dataclass(frozen=True, slots=True)
class DueBadge:
    days: int
    label: str
    color: BadgeColor


def days_until_due(due: datetime, now: datetime) -> int:
    """Whole days from now to due, floored (so anything later today is 0, anything earlier is < 0)."""
    return (due - now) // timedelta(days=1)


def badge_for_days(days: int) -> DueBadge:
    if days < 0:
        return DueBadge(days, "Overdue", BadgeColor.RED)
    if days == 0:
        return DueBadge(days, "Due today", BadgeColor.ORANGE)
    if days == 1:
        return DueBadge(days, "Tomorrow", BadgeColor.YELLOW)
    if days <= 3:
        return DueBadge(days, f"{days}d", BadgeColor.YELLOW)
    if days <= 7:
        return DueBadge(days, f"{days}d", BadgeColor.BLUE)
    return DueBadge(days, f"{days}d", BadgeColor.GREEN)


def badge_for(due: datetime, now: datetime) -> DueBadge:
    return badge_for_days(days_until_due(due, now))

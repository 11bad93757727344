# tests/conftest.py

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import pytest

from due_lens.config import Settings
from due_lens.dom.reconciler import DomReconciler

from .fakes import API_BASE, FakeClock

NOW = datetime(2026, 3, 10, 12, 0, tzinfo=UTC)


@pytest.fixture()
def settings(tmp_path: Path) -> Settings:
    """
    Settings built directly (not from the environment) to keep tests deterministic.
    The limiter is generous so only tests that target it ever wait.
    """
    return Settings(
        app_name="due-lens-test",
        log_level="DEBUG",
        data_dir=tmp_path / "data",
        api_key="test-key",
        api_base_url=API_BASE,
        rate_limit_max_requests=100,
        rate_limit_window_seconds=60.0,
        fetch_max_retries=3,
        fetch_backoff_seconds=5.0,
    )


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def reconciler() -> DomReconciler:
    return DomReconciler(clock=lambda: NOW)

# src/due_lens/core/state.py

from __future__ import annotations

import asyncio
import time
from dataclasses import dataclass

import httpx

from ..api.gateway import FetchGateway, build_http_client
from ..api.rate_limiter import Clock, RateLimiter, Sleep
from ..api.repository import RetryPolicy, TaskRepository
from ..config import Settings


@dataclass
class ApiState:
    """
    The network side of one refresh cycle, explicitly owned by whoever built it.

    owns_http_client tells aclose() whether the client was created here.
    """

    settings: Settings
    http_client: httpx.AsyncClient
    limiter: RateLimiter
    gateway: FetchGateway
    repository: TaskRepository
    owns_http_client: bool = True

    async def aclose(self) -> None:
        if self.owns_http_client:
            await self.http_client.aclose()


def create_api_state(
        settings: Settings,
        api_key: str,
        *,
        http_client: httpx.AsyncClient | None = None,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
) -> ApiState:
    """
    Wire limiter -> gateway -> repository from settings.

    Keeping the HTTP client and timing hooks injectable lets tests run against
    httpx.MockTransport with a fake clock.
    """
    # Validate settings before opening a client, so a bad config leaks nothing.
    limiter = RateLimiter(
        settings.rate_limit_max_requests,
        settings.rate_limit_window_seconds,
        clock=clock,
        sleep=sleep,
    )
    retry_policy = RetryPolicy(
        max_retries=settings.fetch_max_retries,
        backoff_seconds=settings.fetch_backoff_seconds,
    )

    owns = http_client is None
    client = http_client or build_http_client(base_url=settings.api_base_url)

    gateway = FetchGateway(client, limiter)
    repository = TaskRepository(gateway, api_key, retry_policy=retry_policy, sleep=sleep)
    return ApiState(
        settings=settings,
        http_client=client,
        limiter=limiter,
        gateway=gateway,
        repository=repository,
        owns_http_client=owns,
    )

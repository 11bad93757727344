# src/due_lens/api/gateway.py

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import Any

import httpx

from .errors import HttpError, NetworkError, RateLimited
from .rate_limiter import RateLimiter

logger = logging.getLogger(__name__)


def _safe_error_message(response: httpx.Response) -> str:
    try:
        payload = response.json()
    except ValueError:
        payload = None

    if isinstance(payload, dict):
        message = payload.get("message") or payload.get("error")
        if isinstance(message, str) and message.strip():
            return " ".join(message.split())[:200]

    raw_text = response.text.strip()
    if raw_text:
        return " ".join(raw_text.split())[:200]
    return ""


class FetchGateway:
    """
    One admitted network call per request().

    Retry policy belongs to the caller; this class only classifies outcomes:
    - 2xx         -> the response
    - 429         -> RateLimited
    - other !2xx  -> HttpError(status)
    - transport   -> NetworkError
    """

    def __init__(self, http_client: httpx.AsyncClient, limiter: RateLimiter) -> None:
        self._http_client = http_client
        self._limiter = limiter

    async def request(
            self,
            url: str,
            *,
            headers: Mapping[str, str] | None = None,
            params: Mapping[str, Any] | None = None,
    ) -> httpx.Response:
        await self._limiter.admit()

        try:
            response = await self._http_client.get(url, headers=dict(headers or {}), params=params)
        except httpx.HTTPError as exc:
            raise NetworkError(url, exc) from exc

        if response.status_code == 429:
            logger.error("Rate limit exceeded despite local throttling: %s", url)
            raise RateLimited(url)

        if response.status_code < 200 or response.status_code >= 300:
            raise HttpError(response.status_code, url, _safe_error_message(response))

        return response


def build_http_client(*, base_url: str, transport: httpx.AsyncBaseTransport | None = None) -> httpx.AsyncClient:
    """
    HTTP client for the remote API.

    No per-request timeout: the only bounded wait is the retry/backoff ceiling.
    """
    return httpx.AsyncClient(
        base_url=base_url.rstrip("/") + "/",
        timeout=httpx.Timeout(None),
        transport=transport,
    )

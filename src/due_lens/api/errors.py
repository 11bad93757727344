# src/due_lens/api/errors.py

from __future__ import annotations

# Statuses for which another attempt is reasonable (timeouts, overload, gateway hiccups).
RETRYABLE_STATUSES = frozenset({408, 425, 500, 502, 503, 504})


class FetchError(Exception):
    """Base class for failures of a single gateway request."""

    transient: bool = False


class RateLimited(FetchError):
    """The server answered 429 even though the local limiter admitted the request."""

    transient = True

    def __init__(self, url: str) -> None:
        super().__init__(f"Rate limit exceeded (429) for {url}")
        self.url = url


class HttpError(FetchError):
    def __init__(self, status: int, url: str, message: str = "") -> None:
        detail = f": {message}" if message else ""
        super().__init__(f"HTTP {status} for {url}{detail}")
        self.status = status
        self.url = url

    @property
    def transient(self) -> bool:  # type: ignore[override]
        return self.status in RETRYABLE_STATUSES


class NetworkError(FetchError):
    """Transport failure (DNS, connect, reset, ...)."""

    transient = True

    def __init__(self, url: str, cause: BaseException) -> None:
        super().__init__(f"Network error for {url}: {cause}")
        self.url = url


class MalformedPayload(FetchError):
    """Successful status but the body is not the JSON shape we expect."""

    def __init__(self, url: str, reason: str) -> None:
        super().__init__(f"Malformed payload from {url}: {reason}")
        self.url = url

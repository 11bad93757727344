# src/due_lens/config.py

"""Centralized settings loaded from environment variables (+ optional .env).

Design goals:
- One Settings object for the whole app, passed explicitly to whoever needs it.
- No secrets required at import time (the API key is read lazily by a credential provider).
- Bad numeric values fall back to defaults; semantic validation lives in the components.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

ENV_PREFIX = "DUELENS"

DEFAULT_API_BASE_URL = "https://api.usemotion.com/v1"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _load_dotenv_if_available() -> None:
    """Load .env locally if python-dotenv is installed. Safe no-op otherwise."""
    try:
        from dotenv import load_dotenv  # type: ignore
    except Exception:
        return
    load_dotenv(override=False)


def _env(name: str, default: str = "") -> str:
    v = os.getenv(name)
    return default if v is None else v


def _first_env(*names: str, default: str | None = None) -> str | None:
    for n in names:
        v = os.getenv(n)
        if v is not None and v.strip() != "":
            return v
    return default


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError:
        return default


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return float(raw)
    except ValueError:
        return default


def _env_path(name: str, default: Path) -> Path:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return default
    return Path(raw).expanduser()


@dataclass(frozen=True, slots=True)
class Settings:
    # ---- App / logging ----
    app_name: str
    log_level: str
    data_dir: Path

    # ---- Remote API ----
    api_key: str | None
    api_base_url: str

    # ---- Rate limiting ----
    rate_limit_max_requests: int
    rate_limit_window_seconds: float

    # ---- Retry policy for paginated fetches ----
    fetch_max_retries: int
    fetch_backoff_seconds: float

    @property
    def log_dir(self) -> Path:
        return self.data_dir / "logs"

    @staticmethod
    def from_env(*, load_dotenv: bool = True) -> "Settings":
        if load_dotenv:
            _load_dotenv_if_available()

        app_name = _env(_k("APP_NAME"), "due-lens")
        log_level = _env(_k("LOG_LEVEL"), "INFO")
        data_dir = _env_path(_k("DATA_DIR"), Path(".local/due-lens"))

        # Accept the plain vendor variable too, handy when it is already exported.
        api_key = _first_env(_k("API_KEY"), "MOTION_API_KEY", default=None)
        api_base_url = _env(_k("API_BASE_URL"), DEFAULT_API_BASE_URL).rstrip("/")

        rate_limit_max_requests = _env_int(_k("RATE_LIMIT_MAX_REQUESTS"), 12)
        rate_limit_window_seconds = _env_float(_k("RATE_LIMIT_WINDOW_SECONDS"), 60.0)

        fetch_max_retries = _env_int(_k("FETCH_MAX_RETRIES"), 3)
        fetch_backoff_seconds = _env_float(_k("FETCH_BACKOFF_SECONDS"), 5.0)

        return Settings(
            app_name=app_name,
            log_level=log_level,
            data_dir=data_dir,
            api_key=api_key.strip() if api_key else None,
            api_base_url=api_base_url,
            rate_limit_max_requests=rate_limit_max_requests,
            rate_limit_window_seconds=rate_limit_window_seconds,
            fetch_max_retries=fetch_max_retries,
            fetch_backoff_seconds=fetch_backoff_seconds,
        )


def get_settings() -> Settings:
    """Build settings from the current environment (read on every call, no module-level cache)."""
    return Settings.from_env()

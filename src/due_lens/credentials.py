# src/due_lens/credentials.py

from __future__ import annotations

from dataclasses import dataclass

from .config import Settings


@dataclass(frozen=True, slots=True)
class SettingsCredentialProvider:
    """Reads the API key from Settings (DUELENS_API_KEY / MOTION_API_KEY)."""

    settings: Settings

    def get_api_key(self) -> str | None:
        key = (self.settings.api_key or "").strip()
        return key or None


@dataclass(frozen=True, slots=True)
class StaticCredentialProvider:
    """Fixed key, e.g. passed on the command line."""

    api_key: str | None

    def get_api_key(self) -> str | None:
        key = (self.api_key or "").strip()
        return key or None

# src/due_lens/cli/bootstrap.py

"""
CLI bootstrap helpers.

This module is the "composition root" for the command line:
- loads settings once,
- configures logging under the (gitignored) data dir,
- picks the credential provider (explicit --api-key wins over the environment).
"""

from __future__ import annotations

import logging

from ..config import Settings, get_settings
from ..core.ports import CredentialProvider
from ..credentials import SettingsCredentialProvider, StaticCredentialProvider
from ..logging_setup import level_from_name, setup_logging

logger = logging.getLogger(__name__)


def init_runtime(*, verbose: bool = False, settings: Settings | None = None) -> Settings:
    if settings is None:
        settings = get_settings()

    console_level = logging.DEBUG if verbose else level_from_name(settings.log_level)
    setup_logging(log_dir=settings.log_dir, console_level=console_level)
    logger.debug("Starting %s (api=%s)", settings.app_name, settings.api_base_url)
    return settings


def pick_credentials(settings: Settings, api_key: str | None) -> CredentialProvider:
    if api_key and api_key.strip():
        return StaticCredentialProvider(api_key)
    return SettingsCredentialProvider(settings)

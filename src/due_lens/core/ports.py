# src/due_lens/core/ports.py

from __future__ import annotations

"""
Ports (interfaces) used by the core.

The session and the observation loop depend on Protocols instead of concrete
implementations, so the credential source and the document watch facility can be
swapped (and faked in tests).
"""

from collections.abc import Callable, Sequence
from typing import TYPE_CHECKING, Protocol

if TYPE_CHECKING:
    from bs4 import Tag

    from ..dom.document import MutationRecord


class CredentialProvider(Protocol):
    """Supplies the API key once at startup. None means "not configured"."""

    def get_api_key(self) -> str | None: ...


class Subscription(Protocol):
    def disconnect(self) -> None: ...


class ElementWatch(Protocol):
    """
    Subtree-wide watch facility.

    Delivers batches of MutationRecord for insertions anywhere under `root` and for
    attribute changes (only the names in `attribute_filter`, or all when it is None).
    """

    def observe(
            self,
            root: Tag,
            callback: Callable[[Sequence[MutationRecord]], None],
            *,
            attribute_filter: Sequence[str] | None = None,
    ) -> Subscription: ...

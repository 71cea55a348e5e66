"""
Identity component port definitions.
"""

from __future__ import annotations

from datetime import datetime
from typing import Protocol


class IdentityStorePort(Protocol):
    """
    Key-value slots holding identity state on the client side.

    Durable slots outlive the browsing session (visitor id); the others
    expire with it (session id, last activity, session start).
    Implementations raise IdentityStoreError when storage is unavailable.
    """

    def get(self, key: str) -> str | None:
        """Read a slot. Returns None if unset."""
        ...

    def set(self, key: str, value: str, *, durable: bool = False) -> None:
        """Write a slot."""
        ...

    def clear(self, key: str) -> None:
        """Remove a slot."""
        ...


class TimePort(Protocol):
    """Time provider interface."""

    def now_utc(self) -> datetime:
        """Get current UTC time."""
        ...

"""
Identity component models.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

# --- Storage slots ---

VISITOR_ID_KEY = "visitor_id"
SESSION_ID_KEY = "session_id"
LAST_ACTIVITY_KEY = "last_activity"
SESSION_START_KEY = "session_start"


# --- Errors ---


class IdentityStoreError(Exception):
    """Backing storage for identity slots is unavailable."""

    pass


# --- Configuration ---


@dataclass(frozen=True)
class IdentityConfig:
    """Identity resolution configuration."""

    session_inactivity_minutes: int = 30


DEFAULT_CONFIG = IdentityConfig()


# --- Output Models ---


@dataclass(frozen=True)
class SessionState:
    """Resolved session for the current page view."""

    session_id: str
    started_at: datetime
    last_activity: datetime
    is_new: bool

    def duration_seconds(self, now: datetime) -> int:
        """Whole seconds elapsed since the session's first page view."""
        elapsed = (now - self.started_at).total_seconds()
        return max(0, int(elapsed))


@dataclass(frozen=True)
class ResolvedIdentity:
    """Visitor and session resolved together for one page view."""

    visitor_id: str
    session: SessionState

"""
Identity component - visitor and session resolution.

Derives a stable per-browser visitor id and a time-bounded session id from
an injected IdentityStorePort.

Invariants:
- Visitor id is created once and never expires
- At most one active session per store at any instant
- A session is superseded (never closed) once last activity is older than
  the inactivity threshold
- session_start is written once per session
- Storage failures degrade to a fresh identity, never raise
"""

from __future__ import annotations

import logging
import re
import secrets
from datetime import UTC, datetime, timedelta

from .models import (
    DEFAULT_CONFIG,
    LAST_ACTIVITY_KEY,
    SESSION_ID_KEY,
    SESSION_START_KEY,
    VISITOR_ID_KEY,
    IdentityConfig,
    IdentityStoreError,
    ResolvedIdentity,
    SessionState,
)
from .ports import IdentityStorePort, TimePort

logger = logging.getLogger(__name__)

_TOKEN_RE = re.compile(r"^[0-9a-f]{32}$")


def generate_token() -> str:
    """Fresh 128-bit random identifier as lowercase hex."""
    return secrets.token_hex(16)


def is_valid_token(value: str | None) -> bool:
    """Check a stored token looks like one we minted."""
    return bool(value) and _TOKEN_RE.match(value) is not None  # type: ignore[arg-type]


def _parse_ts(value: str | None) -> datetime | None:
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed


# --- In-Memory Store ---


class InMemoryIdentityStore:
    """In-memory identity store for testing/dev."""

    def __init__(self) -> None:
        self._durable: dict[str, str] = {}
        self._ephemeral: dict[str, str] = {}

    def get(self, key: str) -> str | None:
        if key in self._ephemeral:
            return self._ephemeral[key]
        return self._durable.get(key)

    def set(self, key: str, value: str, *, durable: bool = False) -> None:
        if durable:
            self._durable[key] = value
        else:
            self._ephemeral[key] = value

    def clear(self, key: str) -> None:
        self._durable.pop(key, None)
        self._ephemeral.pop(key, None)

    def end_browser_session(self) -> None:
        """Drop non-durable slots, as closing the browser would."""
        self._ephemeral.clear()


# --- Resolver ---


class IdentityResolver:
    """
    Resolves visitor and session identity against a store.

    The store is passed per call so one resolver can serve many requests.
    """

    def __init__(
        self,
        time_port: TimePort,
        config: IdentityConfig | None = None,
    ) -> None:
        self._time = time_port
        self._config = config or DEFAULT_CONFIG

    @property
    def inactivity_threshold(self) -> timedelta:
        return timedelta(minutes=self._config.session_inactivity_minutes)

    def resolve_visitor_id(self, store: IdentityStorePort) -> str:
        """Return the persisted visitor id, minting and persisting one if absent."""
        try:
            visitor_id = store.get(VISITOR_ID_KEY)
        except IdentityStoreError as e:
            logger.warning("Identity storage unavailable, using fresh visitor id: %s", e)
            return generate_token()

        if is_valid_token(visitor_id):
            return visitor_id  # type: ignore[return-value]

        visitor_id = generate_token()
        try:
            store.set(VISITOR_ID_KEY, visitor_id, durable=True)
        except IdentityStoreError as e:
            logger.warning("Could not persist visitor id: %s", e)
        return visitor_id

    def resolve_session(self, store: IdentityStorePort) -> SessionState:
        """
        Return the active session, minting a new one after inactivity.

        Always rewrites last activity to now.
        """
        now = self._time.now_utc()

        try:
            session_id = store.get(SESSION_ID_KEY)
            last_activity = _parse_ts(store.get(LAST_ACTIVITY_KEY))
            started_at = _parse_ts(store.get(SESSION_START_KEY))
        except IdentityStoreError as e:
            logger.warning("Identity storage unavailable, using fresh session: %s", e)
            return SessionState(
                session_id=generate_token(),
                started_at=now,
                last_activity=now,
                is_new=True,
            )

        expired = (
            not is_valid_token(session_id)
            or last_activity is None
            or now - last_activity > self.inactivity_threshold
        )

        if expired:
            state = SessionState(
                session_id=generate_token(),
                started_at=now,
                last_activity=now,
                is_new=True,
            )
        else:
            state = SessionState(
                session_id=session_id,  # type: ignore[arg-type]
                started_at=started_at if started_at is not None else now,
                last_activity=now,
                is_new=False,
            )

        try:
            if expired:
                store.set(SESSION_ID_KEY, state.session_id)
            if expired or started_at is None:
                store.set(SESSION_START_KEY, state.started_at.isoformat())
            store.set(LAST_ACTIVITY_KEY, now.isoformat())
        except IdentityStoreError as e:
            logger.warning("Could not persist session state: %s", e)

        return state

    def resolve_session_id(self, store: IdentityStorePort) -> str:
        """Convenience wrapper returning only the session id."""
        return self.resolve_session(store).session_id

    def resolve(self, store: IdentityStorePort) -> ResolvedIdentity:
        """Resolve visitor and session together."""
        return ResolvedIdentity(
            visitor_id=self.resolve_visitor_id(store),
            session=self.resolve_session(store),
        )


def create_identity_resolver(
    time_port: TimePort,
    config: IdentityConfig | None = None,
) -> IdentityResolver:
    """Create an IdentityResolver."""
    return IdentityResolver(time_port=time_port, config=config)

"""
Cookie-backed identity store.

Implements IdentityStorePort over the request's cookies and the outgoing
response. Durable slots get a long max-age; the others are browser-session
cookies and vanish when the browser closes.

Writes are mirrored in memory so a value set during a request is visible to
later reads within the same request.
"""

from __future__ import annotations

from collections.abc import Mapping

from fastapi import Response

# Roughly ten years; the visitor id never expires on our side.
DURABLE_MAX_AGE_SECONDS = 10 * 365 * 24 * 60 * 60


class CookieIdentityStore:
    def __init__(
        self,
        cookies: Mapping[str, str],
        response: Response,
        prefix: str = "fbh_",
        secure: bool = True,
    ) -> None:
        self._cookies = cookies
        self._response = response
        self._prefix = prefix
        self._secure = secure
        self._pending: dict[str, str | None] = {}

    def _name(self, key: str) -> str:
        return f"{self._prefix}{key}"

    def get(self, key: str) -> str | None:
        if key in self._pending:
            return self._pending[key]
        return self._cookies.get(self._name(key))

    def set(self, key: str, value: str, *, durable: bool = False) -> None:
        self._pending[key] = value
        self._response.set_cookie(
            key=self._name(key),
            value=value,
            max_age=DURABLE_MAX_AGE_SECONDS if durable else None,
            httponly=True,
            secure=self._secure,
            samesite="lax",
        )

    def clear(self, key: str) -> None:
        self._pending[key] = None
        self._response.delete_cookie(self._name(key))

"""
Analytics Ingestion API Routes.

Public endpoint called by the site on every client-side navigation.

Identity is resolved inside the request so the visitor/session cookies go out
with the response; location lookup and storage run as a background task
after the response is sent. The visitor always gets 202.
"""

from __future__ import annotations

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request, Response, status
from pydantic import BaseModel, Field, field_validator

from src.adapters.cookie_identity import CookieIdentityStore
from src.api.deps import Settings, get_recorder, get_settings
from src.components.analytics import PageViewRecorder, TrackPageViewInput

logger = logging.getLogger(__name__)

router = APIRouter()

MAX_PAGE_LENGTH = 512
MAX_REFERRER_LENGTH = 2048


# --- Request/Response Models ---


class PageViewRequest(BaseModel):
    """One navigation reported by the site."""

    page: str = Field("", description="Route path, e.g. /programme")
    referrer: str | None = Field(None, description="document.referrer")

    @field_validator("page")
    @classmethod
    def clip_page(cls, v: str) -> str:
        """Overlong paths are cut, not rejected."""
        return v[:MAX_PAGE_LENGTH]

    @field_validator("referrer")
    @classmethod
    def clip_referrer(cls, v: str | None) -> str | None:
        return v[:MAX_REFERRER_LENGTH] if v is not None else None


class PageViewResponse(BaseModel):
    """Always ok; tracking outcome is never exposed."""

    ok: bool = True


# --- Helpers ---


def get_client_ip(request: Request) -> str | None:
    """First X-Forwarded-For hop when behind a proxy, otherwise the peer address."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip() or None
    return request.client.host if request.client else None


# --- Routes ---


@router.post(
    "/pageview",
    response_model=PageViewResponse,
    status_code=status.HTTP_202_ACCEPTED,
)
def track_page_view(
    request: Request,
    response: Response,
    body: PageViewRequest,
    background_tasks: BackgroundTasks,
    recorder: PageViewRecorder = Depends(get_recorder),
    settings: Settings = Depends(get_settings),
) -> PageViewResponse:
    """Record a page view without making the visitor wait for it."""
    inp = TrackPageViewInput(
        page=body.page,
        client_signature=request.headers.get("user-agent"),
        referrer=body.referrer,
        client_ip=get_client_ip(request),
    )

    if recorder.skip_reason(inp) is not None:
        return PageViewResponse()

    identity_store = CookieIdentityStore(
        request.cookies,
        response,
        secure=settings.cookie_secure,
    )
    try:
        pending = recorder.prepare(inp, identity_store)
    except Exception:
        logger.exception("Error resolving identity for page view: %s", inp.page)
        return PageViewResponse()

    background_tasks.add_task(recorder.record, pending)
    return PageViewResponse()

"""
HTTP entry point: the ingestion endpoint, the admin analytics API and /health.

Run with: uvicorn src.api.main:app
"""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager
from typing import Any

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from src.api.deps import get_rules, get_settings
from src.api.routes import admin_analytics, analytics_ingest
from src.app_shell.config import validate_rules

logger = logging.getLogger(__name__)

SERVICE_NAME = "festival-analytics"

# Site front-ends allowed to send credentialed requests
ALLOWED_ORIGINS = (
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "https://fetedubouduhaut.fr",
)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Refuse to serve until the rules file loads and validates."""
    settings = get_settings()
    try:
        rules = get_rules()
        validate_rules(rules)
    except (FileNotFoundError, ValueError):
        logger.critical("Rules load failed: %s", settings.rules_path, exc_info=True)
        raise

    settings.data_dir.mkdir(parents=True, exist_ok=True)
    logger.info("Rules %s loaded from %s", rules.project.rules_version, settings.rules_path)
    yield


def health_check() -> dict[str, Any]:
    return {"status": "ok", "service": SERVICE_NAME}


def create_app() -> FastAPI:
    application = FastAPI(
        title="Festival Analytics API",
        version="0.1.0",
        lifespan=lifespan,
    )

    application.include_router(
        analytics_ingest.router, prefix="/api/analytics", tags=["Analytics"]
    )
    application.include_router(
        admin_analytics.router, prefix="/api/admin/analytics", tags=["Admin Analytics"]
    )
    application.add_api_route("/health", health_check, methods=["GET"])

    application.add_middleware(
        CORSMiddleware,
        allow_origins=list(ALLOWED_ORIGINS),
        allow_credentials=True,
        allow_methods=["GET", "POST"],
        allow_headers=["Authorization", "Content-Type"],
    )
    return application


app = create_app()

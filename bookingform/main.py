from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import text

from .api import forms_router, preview_router
from .config import get_settings
from .db.database import get_database
from .db.migrations import init_db
from .log import setup_logging

logger = logging.getLogger(__name__)


def _resolve_cors_options() -> tuple[list[str], bool, list[str], list[str]]:
    settings = get_settings()
    allow_origins = settings.cors_allow_origins or ["*"]
    allow_credentials = settings.cors_allow_credentials

    if "*" in allow_origins and allow_credentials:
        logger.warning(
            "CORS_ALLOW_CREDENTIALS is true while CORS_ALLOW_ORIGINS contains '*'; forcing credentials=false"
        )
        allow_credentials = False

    return (
        allow_origins,
        allow_credentials,
        settings.cors_allow_methods or ["*"],
        settings.cors_allow_headers or ["*"],
    )


@asynccontextmanager
async def _lifespan(_: FastAPI):
    init_db(get_database())
    yield


def create_app() -> FastAPI:
    setup_logging(get_settings().log_level)
    app = FastAPI(title="Booking Form API", lifespan=_lifespan)

    allow_origins, allow_credentials, allow_methods, allow_headers = _resolve_cors_options()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=allow_origins,
        allow_credentials=allow_credentials,
        allow_methods=allow_methods,
        allow_headers=allow_headers,
    )

    app.include_router(forms_router)
    app.include_router(preview_router)

    @app.get("/health")
    def health() -> dict:
        checks: dict[str, str] = {}
        overall = "ok"

        try:
            database = get_database()
            with database.session() as session:
                session.execute(text("SELECT 1"))
            checks["database"] = "ok"
        except Exception as exc:
            checks["database"] = f"error: {exc}"
            overall = "degraded"

        return {"status": overall, "checks": checks}

    return app


app = create_app()

__all__ = ["create_app", "app"]

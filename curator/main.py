"""FastAPI app entry point."""

from __future__ import annotations

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from curator.core.config import settings
from curator.db.init_db import init_models
from curator.db.session import engine
from curator.routers import discover, review
from curator.services.youtube_uploads import get_uploads_provider


def create_app() -> FastAPI:
    """Build FastAPI application."""

    app = FastAPI(title="Channel Curator", version="0.1.0")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.dashboard_cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.include_router(review.router)
    app.include_router(discover.router)

    @app.on_event("startup")
    async def _startup() -> None:
        # Raises ConfigurationError when no API key is configured
        get_uploads_provider()
        await init_models(engine)

    @app.on_event("shutdown")
    async def _shutdown() -> None:
        await get_uploads_provider().aclose()

    @app.get("/healthz", tags=["health"])
    async def healthcheck() -> dict[str, str]:
        return {"status": "ok"}

    return app


app = create_app()

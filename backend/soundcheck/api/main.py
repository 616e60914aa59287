from __future__ import annotations

from typing import Optional

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from soundcheck.api.routers import events
from soundcheck.config import Settings, load_settings
from soundcheck.infra.database import get_engine


def create_app(engine=None, settings: Optional[Settings] = None) -> FastAPI:
    """Read-only API over the canonical event store.

    Without an explicit engine the store comes from ``DATABASE_URL``; when that
    is unset the app still starts and the event routes answer 503.
    """
    settings = settings or load_settings()
    app = FastAPI(title="SoundCheck Events API", version="0.1.0")
    if engine is None and settings.database_url:
        engine = get_engine(settings.database_url)
    app.state.db_engine = engine

    # Consumers only read; writes happen through the ingestion job.
    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.api_allowed_origins),
        allow_methods=["GET"],
        allow_headers=["*"],
    )

    app.include_router(events.router, prefix="/api")
    return app


app = create_app()

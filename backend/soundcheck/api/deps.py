from __future__ import annotations

from fastapi import Depends, HTTPException, Request
from sqlalchemy.engine import Engine

from soundcheck.infra.db.events_repository import EventsRepository


def get_engine(request: Request) -> Engine:
    engine = getattr(request.app.state, "db_engine", None)
    if engine is None:
        raise HTTPException(status_code=503, detail="Event store is not configured")
    return engine


def get_events_repository(engine: Engine = Depends(get_engine)) -> EventsRepository:
    return EventsRepository(engine)

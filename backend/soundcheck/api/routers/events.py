from __future__ import annotations

from datetime import datetime
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from soundcheck.api.deps import get_events_repository
from soundcheck.domain.canonical import CanonicalEvent
from soundcheck.infra.db.events_repository import DEFAULT_PAGE_SIZE, MAX_PAGE_SIZE, EventsRepository

router = APIRouter(tags=["events"])


@router.get("/events")
def list_events(
    category: Optional[str] = None,
    city: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    limit: int = Query(DEFAULT_PAGE_SIZE, ge=1, le=MAX_PAGE_SIZE),
    offset: int = Query(0, ge=0),
    include_inactive: bool = False,
    repo: EventsRepository = Depends(get_events_repository),
):
    events = repo.list_events(
        category=category,
        city=city,
        start_date=start_date,
        end_date=end_date,
        limit=limit,
        offset=offset,
        include_inactive=include_inactive,
    )
    return [serialize_event(event) for event in events]


@router.get("/events/{event_id}")
def get_event(
    event_id: str,
    include_inactive: bool = False,
    repo: EventsRepository = Depends(get_events_repository),
):
    event = repo.get_event_by_id(event_id, include_inactive=include_inactive)
    if event is None:
        raise HTTPException(status_code=404, detail="Event not found")
    return serialize_event(event)


def serialize_event(event: CanonicalEvent) -> dict:
    cover = event.cover_image
    return {
        "id": event.id,
        "source": event.source,
        "source_id": event.source_id,
        "source_url": event.source_url,
        "title": event.title,
        "description": event.description,
        "summary": event.summary,
        "start_date": event.start_date.isoformat(),
        "end_date": event.end_date.isoformat(),
        "published_at": event.published_at.isoformat() if event.published_at else None,
        "venue": event.venue.as_dict(),
        "ticketing": event.ticketing.as_dict(),
        "category": event.category,
        "genres": event.genres,
        "tags": event.tags,
        "lineup": [entry.as_dict() for entry in event.lineup],
        "organizer": event.organizer.as_dict(),
        "images": [image.as_dict() for image in event.images],
        "cover_image": cover.url if cover else None,
        "metadata": {
            "scraped_at": event.metadata.scraped_at.isoformat(),
            "last_checked_at": event.metadata.last_checked_at.isoformat(),
            "version": event.metadata.version,
            "is_active": event.metadata.is_active,
            "quality_score": event.metadata.quality_score,
        },
    }

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, Dict, List, Mapping, Optional

from sqlalchemy import func, select
from sqlalchemy.engine import Connection, Engine

from soundcheck.domain.canonical import (
    CanonicalEvent,
    EventImage,
    EventMetadata,
    LineupEntry,
    Organizer,
    Ticketing,
    Venue,
    to_utc,
)

from .tables import standardized_events_table

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def as_utc(value: Optional[datetime]) -> Optional[datetime]:
    """SQLite hands back naive datetimes; everything is stored as UTC."""
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def event_to_row(event: CanonicalEvent) -> Dict[str, Any]:
    return {
        "id": event.id,
        "source": event.source,
        "source_id": event.source_id,
        "source_url": event.source_url,
        "title": event.title,
        "description": event.description,
        "description_html": event.description_html,
        "summary": event.summary,
        "start_date": to_utc(event.start_date),
        "end_date": to_utc(event.end_date),
        "published_at": to_utc(event.published_at) if event.published_at else None,
        "city": event.venue.city,
        "venue": event.venue.as_dict(),
        "ticketing": event.ticketing.as_dict(),
        "category": event.category,
        "genres": list(event.genres),
        "tags": list(event.tags),
        "lineup": [entry.as_dict() for entry in event.lineup],
        "organizer": event.organizer.as_dict(),
        "images": [image.as_dict() for image in event.images],
        "scraped_at": to_utc(event.metadata.scraped_at),
        "last_checked_at": to_utc(event.metadata.last_checked_at),
        "version": event.metadata.version,
        "is_active": event.metadata.is_active,
        "quality_score": event.metadata.quality_score,
    }


def row_to_event(row: Mapping[str, Any]) -> CanonicalEvent:
    organizer = row.get("organizer") or {}
    return CanonicalEvent(
        id=row["id"],
        source=row["source"],
        source_id=row["source_id"],
        source_url=row.get("source_url"),
        title=row["title"],
        description=row["description"],
        description_html=row.get("description_html"),
        summary=row.get("summary"),
        start_date=as_utc(row["start_date"]),
        end_date=as_utc(row["end_date"]),
        published_at=as_utc(row.get("published_at")),
        venue=Venue.from_dict(row.get("venue")),
        ticketing=Ticketing.from_dict(row.get("ticketing")),
        category=row.get("category") or "other",
        genres=list(row.get("genres") or []),
        tags=list(row.get("tags") or []),
        lineup=[
            LineupEntry(name=item.get("name", ""), role=item.get("role"), order=item.get("order"))
            for item in row.get("lineup") or []
        ],
        organizer=Organizer(name=organizer.get("name") or "", organization_id=organizer.get("organization_id")),
        images=[EventImage(url=item["url"], type=item.get("type") or "cover") for item in row.get("images") or []],
        metadata=EventMetadata(
            scraped_at=as_utc(row["scraped_at"]),
            last_checked_at=as_utc(row["last_checked_at"]),
            version=row["version"],
            is_active=bool(row["is_active"]),
            quality_score=row["quality_score"],
        ),
    )


class EventsRepository:
    """Read side of the canonical store. Only active records unless asked."""

    def __init__(self, engine: Engine):
        if engine is None:
            raise ValueError("engine is required")
        self.engine = engine

    def list_events(
        self,
        *,
        category: Optional[str] = None,
        city: Optional[str] = None,
        start_date: Optional[datetime] = None,
        end_date: Optional[datetime] = None,
        limit: int = DEFAULT_PAGE_SIZE,
        offset: int = 0,
        include_inactive: bool = False,
    ) -> List[CanonicalEvent]:
        table = standardized_events_table
        filters = []
        if not include_inactive:
            filters.append(table.c.is_active.is_(True))
        if category:
            filters.append(table.c.category == category)
        if city:
            filters.append(func.lower(table.c.city) == city.lower())
        if start_date is not None:
            filters.append(table.c.start_date >= to_utc(start_date))
        if end_date is not None:
            filters.append(table.c.end_date <= to_utc(end_date))
        limit = max(1, min(MAX_PAGE_SIZE, limit))
        stmt = (
            select(table)
            .where(*filters)
            .order_by(table.c.start_date.asc(), table.c.id.asc())
            .limit(limit)
            .offset(max(0, offset))
        )
        with self.engine.begin() as conn:
            rows = conn.execute(stmt).mappings().all()
        return [row_to_event(row) for row in rows]

    def get_event_by_id(self, event_id: str, *, include_inactive: bool = False) -> Optional[CanonicalEvent]:
        table = standardized_events_table
        stmt = select(table).where(table.c.id == event_id)
        if not include_inactive:
            stmt = stmt.where(table.c.is_active.is_(True))
        with self.engine.begin() as conn:
            row = conn.execute(stmt).mappings().first()
        return row_to_event(row) if row else None

    def get_by_source(self, source: str, source_id: str) -> Optional[CanonicalEvent]:
        with self.engine.begin() as conn:
            row = fetch_by_source(conn, source, source_id)
        return row_to_event(row) if row else None


def fetch_by_source(conn: Connection, source: str, source_id: str) -> Optional[Mapping[str, Any]]:
    table = standardized_events_table
    return (
        conn.execute(select(table).where((table.c.source == source) & (table.c.source_id == source_id)))
        .mappings()
        .first()
    )

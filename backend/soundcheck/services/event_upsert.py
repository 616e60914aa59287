from __future__ import annotations

import logging
import uuid
from dataclasses import replace
from datetime import datetime, timezone
from typing import Callable, Iterable, Optional, Tuple

from sqlalchemy import insert, update
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.engine import Connection, Engine
from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from soundcheck.domain.canonical import (
    CanonicalEvent,
    EventCandidate,
    EventMetadata,
    Organizer,
    Ticketing,
    to_utc,
    unconfirmed_venue,
)
from soundcheck.domain.quality import compute_quality_score
from soundcheck.infra.db.events_repository import (
    EventsRepository,
    event_to_row,
    fetch_by_source,
    row_to_event,
)
from soundcheck.infra.db.tables import standardized_events_table

logger = logging.getLogger(__name__)

REQUIRED_FOR_INSERT = ("title", "start_date", "end_date")


class EventUpsertService:
    """Sole writer of canonical events, keyed by (source, source_id)."""

    def __init__(self, engine: Engine, clock: Optional[Callable[[], datetime]] = None):
        if engine is None:
            raise ValueError("engine is required")
        self.engine = engine
        self.repository = EventsRepository(engine)
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def upsert(self, candidate: EventCandidate) -> str:
        event_id, _ = self._upsert_one(candidate)
        return event_id

    def upsert_many(self, candidates: Iterable[EventCandidate]) -> dict:
        stats = {"inserted": 0, "updated": 0, "failed": 0}
        for candidate in candidates:
            try:
                _, created = self._upsert_one(candidate)
            except (SQLAlchemyError, ValueError) as exc:
                stats["failed"] += 1
                logger.warning(
                    "Failed to save event %s/%s: %s",
                    candidate.source,
                    candidate.source_id,
                    exc,
                )
                continue
            stats["inserted" if created else "updated"] += 1
        return stats

    def deactivate_expired(self, now: Optional[datetime] = None) -> int:
        now = to_utc(now) if now else self._clock()
        table = standardized_events_table
        with self.engine.begin() as conn:
            result = conn.execute(
                update(table)
                .where(table.c.is_active.is_(True), table.c.end_date < now)
                .values(is_active=False, updated_at=now)
            )
        count = result.rowcount or 0
        logger.info("Deactivated %d expired events", count)
        return count

    def reactivate(self, event_id: str) -> bool:
        table = standardized_events_table
        with self.engine.begin() as conn:
            result = conn.execute(
                update(table)
                .where(table.c.id == event_id, table.c.is_active.is_(False))
                .values(is_active=True, updated_at=self._clock())
            )
        return bool(result.rowcount)

    def get_by_source(self, source: str, source_id: str) -> Optional[CanonicalEvent]:
        return self.repository.get_by_source(source, source_id)

    def _upsert_one(self, candidate: EventCandidate) -> Tuple[str, bool]:
        now = self._clock()
        with self.engine.begin() as conn:
            existing = fetch_by_source(conn, candidate.source, candidate.source_id)
            if existing is None:
                event = self._build_new(candidate, now)
                if self._insert_if_absent(conn, event, now):
                    return event.id, True
                # Another writer created the row between the read and the insert.
                existing = fetch_by_source(conn, candidate.source, candidate.source_id)
                if existing is None:
                    raise RuntimeError(f"event {candidate.source}/{candidate.source_id} vanished during upsert")
            merged = self._merge(row_to_event(existing), candidate, now)
            values = event_to_row(merged)
            values.pop("id")
            values.pop("is_active")
            values["version"] = standardized_events_table.c.version + 1
            conn.execute(
                update(standardized_events_table)
                .where(standardized_events_table.c.id == merged.id)
                .values(**values, updated_at=now)
            )
            return merged.id, False

    def _insert_if_absent(self, conn: Connection, event: CanonicalEvent, now: datetime) -> bool:
        row = {**event_to_row(event), "created_at": now, "updated_at": now}
        table = standardized_events_table
        dialect = conn.dialect.name
        if dialect in ("postgresql", "sqlite"):
            dialect_insert = postgresql.insert if dialect == "postgresql" else sqlite.insert
            stmt = dialect_insert(table).values(row).on_conflict_do_nothing(index_elements=["source", "source_id"])
            return conn.execute(stmt).rowcount == 1
        try:
            with conn.begin_nested():
                conn.execute(insert(table).values(row))
        except IntegrityError:
            return False
        return True

    @staticmethod
    def _build_new(candidate: EventCandidate, now: datetime) -> CanonicalEvent:
        missing = [name for name in REQUIRED_FOR_INSERT if getattr(candidate, name) is None]
        if missing:
            raise ValueError(f"new event is missing {', '.join(missing)}")
        event = CanonicalEvent(
            id=str(uuid.uuid4()),
            source=candidate.source,
            source_id=candidate.source_id,
            source_url=candidate.source_url,
            title=candidate.title,
            description=candidate.description or "",
            description_html=candidate.description_html,
            summary=candidate.summary,
            start_date=candidate.start_date,
            end_date=candidate.end_date,
            published_at=candidate.published_at,
            venue=candidate.venue or unconfirmed_venue(),
            ticketing=candidate.ticketing or Ticketing(),
            category=candidate.category or "other",
            genres=list(candidate.genres or []),
            tags=list(candidate.tags or []),
            lineup=list(candidate.lineup or []),
            organizer=candidate.organizer or Organizer(name=candidate.source),
            images=list(candidate.images or []),
            metadata=EventMetadata(
                scraped_at=candidate.scraped_at or now,
                last_checked_at=now,
                version=1,
                is_active=True,
            ),
        )
        event.metadata.quality_score = compute_quality_score(event)
        return event

    @staticmethod
    def _merge(existing: CanonicalEvent, candidate: EventCandidate, now: datetime) -> CanonicalEvent:
        provided = candidate.provided()
        scraped_at = provided.pop("scraped_at", None)
        merged = replace(existing, **provided)
        merged.metadata = EventMetadata(
            scraped_at=scraped_at or now,
            last_checked_at=now,
            version=existing.metadata.version + 1,
            is_active=existing.metadata.is_active,
        )
        merged.metadata.quality_score = compute_quality_score(merged)
        return merged

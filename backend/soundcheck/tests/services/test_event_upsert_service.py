from __future__ import annotations

from datetime import datetime, timedelta, timezone

from sqlalchemy import func, select

from soundcheck.domain.canonical import UNCONFIRMED_VENUE_NAME, EventCandidate, Ticketing
from soundcheck.infra.db import events_repository
from soundcheck.infra.db.tables import metadata, standardized_events_table
from soundcheck.services import event_upsert as event_upsert_module
from soundcheck.services.event_upsert import EventUpsertService


def _row_count(engine) -> int:
    with engine.begin() as conn:
        return conn.execute(select(func.count()).select_from(standardized_events_table)).scalar_one()


def test_first_upsert_inserts_version_one(engine, make_candidate):
    service = EventUpsertService(engine)
    event_id = service.upsert(make_candidate("evt-1"))

    stored = service.get_by_source("kktix", "evt-1")
    assert stored.id == event_id
    assert stored.metadata.version == 1
    assert stored.metadata.is_active is True
    assert stored.metadata.quality_score == 100
    assert stored.venue.name == "Legacy Taipei"
    assert stored.start_date.tzinfo is not None


def test_reingesting_same_listing_updates_in_place(engine, make_candidate):
    service = EventUpsertService(engine)
    candidate = make_candidate("evt-1")
    first_id = service.upsert(candidate)
    second_id = service.upsert(candidate)

    assert first_id == second_id
    assert _row_count(engine) == 1
    stored = service.get_by_source("kktix", "evt-1")
    assert stored.metadata.version == 2
    assert stored.metadata.last_checked_at >= stored.metadata.scraped_at - timedelta(seconds=1)


def test_candidate_fields_win_and_absent_fields_are_kept(engine, make_candidate):
    service = EventUpsertService(engine)
    service.upsert(make_candidate("evt-1"))
    partial = make_candidate(
        "evt-1",
        title="Updated title",
        ticketing=Ticketing(status="sold_out"),
        images=None,
        lineup=None,
        genres=None,
    )
    service.upsert(partial)

    stored = service.get_by_source("kktix", "evt-1")
    assert stored.title == "Updated title"
    assert stored.ticketing.status == "sold_out"
    assert stored.images[0].url == "https://img.example/cover.jpg"
    assert stored.lineup[0].name == "落日飛車"
    # sold-out ticketing without a price loses the pricing points
    assert stored.metadata.quality_score == 90


def test_same_source_id_on_different_sources_are_distinct(engine, make_candidate):
    service = EventUpsertService(engine)
    stats = service.upsert_many(
        [
            make_candidate("shared", source="kktix"),
            make_candidate("shared", source="accupass"),
            make_candidate("shared", source="kktix"),
        ]
    )
    assert stats == {"inserted": 2, "updated": 1, "failed": 0}
    assert _row_count(engine) == 2


def test_batch_counts_failures_and_continues(engine, make_candidate):
    service = EventUpsertService(engine)
    stats = service.upsert_many(
        [
            make_candidate("ok-1"),
            make_candidate("missing-dates", start_date=None, end_date=None),
            make_candidate("ok-2"),
        ]
    )
    assert stats == {"inserted": 2, "updated": 0, "failed": 1}
    assert service.get_by_source("kktix", "missing-dates") is None


def test_store_unreachable_is_an_item_failure(engine, make_candidate):
    service = EventUpsertService(engine)
    metadata.drop_all(engine)
    stats = service.upsert_many([make_candidate("a"), make_candidate("b")])
    assert stats == {"inserted": 0, "updated": 0, "failed": 2}
    metadata.create_all(engine)


def test_concurrent_insert_falls_back_to_update(engine, make_candidate, monkeypatch):
    service = EventUpsertService(engine)
    original_id = service.upsert(make_candidate("evt-race"))

    real_fetch = events_repository.fetch_by_source
    calls = {"n": 0}

    def racing_fetch(conn, source, source_id):
        calls["n"] += 1
        if calls["n"] == 1:
            return None
        return real_fetch(conn, source, source_id)

    monkeypatch.setattr(event_upsert_module, "fetch_by_source", racing_fetch)
    second_id = service.upsert(make_candidate("evt-race", title="Second writer"))

    assert second_id == original_id
    assert _row_count(engine) == 1
    stored = service.get_by_source("kktix", "evt-race")
    assert stored.title == "Second writer"
    assert stored.metadata.version == 2


def test_minimal_candidate_gets_defaults(engine):
    start = datetime.now(timezone.utc) + timedelta(days=3)
    service = EventUpsertService(engine)
    event_id = service.upsert(
        EventCandidate(source="kktix", source_id="abc123", title="Test Show", start_date=start, end_date=start)
    )

    stored = service.repository.get_event_by_id(event_id)
    assert stored.metadata.version == 1
    assert stored.metadata.is_active is True
    assert stored.venue.name == UNCONFIRMED_VENUE_NAME
    assert stored.category == "other"
    assert 0 <= stored.metadata.quality_score <= 100

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine

from soundcheck.domain.canonical import (
    Coordinates,
    EventCandidate,
    EventImage,
    LineupEntry,
    Organizer,
    PriceRange,
    Ticketing,
    Venue,
)
from soundcheck.infra.db.tables import metadata


class FakeLLMClient:
    """Returns canned JSON answers in order; the last one repeats."""

    def __init__(self, *responses):
        self.responses = list(responses) or ["{}"]
        self.calls: list[tuple[str, str]] = []

    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        self.calls.append((system_prompt, user_prompt))
        response = self.responses[min(len(self.calls), len(self.responses)) - 1]
        if isinstance(response, Exception):
            raise response
        if isinstance(response, dict):
            return json.dumps(response)
        return response


@pytest.fixture()
def engine(tmp_path):
    db_path = tmp_path / "events.db"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
        future=True,
    )
    metadata.create_all(engine)
    yield engine
    metadata.drop_all(engine)
    engine.dispose()


@pytest.fixture()
def fake_llm():
    return FakeLLMClient


@pytest.fixture()
def extraction_answer():
    def _build(start: datetime, end: datetime, **overrides) -> dict:
        payload = {
            "venue": {"name": "Legacy Taipei", "address": "八德路一段1號", "city": "台北", "district": "中正區"},
            "ticketing": {"isFree": False, "minPrice": 1200, "maxPrice": 1800, "status": "on_sale"},
            "category": "concert",
            "genres": ["indie", "rock"],
            "lineup": [{"name": "落日飛車", "role": "headliner", "order": 1}],
            "startDate": start.isoformat(),
            "endDate": end.isoformat(),
        }
        payload.update(overrides)
        return payload

    return _build


@pytest.fixture()
def make_candidate():
    def _build(source_id: str = "evt-1", *, source: str = "kktix", days_ahead: int = 10, **overrides) -> EventCandidate:
        start = datetime.now(timezone.utc).replace(microsecond=0) + timedelta(days=days_ahead)
        values = dict(
            source=source,
            source_id=source_id,
            source_url=f"https://example.kktix.cc/events/{source_id}",
            title="落日飛車 Sunset Rollercoaster Live",
            description="年度巡迴演唱會",
            summary="年度巡迴演唱會",
            start_date=start,
            end_date=start + timedelta(hours=3),
            venue=Venue(
                name="Legacy Taipei",
                address="八德路一段1號",
                city="台北",
                district="中正區",
                location=Coordinates(25.0443, 121.5298),
            ),
            ticketing=Ticketing(status="on_sale", price_range=PriceRange(min=1200, max=1800)),
            category="concert",
            genres=["indie"],
            tags=[],
            lineup=[LineupEntry(name="落日飛車", role="headliner", order=1)],
            organizer=Organizer(name="Legacy", organization_id="legacy"),
            images=[EventImage(url="https://img.example/cover.jpg", type="cover")],
            scraped_at=datetime.now(timezone.utc),
        )
        values.update(overrides)
        return EventCandidate(**values)

    return _build

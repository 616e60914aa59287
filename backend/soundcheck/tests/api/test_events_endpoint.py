from __future__ import annotations

from datetime import datetime, timedelta, timezone

from fastapi.testclient import TestClient

from soundcheck.api.main import create_app
from soundcheck.config import Settings
from soundcheck.domain.canonical import Coordinates, Venue
from soundcheck.services.event_upsert import EventUpsertService


def _seed(engine, make_candidate):
    service = EventUpsertService(engine)
    ids = {
        "late": service.upsert(make_candidate("late", days_ahead=20)),
        "early": service.upsert(make_candidate("early", days_ahead=5, category="festival")),
        "kaohsiung": service.upsert(
            make_candidate(
                "kaohsiung",
                days_ahead=10,
                venue=Venue(name="高雄巨蛋", city="高雄", location=Coordinates(22.7149, 120.3051)),
            )
        ),
        "expired": service.upsert(make_candidate("expired", days_ahead=-3)),
    }
    service.deactivate_expired()
    return ids


def test_list_is_ordered_by_start_and_hides_inactive(api_client, engine, make_candidate):
    _seed(engine, make_candidate)

    response = api_client.get("/api/events")

    assert response.status_code == 200
    data = response.json()
    assert [item["source_id"] for item in data] == ["early", "kaohsiung", "late"]
    first = data[0]
    assert {"id", "title", "venue", "ticketing", "metadata", "cover_image"}.issubset(first.keys())
    assert first["metadata"]["version"] == 1
    assert first["cover_image"] == "https://img.example/cover.jpg"


def test_list_filters(api_client, engine, make_candidate):
    _seed(engine, make_candidate)

    by_city = api_client.get("/api/events", params={"city": "高雄"}).json()
    assert [item["source_id"] for item in by_city] == ["kaohsiung"]

    by_category = api_client.get("/api/events", params={"category": "festival"}).json()
    assert [item["source_id"] for item in by_category] == ["early"]

    cutoff = (datetime.now(timezone.utc) + timedelta(days=15)).isoformat()
    until = api_client.get("/api/events", params={"end_date": cutoff}).json()
    assert [item["source_id"] for item in until] == ["early", "kaohsiung"]

    since = api_client.get("/api/events", params={"start_date": cutoff}).json()
    assert [item["source_id"] for item in since] == ["late"]


def test_pagination_and_inactive_override(api_client, engine, make_candidate):
    _seed(engine, make_candidate)

    page = api_client.get("/api/events", params={"limit": 1, "offset": 1}).json()
    assert [item["source_id"] for item in page] == ["kaohsiung"]

    everything = api_client.get("/api/events", params={"include_inactive": "true"}).json()
    assert [item["source_id"] for item in everything][0] == "expired"
    assert everything[0]["metadata"]["is_active"] is False

    assert api_client.get("/api/events", params={"limit": 500}).status_code == 422


def test_get_event_by_id(api_client, engine, make_candidate):
    ids = _seed(engine, make_candidate)

    response = api_client.get(f"/api/events/{ids['early']}")
    assert response.status_code == 200
    assert response.json()["category"] == "festival"

    assert api_client.get(f"/api/events/{ids['expired']}").status_code == 404
    assert api_client.get("/api/events/does-not-exist").status_code == 404


def test_get_inactive_event_when_requested(api_client, engine, make_candidate):
    ids = _seed(engine, make_candidate)

    response = api_client.get(f"/api/events/{ids['expired']}", params={"include_inactive": "true"})

    assert response.status_code == 200
    body = response.json()
    assert body["source_id"] == "expired"
    assert body["metadata"]["is_active"] is False


def test_unconfigured_store_answers_503():
    with TestClient(create_app(settings=Settings())) as client:
        response = client.get("/api/events")

    assert response.status_code == 503

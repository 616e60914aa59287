from datetime import datetime, timedelta, timezone

import pytest

from soundcheck.domain.canonical import (
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    UNCONFIRMED_VENUE_NAME,
    EventCandidate,
    Ticketing,
    Venue,
    normalize_category,
    normalize_ticket_status,
    to_utc,
)


def test_candidate_requires_known_source():
    with pytest.raises(ValueError):
        EventCandidate(source="ticketmaster", source_id="1")
    with pytest.raises(ValueError):
        EventCandidate(source="kktix", source_id="")


def test_candidate_converts_dates_to_utc():
    taipei = timezone(timedelta(hours=8))
    candidate = EventCandidate(
        source="kktix",
        source_id="abc",
        start_date=datetime(2026, 3, 1, 20, 0, tzinfo=taipei),
    )
    assert candidate.start_date == datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)
    assert candidate.start_date.utcoffset() == timedelta(0)


def test_candidate_provided_skips_absent_fields():
    candidate = EventCandidate(source="accupass", source_id="x", title="New title", category="weird")
    provided = candidate.provided()
    assert provided == {"title": "New title", "category": "other"}


def test_naive_datetimes_are_read_as_utc():
    assert to_utc(datetime(2026, 1, 1, 10)).tzinfo == timezone.utc


def test_category_and_status_normalization():
    assert normalize_category("CONCERT") == "concert"
    assert normalize_category(None) == "other"
    assert normalize_category("opera") == "other"
    assert normalize_ticket_status("coming_soon") == "upcoming"
    assert normalize_ticket_status(None) == "on_sale"
    assert normalize_ticket_status("whatever") == "unknown"


def test_venue_from_empty_dict_is_unconfirmed():
    venue = Venue.from_dict({})
    assert venue.name == UNCONFIRMED_VENUE_NAME
    assert not venue.is_confirmed
    assert (venue.location.latitude, venue.location.longitude) == (DEFAULT_LATITUDE, DEFAULT_LONGITUDE)


def test_ticketing_dict_round_trip_keeps_price_range():
    payload = {"status": "sold_out", "price_range": {"min": 500, "max": 900, "currency": "TWD"}, "is_free": False}
    ticketing = Ticketing.from_dict(payload)
    assert ticketing.status == "sold_out"
    assert ticketing.price_range.min == 500
    assert ticketing.as_dict()["price_range"]["max"] == 900

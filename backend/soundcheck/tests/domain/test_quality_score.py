from datetime import datetime, timezone

from soundcheck.domain.canonical import (
    CanonicalEvent,
    Coordinates,
    EventImage,
    EventMetadata,
    LineupEntry,
    Organizer,
    PriceRange,
    Ticketing,
    Venue,
    unconfirmed_venue,
)
from soundcheck.domain.quality import MAX_QUALITY_SCORE, QUALITY_WEIGHTS, compute_quality_score


def _event(**overrides) -> CanonicalEvent:
    now = datetime(2026, 5, 1, tzinfo=timezone.utc)
    values = dict(
        id="e1",
        source="indievox",
        source_id="123",
        title="Show",
        description="desc",
        start_date=now,
        end_date=now,
        venue=Venue(name="The Wall", location=Coordinates(25.0, 121.5)),
        ticketing=Ticketing(price_range=PriceRange(min=800, max=800)),
        organizer=Organizer(name="iNDIEVOX"),
        metadata=EventMetadata(scraped_at=now, last_checked_at=now),
        category="live_music",
        genres=["rock"],
        lineup=[LineupEntry(name="Band")],
        images=[EventImage(url="https://img/1.jpg")],
    )
    values.update(overrides)
    return CanonicalEvent(**values)


def test_default_weights_sum_to_max():
    assert sum(QUALITY_WEIGHTS.values()) == MAX_QUALITY_SCORE


def test_complete_event_scores_max():
    assert compute_quality_score(_event()) == 100


def test_score_is_deterministic():
    event = _event(genres=[], images=[])
    assert compute_quality_score(event) == compute_quality_score(event) == 80


def test_fallback_like_event_scores_low():
    event = _event(
        description="",
        venue=unconfirmed_venue(),
        ticketing=Ticketing(),
        category="other",
        genres=[],
        lineup=[],
        images=[],
    )
    # title, start date and default coordinates are still present
    assert compute_quality_score(event) == 30


def test_free_event_counts_as_priced():
    event = _event(ticketing=Ticketing(is_free=True))
    assert compute_quality_score(event) == 100


def test_custom_weights_are_clamped():
    heavy = {name: 50 for name in QUALITY_WEIGHTS}
    assert compute_quality_score(_event(), weights=heavy) == MAX_QUALITY_SCORE

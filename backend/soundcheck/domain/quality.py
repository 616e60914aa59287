from __future__ import annotations

from typing import Callable, Mapping, Optional

from .canonical import CanonicalEvent

# Points per completeness criterion; the default weights sum to 100
QUALITY_WEIGHTS = {
    "title": 10,
    "description": 10,
    "start_date": 10,
    "confirmed_venue": 10,
    "coordinates": 10,
    "pricing": 10,
    "images": 10,
    "lineup": 10,
    "genres": 10,
    "category": 10,
}

MAX_QUALITY_SCORE = 100


def _has_coordinates(event: CanonicalEvent) -> bool:
    location = event.venue.location
    return bool(location.latitude) and bool(location.longitude)


def _has_pricing(event: CanonicalEvent) -> bool:
    return event.ticketing.price_range.min > 0 or event.ticketing.is_free


CRITERIA: dict[str, Callable[[CanonicalEvent], bool]] = {
    "title": lambda event: bool(event.title),
    "description": lambda event: bool(event.description),
    "start_date": lambda event: event.start_date is not None,
    "confirmed_venue": lambda event: event.venue.is_confirmed,
    "coordinates": _has_coordinates,
    "pricing": _has_pricing,
    "images": lambda event: len(event.images) > 0,
    "lineup": lambda event: len(event.lineup) > 0,
    "genres": lambda event: len(event.genres) > 0,
    "category": lambda event: event.category != "other",
}


def compute_quality_score(event: CanonicalEvent, weights: Optional[Mapping[str, int]] = None) -> int:
    weights = QUALITY_WEIGHTS if weights is None else weights
    score = 0
    for name, check in CRITERIA.items():
        if check(event):
            score += weights.get(name, 0)
    return max(0, min(MAX_QUALITY_SCORE, score))


from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import datetime, timezone
from typing import Any, List, Optional
from zoneinfo import ZoneInfo

TAIPEI_TZ = ZoneInfo("Asia/Taipei")

EVENT_SOURCES = ("kktix", "indievox", "accupass", "tixcraft", "ibon", "manual")
EVENT_CATEGORIES = (
    "concert",
    "festival",
    "club_event",
    "live_music",
    "dj_set",
    "workshop",
    "conference",
    "party",
    "other",
)
TICKET_STATUSES = ("on_sale", "sold_out", "upcoming", "unknown")
# Values seen in provider pages / model output that map onto TICKET_STATUSES
TICKET_STATUS_ALIASES = {
    "onsale": "on_sale",
    "on-sale": "on_sale",
    "coming_soon": "upcoming",
    "coming-soon": "upcoming",
    "soldout": "sold_out",
    "sold-out": "sold_out",
}

# Unresolved venues land here: 台北 city centre
DEFAULT_LATITUDE = 25.0330
DEFAULT_LONGITUDE = 121.5654
DEFAULT_CITY = "台北"
DEFAULT_CURRENCY = "TWD"
UNCONFIRMED_VENUE_NAME = "待確認"


def to_utc(dt: datetime) -> datetime:
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt.astimezone(timezone.utc)


def normalize_category(value: Optional[str]) -> str:
    if not value:
        return "other"
    key = str(value).strip().lower().replace("-", "_").replace(" ", "_")
    return key if key in EVENT_CATEGORIES else "other"


def normalize_ticket_status(value: Optional[str]) -> str:
    if not value:
        return "on_sale"
    key = str(value).strip().lower()
    key = TICKET_STATUS_ALIASES.get(key, key)
    return key if key in TICKET_STATUSES else "unknown"


@dataclass
class Coordinates:
    latitude: float
    longitude: float

    def as_dict(self) -> dict:
        return {"latitude": self.latitude, "longitude": self.longitude}


@dataclass
class Venue:
    name: str
    location: Coordinates
    address: str = ""
    city: str = DEFAULT_CITY
    district: Optional[str] = None
    capacity: Optional[int] = None
    venue_type: Optional[str] = None

    @property
    def is_confirmed(self) -> bool:
        return bool(self.name) and self.name != UNCONFIRMED_VENUE_NAME

    def as_dict(self) -> dict:
        return {
            "name": self.name,
            "address": self.address,
            "city": self.city,
            "district": self.district,
            "location": self.location.as_dict(),
            "capacity": self.capacity,
            "venue_type": self.venue_type,
        }

    @classmethod
    def from_dict(cls, payload: Optional[dict]) -> "Venue":
        if not payload:
            return unconfirmed_venue()
        location = payload.get("location") or {}
        return cls(
            name=payload.get("name") or UNCONFIRMED_VENUE_NAME,
            address=payload.get("address") or "",
            city=payload.get("city") or DEFAULT_CITY,
            district=payload.get("district"),
            location=Coordinates(
                latitude=float(location.get("latitude", DEFAULT_LATITUDE)),
                longitude=float(location.get("longitude", DEFAULT_LONGITUDE)),
            ),
            capacity=payload.get("capacity"),
            venue_type=payload.get("venue_type"),
        )


def unconfirmed_venue() -> Venue:
    return Venue(
        name=UNCONFIRMED_VENUE_NAME,
        address="",
        city=DEFAULT_CITY,
        location=Coordinates(DEFAULT_LATITUDE, DEFAULT_LONGITUDE),
    )


@dataclass
class PriceRange:
    min: float = 0
    max: float = 0
    currency: str = DEFAULT_CURRENCY


@dataclass
class Ticketing:
    status: str = "on_sale"
    price_range: PriceRange = field(default_factory=PriceRange)
    is_free: bool = False
    ticket_url: Optional[str] = None
    ticket_platform: Optional[str] = None

    def as_dict(self) -> dict:
        return {
            "status": self.status,
            "price_range": {
                "min": self.price_range.min,
                "max": self.price_range.max,
                "currency": self.price_range.currency,
            },
            "is_free": self.is_free,
            "ticket_url": self.ticket_url,
            "ticket_platform": self.ticket_platform,
        }

    @classmethod
    def from_dict(cls, payload: Optional[dict]) -> "Ticketing":
        if not payload:
            return cls()
        price = payload.get("price_range") or {}
        return cls(
            status=normalize_ticket_status(payload.get("status")),
            price_range=PriceRange(
                min=price.get("min", 0) or 0,
                max=price.get("max", 0) or 0,
                currency=price.get("currency") or DEFAULT_CURRENCY,
            ),
            is_free=bool(payload.get("is_free", False)),
            ticket_url=payload.get("ticket_url"),
            ticket_platform=payload.get("ticket_platform"),
        )


@dataclass
class LineupEntry:
    name: str
    role: Optional[str] = None
    order: Optional[int] = None

    def as_dict(self) -> dict:
        return {"name": self.name, "role": self.role, "order": self.order}


@dataclass
class Organizer:
    name: str
    organization_id: Optional[str] = None

    def as_dict(self) -> dict:
        return {"name": self.name, "organization_id": self.organization_id}


@dataclass
class EventImage:
    url: str
    type: str = "cover"

    def as_dict(self) -> dict:
        return {"url": self.url, "type": self.type}


@dataclass
class EventMetadata:
    scraped_at: datetime
    last_checked_at: datetime
    version: int = 1
    is_active: bool = True
    quality_score: int = 0


@dataclass
class CanonicalEvent:
    id: str
    source: str
    source_id: str
    title: str
    description: str
    start_date: datetime
    end_date: datetime
    venue: Venue
    ticketing: Ticketing
    organizer: Organizer
    metadata: EventMetadata
    source_url: Optional[str] = None
    published_at: Optional[datetime] = None
    description_html: Optional[str] = None
    summary: Optional[str] = None
    category: str = "other"
    genres: List[str] = field(default_factory=list)
    tags: List[str] = field(default_factory=list)
    lineup: List[LineupEntry] = field(default_factory=list)
    images: List[EventImage] = field(default_factory=list)

    @property
    def cover_image(self) -> Optional[EventImage]:
        for image in self.images:
            if image.type == "cover":
                return image
        return None


@dataclass
class EventCandidate:
    """One provider listing ready for the store.

    Only ``source`` and ``source_id`` are mandatory; any other field left as
    ``None`` keeps whatever the stored record already holds.
    """

    source: str
    source_id: str
    source_url: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    description_html: Optional[str] = None
    summary: Optional[str] = None
    start_date: Optional[datetime] = None
    end_date: Optional[datetime] = None
    published_at: Optional[datetime] = None
    venue: Optional[Venue] = None
    ticketing: Optional[Ticketing] = None
    category: Optional[str] = None
    genres: Optional[List[str]] = None
    tags: Optional[List[str]] = None
    lineup: Optional[List[LineupEntry]] = None
    organizer: Optional[Organizer] = None
    images: Optional[List[EventImage]] = None
    scraped_at: Optional[datetime] = None

    def __post_init__(self):
        if not self.source or not self.source_id:
            raise ValueError("source and source_id are required")
        if self.source not in EVENT_SOURCES:
            raise ValueError(f"Unknown event source '{self.source}'")
        for name in ("start_date", "end_date", "published_at", "scraped_at"):
            value = getattr(self, name)
            if value is not None:
                setattr(self, name, to_utc(value))
        if self.category is not None:
            self.category = normalize_category(self.category)

    def provided(self) -> dict[str, Any]:
        skip = {"source", "source_id"}
        return {
            f.name: getattr(self, f.name)
            for f in fields(self)
            if f.name not in skip and getattr(self, f.name) is not None
        }

from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, List, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, field_validator

from soundcheck.domain.canonical import (
    DEFAULT_CITY,
    DEFAULT_CURRENCY,
    DEFAULT_LATITUDE,
    DEFAULT_LONGITUDE,
    TAIPEI_TZ,
    UNCONFIRMED_VENUE_NAME,
    Coordinates,
    LineupEntry,
    PriceRange,
    Ticketing,
    Venue,
    normalize_category,
    normalize_ticket_status,
    to_utc,
    unconfirmed_venue,
)
from soundcheck.services.geocoding import Geocoder
from soundcheck.services.venue_resolver import VenueResolver

logger = logging.getLogger(__name__)

CONTENT_LIMIT = 3000

SYSTEM_PROMPT = (
    "You extract structured information about Taiwanese music events. "
    "Reply with a single JSON object only. Local time is Asia/Taipei (UTC+8)."
)

USER_PROMPT_TEMPLATE = """Extract the following from the event listing below and return JSON.

Event title: {title}
Event content:
{content}

Fields:
1. venue: object with name, address, city (e.g. 台北/台中/高雄), district (e.g. 大安區)
2. ticketing: object with isFree (boolean), minPrice (number, 0 when free), maxPrice (number, 0 when free),
   status (on_sale/sold_out/coming_soon)
3. category: one of concert/festival/live_music/dj_set/club_event/workshop/conference/party/other
4. genres: array of music genres, e.g. ["indie", "rock", "electronic"]
5. lineup: array of objects with name, role (e.g. vocalist, DJ, guest) and order (performance order)
6. startDate: event start in ISO 8601, e.g. 2026-02-13T20:00:00+08:00
7. endDate: event end in ISO 8601

Use null or an empty array for anything that cannot be found.
"""


class TextExtractionClient(Protocol):
    def complete_json(self, system_prompt: str, user_prompt: str) -> str:
        ...


def _clean_text(value: Any) -> Optional[str]:
    if value is None or isinstance(value, (dict, list)):
        return None
    text = str(value).strip()
    return text or None


def _parse_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        text = value.strip()
        if text.endswith("Z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=TAIPEI_TZ)
    return to_utc(parsed)


class VenuePayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None

    @field_validator("name", "address", "city", "district", mode="before")
    @classmethod
    def _text(cls, value):
        return _clean_text(value)


class TicketingPayload(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    is_free: Optional[bool] = Field(default=None, alias="isFree")
    min_price: Optional[float] = Field(default=None, alias="minPrice")
    max_price: Optional[float] = Field(default=None, alias="maxPrice")
    status: Optional[str] = None

    @field_validator("is_free", mode="before")
    @classmethod
    def _flag(cls, value):
        if isinstance(value, bool):
            return value
        if isinstance(value, str):
            return value.strip().lower() in {"true", "yes", "1", "free"}
        if isinstance(value, (int, float)):
            return bool(value)
        return None

    @field_validator("min_price", "max_price", mode="before")
    @classmethod
    def _price(cls, value):
        if value is None or isinstance(value, bool):
            return None
        try:
            price = float(str(value).replace(",", "").strip())
        except ValueError:
            return None
        return price if price >= 0 else None

    @field_validator("status", mode="before")
    @classmethod
    def _status(cls, value):
        return _clean_text(value)


class LineupPayload(BaseModel):
    model_config = ConfigDict(extra="ignore")

    name: str
    role: Optional[str] = None
    order: Optional[int] = None

    @field_validator("role", mode="before")
    @classmethod
    def _role(cls, value):
        return _clean_text(value)

    @field_validator("order", mode="before")
    @classmethod
    def _order(cls, value):
        try:
            return int(value)
        except (TypeError, ValueError):
            return None


class ExtractionPayload(BaseModel):
    """Shape of the model's JSON answer; bad values degrade field by field."""

    model_config = ConfigDict(extra="ignore", populate_by_name=True)

    venue: Optional[VenuePayload] = None
    ticketing: Optional[TicketingPayload] = None
    category: Optional[str] = None
    genres: List[str] = Field(default_factory=list)
    lineup: List[LineupPayload] = Field(default_factory=list)
    start_date: Optional[datetime] = Field(default=None, alias="startDate")
    end_date: Optional[datetime] = Field(default=None, alias="endDate")

    @field_validator("venue", "ticketing", mode="before")
    @classmethod
    def _object(cls, value):
        return value if isinstance(value, dict) else None

    @field_validator("category", mode="before")
    @classmethod
    def _category(cls, value):
        return _clean_text(value)

    @field_validator("genres", mode="before")
    @classmethod
    def _genres(cls, value):
        if not isinstance(value, list):
            return []
        genres: List[str] = []
        for item in value:
            text = _clean_text(item)
            if text and text not in genres:
                genres.append(text)
        return genres

    @field_validator("lineup", mode="before")
    @classmethod
    def _lineup(cls, value):
        if not isinstance(value, list):
            return []
        entries = []
        for item in value:
            if isinstance(item, str) and item.strip():
                entries.append({"name": item.strip()})
            elif isinstance(item, dict) and _clean_text(item.get("name")):
                entries.append({**item, "name": _clean_text(item.get("name"))})
        return entries

    @field_validator("start_date", "end_date", mode="before")
    @classmethod
    def _dates(cls, value):
        return _parse_datetime(value)


@dataclass
class PartialEventFields:
    venue: Venue
    ticketing: Ticketing
    category: str
    start_date: datetime
    end_date: datetime
    genres: List[str] = field(default_factory=list)
    lineup: List[LineupEntry] = field(default_factory=list)
    degraded: bool = False


def fallback_fields(now: datetime, ticket_platform: Optional[str] = None) -> PartialEventFields:
    return PartialEventFields(
        venue=unconfirmed_venue(),
        ticketing=Ticketing(
            status="on_sale",
            price_range=PriceRange(min=0, max=0, currency=DEFAULT_CURRENCY),
            is_free=False,
            ticket_platform=ticket_platform,
        ),
        category="other",
        start_date=now,
        end_date=now,
        genres=[],
        lineup=[],
        degraded=True,
    )


class FieldExtractor:
    def __init__(
        self,
        client: TextExtractionClient,
        resolver: Optional[VenueResolver] = None,
        geocoder: Optional[Geocoder] = None,
        *,
        content_limit: int = CONTENT_LIMIT,
        clock: Optional[Callable[[], datetime]] = None,
    ):
        self.client = client
        self.resolver = resolver or VenueResolver()
        self.geocoder = geocoder
        self.content_limit = content_limit
        self._clock = clock or (lambda: datetime.now(timezone.utc))

    def extract(
        self,
        raw_text: str,
        title: str,
        *,
        ticket_platform: Optional[str] = None,
    ) -> PartialEventFields:
        prompt = USER_PROMPT_TEMPLATE.format(
            title=title or "",
            content=(raw_text or "")[: self.content_limit],
        )
        try:
            raw = self.client.complete_json(SYSTEM_PROMPT, prompt)
            payload = self.parse_response(raw)
        except Exception as exc:
            logger.warning("Field extraction failed for %r: %s", title, exc)
            return fallback_fields(self._clock(), ticket_platform=ticket_platform)
        return self._materialize(payload, ticket_platform=ticket_platform)

    @staticmethod
    def parse_response(raw: str) -> ExtractionPayload:
        data = json.loads(raw)
        if not isinstance(data, dict):
            raise ValueError("extraction response is not a JSON object")
        return ExtractionPayload.model_validate(data)

    def _materialize(self, payload: ExtractionPayload, *, ticket_platform: Optional[str]) -> PartialEventFields:
        now = self._clock()
        start = payload.start_date or now
        # A listing with a start but no end is treated as ending when it starts
        end = payload.end_date or (payload.start_date if payload.start_date else now)
        return PartialEventFields(
            venue=self._build_venue(payload.venue),
            ticketing=self._build_ticketing(payload.ticketing, ticket_platform),
            category=normalize_category(payload.category),
            start_date=start,
            end_date=end,
            genres=list(payload.genres),
            lineup=[LineupEntry(name=item.name, role=item.role, order=item.order) for item in payload.lineup],
        )

    def _build_venue(self, payload: Optional[VenuePayload]) -> Venue:
        if payload is None:
            return unconfirmed_venue()
        location = Coordinates(DEFAULT_LATITUDE, DEFAULT_LONGITUDE)
        city = payload.city
        district = payload.district
        if payload.name:
            record = self.resolver.resolve(payload.name)
            if record is not None:
                location = Coordinates(record.latitude, record.longitude)
                city = city or record.city
                district = district or record.district
                logger.debug("Found venue coordinates: %s", payload.name)
            elif self.geocoder is not None:
                result = self.geocoder.geocode_address(payload.name, payload.address, city)
                if result is not None:
                    location = Coordinates(result.latitude, result.longitude)
            else:
                logger.debug("Venue not in database: %s, using default coordinates", payload.name)
        return Venue(
            name=payload.name or UNCONFIRMED_VENUE_NAME,
            address=payload.address or "",
            city=city or DEFAULT_CITY,
            district=district,
            location=location,
        )

    @staticmethod
    def _build_ticketing(payload: Optional[TicketingPayload], ticket_platform: Optional[str]) -> Ticketing:
        payload = payload or TicketingPayload()
        return Ticketing(
            status=normalize_ticket_status(payload.status),
            price_range=PriceRange(
                min=payload.min_price or 0,
                max=payload.max_price or 0,
                currency=DEFAULT_CURRENCY,
            ),
            is_free=bool(payload.is_free),
            ticket_platform=ticket_platform,
        )

from __future__ import annotations

import logging
import re
import threading
import time
from dataclasses import dataclass
from typing import Callable, Dict, Iterable, Optional, Tuple

from soundcheck.infra.geo.nominatim_client import NominatimClient

logger = logging.getLogger(__name__)

DEFAULT_GEOCODE_REGION = "台灣"


@dataclass(frozen=True)
class GeocodeResult:
    latitude: float
    longitude: float
    display_name: str
    city: str


def venue_signature(venue_name: str, address: Optional[str], city: Optional[str]) -> str:
    parts = []
    for value in (venue_name, address, city):
        text = re.sub(r"\s+", " ", (value or "").strip().lower())
        parts.append(text)
    return "|".join(parts)


class GeocodeCache:
    """Thread-safe map of venue signature -> geocoding answer.

    ``None`` is a valid stored answer (the service had no match). Entries are
    never overwritten; the first writer wins.
    """

    def __init__(self) -> None:
        self._entries: Dict[str, Optional[GeocodeResult]] = {}
        self._lock = threading.Lock()

    def lookup(self, key: str) -> Tuple[bool, Optional[GeocodeResult]]:
        with self._lock:
            if key in self._entries:
                return True, self._entries[key]
        return False, None

    def get_or_insert(self, key: str, value: Optional[GeocodeResult]) -> Optional[GeocodeResult]:
        with self._lock:
            if key not in self._entries:
                self._entries[key] = value
            return self._entries[key]

    def clear(self) -> None:
        with self._lock:
            self._entries.clear()

    def stats(self) -> dict:
        with self._lock:
            return {"size": len(self._entries), "keys": list(self._entries.keys())}

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)


class Geocoder:
    def __init__(
        self,
        client: Optional[NominatimClient] = None,
        cache: Optional[GeocodeCache] = None,
        *,
        delay: float = 1.0,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.client = client or NominatimClient()
        self.cache = cache if cache is not None else GeocodeCache()
        self.delay = delay
        self._sleep = sleep
        self._clock = clock
        self._last_call: Optional[float] = None
        self._throttle_lock = threading.Lock()
        self.external_calls = 0

    def geocode_address(
        self,
        venue_name: str,
        address: Optional[str] = None,
        city: Optional[str] = None,
    ) -> Optional[GeocodeResult]:
        if not venue_name:
            return None
        city = city or DEFAULT_GEOCODE_REGION
        key = venue_signature(venue_name, address, city)
        hit, cached = self.cache.lookup(key)
        if hit:
            logger.debug("Using cached geocoding for %s", venue_name)
            return cached

        query = f"{venue_name}, {address}, {city}" if address else f"{venue_name}, {city}"
        self._throttle()
        try:
            matches = self.client.search(query)
        except Exception as exc:
            logger.warning("Geocoding error for %s: %s", venue_name, exc)
            return None

        result = self._parse_match(matches, venue_name=venue_name, address=address, city=city)
        if result is None:
            logger.warning("No geocoding result for: %s", query)
        return self.cache.get_or_insert(key, result)

    def geocode_addresses(self, venues: Iterable[dict]) -> Dict[str, GeocodeResult]:
        results: Dict[str, GeocodeResult] = {}
        for venue in venues:
            name = venue.get("name")
            if not name:
                continue
            result = self.geocode_address(name, venue.get("address"), venue.get("city"))
            if result is not None:
                results[name] = result
        return results

    def _throttle(self) -> None:
        with self._throttle_lock:
            now = self._clock()
            if self._last_call is not None:
                wait = self.delay - (now - self._last_call)
                if wait > 0:
                    self._sleep(wait)
                    now = self._clock()
            self._last_call = now
            self.external_calls += 1

    @staticmethod
    def _parse_match(
        matches: list,
        *,
        venue_name: str,
        address: Optional[str],
        city: str,
    ) -> Optional[GeocodeResult]:
        if not matches:
            return None
        first = matches[0]
        try:
            lat = float(first.get("lat"))
            lon = float(first.get("lon"))
        except (TypeError, ValueError, AttributeError):
            return None
        return GeocodeResult(
            latitude=lat,
            longitude=lon,
            display_name=first.get("display_name") or address or venue_name,
            city=city,
        )

from __future__ import annotations

from collections import Counter
from typing import Dict, Iterable, Mapping, Optional

from soundcheck.domain.venues import VENUE_ALIASES, VENUE_DATABASE, VenueRecord


class VenueResolver:
    """Maps free-text venue names onto the static venue table.

    Lookup order is exact key, case-insensitive substring in either direction,
    then the alias table. A miss returns ``None``; callers fall back to the
    default coordinates.
    """

    def __init__(
        self,
        venues: Optional[Mapping[str, VenueRecord]] = None,
        aliases: Optional[Mapping[str, str]] = None,
    ):
        self.venues = dict(VENUE_DATABASE if venues is None else venues)
        self.aliases = dict(VENUE_ALIASES if aliases is None else aliases)

    def resolve(self, venue_name: Optional[str]) -> Optional[VenueRecord]:
        if not venue_name:
            return None
        name = venue_name.strip()
        if not name:
            return None

        if name in self.venues:
            return self.venues[name]

        normalized = name.lower()
        for key, record in self.venues.items():
            candidate = key.lower()
            if candidate in normalized or normalized in candidate:
                return record

        for alias, key in self.aliases.items():
            if alias.lower() in normalized:
                return self.venues.get(key)

        return None

    def resolve_many(self, venue_names: Iterable[str]) -> Dict[str, VenueRecord]:
        results: Dict[str, VenueRecord] = {}
        for name in venue_names:
            record = self.resolve(name)
            if record is not None:
                results[name] = record
        return results

    def stats(self) -> dict:
        cities = Counter(record.city for record in self.venues.values())
        return {"total_venues": len(self.venues), "city_counts": dict(cities)}

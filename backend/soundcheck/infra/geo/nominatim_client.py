from __future__ import annotations

from typing import List, Optional

import httpx


class NominatimClient:
    BASE_URL = "https://nominatim.openstreetmap.org/search"

    def __init__(
        self,
        timeout: float = 5.0,
        user_agent: str = "SoundCheck-Scraper/1.0",
        country_codes: str = "tw",
        client: Optional[httpx.Client] = None,
    ):
        self.timeout = timeout
        self.user_agent = user_agent
        self.country_codes = country_codes
        self._client = client

    def search(self, query: str) -> List[dict]:
        params = {
            "q": query,
            "format": "json",
            "limit": 1,
            "countrycodes": self.country_codes,
        }
        headers = {"User-Agent": self.user_agent}
        if self._client is not None:
            resp = self._client.get(self.BASE_URL, params=params, headers=headers, timeout=self.timeout)
            resp.raise_for_status()
            data = resp.json()
        else:
            with httpx.Client(timeout=self.timeout) as client:
                resp = client.get(self.BASE_URL, params=params, headers=headers)
                resp.raise_for_status()
                data = resp.json()
        if not isinstance(data, list):
            return []
        return data

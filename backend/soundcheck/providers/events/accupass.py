from __future__ import annotations

import logging
import re
from typing import List, Optional, Sequence

import httpx
from bs4 import BeautifulSoup

from .base import BODY_LIMIT, BaseCollector, ListingItem, RawListing, first_attr, soup_text

logger = logging.getLogger(__name__)

SEARCH_URL = "https://www.accupass.com/search"
MUSIC_CATEGORY = "4"
EVENT_URL = "https://www.accupass.com/event/{event_id}"
EVENT_ID_RE = re.compile(r"/event/([^/?&#]+)")

SEARCH_QUERIES = (
    "演唱會",
    "音樂會",
    "音樂節",
    "live house",
    "live music",
    "搖滾",
    "流行音樂",
    "獨立音樂",
    "民謠",
    "爵士",
    "DJ",
    "電子音樂",
    "EDM",
    "techno",
    "house music",
    "嘉年華",
    "跨年",
    "春天吶喊",
    "貢寮",
    "古典音樂",
    "交響樂",
    "室內樂",
    "歌劇",
)

DESCRIPTION_SELECTOR = ".event-content, .event-description, .activity-content, article"
META_IMAGE_SELECTORS = ["meta[property='og:image']", "meta[name='twitter:image']"]
BANNER_IMG_SELECTORS = [
    ".event-banner img",
    ".event-cover img",
    "img[alt='event-banner']",
    "img[src*='eventbanner']",
    "img[src*='static.accupass']",
]
DESCRIPTION_FALLBACK_LIMIT = 2000


class AccupassCollector(BaseCollector):
    """Runs a fixed list of music search queries against Accupass."""

    source = "accupass"
    display_name = "Accupass"
    origin = "https://www.accupass.com"
    base_tags = ("accupass", "taiwan")
    default_max_items = 30

    def __init__(
        self,
        extractor,
        *,
        queries: Sequence[str] = SEARCH_QUERIES,
        search_delay: float = 2.0,
        **kwargs,
    ):
        super().__init__(extractor, **kwargs)
        self.queries = tuple(queries)
        self.search_delay = search_delay

    def discover(self) -> list[ListingItem]:
        items: List[ListingItem] = []
        seen = set()
        failures = 0
        last_error: Optional[Exception] = None
        for idx, query in enumerate(self.queries):
            if idx and self.search_delay > 0:
                self._sleep(self.search_delay)
            try:
                resp = self._get(SEARCH_URL, params={"q": query, "category": MUSIC_CATEGORY})
            except httpx.HTTPError as exc:
                failures += 1
                last_error = exc
                logger.warning("[accupass] Search failed for %s: %s", query, exc)
                continue
            found = 0
            for item in self.parse_search(resp.text, query):
                if item.source_id in seen:
                    continue
                seen.add(item.source_id)
                items.append(item)
                found += 1
            logger.info("[accupass] Found %d new events for query %s", found, query)
        if self.queries and failures == len(self.queries) and last_error is not None:
            raise last_error
        return items

    def parse_search(self, html: str, query: str) -> List[ListingItem]:
        soup = BeautifulSoup(html, "html.parser")
        items: List[ListingItem] = []
        for link in soup.select('a[href*="/event/"]'):
            match = EVENT_ID_RE.search(link.get("href") or "")
            if not match:
                continue
            title = link.get_text(" ", strip=True)
            if len(title) <= 3:
                continue
            event_id = match.group(1)
            items.append(
                ListingItem(
                    source_id=event_id,
                    title=title,
                    url=EVENT_URL.format(event_id=event_id),
                    tags=[query],
                )
            )
        return items

    def fetch_detail(self, item: ListingItem) -> Optional[RawListing]:
        resp = self._get(item.url)
        return self.parse_detail(resp.text, item)

    def parse_detail(self, html: str, item: ListingItem) -> RawListing:
        soup = BeautifulSoup(html, "html.parser")
        og_title = first_attr(soup, ["meta[property='og:title']"], "content")
        image_url = first_attr(soup, META_IMAGE_SELECTORS, "content") or first_attr(soup, BANNER_IMG_SELECTORS, "src")
        nodes = soup.select(DESCRIPTION_SELECTOR)
        description = " ".join(soup_text(node) for node in nodes).strip()
        description_html = nodes[0].decode_contents() if nodes else None
        body_node = soup.body or soup
        raw_content = soup_text(body_node)
        title = (og_title or item.title).strip()
        return RawListing(
            source_id=item.source_id,
            title=title,
            body=raw_content[:BODY_LIMIT],
            image_url=self._absolute(image_url),
            url=item.url,
            description=description or raw_content[:DESCRIPTION_FALLBACK_LIMIT] or title,
            description_html=description_html,
            tags=list(item.tags),
        )

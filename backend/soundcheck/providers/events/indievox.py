from __future__ import annotations

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup

from .base import BODY_LIMIT, BaseCollector, ListingItem, RawListing, first_attr, soup_text

logger = logging.getLogger(__name__)

LIST_URL = "https://www.indievox.com/activity/list"
ACTIVITY_ID_RE = re.compile(r"/activity/detail/([^/?#]+)")

DESCRIPTION_SELECTOR = ".tab-pane.active, .event-info, .activity-content, #activityInfo"
META_IMAGE_SELECTORS = [
    "meta[property='og:image']",
]
POSTER_IMG_SELECTORS = [
    ".event-poster img",
    ".activity-poster img",
    ".main-image img",
    "img[src*='activity']",
    "img[src*='indievox.static']",
    "img[src*='tixcraft']",
]


class IndievoxCollector(BaseCollector):
    source = "indievox"
    display_name = "iNDIEVOX"
    origin = "https://www.indievox.com"
    base_tags = ("indievox", "taiwan", "live")
    default_max_items = 20

    def discover(self) -> list[ListingItem]:
        # Errors on the list page propagate; the whole provider is unreachable.
        resp = self._get(LIST_URL)
        items = self.parse_list(resp.text)
        logger.info("[indievox] Found %d events", len(items))
        return items

    def parse_list(self, html: str) -> List[ListingItem]:
        soup = BeautifulSoup(html, "html.parser")
        items: List[ListingItem] = []
        seen = set()
        for link in soup.select('a[href*="/activity/detail/"]'):
            href = link.get("href") or ""
            match = ACTIVITY_ID_RE.search(href)
            if not match:
                continue
            activity_id = match.group(1)
            if activity_id in seen:
                continue
            heading = link.select_one("h5, h4, .title, .event-title")
            title = (heading.get_text(" ", strip=True) if heading else link.get_text(" ", strip=True)).strip()
            if not title:
                continue
            seen.add(activity_id)
            date_node = link.select_one(".date, time, .event-date")
            thumb = link.find("img")
            items.append(
                ListingItem(
                    source_id=activity_id,
                    title=title,
                    url=self._absolute(href),
                    image_url=self._absolute(thumb.get("src")) if thumb is not None else None,
                    extra={"date_text": date_node.get_text(" ", strip=True) if date_node else ""},
                )
            )
        return items

    def fetch_detail(self, item: ListingItem) -> Optional[RawListing]:
        resp = self._get(item.url)
        return self.parse_detail(resp.text, item)

    def parse_detail(self, html: str, item: ListingItem) -> RawListing:
        soup = BeautifulSoup(html, "html.parser")
        image_url = self._poster(soup) or item.image_url
        nodes = soup.select(DESCRIPTION_SELECTOR)
        description = " ".join(soup_text(node) for node in nodes).strip()
        description_html = nodes[0].decode_contents() if nodes else None
        date_text = item.extra.get("date_text") or ""
        body = "\n".join(part for part in (date_text, description) if part)
        return RawListing(
            source_id=item.source_id,
            title=item.title,
            body=body[:BODY_LIMIT],
            image_url=image_url,
            url=item.url,
            description=description or item.title,
            description_html=description_html,
        )

    def _poster(self, soup: BeautifulSoup) -> Optional[str]:
        url = first_attr(soup, META_IMAGE_SELECTORS, "content") or first_attr(soup, POSTER_IMG_SELECTORS, "src")
        return self._absolute(url)

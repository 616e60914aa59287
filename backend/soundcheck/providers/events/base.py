from __future__ import annotations

import logging
import re
import time
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Callable, List, Optional, Tuple
from urllib.parse import urljoin

import httpx
from bs4 import BeautifulSoup

from soundcheck.config import DEFAULT_USER_AGENT
from soundcheck.domain.canonical import EventCandidate, EventImage, Organizer
from soundcheck.services.field_extractor import FieldExtractor, PartialEventFields

logger = logging.getLogger(__name__)

BODY_LIMIT = 5000
SUMMARY_LIMIT = 200

# A detail page that cannot be fetched or parsed is skipped, not fatal.
DETAIL_ERRORS = (
    httpx.HTTPError,
    httpx.InvalidURL,
    ValueError,
    AttributeError,
    TypeError,
    KeyError,
    IndexError,
)


@dataclass
class ListingItem:
    source_id: str
    title: str
    url: str
    image_url: Optional[str] = None
    tags: List[str] = field(default_factory=list)
    extra: dict = field(default_factory=dict)


@dataclass
class RawListing:
    """Detail content for one listing, as handed to the field extractor."""

    source_id: str
    title: str
    body: str
    image_url: Optional[str] = None
    url: Optional[str] = None
    description: str = ""
    description_html: Optional[str] = None
    summary: Optional[str] = None
    images: List[EventImage] = field(default_factory=list)
    published_at: Optional[datetime] = None
    organizer: Optional[Organizer] = None
    tags: List[str] = field(default_factory=list)


@dataclass
class FetchReport:
    listings: List[RawListing] = field(default_factory=list)
    failures: int = 0
    aborted: bool = False


@dataclass
class CandidateBatch:
    candidates: List[EventCandidate] = field(default_factory=list)
    skipped_past: int = 0
    skipped_degraded: int = 0


@dataclass
class CollectorResult:
    source: str
    candidates: List[EventCandidate] = field(default_factory=list)
    discovered: int = 0
    fetched: int = 0
    fetch_failures: int = 0
    skipped_past: int = 0
    skipped_degraded: int = 0
    aborted: bool = False


class BaseCollector:
    """One provider catalog: discover listings, fetch details, extract fields."""

    source: str = ""
    display_name: str = ""
    origin: str = ""
    base_tags: Tuple[str, ...] = ()
    default_max_items: int = 20

    def __init__(
        self,
        extractor: FieldExtractor,
        *,
        client: Optional[httpx.Client] = None,
        user_agent: str = DEFAULT_USER_AGENT,
        timeout: float = 15.0,
        detail_delay: float = 1.5,
        max_items: Optional[int] = None,
        max_consecutive_failures: int = 5,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.extractor = extractor
        self.user_agent = user_agent
        self.timeout = timeout
        self.detail_delay = detail_delay
        self.max_items = max_items if max_items is not None else self.default_max_items
        self.max_consecutive_failures = max_consecutive_failures
        self._sleep = sleep
        self._client = client
        self._owns_client = client is None

    # -- provider hooks -------------------------------------------------

    def discover(self) -> list[ListingItem]:
        raise NotImplementedError

    def fetch_detail(self, item: ListingItem) -> Optional[RawListing]:
        raise NotImplementedError

    # -- stages ----------------------------------------------------------

    def fetch_details(self, items: List[ListingItem]) -> FetchReport:
        report = FetchReport()
        consecutive = 0
        for idx, item in enumerate(items[: self.max_items]):
            if idx and self.detail_delay > 0:
                self._sleep(self.detail_delay)
            try:
                listing = self.fetch_detail(item)
            except DETAIL_ERRORS as exc:
                report.failures += 1
                consecutive += 1
                logger.warning("[%s] Failed to fetch detail for %s (%s): %s", self.source, item.source_id, item.title, exc)
                if self.max_consecutive_failures and consecutive >= self.max_consecutive_failures:
                    logger.warning(
                        "[%s] %d consecutive fetch failures; skipping remaining items",
                        self.source,
                        consecutive,
                    )
                    report.aborted = True
                    break
                continue
            consecutive = 0
            if listing is not None:
                report.listings.append(listing)
        return report

    def extract_all(self, listings: List[RawListing]) -> List[Tuple[RawListing, PartialEventFields]]:
        extracted = []
        for listing in listings:
            fields = self.extractor.extract(listing.body, listing.title, ticket_platform=self.display_name)
            extracted.append((listing, fields))
        return extracted

    def to_candidates(
        self,
        extracted: List[Tuple[RawListing, PartialEventFields]],
        *,
        now: Optional[datetime] = None,
    ) -> CandidateBatch:
        now = now or datetime.now(timezone.utc)
        batch = CandidateBatch()
        for listing, fields in extracted:
            if fields.degraded:
                batch.skipped_degraded += 1
                logger.info("[%s] Skipped (extraction failed): %s", self.source, listing.title)
                continue
            candidate = self.build_candidate(listing, fields, scraped_at=now)
            if candidate.end_date is None or candidate.end_date <= now:
                batch.skipped_past += 1
                logger.info("[%s] Skipped (past event): %s", self.source, candidate.title)
                continue
            batch.candidates.append(candidate)
        return batch

    def collect(
        self,
        *,
        now: Optional[datetime] = None,
        clock: Optional[Callable[[], datetime]] = None,
        on_phase: Optional[Callable[[str], None]] = None,
    ) -> CollectorResult:
        """Run every stage for this provider.

        ``on_phase`` is told "collecting", "extracting" and "resolving" as each
        stage starts. Unless ``now`` is pinned, the past-event cutoff is read
        from ``clock`` once extraction has finished.
        """
        notify = on_phase or (lambda phase: None)
        notify("collecting")
        items = self.discover()
        report = self.fetch_details(items)
        notify("extracting")
        extracted = self.extract_all(report.listings)
        notify("resolving")
        if now is None:
            now = clock() if clock else datetime.now(timezone.utc)
        batch = self.to_candidates(extracted, now=now)
        logger.info("[%s] Total scraped: %d events", self.source, len(batch.candidates))
        return CollectorResult(
            source=self.source,
            candidates=batch.candidates,
            discovered=len(items),
            fetched=len(report.listings),
            fetch_failures=report.failures,
            skipped_past=batch.skipped_past,
            skipped_degraded=batch.skipped_degraded,
            aborted=report.aborted,
        )

    def build_candidate(
        self,
        listing: RawListing,
        fields: PartialEventFields,
        *,
        scraped_at: datetime,
    ) -> EventCandidate:
        ticketing = replace(fields.ticketing, ticket_url=listing.url, ticket_platform=self.display_name)
        images = list(listing.images)
        if not images and listing.image_url:
            images = [EventImage(url=listing.image_url, type="cover")]
        description = listing.description or listing.title
        tags = list(self.base_tags)
        for tag in listing.tags:
            if tag not in tags:
                tags.append(tag)
        return EventCandidate(
            source=self.source,
            source_id=listing.source_id,
            source_url=listing.url,
            title=listing.title,
            description=description,
            description_html=listing.description_html,
            summary=listing.summary if listing.summary is not None else description[:SUMMARY_LIMIT],
            start_date=fields.start_date,
            end_date=fields.end_date,
            published_at=listing.published_at or scraped_at,
            venue=fields.venue,
            ticketing=ticketing,
            category=fields.category,
            genres=list(fields.genres),
            tags=tags,
            lineup=list(fields.lineup),
            organizer=listing.organizer or Organizer(name=self.display_name),
            images=images,
            scraped_at=scraped_at,
        )

    # -- http helpers ----------------------------------------------------

    @property
    def client(self) -> httpx.Client:
        if self._client is None:
            self._client = httpx.Client(
                timeout=self.timeout,
                follow_redirects=True,
                headers={
                    "User-Agent": self.user_agent,
                    "Accept": "text/html,application/xhtml+xml",
                    "Accept-Language": "zh-TW,zh;q=0.9,en;q=0.8",
                },
            )
        return self._client

    def close(self) -> None:
        if self._owns_client and self._client is not None:
            self._client.close()
            self._client = None

    def _get(self, url: str, params: Optional[dict] = None) -> httpx.Response:
        resp = self.client.get(url, params=params)
        resp.raise_for_status()
        return resp

    def _absolute(self, url: Optional[str]) -> Optional[str]:
        if not url:
            return None
        if url.startswith("http"):
            return url
        return urljoin(self.origin + "/", url.lstrip("/"))


def soup_text(soup: BeautifulSoup) -> str:
    for tag in soup(["script", "style"]):
        tag.decompose()
    return re.sub(r"\s+", " ", soup.get_text(" ")).strip()


def strip_html(html: str) -> str:
    if not html:
        return ""
    return soup_text(BeautifulSoup(html, "html.parser"))


def first_attr(soup: BeautifulSoup, selectors: List[str], attr: str) -> Optional[str]:
    for selector in selectors:
        node = soup.select_one(selector)
        if node is not None and node.get(attr):
            return node.get(attr)
    return None

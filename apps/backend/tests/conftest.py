"""
Shared fixtures: an in-memory job store and fakes for the network-facing
collaborators of the orchestrator.
"""

import dataclasses
from datetime import datetime, timezone
from typing import Callable, Dict, Iterable, List, Optional, Tuple

import pytest

from app.config import IngestSettings
from app.job_store import (
    UPDATABLE_COLUMNS,
    DuplicateListingError,
    ImportStatus,
    JobRecord,
    JobStore,
    RunAction,
    RunLogEntry,
    StoreError,
)
from core.link_checker import LinkCheck, LinkStatus
from core.link_resolver import LinkResolution
from crawler.html_fetch import CrawlResult
from crawler.plugins import ScrapedListing, SourceName, get_plugin_registry
from orchestrator import IngestionOrchestrator
from pipeline.classifier import JobFieldClassifier

NOW = datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc)


class InMemoryJobStore(JobStore):
    """JobStore double; hands out copies the way a database would."""

    def __init__(self, records: Optional[Iterable[JobRecord]] = None):
        self.records: Dict[str, JobRecord] = {}
        self.logs: List[RunLogEntry] = []
        self.updates: List[Tuple[str, Dict]] = []
        self.last_run_at: Optional[datetime] = None
        self.fail_find_existing = False
        self._next_id = 1
        for record in records or []:
            self.add(record)

    def add(self, record: JobRecord) -> JobRecord:
        if record.id is None:
            record.id = self._new_id()
        self.records[record.id] = record
        return record

    def _new_id(self) -> str:
        job_id = f"job-{self._next_id}"
        self._next_id += 1
        return job_id

    def find_existing(self, sources: Iterable[str]) -> List[JobRecord]:
        if self.fail_find_existing:
            raise StoreError("connection refused")
        wanted = set(sources)
        return [dataclasses.replace(r) for r in self.records.values() if r.source_name in wanted]

    def find_published_by_apply_url(self, apply_url: str) -> Optional[JobRecord]:
        for record in self.records.values():
            if record.is_published and record.apply_url == apply_url:
                return dataclasses.replace(record)
        return None

    def insert_listing(self, record: JobRecord) -> str:
        for existing in self.records.values():
            if (existing.source_name, existing.source_unique_id) == (record.source_name, record.source_unique_id):
                raise DuplicateListingError(f"duplicate key {record.source_unique_id}")
        stored = dataclasses.replace(record, id=self._new_id())
        self.records[stored.id] = stored
        return stored.id

    def update_listing(self, job_id: str, **fields) -> None:
        unknown = set(fields) - UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"Cannot update columns: {sorted(unknown)}")
        self.updates.append((job_id, dict(fields)))
        record = self.records[job_id]
        for name, value in fields.items():
            setattr(record, name, value)

    def insert_log(self, entry: RunLogEntry) -> None:
        self.logs.append(entry)

    def last_completed_run_at(self) -> Optional[datetime]:
        return self.last_run_at

    def find_pending_review(self, sources: Optional[Iterable[str]], limit: int) -> List[JobRecord]:
        wanted = set(sources) if sources else None
        pending = [
            r for r in self.records.values()
            if r.import_status == ImportStatus.PENDING_REVIEW
            and not r.is_published
            and (wanted is None or r.source_name in wanted)
        ]
        return [dataclasses.replace(r) for r in pending[:limit]]

    def find_missing_region(self, sources: Optional[Iterable[str]], labels: Iterable[str], limit: int) -> List[JobRecord]:
        wanted = set(sources) if sources else None
        lowered = [label.lower() for label in labels]
        missing = [
            r for r in self.records.values()
            if (not r.location or not r.location.strip() or not any(l in r.location.lower() for l in lowered))
            and (wanted is None or r.source_name in wanted)
        ]
        return [dataclasses.replace(r) for r in missing[:limit]]

    def find_published_with_apply_url(self, limit: int) -> List[JobRecord]:
        published = [r for r in self.records.values() if r.is_published and r.apply_url]
        return [dataclasses.replace(r) for r in published[:limit]]

    # helpers for assertions

    def by_uid(self, uid: str) -> Optional[JobRecord]:
        for record in self.records.values():
            if record.source_unique_id == uid:
                return record
        return None

    def actions(self) -> List[RunAction]:
        return [entry.action for entry in self.logs]


class FakeHTMLCrawler:
    """Returns canned listings per source label instead of crawling."""

    def __init__(self, results: Optional[Dict[str, object]] = None):
        self.results = results or {}
        self.calls: List[str] = []
        self.extract_fns: Dict[str, Callable] = {}

    async def crawl(self, base_url, extract_fn, page_url_fn, max_pages=5, fetch_page=None, label=""):
        self.calls.append(label)
        self.extract_fns[label] = extract_fn
        outcome = self.results.get(label, [])
        if isinstance(outcome, Exception):
            raise outcome
        return CrawlResult(listings=list(outcome), pages_fetched=2 if outcome else 1, stop_reason="empty page")


class FakeLinkResolver:
    """Maps detail URLs to employer URLs; listed URLs raise."""

    def __init__(self, urls: Optional[Dict[str, str]] = None, failing: Iterable[str] = ()):
        self.urls = urls or {}
        self.failing = set(failing)
        self.calls: List[str] = []

    async def resolve(self, detail_url, aggregator_domains, find_apply_endpoint=None, apply_endpoint=None):
        self.calls.append(detail_url)
        if detail_url in self.failing:
            raise RuntimeError("resolver exploded")
        url = self.urls.get(detail_url)
        if url:
            return LinkResolution(url=url, hops=1)
        return LinkResolution(reason="No apply link found on detail page")


class FakeLinkChecker:
    """Answers link checks from a URL -> LinkCheck map; unknown URLs are active."""

    def __init__(self, outcomes: Optional[Dict[str, object]] = None):
        self.outcomes = outcomes or {}
        self.calls: List[str] = []

    async def check(self, url):
        self.calls.append(url)
        outcome = self.outcomes.get(url)
        if isinstance(outcome, Exception):
            raise outcome
        return outcome or LinkCheck(url=url, status=LinkStatus.ACTIVE, http_status=200)


class FakeClock:
    def __init__(self, start: float = 1000.0):
        self.value = start

    def __call__(self) -> float:
        return self.value

    def advance(self, seconds: float):
        self.value += seconds


async def no_sleep(seconds: float):
    return None


def make_listing(
    uid: str,
    title: str = "Assistenzarzt (m/w/d) Innere Medizin",
    employer: str = "Klinikum Nord",
    location: str = "74613 Öhringen",
    source: SourceName = SourceName.STELLENMARKT,
    pre_resolved: Optional[str] = None,
) -> ScrapedListing:
    return ScrapedListing(
        title=title,
        external_link=uid,
        employer_name=employer,
        location_raw=location,
        source_unique_id=uid,
        source_name=source,
        pre_resolved_employer_url=pre_resolved,
    )


def record_for(listing: ScrapedListing, **overrides) -> JobRecord:
    """A stored record matching the listing's current content."""
    fields = dict(
        title=listing.title,
        source_name=listing.source_name.value,
        source_unique_id=listing.source_unique_id,
        content_hash=listing.content_hash(),
        hospital_name=listing.employer_name,
        location=listing.location_raw,
        apply_url="https://karriere.klinikum-nord.de/jobs/1",
        source_url=listing.external_link,
        import_status=ImportStatus.PENDING_REVIEW,
        is_published=False,
        imported_at=NOW,
        last_seen_at=NOW,
    )
    fields.update(overrides)
    return JobRecord(**fields)


@pytest.fixture
def store():
    return InMemoryJobStore()


@pytest.fixture
def settings():
    return IngestSettings(page_delay_seconds=0, item_delay_seconds=0, link_check_delay_seconds=0)


@pytest.fixture
def make_orchestrator(store, settings):
    """Build an orchestrator wired to fakes; keyword args override collaborators."""

    def factory(crawler=None, resolver=None, **kwargs):
        options = dict(
            settings=settings,
            registry=get_plugin_registry(),
            html_crawler=crawler or FakeHTMLCrawler(),
            link_resolver=resolver or FakeLinkResolver(),
            link_checker=FakeLinkChecker(),
            classifier=JobFieldClassifier(use_ai=False),
            sleep=no_sleep,
            now=lambda: NOW,
        )
        options.update(kwargs)
        return IngestionOrchestrator(store, **options)

    return factory

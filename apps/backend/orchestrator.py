"""
Ingestion orchestrator: scrape job boards and reconcile with stored listings
"""
import asyncio
import logging
import secrets
import time
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from functools import partial
from typing import Awaitable, Callable, Dict, Iterable, List, Optional, Tuple

import metrics
from app.config import IngestSettings
from app.job_store import (
    DuplicateListingError,
    ImportStatus,
    JobRecord,
    JobStore,
    RunAction,
    RunLogEntry,
)
from core.geocoder import LocationEnricher, get_location_enricher
from core.link_checker import LinkStatus, LinkStatusChecker
from core.link_resolver import EmployerLinkResolver
from core.net import HTTPClient, host_matches
from crawler.browser_crawler import BrowserCrawler
from crawler.html_fetch import HTMLCrawler
from crawler.plugins import ExtractionPlugin, PluginRegistry, ScrapedListing, SourceName, get_plugin_registry
from pipeline.classifier import Classification, JobFieldClassifier

logger = logging.getLogger(__name__)

SCRAPE_METHOD = "html_scrape"
NO_LISTINGS_MESSAGE = "No listings found from any source"
MAX_REPORTED_FAILURES = 10

# Statuses that still await review; published listings are never expired
EXPIRABLE_STATUSES = {ImportStatus.PENDING_REVIEW, ImportStatus.CLASSIFIED, ImportStatus.NO_SIGNAL}


class IngestAbortedError(Exception):
    """The run could not start (e.g. existing listings could not be loaded)."""


def generate_run_id() -> str:
    return f"run_{int(time.time() * 1000)}_{secrets.token_hex(3)}"


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _as_utc(value: datetime) -> datetime:
    return value if value.tzinfo else value.replace(tzinfo=timezone.utc)


@dataclass
class BudgetTracker:
    """Cooperative wall-clock budget, checked before each listing"""
    ceiling_seconds: float
    clock: Callable[[], float] = time.monotonic
    started_at: Optional[float] = None

    def __post_init__(self):
        if self.started_at is None:
            self.started_at = self.clock()

    def elapsed(self) -> float:
        return self.clock() - self.started_at

    def exhausted(self) -> bool:
        return self.elapsed() >= self.ceiling_seconds


@dataclass
class BackfillAllowance:
    """How many unchanged listings may still get enrichment backfilled this run"""
    remaining: int

    def take(self) -> bool:
        if self.remaining <= 0:
            return False
        self.remaining -= 1
        return True


@dataclass
class RunSummary:
    """Counters reported back to the caller of a run"""
    run_id: str
    total_listings: int = 0
    imported: int = 0
    updated: int = 0
    skipped: int = 0
    expired: int = 0
    errors: int = 0
    error_messages: List[str] = field(default_factory=list)
    pages_scraped: Dict[str, int] = field(default_factory=dict)
    budget_exhausted: bool = False
    success: bool = True

    def record_error(self, message: str):
        self.errors += 1
        self.error_messages.append(message)

    def to_dict(self) -> Dict:
        return {
            "success": self.success,
            "runId": self.run_id,
            "totalListings": self.total_listings,
            "imported": self.imported,
            "updated": self.updated,
            "skipped": self.skipped,
            "expired": self.expired,
            "errors": self.errors,
            "errorMessages": list(self.error_messages),
            "pagesScraped": dict(self.pages_scraped),
            "budgetExhausted": self.budget_exhausted,
        }


@dataclass
class SourceScrape:
    """Listings collected from one source in this run"""
    source: SourceName
    listings: List[ScrapedListing] = field(default_factory=list)
    pages_fetched: int = 0
    error: Optional[str] = None


@dataclass
class RunContext:
    """Per-run state threaded through reconciliation"""
    run_id: str
    summary: RunSummary
    budget: BudgetTracker
    allowance: BackfillAllowance
    known: Dict[Tuple[str, str], JobRecord]


class IngestionOrchestrator:
    """Runs ingestion: scrape, reconcile, expire, log"""

    def __init__(
        self,
        store: JobStore,
        settings: Optional[IngestSettings] = None,
        registry: Optional[PluginRegistry] = None,
        http_client: Optional[HTTPClient] = None,
        html_crawler: Optional[HTMLCrawler] = None,
        browser_crawler: Optional[BrowserCrawler] = None,
        link_resolver: Optional[EmployerLinkResolver] = None,
        link_checker: Optional[LinkStatusChecker] = None,
        classifier: Optional[JobFieldClassifier] = None,
        location_enricher: Optional[LocationEnricher] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        now: Callable[[], datetime] = utcnow,
    ):
        self.store = store
        self.settings = settings or IngestSettings.from_env()
        self.registry = registry or get_plugin_registry()
        http_client = http_client or HTTPClient()
        self.html_crawler = html_crawler or HTMLCrawler(
            http_client=http_client,
            page_delay=self.settings.page_delay_seconds,
            sleep=sleep,
        )
        self.browser_crawler = browser_crawler or BrowserCrawler(http_client=http_client)
        self.link_resolver = link_resolver or EmployerLinkResolver(http_client=http_client)
        self.link_checker = link_checker or LinkStatusChecker(http_client=http_client)
        self.classifier = classifier or JobFieldClassifier()
        self.location_enricher = location_enricher or get_location_enricher()
        self._clock = clock
        self._sleep = sleep
        self._now = now
        self.semaphore = asyncio.Semaphore(self.settings.max_concurrent_sources)

    # ------------------------------------------------------------------
    # Run
    # ------------------------------------------------------------------

    async def run(self, sources: Optional[Iterable[str]] = None) -> RunSummary:
        """
        Execute one ingestion run.

        Args:
            sources: Source names to scrape (default: all registered)

        Returns:
            RunSummary; success is False when no source yielded listings

        Raises:
            UnknownSourceError: a requested source has no plugin
            IngestAbortedError: existing listings could not be loaded
        """
        source_names = self.registry.resolve_sources(sources)
        run_id = generate_run_id()
        ctx = RunContext(
            run_id=run_id,
            summary=RunSummary(run_id=run_id),
            budget=BudgetTracker(self.settings.budget_seconds, clock=self._clock),
            allowance=BackfillAllowance(self.settings.backfill_per_run),
            known={},
        )
        logger.info(f"[orchestrator] [{run_id}] Starting run for {[s.value for s in source_names]}")

        self.store.insert_log(RunLogEntry(
            run_id=run_id,
            action=RunAction.RUN_STARTED,
            details={"sources": [s.value for s in source_names], "method": SCRAPE_METHOD},
        ))

        try:
            existing = self.store.find_existing([s.value for s in source_names])
        except Exception as e:
            logger.error(f"[orchestrator] [{run_id}] Failed to load existing listings: {e}")
            raise IngestAbortedError(f"Failed to load existing listings: {e}") from e

        ctx.known = {(r.source_name, r.source_unique_id): r for r in existing}

        scrapes = await self.scrape_sources(run_id, source_names)
        for scrape in scrapes:
            ctx.summary.pages_scraped[scrape.source.value] = scrape.pages_fetched
            ctx.summary.total_listings += len(scrape.listings)
            if scrape.error:
                ctx.summary.record_error(f"{scrape.source.value}: {scrape.error}")

        if ctx.summary.total_listings == 0:
            logger.error(f"[orchestrator] [{run_id}] {NO_LISTINGS_MESSAGE}")
            ctx.summary.success = False
            ctx.summary.record_error(NO_LISTINGS_MESSAGE)
            self._log(ctx, RunAction.ERROR, details={"error": NO_LISTINGS_MESSAGE})
            self._complete(ctx)
            return ctx.summary

        await self._reconcile(ctx, scrapes)
        self._expire_unseen(ctx, existing, scrapes)
        self._complete(ctx)
        return ctx.summary

    async def scrape_sources(self, run_id: str, source_names: List[SourceName]) -> List[SourceScrape]:
        """Crawl all sources concurrently (bounded by semaphore)"""
        tasks = [self._scrape_source(run_id, source) for source in source_names]
        results = await asyncio.gather(*tasks, return_exceptions=True)

        scrapes = []
        for source, result in zip(source_names, results):
            if isinstance(result, BaseException):
                logger.error(f"[orchestrator] [{run_id}] Source {source.value} failed: {result}")
                scrapes.append(SourceScrape(source=source, error=str(result)))
            else:
                scrapes.append(result)
        return scrapes

    async def _scrape_source(self, run_id: str, source: SourceName) -> SourceScrape:
        async with self.semaphore:
            plugin = self.registry.get_plugin(source)
            fetch_page = None
            if plugin.requires_browser:
                async def fetch_page(url: str) -> Tuple[int, str]:
                    return await self.browser_crawler.fetch_html(url, plugin.wait_for_selector)

            result = await self.html_crawler.crawl(
                plugin.base_url,
                partial(self.registry.extract, source),
                plugin.page_url,
                max_pages=self.settings.max_pages,
                fetch_page=fetch_page,
                label=source.value,
            )

        # Pagination can shift listings between pages while we walk them
        listings = []
        seen = set()
        for listing in result.listings:
            if listing.source_unique_id not in seen:
                seen.add(listing.source_unique_id)
                listings.append(listing)

        logger.info(f"[orchestrator] [{run_id}] {source.value}: {len(listings)} listings from {result.pages_fetched} pages")
        error = result.error if result.error and not listings else None
        return SourceScrape(source=source, listings=listings, pages_fetched=result.pages_fetched, error=error)

    # ------------------------------------------------------------------
    # Reconciliation
    # ------------------------------------------------------------------

    async def _reconcile(self, ctx: RunContext, scrapes: List[SourceScrape]):
        for scrape in scrapes:
            plugin = self.registry.get_plugin(scrape.source)
            for listing in scrape.listings[:self.settings.max_items_per_source]:
                if ctx.budget.exhausted():
                    logger.warning(
                        f"[orchestrator] [{ctx.run_id}] Time budget exhausted after "
                        f"{ctx.budget.elapsed():.1f}s, stopping reconciliation"
                    )
                    ctx.summary.budget_exhausted = True
                    return
                await self.process_listing(ctx, plugin, listing)

    async def process_listing(self, ctx: RunContext, plugin: ExtractionPlugin, listing: ScrapedListing):
        """Insert, update or skip one listing; failures are contained here"""
        key = (listing.source_name.value, listing.source_unique_id)
        existing = ctx.known.get(key)
        content_hash = listing.content_hash()

        try:
            if existing is None:
                await self._import_new(ctx, plugin, listing, content_hash)
            elif existing.content_hash == content_hash:
                await self._refresh_unchanged(ctx, plugin, listing, existing)
            else:
                await self._update_changed(ctx, plugin, listing, existing, content_hash)
        except Exception as e:
            message = f"{listing.title} ({listing.source_name.value}): {e}"
            logger.error(f"[orchestrator] [{ctx.run_id}] Error processing {message}")
            ctx.summary.record_error(message)
            metrics.incr_listing(listing.source_name.value, "error")
            self._log(
                ctx,
                RunAction.ERROR,
                listing=listing,
                job_id=existing.id if existing else None,
                details={"error": str(e), "source": listing.source_name.value},
            )
            if existing is not None and existing.id:
                self._mark_error(ctx, existing)

    async def _import_new(self, ctx: RunContext, plugin: ExtractionPlugin, listing: ScrapedListing, content_hash: str):
        apply_url = await self.resolve_apply_url(plugin, listing)

        published = self.store.find_published_by_apply_url(apply_url)
        if published is not None:
            self._count(ctx, listing, "skipped")
            self._log(ctx, RunAction.SKIPPED, listing=listing, job_id=published.id, details={
                "reason": "duplicate_of_published",
                "apply_url": apply_url,
            })
            return

        classification = await self._classify(listing)
        now = self._now()
        record = JobRecord(
            title=listing.title,
            source_name=listing.source_name.value,
            source_unique_id=listing.source_unique_id,
            content_hash=content_hash,
            hospital_name=listing.employer_name or None,
            location=self.location_enricher.enrich(listing.location_raw) or None,
            department=classification.department,
            tags=list(classification.tags),
            description=classification.description,
            apply_url=apply_url,
            source_url=listing.external_link,
            import_status=ImportStatus.PENDING_REVIEW,
            is_published=False,
            imported_at=now,
            last_seen_at=now,
        )

        try:
            record.id = self.store.insert_listing(record)
        except DuplicateListingError as e:
            logger.info(f"[orchestrator] [{ctx.run_id}] Duplicate insert for {listing.source_unique_id}: {e}")
            self._count(ctx, listing, "skipped")
            self._log(ctx, RunAction.SKIPPED, listing=listing, details={"reason": "duplicate_key"})
            return

        ctx.known[(record.source_name, record.source_unique_id)] = record
        self._count(ctx, listing, "imported")
        self._log(ctx, RunAction.IMPORTED, listing=listing, job_id=record.id, details={
            "source": record.source_name,
            "department": record.department,
            "classified_by": classification.classified_by,
            "employer_url_resolved": apply_url != listing.external_link,
        })

    async def _refresh_unchanged(self, ctx: RunContext, plugin: ExtractionPlugin, listing: ScrapedListing, existing: JobRecord):
        now = self._now()
        fields = {"last_seen_at": now}
        backfilled = []

        needs_location = bool(existing.location) and not self.location_enricher.has_region(existing.location)
        needs_url = not existing.apply_url or host_matches(existing.apply_url, plugin.aggregator_domains)

        if (needs_location or needs_url) and ctx.allowance.take():
            if needs_location:
                enriched = self.location_enricher.enrich(existing.location)
                if enriched != existing.location:
                    fields["location"] = enriched
                    backfilled.append("location")
            if needs_url:
                apply_url = await self.resolve_apply_url(plugin, listing)
                if apply_url != existing.apply_url and not host_matches(apply_url, plugin.aggregator_domains):
                    fields["apply_url"] = apply_url
                    backfilled.append("apply_url")

        self.store.update_listing(existing.id, **fields)
        existing.last_seen_at = now
        existing.location = fields.get("location", existing.location)
        existing.apply_url = fields.get("apply_url", existing.apply_url)

        self._count(ctx, listing, "skipped")
        details = {"reason": "content_unchanged"}
        if backfilled:
            details["backfilled"] = backfilled
        self._log(ctx, RunAction.SKIPPED, listing=listing, job_id=existing.id, details=details)

    async def _update_changed(
        self,
        ctx: RunContext,
        plugin: ExtractionPlugin,
        listing: ScrapedListing,
        existing: JobRecord,
        content_hash: str,
    ):
        apply_url = await self.resolve_apply_url(plugin, listing)
        classification = await self._classify(listing)

        fields = {
            "title": listing.title,
            "hospital_name": listing.employer_name or None,
            "location": self.location_enricher.enrich(listing.location_raw) or None,
            "description": classification.description,
            "apply_url": apply_url,
            "source_url": listing.external_link,
            "content_hash": content_hash,
            "last_seen_at": self._now(),
        }
        if classification.has_signal:
            fields["department"] = classification.department
            fields["tags"] = list(classification.tags)
        if existing.import_status == ImportStatus.ERROR:
            fields["import_status"] = ImportStatus.PENDING_REVIEW

        self.store.update_listing(existing.id, **fields)
        for name, value in fields.items():
            setattr(existing, name, value)

        self._count(ctx, listing, "updated")
        self._log(ctx, RunAction.UPDATED, listing=listing, job_id=existing.id, details={"reason": "content_changed"})

    async def resolve_apply_url(self, plugin: ExtractionPlugin, listing: ScrapedListing) -> str:
        """Employer application URL, falling back to the board's detail page"""
        if listing.pre_resolved_employer_url:
            return listing.pre_resolved_employer_url

        resolution = await self.link_resolver.resolve(
            listing.external_link,
            plugin.aggregator_domains,
            find_apply_endpoint=plugin.find_apply_endpoint,
            apply_endpoint=plugin.direct_apply_endpoint(listing.external_link),
        )
        if resolution.resolved:
            return resolution.url

        logger.debug(f"[orchestrator] Employer link not resolved for {listing.external_link}: {resolution.reason}")
        return listing.external_link

    async def _classify(self, listing: ScrapedListing) -> Classification:
        classification = await self.classifier.classify(
            listing.title,
            employer_name=listing.employer_name or None,
            location=listing.location_raw or None,
        )
        await self._sleep(self.settings.item_delay_seconds)
        return classification

    # ------------------------------------------------------------------
    # Expiry and bookkeeping
    # ------------------------------------------------------------------

    def _expire_unseen(self, ctx: RunContext, existing: List[JobRecord], scrapes: List[SourceScrape]):
        """Expire review-pending listings that vanished from their source"""
        threshold = self._now() - timedelta(hours=self.settings.expiration_grace_hours)

        for scrape in scrapes:
            # A source that returned nothing this run is not evidence of removal
            if not scrape.listings:
                continue

            seen = {listing.source_unique_id for listing in scrape.listings}
            for record in existing:
                if record.source_name != scrape.source.value or record.source_unique_id in seen:
                    continue
                if record.is_published or record.import_status not in EXPIRABLE_STATUSES:
                    continue
                if record.last_seen_at is None or _as_utc(record.last_seen_at) >= threshold:
                    continue

                try:
                    self.store.update_listing(record.id, import_status=ImportStatus.EXPIRED)
                except Exception as e:
                    logger.error(f"[orchestrator] [{ctx.run_id}] Failed to expire {record.source_unique_id}: {e}")
                    ctx.summary.record_error(f"{record.title} ({record.source_name}): expire failed: {e}")
                    continue

                record.import_status = ImportStatus.EXPIRED
                ctx.summary.expired += 1
                metrics.incr_listing(record.source_name, "expired")
                self._log(
                    ctx,
                    RunAction.EXPIRED,
                    source_unique_id=record.source_unique_id,
                    job_id=record.id,
                    job_title=record.title,
                    details={"last_seen": _as_utc(record.last_seen_at).isoformat(), "source": record.source_name},
                )

        if ctx.summary.expired:
            logger.info(f"[orchestrator] [{ctx.run_id}] Expired {ctx.summary.expired} listing(s)")

    def _mark_error(self, ctx: RunContext, record: JobRecord):
        try:
            self.store.update_listing(record.id, import_status=ImportStatus.ERROR)
            record.import_status = ImportStatus.ERROR
        except Exception as e:
            logger.warning(f"[orchestrator] [{ctx.run_id}] Could not mark {record.source_unique_id} as error: {e}")

    def _count(self, ctx: RunContext, listing: ScrapedListing, action: str):
        setattr(ctx.summary, action, getattr(ctx.summary, action) + 1)
        metrics.incr_listing(listing.source_name.value, action)

    def _log(
        self,
        ctx: RunContext,
        action: RunAction,
        listing: Optional[ScrapedListing] = None,
        job_id: Optional[str] = None,
        source_unique_id: Optional[str] = None,
        job_title: Optional[str] = None,
        details: Optional[Dict] = None,
    ):
        """Append a run log row; log write failures do not fail the run"""
        entry = RunLogEntry(
            run_id=ctx.run_id,
            action=action,
            source_unique_id=listing.source_unique_id if listing else source_unique_id,
            job_id=job_id,
            job_title=listing.title if listing else job_title,
            details=details or {},
        )
        try:
            self.store.insert_log(entry)
        except Exception as e:
            logger.warning(f"[orchestrator] [{ctx.run_id}] Failed to write {action.value} log: {e}")

    def _complete(self, ctx: RunContext):
        summary = ctx.summary.to_dict()
        self._log(ctx, RunAction.RUN_COMPLETED, details=summary)
        metrics.record_run(summary, ctx.budget.elapsed())
        logger.info(
            f"[orchestrator] [{ctx.run_id}] Run complete: imported={ctx.summary.imported}, "
            f"updated={ctx.summary.updated}, skipped={ctx.summary.skipped}, "
            f"expired={ctx.summary.expired}, errors={ctx.summary.errors}"
        )

    # ------------------------------------------------------------------
    # Field backfill
    # ------------------------------------------------------------------

    async def run_field_backfill(self, batch_size: int = 25, source: Optional[str] = None) -> Dict:
        """
        Classify pending_review listings and move them to classified / no_signal.

        Listings that already carry a department or tags are marked classified
        without another classifier call.

        Returns:
            {'total', 'updated', 'skipped', 'failed', 'classified_by_rules', 'classified_by_ai'}
        """
        sources = [self.registry.get_plugin(source).source.value] if source else None
        records = self.store.find_pending_review(sources, batch_size)
        result = {
            'total': len(records),
            'updated': 0,
            'skipped': 0,
            'failed': 0,
            'classified_by_rules': 0,
            'classified_by_ai': 0,
        }
        logger.info(f"[orchestrator] Field backfill: {len(records)} pending listing(s)")

        for record in records:
            try:
                if record.department or record.tags:
                    self.store.update_listing(record.id, import_status=ImportStatus.CLASSIFIED)
                    result['updated'] += 1
                    continue

                classification = await self.classifier.classify(
                    record.title,
                    employer_name=record.hospital_name,
                    location=record.location,
                    description=record.description,
                )
                if classification.has_signal:
                    self.store.update_listing(
                        record.id,
                        department=classification.department,
                        tags=list(classification.tags),
                        import_status=ImportStatus.CLASSIFIED,
                    )
                    result['updated'] += 1
                    result[f"classified_by_{classification.classified_by}"] += 1
                else:
                    self.store.update_listing(record.id, import_status=ImportStatus.NO_SIGNAL)
                    result['skipped'] += 1
                await self._sleep(self.settings.item_delay_seconds)
            except Exception as e:
                logger.error(f"[orchestrator] Field backfill failed for {record.id}: {e}")
                result['failed'] += 1
                try:
                    self.store.update_listing(record.id, import_status=ImportStatus.ERROR)
                except Exception as mark_error:
                    logger.warning(f"[orchestrator] Could not mark {record.id} as error: {mark_error}")

        return result


    # ------------------------------------------------------------------
    # Location backfill
    # ------------------------------------------------------------------

    def run_location_backfill(self, batch_size: int = 100, source: Optional[str] = None) -> Dict:
        """
        Add region labels to stored listings, or derive a location for
        listings stored without one (employer name, title, description).

        Returns:
            {'total', 'updated', 'unresolved', 'failed', 'failures'}
        """
        sources = [self.registry.get_plugin(source).source.value] if source else None
        records = self.store.find_missing_region(sources, self.location_enricher.labels, batch_size)
        result = {'total': len(records), 'updated': 0, 'unresolved': 0, 'failed': 0, 'failures': []}
        logger.info(f"[orchestrator] Location backfill: {len(records)} listing(s) without region")

        for record in records:
            try:
                if record.location and record.location.strip():
                    location = self.location_enricher.enrich(record.location)
                    if location == record.location:
                        location = None
                else:
                    location = self.location_enricher.derive_location(
                        record.hospital_name, record.title, record.description
                    )

                if not location:
                    result['unresolved'] += 1
                    continue

                self.store.update_listing(record.id, location=location)
                result['updated'] += 1
            except Exception as e:
                logger.error(f"[orchestrator] Location backfill failed for {record.id}: {e}")
                result['failed'] += 1
                if len(result['failures']) < MAX_REPORTED_FAILURES:
                    result['failures'].append(f"{record.id}: {e}")

        return result

    # ------------------------------------------------------------------
    # Apply link check
    # ------------------------------------------------------------------

    async def run_link_check(self, limit: int = 200) -> Dict:
        """
        Check the apply URLs of published listings and store link_status.

        URLs are checked in small concurrent batches with a pause between
        batches.

        Returns:
            {'checked', 'active', 'stale', 'error', 'unknown', 'stale_jobs'}
        """
        records = self.store.find_published_with_apply_url(limit)
        result = {'checked': 0, 'active': 0, 'stale': 0, 'error': 0, 'unknown': 0, 'stale_jobs': []}
        batch_size = max(1, self.settings.link_check_concurrency)
        checked_at = self._now()
        logger.info(f"[orchestrator] Link check: {len(records)} published listing(s)")

        for start in range(0, len(records), batch_size):
            batch = records[start:start + batch_size]
            checks = await asyncio.gather(
                *(self.link_checker.check(record.apply_url) for record in batch),
                return_exceptions=True,
            )

            for record, check in zip(batch, checks):
                if isinstance(check, BaseException):
                    logger.error(f"[orchestrator] Link check crashed for {record.apply_url}: {check}")
                    status, http_status = LinkStatus.ERROR, None
                else:
                    status, http_status = check.status, check.http_status

                result['checked'] += 1
                result[status.value] += 1
                if status == LinkStatus.STALE:
                    result['stale_jobs'].append({'id': record.id, 'url': record.apply_url, 'http_status': http_status})
                metrics.incr_link_check(status.value)

                try:
                    self.store.update_listing(record.id, link_status=status, link_checked_at=checked_at)
                except Exception as e:
                    logger.warning(f"[orchestrator] Could not store link status for {record.id}: {e}")

            if start + batch_size < len(records):
                await self._sleep(self.settings.link_check_delay_seconds)

        logger.info(
            f"[orchestrator] Link check complete: active={result['active']}, stale={result['stale']}, "
            f"error={result['error']}, unknown={result['unknown']}"
        )
        return result
